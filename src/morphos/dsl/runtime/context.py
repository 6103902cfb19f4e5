"""
Variable scopes for the script interpreter.

Scopes form a chain via ``parent``. The root of every chain is built from the
CapabilitySet, so a lookup that misses every program scope ends at the
capabilities and then fails with a ReferenceError; there is no fallback into
any Python namespace.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Set

from ..errors import error_not_defined, error_redeclared, error_type
from ..tokens import SourceSpan


_MISSING = object()


@dataclass
class Scope:
    """
    A single scope containing variable bindings.

    ``is_function`` marks function (and program) scopes: ``var`` declarations
    and hoisted function declarations land in the nearest such scope.
    """
    variables: Dict[str, Any] = field(default_factory=dict)
    constants: Set[str] = field(default_factory=set)
    parent: Optional["Scope"] = None
    name: str = "anonymous"  # For debugging
    is_function: bool = False
    lexical: Set[str] = field(default_factory=set)  # let/const names

    def declare(self, name: str, value: Any, kind: str = "let",
                span: Optional[SourceSpan] = None) -> None:
        """Bind ``name`` in this scope.

        ``let``/``const`` may not be declared twice in one scope; ``var`` and
        function declarations may be repeated.
        """
        if name in self.lexical or (kind in ("let", "const") and name in self.variables):
            raise error_redeclared(name, span)
        self.variables[name] = value
        if kind in ("let", "const"):
            self.lexical.add(name)
        if kind == "const":
            self.constants.add(name)

    def find(self, name: str) -> Optional["Scope"]:
        """Return the scope that binds ``name``, or None."""
        scope = self
        while scope is not None:
            if name in scope.variables:
                return scope
            scope = scope.parent
        return None

    def lookup(self, name: str, default: Any = _MISSING) -> Any:
        """Look up a variable in this scope or parent scopes."""
        scope = self.find(name)
        if scope is not None:
            return scope.variables[name]
        return default

    def get(self, name: str, span: Optional[SourceSpan] = None) -> Any:
        """Look up a variable, raising ReferenceError when unbound."""
        value = self.lookup(name)
        if value is _MISSING:
            raise error_not_defined(name, span)
        return value

    def contains(self, name: str) -> bool:
        """Check if a variable exists in this scope or parents."""
        return self.find(name) is not None

    def assign(self, name: str, value: Any, span: Optional[SourceSpan] = None) -> None:
        """
        Update an existing variable (mutable assignment).

        Searches up the scope chain to find where the variable is defined.
        Assigning to an undeclared name is a ReferenceError (strict mode) and
        assigning to a constant is a TypeError.
        """
        scope = self.find(name)
        if scope is None:
            raise error_not_defined(name, span)
        if name in scope.constants:
            raise error_type("Assignment to constant variable.", span)
        scope.variables[name] = value

    def function_scope(self) -> "Scope":
        """The nearest enclosing function or program scope."""
        scope = self
        while not scope.is_function and scope.parent is not None:
            scope = scope.parent
        return scope

    def child(self, name: str = "block", is_function: bool = False) -> "Scope":
        """Create a nested scope."""
        return Scope(parent=self, name=name, is_function=is_function)

    def copy(self) -> "Scope":
        """Shallow copy used for per-iteration bindings of ``for`` loops."""
        return Scope(
            variables=dict(self.variables),
            constants=set(self.constants),
            parent=self.parent,
            name=self.name,
            is_function=self.is_function,
            lexical=set(self.lexical),
        )

    @classmethod
    def from_bindings(cls, bindings: Mapping[str, Any], name: str = "capabilities") -> "Scope":
        """Build a closed root scope whose bindings are all read-only."""
        names = set(bindings)
        return cls(
            variables=dict(bindings),
            constants=set(names),
            name=name,
            is_function=True,
        )


__all__ = ["Scope"]

"""
Static Security Gate for untrusted program text.

The gate is a text-level denylist with exactly one allowlisted form,
``require('@jscad/modeling')``. Validation runs in four steps:

1. Mask every allowlisted require call with a unique placeholder.
2. Scan the masked text class by class; each hit is replaced by the inert
   marker ``/* REMOVED */`` so the following classes scan what remains.
3. Restore the placeholders verbatim.
4. Reject when any class was hit, listing the classes in a fixed order.

Usage:
    from morphos.security import validate, scan

    program = validate(Program(text))      # raises SecurityRejection
    report = scan(Program(text))           # never raises
    report.ok, report.classes
"""

import logging
import re
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Pattern, Tuple

from .errors import SecurityRejection
from .outcome import Program

logger = logging.getLogger(__name__)

DEFAULT_MAX_PROGRAM_LENGTH = 50_000
INERT_MARKER = "/* REMOVED */"

ALLOWED_IMPORT = re.compile(r"""require\s*\(\s*(['"])@jscad/modeling\1\s*\)""")


class ViolationClass(Enum):
    """Denylist pattern classes, in reporting order."""
    DYNAMIC_CODE = "dynamic-code"
    NETWORK = "network"
    STORAGE = "storage"
    HOST_GLOBAL = "host-global"
    MESSAGING = "messaging"
    OVERSIZE = "oversize"


DENYLIST: Dict[ViolationClass, Tuple[Pattern, ...]] = {
    ViolationClass.DYNAMIC_CODE: (
        re.compile(r"\beval\s*\("),
        re.compile(r"\bFunction\s*\("),
        re.compile(r"\bimport\s*\("),
        re.compile(r"\bimport\s+"),
        re.compile(r"\bimportScripts\s*\("),
        re.compile(r"\brequire\s*\("),
        re.compile(r"\.\s*constructor\b"),
        re.compile(r"__proto__"),
    ),
    ViolationClass.NETWORK: (
        re.compile(r"\bfetch\s*\("),
        re.compile(r"\bXMLHttpRequest\b"),
        re.compile(r"\bWebSocket\b"),
        re.compile(r"\bEventSource\b"),
        re.compile(r"\bsendBeacon\b"),
    ),
    ViolationClass.STORAGE: (
        re.compile(r"\blocalStorage\b"),
        re.compile(r"\bsessionStorage\b"),
        re.compile(r"\bindexedDB\b"),
        re.compile(r"\bdocument\s*\.\s*cookie\b"),
        re.compile(r"\bcaches\s*\."),
    ),
    ViolationClass.HOST_GLOBAL: (
        re.compile(r"\bdocument\s*\."),
        re.compile(r"\bwindow\s*\."),
        re.compile(r"\bself\s*\."),
        re.compile(r"\bglobalThis\b"),
        re.compile(r"\bprocess\s*\."),
    ),
    ViolationClass.MESSAGING: (
        re.compile(r"\bpostMessage\s*\("),
        re.compile(r"\bonmessage\b"),
        re.compile(r"\baddEventListener\s*\("),
    ),
}


@dataclass(frozen=True)
class Violation:
    """One denylist hit."""
    violation_class: ViolationClass
    pattern: str
    text: str

    def __str__(self) -> str:
        return f"{self.violation_class.value}: {self.text.strip()}"


@dataclass(frozen=True)
class GateReport:
    """Result of scanning a program without raising."""
    program: Program
    violations: Tuple[Violation, ...] = ()
    sanitized: str = ""

    @property
    def ok(self) -> bool:
        return not self.violations

    @property
    def classes(self) -> List[ViolationClass]:
        """Violated classes in reporting order, without duplicates."""
        hit = {v.violation_class for v in self.violations}
        return [c for c in ViolationClass if c in hit]

    @property
    def reason(self) -> str:
        if self.ok:
            return ""
        names = ", ".join(c.value for c in self.classes)
        return f"Program rejected by security gate: {names}"


@dataclass
class _Mask:
    """Substitution table for masked allowlisted imports."""
    nonce: str = field(default_factory=lambda: uuid.uuid4().hex)
    table: Dict[str, str] = field(default_factory=dict)

    def apply(self, text: str) -> str:
        def substitute(match):
            token = f"__MORPHOS_ALLOWED_{self.nonce}_{len(self.table)}__"
            self.table[token] = match.group(0)
            return token
        return ALLOWED_IMPORT.sub(substitute, text)

    def restore(self, text: str) -> str:
        for token, original in self.table.items():
            text = text.replace(token, original)
        return text


def scan(program: Program, max_length: int = DEFAULT_MAX_PROGRAM_LENGTH) -> GateReport:
    """Scan ``program`` against the denylist and report every hit."""
    text = program.text
    if len(text) > max_length:
        violation = Violation(
            ViolationClass.OVERSIZE,
            f"len <= {max_length}",
            f"{len(text)} characters",
        )
        return GateReport(program, (violation,), text[:max_length])

    mask = _Mask()
    masked = mask.apply(text)
    violations: List[Violation] = []
    for violation_class, patterns in DENYLIST.items():
        for pattern in patterns:
            for match in pattern.finditer(masked):
                violations.append(Violation(violation_class, pattern.pattern, match.group(0)))
            masked = pattern.sub(INERT_MARKER, masked)

    return GateReport(program, tuple(violations), mask.restore(masked))


def validate(program: Program, max_length: int = DEFAULT_MAX_PROGRAM_LENGTH) -> Program:
    """Return ``program`` unchanged if it passes, else raise SecurityRejection."""
    report = scan(program, max_length)
    if report.ok:
        logger.debug("security gate passed (%d characters)", len(program))
        return program
    logger.warning("%s", report.reason)
    raise SecurityRejection(report.reason, list(report.violations), report.sanitized)


__all__ = [
    "DEFAULT_MAX_PROGRAM_LENGTH",
    "INERT_MARKER",
    "ViolationClass",
    "Violation",
    "GateReport",
    "scan",
    "validate",
]

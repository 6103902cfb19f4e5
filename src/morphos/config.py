"""
Configuration for the pipeline, the generation client and the correction loop.

Values are layered: built-in defaults, then an optional YAML file, then
environment variables. Example file::

    timeout_seconds: 5
    max_steps: 2000000
    model: gemini-2.5-flash
    retry_ceiling: 2
"""

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union, get_args, get_type_hints

import yaml

from .dsl.runtime.budget import ExecutionBudget
from .errors import ConfigError
from .generation.client import (
    DEFAULT_BASE_URL,
    DEFAULT_MODEL,
    KNOWN_MODELS,
    OpenAIGenerationClient,
    RateLimiter,
)
from .pipeline.compiler import CompileResult
from .pipeline.session import ModelSession, inprocess_runner, isolated_runner
from .security import DEFAULT_MAX_PROGRAM_LENGTH

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MorphosConfig:
    # execution budget
    timeout_seconds: float = 10.0
    max_steps: int = 5_000_000
    max_call_depth: int = 64
    max_triangles: int = 2_000_000
    max_program_length: int = DEFAULT_MAX_PROGRAM_LENGTH
    # generation collaborator
    api_key: Optional[str] = None
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    temperature: float = 0.2
    top_p: float = 0.8
    max_tokens: int = 8192
    request_timeout: float = 60.0
    generation_attempts: int = 2
    rate_limit_calls: Optional[int] = None
    rate_limit_window: float = 86_400.0
    # correction loop and session
    retry_ceiling: int = 2
    debounce_seconds: float = 0.1
    isolated: bool = False

    def budget(self) -> ExecutionBudget:
        try:
            return ExecutionBudget(
                timeout_seconds=self.timeout_seconds,
                max_steps=self.max_steps,
                max_call_depth=self.max_call_depth,
                max_triangles=self.max_triangles,
            )
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc

    def generation_client(self) -> OpenAIGenerationClient:
        limiter = None
        if self.rate_limit_calls:
            limiter = RateLimiter(self.rate_limit_calls, self.rate_limit_window)
        return OpenAIGenerationClient(
            self.api_key,
            base_url=self.base_url,
            model=self.model,
            temperature=self.temperature,
            top_p=self.top_p,
            max_tokens=self.max_tokens,
            request_timeout=self.request_timeout,
            max_attempts=self.generation_attempts,
            rate_limiter=limiter,
        )

    def session(self, on_result: Optional[Callable[[CompileResult], None]] = None) -> ModelSession:
        """A ModelSession using this budget, debounce delay and runner choice."""
        runner = isolated_runner if self.isolated else inprocess_runner
        return ModelSession(self.budget(), self.debounce_seconds, on_result, runner)


_FIELD_TYPES = get_type_hints(MorphosConfig)


def _field_type(key: str) -> Tuple[type, bool]:
    """The concrete type of a field and whether it accepts None."""
    hint = _FIELD_TYPES[key]
    args = get_args(hint)
    if type(None) in args:
        return next(a for a in args if a is not type(None)), True
    return hint, False


def _coerce(key: str, value: Any) -> Any:
    kind, optional = _field_type(key)
    if value is None:
        if not optional:
            raise ConfigError(f"{key} must not be empty")
        return None
    try:
        if kind is bool:
            if isinstance(value, str):
                return value.strip().lower() in ("1", "true", "yes", "on")
            return bool(value)
        if kind is int:
            if isinstance(value, float) and not value.is_integer():
                raise ValueError(value)
            return int(value)
        if kind is float:
            return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"invalid value for {key}: {value!r}") from exc
    return str(value)


def _from_file(path: Union[str, Path]) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as fp:
            data = yaml.safe_load(fp) or {}
    except OSError as exc:
        raise ConfigError(f"cannot read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a mapping at the top level")
    unknown = sorted(set(data) - set(_FIELD_TYPES))
    if unknown:
        raise ConfigError(f"{path}: unknown configuration keys: {', '.join(unknown)}")
    return {key: _coerce(key, value) for key, value in data.items()}


def _from_environ(environ: Mapping[str, str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    api_key = environ.get("MORPHOS_API_KEY") or environ.get("GEMINI_API_KEY")
    if api_key:
        values["api_key"] = api_key
    if environ.get("MORPHOS_BASE_URL"):
        values["base_url"] = environ["MORPHOS_BASE_URL"]
    model = environ.get("MORPHOS_MODEL")
    if model:
        if model in KNOWN_MODELS:
            values["model"] = model
        else:
            logger.warning("unknown model %r in MORPHOS_MODEL, using %s", model, DEFAULT_MODEL)
            values["model"] = DEFAULT_MODEL
    if environ.get("MORPHOS_TIMEOUT"):
        values["timeout_seconds"] = _coerce("timeout_seconds", environ["MORPHOS_TIMEOUT"])
    return values


def load_config(path: Optional[Union[str, Path]] = None,
                environ: Optional[Mapping[str, str]] = None) -> MorphosConfig:
    """Build a configuration from defaults, ``path`` and the environment."""
    config = MorphosConfig()
    if path is not None:
        config = replace(config, **_from_file(path))
    config = replace(config, **_from_environ(os.environ if environ is None else environ))
    config.budget()
    if config.retry_ceiling < 1:
        raise ConfigError("retry_ceiling must be at least 1")
    if config.debounce_seconds < 0:
        raise ConfigError("debounce_seconds must not be negative")
    return config


__all__ = ["MorphosConfig", "load_config"]

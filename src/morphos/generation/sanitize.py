"""Clean up and sanity-check program text returned by the generator."""

import re
from typing import Optional

CODE_START_MARKER = "// --- CODE START ---"
MAX_PROMPT_LENGTH = 1000
MAX_CODE_LENGTH = 50_000

_FENCE_OPEN = re.compile(r"```(?:javascript|js|jscad)?[ \t]*\n?", re.IGNORECASE)
_FENCE_CLOSE = re.compile(r"```\s*$")
_SCRIPT_TAG = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_JS_URL = re.compile(r"javascript:", re.IGNORECASE)
_INLINE_HANDLER = re.compile(r"\bon\w+\s*=", re.IGNORECASE)


class InvalidResponseError(ValueError):
    """The generator answered with text that cannot be a program."""
    pass


class InvalidPromptError(ValueError):
    """The natural-language request is empty or unusable."""
    pass


def extract_code(text: str) -> str:
    """Drop any analysis before the code marker and strip markdown fences."""
    if CODE_START_MARKER in text:
        text = text.split(CODE_START_MARKER, 1)[1]
    text = _FENCE_OPEN.sub("", text)
    text = _FENCE_CLOSE.sub("", text)
    return text.strip()[:MAX_CODE_LENGTH]


def validate_code(code: str) -> str:
    """Structural checks that catch truncated or non-code answers early."""
    if not code or not code.strip():
        raise InvalidResponseError("Generated code is empty")
    if "main" not in code:
        raise InvalidResponseError("Code missing main() function")
    if "return" not in code:
        raise InvalidResponseError("Code missing return statement")
    opened, closed = code.count("{"), code.count("}")
    if opened != closed:
        raise InvalidResponseError(f"Unbalanced braces ({opened} opening, {closed} closing)")
    return code


def sanitize_response(text: Optional[str]) -> str:
    """Extract and validate the program from a raw generator answer."""
    return validate_code(extract_code(text or ""))


def sanitize_prompt(prompt: Optional[str], max_length: int = MAX_PROMPT_LENGTH) -> str:
    """Strip markup from a user request and bound its length."""
    if prompt is None:
        raise InvalidPromptError("Invalid or empty prompt")
    cleaned = _SCRIPT_TAG.sub("", prompt)
    cleaned = _JS_URL.sub("", cleaned)
    cleaned = _INLINE_HANDLER.sub("", cleaned)
    cleaned = cleaned.strip()[:max_length]
    if not cleaned:
        raise InvalidPromptError("Invalid or empty prompt")
    return cleaned


__all__ = [
    "CODE_START_MARKER",
    "MAX_PROMPT_LENGTH",
    "InvalidResponseError",
    "InvalidPromptError",
    "extract_code",
    "validate_code",
    "sanitize_response",
    "sanitize_prompt",
]

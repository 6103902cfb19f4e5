"""Generation collaborator: prompts, response clean-up and the API client."""

from .prompts import GenerationRequest, build_messages, build_prompt
from .sanitize import (
    InvalidPromptError,
    InvalidResponseError,
    extract_code,
    sanitize_prompt,
    sanitize_response,
    validate_code,
)
from .client import (
    GenerationClient,
    OpenAIGenerationClient,
    RateLimiter,
    classify_collaborator_error,
)

__all__ = [
    "GenerationRequest",
    "build_messages",
    "build_prompt",
    "InvalidPromptError",
    "InvalidResponseError",
    "extract_code",
    "sanitize_prompt",
    "sanitize_response",
    "validate_code",
    "GenerationClient",
    "OpenAIGenerationClient",
    "RateLimiter",
    "classify_collaborator_error",
]

"""Error taxonomy for the pattern engine.

Named separately from pydantic's ``ValidationError``; import this module's
``ValidationError`` explicitly where both are in scope.
"""

from typing import Any


class PatternEngineError(Exception):
    """Base class for pattern engine failures."""


class ValidationError(PatternEngineError):
    """Malformed input: unknown field, empty value, non-compiling pattern."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class InsufficientDataError(PatternEngineError):
    """Synthesis attempted before the field has enough unspent corrections."""

    def __init__(self, field_name: str, count: int, required: int):
        super().__init__(
            f"Not enough corrections for {field_name} ({count}/{required})"
        )
        self.field_name = field_name
        self.count = count
        self.required = required


class SynthesisError(PatternEngineError):
    """The generative service failed or returned output we could not parse.

    ``partial_candidates`` holds whatever was recovered before the failure.
    """

    def __init__(self, message: str, partial_candidates: list[Any] | None = None):
        super().__init__(message)
        self.partial_candidates = partial_candidates or []


class RegistryError(PatternEngineError):
    """Registry write could not be applied consistently."""


class PatternNotFoundError(PatternEngineError):
    """No deployed pattern with the requested id."""

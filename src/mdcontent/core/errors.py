"""Content engine error taxonomy"""

from pathlib import Path
from typing import Iterable


class ContentError(Exception):
    """Base class; `code` is stable for programmatic handling."""
    code = "CONTENT_ERROR"


class CompileError(ContentError):
    """A source file could not be turned into an artifact (bad frontmatter, transform failure)."""
    code = "CONTENT_COMPILE_ERROR"

    def __init__(self, path: Path | str, cause: Exception):
        self.path = str(path)
        self.cause = cause
        super().__init__(f"Failed to compile {self.path}: {cause}")


class NotFoundError(ContentError, KeyError):
    """Requested slug is not among the known content keys."""
    code = "CONTENT_NOT_FOUND"

    def __init__(self, slug: str, available: Iterable[str]):
        self.slug = slug
        self.available = sorted(available)
        super().__init__(f"Content not found: {slug}. Available: {', '.join(self.available) or '(none)'}")

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.args[0]


class UnsupportedOperationError(ContentError, NotImplementedError):
    """Operation has no meaning for this provider variant."""
    code = "CONTENT_UNSUPPORTED"

    def __init__(self, operation: str, provider: str, reason: str = ""):
        self.operation = operation
        self.provider = provider
        detail = f" - {reason}" if reason else ""
        super().__init__(f"{operation} not supported by {provider}{detail}")

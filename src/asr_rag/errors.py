"""Error taxonomy for asr-rag.

Every failure that can abort a command is one of the exceptions below.
Stage-level code raises them, the pipeline tags them with the stage
they escaped from, and the CLI prints a single diagnostic line.

No call is ever retried: a failed external call aborts the whole
invocation.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from asr_rag.logging import get_logger

logger = get_logger(__name__)


class ErrorCategory(str, Enum):
    """Categories of errors for reporting."""

    TRANSPORT = "transport"  # Could not reach the service
    REMOTE_STATUS = "remote_status"  # Service answered with a failure status
    DECODE = "decode"  # Response body had the wrong shape
    EMPTY_RESULT = "empty_result"  # Call returned no items
    VALIDATION = "validation"  # Bad caller input
    CONFIGURATION = "configuration"  # Bad config or corpus file
    RESOURCE = "resource"  # Missing file or binary
    INTERNAL = "internal"


class Stage(str, Enum):
    """Pipeline stages used to tag errors as they propagate."""

    RECORD = "record"
    TRANSCRIBE = "transcribe"
    EMBED = "embed"
    ENSURE_COLLECTION = "ensure_collection"
    UPSERT = "upsert"
    RETRIEVE = "retrieve"
    CORRECT = "correct"


class AsrRagError(Exception):
    """Base exception for asr-rag errors.

    Attributes:
        message: Human-readable error message
        category: Error category for reporting
        context: Additional context information
        stage: Pipeline stage the error escaped from, once tagged
    """

    category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        context: dict | None = None,
        stage: Stage | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.stage = stage

    def __str__(self) -> str:
        if self.context:
            return f"{self.message} (context: {self.context})"
        return self.message


class TransportError(AsrRagError):
    """Network or connection failure reaching an external service."""

    category = ErrorCategory.TRANSPORT


class RemoteStatusError(AsrRagError):
    """External service was reachable but returned a non-success status.

    Attributes:
        status: Status code reported by the service
        body: Raw response body, kept for diagnostics
    """

    category = ErrorCategory.REMOTE_STATUS

    def __init__(
        self,
        message: str,
        status: int | None = None,
        body: str = "",
        context: dict | None = None,
    ):
        super().__init__(message, context)
        self.status = status
        self.body = body


class CollectionNotFoundError(RemoteStatusError):
    """The target collection does not exist in the vector store."""

    def __init__(self, collection: str, context: dict | None = None):
        super().__init__(
            f"Collection '{collection}' not found; run 'asr-rag seed' first",
            status=404,
            context=context,
        )
        self.collection = collection


class DecodeError(AsrRagError):
    """Response body did not match the expected structure."""

    category = ErrorCategory.DECODE


class EmptyResultError(AsrRagError):
    """A call that must return at least one item returned none."""

    category = ErrorCategory.EMPTY_RESULT


class ValidationError(AsrRagError):
    """Malformed caller input.

    Examples: non-numeric seconds, vector of the wrong dimensionality.
    """

    category = ErrorCategory.VALIDATION


class ConfigurationError(AsrRagError):
    """Config or corpus file is missing or malformed."""

    category = ErrorCategory.CONFIGURATION


class ResourceError(AsrRagError):
    """Local resource not found or unusable.

    Examples: missing WAV file, `arecord` not installed.
    """

    category = ErrorCategory.RESOURCE


class StageContext:
    """Context manager that tags errors with the stage they escaped from.

    The innermost stage wins: an error already carrying a stage keeps it.
    Errors are logged and re-raised, never suppressed.

    Example:
        with StageContext(Stage.EMBED):
            vector = embedder.embed(text)
    """

    def __init__(self, stage: Stage, **context: Any):
        self.stage = stage
        self.context = context

    def __enter__(self) -> "StageContext":
        logger.debug(f"Entering stage: {self.stage.value}", extra=self.context)
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: Any) -> bool:
        if isinstance(exc_val, AsrRagError):
            if exc_val.stage is None:
                exc_val.stage = self.stage
            logger.info(
                f"Stage {self.stage.value} failed: {exc_val.message}",
                extra={
                    "stage": self.stage.value,
                    "error_type": type(exc_val).__name__,
                    **self.context,
                },
            )
        return False


def format_error_for_display(error: BaseException) -> str:
    """Format an error as a single line for the error stream.

    Args:
        error: Error to format

    Returns:
        Human-readable one-line message
    """
    if isinstance(error, AsrRagError):
        prefix = f"{error.stage.value} failed: " if error.stage else ""
        message = str(error).replace("\n", " ")
        return f"{prefix}[{error.category.value}] {message}"

    return f"[error] {type(error).__name__}: {error}"

"""
Exception hierarchy for chunklab.

Every error raised by the package derives from ChunklabError so callers
(the CLI, notebooks) can catch one type. Errors that reach a user carry
two strings: a short human-readable message and the raw technical detail.

Error families:
    - ValidationError: bad input, rejected before any work starts
    - EmbeddingError: the embedding collaborator failed; carries a typed cause
    - StorageError: a file/collection/experiment store call failed
    - CollectionIntegrityError: a Collection violates its invariants
"""

import traceback
from dataclasses import dataclass
from enum import Enum
from typing import Any


class EmbeddingErrorCause(str, Enum):
    """
    Why an embedding call failed.

    The embedder decides the cause from the exception types it knows
    about, so the pipeline never has to inspect error text.
    """

    CONNECTIVITY = "connectivity"
    ACCELERATION = "acceleration"
    GENERIC = "generic"


# Human-readable message per failure category
CAUSE_MESSAGES: dict[EmbeddingErrorCause, str] = {
    EmbeddingErrorCause.CONNECTIVITY: (
        "Failed to load the embedding model. Check your internet connection."
    ),
    EmbeddingErrorCause.ACCELERATION: (
        "The embedding model could not use the available hardware. "
        "Try a smaller batch or a different device."
    ),
    EmbeddingErrorCause.GENERIC: "An error occurred while vectorizing this document.",
}


class ChunklabError(Exception):
    """Base class for all chunklab errors."""


class ValidationError(ChunklabError):
    """Input was rejected before any work was done."""


class StorageError(ChunklabError):
    """A persistence call failed. In-memory state is left untouched."""


class CollectionIntegrityError(ChunklabError):
    """A Collection's chunks, vectors and chunk_count disagree."""


class EmbeddingError(ChunklabError):
    """
    The embedding collaborator failed.

    Attributes:
        cause: Failure category chosen by the embedder
        detail: Raw technical detail (exception name, message, traceback)
    """

    def __init__(
        self,
        message: str,
        cause: EmbeddingErrorCause = EmbeddingErrorCause.GENERIC,
        detail: str = "",
    ):
        super().__init__(message)
        self.cause = cause
        self.detail = detail or message


def format_technical(exc: BaseException) -> str:
    """Render '<Name>: <message>' followed by the traceback, if any."""
    head = f"{type(exc).__name__}: {exc}"
    if isinstance(exc, EmbeddingError) and exc.detail and exc.detail != str(exc):
        head = f"{head}\n{exc.detail}"
    tb = "".join(traceback.format_tb(exc.__traceback__)) if exc.__traceback__ else ""
    return f"{head}\n{tb}".rstrip()


@dataclass(frozen=True)
class ErrorInfo:
    """
    A user-facing error record.

    Attributes:
        message: Short human-readable explanation
        technical: Raw detail preserved for diagnostics
        cause: Failure category
    """

    message: str
    technical: str = ""
    cause: EmbeddingErrorCause = EmbeddingErrorCause.GENERIC

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ErrorInfo":
        """Classify an exception raised while processing one task."""
        cause = getattr(exc, "cause", EmbeddingErrorCause.GENERIC)
        if not isinstance(cause, EmbeddingErrorCause):
            cause = EmbeddingErrorCause.GENERIC
        return cls(
            message=CAUSE_MESSAGES[cause],
            technical=format_technical(exc),
            cause=cause,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "technical": self.technical,
            "cause": self.cause.value,
        }

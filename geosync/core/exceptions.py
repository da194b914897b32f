"""Unified exception taxonomy.

Every domain exception inherits from ``GeoSyncError`` and carries
structured context fields so the rendering layer can decide how to
surface a failure (transient banner, retry affordance, hard error).

Taxonomy categories
-------------------
- ``ValidationError``   — input violations (bad documents, bad coordinates).
- ``TransientError``    — temporary failures (network, positioning).
- ``PermanentError``    — unrecoverable failures (closed store, bad config).

Nothing in the package retries automatically. ``retryable`` tells the UI
whether offering a user-initiated retry makes sense.
"""

from __future__ import annotations


class GeoSyncError(Exception):
    """Base exception for all geosync errors.

    Attributes:
        message: Human-readable error description.
        stage: Component where the error occurred
            (e.g. ``"parse_document"``, ``"fetch"``).
        code: Machine-readable error code (e.g. ``"DOCUMENT_MALFORMED"``).
        retryable: Whether a user-initiated retry may succeed.
    """

    #: Default stage for subclasses (override via class attribute or kwarg).
    default_stage: str = ""
    #: Default code for subclasses (override via class attribute or kwarg).
    default_code: str = ""

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        retryable: bool = False,
    ) -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.retryable = retryable
        super().__init__(message)

    @property
    def category(self) -> str:
        """Return the error category based on concrete class."""
        if isinstance(self, ValidationError):
            return "validation"
        if isinstance(self, TransientError):
            return "transient"
        if isinstance(self, PermanentError):
            return "permanent"
        return "transient" if self.retryable else "permanent"

    def to_error_dict(self) -> dict[str, object]:
        """Return a structured error payload with stable keys."""
        return {
            "category": self.category,
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "retryable": self.retryable,
        }


# ---------------------------------------------------------------------------
# Category base classes
# ---------------------------------------------------------------------------


class ValidationError(GeoSyncError):
    """Input or domain-model validation failure. Never retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class TransientError(GeoSyncError):
    """Temporary failure that may succeed when the user tries again."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]


class PermanentError(GeoSyncError):
    """Unrecoverable failure. Not retryable."""

    def __init__(self, message: str = "", **kwargs: object) -> None:
        kwargs.setdefault("retryable", False)
        super().__init__(message, **kwargs)  # type: ignore[arg-type]

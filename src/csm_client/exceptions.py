"""Exception hierarchy shared by the CSM client and the node workflows."""

from typing import List, Optional, Sequence


class CSMError(Exception):
    """Base class for every error raised by csm_client."""


class ConfigNotFoundError(CSMError):
    """Custom exception for configuration not found errors."""
    pass


class ValidationError(CSMError):
    """Raised when the requested target nodes are not acceptable."""

    def __init__(self, message: str, nodes: Optional[Sequence[str]] = None):
        super().__init__(message)
        self.nodes: List[str] = list(nodes or [])


class NotFoundError(CSMError):
    """Raised when a group, configuration, image or boot record does not exist."""


class ConfirmationDeclined(CSMError):
    """The operator answered no at the confirmation prompt. Not a failure."""


class InvalidTransitionError(CSMError):
    """Raised when a workflow tries to move backwards in its state machine."""


class UpstreamError(CSMError):
    """Non-success response from one of the backend services."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        detail: Optional[str] = None,
        service: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail
        self.service = service

    def __str__(self) -> str:
        base = super().__str__()
        if self.detail and self.detail not in base:
            return f"{base}: {self.detail}"
        return base


class MalformedResponseError(UpstreamError):
    """Backend answered successfully but the payload is missing expected fields."""


class PartialApplyError(UpstreamError):
    """A later stage failed after earlier effects were already committed."""

    def __init__(self, cause: UpstreamError, committed: Sequence[str]):
        super().__init__(
            str(cause),
            status_code=cause.status_code,
            detail=cause.detail,
            service=cause.service,
        )
        self.cause = cause
        self.committed: List[str] = list(committed)


class StoragePathError(ValueError):
    """Raised when an object storage path does not match the expected layout."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Unrecognised storage path '{path}': {reason}")
        self.path = path
        self.reason = reason

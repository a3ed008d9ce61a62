"""Exception taxonomy shared by ingestion, embedding and retrieval."""


class GitaRagError(Exception):
    """Base class for all application errors."""


class InputAbsentError(GitaRagError, ValueError):
    """No source text or no question was supplied."""


EmptyInputError = InputAbsentError


class BackendError(GitaRagError):
    """A remote collaborator (embedding, vector DB, LLM) failed."""


class BackendTransientError(BackendError):
    """Network reset, timeout, rate limit or 5xx: worth retrying."""


class BackendUnavailableError(BackendTransientError):
    """A transient failure persisted through every retry attempt."""

    def __init__(self, message: str, attempts: int) -> None:
        super().__init__(message)
        self.attempts = attempts


class BackendPermanentError(BackendError):
    """Malformed request, auth failure or other non-retryable 4xx."""


class DataShapeInvalidError(GitaRagError):
    """A unit of data has the wrong shape and must be dropped."""


class DimensionMismatchError(DataShapeInvalidError):
    """An embedding vector does not have the configured dimension."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Expected vector of dimension {expected}, got {actual}")
        self.expected = expected
        self.actual = actual

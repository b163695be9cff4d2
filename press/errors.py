class PressError(Exception):
    """Base class for every error press reports to the user."""


class PathNotFound(PressError):
    def __init__(self, path: str, message: str | None = None):
        self.path = path
        super().__init__(message or f"Path not found: {path}")


class FileReadError(PressError):
    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Could not read {path}: {reason}")


class ApiError(PressError):
    def __init__(self, message: str, *, status_code: int | None = None, chunk_index: int | None = None):
        self.status_code = status_code
        self.chunk_index = chunk_index
        super().__init__(message)


class ApiTransientError(ApiError):
    """Network failure or retryable status; the same payload may be sent again."""


class ApiFatalError(ApiError):
    """Non-retryable status or malformed body."""


class WriteError(PressError):
    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Could not write {path}: {reason}")


class ConfigError(PressError):
    pass


class RollbackError(PressError):
    pass

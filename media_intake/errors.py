from typing import Optional


class MediaIntakeError(Exception):
    """Base class for failures that end an upload or retrieval request."""

    status_code = 500


class MissingFile(MediaIntakeError):
    status_code = 400

    def __init__(self) -> None:
        super().__init__('Missing "file" in form data')


class PayloadTooLarge(MediaIntakeError):
    status_code = 413

    def __init__(self) -> None:
        super().__init__("File too large")


class HashFailure(MediaIntakeError):
    def __init__(self, cause: Optional[BaseException] = None) -> None:
        self.cause = cause
        detail = str(cause) if cause is not None else ""
        message = "Failed to calculate file hash"
        super().__init__(f"{message}: {detail}" if detail else message)


class StorageWriteFailure(MediaIntakeError):
    def __init__(self, key: str, cause: Optional[BaseException] = None) -> None:
        self.key = key
        self.cause = cause
        detail = str(cause) if cause is not None else ""
        if detail:
            message = f"Failed to upload to R2: {detail}"
        else:
            message = "Failed to upload to R2 due to an unknown error"
        super().__init__(message)


class NotFound(MediaIntakeError):
    status_code = 404

    def __init__(self, key: str = "") -> None:
        self.key = key
        super().__init__("Not Found")

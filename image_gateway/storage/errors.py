from botocore.exceptions import ClientError

INTERNAL_ERROR_CODE = 500


class ImageStorageError(Exception):
    """Base exception for image storage errors."""


class ImageNotFoundError(ImageStorageError):
    """The bucket or the requested image does not exist."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class RemoteStorageError(ImageStorageError):
    """
    The object store rejected a request.
    Carries the store's own HTTP status code and message unchanged.
    """

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    @classmethod
    def from_client_error(cls, exc: ClientError) -> "RemoteStorageError":
        error = exc.response.get("Error") or {}
        metadata = exc.response.get("ResponseMetadata") or {}
        status_code = metadata.get("HTTPStatusCode") or INTERNAL_ERROR_CODE
        message = error.get("Message") or error.get("Code") or str(exc)
        return cls(int(status_code), message)

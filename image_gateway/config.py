import os
from dataclasses import dataclass

DOWNLOAD_MODES = ("buffered", "streaming")
DEFAULT_REGION = "us-east-1"
DEFAULT_CHUNK_SIZE = 64 * 1024


class ConfigurationError(ValueError):
    """Raised when the storage settings in the environment are unusable."""


@dataclass(frozen=True)
class StorageSettings:
    """
    Settings for the S3 image gateway.
    Loaded once per process and passed to the storage backend explicitly.
    """

    bucket: str
    region: str = DEFAULT_REGION
    access_key: str | None = None
    secret_key: str | None = None
    endpoint_url: str | None = None
    download_mode: str = "buffered"
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def __post_init__(self) -> None:
        if not self.bucket:
            error_message = "S3_BUCKET must be set to a non-empty bucket name"
            raise ConfigurationError(error_message)
        if self.download_mode not in DOWNLOAD_MODES:
            error_message = f"Unknown download mode: {self.download_mode}"
            raise ConfigurationError(error_message)
        if self.chunk_size <= 0:
            error_message = "Download chunk size must be positive"
            raise ConfigurationError(error_message)

    @property
    def streaming(self) -> bool:
        return self.download_mode == "streaming"

    @classmethod
    def from_env(cls) -> "StorageSettings":
        """
        Build settings from S3_* environment variables.
        Empty credentials are treated as unset so boto3 falls back to its
        default credential chain.
        """
        chunk_size_raw = os.getenv("S3_DOWNLOAD_CHUNK_SIZE", "")
        try:
            chunk_size = int(chunk_size_raw) if chunk_size_raw else DEFAULT_CHUNK_SIZE
        except ValueError as exc:
            error_message = f"Invalid S3_DOWNLOAD_CHUNK_SIZE: {chunk_size_raw}"
            raise ConfigurationError(error_message) from exc
        return cls(
            bucket=os.getenv("S3_BUCKET", "").strip(),
            region=os.getenv("S3_REGION") or DEFAULT_REGION,
            access_key=os.getenv("S3_ACCESS_KEY") or None,
            secret_key=os.getenv("S3_SECRET_KEY") or None,
            endpoint_url=os.getenv("S3_ENDPOINT_URL") or None,
            download_mode=os.getenv("S3_DOWNLOAD_MODE", "buffered").lower(),
            chunk_size=chunk_size,
        )

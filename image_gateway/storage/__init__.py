from .errors import ImageNotFoundError, ImageStorageError, RemoteStorageError
from .image_storage import ImagePayload, ImageStorage, ImageStream
from .s3_storage import S3ImageStorage, create_s3_client

__all__ = [
    "ImageNotFoundError",
    "ImagePayload",
    "ImageStorage",
    "ImageStorageError",
    "ImageStream",
    "RemoteStorageError",
    "S3ImageStorage",
    "create_s3_client",
]

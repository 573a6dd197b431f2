from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from image_gateway.config import StorageSettings
from image_gateway.storage import ImageStorage, S3ImageStorage


@lru_cache
def get_settings() -> StorageSettings:
    """
    Dependency that loads the storage settings from the environment.
    The result is cached, so the environment is read once per process.
    """
    return StorageSettings.from_env()


def get_image_storage(
    settings: Annotated[StorageSettings, Depends(get_settings)],
) -> ImageStorage:
    """
    Dependency that provides the S3 image storage gateway.
    The gateway opens a fresh client per operation, so building it per request
    is cheap.
    """
    return S3ImageStorage(settings)

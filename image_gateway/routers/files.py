import logging
from collections.abc import Callable
from functools import wraps
from typing import Annotated
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import JSONResponse, Response, StreamingResponse
from starlette.status import (
    HTTP_204_NO_CONTENT,
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_500_INTERNAL_SERVER_ERROR,
)

from image_gateway.config import StorageSettings
from image_gateway.deps import get_image_storage, get_settings
from image_gateway.schemas import ErrorResponse
from image_gateway.storage import (
    ImageNotFoundError,
    ImageStorage,
    RemoteStorageError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/files")

ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    HTTP_404_NOT_FOUND: {"model": ErrorResponse},
    HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
}


def handle_storage_errors(func: Callable[..., object]) -> Callable[..., object]:
    """
    Map storage failures to HTTP responses.
    Not-found becomes 404, remote rejections keep the store's status and
    message, anything else is a 500 carrying the exception message.
    """

    @wraps(func)
    def wrapper(*args: object, **kwargs: object) -> object:
        try:
            return func(*args, **kwargs)
        except ImageNotFoundError as exc:
            return JSONResponse(
                status_code=HTTP_404_NOT_FOUND,
                content={"detail": exc.message},
            )
        except RemoteStorageError as exc:
            logger.warning("Object store error %s: %s", exc.status_code, exc.message)
            return JSONResponse(
                status_code=exc.status_code,
                content={"detail": exc.message},
            )
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected error in %s", func.__name__)
            return JSONResponse(
                status_code=HTTP_500_INTERNAL_SERVER_ERROR,
                content={"detail": str(exc)},
            )

    return wrapper


def content_disposition(filename: str) -> str:
    quoted = quote(filename)
    if quoted != filename:
        return f"attachment; filename*=utf-8''{quoted}"
    return f'attachment; filename="{filename}"'


@router.get("", response_model=list[str], responses=ERROR_RESPONSES)
@handle_storage_errors
def list_files(
    storage: Annotated[ImageStorage, Depends(get_image_storage)],
) -> list[str]:
    return storage.list_images()


@router.get("/download/{image_name}", responses=ERROR_RESPONSES)
@handle_storage_errors
def download_file(
    image_name: str,
    storage: Annotated[ImageStorage, Depends(get_image_storage)],
    settings: Annotated[StorageSettings, Depends(get_settings)],
) -> Response:
    """Download the first image whose filename contains image_name."""
    if not image_name.strip():
        return JSONResponse(
            status_code=HTTP_400_BAD_REQUEST,
            content={"detail": "Image name must not be empty"},
        )
    if settings.streaming:
        stream = storage.open_image(image_name)
        return StreamingResponse(
            stream.chunks,
            media_type=stream.content_type,
            headers={"Content-Disposition": content_disposition(stream.filename)},
        )
    payload = storage.download_image(image_name)
    return Response(
        content=payload.content,
        media_type=payload.content_type,
        headers={"Content-Disposition": content_disposition(payload.filename)},
    )


@router.post(
    "",
    status_code=HTTP_204_NO_CONTENT,
    response_class=Response,
    responses=ERROR_RESPONSES,
)
@handle_storage_errors
def upload_file(
    file: Annotated[UploadFile, File(...)],
    storage: Annotated[ImageStorage, Depends(get_image_storage)],
) -> Response:
    storage.upload_image(file.filename or "", file.file, file.content_type)
    return Response(status_code=HTTP_204_NO_CONTENT)

from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass
from typing import BinaryIO


@dataclass(frozen=True)
class ImagePayload:
    """A fully buffered image download."""

    filename: str
    content_type: str
    content: bytes


@dataclass
class ImageStream:
    """An image download whose bytes are read lazily from the store."""

    filename: str
    content_type: str
    chunks: Iterator[bytes]


class ImageStorage(ABC):
    """
    Interface for image storage backends.
    """

    @abstractmethod
    def list_images(self) -> list[str]:
        """
        Return the filenames of all stored images, in the store's listing order.
        """
        error_message = "list_images not implemented"
        raise NotImplementedError(error_message)

    @abstractmethod
    def download_image(self, partial_name: str) -> ImagePayload:
        """
        Return the first image whose filename contains partial_name,
        buffered in memory.
        """
        error_message = "download_image not implemented"
        raise NotImplementedError(error_message)

    @abstractmethod
    def open_image(self, partial_name: str) -> ImageStream:
        """
        Like download_image, but the bytes are streamed from the store.
        """
        error_message = "open_image not implemented"
        raise NotImplementedError(error_message)

    @abstractmethod
    def upload_image(
        self,
        file_name: str,
        stream: BinaryIO,
        content_type: str | None = None,
    ) -> None:
        """
        Store the stream under file_name, overwriting any existing image.
        """
        error_message = "upload_image not implemented"
        raise NotImplementedError(error_message)

import logging
import mimetypes
import posixpath
from collections.abc import Callable, Iterator
from contextlib import ExitStack, contextmanager
from typing import Any, BinaryIO

import boto3
from botocore.exceptions import ClientError

from image_gateway.config import StorageSettings

from .errors import ImageNotFoundError, RemoteStorageError
from .image_storage import ImagePayload, ImageStorage, ImageStream

logger = logging.getLogger(__name__)

# boto3 clients are generated at runtime; there is no static type to point at.
S3Client = Any
ClientFactory = Callable[[StorageSettings], S3Client]

IMAGES_PREFIX = "images"
DEFAULT_CONTENT_TYPE = "application/octet-stream"
BUCKET_MISSING_CODES = ("404", "NoSuchBucket", "NotFound")
# The bucket is there but this client may not use it; later calls report why.
BUCKET_PRESENT_CODES = (
    "403",
    "AccessDenied",
    "Forbidden",
    "301",
    "PermanentRedirect",
)
BUCKET_NOT_FOUND_MESSAGE = "Bucket was not found!"
IMAGE_NOT_FOUND_MESSAGE = "The specified image was not found!"


def create_s3_client(settings: StorageSettings) -> S3Client:
    """Build a new S3 client from explicit settings."""
    session = boto3.session.Session(
        aws_access_key_id=settings.access_key,
        aws_secret_access_key=settings.secret_key,
        region_name=settings.region,
    )
    return session.client("s3", endpoint_url=settings.endpoint_url)


def image_key(file_name: str) -> str:
    return f"{IMAGES_PREFIX}/{file_name}"


class S3ImageStorage(ImageStorage):
    """
    Image storage backed by a single S3 bucket, scoped to the images/ prefix.

    Each call opens its own client and closes it before returning, so the
    instance holds no connection state and is safe to share between requests.
    """

    def __init__(
        self,
        settings: StorageSettings,
        client_factory: ClientFactory = create_s3_client,
    ) -> None:
        self.settings = settings
        self._client_factory = client_factory

    @contextmanager
    def _session(self) -> Iterator[S3Client]:
        client = self._client_factory(self.settings)
        try:
            yield client
        except ClientError as exc:
            raise RemoteStorageError.from_client_error(exc) from exc
        finally:
            client.close()

    def _bucket_exists(self, client: S3Client) -> bool:
        try:
            client.head_bucket(Bucket=self.settings.bucket)
        except ClientError as exc:
            code = (exc.response.get("Error") or {}).get("Code")
            if code in BUCKET_MISSING_CODES:
                return False
            if code in BUCKET_PRESENT_CODES:
                return True
            raise
        return True

    def _require_bucket(self, client: S3Client) -> None:
        if not self._bucket_exists(client):
            raise ImageNotFoundError(BUCKET_NOT_FOUND_MESSAGE)

    def _list_names(self, client: S3Client) -> list[str]:
        # Single page only; continuation is deliberately not followed.
        resp = client.list_objects(Bucket=self.settings.bucket, Prefix=IMAGES_PREFIX)
        if resp.get("IsTruncated"):
            logger.warning(
                "Listing of bucket %s is truncated; only the first page is used",
                self.settings.bucket,
            )
        # A folder placeholder such as "images/" lists as an empty filename.
        return [posixpath.basename(obj["Key"]) for obj in resp.get("Contents", [])]

    def _resolve_key(self, client: S3Client, partial_name: str) -> str:
        self._require_bucket(client)
        match = next(
            (name for name in self._list_names(client) if partial_name in name),
            None,
        )
        if match is None:
            raise ImageNotFoundError(IMAGE_NOT_FOUND_MESSAGE)
        return image_key(match)

    def list_images(self) -> list[str]:
        with self._session() as client:
            self._require_bucket(client)
            names = self._list_names(client)
        logger.info("Listed %d images in bucket %s", len(names), self.settings.bucket)
        return names

    def download_image(self, partial_name: str) -> ImagePayload:
        """
        Resolve partial_name to the first matching image and read it fully.
        Memory use grows with the object size.
        """
        with self._session() as client:
            key = self._resolve_key(client, partial_name)
            obj = client.get_object(Bucket=self.settings.bucket, Key=key)
            body = obj["Body"]
            try:
                content = body.read()
            finally:
                body.close()
        return ImagePayload(
            filename=posixpath.basename(key),
            content_type=obj.get("ContentType") or DEFAULT_CONTENT_TYPE,
            content=content,
        )

    def open_image(self, partial_name: str) -> ImageStream:
        """
        Resolve partial_name and return a lazy chunk iterator over the object.
        The client stays open until the iterator is exhausted or closed.
        """
        with ExitStack() as stack:
            client = stack.enter_context(self._session())
            key = self._resolve_key(client, partial_name)
            obj = client.get_object(Bucket=self.settings.bucket, Key=key)
            session = stack.pop_all()
        return ImageStream(
            filename=posixpath.basename(key),
            content_type=obj.get("ContentType") or DEFAULT_CONTENT_TYPE,
            chunks=self._iter_body(session, obj["Body"]),
        )

    def _iter_body(self, session: ExitStack, body: Any) -> Iterator[bytes]:
        with session:
            try:
                yield from body.iter_chunks(self.settings.chunk_size)
            finally:
                body.close()

    def upload_image(
        self,
        file_name: str,
        stream: BinaryIO,
        content_type: str | None = None,
    ) -> None:
        """
        Upload stream to images/<file_name>, creating the bucket if needed.
        No ACL is sent, so the bucket's defaults apply. Existing objects with
        the same name are overwritten.
        """
        key = image_key(file_name)
        extra_args: dict[str, str] = {}
        content_type = content_type or mimetypes.guess_type(file_name)[0]
        if content_type:
            extra_args["ContentType"] = content_type
        with self._session() as client:
            if not self._bucket_exists(client):
                self._create_bucket(client)
            client.upload_fileobj(
                Fileobj=stream,
                Bucket=self.settings.bucket,
                Key=key,
                ExtraArgs=extra_args,
            )
        logger.info("Uploaded %s to bucket %s", key, self.settings.bucket)

    def _create_bucket(self, client: S3Client) -> None:
        region = client.meta.region_name
        params: dict[str, Any] = {"Bucket": self.settings.bucket}
        # us-east-1 rejects an explicit location constraint
        if region and region != "us-east-1":
            params["CreateBucketConfiguration"] = {"LocationConstraint": region}
        client.create_bucket(**params)
        logger.info("Created bucket %s in %s", self.settings.bucket, region)

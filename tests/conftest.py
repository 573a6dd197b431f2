# pyright: reportUnknownVariableType=false
# pyright: reportUnknownArgumentType=false
# pyright: reportUnknownMemberType=false
import io
import logging
from collections.abc import Generator
from types import SimpleNamespace
from typing import BinaryIO

import pytest
from botocore.exceptions import ClientError
from botocore.response import StreamingBody
from fastapi.testclient import TestClient

from image_gateway.config import StorageSettings
from image_gateway.deps import get_image_storage, get_settings
from image_gateway.main import app
from image_gateway.storage import S3ImageStorage

# Configure basic logging for tests
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)

BUCKET = "photos"


def make_client_error(
    code: str, status_code: int, operation: str, message: str | None = None
) -> ClientError:
    return ClientError(
        {
            "Error": {"Code": code, "Message": message or code},
            "ResponseMetadata": {"HTTPStatusCode": status_code},
        },
        operation,
    )


class FakeS3Client:
    """
    In-memory stand-in for a boto3 S3 client.
    Lists keys in lexicographic order like S3 does and records every call.
    """

    def __init__(self, region: str = "us-east-1") -> None:
        self.meta = SimpleNamespace(region_name=region)
        self.buckets: dict[str, dict[str, tuple[bytes, str | None]]] = {}
        self.calls: list[str] = []
        self.failures: dict[str, Exception] = {}
        self.truncated = False
        self.opened = 0
        self.closed = 0
        self.create_bucket_kwargs: dict[str, object] | None = None
        self.upload_extra_args: dict[str, str] | None = None

    def put(
        self, bucket: str, key: str, data: bytes, content_type: str | None = "image/png"
    ) -> None:
        self.buckets.setdefault(bucket, {})[key] = (data, content_type)

    def _record(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.failures:
            raise self.failures[operation]

    def _bucket(self, name: str, operation: str) -> dict[str, tuple[bytes, str | None]]:
        if name not in self.buckets:
            raise make_client_error(
                "NoSuchBucket", 404, operation, "The specified bucket does not exist"
            )
        return self.buckets[name]

    def head_bucket(self, Bucket: str) -> dict[str, object]:  # noqa: N803
        self._record("head_bucket")
        if Bucket not in self.buckets:
            raise make_client_error("404", 404, "HeadBucket", "Not Found")
        return {}

    def create_bucket(self, **kwargs: object) -> dict[str, object]:
        self._record("create_bucket")
        self.create_bucket_kwargs = kwargs
        bucket = str(kwargs["Bucket"])
        if bucket in self.buckets:
            raise make_client_error(
                "BucketAlreadyOwnedByYou", 409, "CreateBucket", "Bucket already exists"
            )
        self.buckets[bucket] = {}
        return {}

    def list_objects(self, Bucket: str, Prefix: str = "") -> dict[str, object]:  # noqa: N803
        self._record("list_objects")
        objects = self._bucket(Bucket, "ListObjects")
        keys = sorted(key for key in objects if key.startswith(Prefix))
        resp: dict[str, object] = {"IsTruncated": self.truncated}
        if keys:
            resp["Contents"] = [{"Key": key} for key in keys]
        return resp

    def get_object(self, Bucket: str, Key: str) -> dict[str, object]:  # noqa: N803
        self._record("get_object")
        objects = self._bucket(Bucket, "GetObject")
        if Key not in objects:
            raise make_client_error(
                "NoSuchKey", 404, "GetObject", "The specified key does not exist."
            )
        data, content_type = objects[Key]
        resp: dict[str, object] = {"Body": StreamingBody(io.BytesIO(data), len(data))}
        if content_type:
            resp["ContentType"] = content_type
        return resp

    def upload_fileobj(
        self,
        Fileobj: BinaryIO,  # noqa: N803
        Bucket: str,  # noqa: N803
        Key: str,  # noqa: N803
        ExtraArgs: dict[str, str] | None = None,  # noqa: N803
    ) -> None:
        self._record("upload_fileobj")
        self.upload_extra_args = ExtraArgs
        objects = self._bucket(Bucket, "PutObject")
        objects[Key] = (Fileobj.read(), (ExtraArgs or {}).get("ContentType"))

    def close(self) -> None:
        self.closed += 1


@pytest.fixture
def fake_s3() -> FakeS3Client:
    return FakeS3Client()


@pytest.fixture
def settings() -> StorageSettings:
    return StorageSettings(bucket=BUCKET, access_key="key", secret_key="secret")  # noqa: S106


def build_storage(settings: StorageSettings, fake_s3: FakeS3Client) -> S3ImageStorage:
    def factory(_settings: StorageSettings) -> FakeS3Client:
        fake_s3.opened += 1
        return fake_s3

    return S3ImageStorage(settings, client_factory=factory)


@pytest.fixture
def storage(settings: StorageSettings, fake_s3: FakeS3Client) -> S3ImageStorage:
    return build_storage(settings, fake_s3)


@pytest.fixture
def client(
    settings: StorageSettings, storage: S3ImageStorage
) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_image_storage] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()

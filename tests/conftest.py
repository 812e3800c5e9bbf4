"""Pytest configuration and fixtures."""

import hashlib
import logging
import threading
from typing import Any

import pytest
from botocore.exceptions import ClientError, WaiterError

from fs_s3.backends.local import LocalFileBackend
from fs_s3.backends.s3 import S3FileBackend
from fs_s3.service import FileService

TEST_BUCKET = "test-bucket"


class FakeBody:
    """Stands in for botocore's StreamingBody."""

    def __init__(self, data: bytes) -> None:
        self._data = data

    def read(self) -> bytes:
        return self._data


class FakeWaiter:
    """object_exists waiter that checks once instead of polling."""

    def __init__(self, client: "FakeS3Client") -> None:
        self.client = client

    def wait(self, Bucket: str, Key: str) -> None:
        if (Bucket, Key) not in self.client.objects:
            raise WaiterError(
                name="ObjectExists",
                reason="Max attempts exceeded",
                last_response={"Error": {"Code": "404"}},
            )


class FakeS3Client:
    """In-memory stand-in for the boto3 S3 client methods fs_s3 calls.

    Listing is sorted by key like S3 and pages on MaxKeys. The continuation
    token is the last key of the page, so deleting listed objects between
    pages does not make later ones get skipped. Missing objects raise real
    botocore ClientErrors.
    """

    def __init__(self, upload_chunk_size: int = 8) -> None:
        self.objects: dict[tuple[str, str], dict[str, Any]] = {}
        self.list_requests: list[dict[str, Any]] = []
        self.copy_requests: list[dict[str, Any]] = []
        self.upload_chunk_size = upload_chunk_size
        self._lock = threading.Lock()

    @staticmethod
    def _error(code: str, operation: str) -> ClientError:
        return ClientError({"Error": {"Code": code, "Message": "Not Found"}}, operation)

    def _put(self, bucket: str, key: str, data: bytes, extra: dict[str, Any]) -> None:
        with self._lock:
            self.objects[(bucket, key)] = {
                "data": data,
                "etag": f'"{hashlib.md5(data).hexdigest()}"',
                "content_type": extra.get("ContentType", "binary/octet-stream"),
                "acl": extra.get("ACL"),
            }

    def put(self, bucket: str, key: str, data: bytes) -> None:
        """Seed an object directly."""
        self._put(bucket, key, data, {})

    def head_object(self, Bucket: str, Key: str) -> dict[str, Any]:
        obj = self.objects.get((Bucket, Key))
        if obj is None:
            raise self._error("404", "HeadObject")
        return {
            "ETag": obj["etag"],
            "ContentLength": len(obj["data"]),
            "ContentType": obj["content_type"],
        }

    def get_object(self, Bucket: str, Key: str) -> dict[str, Any]:
        obj = self.objects.get((Bucket, Key))
        if obj is None:
            raise self._error("NoSuchKey", "GetObject")
        return {"Body": FakeBody(obj["data"]), "ETag": obj["etag"]}

    def upload_fileobj(
        self,
        Fileobj: Any,
        Bucket: str,
        Key: str,
        ExtraArgs: dict[str, Any] | None = None,
        Callback: Any = None,
    ) -> None:
        data = b""
        while chunk := Fileobj.read(self.upload_chunk_size):
            data += chunk
            if Callback:
                Callback(len(chunk))
        self._put(Bucket, Key, data, ExtraArgs or {})

    def copy_object(self, CopySource: dict[str, str], Bucket: str, Key: str, **kwargs: Any) -> dict:
        self.copy_requests.append({"CopySource": CopySource, "Bucket": Bucket, "Key": Key, **kwargs})
        source = self.objects.get((CopySource["Bucket"], CopySource["Key"]))
        if source is None:
            raise self._error("NoSuchKey", "CopyObject")
        self._put(Bucket, Key, source["data"], {"ContentType": source["content_type"], **kwargs})
        return {}

    def delete_object(self, Bucket: str, Key: str) -> dict:
        with self._lock:
            self.objects.pop((Bucket, Key), None)
        return {}

    def list_objects_v2(
        self,
        Bucket: str,
        Prefix: str = "",
        MaxKeys: int = 1000,
        ContinuationToken: str | None = None,
    ) -> dict[str, Any]:
        self.list_requests.append(
            {"Bucket": Bucket, "Prefix": Prefix, "MaxKeys": MaxKeys, "ContinuationToken": ContinuationToken}
        )
        with self._lock:
            keys = sorted(k for b, k in self.objects if b == Bucket and k.startswith(Prefix))
            if ContinuationToken:
                keys = [k for k in keys if k > ContinuationToken]
            page = keys[:MaxKeys]
            response: dict[str, Any] = {
                "KeyCount": len(page),
                "IsTruncated": len(keys) > MaxKeys,
            }
            if page:
                response["Contents"] = [
                    {
                        "Key": key,
                        "ETag": self.objects[(Bucket, key)]["etag"],
                        "Size": len(self.objects[(Bucket, key)]["data"]),
                    }
                    for key in page
                ]
            if response["IsTruncated"]:
                response["NextContinuationToken"] = page[-1]
        return response

    def generate_presigned_url(
        self,
        ClientMethod: str,
        Params: dict[str, str],
        ExpiresIn: int = 3600,
    ) -> str:
        return (
            f"https://{Params['Bucket']}.s3.example.com/{Params['Key']}"
            f"?X-Amz-Expires={ExpiresIn}&X-Amz-Signature=fake"
        )

    def get_waiter(self, name: str) -> FakeWaiter:
        assert name == "object_exists"
        return FakeWaiter(self)


@pytest.fixture(autouse=True)
def restore_package_logger():
    """Undo configure_logging calls made by a test."""
    package_logger = logging.getLogger("fs_s3")
    level, handlers = package_logger.level, list(package_logger.handlers)
    yield
    package_logger.setLevel(level)
    package_logger.handlers[:] = handlers


@pytest.fixture
def bucket():
    """Name of the bucket used in tests."""
    return TEST_BUCKET


@pytest.fixture
def s3_client():
    """In-memory S3 client."""
    return FakeS3Client()


@pytest.fixture
def s3_backend(s3_client):
    """S3 backend over the in-memory client, with small pages."""
    return S3FileBackend(s3_client, max_list_items_per_page=2)


@pytest.fixture
def local_backend():
    """Local backend with a fast poll period."""
    return LocalFileBackend(poll_period=0.01)


@pytest.fixture
def file_service(s3_backend, local_backend):
    """FileService over both test backends."""
    return FileService(s3_backend, local_backend)


@pytest.fixture
def sample_config_dict():
    """Sample configuration dictionary for testing."""
    return {
        "s3": {
            "endpoint_url": "http://localhost:4569",
            "region_name": "us-east-1",
            "access_key_id": "S3RVER",
            "secret_access_key": "S3RVER",
            "force_path_style": True,
            "max_list_items_per_page": 500,
        },
        "local": {"poll_period_seconds": 0.05},
        "logging": {"level": "DEBUG", "format": "text"},
    }

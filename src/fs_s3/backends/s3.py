"""S3 file storage backend."""

import asyncio
import io
import threading
from collections.abc import AsyncIterator, Callable
from typing import Any

from botocore.exceptions import ClientError

from fs_s3.backends.executor import run_blocking
from fs_s3.identity import body_bytes, mime_type_for, unwrap_etag
from fs_s3.models import (
    ProgressListener,
    S3File,
    ScannedS3File,
    UploadProgress,
    WriteOptions,
    WriteRequest,
)

DEFAULT_CONTENT_TYPE = "application/octet-stream"
DEFAULT_LINK_EXPIRY_SECONDS = 3600
MAX_LIST_ITEMS_PER_PAGE = 10000

NOT_FOUND_CODES = frozenset({"404", "NotFound", "NoSuchKey"})


def is_not_found(error: ClientError) -> bool:
    """Check whether a botocore error means the object does not exist."""
    return error.response.get("Error", {}).get("Code") in NOT_FOUND_CODES


class S3FileBackend:
    """S3 file storage backend.

    Wraps a boto3 S3 client. The client is shared by every operation issued
    through this backend; boto3 clients are safe to use from several threads.
    """

    def __init__(
        self,
        client: Any,
        max_list_items_per_page: int = MAX_LIST_ITEMS_PER_PAGE,
        default_content_type: str = DEFAULT_CONTENT_TYPE,
        link_expiry_seconds: int = DEFAULT_LINK_EXPIRY_SECONDS,
        **kwargs: Any,
    ) -> None:
        """Initialize S3 file backend.

        Args:
            client: A boto3 S3 client
            max_list_items_per_page: MaxKeys for each listing request
            default_content_type: Content type for keys with no known extension
            link_expiry_seconds: Default lifetime of presigned read URLs
            **kwargs: Ignored (for compatibility with other backends)
        """
        self.client = client
        self.max_list_items_per_page = max_list_items_per_page
        self.default_content_type = default_content_type
        self.link_expiry_seconds = link_expiry_seconds

    @staticmethod
    def _location_params(file: S3File) -> dict[str, str]:
        return {"Bucket": file.bucket, "Key": file.key}

    @staticmethod
    def _write_params(options: WriteOptions) -> dict[str, Any]:
        params: dict[str, Any] = {}
        if options.make_public:
            params["ACL"] = "public-read"
        if options.s3_params:
            params.update(options.s3_params)
        return params

    async def scan(self, file: S3File) -> ScannedS3File | None:
        """Head an object. Returns None if it does not exist."""

        def _head() -> dict[str, Any] | None:
            try:
                return self.client.head_object(**self._location_params(file))
            except ClientError as e:
                if is_not_found(e):
                    return None
                raise

        response = await run_blocking(_head)
        if response is None:
            return None

        return ScannedS3File(
            bucket=file.bucket,
            key=file.key,
            md5=unwrap_etag(response["ETag"]),
            size=response["ContentLength"],
            mime_type=mime_type_for(file.key),
        )

    def _to_files(self, bucket: str, response: dict[str, Any]) -> list[ScannedS3File]:
        """Convert a listing response to scanned files, dropping folder markers."""
        return [
            ScannedS3File(
                bucket=bucket,
                key=item["Key"],
                md5=unwrap_etag(item["ETag"]),
                size=item["Size"],
                mime_type=mime_type_for(item["Key"]),
            )
            for item in response.get("Contents", [])
            if not item["Key"].endswith("/")
        ]

    async def list(self, file_or_folder: S3File) -> AsyncIterator[list[ScannedS3File]]:
        """List objects under a prefix, one page per listing request.

        Each page is yielded as soon as it is fetched. The next request is only
        issued once the caller asks for the next page.
        """
        continuation_token: str | None = None
        while True:
            params: dict[str, Any] = {
                "Bucket": file_or_folder.bucket,
                "Prefix": file_or_folder.key,
                "MaxKeys": self.max_list_items_per_page,
            }
            if continuation_token:
                params["ContinuationToken"] = continuation_token

            response = await run_blocking(self.client.list_objects_v2, **params)
            yield self._to_files(file_or_folder.bucket, response)

            continuation_token = response.get("NextContinuationToken")
            if not continuation_token:
                break

    async def read(self, file: S3File) -> bytes:
        """Download the whole object body."""

        def _get() -> bytes:
            response = self.client.get_object(**self._location_params(file))
            return response["Body"].read()

        return await run_blocking(_get)

    def _progress_callback(
        self,
        destination: S3File,
        total: int | None,
        listener: ProgressListener | None,
    ) -> Callable[[int], None] | None:
        """Turn boto3's per-chunk byte counts into cumulative progress events.

        boto3 calls back from its transfer threads, and reports negative
        amounts when a part is retried. Events are handed to the listener on
        the event loop and only when the total moves forward.
        """
        if listener is None:
            return None

        loop = asyncio.get_running_loop()
        lock = threading.Lock()
        loaded = 0
        reported = 0

        def _callback(bytes_transferred: int) -> None:
            nonlocal loaded, reported
            with lock:
                loaded += bytes_transferred
                if loaded <= reported:
                    return
                reported = loaded
                event = UploadProgress(key=destination.key, loaded=loaded, total=total)
                loop.call_soon_threadsafe(listener, event)

        return _callback

    async def write(self, request: WriteRequest, options: WriteOptions | None = None) -> None:
        """Upload a body with a managed (multipart capable) upload."""
        options = options or WriteOptions()
        destination = request.destination
        if not isinstance(destination, S3File):
            raise TypeError(f"S3 backend cannot write to {destination!r}")

        extra_args = {
            **self._write_params(options),
            "ContentType": mime_type_for(destination.key) or self.default_content_type,
        }

        content = body_bytes(request.body)
        fileobj = io.BytesIO(content) if content is not None else request.body
        total = len(content) if content is not None else None
        callback = self._progress_callback(destination, total, options.progress_listener)

        await run_blocking(
            self.client.upload_fileobj,
            fileobj,
            destination.bucket,
            destination.key,
            ExtraArgs=extra_args,
            Callback=callback,
        )

    async def copy(
        self,
        source: S3File,
        destination: S3File,
        options: WriteOptions | None = None,
    ) -> None:
        """Copy an object within S3 without downloading it."""
        options = options or WriteOptions()
        await run_blocking(
            self.client.copy_object,
            CopySource=self._location_params(source),
            **self._location_params(destination),
            **self._write_params(options),
        )

    async def delete(self, file: S3File) -> None:
        """Delete an object."""
        await run_blocking(self.client.delete_object, **self._location_params(file))

    async def get_read_url(self, file: S3File, expires: int | None = None) -> str | None:
        """Get a presigned GET URL. Returns None if the object does not exist."""
        scanned = await self.scan(file)
        if scanned is None:
            return None
        return await self.get_read_url_for_file(scanned, expires)

    async def get_read_url_for_file(self, file: ScannedS3File, expires: int | None = None) -> str:
        """Get a presigned GET URL for an object known to exist."""
        return await run_blocking(
            self.client.generate_presigned_url,
            "get_object",
            Params=self._location_params(file),
            ExpiresIn=self.link_expiry_seconds if expires is None else expires,
        )

    async def wait_for_file_to_exist(self, file: S3File) -> None:
        """Block on the client's object_exists waiter."""
        waiter = self.client.get_waiter("object_exists")
        await run_blocking(waiter.wait, **self._location_params(file))

    def to_location_string(self, file: S3File) -> str:
        """Render as s3://bucket/key."""
        return f"s3://{file.bucket}/{file.key}"

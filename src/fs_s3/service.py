"""FileService: one interface over local files and S3 objects.

Callers hand in ``LocalFile`` or ``S3File`` references and never branch on
the storage kind themselves. Overwrite and skip-same policies are applied
here, before any backend is asked to change anything.
"""

import asyncio
import dataclasses
from collections.abc import AsyncIterator, Awaitable, Iterable
from typing import Any, TypeVar

from fs_s3.backends.local import LocalFileBackend
from fs_s3.backends.s3 import S3FileBackend
from fs_s3.config import FileServiceConfig, create_s3_client
from fs_s3.copy import CopyOrchestrator
from fs_s3.dispatch import contains, normalize, rebase, route
from fs_s3.exceptions import DestinationExistsError, UnsupportedOperationError
from fs_s3.identity import body_md5
from fs_s3.models import (
    AnyFile,
    CopyOperation,
    CopyOptions,
    CopyRequest,
    LocalFile,
    ScannedFile,
    WriteOptions,
    WriteRequest,
)
from fs_s3.observability import OperationContext, Timer, configure_logging, get_logger

T = TypeVar("T")

logger = get_logger(__name__)


async def _settle(aws: Iterable[Awaitable[T]]) -> list[T]:
    """Await every awaitable, then raise the first error if any of them failed."""
    results = await asyncio.gather(*aws, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


class FileService:
    """Read, write, scan, list, copy and delete files on either backend.

    Example:
        service = FileService.from_config(FileServiceConfig.from_file("fs_s3.yaml"))
        scanned = await service.write(
            WriteRequest(destination=S3File("bucket", "reports/a.txt"), body=b"..."),
            WriteOptions(overwrite=True),
        )
        await service.copy(CopyRequest(source=S3File("bucket", "reports"),
                                       destination=LocalFile("/tmp/reports")))
    """

    def __init__(self, s3: S3FileBackend, local: LocalFileBackend | None = None) -> None:
        """Initialize the service.

        Args:
            s3: Backend for S3 references
            local: Backend for local references. Defaults to a LocalFileBackend
                with the default poll period.
        """
        self.s3 = s3
        self.local = local or LocalFileBackend()
        self.copier = CopyOrchestrator(self.s3, self.local)

    @classmethod
    def from_config(
        cls,
        config: FileServiceConfig | None = None,
        client: Any = None,
    ) -> "FileService":
        """Build a service from configuration.

        Also applies ``config.logging`` to the package logger.

        Args:
            config: Service configuration. Defaults are used if omitted.
            client: A pre-authenticated boto3 S3 client. Created from
                ``config.s3`` if omitted.
        """
        config = config or FileServiceConfig()
        configure_logging(config.logging.level, config.logging.format)
        s3 = S3FileBackend(
            client if client is not None else create_s3_client(config.s3),
            max_list_items_per_page=config.s3.max_list_items_per_page,
            default_content_type=config.s3.default_content_type,
            link_expiry_seconds=config.s3.link_expiry_seconds,
        )
        local = LocalFileBackend(poll_period=config.local.poll_period_seconds)
        return cls(s3, local)

    def to_location_string(self, file: AnyFile) -> str:
        """Render a reference as s3://bucket/key or a local path."""
        return route(file, self.s3.to_location_string, self.local.to_location_string)

    async def scan(self, file: AnyFile) -> ScannedFile | None:
        """Get identity metadata for a file. Returns None if it does not exist."""
        return await route(file, self.s3.scan, self.local.scan)

    async def read(self, file: AnyFile) -> bytes | None:
        """Read a whole file. Returns None if it does not exist."""
        scanned = await self.scan(file)
        if scanned is None:
            return None
        return await route(scanned, self.s3.read, self.local.read)

    async def wait_for_file_to_exist(self, file: AnyFile) -> None:
        """Block until a file can be observed.

        S3 uses the client's waiter and its timeout; local files are polled
        without a timeout.
        """
        await route(file, self.s3.wait_for_file_to_exist, self.local.wait_for_file_to_exist)

    async def get_read_url(self, file: AnyFile, expires: int | None = None) -> str | None:
        """Get a presigned read URL for an S3 object. Returns None if it does not exist.

        Raises:
            UnsupportedOperationError: If the file is local
        """

        async def _local(local_file: LocalFile) -> str | None:
            raise UnsupportedOperationError(
                f"Read URLs are only available for S3 files, not {local_file.key}"
            )

        return await route(file, lambda f: self.s3.get_read_url(f, expires), _local)

    async def _skip_or_check_overwrite(
        self,
        destination: AnyFile,
        source_md5: str | None,
        options: WriteOptions,
    ) -> ScannedFile | None:
        """Apply skip-same and overwrite policies to a destination.

        Returns the existing destination when it already holds the source
        content and ``skip_same`` is set. Raises DestinationExistsError when the
        destination exists and ``overwrite`` is not set.
        """
        if options.overwrite and not options.skip_same:
            return None

        existing = await self.scan(destination)
        if existing is None:
            return None
        if options.skip_same and source_md5 is not None and existing.md5 == source_md5:
            return existing
        if not options.overwrite:
            raise DestinationExistsError(self.to_location_string(destination))
        return None

    async def write(
        self,
        request: WriteRequest,
        options: WriteOptions | None = None,
    ) -> ScannedFile | None:
        """Write a body and return the scan of the written file.

        Local parent directories are created as needed. Returns None only if
        the file disappeared again before it could be scanned.

        Raises:
            DestinationExistsError: If the destination exists and
                ``options.overwrite`` is False
        """
        options = options or WriteOptions()
        destination = normalize(request.destination)

        async with OperationContext("write", destination=self.to_location_string(destination)):
            existing = await self._skip_or_check_overwrite(
                destination, body_md5(request.body), options
            )
            if existing is not None:
                logger.debug("Skipped write of identical content")
                return existing

            async def _write_local(file: LocalFile) -> None:
                await self.local.ensure_directory_existence(file)
                await self.local.write(dataclasses.replace(request, destination=file), options)

            with Timer() as timer:
                try:
                    await route(
                        destination,
                        lambda f: self.s3.write(dataclasses.replace(request, destination=f), options),
                        _write_local,
                    )
                except Exception as e:
                    logger.error("Write failed", error=e)
                    raise
            logger.info("Wrote file", duration_ms=timer.duration_ms)

            await self.wait_for_file_to_exist(destination)
            return await self.scan(destination)

    async def _copy_one(
        self,
        source: ScannedFile,
        request: CopyRequest,
        options: CopyOptions,
    ) -> bool:
        """Copy one listed file. Returns False if it was skipped as identical."""
        destination = rebase(source, request.source, request.destination)
        if await self._skip_or_check_overwrite(destination, source.md5, options) is not None:
            logger.debug(
                "Skipped copy of identical content",
                file=self.to_location_string(destination),
            )
            return False

        await self.copier.copy(CopyOperation(source=source, destination=destination), options)
        return True

    async def copy(self, request: CopyRequest, options: CopyOptions | None = None) -> int:
        """Copy a file, or every file under a folder, to a destination.

        Each file keeps its path relative to the source under the destination.
        An S3 source without a trailing slash is treated as a folder, so
        objects that only share its key prefix (``folder.txt`` next to
        ``folder``) are not copied. Files in one listing page are copied
        concurrently. Returns the number of files copied; files skipped as
        identical are not counted.

        Raises:
            DestinationExistsError: If a destination file exists and
                ``options.overwrite`` is False. The rest of that page is still
                attempted and files copied before the error stay copied.
        """
        options = options or CopyOptions()

        async with OperationContext(
            "copy",
            source=self.to_location_string(request.source),
            destination=self.to_location_string(request.destination),
        ):
            copied = 0
            with Timer() as timer:
                try:
                    async for page in self.list(request.source):
                        results = await _settle(
                            self._copy_one(source, request, options)
                            for source in page
                            if contains(request.source, source)
                        )
                        copied += sum(results)
                except Exception as e:
                    logger.error("Copy failed", error=e, count=copied)
                    raise
            logger.info("Copied files", count=copied, duration_ms=timer.duration_ms)
            return copied

    async def delete(self, file_or_folder: AnyFile) -> int:
        """Delete a file, or every file under a folder.

        Objects that only share an S3 folder's key prefix are kept, as in
        ``copy``. Returns the number of files deleted. Empty local directories
        are left in place.
        """
        async with OperationContext("delete", source=self.to_location_string(file_or_folder)):
            deleted = 0
            with Timer() as timer:
                try:
                    async for page in self.list(file_or_folder):
                        doomed = [f for f in page if contains(file_or_folder, f)]
                        await _settle(route(f, self.s3.delete, self.local.delete) for f in doomed)
                        deleted += len(doomed)
                except Exception as e:
                    logger.error("Delete failed", error=e, count=deleted)
                    raise
            logger.info("Deleted files", count=deleted, duration_ms=timer.duration_ms)
            return deleted

    def list(self, file_or_folder: AnyFile) -> AsyncIterator[list[ScannedFile]]:
        """Yield pages of scanned files under a file or folder.

        S3 pages follow the listing's continuation tokens; local folders give
        one page per directory, depth first. Sort downstream if a stable
        order is needed.
        """
        return route(file_or_folder, self.s3.list, self.local.list)

"""Copy strategies for every pair of source and destination backends."""

from collections.abc import Awaitable, Callable
from itertools import product

from fs_s3.backends.local import LocalFileBackend
from fs_s3.backends.s3 import S3FileBackend
from fs_s3.dispatch import classify, normalize
from fs_s3.models import CopyOperation, CopyOptions, FileKind, WriteRequest
from fs_s3.observability import get_logger

logger = get_logger(__name__)


class CopyOrchestrator:
    """Moves one file between any two backends.

    S3 to S3 is a server-side copy. Copies that cross backends read the whole
    source into memory and write it out again; nothing is rolled back if the
    write fails partway.
    """

    def __init__(self, s3: S3FileBackend, local: LocalFileBackend) -> None:
        self.s3 = s3
        self.local = local

    async def copy_s3_to_s3(self, operation: CopyOperation, options: CopyOptions) -> None:
        await self.s3.copy(operation.source, operation.destination, options)

    async def copy_s3_to_local(self, operation: CopyOperation, options: CopyOptions) -> None:
        await self.local.ensure_directory_existence(operation.destination)
        body = await self.s3.read(operation.source)
        await self.local.write(WriteRequest(destination=operation.destination, body=body))

    async def copy_local_to_s3(self, operation: CopyOperation, options: CopyOptions) -> None:
        # Content type, ACL and progress are applied as for any other upload
        body = await self.local.read(operation.source)
        await self.s3.write(WriteRequest(destination=operation.destination, body=body), options)

    async def copy_local_to_local(self, operation: CopyOperation, options: CopyOptions) -> None:
        await self.local.copy(operation.source, operation.destination)

    STRATEGIES: dict[
        tuple[FileKind, FileKind],
        Callable[["CopyOrchestrator", CopyOperation, CopyOptions], Awaitable[None]],
    ] = {
        (FileKind.S3, FileKind.S3): copy_s3_to_s3,
        (FileKind.S3, FileKind.LOCAL): copy_s3_to_local,
        (FileKind.LOCAL, FileKind.S3): copy_local_to_s3,
        (FileKind.LOCAL, FileKind.LOCAL): copy_local_to_local,
    }

    async def copy(self, operation: CopyOperation, options: CopyOptions) -> None:
        """Copy a scanned source file to a destination reference."""
        operation = CopyOperation(
            source=normalize(operation.source),
            destination=normalize(operation.destination),
        )
        route = (classify(operation.source), classify(operation.destination))
        logger.debug(
            "Copying file",
            route=f"{route[0].value}->{route[1].value}",
            file=operation.source.key,
            to=operation.destination.key,
        )
        await self.STRATEGIES[route](self, operation, options)


_missing_routes = set(product(FileKind, FileKind)) - CopyOrchestrator.STRATEGIES.keys()
if _missing_routes:
    raise RuntimeError(f"No copy strategy for routes: {sorted(_missing_routes)}")

"""Thread pool for blocking filesystem and boto3 calls."""

import asyncio
import atexit
import functools
import os
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import Any, TypeVar

T = TypeVar("T")

# Thread pool for blocking I/O - configurable via environment
_max_workers = int(os.environ.get("FS_S3_FILE_WORKERS", "16"))
_executor = ThreadPoolExecutor(max_workers=_max_workers, thread_name_prefix="fs_s3")

# Ensure executor is cleaned up on process exit
atexit.register(_executor.shutdown, wait=False)


async def run_blocking(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a blocking call in the shared thread pool."""
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(_executor, functools.partial(func, *args, **kwargs))

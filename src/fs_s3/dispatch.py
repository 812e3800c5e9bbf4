"""Backend selection and key translation.

``route`` is the only place that decides whether a reference is handled by
the S3 backend or the local one. Every reference handed to a branch has
already been translated into that backend's key format: S3 keys use ``/`` and
never start with it, local keys use the native separator.
"""

import dataclasses
import os
from collections.abc import Callable
from typing import TypeVar, assert_never

from fs_s3.models import AnyFile, FileKind, LocalFile, S3File

T = TypeVar("T")
L = TypeVar("L", bound=LocalFile)
R = TypeVar("R", bound=S3File)

S3_SEPARATOR = "/"


def to_s3_key(key: str) -> str:
    """Convert a key to S3 form. Idempotent."""
    return key.replace(os.sep, S3_SEPARATOR).lstrip(S3_SEPARATOR)


def to_local_key(key: str) -> str:
    """Convert a key to a native path. Idempotent."""
    return os.path.normpath(key.replace(S3_SEPARATOR, os.sep))


def to_s3_file(file: R) -> R:
    """Return the reference with its key in S3 form."""
    key = to_s3_key(file.key)
    return file if key == file.key else dataclasses.replace(file, key=key)


def to_local_file(file: L) -> L:
    """Return the reference with its key as a native path."""
    key = to_local_key(file.key)
    return file if key == file.key else dataclasses.replace(file, key=key)


def route(
    file: AnyFile,
    on_s3: Callable[[S3File], T],
    on_local: Callable[[LocalFile], T],
) -> T:
    """Call exactly one of ``on_s3`` or ``on_local`` and return its result.

    Errors raised by the chosen branch propagate unchanged.
    """
    if isinstance(file, S3File):
        return on_s3(to_s3_file(file))
    elif isinstance(file, LocalFile):
        return on_local(to_local_file(file))
    else:
        assert_never(file)


def classify(file: AnyFile) -> FileKind:
    """Tell which backend owns a reference."""
    return route(file, lambda _: FileKind.S3, lambda _: FileKind.LOCAL)


def normalize(file: AnyFile) -> AnyFile:
    """Translate a reference into its own backend's key format."""
    return route(file, to_s3_file, to_local_file)


def _remainder(file: AnyFile, source_root: AnyFile) -> str:
    """Key of ``file`` relative to ``source_root``, in S3 form.

    Starts with ``/`` when the file sits below the root as a folder and is
    empty when the file is the root itself. Anything else means the file only
    shares a partial key prefix with an S3 root, such as ``folder.txt`` under
    ``folder``.
    """

    def s3_remainder(root: S3File) -> str:
        root_key = root.key.rstrip(S3_SEPARATOR)
        remainder = to_s3_key(file.key)[len(root_key):]
        if not root_key and remainder:
            return S3_SEPARATOR + remainder
        return remainder

    def local_remainder(root: LocalFile) -> str:
        relative = os.path.relpath(to_local_key(file.key), root.key)
        if relative == os.curdir:
            return ""
        return S3_SEPARATOR + relative.replace(os.sep, S3_SEPARATOR)

    return route(source_root, s3_remainder, local_remainder)


def contains(source_root: AnyFile, file: AnyFile) -> bool:
    """Tell whether a listed file is the root itself or sits in the root as a folder."""
    remainder = _remainder(file, source_root)
    return not remainder or remainder.startswith(S3_SEPARATOR)


def rebase(file: AnyFile, source_root: AnyFile, destination_root: AnyFile) -> AnyFile:
    """Map a file found under ``source_root`` to its place under ``destination_root``.

    The part of the file's key below the source root is appended to the
    destination key, so a source that is a single file maps to the destination
    unchanged. The result is a bare reference in the destination backend's
    key format.

    Raises:
        ValueError: If the file is not inside ``source_root``
    """
    if not contains(source_root, file):
        raise ValueError(f"{file.key} is not inside {source_root.key}")
    remainder = _remainder(file, source_root)

    def s3_destination(root: S3File) -> AnyFile:
        key = root.key.rstrip(S3_SEPARATOR) if remainder else root.key
        return to_s3_file(S3File(bucket=root.bucket, key=key + remainder))

    def local_destination(root: LocalFile) -> AnyFile:
        if not remainder:
            return LocalFile(key=root.key)
        relative = to_local_key(remainder.lstrip(S3_SEPARATOR))
        return to_local_file(LocalFile(key=os.path.join(root.key, relative)))

    return route(destination_root, s3_destination, local_destination)

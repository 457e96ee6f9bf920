"""
Safe Archive Extractor

Unpacks an untrusted ZIP byte buffer into in-memory entries. Guards against:
- Zip slip (``..`` segments, absolute and drive-letter paths)
- Entry-count abuse (checked before any entry is read)
- Decompression bombs (running size total enforced while inflating)

Nothing is written to disk. ``sandbox_root`` only anchors the path arithmetic
used for the containment check.
"""

import io
import logging
import os
import posixpath
import re
import zipfile
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from .errors import ExtractionErrorCode, ZipExtractionError

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 10_000
DEFAULT_MAX_TOTAL_BYTES = 500 * 1024 * 1024  # 500 MiB

# Read size used while inflating a member
CHUNK_SIZE = 64 * 1024

_DRIVE_PREFIX = re.compile(r"^[A-Za-z]:")
_SEGMENT_SPLIT = re.compile(r"[\\/]")

_DECOMPRESSION_ERRORS = (
    zipfile.BadZipFile,
    zlib.error,
    EOFError,
    NotImplementedError,
    RuntimeError,  # encrypted members
    OSError,
)


@dataclass(frozen=True)
class ArchiveEntry:
    """A decompressed, non-directory archive member."""

    path: str
    data: bytes
    size: int


class ExtractionLimits(BaseModel):
    """Resource limits applied to a single extraction call."""

    model_config = ConfigDict(frozen=True)

    max_entries: int = Field(default=DEFAULT_MAX_ENTRIES, gt=0)
    max_total_bytes: int = Field(default=DEFAULT_MAX_TOTAL_BYTES, gt=0)


def normalize_entry_path(entry_path: str) -> str:
    """Convert separators to ``/`` and collapse ``.``/``..``/empty segments."""
    path = entry_path.replace("\\", "/")
    normalized = posixpath.normpath(path)
    # normpath keeps a leading "//" intact on POSIX
    return normalized.lstrip("/")


def _is_directory_marker(entry_path: str) -> bool:
    return entry_path.endswith("/") or entry_path.endswith("\\")


def is_path_safe(
    entry_path: str, sandbox_root: Union[str, Path]
) -> Tuple[bool, str]:
    """
    Check whether an archive entry stays inside ``sandbox_root``.

    Args:
        entry_path: Raw entry name as stored in the archive
        sandbox_root: Directory the entry would be extracted under

    Returns:
        Tuple of (is_safe, resolved_absolute_path). The resolved path is empty
        when the raw name is rejected outright.
    """
    segments = _SEGMENT_SPLIT.split(entry_path)
    if ".." in segments:
        return False, ""

    if entry_path.startswith(("/", "\\")) or _DRIVE_PREFIX.match(entry_path):
        return False, ""

    normalized = normalize_entry_path(entry_path)
    resolved_root = os.path.abspath(os.fspath(sandbox_root))
    resolved_entry = os.path.normpath(os.path.join(resolved_root, normalized))

    is_safe = (
        resolved_entry == resolved_root
        or resolved_entry.startswith(resolved_root.rstrip(os.sep) + os.sep)
    )
    return is_safe, resolved_entry


def _open_archive(buffer: bytes) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(io.BytesIO(buffer))
    except (zipfile.BadZipFile, zipfile.LargeZipFile, ValueError, OSError) as e:
        raise ZipExtractionError(
            f"Invalid ZIP file: {e}", ExtractionErrorCode.INVALID_ARCHIVE
        )


def _read_member(
    archive: zipfile.ZipFile,
    info: zipfile.ZipInfo,
    total_bytes: int,
    max_total_bytes: int,
) -> bytes:
    """Inflate one member, enforcing the running total chunk by chunk."""
    chunks = []
    try:
        with archive.open(info) as member:
            while True:
                chunk = member.read(CHUNK_SIZE)
                if not chunk:
                    break
                total_bytes += len(chunk)
                if total_bytes > max_total_bytes:
                    raise ZipExtractionError(
                        f"Total extracted size ({total_bytes / 1024 / 1024:.2f}MB) "
                        f"exceeds maximum allowed size "
                        f"({max_total_bytes / 1024 / 1024:.0f}MB)",
                        ExtractionErrorCode.SIZE_EXCEEDED,
                    )
                chunks.append(chunk)
    except ZipExtractionError:
        raise
    except _DECOMPRESSION_ERRORS as e:
        raise ZipExtractionError(
            f'Failed to extract entry "{info.filename}": {e}',
            ExtractionErrorCode.EXTRACTION_FAILED,
        )
    return b"".join(chunks)


def extract(
    buffer: bytes,
    sandbox_root: Union[str, Path],
    limits: ExtractionLimits = None,
) -> List[ArchiveEntry]:
    """
    Extract every file entry of a ZIP buffer into memory.

    Args:
        buffer: Raw archive bytes
        sandbox_root: Directory used for the path containment check
        limits: Entry count and total size limits (defaults apply when None)

    Returns:
        Entries in archive enumeration order

    Raises:
        ZipExtractionError: On any structural or safety violation. Partial
            results are never returned.
    """
    limits = limits or ExtractionLimits()
    archive = _open_archive(buffer)

    with archive:
        infos = archive.infolist()
        if len(infos) > limits.max_entries:
            logger.warning(
                "Rejecting archive with %d entries (limit %d)",
                len(infos),
                limits.max_entries,
            )
            raise ZipExtractionError(
                f"ZIP contains too many entries ({len(infos)}). "
                f"Maximum allowed: {limits.max_entries}",
                ExtractionErrorCode.TOO_MANY_ENTRIES,
            )

        entries: List[ArchiveEntry] = []
        total_bytes = 0

        for info in infos:
            entry_path = info.filename
            safe, _ = is_path_safe(entry_path, sandbox_root)
            if not safe:
                logger.warning("Zip-slip attempt blocked: %r", entry_path)
                raise ZipExtractionError(
                    f'Zip-slip attack detected: entry path "{entry_path}" '
                    "resolves outside target directory",
                    ExtractionErrorCode.ZIP_SLIP_DETECTED,
                )

            if _is_directory_marker(entry_path):
                continue

            normalized = normalize_entry_path(entry_path)
            if normalized in ("", "."):
                continue

            try:
                data = _read_member(
                    archive, info, total_bytes, limits.max_total_bytes
                )
            except ZipExtractionError as e:
                if e.code is ExtractionErrorCode.SIZE_EXCEEDED:
                    logger.warning("Archive exceeds size limit: %s", e.message)
                raise

            total_bytes += len(data)
            entries.append(
                ArchiveEntry(path=normalized, data=data, size=len(data))
            )

    logger.debug(
        "Extracted %d entries (%d bytes)", len(entries), total_bytes
    )
    return entries

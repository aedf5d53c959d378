"""Line-addressed text splicing and the file patch it drives.

``splice`` is pure: it never touches the filesystem. ``PatchWriter`` owns the
side effects (directory creation, read, overwrite) and serializes patches
that target the same resolved path.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING
import weakref

from mcp_llm.errors import FileAccessError

if TYPE_CHECKING:
    from collections.abc import Sequence

log = logging.getLogger(__name__)


def clamp_line(line_number: int, line_count: int) -> int:
    """Clamp a zero-based insertion point into ``[0, line_count]``."""
    return max(0, min(line_number, line_count))


def splice_lines(
    lines: Sequence[str],
    line_number: int,
    replace_lines: int,
    new_lines: Sequence[str],
) -> tuple[list[str], int]:
    """Insert or replace lines; return the new lines and the clamped offset.

    Out-of-range offsets are corrected, never rejected. A non-positive
    ``replace_lines`` is a pure insertion.
    """
    offset = clamp_line(line_number, len(lines))
    removed = max(0, replace_lines)
    result = list(lines[:offset])
    result.extend(new_lines)
    result.extend(lines[offset + removed :])
    return result, offset


def split_lines(content: str) -> tuple[list[str], str]:
    """Split content into lines and report its line-break convention.

    Empty content has zero lines.
    """
    newline = "\r\n" if "\r\n" in content else "\n"
    if not content:
        return [], newline
    return content.split(newline), newline


def splice(
    existing_content: str,
    line_number: int,
    replace_lines: int,
    new_lines: Sequence[str],
) -> str:
    """Return *existing_content* with *new_lines* spliced in at *line_number*."""
    lines, newline = split_lines(existing_content)
    updated, _ = splice_lines(lines, line_number, replace_lines, new_lines)
    return newline.join(updated)


def resolve_path(
    file_path: str | os.PathLike[str],
    cwd: str | os.PathLike[str] | None = None,
) -> Path:
    """Return *file_path* as an absolute path, relative ones joined to *cwd*."""
    path = Path(file_path)
    if not path.is_absolute():
        path = Path(cwd if cwd is not None else Path.cwd()) / path
    return Path(os.path.normpath(path))


@dataclass(frozen=True)
class FilePatch:
    """One splice request against a file on disk."""

    file_path: Path
    line_number: int
    replace_lines: int
    code_lines: tuple[str, ...]

    @classmethod
    def create(
        cls,
        file_path: str | os.PathLike[str],
        line_number: int,
        replace_lines: int,
        code: str,
        *,
        cwd: str | os.PathLike[str] | None = None,
    ) -> FilePatch:
        """Resolve *file_path* against *cwd* and split *code* into lines."""
        return cls(
            file_path=resolve_path(file_path, cwd),
            line_number=line_number,
            replace_lines=replace_lines,
            code_lines=tuple(code.replace("\r\n", "\n").split("\n")),
        )


@dataclass(frozen=True)
class PatchOutcome:
    """Where a patch landed."""

    file_path: Path
    offset: int
    content: str


def log_path_diagnostics(original: str, resolved: Path) -> None:
    """Log existence and writability of a patch target; never raises."""
    log.info("Original file path: %s", original)
    log.info("Current working directory: %s", Path.cwd())
    log.info("Resolved file path: %s", resolved)
    directory = resolved.parent
    log.info("Directory: %s (exists: %s)", directory, directory.exists())
    if resolved.exists():
        log.info("File exists: true, writable: %s", _writable(resolved))
    else:
        log.info("File exists: false, directory writable: %s", _writable(directory))


def _writable(path: Path) -> bool:
    try:
        return os.access(path, os.W_OK)
    except ValueError:
        # Embedded NUL byte.
        return False


class PatchWriter:
    """Apply FilePatch requests to disk.

    Not transactional: a failed write after a successful read keeps no backup.
    Concurrent patches to one path run one at a time; distinct paths proceed
    concurrently.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[Path, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def lock_for(self, path: Path) -> asyncio.Lock:
        """Return the lock guarding *path*, creating it on first use."""
        lock = self._locks.get(path)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[path] = lock
        return lock

    async def apply(self, patch: FilePatch) -> PatchOutcome:
        """Read, splice and overwrite the patch target."""
        path = patch.file_path
        async with self.lock_for(path):
            try:
                await asyncio.to_thread(path.parent.mkdir, parents=True, exist_ok=True)
            except (OSError, ValueError) as e:
                raise FileAccessError(
                    f"Error creating directory: {e}",
                    path=str(path.parent),
                    operation="mkdir",
                ) from e

            try:
                existing = await asyncio.to_thread(_read_text, path)
            except (OSError, ValueError) as e:
                log.error("Error reading file %s: %s", path, e)
                raise FileAccessError(
                    f"Error reading file: {e}", path=str(path), operation="read"
                ) from e

            lines, newline = split_lines(existing)
            updated, offset = splice_lines(
                lines, patch.line_number, patch.replace_lines, patch.code_lines
            )
            content = newline.join(updated)

            try:
                await asyncio.to_thread(_write_text, path, content)
            except (OSError, ValueError) as e:
                log.error("Error writing to file %s: %s", path, e)
                raise FileAccessError(
                    f"Error writing to file: {e}", path=str(path), operation="write"
                ) from e

        log.info("Patched %s at line %d (%d line(s))", path, offset, len(patch.code_lines))
        return PatchOutcome(file_path=path, offset=offset, content=content)


def _read_text(path: Path) -> str:
    if not path.exists():
        return ""
    with path.open(encoding="utf-8", newline="") as fh:
        return fh.read()


def _write_text(path: Path, content: str) -> None:
    with path.open("w", encoding="utf-8", newline="") as fh:
        fh.write(content)

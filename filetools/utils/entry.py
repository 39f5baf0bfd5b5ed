import os
import logging
import datetime
from dataclasses import dataclass
from typing import List, Literal

from filetools.utils.tree import is_temp_sibling
from filetools.utils.result import FSResult

logger = logging.getLogger(__name__)


def birth_time_ns(stat: os.stat_result) -> int:
    """Creation time in nanoseconds, inode change time where the OS has no birth time."""
    birthtime_ns = getattr(stat, 'st_birthtime_ns', None)
    if birthtime_ns is not None:
        return birthtime_ns
    birthtime = getattr(stat, 'st_birthtime', None)
    if birthtime is not None:
        return int(birthtime * 1_000_000_000)
    return stat.st_ctime_ns


@dataclass(frozen=True)
class FileEntry:
    name: str
    path: str
    type: Literal['file', 'dir']
    size: int
    created_ns: int

    @property
    def created(self) -> datetime.datetime:
        return datetime.datetime.fromtimestamp(self.created_ns / 1_000_000_000)

    @classmethod
    def from_dir_entry(cls, entry: os.DirEntry) -> 'FileEntry':
        stat = entry.stat()
        return cls(
            entry.name,
            os.path.abspath(entry.path),
            'dir' if entry.is_dir() else 'file',
            stat.st_size,
            birth_time_ns(stat)
        )


def scan_entries(path: str) -> FSResult:
    """List immediate children of directory, newest first.

    Hidden temporary siblings of downloads and moves in progress are skipped.

    Parameters
    ----------
    path : str
        Directory path.

    Returns
    -------
    FSResult
        Result whose value is a list of FileEntry, empty on failure.
    """
    entries: List[FileEntry] = []
    try:
        with os.scandir(path) as it:
            for entry in it:
                if is_temp_sibling(entry.name):
                    continue
                try:
                    entries.append(FileEntry.from_dir_entry(entry))
                except OSError as err:
                    logger.debug("Skipped '%s': %s", entry.path, err)
    except OSError as err:
        logger.warning("Failed to list '%s': %s", path, err)
        return FSResult.from_exception(err, path, value=[])
    entries.sort(key=lambda entry: entry.created_ns, reverse=True)
    return FSResult.success(path, entries)

import os
import re
import uuid
import errno
import shutil
import logging
from typing import Tuple

logger = logging.getLogger(__name__)

TEMP_SIBLING = re.compile(r'^\..+\.(part|backup|staging)-[0-9a-f]{8}$')


def temp_sibling(path: str, tag: str) -> str:
    """Hidden unique path next to ``path``, e.g. ``.photo.png.part-1a2b3c4d``."""
    head, tail = os.path.split(os.path.normpath(path))
    return os.path.join(head, f'.{tail}.{tag}-{uuid.uuid4().hex[:8]}')


def is_temp_sibling(name: str) -> bool:
    """Check whether name was made by ``temp_sibling`` for a transfer or move in progress."""
    return TEMP_SIBLING.match(name) is not None


def tree_stats(path: str) -> Tuple[int, int]:
    """Count nodes and bytes of file or directory tree.

    Parameters
    ----------
    path : str
        File or directory path.

    Returns
    -------
    Tuple[int, int]
        Number of nodes below ``path`` (itself excluded for directories)
        and total size of regular files in bytes.
    """
    if not os.path.isdir(path) or os.path.islink(path):
        return 1, os.lstat(path).st_size
    count, size = 0, 0
    for root, dirs, files in os.walk(path):
        count += len(dirs) + len(files)
        for name in files:
            size += os.lstat(os.path.join(root, name)).st_size
    return count, size


def remove(path: str) -> None:
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
    else:
        os.remove(path)


def replace(src_path: str, dst_path: str) -> None:
    """Rename ``src_path`` over ``dst_path`` on the same volume.

    Files go through ``os.replace``. When a directory is involved the old
    destination is renamed aside first and restored if the rename fails.
    Raises ``OSError`` with ``errno.EXDEV`` across volumes.
    """
    if not os.path.lexists(dst_path) or not (os.path.isdir(src_path) or os.path.isdir(dst_path)):
        os.replace(src_path, dst_path)
        return
    backup = temp_sibling(dst_path, 'backup')
    os.rename(dst_path, backup)
    try:
        os.rename(src_path, dst_path)
    except OSError:
        os.rename(backup, dst_path)
        raise
    try:
        remove(backup)
    except OSError as err:
        logger.warning("Left backup '%s' behind: %s", backup, err)


def copy_replace(src_path: str, dst_path: str) -> None:
    """Move across volumes: stage a copy, verify it, swap it in, then drop the source.

    The source is untouched until the destination is in place.
    """
    staging = temp_sibling(dst_path, 'staging')
    try:
        if os.path.isdir(src_path) and not os.path.islink(src_path):
            shutil.copytree(src_path, staging, symlinks=True)
        else:
            shutil.copy2(src_path, staging, follow_symlinks=False)
        if tree_stats(staging) != tree_stats(src_path):
            raise OSError(errno.EIO, 'Staged copy does not match source', src_path)
        replace(staging, dst_path)
    except OSError:
        if os.path.lexists(staging):
            remove(staging)
        raise
    remove(src_path)


def discard(path: str) -> bool:
    """Remove leftover file, logging instead of raising."""
    try:
        if os.path.lexists(path):
            os.remove(path)
    except OSError as err:
        logger.warning("Failed to remove '%s': %s", path, err)
        return False
    return True

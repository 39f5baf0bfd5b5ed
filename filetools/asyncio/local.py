import os
import errno
import asyncio
import logging
import aiofiles
import aioshutil
import aiofiles.os
from typing import Any, AsyncGenerator, Optional
from contextlib import asynccontextmanager

import httpx
import yaml
from tqdm.auto import tqdm

from filetools.asyncio.connector import AsyncConnector
from filetools.utils import tree
from filetools.utils.entry import scan_entries
from filetools.utils.http import content_length
from filetools.utils.names import numbered_name
from filetools.utils.paths import default_root
from filetools.utils.queue import SerialQueue
from filetools.utils.result import FailureCause, FSResult

logger = logging.getLogger(__name__)


class AsyncLocalConnector(AsyncConnector):
    """Async local file system connector.

    Attributes
    ----------
    root : str
        Default base directory.
    chunk_size : int
        Download chunk size in bytes.
    timeout : float
        HTTP timeout in seconds.
    transport : httpx.AsyncBaseTransport, optional
        Custom HTTP transport.
    """

    def __init__(
        self,
        root: Optional[str] = None,
        chunk_size: int = 1024 * 1024,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> None:
        self.root = os.path.abspath(root) if root else default_root()
        self.chunk_size = chunk_size
        self.timeout = timeout
        self.transport = transport
        self._queue = SerialQueue('filetools-list')

    @classmethod
    @asynccontextmanager
    async def connect(cls, **kwargs: Any) -> AsyncGenerator['AsyncLocalConnector', None]:
        """Connects to file system.

        Parameters
        ----------
        **kwargs : Any
            Constructor arguments.

        Yields
        -------
        AsyncLocalConnector
            Class instance
        """
        connector = cls(**kwargs)
        try:
            yield connector
        finally:
            connector.close()

    @classmethod
    def from_yaml(cls, path: str) -> 'AsyncLocalConnector':
        """Creates class instance from configuration path.

        Parameters
        ----------
        path : str
            path to configuration file.

        Returns
        -------
        AsyncLocalConnector
            Class instance.
        """
        with open(path) as f:
            config = yaml.safe_load(f)
        return cls(**(config or {}))

    def close(self) -> None:
        self._queue.shutdown(wait=False)

    def _resolve(self, name: str, base: Optional[str]) -> str:
        base = base if base is not None else self.root
        return os.path.join(base, name) if name else base

    async def _free_path(self, parent: str, name: str, keep_extension: bool = False) -> str:
        index = 1
        candidate = os.path.join(parent, numbered_name(name, index, keep_extension))
        while await self.exists(candidate):
            index += 1
            candidate = os.path.join(parent, numbered_name(name, index, keep_extension))
        return candidate

    async def exists(self, path: str) -> bool:
        return await aiofiles.os.path.exists(path)

    async def is_dir(self, path: str) -> bool:
        return await aiofiles.os.path.isdir(path)

    async def create(self, name: str, base: Optional[str] = None, auto_name: bool = False) -> FSResult:
        path = self._resolve(name, base)
        if await self.exists(path):
            if not auto_name:
                logger.debug("'%s' already exists", path)
                return FSResult.failure(FailureCause.ALREADY_EXISTS, path)
            parent, own_name = os.path.split(os.path.normpath(path))
            path = await self._free_path(parent, own_name)
        try:
            await aiofiles.os.makedirs(path)
        except OSError as err:
            logger.warning("Failed to create '%s': %s", path, err)
            return FSResult.from_exception(err, path)
        logger.debug("Created '%s'", path)
        return FSResult.success(path)

    async def delete(self, name: str, base: Optional[str] = None) -> FSResult:
        path = self._resolve(name, base)
        if not await self.exists(path):
            return FSResult.failure(FailureCause.NOT_FOUND, path)
        try:
            await self._remove(path)
        except OSError as err:
            logger.warning("Failed to delete '%s': %s", path, err)
            return FSResult.from_exception(err, path)
        logger.debug("Deleted '%s'", path)
        return FSResult.success(path)

    async def move(self, old_path: str, new_path: str) -> FSResult:
        if not await self.exists(old_path):
            return FSResult.failure(FailureCause.NOT_FOUND, old_path)
        if os.path.abspath(old_path) == os.path.abspath(new_path):
            return FSResult.success(new_path)
        try:
            try:
                await self._replace(old_path, new_path)
            except OSError as err:
                if err.errno != errno.EXDEV:
                    raise
                logger.debug("'%s' and '%s' are on different volumes, copying", old_path, new_path)
                await self._copy_replace(old_path, new_path)
        except OSError as err:
            logger.warning("Failed to move '%s' to '%s': %s", old_path, new_path, err)
            return FSResult.from_exception(err, new_path)
        logger.debug("Moved '%s' to '%s'", old_path, new_path)
        return FSResult.success(new_path)

    async def rename(self, old_name: str, new_name: str, base: Optional[str] = None) -> FSResult:
        old_path = self._resolve(old_name, base)
        new_path = self._resolve(new_name, base)
        if not await self.exists(old_path):
            return FSResult.failure(FailureCause.NOT_FOUND, old_path)
        if os.path.abspath(old_path) == os.path.abspath(new_path):
            return FSResult.success(new_path)
        if await self.exists(new_path):
            if await self.is_dir(old_path) and await self.is_dir(new_path):
                return await self._merge(old_path, new_path)
            return FSResult.failure(FailureCause.ALREADY_EXISTS, new_path)
        try:
            await aiofiles.os.makedirs(os.path.dirname(os.path.abspath(new_path)), exist_ok=True)
            await aiofiles.os.rename(old_path, new_path)
        except OSError as err:
            if err.errno == errno.EXDEV:
                return await self.move(old_path, new_path)
            logger.warning("Failed to rename '%s' to '%s': %s", old_path, new_path, err)
            return FSResult.from_exception(err, new_path)
        logger.debug("Renamed '%s' to '%s'", old_path, new_path)
        return FSResult.success(new_path)

    async def _merge(self, old_path: str, new_path: str) -> FSResult:
        # Not atomic: a failure midway leaves entries split between both trees.
        old_abs, new_abs = os.path.abspath(old_path), os.path.abspath(new_path)
        if os.path.commonpath([old_abs, new_abs]) == old_abs:
            return FSResult.failure(FailureCause.INVALID_ARGUMENT, new_path)
        try:
            for root, dirs, files in os.walk(old_path):  # TODO: async
                target_root = os.path.join(new_path, os.path.relpath(root, old_path))
                await aiofiles.os.makedirs(target_root, exist_ok=True)
                links = [name for name in dirs if os.path.islink(os.path.join(root, name))]
                for name in files + links:
                    target = os.path.join(target_root, name)
                    if await _lexists(target):
                        raise FileExistsError(errno.EEXIST, 'File exists', target)
                    await aioshutil.move(os.path.join(root, name), target)
            await aioshutil.rmtree(old_path)
        except OSError as err:
            logger.warning("Merging '%s' into '%s' stopped: %s", old_path, new_path, err)
            return FSResult.from_exception(err, new_path)
        logger.debug("Merged '%s' into '%s'", old_path, new_path)
        return FSResult.success(new_path)

    async def scandir(self, path: Optional[str] = None) -> FSResult:
        """List directory content with metadata, newest first.

        Listing runs on the connector's serial queue. Cancelling the caller
        drops a listing that has not started yet.

        Parameters
        ----------
        path : str, optional
            Directory path, connector root if omitted.

        Returns
        -------
        FSResult
            Result whose value is a list of FileEntry, empty on failure.
        """
        path = path or self.root
        if not await self.exists(path):
            await self.create('', path)
        return await asyncio.wrap_future(self._queue.submit(scan_entries, path))

    async def download(
        self,
        remote: Optional[str],
        local_dir: str,
        file_name: str,
        auto_name: bool = False,
        progress: bool = False
    ) -> FSResult:
        """Download remote resource to local file.

        Cancelling the caller stops the transfer, removes the partial file
        and keeps any previous destination file.

        Parameters
        ----------
        remote : str, optional
            Resource URL, failure without error if missing.
        local_dir : str
            Destination directory, created if missing.
        file_name : str
            Destination file name.
        auto_name : bool, default=False
            Pick ``stem(1).ext``, ``stem(2).ext``, ... if name is taken,
            otherwise replace existing file after transfer.
        progress : bool, default=False
            Show progress bar.

        Returns
        -------
        FSResult
            Result with destination path.
        """
        destination = os.path.join(local_dir, file_name)
        if not remote:
            logger.warning("Download of '%s' skipped: no remote location", file_name)
            return FSResult.failure(FailureCause.INVALID_ARGUMENT, destination)
        if auto_name and await self.exists(destination):
            parent, own_name = os.path.split(destination)
            destination = await self._free_path(parent, own_name, keep_extension=True)
        partial = tree.temp_sibling(destination, 'part')
        try:
            await aiofiles.os.makedirs(os.path.dirname(os.path.abspath(destination)), exist_ok=True)
            async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout, follow_redirects=True) as client:
                async with client.stream('GET', remote) as response:
                    response.raise_for_status()
                    async with aiofiles.open(partial, 'wb') as f:
                        with tqdm(
                            total=content_length(response), unit='B', unit_scale=True,
                            desc=os.path.basename(destination), disable=not progress
                        ) as pbar:
                            async for chunk in response.aiter_bytes(self.chunk_size):
                                await f.write(chunk)
                                pbar.update(len(chunk))
            await self._replace(partial, destination)
        except asyncio.CancelledError:
            await self._discard(partial)
            logger.info("Download of '%s' cancelled", remote)
            raise
        except (OSError, httpx.HTTPError, httpx.InvalidURL) as err:
            await self._discard(partial)
            logger.warning("Download of '%s' failed: %s", remote, err)
            return FSResult.from_exception(err, destination)
        logger.debug("Downloaded '%s' to '%s'", remote, destination)
        return FSResult.success(destination)

    @staticmethod
    async def _remove(path: str) -> None:
        if await aiofiles.os.path.isdir(path) and not await aiofiles.os.path.islink(path):
            await aioshutil.rmtree(path)
        else:
            await aiofiles.os.remove(path)

    async def _replace(self, src_path: str, dst_path: str) -> None:
        if not await _lexists(dst_path) or not (
            await aiofiles.os.path.isdir(src_path) or await aiofiles.os.path.isdir(dst_path)
        ):
            await aiofiles.os.replace(src_path, dst_path)
            return
        backup = tree.temp_sibling(dst_path, 'backup')
        await aiofiles.os.rename(dst_path, backup)
        try:
            await aiofiles.os.rename(src_path, dst_path)
        except OSError:
            await aiofiles.os.rename(backup, dst_path)
            raise
        try:
            await self._remove(backup)
        except OSError as err:
            logger.warning("Left backup '%s' behind: %s", backup, err)

    async def _copy_replace(self, src_path: str, dst_path: str) -> None:
        staging = tree.temp_sibling(dst_path, 'staging')
        try:
            if await aiofiles.os.path.isdir(src_path) and not await aiofiles.os.path.islink(src_path):
                await aioshutil.copytree(src_path, staging, symlinks=True)
            else:
                await aioshutil.copy2(src_path, staging, follow_symlinks=False)
            if await asyncio.to_thread(tree.tree_stats, staging) != await asyncio.to_thread(tree.tree_stats, src_path):
                raise OSError(errno.EIO, 'Staged copy does not match source', src_path)
            await self._replace(staging, dst_path)
        except OSError:
            if await _lexists(staging):
                await self._remove(staging)
            raise
        await self._remove(src_path)

    @staticmethod
    async def _discard(path: str) -> None:
        await asyncio.to_thread(tree.discard, path)


async def _lexists(path: str) -> bool:
    return await aiofiles.os.path.exists(path) or await aiofiles.os.path.islink(path)

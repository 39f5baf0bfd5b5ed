import os
import errno
import shutil
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

import httpx
import yaml
from tqdm.auto import tqdm

from filetools.connector import Connector
from filetools.utils import tree
from filetools.utils.entry import scan_entries
from filetools.utils.http import content_length
from filetools.utils.names import numbered_name
from filetools.utils.paths import default_root
from filetools.utils.queue import SerialQueue
from filetools.utils.result import FailureCause, FSResult

logger = logging.getLogger(__name__)


class DownloadCancelled(Exception):
    """Running download stopped through its cancel event."""


class LocalConnector(Connector):
    """Local file system connector.

    Listing runs on a serial background queue, downloads on a small thread
    pool; all other operations block the caller.

    Attributes
    ----------
    root : str
        Default base directory.
    chunk_size : int
        Download chunk size in bytes.
    timeout : float
        HTTP timeout in seconds.
    transport : httpx.BaseTransport, optional
        Custom HTTP transport.
    """

    def __init__(
        self,
        root: Optional[str] = None,
        chunk_size: int = 1024 * 1024,
        timeout: float = 30.0,
        download_workers: int = 4,
        transport: Optional[httpx.BaseTransport] = None
    ) -> None:
        self.root = os.path.abspath(root) if root else default_root()
        self.chunk_size = chunk_size
        self.timeout = timeout
        self.transport = transport
        self._queue = SerialQueue('filetools-list')
        self._downloads = ThreadPoolExecutor(max_workers=download_workers, thread_name_prefix='filetools-download')

    @classmethod
    def from_yaml(cls, path: str) -> 'LocalConnector':
        """Creates class instance from configuration path.

        Parameters
        ----------
        path : str
            path to configuration file.

        Returns
        -------
        LocalConnector
            Class instance.
        """
        with open(path) as f:
            config = yaml.safe_load(f)
        return cls(**(config or {}))

    def __enter__(self) -> 'LocalConnector':
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self._queue.shutdown()
        self._downloads.shutdown(wait=True, cancel_futures=True)

    def _resolve(self, name: str, base: Optional[str]) -> str:
        base = base if base is not None else self.root
        return os.path.join(base, name) if name else base

    def _free_path(self, parent: str, name: str, keep_extension: bool = False) -> str:
        index = 1
        candidate = os.path.join(parent, numbered_name(name, index, keep_extension))
        while self.exists(candidate):
            index += 1
            candidate = os.path.join(parent, numbered_name(name, index, keep_extension))
        return candidate

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def is_dir(self, path: str) -> bool:
        return os.path.isdir(path)

    def create(self, name: str, base: Optional[str] = None, auto_name: bool = False) -> FSResult:
        path = self._resolve(name, base)
        if self.exists(path):
            if not auto_name:
                logger.debug("'%s' already exists", path)
                return FSResult.failure(FailureCause.ALREADY_EXISTS, path)
            parent, own_name = os.path.split(os.path.normpath(path))
            path = self._free_path(parent, own_name)
        try:
            os.makedirs(path)
        except OSError as err:
            logger.warning("Failed to create '%s': %s", path, err)
            return FSResult.from_exception(err, path)
        logger.debug("Created '%s'", path)
        return FSResult.success(path)

    def delete(self, name: str, base: Optional[str] = None) -> FSResult:
        path = self._resolve(name, base)
        if not self.exists(path):
            return FSResult.failure(FailureCause.NOT_FOUND, path)
        try:
            tree.remove(path)
        except OSError as err:
            logger.warning("Failed to delete '%s': %s", path, err)
            return FSResult.from_exception(err, path)
        logger.debug("Deleted '%s'", path)
        return FSResult.success(path)

    def move(self, old_path: str, new_path: str) -> FSResult:
        if not self.exists(old_path):
            return FSResult.failure(FailureCause.NOT_FOUND, old_path)
        if os.path.abspath(old_path) == os.path.abspath(new_path):
            return FSResult.success(new_path)
        try:
            try:
                tree.replace(old_path, new_path)
            except OSError as err:
                if err.errno != errno.EXDEV:
                    raise
                logger.debug("'%s' and '%s' are on different volumes, copying", old_path, new_path)
                tree.copy_replace(old_path, new_path)
        except OSError as err:
            logger.warning("Failed to move '%s' to '%s': %s", old_path, new_path, err)
            return FSResult.from_exception(err, new_path)
        logger.debug("Moved '%s' to '%s'", old_path, new_path)
        return FSResult.success(new_path)

    def rename(self, old_name: str, new_name: str, base: Optional[str] = None) -> FSResult:
        old_path = self._resolve(old_name, base)
        new_path = self._resolve(new_name, base)
        if not self.exists(old_path):
            return FSResult.failure(FailureCause.NOT_FOUND, old_path)
        if os.path.abspath(old_path) == os.path.abspath(new_path):
            return FSResult.success(new_path)
        if self.exists(new_path):
            if self.is_dir(old_path) and self.is_dir(new_path):
                return self._merge(old_path, new_path)
            return FSResult.failure(FailureCause.ALREADY_EXISTS, new_path)
        try:
            os.makedirs(os.path.dirname(os.path.abspath(new_path)), exist_ok=True)
            os.rename(old_path, new_path)
        except OSError as err:
            if err.errno == errno.EXDEV:
                return self.move(old_path, new_path)
            logger.warning("Failed to rename '%s' to '%s': %s", old_path, new_path, err)
            return FSResult.from_exception(err, new_path)
        logger.debug("Renamed '%s' to '%s'", old_path, new_path)
        return FSResult.success(new_path)

    def _merge(self, old_path: str, new_path: str) -> FSResult:
        # Not atomic: a failure midway leaves entries split between both trees.
        old_abs, new_abs = os.path.abspath(old_path), os.path.abspath(new_path)
        if os.path.commonpath([old_abs, new_abs]) == old_abs:
            return FSResult.failure(FailureCause.INVALID_ARGUMENT, new_path)
        try:
            for root, dirs, files in os.walk(old_path):
                target_root = os.path.join(new_path, os.path.relpath(root, old_path))
                os.makedirs(target_root, exist_ok=True)
                links = [name for name in dirs if os.path.islink(os.path.join(root, name))]
                for name in files + links:
                    target = os.path.join(target_root, name)
                    if os.path.lexists(target):
                        raise FileExistsError(errno.EEXIST, 'File exists', target)
                    shutil.move(os.path.join(root, name), target)
            shutil.rmtree(old_path)
        except OSError as err:
            logger.warning("Merging '%s' into '%s' stopped: %s", old_path, new_path, err)
            return FSResult.from_exception(err, new_path)
        logger.debug("Merged '%s' into '%s'", old_path, new_path)
        return FSResult.success(new_path)

    def scandir(
        self,
        path: Optional[str] = None,
        callback: Optional[Callable[[FSResult], None]] = None
    ) -> Future:
        path = path or self.root
        if not self.exists(path):
            self.create('', path)
        return self._queue.submit(scan_entries, path, callback=callback)

    def download(
        self,
        remote: Optional[str],
        local_dir: str,
        file_name: str,
        auto_name: bool = False,
        on_success: Optional[Callable[[str], None]] = None,
        on_failure: Optional[Callable[[Optional[BaseException]], None]] = None,
        cancel_event: Optional[threading.Event] = None,
        progress: bool = False
    ) -> Future:
        """Download remote resource to local file in background.

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
        on_success : Callable, optional
            Receives destination path.
        on_failure : Callable, optional
            Receives transfer error, which may be None.
        cancel_event : threading.Event, optional
            Stops running transfer when set.
        progress : bool, default=False
            Show progress bar.

        Returns
        -------
        Future
            Future of result with destination path.
        """
        if not remote:
            logger.warning("Download of '%s' skipped: no remote location", file_name)
            future: Future = Future()
            future.set_result(FSResult.failure(FailureCause.INVALID_ARGUMENT, os.path.join(local_dir, file_name)))
            if on_failure is not None:
                on_failure(None)
            return future
        future = self._downloads.submit(self._download, remote, local_dir, file_name, auto_name, cancel_event, progress)
        future.add_done_callback(lambda f: _notify(f, on_success, on_failure))
        return future

    def _download(
        self,
        remote: str,
        local_dir: str,
        file_name: str,
        auto_name: bool,
        cancel_event: Optional[threading.Event],
        progress: bool
    ) -> FSResult:
        destination = os.path.join(local_dir, file_name)
        if auto_name and self.exists(destination):
            parent, own_name = os.path.split(destination)
            destination = self._free_path(parent, own_name, keep_extension=True)
        partial = tree.temp_sibling(destination, 'part')
        try:
            os.makedirs(os.path.dirname(os.path.abspath(destination)), exist_ok=True)
            with httpx.Client(transport=self.transport, timeout=self.timeout, follow_redirects=True) as client:
                with client.stream('GET', remote) as response:
                    response.raise_for_status()
                    with open(partial, 'wb') as f, tqdm(
                        total=content_length(response), unit='B', unit_scale=True,
                        desc=os.path.basename(destination), disable=not progress
                    ) as pbar:
                        for chunk in response.iter_bytes(self.chunk_size):
                            if cancel_event is not None and cancel_event.is_set():
                                raise DownloadCancelled(remote)
                            f.write(chunk)
                            pbar.update(len(chunk))
            tree.replace(partial, destination)
        except DownloadCancelled as err:
            tree.discard(partial)
            logger.info("Download of '%s' cancelled", remote)
            return FSResult.failure(FailureCause.CANCELLED, destination, err)
        except (OSError, httpx.HTTPError, httpx.InvalidURL) as err:
            tree.discard(partial)
            logger.warning("Download of '%s' failed: %s", remote, err)
            return FSResult.from_exception(err, destination)
        logger.debug("Downloaded '%s' to '%s'", remote, destination)
        return FSResult.success(destination)


def _notify(
    future: Future,
    on_success: Optional[Callable[[str], None]],
    on_failure: Optional[Callable[[Optional[BaseException]], None]]
) -> None:
    if future.cancelled():
        if on_failure is not None:
            on_failure(None)
        return
    result = future.result()
    if result and on_success is not None:
        on_success(result.path)
    elif not result and on_failure is not None:
        on_failure(result.error)

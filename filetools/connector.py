from abc import ABC, abstractmethod
from concurrent.futures import Future
from typing import Callable, Optional

from filetools.utils.result import FSResult


class Connector(ABC):
    """Abstract class for connector."""

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Check path existence.

        Parameters
        ----------
        path : str
            Absolute path.

        Returns
        -------
        bool
            True if path exists, OS errors count as absence.
        """
        pass

    @abstractmethod
    def is_dir(self, path: str) -> bool:
        """Check that path is an existing directory.

        Parameters
        ----------
        path : str
            Absolute path.

        Returns
        -------
        bool
            True if path is a directory.
        """
        pass

    @abstractmethod
    def create(self, name: str, base: Optional[str] = None, auto_name: bool = False) -> FSResult:
        """Make directory with missing parents.

        Parameters
        ----------
        name : str
            Directory name, empty string means the base itself.
        base : str, optional
            Parent directory, connector root if omitted.
        auto_name : bool, default=False
            Pick ``name(1)``, ``name(2)``, ... if name is taken.

        Returns
        -------
        FSResult
            Result with created directory path.
        """
        pass

    @abstractmethod
    def delete(self, name: str, base: Optional[str] = None) -> FSResult:
        """Delete file or directory recursively.

        Parameters
        ----------
        name : str
            File or directory name, empty string means the base itself.
        base : str, optional
            Parent directory, connector root if omitted.

        Returns
        -------
        FSResult
            Result.
        """
        pass

    @abstractmethod
    def move(self, old_path: str, new_path: str) -> FSResult:
        """Move file or directory, replacing destination.

        Parameters
        ----------
        old_path : str
            Source path.
        new_path : str
            Destination path.

        Returns
        -------
        FSResult
            Result with destination path.
        """
        pass

    @abstractmethod
    def rename(self, old_name: str, new_name: str, base: Optional[str] = None) -> FSResult:
        """Rename file or directory inside common base.

        Parameters
        ----------
        old_name : str
            Current name.
        new_name : str
            New name.
        base : str, optional
            Parent directory, connector root if omitted.

        Returns
        -------
        FSResult
            Result with new path.
        """
        pass

    @abstractmethod
    def scandir(
        self,
        path: Optional[str] = None,
        callback: Optional[Callable[[FSResult], None]] = None
    ) -> Future:
        """List directory content with metadata, newest first.

        Parameters
        ----------
        path : str, optional
            Directory path, connector root if omitted.
        callback : Callable, optional
            Receives the result once listing is done.

        Returns
        -------
        Future
            Future of result whose value is a list of FileEntry.
        """
        pass

    @abstractmethod
    def download(
        self,
        remote: Optional[str],
        local_dir: str,
        file_name: str,
        auto_name: bool = False,
        on_success: Optional[Callable[[str], None]] = None,
        on_failure: Optional[Callable[[Optional[BaseException]], None]] = None
    ) -> Future:
        """Download remote resource to local file.

        Parameters
        ----------
        remote : str, optional
            Resource URL.
        local_dir : str
            Destination directory.
        file_name : str
            Destination file name.
        auto_name : bool, default=False
            Pick ``stem(1).ext``, ``stem(2).ext``, ... if name is taken,
            otherwise replace existing file.
        on_success : Callable, optional
            Receives destination path.
        on_failure : Callable, optional
            Receives transfer error, which may be None.

        Returns
        -------
        Future
            Future of result with destination path.
        """
        pass

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from filetools.utils.result import FSResult


class AsyncConnector(ABC):
    """Abstract class for async connector."""

    @asynccontextmanager
    async def connect(self) -> AsyncGenerator['AsyncConnector', None]:
        """Connects to file system.

        Yields
        -------
        AsyncConnector
            Class instance
        """
        yield self

    @abstractmethod
    async def exists(self, path: str) -> bool:
        pass

    @abstractmethod
    async def is_dir(self, path: str) -> bool:
        pass

    @abstractmethod
    async def create(self, name: str, base: Optional[str] = None, auto_name: bool = False) -> FSResult:
        pass

    @abstractmethod
    async def delete(self, name: str, base: Optional[str] = None) -> FSResult:
        pass

    @abstractmethod
    async def move(self, old_path: str, new_path: str) -> FSResult:
        pass

    @abstractmethod
    async def rename(self, old_name: str, new_name: str, base: Optional[str] = None) -> FSResult:
        pass

    @abstractmethod
    async def scandir(self, path: Optional[str] = None) -> FSResult:
        pass

    @abstractmethod
    async def download(
        self,
        remote: Optional[str],
        local_dir: str,
        file_name: str,
        auto_name: bool = False
    ) -> FSResult:
        pass

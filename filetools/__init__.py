import logging

from filetools.local import DownloadCancelled, LocalConnector
from filetools.asyncio.local import AsyncLocalConnector
from filetools.utils.entry import FileEntry
from filetools.utils.names import extension_of, stem_of
from filetools.utils.result import FailureCause, FSResult

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    'LocalConnector',
    'AsyncLocalConnector',
    'DownloadCancelled',
    'FileEntry',
    'FSResult',
    'FailureCause',
    'extension_of',
    'stem_of',
]

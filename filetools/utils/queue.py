import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class SerialQueue:
    """Single background worker running tasks one at a time in submission order.

    Attributes
    ----------
    name : str
        Worker thread name prefix.
    """

    def __init__(self, name: str = 'filetools') -> None:
        self.name = name
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)

    def submit(
        self,
        fn: Callable[..., Any],
        *args: Any,
        callback: Optional[Callable[[Any], None]] = None
    ) -> Future:
        """Schedule call on the worker.

        Parameters
        ----------
        fn : Callable
            Function to run.
        *args : Any
            Function arguments.
        callback : Callable, optional
            Called once with the result when the task completes. Runs on
            the worker thread and is skipped for cancelled or failed tasks.

        Returns
        -------
        Future
            Pending result.
        """
        future = self._executor.submit(fn, *args)
        if callback is not None:
            future.add_done_callback(lambda f: _deliver(f, callback))
        return future

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=True)


def _deliver(future: Future, callback: Callable[[Any], None]) -> None:
    if future.cancelled():
        logger.debug('Task cancelled, callback skipped')
        return
    if future.exception() is not None:
        logger.error('Task failed: %s', future.exception())
        return
    callback(future.result())

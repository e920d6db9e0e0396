"""
Best-effort file cleanup.

Deleting orphaned or replaced uploads must never block or fail a
request. FileCleanup runs the deletes on its own small thread pool and
reports failures through the log only; callers get a Future they are
free to ignore.
"""

import logging
from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field

from .ports import FileStore

logger = logging.getLogger(__name__)


@dataclass
class FileCleanup:
    file_store: FileStore
    max_workers: int = 2
    _executor: ThreadPoolExecutor = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._executor = ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="file-cleanup"
        )

    def discard(self, urls: Iterable[str | None], reason: str) -> "Future[list[str]] | None":
        """
        Schedule deletion of the given file URLs.

        Returns:
            Future resolving to the URLs that could not be deleted,
            or None when there was nothing to delete
        """
        targets = [url for url in urls if url]
        if not targets:
            return None
        logger.info("Scheduling deletion of %d file(s): %s", len(targets), reason)
        return self._executor.submit(self._delete_all, targets, reason)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _delete_all(self, urls: list[str], reason: str) -> list[str]:
        failed = []
        for url in urls:
            try:
                self.file_store.delete(url)
            except Exception:
                logger.warning("Failed to delete file %s (%s)", url, reason, exc_info=True)
                failed.append(url)
        return failed

"""
Deferred write/delete queue.

Writes and deletes for one attachment are buffered locally and only sent
to the remote store when the host flushes them at save/destroy time.

Flushes are fail-fast: entries go out in the order they were queued, each
one leaves the queue as soon as it succeeds, and the first failure is
raised with the failed entry and everything after it still pending. A
later flush retries exactly what is left.
"""

import logging
from os import PathLike
from typing import IO, Callable, Optional, Union

logger = logging.getLogger(__name__)

LocalFile = Union[IO[bytes], str, PathLike]


class WriteDeleteQueue:
    """
    Pending uploads keyed by style and pending deletes by object path.

    One queue per attachment instance; queues are never shared, so no
    locking is needed.
    """

    def __init__(self) -> None:
        self._writes: dict[str, LocalFile] = {}
        self._deletes: list[str] = []

    def queue_write(self, style: str, local_file: LocalFile) -> None:
        """Stage a local file for `style`, replacing any earlier one."""
        # Re-insert so a superseding write moves to the back of the order
        if self._writes.pop(style, None) is not None:
            logger.debug("Superseded queued write", extra={"style": style})
        self._writes[style] = local_file

    def queue_delete(self, path: str) -> None:
        """Stage an object path for removal. Duplicates are harmless."""
        self._deletes.append(path)

    def pending_write(self, style: str) -> Optional[LocalFile]:
        return self._writes.get(style)

    @property
    def pending_writes(self) -> dict[str, LocalFile]:
        return dict(self._writes)

    @property
    def pending_deletes(self) -> list[str]:
        return list(self._deletes)

    @property
    def is_dirty(self) -> bool:
        return bool(self._writes or self._deletes)

    def flush_writes(self, upload: Callable[[str, LocalFile], None]) -> int:
        """
        Upload every pending write via `upload(style, local_file)`.

        Returns the number of uploads performed.
        """
        count = 0
        for style, local_file in list(self._writes.items()):
            upload(style, local_file)
            # Only drop the entry if it wasn't superseded during the upload
            if self._writes.get(style) is local_file:
                del self._writes[style]
            count += 1
        return count

    def flush_deletes(self, delete: Callable[[str], None]) -> int:
        """
        Delete every pending path via `delete(path)`.

        Returns the number of delete calls made.
        """
        count = 0
        while self._deletes:
            delete(self._deletes[0])
            self._deletes.pop(0)
            count += 1
        return count

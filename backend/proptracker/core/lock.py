"""Cross-process run lock backed by an exclusively-created file."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from proptracker.core.errors import LockHeld

logger = logging.getLogger(__name__)


class RunLock:
    """Exclusive, non-blocking lock tied to one well-known path.

    Usage::

        with RunLock(settings.LOCK_PATH):
            ...

    Acquisition never waits: if the file already exists ``LockHeld`` is raised.
    The file is removed on every exit path, including exceptions.
    """

    def __init__(self, path: str | os.PathLike) -> None:
        self.path = Path(path)
        self._fd: Optional[int] = None

    @property
    def held(self) -> bool:
        return self._fd is not None

    def acquire(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError as exc:
            raise LockHeld(str(self.path)) from exc
        os.write(fd, str(os.getpid()).encode())
        self._fd = fd
        logger.debug("Acquired run lock %s", self.path)

    def release(self) -> None:
        if self._fd is None:
            return
        try:
            os.close(self._fd)
        finally:
            self._fd = None
            try:
                self.path.unlink()
            except FileNotFoundError:
                pass
        logger.debug("Released run lock %s", self.path)

    def __enter__(self) -> "RunLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()

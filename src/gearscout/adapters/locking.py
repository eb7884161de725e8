"""File-based run lock shared by batch runs on one data directory."""

from __future__ import annotations

import json
import os
from datetime import UTC, datetime, timedelta
from logging import getLogger
from typing import TYPE_CHECKING, Literal

from gearscout.domain.errors import RunLockHeldError
from gearscout.domain.model import utcnow

if TYPE_CHECKING:
    from pathlib import Path
    from types import TracebackType

log = getLogger(__name__)

DEFAULT_LOCK_TTL = timedelta(hours=2)


class FileRunLock:
    """Exclusive lock backed by a file created with ``O_EXCL``.

    The file records the holder's pid and acquisition time. A lock older than
    ``ttl`` belongs to a run that died without cleaning up and is reclaimed.
    When the file can't be read its modification time stands in for the
    acquisition time.
    """

    def __init__(self, path: Path, *, ttl: timedelta = DEFAULT_LOCK_TTL) -> None:
        self.path = path
        self.ttl = ttl
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def acquire(self) -> None:
        if self._held:
            raise RunLockHeldError(f"Run lock {self.path} is already held by this process")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self._try_create():
            # an unreadable file may be a lock another run is still writing
            acquired_at = self._read_acquired_at() or self._modified_at()
            if acquired_at is not None and utcnow() - acquired_at < self.ttl:
                raise RunLockHeldError(
                    f"Another run holds {self.path} since {acquired_at.isoformat()}"
                )
            log.warning("Reclaiming stale run lock %s (acquired %s)", self.path, acquired_at)
            self.path.unlink(missing_ok=True)
            if not self._try_create():
                raise RunLockHeldError(f"Another run claimed {self.path} concurrently")
        self._held = True
        log.debug("Acquired run lock %s", self.path)

    def release(self) -> None:
        if not self._held:
            return
        self.path.unlink(missing_ok=True)
        self._held = False
        log.debug("Released run lock %s", self.path)

    def __enter__(self) -> FileRunLock:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        self.release()
        return False

    def _try_create(self) -> bool:
        try:
            fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False
        payload = {"pid": os.getpid(), "acquired_at": utcnow().isoformat()}
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(payload, handle)
        return True

    def _read_acquired_at(self) -> datetime | None:
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
            return datetime.fromisoformat(str(payload["acquired_at"]))
        except (OSError, ValueError, KeyError, TypeError):
            return None

    def _modified_at(self) -> datetime | None:
        try:
            return datetime.fromtimestamp(self.path.stat().st_mtime, tz=UTC)
        except OSError:
            return None

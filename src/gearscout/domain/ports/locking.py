"""Mutual exclusion between batch runs."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from types import TracebackType


@runtime_checkable
class RunLock(Protocol):
    """Exclusive run lock; ``acquire`` raises ``RunLockHeldError`` when taken."""

    def acquire(self) -> None: ...

    def release(self) -> None: ...

    def __enter__(self) -> RunLock: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> bool: ...

"""Scoped ownership of provider handles."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING

from winsched.provider.protocol import ProviderObject

if TYPE_CHECKING:
    from types import TracebackType


class HandleReleasedError(RuntimeError):
    """Raised when a released handle is used again."""


class OwnedHandle:
    """Exclusive owner of one provider reference, released at most once."""

    __slots__ = ("_obj",)

    def __init__(self, obj: ProviderObject) -> None:
        self._obj: ProviderObject | None = obj

    @property
    def obj(self) -> ProviderObject:
        if self._obj is None:
            raise HandleReleasedError("provider handle has already been released")
        return self._obj

    @property
    def released(self) -> bool:
        return self._obj is None

    def release(self) -> None:
        obj, self._obj = self._obj, None
        if obj is not None:
            obj.release()

    def __enter__(self) -> ProviderObject:
        return self.obj

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()


@contextmanager
def acquired(obj: ProviderObject) -> Iterator[ProviderObject]:
    """Yield ``obj`` and release it on every exit path."""

    with OwnedHandle(obj) as owned:
        yield owned


def as_provider_object(value: object, context: str) -> ProviderObject:
    """Narrow a property/method result that must be an object reference."""

    if not isinstance(value, ProviderObject):
        raise TypeError(f"{context}: expected provider object, got {type(value).__name__}")
    return value


__all__ = ["HandleReleasedError", "OwnedHandle", "acquired", "as_provider_object"]

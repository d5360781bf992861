"""
winsched — provider object protocol

File: src/winsched/provider/protocol.py
Last updated: 2026-10-19

Purpose
- The single finite protocol through which the mapping layer reaches the native
  scheduler's dynamically dispatched object model.

What should be included in this file
- ``ProviderObject``: name-keyed property access, method calls, typed sub-object
  creation, collection enumeration, typed-view lookup and explicit release.
- ``ProviderFactory``: callable returning a fresh, unconnected service object.

Functional requirements
- Adapters raise ``winsched.errors.ProviderCallError`` for native failures.
- Objects returned by any call are new references owned by the caller.

Non-functional requirements
- No import of native libraries here; fakes satisfy the protocol structurally.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Protocol, TypeAlias, runtime_checkable


@runtime_checkable
class ProviderObject(Protocol):
    """Reference-counted provider object; release exactly once."""

    def get_property(self, name: str) -> object: ...

    def put_property(self, name: str, value: object) -> None: ...

    def call_method(self, name: str, *args: object) -> object: ...

    def create_sub_object(self, type_code: int) -> ProviderObject: ...

    def iterate(self) -> Iterator[ProviderObject]: ...

    def query_interface(self, identifier: str) -> ProviderObject: ...

    def release(self) -> None: ...


ProviderFactory: TypeAlias = Callable[[], ProviderObject]


__all__ = ["ProviderFactory", "ProviderObject"]

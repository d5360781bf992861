"""
winsched — pywin32 adapter for the Task Scheduler COM object model

File: src/winsched/provider/com.py
Last updated: 2026-10-19

Purpose
- Satisfy ``ProviderObject`` on top of late-bound ``IDispatch`` objects.

What should be included in this file
- Lazy loading of ``win32com.client``/``pythoncom``/``pywintypes``.
- Translation of ``com_error`` into ``ProviderCallError`` with the native SCODE.
- Apartment initialisation tied to the lifetime of the service object.

Functional requirements
- Import of this module never fails on platforms without pywin32; opening the
  service raises ``ProviderUnavailableError`` instead.

Non-functional requirements
- One service object per thread; the object model is single-apartment.
"""

from __future__ import annotations

import importlib
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

from winsched.constants import SCHEDULE_SERVICE_PROGID
from winsched.errors import ProviderCallError, ProviderUnavailableError


@dataclass(frozen=True, slots=True)
class ComRuntime:
    """The pieces of pywin32 the adapter needs, resolved once per service."""

    dispatch: Callable[[Any], Any]
    com_error: type[BaseException]
    query_interface: Callable[[Any, str], Any]
    co_initialize: Callable[[], None]
    co_uninitialize: Callable[[], None]


def load_com_runtime() -> ComRuntime:
    try:
        client = importlib.import_module("win32com.client")
        pythoncom = importlib.import_module("pythoncom")
        pywintypes = importlib.import_module("pywintypes")
    except ImportError as exc:
        raise ProviderUnavailableError(
            "pywin32 is not installed; the Task Scheduler provider requires Windows"
        ) from exc

    def query_interface(dispatch: Any, identifier: str) -> Any:
        typed = dispatch._oleobj_.QueryInterface(identifier, pythoncom.IID_IDispatch)
        return client.Dispatch(typed)

    return ComRuntime(
        dispatch=client.Dispatch,
        com_error=pywintypes.com_error,
        query_interface=query_interface,
        co_initialize=pythoncom.CoInitialize,
        co_uninitialize=pythoncom.CoUninitialize,
    )


def com_error_details(exc: BaseException) -> tuple[int, str]:
    """Return ``(code, description)`` from a ``com_error``.

    The exception-info SCODE is preferred over the outer HRESULT, which is only
    ``DISP_E_EXCEPTION`` when the server raised.
    """

    args = exc.args
    hresult = args[0] if args and isinstance(args[0], int) else 0
    description = args[1] if len(args) > 1 and isinstance(args[1], str) else ""

    excepinfo = args[2] if len(args) > 2 else None
    if isinstance(excepinfo, tuple) and len(excepinfo) >= 6:
        source_description = excepinfo[2]
        if isinstance(source_description, str) and source_description.strip():
            description = source_description
        scode = excepinfo[5]
        if isinstance(scode, int) and scode:
            return scode, description.strip()
    return hresult, description.strip()


class ComObject:
    """``ProviderObject`` over one late-bound COM reference."""

    __slots__ = ("_dispatch", "_runtime", "_owns_apartment")

    def __init__(self, dispatch: Any, runtime: ComRuntime, *, owns_apartment: bool = False) -> None:
        self._dispatch = dispatch
        self._runtime = runtime
        self._owns_apartment = owns_apartment

    def get_property(self, name: str) -> object:
        try:
            value = getattr(self._target(), name)
        except self._runtime.com_error as exc:
            raise self._call_error(exc, f"get {name}") from exc
        return self._wrap(value)

    def put_property(self, name: str, value: object) -> None:
        try:
            setattr(self._target(), name, _unwrap(value))
        except self._runtime.com_error as exc:
            raise self._call_error(exc, f"put {name}") from exc

    def call_method(self, name: str, *args: object) -> object:
        try:
            result = getattr(self._target(), name)(*(_unwrap(arg) for arg in args))
        except self._runtime.com_error as exc:
            raise self._call_error(exc, f"call {name}") from exc
        return self._wrap(result)

    def create_sub_object(self, type_code: int) -> ComObject:
        created = self.call_method("Create", type_code)
        if not isinstance(created, ComObject):
            raise ProviderCallError(0, "Create did not return an object")
        return created

    def iterate(self) -> Iterator[ComObject]:
        try:
            items = list(self._target())
        except self._runtime.com_error as exc:
            raise self._call_error(exc, "enumerate") from exc
        for item in items:
            yield ComObject(item, self._runtime)

    def query_interface(self, identifier: str) -> ComObject:
        try:
            typed = self._runtime.query_interface(self._target(), identifier)
        except self._runtime.com_error as exc:
            raise self._call_error(exc, f"query {identifier}") from exc
        return ComObject(typed, self._runtime)

    def release(self) -> None:
        if self._dispatch is None:
            return
        self._dispatch = None
        if self._owns_apartment:
            self._runtime.co_uninitialize()

    def _target(self) -> Any:
        if self._dispatch is None:
            raise ProviderCallError(0, "COM object has been released")
        return self._dispatch

    def _wrap(self, value: object) -> object:
        if hasattr(value, "_oleobj_"):
            return ComObject(value, self._runtime)
        return value

    def _call_error(self, exc: BaseException, operation: str) -> ProviderCallError:
        code, description = com_error_details(exc)
        detail = f"{operation}: {description}" if description else operation
        return ProviderCallError(code, detail)


def open_schedule_service(runtime: ComRuntime | None = None) -> ComObject:
    """Create an unconnected ``Schedule.Service`` object on the calling thread."""

    resolved = runtime if runtime is not None else load_com_runtime()
    resolved.co_initialize()
    try:
        dispatch = resolved.dispatch(SCHEDULE_SERVICE_PROGID)
    except resolved.com_error as exc:
        resolved.co_uninitialize()
        code, description = com_error_details(exc)
        raise ProviderCallError(code, f"create {SCHEDULE_SERVICE_PROGID}: {description}") from exc
    return ComObject(dispatch, resolved, owns_apartment=True)


def _unwrap(value: object) -> object:
    if isinstance(value, ComObject):
        return value._target()
    return value


__all__ = [
    "ComObject",
    "ComRuntime",
    "com_error_details",
    "load_com_runtime",
    "open_schedule_service",
]

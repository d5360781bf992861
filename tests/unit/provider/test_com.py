"""
winsched — unit tests for the pywin32 adapter

File: tests/unit/provider/test_com.py
Last updated: 2026-10-19

Purpose
- Exercise ``ComObject`` and ``open_schedule_service`` against a fake COM runtime so
  the adapter is covered on every platform.

What this test file should cover
- ``com_error`` translation, preferring the exception-info SCODE.
- Wrapping of returned object references and unwrapping of arguments.
- Apartment initialisation tied to the service object lifetime.
- ``ProviderUnavailableError`` when pywin32 cannot be imported.
"""

from __future__ import annotations

import sys
from typing import Any

import pytest

from winsched.errors import ProviderCallError, ProviderUnavailableError
from winsched.provider.com import (
    ComObject,
    ComRuntime,
    com_error_details,
    load_com_runtime,
    open_schedule_service,
)
from winsched.provider.protocol import ProviderObject

_DISP_E_EXCEPTION = -2147352567
_E_ACCESSDENIED_SIGNED = -2147024891
_E_FILE_NOT_FOUND_SIGNED = -2147024894


class FakeComError(Exception):
    """Shaped like ``pywintypes.com_error``: (hresult, text, excepinfo, argerror)."""


def _denied() -> FakeComError:
    return FakeComError(
        _DISP_E_EXCEPTION,
        "Exception occurred.",
        (0, "Task Scheduler", "Access is denied.", None, 0, _E_ACCESSDENIED_SIGNED),
        None,
    )


class FakeDispatch:
    def __init__(self, **attrs: Any) -> None:
        self._oleobj_ = object()
        self.received: list[tuple[Any, ...]] = []
        for name, value in attrs.items():
            setattr(self, name, value)

    def GetFolder(self, path: Any) -> Any:
        self.received.append(("GetFolder", path))
        return FakeDispatch(Path=path)

    def RegisterTaskDefinition(self, path: Any, definition: Any) -> str:
        self.received.append(("RegisterTaskDefinition", path, definition))
        return "registered"

    def Fail(self) -> None:
        raise _denied()

    @property
    def Locked(self) -> str:
        raise _denied()


class FakeCollection(FakeDispatch):
    def __init__(self, items: list[Any], *, fail: bool = False) -> None:
        super().__init__()
        self._items = items
        self._fail = fail

    def __iter__(self) -> Any:
        if self._fail:
            raise FakeComError(_E_FILE_NOT_FOUND_SIGNED, "not found", None, None)
        return iter(self._items)

    def Create(self, type_code: int) -> Any:
        created = FakeDispatch(Type=type_code)
        self._items.append(created)
        return created


class RuntimeCalls:
    def __init__(self, service: Any = None, *, dispatch_error: bool = False) -> None:
        self.service = service if service is not None else FakeDispatch(Connected=False)
        self.dispatch_error = dispatch_error
        self.initialized = 0
        self.uninitialized = 0
        self.progids: list[str] = []
        self.queried: list[str] = []

    def runtime(self) -> ComRuntime:
        return ComRuntime(
            dispatch=self._dispatch,
            com_error=FakeComError,
            query_interface=self._query,
            co_initialize=self._init,
            co_uninitialize=self._uninit,
        )

    def _dispatch(self, progid: Any) -> Any:
        self.progids.append(progid)
        if self.dispatch_error:
            raise FakeComError(-2147221005, "Invalid class string", None, None)
        return self.service

    def _query(self, dispatch: Any, identifier: str) -> Any:
        self.queried.append(identifier)
        if identifier == "{bad}":
            raise FakeComError(-2147467262, "No such interface supported", None, None)
        return dispatch

    def _init(self) -> None:
        self.initialized += 1

    def _uninit(self) -> None:
        self.uninitialized += 1


@pytest.mark.unit
def test_com_error_details_prefers_the_exception_scode() -> None:
    code, text = com_error_details(_denied())
    assert code == _E_ACCESSDENIED_SIGNED
    assert text == "Access is denied."

    plain = FakeComError(_E_FILE_NOT_FOUND_SIGNED, " File not found. ", None, None)
    assert com_error_details(plain) == (_E_FILE_NOT_FOUND_SIGNED, "File not found.")
    assert com_error_details(FakeComError()) == (0, "")


@pytest.mark.unit
def test_open_schedule_service_owns_the_apartment() -> None:
    calls = RuntimeCalls()

    service = open_schedule_service(calls.runtime())

    assert isinstance(service, ProviderObject)
    assert calls.progids == ["Schedule.Service"]
    assert calls.initialized == 1
    assert calls.uninitialized == 0

    service.release()
    service.release()
    assert calls.uninitialized == 1


@pytest.mark.unit
def test_open_schedule_service_uninitializes_when_dispatch_fails() -> None:
    calls = RuntimeCalls(dispatch_error=True)

    with pytest.raises(ProviderCallError) as excinfo:
        open_schedule_service(calls.runtime())

    assert excinfo.value.code == 0x800401F3
    assert "create Schedule.Service: Invalid class string" in str(excinfo.value)
    assert calls.initialized == calls.uninitialized == 1


@pytest.mark.unit
def test_properties_and_methods_wrap_object_references() -> None:
    calls = RuntimeCalls(FakeDispatch(TargetServer="HOST01"))
    service = open_schedule_service(calls.runtime())

    assert service.get_property("TargetServer") == "HOST01"
    service.put_property("TargetServer", "HOST02")
    assert service.get_property("TargetServer") == "HOST02"

    folder = service.call_method("GetFolder", "\\")
    assert isinstance(folder, ComObject)
    assert folder.get_property("Path") == "\\"

    assert service.call_method("RegisterTaskDefinition", "\\Job", folder) == "registered"
    forwarded = calls.service.received[-1][2]
    assert isinstance(forwarded, FakeDispatch)
    assert forwarded.Path == "\\"

    folder.release()
    service.release()


@pytest.mark.unit
def test_com_errors_become_provider_call_errors_with_operation() -> None:
    service = open_schedule_service(RuntimeCalls().runtime())

    with pytest.raises(ProviderCallError) as on_get:
        service.get_property("Locked")
    with pytest.raises(ProviderCallError) as on_call:
        service.call_method("Fail")

    assert on_get.value.code == 0x80070005
    assert on_get.value.detail == "get Locked: Access is denied."
    assert on_call.value.detail == "call Fail: Access is denied."
    service.release()


@pytest.mark.unit
def test_iterate_create_and_query_interface() -> None:
    collection = FakeCollection([FakeDispatch(Name="a"), FakeDispatch(Name="b")])
    calls = RuntimeCalls(collection)
    obj = open_schedule_service(calls.runtime())

    assert [item.get_property("Name") for item in obj.iterate()] == ["a", "b"]

    created = obj.create_sub_object(2)
    assert created.get_property("Type") == 2

    view = created.query_interface("{126c5cd8-b288-41d5-8dbf-e491446adc5c}")
    assert view.get_property("Type") == 2
    assert calls.queried == ["{126c5cd8-b288-41d5-8dbf-e491446adc5c}"]

    with pytest.raises(ProviderCallError, match="query \\{bad\\}"):
        created.query_interface("{bad}")
    obj.release()


@pytest.mark.unit
def test_iterate_failure_is_translated() -> None:
    obj = open_schedule_service(RuntimeCalls(FakeCollection([], fail=True)).runtime())

    with pytest.raises(ProviderCallError) as excinfo:
        list(obj.iterate())

    assert excinfo.value.code == 0x80070002
    assert excinfo.value.detail == "enumerate: not found"
    obj.release()


@pytest.mark.unit
def test_create_sub_object_requires_an_object_result() -> None:
    obj = open_schedule_service(RuntimeCalls(FakeDispatch(Create=lambda _code: 5)).runtime())

    with pytest.raises(ProviderCallError, match="Create did not return an object"):
        obj.create_sub_object(0)
    obj.release()


@pytest.mark.unit
def test_released_object_cannot_be_used() -> None:
    obj = open_schedule_service(RuntimeCalls().runtime())
    obj.release()

    with pytest.raises(ProviderCallError, match="COM object has been released"):
        obj.get_property("Connected")


@pytest.mark.unit
def test_missing_pywin32_raises_provider_unavailable(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(sys.modules, "win32com", None)
    monkeypatch.setitem(sys.modules, "win32com.client", None)

    with pytest.raises(ProviderUnavailableError, match="pywin32 is not installed"):
        load_com_runtime()

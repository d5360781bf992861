"""Unit tests for the field/property binding tables and value conversions."""

from __future__ import annotations

from dataclasses import fields
from datetime import datetime

import pytest

from tests.fakes import ACTION_CLASSES, TRIGGER_CLASSES
from winsched.codec import CodecError, Period
from winsched.domain import models
from winsched.domain.enums import ActionType, DayOfMonth, LogonType, TriggerType
from winsched.mapping import properties as props
from winsched.mapping.properties import PropertyBinding, ValueKind

_RECORD_TABLES: list[tuple[type[object], props.Bindings]] = [
    (models.Principal, props.PRINCIPAL_BINDINGS),
    (models.RegistrationInfo, props.REGISTRATION_INFO_BINDINGS),
    (models.TaskSettings, props.SETTINGS_BINDINGS),
    (models.IdleSettings, props.IDLE_SETTINGS_BINDINGS),
    (models.NetworkSettings, props.NETWORK_SETTINGS_BINDINGS),
    (models.RepetitionPattern, props.REPETITION_BINDINGS),
    (models.RunningTask, props.RUNNING_TASK_BINDINGS),
    (models.TaskFolder, props.FOLDER_BINDINGS),
    (models.RegisteredTask, props.REGISTERED_TASK_BINDINGS),
]


def _field_names(record_type: type[object]) -> set[str]:
    return {item.name for item in fields(record_type)}  # type: ignore[arg-type]


@pytest.mark.unit
@pytest.mark.parametrize(("record_type", "bindings"), _RECORD_TABLES)
def test_every_binding_names_a_real_field(
    record_type: type[object], bindings: props.Bindings
) -> None:
    names = _field_names(record_type)
    for binding in bindings:
        assert binding.field in names, f"{record_type.__name__} has no field {binding.field}"
    assert len({binding.name for binding in bindings}) == len(bindings)


@pytest.mark.unit
def test_settings_bindings_cover_every_scalar_setting() -> None:
    nested = {"idle_settings", "network_settings"}
    bound = {binding.field for binding in props.SETTINGS_BINDINGS}

    assert bound == _field_names(models.TaskSettings) - nested


@pytest.mark.unit
@pytest.mark.parametrize("trigger_type", list(TriggerType))
def test_every_trigger_variant_has_bindings_for_its_own_fields(trigger_type: TriggerType) -> None:
    trigger_cls = TRIGGER_CLASSES[trigger_type]
    common = {binding.field for binding in props.TRIGGER_COMMON_BINDINGS} | {"repetition"}
    specific = {binding.field for binding in props.TRIGGER_BINDINGS[trigger_type]}
    if trigger_type is TriggerType.EVENT:
        specific.add("value_queries")

    assert common | specific == _field_names(trigger_cls)


@pytest.mark.unit
def test_typed_view_tables_cover_every_registrable_variant() -> None:
    assert set(props.TRIGGER_INTERFACE_IDS) == set(TriggerType) - {TriggerType.CUSTOM}
    assert set(props.ACTION_INTERFACE_IDS) == set(ACTION_CLASSES)
    assert set(props.ACTION_BINDINGS) == {ActionType.EXEC, ActionType.COM_HANDLER}
    identifiers = [*props.TRIGGER_INTERFACE_IDS.values(), *props.ACTION_INTERFACE_IDS.values()]
    assert len(set(identifiers)) == len(identifiers)


@pytest.mark.unit
def test_enum_kind_requires_enum_type() -> None:
    with pytest.raises(ValueError, match="enum_type must be set exactly for enum/mask kinds"):
        PropertyBinding("logon_type", "LogonType", ValueKind.ENUM)
    with pytest.raises(ValueError, match="enum_type must be set"):
        PropertyBinding("id", "Id", ValueKind.TEXT, LogonType)


@pytest.mark.unit
def test_last_day_of_month_mask_crosses_the_signed_boundary() -> None:
    binding = PropertyBinding("days_of_month", "DaysOfMonth", ValueKind.MASK, DayOfMonth)
    mask = DayOfMonth.DAY_1 | DayOfMonth.LAST_DAY

    raw = binding.to_provider(mask)

    assert raw == -(1 << 31) + 1
    assert binding.from_provider(raw) == mask
    assert binding.from_provider(0x0F) == DayOfMonth(0x0F)


@pytest.mark.unit
def test_conversions_by_kind() -> None:
    text = PropertyBinding("id", "Id")
    flag = PropertyBinding("enabled", "Enabled", ValueKind.FLAG)
    number = PropertyBinding("priority", "Priority", ValueKind.NUMBER)
    stamp = PropertyBinding("date", "Date", ValueKind.TIMESTAMP)
    period = PropertyBinding("interval", "Interval", ValueKind.PERIOD)
    enum = PropertyBinding("logon_type", "LogonType", ValueKind.ENUM, LogonType)

    assert text.from_provider(None) == ""
    assert text.to_provider("abc") == "abc"
    assert flag.to_provider(1) is True
    assert flag.from_provider(0) is False
    assert number.from_provider(4) == 4
    assert stamp.to_provider(datetime(2024, 1, 2, 3, 4, 5)) == "2024-01-02T03:04:05"
    assert stamp.from_provider("") is None
    assert period.to_provider(Period(minutes=5)) == "PT5M"
    assert period.from_provider(None) == Period()
    assert enum.to_provider(LogonType.PASSWORD) == 1
    assert enum.from_provider(5) is LogonType.SERVICE_ACCOUNT


@pytest.mark.unit
def test_conversion_failures_raise_plain_errors() -> None:
    number = PropertyBinding("priority", "Priority", ValueKind.NUMBER)
    period = PropertyBinding("interval", "Interval", ValueKind.PERIOD)
    enum = PropertyBinding("logon_type", "LogonType", ValueKind.ENUM, LogonType)

    with pytest.raises(TypeError, match="Priority: expected integer, got str"):
        number.from_provider("7")
    with pytest.raises(TypeError, match="Priority: expected integer, got bool"):
        number.from_provider(True)
    with pytest.raises(TypeError, match="Interval: expected Period, got str"):
        period.to_provider("PT1M")
    with pytest.raises(CodecError):
        period.from_provider("ten minutes")
    with pytest.raises(ValueError):
        enum.from_provider(99)

"""
winsched — field to provider-property mapping tables

File: src/winsched/mapping/properties.py
Last updated: 2026-10-19

Purpose
- Single source of truth for which domain field maps to which provider property,
  and how each value is converted in both directions.

What should be included in this file
- ``PropertyBinding`` with per-kind conversions (text, flag, number, timestamp,
  period, enum, bitmask).
- Binding tables for every flat record and every trigger/action variant.
- The fixed type -> interface identifier tables used to obtain typed views.

Functional requirements
- Tables are plain data so they can be checked without a live provider.

Non-functional requirements
- Conversions are pure; callers attach field context to failures.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, IntFlag, StrEnum
from typing import Final

from winsched.codec import (
    Period,
    decode_period,
    encode_period,
    encode_timestamp,
    timestamp_from_provider,
)
from winsched.domain.enums import (
    ActionType,
    Compatibility,
    DayOfMonth,
    DayOfWeek,
    InstancesPolicy,
    LogonType,
    Month,
    RunLevel,
    SessionStateChange,
    TaskState,
    TriggerType,
    Week,
)

_INT32_SIGN: Final[int] = 1 << 31
_UINT32_RANGE: Final[int] = 1 << 32


class ValueKind(StrEnum):
    TEXT = "text"
    FLAG = "flag"
    NUMBER = "number"
    TIMESTAMP = "timestamp"
    PERIOD = "period"
    ENUM = "enum"
    MASK = "mask"


@dataclass(frozen=True, slots=True)
class PropertyBinding:
    """One domain field bound to one provider property."""

    field: str
    name: str
    kind: ValueKind = ValueKind.TEXT
    enum_type: type[IntEnum] | type[IntFlag] | None = None

    def __post_init__(self) -> None:
        needs_enum = self.kind in (ValueKind.ENUM, ValueKind.MASK)
        if needs_enum != (self.enum_type is not None):
            raise ValueError(f"{self.name}: enum_type must be set exactly for enum/mask kinds")

    def to_provider(self, value: object) -> object:
        match self.kind:
            case ValueKind.TEXT:
                return str(value)
            case ValueKind.FLAG:
                return bool(value)
            case ValueKind.NUMBER | ValueKind.ENUM:
                return int(value)  # type: ignore[call-overload]
            case ValueKind.TIMESTAMP:
                return encode_timestamp(value)  # type: ignore[arg-type]
            case ValueKind.PERIOD:
                if not isinstance(value, Period):
                    raise TypeError(f"{self.name}: expected Period, got {type(value).__name__}")
                return encode_period(value)
            case ValueKind.MASK:
                # Provider masks are signed 32-bit longs; the last-day-of-month bit is the sign bit.
                raw = int(value)  # type: ignore[call-overload]
                return raw - _UINT32_RANGE if raw >= _INT32_SIGN else raw
        raise AssertionError(f"unhandled value kind {self.kind!r}")

    def from_provider(self, raw: object) -> object:
        match self.kind:
            case ValueKind.TEXT:
                return "" if raw is None else str(raw)
            case ValueKind.FLAG:
                return bool(raw)
            case ValueKind.NUMBER:
                return _as_int(raw, self.name)
            case ValueKind.TIMESTAMP:
                return timestamp_from_provider(raw)
            case ValueKind.PERIOD:
                return decode_period("" if raw is None else str(raw))
            case ValueKind.ENUM:
                assert self.enum_type is not None
                return self.enum_type(_as_int(raw, self.name))
            case ValueKind.MASK:
                assert self.enum_type is not None
                return self.enum_type(_as_int(raw, self.name) % _UINT32_RANGE)
        raise AssertionError(f"unhandled value kind {self.kind!r}")


def _as_int(raw: object, name: str) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise TypeError(f"{name}: expected integer, got {type(raw).__name__}")
    return raw


Bindings = tuple[PropertyBinding, ...]

_F = ValueKind.FLAG
_N = ValueKind.NUMBER
_TS = ValueKind.TIMESTAMP
_P = ValueKind.PERIOD

# Sub-object property names of an ITaskDefinition.
ACTIONS: Final[str] = "Actions"
PRINCIPAL: Final[str] = "Principal"
REGISTRATION_INFO: Final[str] = "RegistrationInfo"
SETTINGS: Final[str] = "Settings"
TRIGGERS: Final[str] = "Triggers"
IDLE_SETTINGS: Final[str] = "IdleSettings"
NETWORK_SETTINGS: Final[str] = "NetworkSettings"
REPETITION: Final[str] = "Repetition"
VALUE_QUERIES: Final[str] = "ValueQueries"
DEFINITION: Final[str] = "Definition"
TYPE: Final[str] = "Type"

DEFINITION_BINDINGS: Final[Bindings] = (PropertyBinding("data", "Data"),)

ACTIONS_COLLECTION_BINDINGS: Final[Bindings] = (PropertyBinding("context", "Context"),)

ACTION_COMMON_BINDINGS: Final[Bindings] = (PropertyBinding("id", "Id"),)

ACTION_BINDINGS: Final[dict[ActionType, Bindings]] = {
    ActionType.EXEC: (
        PropertyBinding("args", "Arguments"),
        PropertyBinding("path", "Path"),
        PropertyBinding("working_directory", "WorkingDirectory"),
    ),
    ActionType.COM_HANDLER: (
        PropertyBinding("class_id", "ClassId"),
        PropertyBinding("data", "Data"),
    ),
}

PRINCIPAL_BINDINGS: Final[Bindings] = (
    PropertyBinding("name", "DisplayName"),
    PropertyBinding("group_id", "GroupId"),
    PropertyBinding("id", "Id"),
    PropertyBinding("logon_type", "LogonType", ValueKind.ENUM, LogonType),
    PropertyBinding("run_level", "RunLevel", ValueKind.ENUM, RunLevel),
    PropertyBinding("user_id", "UserId"),
)

REGISTRATION_INFO_BINDINGS: Final[Bindings] = (
    PropertyBinding("author", "Author"),
    PropertyBinding("date", "Date", _TS),
    PropertyBinding("description", "Description"),
    PropertyBinding("documentation", "Documentation"),
    PropertyBinding("security_descriptor", "SecurityDescriptor"),
    PropertyBinding("source", "Source"),
    PropertyBinding("uri", "URI"),
    PropertyBinding("version", "Version"),
)

SETTINGS_BINDINGS: Final[Bindings] = (
    PropertyBinding("allow_demand_start", "AllowDemandStart", _F),
    PropertyBinding("allow_hard_terminate", "AllowHardTerminate", _F),
    PropertyBinding("compatibility", "Compatibility", ValueKind.ENUM, Compatibility),
    PropertyBinding("delete_expired_task_after", "DeleteExpiredTaskAfter"),
    PropertyBinding("dont_start_on_batteries", "DisallowStartIfOnBatteries", _F),
    PropertyBinding("enabled", "Enabled", _F),
    PropertyBinding("time_limit", "ExecutionTimeLimit", _P),
    PropertyBinding("hidden", "Hidden", _F),
    PropertyBinding("multiple_instances", "MultipleInstances", ValueKind.ENUM, InstancesPolicy),
    PropertyBinding("priority", "Priority", _N),
    PropertyBinding("restart_count", "RestartCount", _N),
    PropertyBinding("restart_interval", "RestartInterval", _P),
    PropertyBinding("run_only_if_idle", "RunOnlyIfIdle", _F),
    PropertyBinding("run_only_if_network_available", "RunOnlyIfNetworkAvailable", _F),
    PropertyBinding("start_when_available", "StartWhenAvailable", _F),
    PropertyBinding("stop_if_going_on_batteries", "StopIfGoingOnBatteries", _F),
    PropertyBinding("wake_to_run", "WakeToRun", _F),
)

IDLE_SETTINGS_BINDINGS: Final[Bindings] = (
    PropertyBinding("idle_duration", "IdleDuration", _P),
    PropertyBinding("restart_on_idle", "RestartOnIdle", _F),
    PropertyBinding("stop_on_idle_end", "StopOnIdleEnd", _F),
    PropertyBinding("wait_timeout", "WaitTimeout", _P),
)

NETWORK_SETTINGS_BINDINGS: Final[Bindings] = (
    PropertyBinding("id", "Id"),
    PropertyBinding("name", "Name"),
)

REPETITION_BINDINGS: Final[Bindings] = (
    PropertyBinding("duration", "Duration", _P),
    PropertyBinding("interval", "Interval", _P),
    PropertyBinding("stop_at_duration_end", "StopAtDurationEnd", _F),
)

TRIGGER_COMMON_BINDINGS: Final[Bindings] = (
    PropertyBinding("enabled", "Enabled", _F),
    PropertyBinding("end_boundary", "EndBoundary", _TS),
    PropertyBinding("execution_time_limit", "ExecutionTimeLimit", _P),
    PropertyBinding("id", "Id"),
    PropertyBinding("start_boundary", "StartBoundary", _TS),
)

_DELAY = PropertyBinding("delay", "Delay", _P)
_RANDOM_DELAY = PropertyBinding("random_delay", "RandomDelay", _P)
_USER_ID = PropertyBinding("user_id", "UserId")
_DAYS_OF_WEEK = PropertyBinding("days_of_week", "DaysOfWeek", ValueKind.MASK, DayOfWeek)
_MONTHS_OF_YEAR = PropertyBinding("months_of_year", "MonthsOfYear", ValueKind.MASK, Month)

TRIGGER_BINDINGS: Final[dict[TriggerType, Bindings]] = {
    TriggerType.BOOT: (_DELAY,),
    TriggerType.DAILY: (PropertyBinding("day_interval", "DaysInterval", _N), _RANDOM_DELAY),
    TriggerType.EVENT: (_DELAY, PropertyBinding("subscription", "Subscription")),
    TriggerType.IDLE: (),
    TriggerType.LOGON: (_DELAY, _USER_ID),
    TriggerType.MONTHLY_DOW: (
        _DAYS_OF_WEEK,
        _MONTHS_OF_YEAR,
        _RANDOM_DELAY,
        PropertyBinding("run_on_last_week_of_month", "RunOnLastWeekOfMonth", _F),
        PropertyBinding("weeks_of_month", "WeeksOfMonth", ValueKind.MASK, Week),
    ),
    TriggerType.MONTHLY: (
        PropertyBinding("days_of_month", "DaysOfMonth", ValueKind.MASK, DayOfMonth),
        _MONTHS_OF_YEAR,
        _RANDOM_DELAY,
        PropertyBinding("run_on_last_day_of_month", "RunOnLastDayOfMonth", _F),
    ),
    TriggerType.REGISTRATION: (_DELAY,),
    TriggerType.SESSION_STATE_CHANGE: (
        _DELAY,
        PropertyBinding("state_change", "StateChange", ValueKind.ENUM, SessionStateChange),
        _USER_ID,
    ),
    TriggerType.TIME: (_RANDOM_DELAY,),
    TriggerType.WEEKLY: (
        _DAYS_OF_WEEK,
        _RANDOM_DELAY,
        PropertyBinding("week_interval", "WeeksInterval", _N),
    ),
    TriggerType.CUSTOM: (),
}

VALUE_QUERY_NAME: Final[str] = "Name"
VALUE_QUERY_VALUE: Final[str] = "Value"

REGISTERED_TASK_BINDINGS: Final[Bindings] = (
    PropertyBinding("name", "Name"),
    PropertyBinding("path", "Path"),
    PropertyBinding("enabled", "Enabled", _F),
    PropertyBinding("state", "State", ValueKind.ENUM, TaskState),
    PropertyBinding("missed_runs", "NumberOfMissedRuns", _N),
    PropertyBinding("next_run_time", "NextRunTime", _TS),
    PropertyBinding("last_run_time", "LastRunTime", _TS),
    PropertyBinding("last_task_result", "LastTaskResult", _N),
)

FOLDER_BINDINGS: Final[Bindings] = (
    PropertyBinding("name", "Name"),
    PropertyBinding("path", "Path"),
)

RUNNING_TASK_BINDINGS: Final[Bindings] = (
    PropertyBinding("current_action", "CurrentAction"),
    PropertyBinding("engine_pid", "EnginePID", _N),
    PropertyBinding("instance_guid", "InstanceGuid"),
    PropertyBinding("name", "Name"),
    PropertyBinding("path", "Path"),
    PropertyBinding("state", "State", ValueKind.ENUM, TaskState),
)

SERVICE_BINDINGS: Final[Bindings] = (
    PropertyBinding("server", "TargetServer"),
    PropertyBinding("domain", "ConnectedDomain"),
    PropertyBinding("user", "ConnectedUser"),
)

COUNT: Final[str] = "Count"

# Interface identifiers of the typed views (IExecAction, IBootTrigger, ...).
ACTION_INTERFACE_IDS: Final[dict[ActionType, str]] = {
    ActionType.EXEC: "{4c3d624d-fd6b-49a3-b9b7-09cb3cd3f047}",
    ActionType.COM_HANDLER: "{6d2fd252-75c5-4f66-90ba-2a7d8cc3039f}",
}

TRIGGER_INTERFACE_IDS: Final[dict[TriggerType, str]] = {
    TriggerType.BOOT: "{2a9c35da-d357-41f4-bbc1-207ac1b1f3cb}",
    TriggerType.DAILY: "{126c5cd8-b288-41d5-8dbf-e491446adc5c}",
    TriggerType.EVENT: "{d45b0167-9653-4eef-b94f-0732ca7af251}",
    TriggerType.IDLE: "{d537d2b0-9fb3-4d34-9739-1ff5ce7b1ef3}",
    TriggerType.LOGON: "{72dade38-fae4-4b3e-baf4-5d009af02b1c}",
    TriggerType.MONTHLY_DOW: "{77d025a3-90fa-43aa-b52e-cda5499b946a}",
    TriggerType.MONTHLY: "{97c45ef1-6b02-4a1a-9c0e-1ebfba1500ac}",
    TriggerType.REGISTRATION: "{4c8fec3a-c218-4e0c-b23d-629024db91a2}",
    TriggerType.SESSION_STATE_CHANGE: "{754da71b-4385-4475-9dd9-598294fa3641}",
    TriggerType.TIME: "{b45747e0-eba7-4276-9f29-85c5bb300006}",
    TriggerType.WEEKLY: "{5038fc98-82ff-436d-8728-a512a57c9dc1}",
}


__all__ = [
    "ACTIONS",
    "ACTIONS_COLLECTION_BINDINGS",
    "ACTION_BINDINGS",
    "ACTION_COMMON_BINDINGS",
    "ACTION_INTERFACE_IDS",
    "COUNT",
    "Bindings",
    "DEFINITION",
    "DEFINITION_BINDINGS",
    "FOLDER_BINDINGS",
    "IDLE_SETTINGS",
    "IDLE_SETTINGS_BINDINGS",
    "NETWORK_SETTINGS",
    "NETWORK_SETTINGS_BINDINGS",
    "PRINCIPAL",
    "PRINCIPAL_BINDINGS",
    "PropertyBinding",
    "REGISTERED_TASK_BINDINGS",
    "REGISTRATION_INFO",
    "REGISTRATION_INFO_BINDINGS",
    "REPETITION",
    "REPETITION_BINDINGS",
    "RUNNING_TASK_BINDINGS",
    "SETTINGS",
    "SERVICE_BINDINGS",
    "SETTINGS_BINDINGS",
    "TRIGGERS",
    "TRIGGER_BINDINGS",
    "TRIGGER_COMMON_BINDINGS",
    "TRIGGER_INTERFACE_IDS",
    "TYPE",
    "VALUE_QUERIES",
    "VALUE_QUERY_NAME",
    "VALUE_QUERY_VALUE",
    "ValueKind",
]

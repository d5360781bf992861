"""Dataclass domain models for task definitions, folders and task instances."""

from __future__ import annotations

import json
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar, TypeAlias, cast

from winsched.codec import ZERO_PERIOD, Period, encode_period
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

if TYPE_CHECKING:
    from winsched.provider.handles import OwnedHandle

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

_UNSERIALIZED = {"serialize": False}


class CanonicalModel:
    """Mixin for canonical dict/json rendering, used for logs and diagnostics."""

    def to_dict(self) -> dict[str, JSONValue]:
        serialized = _serialize_value(self, self.__class__.__name__)
        if not isinstance(serialized, dict):
            raise ValueError(f"{self.__class__.__name__}: serialized model must be an object")
        return serialized

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"), ensure_ascii=False)


# --- actions -------------------------------------------------------------------------


@dataclass(slots=True)
class ExecAction(CanonicalModel):
    """Runs an executable with optional arguments and working directory."""

    action_type: ClassVar[ActionType] = ActionType.EXEC

    path: str = ""
    args: str = ""
    working_directory: str = ""
    id: str = ""


@dataclass(slots=True)
class ComHandlerAction(CanonicalModel):
    """Fires a registered COM handler class."""

    action_type: ClassVar[ActionType] = ActionType.COM_HANDLER

    class_id: str = ""
    data: str = ""
    id: str = ""


Action: TypeAlias = ExecAction | ComHandlerAction


# --- triggers ------------------------------------------------------------------------


@dataclass(slots=True)
class RepetitionPattern(CanonicalModel):
    duration: Period = ZERO_PERIOD
    interval: Period = ZERO_PERIOD
    stop_at_duration_end: bool = False


@dataclass(slots=True)
class TriggerBase(CanonicalModel):
    """Fields shared by every trigger variant."""

    trigger_type: ClassVar[TriggerType]

    enabled: bool = True
    start_boundary: datetime | None = None
    end_boundary: datetime | None = None
    execution_time_limit: Period = ZERO_PERIOD
    id: str = ""
    repetition: RepetitionPattern = field(default_factory=RepetitionPattern)


@dataclass(slots=True)
class BootTrigger(TriggerBase):
    trigger_type: ClassVar[TriggerType] = TriggerType.BOOT

    delay: Period = ZERO_PERIOD


@dataclass(slots=True)
class DailyTrigger(TriggerBase):
    trigger_type: ClassVar[TriggerType] = TriggerType.DAILY

    day_interval: int = 1
    random_delay: Period = ZERO_PERIOD


@dataclass(slots=True)
class EventTrigger(TriggerBase):
    """Starts the task when an event matching ``subscription`` is logged."""

    trigger_type: ClassVar[TriggerType] = TriggerType.EVENT

    delay: Period = ZERO_PERIOD
    subscription: str = ""
    value_queries: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class IdleTrigger(TriggerBase):
    trigger_type: ClassVar[TriggerType] = TriggerType.IDLE


@dataclass(slots=True)
class LogonTrigger(TriggerBase):
    trigger_type: ClassVar[TriggerType] = TriggerType.LOGON

    delay: Period = ZERO_PERIOD
    user_id: str = ""


@dataclass(slots=True)
class MonthlyDOWTrigger(TriggerBase):
    """Runs on given weekdays of given weeks of given months."""

    trigger_type: ClassVar[TriggerType] = TriggerType.MONTHLY_DOW

    days_of_week: DayOfWeek = DayOfWeek(0)
    months_of_year: Month = Month(0)
    random_delay: Period = ZERO_PERIOD
    run_on_last_week_of_month: bool = False
    weeks_of_month: Week = Week(0)


@dataclass(slots=True)
class MonthlyTrigger(TriggerBase):
    trigger_type: ClassVar[TriggerType] = TriggerType.MONTHLY

    days_of_month: DayOfMonth = DayOfMonth(0)
    months_of_year: Month = Month(0)
    random_delay: Period = ZERO_PERIOD
    run_on_last_day_of_month: bool = False


@dataclass(slots=True)
class RegistrationTrigger(TriggerBase):
    trigger_type: ClassVar[TriggerType] = TriggerType.REGISTRATION

    delay: Period = ZERO_PERIOD


@dataclass(slots=True)
class SessionStateChangeTrigger(TriggerBase):
    trigger_type: ClassVar[TriggerType] = TriggerType.SESSION_STATE_CHANGE

    delay: Period = ZERO_PERIOD
    state_change: SessionStateChange = SessionStateChange.SESSION_LOCK
    user_id: str = ""


@dataclass(slots=True)
class TimeTrigger(TriggerBase):
    trigger_type: ClassVar[TriggerType] = TriggerType.TIME

    random_delay: Period = ZERO_PERIOD


@dataclass(slots=True)
class WeeklyTrigger(TriggerBase):
    trigger_type: ClassVar[TriggerType] = TriggerType.WEEKLY

    days_of_week: DayOfWeek = DayOfWeek(0)
    random_delay: Period = ZERO_PERIOD
    week_interval: int = 1


@dataclass(slots=True)
class CustomTrigger(TriggerBase):
    """Trigger type defined by a third party; readable but not registrable."""

    trigger_type: ClassVar[TriggerType] = TriggerType.CUSTOM


Trigger: TypeAlias = (
    BootTrigger
    | DailyTrigger
    | EventTrigger
    | IdleTrigger
    | LogonTrigger
    | MonthlyDOWTrigger
    | MonthlyTrigger
    | RegistrationTrigger
    | SessionStateChangeTrigger
    | TimeTrigger
    | WeeklyTrigger
    | CustomTrigger
)


# --- definition records --------------------------------------------------------------


@dataclass(slots=True)
class Principal(CanonicalModel):
    """Security context the task runs under; ``user_id`` and ``group_id`` are exclusive."""

    name: str = ""
    group_id: str = ""
    id: str = ""
    logon_type: LogonType = LogonType.INTERACTIVE_TOKEN
    run_level: RunLevel = RunLevel.LUA
    user_id: str = ""


@dataclass(slots=True)
class RegistrationInfo(CanonicalModel):
    author: str = ""
    date: datetime | None = None
    description: str = ""
    documentation: str = ""
    security_descriptor: str = ""
    source: str = ""
    uri: str = ""
    version: str = ""


@dataclass(slots=True)
class IdleSettings(CanonicalModel):
    idle_duration: Period = Period(minutes=10)
    restart_on_idle: bool = False
    stop_on_idle_end: bool = True
    wait_timeout: Period = Period(hours=1)


@dataclass(slots=True)
class NetworkSettings(CanonicalModel):
    id: str = ""
    name: str = ""


@dataclass(slots=True)
class TaskSettings(CanonicalModel):
    """Task-wide behaviour; defaults mirror a freshly created definition."""

    allow_demand_start: bool = True
    allow_hard_terminate: bool = True
    compatibility: Compatibility = Compatibility.V2
    delete_expired_task_after: str = ""
    dont_start_on_batteries: bool = True
    enabled: bool = True
    time_limit: Period = Period(hours=72)
    hidden: bool = False
    idle_settings: IdleSettings = field(default_factory=IdleSettings)
    multiple_instances: InstancesPolicy = InstancesPolicy.IGNORE_NEW
    network_settings: NetworkSettings = field(default_factory=NetworkSettings)
    priority: int = 7
    restart_count: int = 0
    restart_interval: Period = ZERO_PERIOD
    run_only_if_idle: bool = False
    run_only_if_network_available: bool = False
    start_when_available: bool = False
    stop_if_going_on_batteries: bool = True
    wake_to_run: bool = False


@dataclass(slots=True)
class Definition(CanonicalModel):
    """Complete description of a schedulable unit of work."""

    actions: list[Action] = field(default_factory=list)
    context: str = ""
    data: str = ""
    principal: Principal = field(default_factory=Principal)
    registration_info: RegistrationInfo = field(default_factory=RegistrationInfo)
    settings: TaskSettings = field(default_factory=TaskSettings)
    triggers: list[Trigger] = field(default_factory=list)

    def add_action(self, action: Action) -> Action:
        self.actions.append(action)
        return action

    def add_trigger(self, trigger: Trigger) -> Trigger:
        self.triggers.append(trigger)
        return trigger

    def add_exec_action(
        self, path: str, args: str = "", working_directory: str = "", id: str = ""
    ) -> ExecAction:
        action = ExecAction(path=path, args=args, working_directory=working_directory, id=id)
        self.actions.append(action)
        return action

    def add_com_handler_action(
        self, class_id: str, data: str = "", id: str = ""
    ) -> ComHandlerAction:
        action = ComHandlerAction(class_id=class_id, data=data, id=id)
        self.actions.append(action)
        return action

    def add_boot_trigger(self, delay: Period = ZERO_PERIOD, **common: Any) -> BootTrigger:
        trigger = BootTrigger(delay=delay, **common)
        self.triggers.append(trigger)
        return trigger

    def add_daily_trigger(
        self,
        day_interval: int,
        start_boundary: datetime,
        random_delay: Period = ZERO_PERIOD,
        **common: Any,
    ) -> DailyTrigger:
        trigger = DailyTrigger(
            day_interval=day_interval,
            start_boundary=start_boundary,
            random_delay=random_delay,
            **common,
        )
        self.triggers.append(trigger)
        return trigger

    def add_event_trigger(
        self,
        subscription: str,
        value_queries: Mapping[str, str] | None = None,
        delay: Period = ZERO_PERIOD,
        **common: Any,
    ) -> EventTrigger:
        trigger = EventTrigger(
            subscription=subscription,
            value_queries=dict(value_queries or {}),
            delay=delay,
            **common,
        )
        self.triggers.append(trigger)
        return trigger

    def add_idle_trigger(self, **common: Any) -> IdleTrigger:
        trigger = IdleTrigger(**common)
        self.triggers.append(trigger)
        return trigger

    def add_logon_trigger(
        self, user_id: str = "", delay: Period = ZERO_PERIOD, **common: Any
    ) -> LogonTrigger:
        trigger = LogonTrigger(user_id=user_id, delay=delay, **common)
        self.triggers.append(trigger)
        return trigger

    def add_monthly_dow_trigger(
        self,
        days_of_week: DayOfWeek,
        weeks_of_month: Week,
        months_of_year: Month,
        start_boundary: datetime,
        run_on_last_week_of_month: bool = False,
        random_delay: Period = ZERO_PERIOD,
        **common: Any,
    ) -> MonthlyDOWTrigger:
        trigger = MonthlyDOWTrigger(
            days_of_week=days_of_week,
            weeks_of_month=weeks_of_month,
            months_of_year=months_of_year,
            start_boundary=start_boundary,
            run_on_last_week_of_month=run_on_last_week_of_month,
            random_delay=random_delay,
            **common,
        )
        self.triggers.append(trigger)
        return trigger

    def add_monthly_trigger(
        self,
        days_of_month: DayOfMonth,
        months_of_year: Month,
        start_boundary: datetime,
        run_on_last_day_of_month: bool = False,
        random_delay: Period = ZERO_PERIOD,
        **common: Any,
    ) -> MonthlyTrigger:
        trigger = MonthlyTrigger(
            days_of_month=days_of_month,
            months_of_year=months_of_year,
            start_boundary=start_boundary,
            run_on_last_day_of_month=run_on_last_day_of_month,
            random_delay=random_delay,
            **common,
        )
        self.triggers.append(trigger)
        return trigger

    def add_registration_trigger(
        self, delay: Period = ZERO_PERIOD, **common: Any
    ) -> RegistrationTrigger:
        trigger = RegistrationTrigger(delay=delay, **common)
        self.triggers.append(trigger)
        return trigger

    def add_session_state_change_trigger(
        self,
        state_change: SessionStateChange,
        user_id: str = "",
        delay: Period = ZERO_PERIOD,
        **common: Any,
    ) -> SessionStateChangeTrigger:
        trigger = SessionStateChangeTrigger(
            state_change=state_change, user_id=user_id, delay=delay, **common
        )
        self.triggers.append(trigger)
        return trigger

    def add_time_trigger(
        self, start_boundary: datetime, random_delay: Period = ZERO_PERIOD, **common: Any
    ) -> TimeTrigger:
        trigger = TimeTrigger(start_boundary=start_boundary, random_delay=random_delay, **common)
        self.triggers.append(trigger)
        return trigger

    def add_weekly_trigger(
        self,
        days_of_week: DayOfWeek,
        week_interval: int,
        start_boundary: datetime,
        random_delay: Period = ZERO_PERIOD,
        **common: Any,
    ) -> WeeklyTrigger:
        trigger = WeeklyTrigger(
            days_of_week=days_of_week,
            week_interval=week_interval,
            start_boundary=start_boundary,
            random_delay=random_delay,
            **common,
        )
        self.triggers.append(trigger)
        return trigger


# --- registered and running tasks ----------------------------------------------------


@dataclass(slots=True)
class RegisteredTask(CanonicalModel):
    """A task registered with the scheduler, owning its provider handle."""

    name: str
    path: str
    definition: Definition = field(default_factory=Definition)
    enabled: bool = False
    state: TaskState = TaskState.UNKNOWN
    missed_runs: int = 0
    next_run_time: datetime | None = None
    last_run_time: datetime | None = None
    last_task_result: int = 0
    handle: OwnedHandle | None = field(
        default=None, repr=False, compare=False, metadata=_UNSERIALIZED
    )

    def release(self) -> None:
        if self.handle is not None:
            self.handle.release()

    def __enter__(self) -> RegisteredTask:
        return self

    def __exit__(self, *_exc: object) -> None:
        self.release()


@dataclass(slots=True)
class RunningTask(CanonicalModel):
    """A live instance of a registered task, owning its provider handle."""

    current_action: str = ""
    engine_pid: int = 0
    instance_guid: str = ""
    name: str = ""
    path: str = ""
    state: TaskState = TaskState.UNKNOWN
    handle: OwnedHandle | None = field(
        default=None, repr=False, compare=False, metadata=_UNSERIALIZED
    )

    def release(self) -> None:
        if self.handle is not None:
            self.handle.release()

    def __enter__(self) -> RunningTask:
        return self

    def __exit__(self, *_exc: object) -> None:
        self.release()


@dataclass(slots=True)
class TaskFolder(CanonicalModel):
    """Node of the folder tree rebuilt on every enumeration."""

    name: str
    path: str
    sub_folders: list[TaskFolder] = field(default_factory=list)
    registered_tasks: list[RegisteredTask] = field(default_factory=list)

    def iter_folders(self) -> Iterator[TaskFolder]:
        """Yield this folder and every descendant, parents before children."""

        pending = [self]
        while pending:
            folder = pending.pop()
            yield folder
            pending.extend(reversed(folder.sub_folders))


class RegisteredTaskCollection:
    """Flat, path-indexed view of every task discovered by one enumeration."""

    __slots__ = ("_tasks",)

    def __init__(self) -> None:
        self._tasks: dict[str, RegisteredTask] = {}

    def add(self, task: RegisteredTask) -> None:
        if task.path in self._tasks:
            raise ValueError(f"duplicate task path {task.path!r}")
        self._tasks[task.path] = task

    def get(self, path: str) -> RegisteredTask | None:
        return self._tasks.get(path)

    def paths(self) -> list[str]:
        return list(self._tasks)

    def release(self) -> None:
        for task in self._tasks.values():
            task.release()

    def __getitem__(self, path: str) -> RegisteredTask:
        return self._tasks[path]

    def __contains__(self, path: object) -> bool:
        return path in self._tasks

    def __iter__(self) -> Iterator[RegisteredTask]:
        return iter(self._tasks.values())

    def __len__(self) -> int:
        return len(self._tasks)


class RunningTaskCollection(list[RunningTask]):
    """Ordered running-task instances with bulk release."""

    def release(self) -> None:
        for running in self:
            running.release()


def _serialize_value(value: object, path: str) -> JSONValue:
    if value is None or isinstance(value, bool):
        return cast("JSONValue", value)
    if isinstance(value, Enum):
        return cast("JSONValue", value.value)
    if isinstance(value, (int, str)):
        return value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Period):
        return encode_period(value)
    if isinstance(value, list):
        return [_serialize_value(item, f"{path}[]") for item in value]
    if isinstance(value, Mapping):
        return {str(key): _serialize_value(item, f"{path}.{key}") for key, item in value.items()}
    if is_dataclass(value):
        out: dict[str, JSONValue] = {}
        for tag_name in ("action_type", "trigger_type"):
            tag = getattr(value, tag_name, None)
            if isinstance(tag, Enum):
                out["type"] = tag.name
        for model_field in fields(value):
            if not model_field.metadata.get("serialize", True):
                continue
            out[model_field.name] = _serialize_value(
                getattr(value, model_field.name), f"{path}.{model_field.name}"
            )
        return out
    raise ValueError(f"{path}: unsupported value type {type(value).__name__}")


__all__ = [
    "Action",
    "BootTrigger",
    "CanonicalModel",
    "ComHandlerAction",
    "CustomTrigger",
    "DailyTrigger",
    "Definition",
    "EventTrigger",
    "ExecAction",
    "IdleSettings",
    "IdleTrigger",
    "LogonTrigger",
    "MonthlyDOWTrigger",
    "MonthlyTrigger",
    "NetworkSettings",
    "Principal",
    "RegisteredTask",
    "RegisteredTaskCollection",
    "RegistrationInfo",
    "RegistrationTrigger",
    "RepetitionPattern",
    "RunningTask",
    "RunningTaskCollection",
    "SessionStateChangeTrigger",
    "TaskFolder",
    "TaskSettings",
    "TimeTrigger",
    "Trigger",
    "TriggerBase",
    "WeeklyTrigger",
]

"""
winsched — domain layer

File: src/winsched/domain/__init__.py
Last updated: 2026-10-19

Purpose
- Task definitions, trigger/action variants, folders and task instances.

What should be included in this file
- Re-export of core domain entities for convenience.
- Keep the domain layer free of provider access.

Functional requirements
- Actions and triggers are closed unions dispatched on their type tag.

Non-functional requirements
- Domain layer should have minimal dependencies.
"""

from winsched.domain.enums import (
    ALL_DAYS,
    ALL_DAYS_OF_MONTH,
    ALL_MONTHS,
    ALL_WEEKS,
    ActionType,
    Compatibility,
    DayOfMonth,
    DayOfWeek,
    InstancesPolicy,
    LogonType,
    Month,
    RunFlags,
    RunLevel,
    SessionStateChange,
    TaskCreationFlags,
    TaskResult,
    TaskState,
    TriggerType,
    Week,
    day_of_month,
    describe_task_result,
)
from winsched.domain.models import (
    Action,
    BootTrigger,
    ComHandlerAction,
    CustomTrigger,
    DailyTrigger,
    Definition,
    EventTrigger,
    ExecAction,
    IdleSettings,
    IdleTrigger,
    LogonTrigger,
    MonthlyDOWTrigger,
    MonthlyTrigger,
    NetworkSettings,
    Principal,
    RegisteredTask,
    RegisteredTaskCollection,
    RegistrationInfo,
    RegistrationTrigger,
    RepetitionPattern,
    RunningTask,
    RunningTaskCollection,
    SessionStateChangeTrigger,
    TaskFolder,
    TaskSettings,
    TimeTrigger,
    Trigger,
    WeeklyTrigger,
)

__all__ = [
    "ALL_DAYS",
    "ALL_DAYS_OF_MONTH",
    "ALL_MONTHS",
    "ALL_WEEKS",
    "Action",
    "ActionType",
    "BootTrigger",
    "ComHandlerAction",
    "Compatibility",
    "CustomTrigger",
    "DailyTrigger",
    "DayOfMonth",
    "DayOfWeek",
    "Definition",
    "EventTrigger",
    "ExecAction",
    "IdleSettings",
    "IdleTrigger",
    "InstancesPolicy",
    "LogonTrigger",
    "LogonType",
    "Month",
    "MonthlyDOWTrigger",
    "MonthlyTrigger",
    "NetworkSettings",
    "Principal",
    "RegisteredTask",
    "RegisteredTaskCollection",
    "RegistrationInfo",
    "RegistrationTrigger",
    "RepetitionPattern",
    "RunFlags",
    "RunLevel",
    "RunningTask",
    "RunningTaskCollection",
    "SessionStateChange",
    "SessionStateChangeTrigger",
    "TaskCreationFlags",
    "TaskFolder",
    "TaskResult",
    "TaskSettings",
    "TaskState",
    "TimeTrigger",
    "Trigger",
    "TriggerType",
    "Week",
    "WeeklyTrigger",
    "day_of_month",
    "describe_task_result",
]

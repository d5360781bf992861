"""Numeric enumerations and bitmask flags of the Task Scheduler object model."""

from __future__ import annotations

from enum import IntEnum, IntFlag
from typing import Final


class ActionType(IntEnum):
    EXEC = 0
    COM_HANDLER = 5
    SEND_EMAIL = 6
    SHOW_MESSAGE = 7


SUPPORTED_ACTION_TYPES: Final[frozenset[ActionType]] = frozenset(
    {ActionType.EXEC, ActionType.COM_HANDLER}
)


class TriggerType(IntEnum):
    EVENT = 0
    TIME = 1
    DAILY = 2
    WEEKLY = 3
    MONTHLY = 4
    MONTHLY_DOW = 5
    IDLE = 6
    REGISTRATION = 7
    BOOT = 8
    LOGON = 9
    SESSION_STATE_CHANGE = 11
    CUSTOM = 12


class Compatibility(IntEnum):
    """Minimum scheduler version a definition is compatible with."""

    AT = 0
    V1 = 1
    V2 = 2
    V2_1 = 3
    V2_2 = 4
    V2_3 = 5
    V2_4 = 6


class TaskCreationFlags(IntFlag):
    VALIDATE_ONLY = 0x1
    CREATE = 0x2
    UPDATE = 0x4
    CREATE_OR_UPDATE = 0x6
    DISABLE = 0x8
    DONT_ADD_PRINCIPAL_ACE = 0x10
    IGNORE_REGISTRATION_TRIGGERS = 0x20


class InstancesPolicy(IntEnum):
    """How a new instance is handled while one is already running."""

    PARALLEL = 0
    QUEUE = 1
    IGNORE_NEW = 2
    STOP_EXISTING = 3


class LogonType(IntEnum):
    NONE = 0
    PASSWORD = 1
    S4U = 2
    INTERACTIVE_TOKEN = 3
    GROUP = 4
    SERVICE_ACCOUNT = 5
    INTERACTIVE_TOKEN_OR_PASSWORD = 6


class RunFlags(IntFlag):
    NO_FLAGS = 0
    AS_SELF = 0x1
    IGNORE_CONSTRAINTS = 0x2
    USE_SESSION_ID = 0x4
    USER_SID = 0x8


class RunLevel(IntEnum):
    LUA = 0
    HIGHEST = 1


class SessionStateChange(IntEnum):
    CONSOLE_CONNECT = 1
    CONSOLE_DISCONNECT = 2
    REMOTE_CONNECT = 3
    REMOTE_DISCONNECT = 4
    SESSION_LOCK = 7
    SESSION_UNLOCK = 8


class TaskState(IntEnum):
    UNKNOWN = 0
    DISABLED = 1
    QUEUED = 2
    READY = 3
    RUNNING = 4


class TaskResult(IntEnum):
    """Well-known ``LastTaskResult`` values reported by the scheduler."""

    SUCCESS = 0x0
    READY = 0x41300
    RUNNING = 0x41301
    DISABLED = 0x41302
    HAS_NOT_RUN = 0x41303
    NO_MORE_RUNS = 0x41304
    NOT_SCHEDULED = 0x41305
    TERMINATED = 0x41306
    NO_VALID_TRIGGERS = 0x41307
    EVENT_TRIGGER = 0x41308
    SOME_TRIGGERS_FAILED = 0x4131B
    BATCH_LOGON_PROBLEM = 0x4131C
    QUEUED = 0x41325


_TASK_RESULT_DESCRIPTIONS: Final[dict[TaskResult, str]] = {
    TaskResult.SUCCESS: "The task completed successfully",
    TaskResult.READY: "The task is ready to run at its next scheduled time",
    TaskResult.RUNNING: "The task is currently running",
    TaskResult.DISABLED: (
        "The task will not run at the scheduled times because it has been disabled"
    ),
    TaskResult.HAS_NOT_RUN: "The task has not yet run",
    TaskResult.NO_MORE_RUNS: "There are no more runs scheduled for this task",
    TaskResult.NOT_SCHEDULED: (
        "One or more of the properties that are needed to run this task on a schedule "
        "have not been set"
    ),
    TaskResult.TERMINATED: "The last run of the task was terminated by the user",
    TaskResult.NO_VALID_TRIGGERS: (
        "Either the task has no triggers or the existing triggers are disabled or not set"
    ),
    TaskResult.EVENT_TRIGGER: "Event triggers do not have set run times",
    TaskResult.SOME_TRIGGERS_FAILED: (
        "The task is registered, but not all specified triggers will start the task"
    ),
    TaskResult.BATCH_LOGON_PROBLEM: (
        "The task is registered, but may fail to start; batch logon privilege needs to be "
        "enabled for the task principal"
    ),
    TaskResult.QUEUED: "The Task Scheduler service has asked the task to run",
}


def describe_task_result(code: int) -> str:
    """Return a human-readable description of a ``LastTaskResult`` value."""

    try:
        known = TaskResult(code)
    except ValueError:
        return f"Task returned 0x{code & 0xFFFFFFFF:X}"
    return _TASK_RESULT_DESCRIPTIONS[known]


class _DescribedFlag(IntFlag):
    """Bitmask with a readable comma-separated rendering."""

    def describe(self) -> str:
        names = [
            member.name.replace("_", " ").title()
            for member in type(self)
            if member.value and member.value.bit_count() == 1 and member in self
        ]
        return ", ".join(names)


class DayOfWeek(_DescribedFlag):
    SUNDAY = 0x01
    MONDAY = 0x02
    TUESDAY = 0x04
    WEDNESDAY = 0x08
    THURSDAY = 0x10
    FRIDAY = 0x20
    SATURDAY = 0x40


ALL_DAYS: Final[DayOfWeek] = DayOfWeek(0x7F)


class Month(_DescribedFlag):
    JANUARY = 1 << 0
    FEBRUARY = 1 << 1
    MARCH = 1 << 2
    APRIL = 1 << 3
    MAY = 1 << 4
    JUNE = 1 << 5
    JULY = 1 << 6
    AUGUST = 1 << 7
    SEPTEMBER = 1 << 8
    OCTOBER = 1 << 9
    NOVEMBER = 1 << 10
    DECEMBER = 1 << 11


ALL_MONTHS: Final[Month] = Month(0xFFF)


class Week(_DescribedFlag):
    FIRST = 0x01
    SECOND = 0x02
    THIRD = 0x04
    FOURTH = 0x08
    LAST = 0x10


ALL_WEEKS: Final[Week] = Week(0x1F)


class DayOfMonth(_DescribedFlag):
    """Days 1..31 of a month; bit 31 selects the last day regardless of length."""

    DAY_1 = 1 << 0
    DAY_2 = 1 << 1
    DAY_3 = 1 << 2
    DAY_4 = 1 << 3
    DAY_5 = 1 << 4
    DAY_6 = 1 << 5
    DAY_7 = 1 << 6
    DAY_8 = 1 << 7
    DAY_9 = 1 << 8
    DAY_10 = 1 << 9
    DAY_11 = 1 << 10
    DAY_12 = 1 << 11
    DAY_13 = 1 << 12
    DAY_14 = 1 << 13
    DAY_15 = 1 << 14
    DAY_16 = 1 << 15
    DAY_17 = 1 << 16
    DAY_18 = 1 << 17
    DAY_19 = 1 << 18
    DAY_20 = 1 << 19
    DAY_21 = 1 << 20
    DAY_22 = 1 << 21
    DAY_23 = 1 << 22
    DAY_24 = 1 << 23
    DAY_25 = 1 << 24
    DAY_26 = 1 << 25
    DAY_27 = 1 << 26
    DAY_28 = 1 << 27
    DAY_29 = 1 << 28
    DAY_30 = 1 << 29
    DAY_31 = 1 << 30
    LAST_DAY = 1 << 31


ALL_DAYS_OF_MONTH: Final[DayOfMonth] = DayOfMonth((1 << 31) - 1)


def day_of_month(day: int) -> DayOfMonth:
    """Return the flag for ``day`` (1..31); 32 selects the last day of the month."""

    if isinstance(day, bool) or not isinstance(day, int) or not 1 <= day <= 32:
        raise ValueError(f"day must be between 1 and 32, got {day!r}")
    return DayOfMonth(1 << (day - 1))


# Valid bit ranges, used by validation and by the provider mapping.
DAY_OF_WEEK_MASK: Final[int] = 0x7F
MONTH_MASK: Final[int] = 0xFFF
WEEK_MASK: Final[int] = 0x1F
DAY_OF_MONTH_MASK: Final[int] = 0xFFFFFFFF

EVERY_DAY: Final[int] = 1
EVERY_OTHER_DAY: Final[int] = 2
EVERY_WEEK: Final[int] = 1
EVERY_OTHER_WEEK: Final[int] = 2


__all__ = [
    "ALL_DAYS",
    "ALL_DAYS_OF_MONTH",
    "ALL_MONTHS",
    "ALL_WEEKS",
    "ActionType",
    "Compatibility",
    "DAY_OF_MONTH_MASK",
    "DAY_OF_WEEK_MASK",
    "DayOfMonth",
    "DayOfWeek",
    "EVERY_DAY",
    "EVERY_OTHER_DAY",
    "EVERY_OTHER_WEEK",
    "EVERY_WEEK",
    "InstancesPolicy",
    "LogonType",
    "MONTH_MASK",
    "Month",
    "RunFlags",
    "RunLevel",
    "SUPPORTED_ACTION_TYPES",
    "SessionStateChange",
    "TaskCreationFlags",
    "TaskResult",
    "TaskState",
    "TriggerType",
    "WEEK_MASK",
    "Week",
    "day_of_month",
    "describe_task_result",
]

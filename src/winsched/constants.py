"""Stable constants shared across the scheduler mapping layer."""

from __future__ import annotations

from typing import Final

# Task Scheduler object-model paths.
ROOT_PATH: Final[str] = "\\"
PATH_SEPARATOR: Final[str] = "\\"

# COM registration of the scheduler service.
SCHEDULE_SERVICE_PROGID: Final[str] = "Schedule.Service"

# Enumeration flag accepted by GetTasks/GetRunningTasks.
TASK_ENUM_HIDDEN: Final[int] = 1
TASK_ENUM_DEFAULT: Final[int] = 0

# OLE automation DATE values before this year represent "never".
OLE_ZERO_DATE_YEAR: Final[int] = 1900

__all__ = [
    "OLE_ZERO_DATE_YEAR",
    "PATH_SEPARATOR",
    "ROOT_PATH",
    "SCHEDULE_SERVICE_PROGID",
    "TASK_ENUM_DEFAULT",
    "TASK_ENUM_HIDDEN",
]

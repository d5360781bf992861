"""
winsched package root.

File: src/winsched/__init__.py
Last updated: 2026-10-19

Purpose
- Typed mapping layer over the Windows Task Scheduler object model: build task
  definitions as dataclasses, register them, and enumerate the folder/task tree.

What should be included in this file
- Version export and a small public surface: the session, core models, errors.

Functional requirements
- Importing the package never touches the native provider.

Non-functional requirements
- Keep import-time side effects to zero.
"""

from winsched.codec import ZERO_PERIOD, CodecError, Period
from winsched.domain.models import Definition, RegisteredTask, RunningTask, TaskFolder
from winsched.errors import (
    AccessDeniedError,
    InvalidDefinitionError,
    InvalidPathError,
    NativeError,
    NotFoundError,
    ParseError,
    ProviderCallError,
    ProviderUnavailableError,
    RunningTaskCompletedError,
    SchedulerConnectionError,
    SchedulerError,
    SerializationError,
    TaskDisabledError,
    classify_error,
)
from winsched.session import TaskService
from winsched.validation import validate_definition
from winsched.walker import FolderTree, FolderTreeWalker, walk_folder_tree

__version__ = "0.1.0"

__all__ = [
    "AccessDeniedError",
    "CodecError",
    "Definition",
    "FolderTree",
    "FolderTreeWalker",
    "InvalidDefinitionError",
    "InvalidPathError",
    "NativeError",
    "NotFoundError",
    "ParseError",
    "Period",
    "ProviderCallError",
    "ProviderUnavailableError",
    "RegisteredTask",
    "RunningTask",
    "RunningTaskCompletedError",
    "SchedulerConnectionError",
    "SchedulerError",
    "SerializationError",
    "TaskDisabledError",
    "TaskFolder",
    "TaskService",
    "ZERO_PERIOD",
    "classify_error",
    "validate_definition",
    "walk_folder_tree",
]

"""
winsched — error taxonomy and native code classification

File: src/winsched/errors.py
Last updated: 2026-10-19

Purpose
- Typed error hierarchy for every failure surfaced by the mapping layer.
- Map native HRESULT / Win32 status codes to that hierarchy.

What should be included in this file
- ``SchedulerError`` base with the native code attached.
- ``ProviderCallError`` raised by provider adapters before classification.
- A fixed classification table with descriptive messages.

Functional requirements
- Unknown codes become ``NativeError`` and keep the code for diagnostics.
- Signed HRESULTs (as surfaced by pywin32) classify the same as unsigned ones.

Non-functional requirements
- Classification is a pure lookup; no provider access.
"""

from __future__ import annotations

from typing import Final

_UINT32_MASK: Final[int] = 0xFFFFFFFF

E_ACCESS_DENIED: Final[int] = 0x80070005
E_FILE_NOT_FOUND: Final[int] = 0x80070002
E_PATH_NOT_FOUND: Final[int] = 0x80070003
E_OUT_OF_MEMORY: Final[int] = 0x8007000E
E_NOT_SUPPORTED: Final[int] = 0x80070032
ERROR_NOT_SUPPORTED: Final[int] = 50
ERROR_BAD_NETPATH: Final[int] = 53
SCHED_E_TASK_NOT_RUNNING: Final[int] = 0x8004130B
SCHED_E_SERVICE_NOT_RUNNING: Final[int] = 0x80041315
SCHED_E_MALFORMEDXML: Final[int] = 0x80041318
SCHED_E_INVALIDVALUE: Final[int] = 0x80041319
SCHED_E_DEPRECATED_FEATURE_USED: Final[int] = 0x80041330
SCHED_S_SOME_TRIGGERS_FAILED: Final[int] = 0x0004131B
SCHED_S_BATCH_LOGON_PROBLEM: Final[int] = 0x0004131C


def normalize_code(code: int) -> int:
    """Return ``code`` as an unsigned 32-bit value."""

    return int(code) & _UINT32_MASK


class SchedulerError(RuntimeError):
    """Base error for scheduler mapping failures."""

    def __init__(self, detail: str, *, code: int | None = None) -> None:
        self.detail = detail.strip() or "unspecified failure"
        self.code = normalize_code(code) if code is not None else None
        if self.code is None:
            message = self.detail
        else:
            message = f"{self.detail} (code=0x{self.code:08X})"
        super().__init__(message)


class SchedulerConnectionError(SchedulerError):
    """The scheduler service cannot be reached or the target is unsupported."""


class ProviderUnavailableError(SchedulerConnectionError):
    """The native provider runtime (pywin32) is not importable."""


class NotFoundError(SchedulerError):
    """A task or folder path does not exist."""


class InvalidDefinitionError(SchedulerError):
    """A definition violates an invariant or uses an unsupported variant."""


class InvalidPathError(SchedulerError, ValueError):
    """A task or folder path is not rooted at the scheduler root."""


class TaskDisabledError(SchedulerError):
    """A disabled task was asked to run."""


class SerializationError(SchedulerError):
    """Writing a definition into the provider object tree failed."""


class ParseError(SchedulerError):
    """Reading a provider object tree into domain values failed."""


class RunningTaskCompletedError(ParseError):
    """A running task finished while its properties were being read."""


class AccessDeniedError(SchedulerError):
    """The caller lacks permission for the requested operation."""


class NativeError(SchedulerError):
    """Unrecognized native status code, passed through unchanged."""

    def __init__(self, detail: str, *, code: int) -> None:
        super().__init__(detail, code=code)


class ProviderCallError(Exception):
    """Raw failure reported by a provider adapter, prior to classification."""

    def __init__(self, code: int, detail: str = "") -> None:
        self.code = normalize_code(code)
        self.detail = detail.strip()
        rendered = f"0x{self.code:08X}"
        if self.detail:
            rendered = f"{rendered}: {self.detail}"
        super().__init__(rendered)


_CLASSIFICATION: Final[dict[int, tuple[type[SchedulerError], str]]] = {
    E_ACCESS_DENIED: (AccessDeniedError, "access is denied"),
    E_FILE_NOT_FOUND: (NotFoundError, "the system cannot find the file specified"),
    E_PATH_NOT_FOUND: (NotFoundError, "the system cannot find the path specified"),
    E_NOT_SUPPORTED: (
        SchedulerConnectionError,
        "target is not supported (Windows XP and Server 2003 are unsupported)",
    ),
    ERROR_NOT_SUPPORTED: (
        SchedulerConnectionError,
        "target is not supported (Windows XP and Server 2003 are unsupported)",
    ),
    ERROR_BAD_NETPATH: (SchedulerConnectionError, "the network path was not found"),
    SCHED_E_SERVICE_NOT_RUNNING: (
        SchedulerConnectionError,
        "the Task Scheduler service is not running",
    ),
    SCHED_E_MALFORMEDXML: (InvalidDefinitionError, "the task definition is malformed"),
    SCHED_E_INVALIDVALUE: (
        InvalidDefinitionError,
        "the task definition contains an out-of-range value",
    ),
    SCHED_E_DEPRECATED_FEATURE_USED: (
        InvalidDefinitionError,
        "the task definition uses a deprecated feature",
    ),
}

_NATIVE_DESCRIPTIONS: Final[dict[int, str]] = {
    E_OUT_OF_MEMORY: "the provider ran out of memory",
    SCHED_S_SOME_TRIGGERS_FAILED: "the task registered but some triggers failed to start",
    SCHED_S_BATCH_LOGON_PROBLEM: (
        "the task registered but the account may lack the batch logon privilege"
    ),
}


def classify_error(
    code: int,
    detail: str = "",
    *,
    running_task: bool = False,
) -> SchedulerError:
    """Map a native status code to a typed error instance.

    ``running_task`` enables the completed-while-reading classification, which only
    applies when a running-task object is being read.
    """

    normalized = normalize_code(code)
    context = detail.strip()

    if running_task and normalized == SCHED_E_TASK_NOT_RUNNING:
        message = "running task completed while it was being read"
        return RunningTaskCompletedError(_join(context, message), code=normalized)

    known = _CLASSIFICATION.get(normalized)
    if known is not None:
        error_type, description = known
        return error_type(_join(context, description), code=normalized)

    description = _NATIVE_DESCRIPTIONS.get(normalized, "unrecognized native error")
    return NativeError(_join(context, description), code=normalized)


def classify_provider_error(
    exc: ProviderCallError,
    context: str,
    *,
    running_task: bool = False,
) -> SchedulerError:
    """Classify an adapter failure, prefixing the operation context."""

    detail = context if not exc.detail else f"{context}: {exc.detail}"
    return classify_error(exc.code, detail, running_task=running_task)


def _join(context: str, description: str) -> str:
    if not context:
        return description
    return f"{context}: {description}"


__all__ = [
    "AccessDeniedError",
    "E_ACCESS_DENIED",
    "E_FILE_NOT_FOUND",
    "E_PATH_NOT_FOUND",
    "InvalidDefinitionError",
    "InvalidPathError",
    "NativeError",
    "NotFoundError",
    "ParseError",
    "ProviderCallError",
    "ProviderUnavailableError",
    "RunningTaskCompletedError",
    "SCHED_E_TASK_NOT_RUNNING",
    "SchedulerConnectionError",
    "SchedulerError",
    "SerializationError",
    "TaskDisabledError",
    "classify_error",
    "classify_provider_error",
    "normalize_code",
]

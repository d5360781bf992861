"""
winsched — definition validation

File: src/winsched/validation.py
Last updated: 2026-10-19

Purpose
- Reject definitions the scheduler would refuse (or silently misregister) before any
  provider object is touched.

What should be included in this file
- One fail-fast entry point, ``validate_definition``.
- Small per-concern rule functions in the order they are applied.

Functional requirements
- The first violation raises ``InvalidDefinitionError`` describing the offending item.
- Validation never mutates the definition.

Non-functional requirements
- Pure; no provider access and no logging.
"""

from __future__ import annotations

from typing import Final, assert_never

from winsched.domain.enums import (
    DAY_OF_MONTH_MASK,
    DAY_OF_WEEK_MASK,
    MONTH_MASK,
    SUPPORTED_ACTION_TYPES,
    WEEK_MASK,
)
from winsched.domain.models import (
    BootTrigger,
    ComHandlerAction,
    CustomTrigger,
    DailyTrigger,
    Definition,
    EventTrigger,
    ExecAction,
    IdleTrigger,
    LogonTrigger,
    MonthlyDOWTrigger,
    MonthlyTrigger,
    RegistrationTrigger,
    SessionStateChangeTrigger,
    TimeTrigger,
    Trigger,
    WeeklyTrigger,
)
from winsched.errors import InvalidDefinitionError

_CALENDAR_TRIGGERS: Final[tuple[type[Trigger], ...]] = (
    DailyTrigger,
    WeeklyTrigger,
    MonthlyTrigger,
    MonthlyDOWTrigger,
)


def validate_definition(definition: Definition) -> None:
    """Raise ``InvalidDefinitionError`` on the first rule ``definition`` breaks."""

    _check_actions(definition)
    _check_principal(definition)
    for index, trigger in enumerate(definition.triggers):
        _check_trigger(trigger, f"triggers[{index}]")


def _check_actions(definition: Definition) -> None:
    if not definition.actions:
        raise InvalidDefinitionError("definition must contain at least one action")
    for index, action in enumerate(definition.actions):
        if not isinstance(action, (ExecAction, ComHandlerAction)):
            raise InvalidDefinitionError(
                f"actions[{index}]: unsupported action {type(action).__name__}"
            )
        if action.action_type not in SUPPORTED_ACTION_TYPES:
            raise InvalidDefinitionError(
                f"actions[{index}]: unsupported action type {int(action.action_type)}"
            )


def _check_principal(definition: Definition) -> None:
    principal = definition.principal
    if principal.user_id and principal.group_id:
        raise InvalidDefinitionError(
            "principal: user_id and group_id are mutually exclusive "
            f"(user_id={principal.user_id!r}, group_id={principal.group_id!r})"
        )


def _check_trigger(trigger: Trigger, where: str) -> None:
    name = type(trigger).__name__
    if isinstance(trigger, _CALENDAR_TRIGGERS) and trigger.start_boundary is None:
        raise InvalidDefinitionError(f"{where}: {name} requires a start_boundary")

    match trigger:
        case DailyTrigger():
            _check_interval(trigger.day_interval, "day_interval", where)
        case WeeklyTrigger():
            _check_mask(trigger.days_of_week, DAY_OF_WEEK_MASK, "days_of_week", where)
            _check_interval(trigger.week_interval, "week_interval", where)
        case MonthlyTrigger():
            _check_mask(trigger.days_of_month, DAY_OF_MONTH_MASK, "days_of_month", where)
            _check_mask(trigger.months_of_year, MONTH_MASK, "months_of_year", where)
        case MonthlyDOWTrigger():
            _check_mask(trigger.days_of_week, DAY_OF_WEEK_MASK, "days_of_week", where)
            _check_mask(trigger.weeks_of_month, WEEK_MASK, "weeks_of_month", where)
            _check_mask(trigger.months_of_year, MONTH_MASK, "months_of_year", where)
        case EventTrigger():
            if not trigger.subscription.strip():
                raise InvalidDefinitionError(f"{where}: event trigger requires a subscription")
        case CustomTrigger():
            raise InvalidDefinitionError(f"{where}: custom triggers cannot be registered")
        case (
            BootTrigger()
            | IdleTrigger()
            | LogonTrigger()
            | RegistrationTrigger()
            | SessionStateChangeTrigger()
            | TimeTrigger()
        ):
            pass
        case _:
            assert_never(trigger)


def _check_mask(value: int, valid: int, field_name: str, where: str) -> None:
    bits = int(value)
    if bits == 0:
        raise InvalidDefinitionError(f"{where}: {field_name} must select at least one value")
    if bits < 0 or bits & ~valid:
        raise InvalidDefinitionError(
            f"{where}: {field_name} 0x{bits:X} is outside the valid mask 0x{valid:X}"
        )


def _check_interval(value: int, field_name: str, where: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise InvalidDefinitionError(f"{where}: {field_name} must be >= 1, got {value!r}")


__all__ = ["validate_definition"]

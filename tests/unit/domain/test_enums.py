"""Unit tests for scheduler enumerations and bitmask helpers."""

from __future__ import annotations

import pytest

from winsched.domain.enums import (
    ALL_DAYS,
    ALL_DAYS_OF_MONTH,
    ALL_MONTHS,
    ALL_WEEKS,
    DAY_OF_MONTH_MASK,
    DAY_OF_WEEK_MASK,
    MONTH_MASK,
    SUPPORTED_ACTION_TYPES,
    WEEK_MASK,
    ActionType,
    DayOfMonth,
    DayOfWeek,
    Month,
    TaskCreationFlags,
    TaskResult,
    TriggerType,
    Week,
    day_of_month,
    describe_task_result,
)


@pytest.mark.unit
def test_numeric_values_match_the_object_model() -> None:
    assert TriggerType.EVENT == 0
    assert TriggerType.SESSION_STATE_CHANGE == 11
    assert TriggerType.CUSTOM == 12
    assert ActionType.COM_HANDLER == 5
    assert TaskCreationFlags.CREATE_OR_UPDATE == TaskCreationFlags.CREATE | TaskCreationFlags.UPDATE
    assert SUPPORTED_ACTION_TYPES == {ActionType.EXEC, ActionType.COM_HANDLER}


@pytest.mark.unit
def test_all_masks_cover_exactly_the_valid_bits() -> None:
    assert int(ALL_DAYS) == DAY_OF_WEEK_MASK
    assert int(ALL_MONTHS) == MONTH_MASK
    assert int(ALL_WEEKS) == WEEK_MASK
    assert int(ALL_DAYS_OF_MONTH | DayOfMonth.LAST_DAY) == DAY_OF_MONTH_MASK
    assert DayOfMonth.LAST_DAY not in ALL_DAYS_OF_MONTH


@pytest.mark.unit
def test_day_of_month_helper() -> None:
    assert day_of_month(1) is DayOfMonth.DAY_1
    assert day_of_month(31) is DayOfMonth.DAY_31
    assert day_of_month(32) is DayOfMonth.LAST_DAY

    for bad in (0, 33, True, "5"):
        with pytest.raises(ValueError, match="day must be between 1 and 32"):
            day_of_month(bad)  # type: ignore[arg-type]


@pytest.mark.unit
def test_flags_describe_their_members_in_declaration_order() -> None:
    assert (DayOfWeek.FRIDAY | DayOfWeek.MONDAY).describe() == "Monday, Friday"
    assert (Week.LAST | Week.FIRST).describe() == "First, Last"
    assert Month.DECEMBER.describe() == "December"
    assert DayOfMonth.LAST_DAY.describe() == "Last Day"
    assert DayOfWeek(0).describe() == ""


@pytest.mark.unit
def test_describe_task_result_known_and_unknown_codes() -> None:
    assert describe_task_result(0) == "The task completed successfully"
    assert describe_task_result(TaskResult.HAS_NOT_RUN) == "The task has not yet run"
    assert describe_task_result(0x41306).startswith("The last run of the task was terminated")
    assert describe_task_result(1) == "Task returned 0x1"
    assert describe_task_result(-2147024894) == "Task returned 0x80070002"

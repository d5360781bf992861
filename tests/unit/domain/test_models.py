"""Unit tests for core domain models."""

from __future__ import annotations

import json
from dataclasses import fields
from datetime import datetime

import pytest

from tests.fakes import FakeNode, HandleTracker
from winsched.codec import ZERO_PERIOD, Period
from winsched.domain.enums import (
    ALL_MONTHS,
    DayOfMonth,
    DayOfWeek,
    Month,
    SessionStateChange,
    TaskState,
    TriggerType,
    Week,
)
from winsched.domain.models import (
    ComHandlerAction,
    DailyTrigger,
    Definition,
    EventTrigger,
    ExecAction,
    MonthlyDOWTrigger,
    MonthlyTrigger,
    RegisteredTask,
    RegisteredTaskCollection,
    RunningTask,
    RunningTaskCollection,
    SessionStateChangeTrigger,
    TaskFolder,
    WeeklyTrigger,
)
from winsched.provider.handles import OwnedHandle

_START = datetime(2024, 2, 1, 9, 0)


@pytest.mark.unit
def test_new_definition_defaults_mirror_a_fresh_provider_definition() -> None:
    definition = Definition()

    assert definition.actions == []
    assert definition.triggers == []
    assert definition.settings.enabled is True
    assert definition.settings.time_limit == Period(hours=72)
    assert definition.settings.priority == 7
    assert definition.settings.idle_settings.idle_duration == Period(minutes=10)
    assert definition.registration_info.date is None


@pytest.mark.unit
def test_builders_append_typed_variants() -> None:
    definition = Definition()
    exec_action = definition.add_exec_action("cmd.exe", args="/c echo hi", working_directory="C:\\")
    com_action = definition.add_com_handler_action("{CLSID}", data="payload")
    daily = definition.add_daily_trigger(2, _START, random_delay=Period(minutes=5), id="daily")
    weekly = definition.add_weekly_trigger(DayOfWeek.TUESDAY, 1, _START)
    monthly = definition.add_monthly_trigger(DayOfMonth.DAY_15, ALL_MONTHS, _START)
    monthly_dow = definition.add_monthly_dow_trigger(
        DayOfWeek.SUNDAY, Week.LAST, Month.MARCH | Month.OCTOBER, _START
    )
    event = definition.add_event_trigger("<QueryList />", {"level": "Event/System/Level"})
    session = definition.add_session_state_change_trigger(
        SessionStateChange.REMOTE_CONNECT, user_id="CORP\\alice"
    )

    assert definition.actions == [exec_action, com_action]
    assert isinstance(exec_action, ExecAction)
    assert exec_action.working_directory == "C:\\"
    assert isinstance(com_action, ComHandlerAction)
    assert [type(trigger) for trigger in definition.triggers] == [
        DailyTrigger,
        WeeklyTrigger,
        MonthlyTrigger,
        MonthlyDOWTrigger,
        EventTrigger,
        SessionStateChangeTrigger,
    ]
    assert daily.id == "daily"
    assert daily.random_delay == Period(minutes=5)
    assert weekly.week_interval == 1
    assert monthly.days_of_month == DayOfMonth.DAY_15
    assert monthly_dow.months_of_year == Month.MARCH | Month.OCTOBER
    assert event.value_queries == {"level": "Event/System/Level"}
    assert session.state_change is SessionStateChange.REMOTE_CONNECT
    assert definition.triggers[0].trigger_type is TriggerType.DAILY


@pytest.mark.unit
def test_to_dict_tags_variants_and_encodes_values() -> None:
    definition = Definition()
    definition.add_exec_action("job.exe")
    definition.add_daily_trigger(1, _START)
    definition.settings.time_limit = Period(hours=2)

    payload = definition.to_dict()

    assert payload["actions"] == [
        {"type": "EXEC", "path": "job.exe", "args": "", "working_directory": "", "id": ""}
    ]
    trigger = payload["triggers"][0]  # type: ignore[index]
    assert trigger["type"] == "DAILY"  # type: ignore[index]
    assert trigger["start_boundary"] == "2024-02-01T09:00:00"  # type: ignore[index]
    assert trigger["end_boundary"] is None  # type: ignore[index]
    assert trigger["random_delay"] == ""  # type: ignore[index]
    assert payload["settings"]["time_limit"] == "PT2H"  # type: ignore[index]
    assert payload["principal"]["logon_type"] == 3  # type: ignore[index]

    rendered = definition.to_json()
    assert json.loads(rendered) == payload
    assert rendered == definition.to_json()


@pytest.mark.unit
def test_registered_task_serialization_skips_the_handle() -> None:
    tracker = HandleTracker()
    task = RegisteredTask(
        name="Nightly",
        path="\\Nightly",
        enabled=True,
        state=TaskState.READY,
        handle=OwnedHandle(tracker.handle(FakeNode("task"))),
    )

    payload = task.to_dict()

    assert "handle" not in payload
    assert payload["state"] == 3
    assert "handle" in {item.name for item in fields(task)}

    with task:
        assert tracker.live
    tracker.assert_clean()
    task.release()
    tracker.assert_clean()


@pytest.mark.unit
def test_iter_folders_visits_parents_before_children_in_order() -> None:
    leaf = TaskFolder("C", "\\A\\C")
    a = TaskFolder("A", "\\A", sub_folders=[TaskFolder("B", "\\A\\B"), leaf])
    root = TaskFolder("\\", "\\", sub_folders=[a, TaskFolder("D", "\\D")])

    assert [folder.path for folder in root.iter_folders()] == [
        "\\",
        "\\A",
        "\\A\\B",
        "\\A\\C",
        "\\D",
    ]


@pytest.mark.unit
def test_registered_task_collection_indexes_by_path_and_rejects_duplicates() -> None:
    tracker = HandleTracker()
    collection = RegisteredTaskCollection()
    first = RegisteredTask("One", "\\One", handle=OwnedHandle(tracker.handle(FakeNode("task"))))
    second = RegisteredTask("Two", "\\Sub\\Two")
    collection.add(first)
    collection.add(second)

    assert len(collection) == 2
    assert collection.paths() == ["\\One", "\\Sub\\Two"]
    assert "\\Sub\\Two" in collection
    assert collection["\\One"] is first
    assert collection.get("\\Missing") is None
    assert list(collection) == [first, second]

    with pytest.raises(ValueError, match="duplicate task path"):
        collection.add(RegisteredTask("One", "\\One"))

    collection.release()
    tracker.assert_clean()


@pytest.mark.unit
def test_running_task_collection_releases_every_instance() -> None:
    tracker = HandleTracker()
    collection = RunningTaskCollection(
        RunningTask(path=f"\\Job{index}", handle=OwnedHandle(tracker.handle(FakeNode("running"))))
        for index in range(3)
    )

    assert len(tracker.live) == 3
    collection.release()
    collection.release()
    tracker.assert_clean()


@pytest.mark.unit
def test_repetition_defaults_are_independent_per_trigger() -> None:
    first = DailyTrigger()
    second = DailyTrigger()
    first.repetition.interval = Period(minutes=15)

    assert second.repetition.interval == ZERO_PERIOD

"""
winsched — provider object parser

File: src/winsched/mapping/parser.py
Last updated: 2026-10-19

Purpose
- Read provider task objects into ``RegisteredTask``/``RunningTask``/``Definition``.

What should be included in this file
- Type-tag dispatch over the closed action and trigger unions.
- Field-level error context for malformed provider values.
- Ownership transfer of task handles into the returned domain objects.

Functional requirements
- Unknown type tags raise ``ParseError`` and never produce a default variant.
- A running task that completes while being read raises
  ``RunningTaskCompletedError``.

Non-functional requirements
- Every sub-object read here is released before returning or raising.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from enum import IntEnum
from typing import Any, TypeVar, assert_never

from winsched.codec import CodecError
from winsched.domain.enums import ActionType, TriggerType
from winsched.domain.models import (
    Action,
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
    RegisteredTask,
    RegistrationTrigger,
    RunningTask,
    SessionStateChangeTrigger,
    TimeTrigger,
    Trigger,
    WeeklyTrigger,
)
from winsched.errors import ParseError, ProviderCallError, classify_provider_error
from winsched.mapping import properties as props
from winsched.provider.handles import OwnedHandle, acquired, as_provider_object
from winsched.provider.protocol import ProviderObject

_TagT = TypeVar("_TagT", bound=IntEnum)

_VALUE_FAILURES = (CodecError, TypeError, ValueError)


def parse_registered_task(task_obj: ProviderObject) -> RegisteredTask:
    """Parse a registered task, taking ownership of ``task_obj``.

    On failure the handle is released before the error propagates.
    """

    handle = OwnedHandle(task_obj)
    with ExitStack() as guard:
        guard.callback(handle.release)
        values = read_values(task_obj, props.REGISTERED_TASK_BINDINGS, context="RegisteredTask")
        context = f"task {values['path']}"
        with _sub_object(task_obj, props.DEFINITION, context) as definition_obj:
            definition = parse_definition(definition_obj, context=context)
        guard.pop_all()
    return RegisteredTask(**values, definition=definition, handle=handle)


def parse_running_task(running_obj: ProviderObject) -> RunningTask:
    """Parse a running task instance, taking ownership of ``running_obj``."""

    handle = OwnedHandle(running_obj)
    with ExitStack() as guard:
        guard.callback(handle.release)
        values = read_values(
            running_obj, props.RUNNING_TASK_BINDINGS, context="RunningTask", running_task=True
        )
        guard.pop_all()
    return RunningTask(**values, handle=handle)


def reload_running_task(running: RunningTask) -> None:
    """Re-read the live properties of ``running`` in place."""

    if running.handle is None or running.handle.released:
        raise ParseError(f"running task {running.path}: handle has been released")
    values = read_values(
        running.handle.obj,
        props.RUNNING_TASK_BINDINGS,
        context=f"running task {running.path}",
        running_task=True,
    )
    for name, value in values.items():
        setattr(running, name, value)


def parse_definition(definition_obj: ProviderObject, *, context: str = "Definition") -> Definition:
    definition = Definition()
    read_into(definition_obj, definition, props.DEFINITION_BINDINGS, context=context)

    with _sub_object(definition_obj, props.ACTIONS, context) as actions_obj:
        read_into(actions_obj, definition, props.ACTIONS_COLLECTION_BINDINGS, context=context)
        for index, action_obj in enumerate(_iterate(actions_obj, f"{context}: actions")):
            with acquired(action_obj):
                definition.actions.append(
                    parse_action(action_obj, context=f"{context}: actions[{index}]")
                )

    with _sub_object(definition_obj, props.PRINCIPAL, context) as principal_obj:
        read_into(principal_obj, definition.principal, props.PRINCIPAL_BINDINGS, context=context)

    with _sub_object(definition_obj, props.REGISTRATION_INFO, context) as info_obj:
        read_into(
            info_obj,
            definition.registration_info,
            props.REGISTRATION_INFO_BINDINGS,
            context=context,
        )

    settings = definition.settings
    with _sub_object(definition_obj, props.SETTINGS, context) as settings_obj:
        read_into(settings_obj, settings, props.SETTINGS_BINDINGS, context=context)
        with _sub_object(settings_obj, props.IDLE_SETTINGS, context) as idle_obj:
            read_into(
                idle_obj, settings.idle_settings, props.IDLE_SETTINGS_BINDINGS, context=context
            )
        with _sub_object(settings_obj, props.NETWORK_SETTINGS, context) as network_obj:
            read_into(
                network_obj,
                settings.network_settings,
                props.NETWORK_SETTINGS_BINDINGS,
                context=context,
            )

    with _sub_object(definition_obj, props.TRIGGERS, context) as triggers_obj:
        for index, trigger_obj in enumerate(_iterate(triggers_obj, f"{context}: triggers")):
            with acquired(trigger_obj):
                definition.triggers.append(
                    parse_trigger(trigger_obj, context=f"{context}: triggers[{index}]")
                )

    return definition


def parse_action(action_obj: ProviderObject, *, context: str = "action") -> Action:
    action_type = _type_tag(action_obj, ActionType, "action", context)

    action: Action
    match action_type:
        case ActionType.EXEC:
            action = ExecAction()
        case ActionType.COM_HANDLER:
            action = ComHandlerAction()
        case ActionType.SEND_EMAIL | ActionType.SHOW_MESSAGE:
            raise ParseError(
                f"{context}: unsupported action type {int(action_type)} ({action_type.name})"
            )
        case _:
            assert_never(action_type)

    read_into(action_obj, action, props.ACTION_COMMON_BINDINGS, context=context)
    with _typed_view(action_obj, props.ACTION_INTERFACE_IDS[action_type], context) as view:
        read_into(view, action, props.ACTION_BINDINGS[action_type], context=context)
    return action


def parse_trigger(trigger_obj: ProviderObject, *, context: str = "trigger") -> Trigger:
    trigger_type = _type_tag(trigger_obj, TriggerType, "trigger", context)
    trigger = _new_trigger(trigger_type)

    read_into(trigger_obj, trigger, props.TRIGGER_COMMON_BINDINGS, context=context)
    with _sub_object(trigger_obj, props.REPETITION, context) as repetition_obj:
        read_into(repetition_obj, trigger.repetition, props.REPETITION_BINDINGS, context=context)

    identifier = props.TRIGGER_INTERFACE_IDS.get(trigger_type)
    if identifier is None:
        return trigger

    with _typed_view(trigger_obj, identifier, context) as view:
        read_into(view, trigger, props.TRIGGER_BINDINGS[trigger_type], context=context)
        if isinstance(trigger, EventTrigger):
            trigger.value_queries = _read_value_queries(view, context)
    return trigger


def _new_trigger(trigger_type: TriggerType) -> Trigger:
    match trigger_type:
        case TriggerType.BOOT:
            return BootTrigger()
        case TriggerType.DAILY:
            return DailyTrigger()
        case TriggerType.EVENT:
            return EventTrigger()
        case TriggerType.IDLE:
            return IdleTrigger()
        case TriggerType.LOGON:
            return LogonTrigger()
        case TriggerType.MONTHLY_DOW:
            return MonthlyDOWTrigger()
        case TriggerType.MONTHLY:
            return MonthlyTrigger()
        case TriggerType.REGISTRATION:
            return RegistrationTrigger()
        case TriggerType.SESSION_STATE_CHANGE:
            return SessionStateChangeTrigger()
        case TriggerType.TIME:
            return TimeTrigger()
        case TriggerType.WEEKLY:
            return WeeklyTrigger()
        case TriggerType.CUSTOM:
            return CustomTrigger()
        case _:
            assert_never(trigger_type)


def read_values(
    source: ProviderObject,
    bindings: props.Bindings,
    *,
    context: str,
    running_task: bool = False,
) -> dict[str, Any]:
    """Read ``bindings`` from ``source`` into a field-name keyed mapping."""

    values: dict[str, Any] = {}
    for binding in bindings:
        try:
            raw = source.get_property(binding.name)
        except ProviderCallError as exc:
            raise classify_provider_error(
                exc, f"{context}: read {binding.name}", running_task=running_task
            ) from exc
        try:
            values[binding.field] = binding.from_provider(raw)
        except _VALUE_FAILURES as exc:
            raise ParseError(
                f"{context}: field {binding.field} ({binding.name}): {exc}"
            ) from exc
    return values


def read_into(
    source: ProviderObject,
    record: object,
    bindings: props.Bindings,
    *,
    context: str,
) -> None:
    for name, value in read_values(source, bindings, context=context).items():
        setattr(record, name, value)


def _type_tag(obj: ProviderObject, tag_type: type[_TagT], kind: str, context: str) -> _TagT:
    try:
        raw = obj.get_property(props.TYPE)
    except ProviderCallError as exc:
        raise classify_provider_error(exc, f"{context}: read {props.TYPE}") from exc
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise ParseError(f"{context}: unsupported {kind} type {raw!r}")
    try:
        return tag_type(raw)
    except ValueError as exc:
        raise ParseError(f"{context}: unsupported {kind} type {raw}") from exc


def _read_value_queries(view: ProviderObject, context: str) -> dict[str, str]:
    queries: dict[str, str] = {}
    with _sub_object(view, props.VALUE_QUERIES, context) as queries_obj:
        for item in _iterate(queries_obj, f"{context}: value queries"):
            with acquired(item):
                pair = read_values(
                    item,
                    (
                        props.PropertyBinding("name", props.VALUE_QUERY_NAME),
                        props.PropertyBinding("value", props.VALUE_QUERY_VALUE),
                    ),
                    context=f"{context}: value queries",
                )
                queries[pair["name"]] = pair["value"]
    return queries


def _iterate(collection: ProviderObject, context: str) -> Iterator[ProviderObject]:
    try:
        yield from collection.iterate()
    except ProviderCallError as exc:
        raise classify_provider_error(exc, f"{context}: enumerate") from exc


@contextmanager
def _sub_object(parent: ProviderObject, name: str, context: str) -> Iterator[ProviderObject]:
    try:
        child = as_provider_object(parent.get_property(name), f"{context}: {name}")
    except ProviderCallError as exc:
        raise classify_provider_error(exc, f"{context}: read {name}") from exc
    except TypeError as exc:
        raise ParseError(str(exc)) from exc
    with acquired(child) as owned:
        yield owned


@contextmanager
def _typed_view(obj: ProviderObject, identifier: str, context: str) -> Iterator[ProviderObject]:
    try:
        view = obj.query_interface(identifier)
    except ProviderCallError as exc:
        raise classify_provider_error(exc, f"{context}: typed view {identifier}") from exc
    with acquired(view) as owned:
        yield owned


__all__ = [
    "parse_action",
    "parse_definition",
    "parse_registered_task",
    "parse_running_task",
    "parse_trigger",
    "read_into",
    "read_values",
    "reload_running_task",
]

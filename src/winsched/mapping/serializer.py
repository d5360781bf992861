"""
winsched — definition serializer

File: src/winsched/mapping/serializer.py
Last updated: 2026-10-19

Purpose
- Write a validated ``Definition`` into a provider definition object tree.

What should be included in this file
- Record writers driven by the binding tables.
- One sub-object per action/trigger, populated through its typed view.
- Error wrapping that names the failing variant and field.

Functional requirements
- Every action and trigger variant is matched exhaustively.
- Every sub-object obtained here is released before returning or raising.

Non-functional requirements
- No validation here; callers run ``validate_definition`` first.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import assert_never

from winsched.codec import CodecError
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
    RegistrationTrigger,
    SessionStateChangeTrigger,
    TimeTrigger,
    Trigger,
    WeeklyTrigger,
)
from winsched.errors import ProviderCallError, SerializationError
from winsched.mapping import properties as props
from winsched.provider.handles import acquired, as_provider_object
from winsched.provider.protocol import ProviderObject

_WRITE_FAILURES = (ProviderCallError, CodecError, TypeError, ValueError)


def serialize_definition(definition: Definition, target: ProviderObject) -> None:
    """Populate ``target`` (a fresh provider definition) from ``definition``."""

    write_record(target, definition, props.DEFINITION_BINDINGS, context="Definition")

    with _sub_object(target, props.ACTIONS, "Definition") as actions_obj:
        write_record(actions_obj, definition, props.ACTIONS_COLLECTION_BINDINGS, context="Actions")
        for index, action in enumerate(definition.actions):
            serialize_action(action, actions_obj, index=index)

    with _sub_object(target, props.PRINCIPAL, "Definition") as principal_obj:
        write_record(
            principal_obj, definition.principal, props.PRINCIPAL_BINDINGS, context="Principal"
        )

    with _sub_object(target, props.REGISTRATION_INFO, "Definition") as info_obj:
        write_record(
            info_obj,
            definition.registration_info,
            props.REGISTRATION_INFO_BINDINGS,
            context="RegistrationInfo",
        )

    with _sub_object(target, props.SETTINGS, "Definition") as settings_obj:
        settings = definition.settings
        write_record(settings_obj, settings, props.SETTINGS_BINDINGS, context="Settings")
        with _sub_object(settings_obj, props.IDLE_SETTINGS, "Settings") as idle_obj:
            write_record(
                idle_obj,
                settings.idle_settings,
                props.IDLE_SETTINGS_BINDINGS,
                context="IdleSettings",
            )
        with _sub_object(settings_obj, props.NETWORK_SETTINGS, "Settings") as network_obj:
            write_record(
                network_obj,
                settings.network_settings,
                props.NETWORK_SETTINGS_BINDINGS,
                context="NetworkSettings",
            )

    with _sub_object(target, props.TRIGGERS, "Definition") as triggers_obj:
        for index, trigger in enumerate(definition.triggers):
            serialize_trigger(trigger, triggers_obj, index=index)


def serialize_action(action: Action, actions_obj: ProviderObject, *, index: int = 0) -> None:
    """Create one action sub-object and write ``action`` into it."""

    match action:
        case ExecAction() | ComHandlerAction():
            action_type = action.action_type
        case _:
            assert_never(action)

    context = f"actions[{index}] {action_type.name}"
    try:
        created = actions_obj.create_sub_object(int(action_type))
    except ProviderCallError as exc:
        raise SerializationError(f"{context}: create failed: {exc}", code=exc.code) from exc

    with acquired(created) as action_obj:
        write_record(action_obj, action, props.ACTION_COMMON_BINDINGS, context=context)
        with _typed_view(action_obj, props.ACTION_INTERFACE_IDS[action_type], context) as view:
            write_record(view, action, props.ACTION_BINDINGS[action_type], context=context)


def serialize_trigger(trigger: Trigger, triggers_obj: ProviderObject, *, index: int = 0) -> None:
    """Create one trigger sub-object and write ``trigger`` into it."""

    context = f"triggers[{index}] {trigger.trigger_type.name}"
    match trigger:
        case (
            BootTrigger()
            | DailyTrigger()
            | EventTrigger()
            | IdleTrigger()
            | LogonTrigger()
            | MonthlyDOWTrigger()
            | MonthlyTrigger()
            | RegistrationTrigger()
            | SessionStateChangeTrigger()
            | TimeTrigger()
            | WeeklyTrigger()
        ):
            trigger_type = trigger.trigger_type
        case CustomTrigger():
            raise SerializationError(f"{context}: custom triggers cannot be created")
        case _:
            assert_never(trigger)

    try:
        created = triggers_obj.create_sub_object(int(trigger_type))
    except ProviderCallError as exc:
        raise SerializationError(f"{context}: create failed: {exc}", code=exc.code) from exc

    with acquired(created) as trigger_obj:
        write_record(trigger_obj, trigger, props.TRIGGER_COMMON_BINDINGS, context=context)
        with _sub_object(trigger_obj, props.REPETITION, context) as repetition_obj:
            write_record(
                repetition_obj, trigger.repetition, props.REPETITION_BINDINGS, context=context
            )

        with _typed_view(trigger_obj, props.TRIGGER_INTERFACE_IDS[trigger_type], context) as view:
            write_record(view, trigger, props.TRIGGER_BINDINGS[trigger_type], context=context)
            if isinstance(trigger, EventTrigger):
                _write_value_queries(view, trigger, context)


def write_record(
    target: ProviderObject,
    record: object,
    bindings: props.Bindings,
    *,
    context: str,
) -> None:
    for binding in bindings:
        try:
            target.put_property(binding.name, binding.to_provider(getattr(record, binding.field)))
        except _WRITE_FAILURES as exc:
            raise SerializationError(
                f"{context}: field {binding.field} ({binding.name}): {exc}",
                code=getattr(exc, "code", None),
            ) from exc


def _write_value_queries(view: ProviderObject, trigger: EventTrigger, context: str) -> None:
    if not trigger.value_queries:
        return
    with _sub_object(view, props.VALUE_QUERIES, context) as queries_obj:
        for name, value in trigger.value_queries.items():
            try:
                created = queries_obj.call_method("Create", name, value)
            except ProviderCallError as exc:
                raise SerializationError(
                    f"{context}: field value_queries[{name!r}]: {exc}", code=exc.code
                ) from exc
            if isinstance(created, ProviderObject):
                created.release()


def _sub_object(
    parent: ProviderObject, name: str, context: str
) -> AbstractContextManager[ProviderObject]:
    try:
        child = as_provider_object(parent.get_property(name), f"{context}.{name}")
    except (ProviderCallError, TypeError) as exc:
        raise SerializationError(
            f"{context}: sub-object {name}: {exc}", code=getattr(exc, "code", None)
        ) from exc
    return acquired(child)


def _typed_view(
    obj: ProviderObject, identifier: str, context: str
) -> AbstractContextManager[ProviderObject]:
    try:
        view = obj.query_interface(identifier)
    except ProviderCallError as exc:
        raise SerializationError(
            f"{context}: typed view {identifier}: {exc}", code=exc.code
        ) from exc
    return acquired(view)


__all__ = [
    "serialize_action",
    "serialize_definition",
    "serialize_trigger",
    "write_record",
]

"""Bidirectional mapping between domain models and provider object trees."""

from winsched.mapping.parser import (
    parse_action,
    parse_definition,
    parse_registered_task,
    parse_running_task,
    parse_trigger,
    reload_running_task,
)
from winsched.mapping.serializer import serialize_action, serialize_definition, serialize_trigger

__all__ = [
    "parse_action",
    "parse_definition",
    "parse_registered_task",
    "parse_running_task",
    "parse_trigger",
    "reload_running_task",
    "serialize_action",
    "serialize_definition",
    "serialize_trigger",
]

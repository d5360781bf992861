"""
winsched — folder tree walker

File: src/winsched/walker.py
Last updated: 2026-10-19

Purpose
- Discover the folder/task hierarchy below a starting folder, producing both a
  ``TaskFolder`` tree and a flat path-indexed ``RegisteredTaskCollection``.

What should be included in this file
- Explicit-stack traversal; no native call recursion.
- Handle accounting through ``ExitStack`` so an aborted walk releases every folder,
  collection and task handle acquired so far.

Functional requirements
- A folder's own tasks are parsed before its children are visited.
- Any provider failure aborts the whole walk with one classified error.

Non-functional requirements
- The tree is rebuilt on every call; nothing is cached.
"""

from __future__ import annotations

from contextlib import ExitStack
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

from winsched.constants import TASK_ENUM_DEFAULT, TASK_ENUM_HIDDEN
from winsched.domain.models import RegisteredTaskCollection, TaskFolder
from winsched.errors import (
    ParseError,
    ProviderCallError,
    SchedulerError,
    classify_provider_error,
)
from winsched.mapping import properties as props
from winsched.mapping.parser import parse_registered_task, read_values
from winsched.provider.handles import OwnedHandle, acquired, as_provider_object

if TYPE_CHECKING:
    from collections.abc import Iterator

    from winsched.provider.protocol import ProviderObject


@dataclass(frozen=True, slots=True)
class FolderTree:
    """Result of one walk; the caller owns every task handle in ``tasks``."""

    root: TaskFolder
    tasks: RegisteredTaskCollection

    def release(self) -> None:
        self.tasks.release()


class FolderTreeWalker:
    """Walks provider folders with an explicit stack."""

    def __init__(self, *, include_hidden: bool = True, logger: Any | None = None) -> None:
        self._enum_flags = TASK_ENUM_HIDDEN if include_hidden else TASK_ENUM_DEFAULT
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    def walk(self, root_obj: ProviderObject) -> FolderTree:
        """Walk from ``root_obj``, taking ownership of it."""

        collection = RegisteredTaskCollection()
        folder_count = 0
        current_path = "?"

        with ExitStack() as folder_handles, ExitStack() as task_handles:
            root_handle = OwnedHandle(root_obj)
            folder_handles.callback(root_handle.release)
            root = self._folder_node(root_obj)
            stack: list[tuple[OwnedHandle, TaskFolder]] = [(root_handle, root)]

            try:
                while stack:
                    handle, node = stack.pop()
                    current_path = node.path
                    folder_count += 1
                    with handle as folder_obj:
                        self._collect_tasks(folder_obj, node, collection, task_handles)
                        children = self._collect_children(folder_obj, node, folder_handles)
                    stack.extend(reversed(children))
            except SchedulerError as exc:
                self._logger.warning(
                    "folder_walk_aborted",
                    path=current_path,
                    error_type=type(exc).__name__,
                    error=str(exc),
                )
                raise

            task_handles.pop_all()

        self._logger.debug(
            "folder_walk_completed",
            root=root.path,
            folders=folder_count,
            tasks=len(collection),
        )
        return FolderTree(root=root, tasks=collection)

    def _collect_tasks(
        self,
        folder_obj: ProviderObject,
        node: TaskFolder,
        collection: RegisteredTaskCollection,
        task_handles: ExitStack,
    ) -> None:
        tasks_obj = self._call(folder_obj, node.path, "GetTasks", self._enum_flags)
        with acquired(tasks_obj):
            for task_obj in self._iterate(tasks_obj, node.path, "tasks"):
                task = parse_registered_task(task_obj)
                task_handles.callback(task.release)
                node.registered_tasks.append(task)
                try:
                    collection.add(task)
                except ValueError as exc:
                    raise ParseError(f"folder {node.path}: {exc}") from exc

    def _collect_children(
        self,
        folder_obj: ProviderObject,
        node: TaskFolder,
        folder_handles: ExitStack,
    ) -> list[tuple[OwnedHandle, TaskFolder]]:
        children: list[tuple[OwnedHandle, TaskFolder]] = []
        folders_obj = self._call(folder_obj, node.path, "GetFolders", 0)
        with acquired(folders_obj):
            for sub_obj in self._iterate(folders_obj, node.path, "folders"):
                child_handle = OwnedHandle(sub_obj)
                folder_handles.callback(child_handle.release)
                child = self._folder_node(sub_obj)
                node.sub_folders.append(child)
                children.append((child_handle, child))
        return children

    @staticmethod
    def _folder_node(folder_obj: ProviderObject) -> TaskFolder:
        values = read_values(folder_obj, props.FOLDER_BINDINGS, context="TaskFolder")
        return TaskFolder(name=values["name"], path=values["path"])

    @staticmethod
    def _call(folder_obj: ProviderObject, path: str, method: str, *args: object) -> ProviderObject:
        try:
            result = folder_obj.call_method(method, *args)
        except ProviderCallError as exc:
            raise classify_provider_error(exc, f"folder {path}: {method}") from exc
        try:
            return as_provider_object(result, f"folder {path}: {method}")
        except TypeError as exc:
            raise ParseError(str(exc)) from exc

    @staticmethod
    def _iterate(collection_obj: ProviderObject, path: str, what: str) -> Iterator[ProviderObject]:
        try:
            yield from collection_obj.iterate()
        except ProviderCallError as exc:
            raise classify_provider_error(exc, f"folder {path}: enumerate {what}") from exc


def walk_folder_tree(
    root_obj: ProviderObject,
    *,
    include_hidden: bool = True,
    logger: Any | None = None,
) -> FolderTree:
    """Convenience wrapper around ``FolderTreeWalker.walk``."""

    return FolderTreeWalker(include_hidden=include_hidden, logger=logger).walk(root_obj)


__all__ = ["FolderTree", "FolderTreeWalker", "walk_folder_tree"]

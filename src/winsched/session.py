"""
winsched — connected scheduler session

File: src/winsched/session.py
Last updated: 2026-10-19

Purpose
- Explicit session value over one connected ``Schedule.Service`` object and its root
  folder, exposing task and folder management.

What should be included in this file
- Connection lifecycle (connect, from_config, close, context manager).
- Enumeration via the folder tree walker; single-task lookup.
- Registration (create/update) through the validator and serializer.
- Run/stop/instance control of registered and running tasks.

Functional requirements
- Paths must be rooted at ``\\``; anything else raises ``InvalidPathError``.
- Every provider failure surfaces as one classified ``SchedulerError``.
- Handles obtained for internal use are released before returning or raising.

Non-functional requirements
- One session per thread; no background work and no caching between calls.
- Credentials are never logged.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from contextlib import ExitStack
from datetime import datetime
from typing import TYPE_CHECKING, Any

import structlog

from winsched.config.loader import resolve_password
from winsched.constants import PATH_SEPARATOR, ROOT_PATH, TASK_ENUM_DEFAULT, TASK_ENUM_HIDDEN
from winsched.domain.enums import LogonType, RunFlags, TaskCreationFlags
from winsched.domain.models import (
    Definition,
    RegisteredTask,
    RegisteredTaskCollection,
    RunningTask,
    RunningTaskCollection,
)
from winsched.errors import (
    InvalidPathError,
    NotFoundError,
    ParseError,
    ProviderCallError,
    RunningTaskCompletedError,
    SchedulerConnectionError,
    SchedulerError,
    TaskDisabledError,
    classify_provider_error,
)
from winsched.mapping import properties as props
from winsched.mapping.parser import (
    parse_registered_task,
    parse_running_task,
    read_values,
    reload_running_task,
)
from winsched.mapping.serializer import serialize_definition
from winsched.provider.com import open_schedule_service
from winsched.provider.handles import OwnedHandle, acquired, as_provider_object
from winsched.validation import validate_definition
from winsched.walker import FolderTree, FolderTreeWalker

if TYPE_CHECKING:
    from winsched.provider.protocol import ProviderFactory, ProviderObject


class TaskService:
    """A connected scheduler session.

    Obtain one with ``TaskService.connect`` or ``TaskService.from_config``; the
    constructor only adopts already-connected provider objects.
    """

    def __init__(
        self,
        service_obj: ProviderObject,
        root_obj: ProviderObject,
        *,
        server: str,
        domain: str,
        user: str,
        include_hidden: bool = True,
        overwrite: bool = False,
        logger: Any | None = None,
    ) -> None:
        self._service = OwnedHandle(service_obj)
        self._root = OwnedHandle(root_obj)
        self.connected_server = server
        self.connected_domain = domain
        self.connected_user = user
        self.include_hidden = include_hidden
        self.overwrite = overwrite
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    # --- lifecycle ---------------------------------------------------------------------

    @classmethod
    def connect(
        cls,
        server: str = "",
        domain: str = "",
        user: str = "",
        password: str = "",
        *,
        provider_factory: ProviderFactory | None = None,
        include_hidden: bool = True,
        overwrite: bool = False,
        logger: Any | None = None,
    ) -> TaskService:
        """Connect to a local (``server=""``) or remote scheduler.

        Empty ``user``/``password`` authenticate with the caller's token.
        """

        factory = provider_factory if provider_factory is not None else open_schedule_service
        log = logger if logger is not None else structlog.get_logger(__name__)
        target = server or "<local>"

        try:
            service_obj = factory()
        except ProviderCallError as exc:
            raise classify_provider_error(exc, "create scheduler service") from exc

        with ExitStack() as guard:
            guard.callback(service_obj.release)
            try:
                service_obj.call_method("Connect", server, user, domain, password)
            except ProviderCallError as exc:
                error = classify_provider_error(exc, f"connect to {target}")
                log.warning(
                    "scheduler_connect_failed",
                    server=target,
                    error_type=type(error).__name__,
                    error=str(error),
                )
                raise error from exc

            identity = read_values(service_obj, props.SERVICE_BINDINGS, context="TaskService")
            root_obj = _call_object(service_obj, "GetFolder", ROOT_PATH, context="root folder")
            guard.pop_all()

        session = cls(
            service_obj,
            root_obj,
            server=identity["server"] or server,
            domain=identity["domain"] or domain or identity["server"] or server,
            user=identity["user"] or user,
            include_hidden=include_hidden,
            overwrite=overwrite,
            logger=log,
        )
        log.info(
            "scheduler_connected",
            server=session.connected_server,
            domain=session.connected_domain,
            account=session.connected_user,
        )
        return session

    @classmethod
    def from_config(
        cls,
        config: Mapping[str, Any],
        *,
        environ: Mapping[str, str] | None = None,
        provider_factory: ProviderFactory | None = None,
        logger: Any | None = None,
    ) -> TaskService:
        """Connect using a loaded ``winsched.toml`` config (see ``winsched.config``)."""

        connection = config["connection"]
        password = resolve_password(config, environ) or ""
        return cls.connect(
            connection["server"],
            connection["domain"],
            connection["user"],
            password,
            provider_factory=provider_factory,
            include_hidden=bool(config["enumeration"]["include_hidden"]),
            overwrite=bool(config["registration"]["overwrite"]),
            logger=logger,
        )

    @property
    def closed(self) -> bool:
        return self._service.released

    def close(self) -> None:
        """Release the root folder and the service object; safe to call twice."""

        if self.closed:
            return
        self._root.release()
        self._service.release()
        self._logger.debug("scheduler_disconnected", server=self.connected_server)

    def __enter__(self) -> TaskService:
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    # --- enumeration -------------------------------------------------------------------

    def get_task_folder(
        self, path: str = ROOT_PATH, *, include_hidden: bool | None = None
    ) -> FolderTree:
        """Walk the folder at ``path`` and everything below it.

        The caller owns the task handles in the returned tree; release with
        ``FolderTree.release()``.
        """

        _check_path(path)
        folder_obj = _call_object(
            self._service_obj(), "GetFolder", path, context=f"folder {path}"
        )
        walker = FolderTreeWalker(
            include_hidden=self._hidden(include_hidden), logger=self._logger
        )
        return walker.walk(folder_obj)

    def get_registered_tasks(
        self, *, include_hidden: bool | None = None
    ) -> RegisteredTaskCollection:
        """Every registered task on the host, keyed by path."""

        return self.get_task_folder(ROOT_PATH, include_hidden=include_hidden).tasks

    def get_registered_task(self, path: str) -> RegisteredTask:
        """Return the task at ``path``; raises ``NotFoundError`` when it does not exist."""

        _check_path(path)
        task_obj = _call_object(self._root_obj(), "GetTask", path, context=f"task {path}")
        return parse_registered_task(task_obj)

    def get_running_tasks(self, *, include_hidden: bool | None = None) -> RunningTaskCollection:
        flags = TASK_ENUM_HIDDEN if self._hidden(include_hidden) else TASK_ENUM_DEFAULT
        collection_obj = _call_object(
            self._service_obj(), "GetRunningTasks", flags, context="running tasks"
        )
        return self._collect_running(collection_obj, "running tasks")

    # --- folders and registration ------------------------------------------------------

    def create_folder(self, path: str) -> None:
        _check_path(path)
        folder_obj = _call_object(
            self._root_obj(), "CreateFolder", path, "", context=f"create folder {path}"
        )
        folder_obj.release()
        self._logger.info("task_folder_created", folder=path)

    def delete_folder(self, path: str, recursive: bool = False) -> bool:
        """Delete the folder at ``path``.

        Without ``recursive`` a non-empty folder is left in place and ``False`` is
        returned. With it, every task and sub-folder below ``path`` is deleted first.
        """

        _check_path(path)
        if path == ROOT_PATH:
            raise InvalidPathError("the root folder cannot be deleted")

        if not recursive:
            with acquired(
                _call_object(self._service_obj(), "GetFolder", path, context=f"folder {path}")
            ) as folder_obj:
                if not self._folder_is_empty(folder_obj, path):
                    self._logger.info("task_folder_not_empty", folder=path)
                    return False
            self._delete_folder_entry(path)
            self._logger.info("task_folder_deleted", folder=path, recursive=False)
            return True

        tree = self.get_task_folder(path, include_hidden=True)
        try:
            for task in tree.tasks:
                self._delete_task_entry(task.path)
            for folder in reversed(list(tree.root.iter_folders())):
                self._delete_folder_entry(folder.path)
        finally:
            tree.release()
        self._logger.info(
            "task_folder_deleted", folder=path, recursive=True, tasks=len(tree.tasks)
        )
        return True

    def delete_task(self, path: str) -> None:
        _check_path(path)
        self._delete_task_entry(path)
        self._logger.info("task_deleted", task_path=path)

    def create_task(
        self,
        path: str,
        definition: Definition,
        *,
        overwrite: bool | None = None,
        user: str = "",
        password: str = "",
        logon_type: LogonType | None = None,
    ) -> tuple[RegisteredTask, bool]:
        """Register ``definition`` at ``path``, creating missing parent folders.

        Returns ``(task, True)`` when registered. When a task already exists at ``path``
        and overwriting is off, the existing task is returned as ``(task, False)``.
        """

        _check_path(path)
        validate_definition(definition)
        replace = self.overwrite if overwrite is None else overwrite

        parent = _parent_path(path)
        if not self._folder_exists(parent):
            self.create_folder(parent)
        else:
            existing = self._find_task(path)
            if existing is not None:
                if not replace:
                    self._logger.info("task_exists_not_overwritten", task_path=path)
                    return existing, False
                existing.release()
                self._delete_task_entry(path)

        task = self._register(
            path, definition, user, password, logon_type, TaskCreationFlags.CREATE
        )
        return task, True

    def update_task(
        self,
        path: str,
        definition: Definition,
        *,
        user: str = "",
        password: str = "",
        logon_type: LogonType | None = None,
    ) -> RegisteredTask:
        """Replace the definition of the existing task at ``path``."""

        _check_path(path)
        validate_definition(definition)
        existing = self._find_task(path)
        if existing is None:
            raise NotFoundError(f"task {path}: registered task does not exist")
        existing.release()
        return self._register(
            path, definition, user, password, logon_type, TaskCreationFlags.UPDATE
        )

    def new_definition(self) -> Definition:
        """A definition with platform defaults authored by the connected account."""

        definition = Definition()
        definition.registration_info.author = self._account()
        definition.registration_info.date = datetime.now().replace(microsecond=0)
        return definition

    # --- task control ------------------------------------------------------------------

    def run_task(
        self,
        task: RegisteredTask,
        args: Sequence[str] = (),
        *,
        flags: RunFlags = RunFlags.AS_SELF,
        session_id: int = 0,
        user: str = "",
    ) -> RunningTask:
        if not task.enabled:
            raise TaskDisabledError(f"task {task.path}: cannot run a disabled task")
        running_obj = _call_object(
            _task_obj(task),
            "RunEx",
            list(args),
            int(flags),
            session_id,
            user,
            context=f"task {task.path}: run",
        )
        running = parse_running_task(running_obj)
        self._logger.info(
            "task_started",
            task_path=task.path,
            instance_guid=running.instance_guid,
            run_flags=flags.name,
        )
        return running

    def get_instances(self, task: RegisteredTask) -> RunningTaskCollection:
        collection_obj = _call_object(
            _task_obj(task), "GetInstances", 0, context=f"task {task.path}: instances"
        )
        return self._collect_running(collection_obj, f"task {task.path}: instances")

    def stop_task(self, task: RegisteredTask) -> None:
        """Stop every running instance of ``task`` the caller can access."""

        _call(_task_obj(task), "Stop", 0, context=f"task {task.path}: stop")
        self._logger.info("task_stopped", task_path=task.path)

    def stop_running_task(self, running: RunningTask) -> None:
        """Stop one running instance and release its handle."""

        _call(_running_obj(running), "Stop", context=f"running task {running.path}: stop")
        running.release()
        self._logger.info(
            "running_task_stopped", task_path=running.path, instance_guid=running.instance_guid
        )

    def refresh_running_task(self, running: RunningTask) -> RunningTask:
        try:
            _running_obj(running).call_method("Refresh")
        except ProviderCallError as exc:
            raise classify_provider_error(
                exc, f"running task {running.path}: refresh", running_task=True
            ) from exc
        reload_running_task(running)
        return running

    # --- internals ---------------------------------------------------------------------

    def _register(
        self,
        path: str,
        definition: Definition,
        user: str,
        password: str,
        logon_type: LogonType | None,
        flags: TaskCreationFlags,
    ) -> RegisteredTask:
        prepared = copy.deepcopy(definition)
        principal = prepared.principal
        if not principal.user_id and not principal.group_id:
            principal.user_id = self._account()
        resolved_logon = principal.logon_type if logon_type is None else logon_type

        definition_obj = _call_object(
            self._service_obj(), "NewTask", 0, context=f"task {path}: new definition"
        )
        with acquired(definition_obj):
            serialize_definition(prepared, definition_obj)
            task_obj = _call_object(
                self._root_obj(),
                "RegisterTaskDefinition",
                path,
                definition_obj,
                int(flags),
                user,
                password,
                int(resolved_logon),
                "",
                context=f"task {path}: register",
            )

        task = parse_registered_task(task_obj)
        self._logger.info(
            "task_registered",
            task_path=path,
            mode=flags.name,
            logon_type=resolved_logon.name,
            actions=len(prepared.actions),
            triggers=len(prepared.triggers),
        )
        return task

    def _collect_running(
        self, collection_obj: ProviderObject, context: str
    ) -> RunningTaskCollection:
        collection = RunningTaskCollection()
        with ExitStack() as guard, acquired(collection_obj):
            guard.callback(collection.release)
            try:
                for running_obj in collection_obj.iterate():
                    try:
                        collection.append(parse_running_task(running_obj))
                    except RunningTaskCompletedError as exc:
                        self._logger.debug("running_task_completed_while_listed", error=str(exc))
            except ProviderCallError as exc:
                raise classify_provider_error(exc, f"{context}: enumerate") from exc
            guard.pop_all()
        return collection

    def _find_task(self, path: str) -> RegisteredTask | None:
        try:
            return self.get_registered_task(path)
        except NotFoundError:
            return None

    def _folder_exists(self, path: str) -> bool:
        if path == ROOT_PATH:
            return True
        try:
            folder_obj = _call_object(
                self._service_obj(), "GetFolder", path, context=f"folder {path}"
            )
        except NotFoundError:
            return False
        folder_obj.release()
        return True

    def _folder_is_empty(self, folder_obj: ProviderObject, path: str) -> bool:
        for method, args in (("GetTasks", (TASK_ENUM_HIDDEN,)), ("GetFolders", (0,))):
            collection_obj = _call_object(folder_obj, method, *args, context=f"folder {path}")
            with acquired(collection_obj):
                count = read_values(
                    collection_obj,
                    (props.PropertyBinding("count", props.COUNT, props.ValueKind.NUMBER),),
                    context=f"folder {path}: {method}",
                )["count"]
            if count:
                return False
        return True

    def _delete_task_entry(self, path: str) -> None:
        _call(self._root_obj(), "DeleteTask", path, 0, context=f"task {path}: delete")

    def _delete_folder_entry(self, path: str) -> None:
        _call(self._root_obj(), "DeleteFolder", path, 0, context=f"folder {path}: delete")

    def _hidden(self, include_hidden: bool | None) -> bool:
        return self.include_hidden if include_hidden is None else include_hidden

    def _account(self) -> str:
        return f"{self.connected_domain}{PATH_SEPARATOR}{self.connected_user}"

    def _service_obj(self) -> ProviderObject:
        if self._service.released:
            raise SchedulerConnectionError("session is closed")
        return self._service.obj

    def _root_obj(self) -> ProviderObject:
        if self._root.released:
            raise SchedulerConnectionError("session is closed")
        return self._root.obj


def _check_path(path: str) -> None:
    if not isinstance(path, str) or not path.startswith(ROOT_PATH):
        raise InvalidPathError(f"path must start with the root folder '\\': {path!r}")


def _parent_path(path: str) -> str:
    parent = path.rstrip(PATH_SEPARATOR).rsplit(PATH_SEPARATOR, 1)[0]
    return parent or ROOT_PATH


def _task_obj(task: RegisteredTask) -> ProviderObject:
    if task.handle is None or task.handle.released:
        raise SchedulerError(f"task {task.path}: handle has been released")
    return task.handle.obj


def _running_obj(running: RunningTask) -> ProviderObject:
    if running.handle is None or running.handle.released:
        raise SchedulerError(f"running task {running.path}: handle has been released")
    return running.handle.obj


def _call(obj: ProviderObject, method: str, *args: object, context: str) -> object:
    try:
        return obj.call_method(method, *args)
    except ProviderCallError as exc:
        raise classify_provider_error(exc, f"{context}: {method}") from exc


def _call_object(obj: ProviderObject, method: str, *args: object, context: str) -> ProviderObject:
    result = _call(obj, method, *args, context=context)
    try:
        return as_provider_object(result, f"{context}: {method}")
    except TypeError as exc:
        raise ParseError(str(exc)) from exc


__all__ = ["TaskService"]

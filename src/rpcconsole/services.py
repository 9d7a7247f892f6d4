"""Service directory and caller collaborators.

The console needs two things from the gateway it sits in front of:

- a ServiceDirectory that names the available services and describes their
  public methods (parameter names and raw doc comments), and
- a ServiceCaller that performs the actual call.

`ServiceRegistry` implements both for plain Python objects. Services come from
two sources, merged in this order with duplicates dropped:

1. Service folders: every `Name.py` file is a service called `Name`. The
   module is imported on first use and the class of the same name is
   instantiated with no arguments. It is imported again when the file's
   modification time changes.
2. Explicit registrations via `register()`.

Missing or unreadable folders simply contribute no services.
"""

from __future__ import annotations

import importlib.util
import inspect
import logging
import sys
import threading
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from .errors import MethodNotFoundError, ServiceLoadError, ServiceNotFoundError

logger = logging.getLogger(__name__)

_POSITIONAL_KINDS = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)


@dataclass(frozen=True)
class MethodInfo:
    """A public method: its name, positional parameter names and raw doc text."""

    name: str
    parameters: tuple[str, ...] = ()
    doc: str | None = None


@dataclass
class ServiceInfo:
    """A service and its public methods, in definition order."""

    name: str
    methods: list[MethodInfo] = field(default_factory=list)

    def method_names(self) -> list[str]:
        return [m.name for m in self.methods]

    def get_method(self, method_name: str) -> MethodInfo:
        for method in self.methods:
            if method.name == method_name:
                return method
        raise MethodNotFoundError(self.name, method_name)


class ServiceDirectory(Protocol):
    """Lists services and describes their methods."""

    def list_service_names(self) -> list[str]:
        ...

    def get_service(self, service_name: str) -> ServiceInfo:
        ...


class ServiceCaller(Protocol):
    """Performs a call. May raise; errors are rendered by the pipeline."""

    def invoke(self, service_name: str, method_name: str, args: Sequence[Any]) -> Any:
        ...


def unique_in_order(names: Iterable[str]) -> list[str]:
    """Deduplicate while preserving first-seen order."""
    seen: set[str] = set()
    unique: list[str] = []
    for name in names:
        if name in seen:
            continue
        seen.add(name)
        unique.append(name)
    return unique


def scan_service_folder(folder: Path) -> list[str]:
    """Service names for the `*.py` files in `folder`, sorted by file name.

    Private modules (leading underscore, including `__init__.py`) are skipped.
    A missing or unreadable folder yields an empty list.
    """
    try:
        entries = sorted(folder.iterdir())
    except OSError as exc:
        logger.debug("Cannot read service folder %s: %s", folder, exc)
        return []

    names: list[str] = []
    for entry in entries:
        if entry.suffix != ".py" or entry.stem.startswith("_"):
            continue
        try:
            if not entry.is_file():
                continue
        except OSError:
            continue
        names.append(entry.stem)
    return names


def public_routine_names(service: Any) -> list[str]:
    """Names of the public methods defined on the service's class.

    Only the class is inspected, so properties are never evaluated, and nested
    classes or other callable attributes are not treated as methods.
    """
    return [
        name
        for name, _ in inspect.getmembers(type(service), inspect.isroutine)
        if not name.startswith("_")
    ]


def describe_service(service_name: str, service: Any) -> ServiceInfo:
    """Introspect the public methods of a service object."""
    methods: list[MethodInfo] = []
    for name in public_routine_names(service):
        member = getattr(service, name)
        methods.append(
            MethodInfo(
                name=name,
                parameters=_positional_parameters(member),
                doc=inspect.getdoc(member),
            )
        )
    methods.sort(key=lambda m: _definition_line(service, m.name))
    return ServiceInfo(name=service_name, methods=methods)


def _positional_parameters(member: Any) -> tuple[str, ...]:
    try:
        signature = inspect.signature(member)
    except (TypeError, ValueError):
        return ()
    return tuple(
        name
        for name, param in signature.parameters.items()
        if param.kind in _POSITIONAL_KINDS
    )


def _definition_line(service: Any, method_name: str) -> int:
    member = getattr(type(service), method_name, None)
    try:
        return inspect.getsourcelines(member)[1]
    except (OSError, TypeError):
        return 0


def _modified_time(path: Path) -> float | None:
    try:
        return path.stat().st_mtime
    except OSError:
        return None


@dataclass
class _LoadedService:
    service: Any
    path: Path | None = None
    mtime: float | None = None


class ServiceRegistry:
    """Python-object service directory and caller.

    Folder services are reloaded when their file's modification time changes.
    Loading is serialized with a lock since requests may run on worker threads.
    """

    def __init__(self, service_folders: Iterable[Path] = ()) -> None:
        self._service_folders = [Path(p) for p in service_folders]
        self._registered: dict[str, Any] = {}
        self._loaded: dict[str, _LoadedService] = {}
        self._lock = threading.RLock()

    def register(self, service_name: str, service: Any) -> None:
        """Register a service object, or a class to instantiate on first use."""
        with self._lock:
            self._registered[service_name] = service
            self._loaded.pop(service_name, None)

    def has_service(self, service_name: str) -> bool:
        return service_name in self.list_service_names()

    def list_service_names(self) -> list[str]:
        names: list[str] = []
        for folder in self._service_folders:
            names.extend(scan_service_folder(folder))
        names.extend(self._registered)
        return unique_in_order(names)

    def get_service_object(self, service_name: str) -> Any:
        """Return the service instance for `service_name`, loading it if needed."""
        with self._lock:
            loaded = self._loaded.get(service_name)
            if loaded is not None and not self._is_stale(loaded):
                return loaded.service

            if service_name in self._registered:
                service = self._registered[service_name]
                if inspect.isclass(service):
                    service = self._instantiate(service_name, service)
                loaded = _LoadedService(service=service)
            else:
                loaded = self._load_from_folders(service_name)

            self._loaded[service_name] = loaded
            return loaded.service

    def get_service(self, service_name: str) -> ServiceInfo:
        return describe_service(service_name, self.get_service_object(service_name))

    def invoke(self, service_name: str, method_name: str, args: Sequence[Any]) -> Any:
        service = self.get_service_object(service_name)
        if method_name not in public_routine_names(service):
            raise MethodNotFoundError(service_name, method_name)

        logger.info("Calling %s.%s with %d argument(s)", service_name, method_name, len(args))
        return getattr(service, method_name)(*args)

    def _is_stale(self, loaded: _LoadedService) -> bool:
        if loaded.path is None:
            return False
        return _modified_time(loaded.path) != loaded.mtime

    def _load_from_folders(self, service_name: str) -> _LoadedService:
        for folder in self._service_folders:
            path = folder / f"{service_name}.py"
            if service_name in scan_service_folder(folder):
                mtime = _modified_time(path)
                if service_name in self._loaded:
                    logger.info("Reloading service %s from %s", service_name, path)
                service = self._load_module_service(service_name, path)
                return _LoadedService(service=service, path=path, mtime=mtime)
        raise ServiceNotFoundError(service_name)

    def _load_module_service(self, service_name: str, path: Path) -> Any:
        module_name = f"rpcconsole_service_{service_name}"
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise ServiceLoadError(service_name, f"cannot import {path}")
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except Exception as exc:
            sys.modules.pop(module_name, None)
            logger.warning("Failed to import service module %s: %s", path, exc)
            raise ServiceLoadError(service_name, f"{type(exc).__name__}: {exc}") from exc

        service_class = getattr(module, service_name, None)
        if not inspect.isclass(service_class):
            raise ServiceLoadError(service_name, f"{path.name} defines no class {service_name}")
        return self._instantiate(service_name, service_class)

    def _instantiate(self, service_name: str, service_class: type) -> Any:
        try:
            return service_class()
        except Exception as exc:
            raise ServiceLoadError(service_name, f"{type(exc).__name__}: {exc}") from exc

"""Tests for the Python-object service directory and caller."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from rpcconsole.errors import MethodNotFoundError, ServiceLoadError, ServiceNotFoundError
from rpcconsole.services import (
    ServiceRegistry,
    describe_service,
    scan_service_folder,
    unique_in_order,
)

from conftest import Calculator


class TestUniqueInOrder:
    def test_first_seen_order(self) -> None:
        assert unique_in_order(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]


class TestScanServiceFolder:
    def test_lists_python_modules(self, service_folder: Path) -> None:
        assert scan_service_folder(service_folder) == ["Greeter"]

    def test_missing_folder_is_empty(self, tmp_path: Path) -> None:
        assert scan_service_folder(tmp_path / "missing") == []


class TestDescribeService:
    def test_methods_and_parameters(self) -> None:
        info = describe_service("Calculator", Calculator())

        assert info.method_names() == ["add", "echo", "ping", "fail", "fail_with_code"]
        add = info.get_method("add")
        assert add.parameters == ("a", "b")
        assert add.doc is not None
        assert add.doc.startswith("Adds two numbers.")
        assert info.get_method("ping").parameters == ()

    def test_keyword_only_parameters_are_not_listed(self) -> None:
        class Service:
            def search(self, query, *args, limit=10, **options):
                return query

        info = describe_service("Service", Service())

        assert info.get_method("search").parameters == ("query",)

    def test_properties_are_not_evaluated(self) -> None:
        class Monitor:
            @property
            def status(self):
                raise RuntimeError("backend down")

            def ping(self):
                return "pong"

        info = describe_service("Monitor", Monitor())

        assert info.method_names() == ["ping"]

    def test_nested_classes_are_not_methods(self) -> None:
        class Service:
            class Error(Exception):
                pass

            def ping(self):
                return "pong"

        info = describe_service("Service", Service())

        assert info.method_names() == ["ping"]

    def test_unknown_method(self) -> None:
        info = describe_service("Calculator", Calculator())

        with pytest.raises(MethodNotFoundError):
            info.get_method("nope")


class TestServiceRegistry:
    def test_registered_class_is_instantiated_once(self, registry: ServiceRegistry) -> None:
        first = registry.get_service_object("Calculator")

        assert isinstance(first, Calculator)
        assert registry.get_service_object("Calculator") is first

    def test_registered_instance_is_used_as_is(self) -> None:
        registry = ServiceRegistry()
        calculator = Calculator()
        registry.register("Calc", calculator)

        assert registry.get_service_object("Calc") is calculator

    def test_invoke(self, registry: ServiceRegistry) -> None:
        assert registry.invoke("Calculator", "add", [2, 3]) == 5
        assert registry.invoke("Calculator", "ping", []) == "pong"

    def test_invoke_private_method_is_refused(self, registry: ServiceRegistry) -> None:
        with pytest.raises(MethodNotFoundError):
            registry.invoke("Calculator", "_hidden", [])

    def test_invoke_unknown_method(self, registry: ServiceRegistry) -> None:
        with pytest.raises(MethodNotFoundError):
            registry.invoke("Calculator", "divide", [1, 0])

    def test_invoke_nested_class_is_refused(self) -> None:
        class Service:
            class Error(Exception):
                pass

            def ping(self):
                return "pong"

        registry = ServiceRegistry()
        registry.register("Service", Service)

        with pytest.raises(MethodNotFoundError):
            registry.invoke("Service", "Error", [])
        assert registry.invoke("Service", "ping", []) == "pong"

    def test_invoke_property_is_refused(self) -> None:
        class Service:
            @property
            def status(self):
                raise RuntimeError("backend down")

        registry = ServiceRegistry()
        registry.register("Service", Service)

        with pytest.raises(MethodNotFoundError):
            registry.invoke("Service", "status", [])

    def test_invoke_unknown_service(self, registry: ServiceRegistry) -> None:
        with pytest.raises(ServiceNotFoundError):
            registry.invoke("Nope", "x", [])

    def test_folder_services(self, service_folder: Path) -> None:
        registry = ServiceRegistry([service_folder])

        assert registry.list_service_names() == ["Greeter"]
        assert registry.invoke("Greeter", "hello", ["Ada"]) == "Hello, Ada"
        info = registry.get_service("Greeter")
        assert info.get_method("hello").parameters == ("name",)

    def test_duplicate_names_are_listed_once(self, service_folder: Path) -> None:
        registry = ServiceRegistry([service_folder, service_folder])
        registry.register("Calculator", Calculator)
        registry.register("Greeter", Calculator)

        assert registry.list_service_names() == ["Greeter", "Calculator"]
        assert registry.has_service("Greeter")

    def test_missing_folder_yields_no_services(self, tmp_path: Path) -> None:
        registry = ServiceRegistry([tmp_path / "missing"])

        assert registry.list_service_names() == []

    def test_module_without_matching_class(self, tmp_path: Path) -> None:
        (tmp_path / "Empty.py").write_text("VALUE = 1\n", encoding="utf-8")
        registry = ServiceRegistry([tmp_path])

        with pytest.raises(ServiceLoadError):
            registry.get_service("Empty")

    def test_module_that_fails_to_import(self, tmp_path: Path) -> None:
        (tmp_path / "Broken.py").write_text("raise RuntimeError('no')\n", encoding="utf-8")
        registry = ServiceRegistry([tmp_path])

        with pytest.raises(ServiceLoadError) as exc_info:
            registry.get_service_object("Broken")

        assert "RuntimeError: no" in exc_info.value.message

    def test_unchanged_folder_service_is_reused(self, service_folder: Path) -> None:
        registry = ServiceRegistry([service_folder])

        first = registry.get_service_object("Greeter")

        assert registry.get_service_object("Greeter") is first

    def test_edited_folder_service_is_reloaded(self, service_folder: Path) -> None:
        registry = ServiceRegistry([service_folder])
        assert registry.invoke("Greeter", "hello", ["Ada"]) == "Hello, Ada"

        path = service_folder / "Greeter.py"
        path.write_text(
            "class Greeter:\n    def hello(self, name):\n        return 'Hi, ' + name\n",
            encoding="utf-8",
        )
        mtime = path.stat().st_mtime + 10
        os.utime(path, (mtime, mtime))

        assert registry.invoke("Greeter", "hello", ["Ada"]) == "Hi, Ada"

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any

import pytest

from rpcconsole.gateway import Gateway
from rpcconsole.services import ServiceRegistry


class CalculatorError(Exception):
    def __init__(self, message: str, code: int) -> None:
        super().__init__(message)
        self.code = code


class Calculator:
    """Arithmetic used by the console tests."""

    def add(self, a, b):
        """
        Adds two numbers.
        @param int $a first operand
        @param int $b second operand
        @return int
        """
        return a + b

    def echo(self, value):
        """Returns its argument unchanged.
        @return mixed
        """
        return value

    def ping(self):
        """Liveness check.
        @return string
        """
        return "pong"

    def fail(self):
        raise ValueError("boom")

    def fail_with_code(self):
        raise CalculatorError("overflow", 42)

    def _hidden(self):
        return "secret"


class RecordingCaller:
    """ServiceCaller that records calls instead of performing them."""

    def __init__(self, result: Any = "ok") -> None:
        self.result = result
        self.calls: list[tuple[str, str, list[Any]]] = []

    def invoke(self, service_name: str, method_name: str, args: Sequence[Any]) -> Any:
        self.calls.append((service_name, method_name, list(args)))
        return self.result


@pytest.fixture
def registry() -> ServiceRegistry:
    registry = ServiceRegistry()
    registry.register("Calculator", Calculator)
    return registry


@pytest.fixture
def gateway(registry: ServiceRegistry) -> Gateway:
    return Gateway(registry, registry)


@pytest.fixture
def service_folder(tmp_path: Path) -> Path:
    """A folder holding one service module and files that are not services."""

    folder = tmp_path / "services"
    folder.mkdir()
    (folder / "Greeter.py").write_text(
        '''class Greeter:
    def hello(self, name):
        """Greets someone.
        @param string $name who to greet
        @return string
        """
        return "Hello, " + name
''',
        encoding="utf-8",
    )
    (folder / "__init__.py").write_text("", encoding="utf-8")
    (folder / "_private.py").write_text("", encoding="utf-8")
    (folder / "notes.txt").write_text("not a service", encoding="utf-8")
    return folder

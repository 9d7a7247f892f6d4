"""Tests for the error hierarchy and error responses."""

from __future__ import annotations

from rpcconsole.errors import (
    ConfigurationError,
    ConsoleError,
    ErrorResponse,
    MethodNotFoundError,
    ServiceLoadError,
    ServiceNotFoundError,
    UnsupportedContentTypeError,
    error_response,
    get_error_code,
)


class TestConsoleError:
    def test_basic_creation(self) -> None:
        err = ConsoleError("Something went wrong")

        assert str(err) == "Something went wrong"
        assert err.message == "Something went wrong"
        assert err.recoverable is False
        assert err.context == {}

    def test_to_dict_merges_context(self) -> None:
        err = MethodNotFoundError("Calculator", "divide")

        assert err.to_dict() == {
            "type": "method_not_found",
            "message": "Method not found: Calculator.divide",
            "recoverable": False,
            "service_name": "Calculator",
            "method_name": "divide",
        }

    def test_hierarchy(self) -> None:
        for err in (
            ServiceNotFoundError("x"),
            MethodNotFoundError("x", "y"),
            ServiceLoadError("x", "bad"),
            ConfigurationError("bad"),
            UnsupportedContentTypeError("text/plain"),
        ):
            assert isinstance(err, ConsoleError)


class TestErrorCodes:
    def test_code_attribute_wins(self) -> None:
        err = ServiceNotFoundError("x")
        err.code = 7  # type: ignore[attr-defined]

        assert get_error_code(err) == 7

    def test_domain_codes(self) -> None:
        assert get_error_code(ServiceNotFoundError("x")) == -32601
        assert get_error_code(MethodNotFoundError("x", "y")) == -32602
        assert get_error_code(ConsoleError("x")) == -32099

    def test_other_exceptions(self) -> None:
        assert get_error_code(ValueError("x")) == 0

    def test_boolean_code_is_ignored(self) -> None:
        err = ValueError("x")
        err.code = True  # type: ignore[attr-defined]

        assert get_error_code(err) == 0


class TestErrorResponse:
    def test_from_domain_error(self) -> None:
        response = error_response(UnsupportedContentTypeError("application/json"))

        assert response.error_type == "unsupported_content_type"
        assert response.details == {"content_type": "application/json"}

    def test_from_unknown_exception(self) -> None:
        response = error_response(KeyError("k"))

        assert response.error_type == "internal"
        assert "KeyError" in response.message

    def test_to_dict(self) -> None:
        response = ErrorResponse(error_type="configuration", message="Invalid")

        assert response.to_dict() == {
            "error": {
                "type": "configuration",
                "message": "Invalid",
                "recoverable": False,
                "details": {},
            }
        }

"""Request-scoped state shared by the pipeline stages."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# Query/form keys understood by the console.
SERVICE_NAME_KEY = "serviceName"
METHOD_NAME_KEY = "methodName"
NO_PARAMS_KEY = "noParams"


class ParamsGiven(str, Enum):
    """Whether the request determined the call arguments.

    NO_ARGS (the `noParams` flag) and HAS_ARGS (submitted fields) both allow
    a call; an empty argument list is never read as UNDETERMINED.
    """

    UNDETERMINED = "undetermined"
    NO_ARGS = "no_args"
    HAS_ARGS = "has_args"


@dataclass(frozen=True)
class Envelope:
    """GET and POST data repackaged by the deserialize stage, uninterpreted."""

    get: Mapping[str, str] = field(default_factory=dict)
    post: Mapping[str, str] = field(default_factory=dict)


@dataclass
class RequestContext:
    """State accumulated across the stages of a single request."""

    service_name: str | None = None
    method_name: str | None = None
    raw_parameters: dict[str, str] = field(default_factory=dict)
    decoded_parameters: list[Any] = field(default_factory=list)
    params_given: ParamsGiven = ParamsGiven.UNDETERMINED
    show_result: bool = False
    result: Any = None

    @property
    def call_ready(self) -> bool:
        """True when service, method and arguments are all determined."""
        return bool(
            self.service_name
            and self.method_name
            and self.params_given is not ParamsGiven.UNDETERMINED
        )

    def record_argument(self, name: str, raw: str, value: Any) -> None:
        self.raw_parameters[name] = raw
        self.decoded_parameters.append(value)

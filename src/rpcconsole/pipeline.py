"""Request lifecycle of the service console.

A gateway processes each request in five stages:

    gate -> deserialize -> handle -> [exception] -> serialize

`PipelineController` implements every stage for one request. The stages never
call each other; they only read and update the controller's RequestContext.
`PipelineConfig` names which callable serves which stage, so a gateway can be
wired explicitly instead of through a global registry.
"""

from __future__ import annotations

import html
import logging
import traceback
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from . import decoding
from .context import (
    METHOD_NAME_KEY,
    NO_PARAMS_KEY,
    SERVICE_NAME_KEY,
    Envelope,
    ParamsGiven,
    RequestContext,
)
from .errors import ConfigurationError, get_error_code
from .renderer import HtmlFragment, PageRenderer, Templates
from .services import ServiceCaller, ServiceDirectory

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
HTML_CONTENT_TYPE = "text/html"


class Stage(str, Enum):
    """Fixed points in the request lifecycle."""

    GATE = "gate"
    DESERIALIZE = "deserialize"
    HANDLE = "handle"
    EXCEPTION = "exception"
    SERIALIZE = "serialize"
    HEADERS = "headers"


def claims_content_type(declared_content_type: str | None) -> bool:
    """True for requests without a content type or with a form-encoded body."""
    return not declared_content_type or declared_content_type == FORM_CONTENT_TYPE


def describe_exception(exc: BaseException) -> HtmlFragment:
    """Format an exception as message, code, file and line, in that order."""
    file_name = ""
    line = 0
    frames = traceback.extract_tb(exc.__traceback__) if exc.__traceback__ else []
    if frames:
        file_name = frames[-1].filename
        line = frames[-1].lineno or 0

    info = "Exception thrown\n<br>"
    info += f"message : {html.escape(str(exc))}\n<br>"
    info += f"code : {get_error_code(exc)}\n<br>"
    info += f"file : {html.escape(file_name)}\n<br>"
    info += f"line : {line}\n<br>"
    return HtmlFragment(info)


class PipelineController:
    """Implements the five stages for a single request."""

    def __init__(self, directory: ServiceDirectory, templates: Templates | None = None) -> None:
        self.context = RequestContext()
        self._renderer = PageRenderer(directory, templates)

    def content_type_gate(self, declared_content_type: str | None) -> PipelineController | None:
        """Claim the request, or return None to let another handler take it."""
        if claims_content_type(declared_content_type):
            return self
        return None

    def deserialize(
        self,
        get_params: Mapping[str, str],
        post_params: Mapping[str, str],
        raw_body: bytes | str | None = None,
    ) -> Envelope:
        return Envelope(get=dict(get_params or {}), post=dict(post_params or {}))

    def handle_request(self, envelope: Envelope, service_caller: ServiceCaller) -> Any:
        """Record the request in the context and make the call if it is complete.

        Arguments come from the POST fields, in submission order, each decoded
        on its own. Without POST fields, a `noParams` flag in the query means
        a call with no arguments. Otherwise nothing is called.
        """
        ctx = self.context
        if SERVICE_NAME_KEY in envelope.get:
            ctx.service_name = envelope.get[SERVICE_NAME_KEY]
        if METHOD_NAME_KEY in envelope.get:
            ctx.method_name = envelope.get[METHOD_NAME_KEY]

        if envelope.post:
            ctx.raw_parameters = {}
            ctx.decoded_parameters = []
            for name, raw in envelope.post.items():
                ctx.record_argument(name, raw, decoding.decode(raw))
            ctx.params_given = ParamsGiven.HAS_ARGS
        elif NO_PARAMS_KEY in envelope.get:
            ctx.decoded_parameters = []
            ctx.params_given = ParamsGiven.NO_ARGS

        if not ctx.call_ready:
            ctx.show_result = False
            return None

        ctx.show_result = True
        ctx.result = service_caller.invoke(
            ctx.service_name, ctx.method_name, list(ctx.decoded_parameters)
        )
        return ctx.result

    def handle_exception(self, exc: BaseException) -> HtmlFragment:
        logger.info("Call raised %s: %s", type(exc).__name__, exc)
        self.context.show_result = True
        self.context.result = describe_exception(exc)
        return self.context.result

    def serialize(self, result: Any) -> str:
        return self._renderer.render(self.context, result)

    def filter_headers(
        self, headers: Mapping[str, str], declared_content_type: str | None
    ) -> dict[str, str] | None:
        """Force an HTML content type on responses to claimed requests."""
        if not claims_content_type(declared_content_type):
            return None
        overlaid = dict(headers)
        overlaid["Content-Type"] = HTML_CONTENT_TYPE
        return overlaid


@dataclass(frozen=True)
class PipelineConfig:
    """Which handler serves which stage."""

    handlers: Mapping[Stage, Callable[..., Any]]

    @classmethod
    def for_controller(cls, controller: PipelineController) -> PipelineConfig:
        return cls(
            handlers={
                Stage.GATE: controller.content_type_gate,
                Stage.DESERIALIZE: controller.deserialize,
                Stage.HANDLE: controller.handle_request,
                Stage.EXCEPTION: controller.handle_exception,
                Stage.SERIALIZE: controller.serialize,
                Stage.HEADERS: controller.filter_headers,
            }
        )

    def handler(self, stage: Stage) -> Callable[..., Any]:
        try:
            return self.handlers[stage]
        except KeyError:
            raise ConfigurationError(
                f"No handler configured for stage {stage.value}", setting=stage.value
            ) from None

"""Gateway that drives a request through the pipeline stages in order."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from .pipeline import PipelineConfig, PipelineController, Stage
from .renderer import Templates
from .services import ServiceCaller, ServiceDirectory

logger = logging.getLogger(__name__)


@dataclass
class GatewayResponse:
    body: str
    headers: dict[str, str] = field(default_factory=dict)


class Gateway:
    """Runs gate, deserialize, handle, exception and serialize for each request.

    A fresh PipelineConfig (and so a fresh RequestContext) is built per request
    by `pipeline_factory`; nothing is shared between requests apart from the
    directory, caller and templates.
    """

    def __init__(
        self,
        directory: ServiceDirectory,
        caller: ServiceCaller,
        *,
        templates: Templates | None = None,
        pipeline_factory: Callable[[], PipelineConfig] | None = None,
    ) -> None:
        self.directory = directory
        self.caller = caller
        self.templates = templates or Templates()
        self._pipeline_factory = pipeline_factory or self._default_pipeline

    def _default_pipeline(self) -> PipelineConfig:
        return PipelineConfig.for_controller(PipelineController(self.directory, self.templates))

    def handle(
        self,
        content_type: str | None,
        get_params: Mapping[str, str],
        post_params: Mapping[str, str],
        raw_body: bytes | str | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> GatewayResponse | None:
        """Process one request.

        Returns None when the gate does not claim the request. Errors raised by
        the call are handed to the exception stage and rendered into the page.
        """
        pipeline = self._pipeline_factory()

        if pipeline.handler(Stage.GATE)(content_type) is None:
            logger.debug("Request with content type %r not claimed", content_type)
            return None

        envelope = pipeline.handler(Stage.DESERIALIZE)(get_params, post_params, raw_body)
        try:
            result = pipeline.handler(Stage.HANDLE)(envelope, self.caller)
        except Exception as exc:
            result = pipeline.handler(Stage.EXCEPTION)(exc)

        body = pipeline.handler(Stage.SERIALIZE)(result)
        response_headers = pipeline.handler(Stage.HEADERS)(dict(headers or {}), content_type)
        return GatewayResponse(body=body, headers=response_headers or dict(headers or {}))

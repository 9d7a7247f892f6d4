"""HTTP surface for the service console.

Serves the console page on the gateway path for GET and POST. Form posts carry
the call arguments; query parameters select the service and method. Requests
declaring any other content type are not claimed by the console and get a
415 JSON error.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from urllib.parse import parse_qsl

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool

from . import __version__
from .errors import UnsupportedContentTypeError, error_response
from .gateway import Gateway
from .models import ErrorEnvelope, HealthResponse
from .pipeline import HTML_CONTENT_TYPE
from .renderer import load_templates
from .services import ServiceRegistry
from .settings import Settings

logger = logging.getLogger(__name__)


def media_type(content_type_header: str | None) -> str:
    """Strip parameters such as `; charset=UTF-8` from a content type header."""
    if not content_type_header:
        return ""
    return content_type_header.split(";", 1)[0].strip().lower()


def create_app(gateway: Gateway, *, gateway_path: str = "/") -> FastAPI:
    app = FastAPI(title="Service Browser", version=__version__)

    @app.get("/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(services=len(gateway.directory.list_service_names()))

    @app.api_route(gateway_path, methods=["GET", "POST"], response_model=None)
    async def console(request: Request) -> Response:
        content_type = media_type(request.headers.get("content-type"))
        get_params = dict(request.query_params)
        raw_body = await request.body()
        post_params: dict[str, str] = {}
        if request.method == "POST" and raw_body:
            post_params = dict(
                parse_qsl(raw_body.decode("utf-8", errors="replace"), keep_blank_values=True)
            )

        response = await run_in_threadpool(
            gateway.handle, content_type, get_params, post_params, raw_body
        )
        if response is None:
            err = error_response(UnsupportedContentTypeError(content_type))
            payload = ErrorEnvelope.model_validate(err.to_dict())
            return JSONResponse(status_code=415, content=payload.model_dump())

        headers = dict(response.headers)
        content_type = headers.pop("Content-Type", HTML_CONTENT_TYPE)
        return Response(content=response.body, media_type=content_type, headers=headers)

    return app


def build_gateway(settings: Settings) -> Gateway:
    registry = ServiceRegistry(settings.service_dirs)
    return Gateway(registry, registry, templates=load_templates(settings.template_dir))


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run the HTML service console (development use only)."
    )
    parser.add_argument("--host", help="Bind address.")
    parser.add_argument("--port", type=int, help="Bind port.")
    parser.add_argument(
        "--service-dir",
        action="append",
        type=Path,
        default=[],
        help="Folder of service modules (repeatable).",
    )
    parser.add_argument("--template-dir", type=Path, help="Folder holding top.html and bottom.html.")
    parser.add_argument(
        "--log-level",
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
        help="Logging level.",
    )
    return parser.parse_args(argv)


def settings_from_args(args: argparse.Namespace, base: Settings) -> Settings:
    return Settings(
        service_dirs=tuple(args.service_dir) if args.service_dir else base.service_dirs,
        template_dir=args.template_dir if args.template_dir is not None else base.template_dir,
        host=args.host if args.host is not None else base.host,
        port=args.port if args.port is not None else base.port,
        log_level=args.log_level if args.log_level is not None else base.log_level,
        gateway_path=base.gateway_path,
    )


def main(argv: list[str] | None = None) -> None:
    import uvicorn

    settings = settings_from_args(parse_args(argv), Settings.from_env())
    settings.configure_logging()
    logger.info(
        "Serving console on http://%s:%d%s (services from %s)",
        settings.host,
        settings.port,
        settings.gateway_path,
        ", ".join(str(d) for d in settings.service_dirs) or "registrations only",
    )
    app = create_app(build_gateway(settings), gateway_path=settings.gateway_path)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()

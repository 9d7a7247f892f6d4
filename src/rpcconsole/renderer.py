"""HTML page assembly for the service console.

The page is built top to bottom from whatever the request accumulated:

1. the header template and the list of available services (always)
2. the methods of the selected service
3. the selected method's documentation and an argument form, or a one-click
   form when the method takes no arguments
4. the call result or the captured exception
5. the footer template

Lookups that fail (unknown service, unknown method, a service that cannot be
loaded) render a diagnostic paragraph in place of the missing section.
"""

from __future__ import annotations

import html
import logging
import pprint
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import urlencode

from . import docblock
from .context import METHOD_NAME_KEY, NO_PARAMS_KEY, SERVICE_NAME_KEY, RequestContext
from .errors import ConsoleError
from .services import MethodInfo, ServiceDirectory, ServiceInfo

logger = logging.getLogger(__name__)

DEFAULT_HEADER = "<html>\n<head><title>Service Browser</title></head>\n<body>\n<h1>Service Browser</h1>\n<h3>Available services</h3>\n<ul>"
DEFAULT_FOOTER = "\n</body>\n</html>\n"

HEADER_TEMPLATE = "top.html"
FOOTER_TEMPLATE = "bottom.html"

UNKNOWN_TYPE = "Unknown"
INCONSISTENT_PARAM_NOTICE = "Warning: Parameter description in method and comments are not consistent"
MISSING_RETURN_NOTICE = "Warning: Missing return object description in comments"


class HtmlFragment(str):
    """Markup that is inserted into the page without escaping."""


@dataclass(frozen=True)
class Templates:
    """Static header and footer fragments, concatenated verbatim."""

    header: str = DEFAULT_HEADER
    footer: str = DEFAULT_FOOTER


def _read_fragment(path: Path, default: str) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return default
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Cannot read template %s: %s", path, exc)
        return ""


def load_templates(template_dir: Path | None) -> Templates:
    """Load `top.html` and `bottom.html` from `template_dir`.

    Missing files fall back to the built-in fragments; unreadable files are
    treated as empty.
    """
    if template_dir is None:
        return Templates()
    return Templates(
        header=_read_fragment(template_dir / HEADER_TEMPLATE, DEFAULT_HEADER),
        footer=_read_fragment(template_dir / FOOTER_TEMPLATE, DEFAULT_FOOTER),
    )


def _href(**query: str) -> str:
    return "?" + urlencode(query)


def _attr(value: str) -> str:
    return html.escape(value, quote=True)


def _failure_message(exc: Exception) -> str:
    if isinstance(exc, ConsoleError):
        return exc.message
    return f"{type(exc).__name__}: {exc}"


def format_result(result: Any) -> str:
    """Render a call result for the <pre> block."""
    if isinstance(result, HtmlFragment):
        return str(result)
    if isinstance(result, str):
        return html.escape(result)
    return html.escape(pprint.pformat(result))


class PageRenderer:
    """Builds the console page from a RequestContext."""

    def __init__(self, directory: ServiceDirectory, templates: Templates | None = None) -> None:
        self._directory = directory
        self._templates = templates or Templates()

    def render(self, context: RequestContext, result: Any) -> str:
        parts = [self._templates.header]
        parts.append(self._service_list())

        service: ServiceInfo | None = None
        if context.service_name:
            service, section = self._method_list(context.service_name)
            parts.append(section)

        if context.method_name:
            parts.append(self._method_section(context, service))

        if context.show_result:
            parts.append("<h3>Result</h3>")
            parts.append("<pre>" + format_result(result) + "</pre>")

        parts.append(self._templates.footer)
        return "".join(parts)

    def _service_list(self) -> str:
        try:
            names = self._directory.list_service_names()
        except Exception as exc:
            message = _failure_message(exc)
            logger.warning("Service listing failed: %s", message)
            return f"\n</ul>\n<p>{html.escape(message)}</p>"
        items = [
            f"\n     <li><a href='{_attr(_href(**{SERVICE_NAME_KEY: name}))}'>{html.escape(name)}</a></li>"
            for name in names
        ]
        return "".join(items) + "\n</ul>"

    def _method_list(self, service_name: str) -> tuple[ServiceInfo | None, str]:
        try:
            service = self._directory.get_service(service_name)
        except Exception as exc:
            message = _failure_message(exc)
            logger.info("Cannot describe service %s: %s", service_name, message)
            return None, f"<p>{html.escape(message)}</p>"

        parts = [
            f"<h3>Click below to use a method on the {html.escape(service_name)} service</h3>",
            "\n<ul>",
        ]
        for method_name in service.method_names():
            link = _href(**{SERVICE_NAME_KEY: service_name, METHOD_NAME_KEY: method_name})
            parts.append(
                f"\n     <li><a href='{_attr(link)}'>{html.escape(method_name)}</a></li>"
            )
        parts.append("\n</ul>")
        return service, "".join(parts)

    def _method_section(self, context: RequestContext, service: ServiceInfo | None) -> str:
        method_name = context.method_name or ""
        if service is None:
            return f"<p>Cannot show method {html.escape(method_name)}: no service available</p>"
        try:
            method = service.get_method(method_name)
        except ConsoleError as exc:
            return f"<p>{html.escape(exc.message)}</p>"

        doc = docblock.parse(method.doc)
        parts = ["<h3>Method Description</h3>"]
        if doc is not None:
            parts.extend(f"<p>{html.escape(p)}</p>" for p in doc.paragraphs)

        parts.append("<h3>Method Return Type</h3>")
        if doc is not None and doc.return_type:
            parts.append(f"<p>Return Type: {html.escape(doc.return_type)}</p>")
        else:
            parts.append(f"<p>{MISSING_RETURN_NOTICE}</p>")

        if method.parameters:
            parts.append(self._argument_form(context, service.name, method, doc))
        else:
            parts.append(self._invoke_form(service.name, method.name))
        return "".join(parts)

    def _argument_form(
        self,
        context: RequestContext,
        service_name: str,
        method: MethodInfo,
        doc: docblock.DocBlockInfo | None,
    ) -> str:
        action = _href(**{SERVICE_NAME_KEY: service_name, METHOD_NAME_KEY: method.name})
        parts = [
            f"<h3>Fill in the parameters below then click to call the {html.escape(method.name)} "
            f"method on {html.escape(service_name)} service</h3>",
            f"\n<form action='{_attr(action)}' method='POST'>\n<table>",
        ]
        for name in method.parameters:
            type_info = doc.param_type(name) if doc is not None else None
            status = ""
            if type_info is None:
                type_info = UNKNOWN_TYPE
                status = INCONSISTENT_PARAM_NOTICE
            value = ""
            if name in context.raw_parameters:
                value = f" value='{_attr(context.raw_parameters[name])}'"
            parts.append(
                f"\n     <tr><td>{html.escape(type_info)}</td><td>{html.escape(name)}</td>"
                f"<td><input name='{_attr(name)}'{value}></td><td>{status}</td></tr>"
            )
        parts.append("\n</table>\n<input type='submit' value='call'></form>")
        return "".join(parts)

    def _invoke_form(self, service_name: str, method_name: str) -> str:
        action = _href(**{SERVICE_NAME_KEY: service_name, METHOD_NAME_KEY: method_name}) + f"&{NO_PARAMS_KEY}"
        return (
            "<h3>This method has no parameters. Click to call it.</h3>"
            f"\n<form action='{_attr(action)}' method='POST'>\n"
            "\n<input type='submit' value='call'></form>"
        )

"""HTML service console for a remote-procedure gateway.

Lists services and their methods, shows each method's documented parameter
and return types, builds an argument form, performs the call and renders the
result or the raised exception. Development use only.
"""

from __future__ import annotations

__version__ = "0.1.0"

from rpcconsole.decoding import DecodeResult, decode, try_decode
from rpcconsole.docblock import DocBlockInfo, DocParam, parse
from rpcconsole.context import Envelope, ParamsGiven, RequestContext
from rpcconsole.gateway import Gateway, GatewayResponse
from rpcconsole.pipeline import PipelineConfig, PipelineController, Stage
from rpcconsole.renderer import PageRenderer, Templates, load_templates
from rpcconsole.services import ServiceInfo, MethodInfo, ServiceRegistry

__all__ = [
    "__version__",
    # Decoding
    "DecodeResult",
    "decode",
    "try_decode",
    # Doc comments
    "DocBlockInfo",
    "DocParam",
    "parse",
    # Request state
    "Envelope",
    "ParamsGiven",
    "RequestContext",
    # Pipeline
    "Gateway",
    "GatewayResponse",
    "PipelineConfig",
    "PipelineController",
    "Stage",
    # Rendering
    "PageRenderer",
    "Templates",
    "load_templates",
    # Services
    "ServiceInfo",
    "MethodInfo",
    "ServiceRegistry",
]

"""Request and response models for chuk-mcp-osm."""

from .requests import AreaOfInterest, GeneratorOptions, ModelRequest
from .responses import (
    CapabilitiesResponse,
    ErrorResponse,
    ModelResponse,
    StatusResponse,
    format_response,
)

__all__ = [
    "AreaOfInterest",
    "GeneratorOptions",
    "ModelRequest",
    "ErrorResponse",
    "ModelResponse",
    "StatusResponse",
    "CapabilitiesResponse",
    "format_response",
]

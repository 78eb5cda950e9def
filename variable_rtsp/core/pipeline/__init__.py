"""Pipeline collaborator interface; the GStreamer adapter is imported lazily."""

from .interface import (
    ENCODER_ELEMENT,
    PAYLOADER_ELEMENT,
    SOURCE_ELEMENT,
    PipelineBackend,
    PropertyInfo,
    PropertyKind,
)
from .launch import LAUNCH_MAX, build_launch

__all__ = [
    "ENCODER_ELEMENT",
    "LAUNCH_MAX",
    "PAYLOADER_ELEMENT",
    "SOURCE_ELEMENT",
    "PipelineBackend",
    "PropertyInfo",
    "PropertyKind",
    "build_launch",
]

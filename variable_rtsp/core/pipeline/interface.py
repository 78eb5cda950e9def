"""Collaborator interface the session core needs from a media backend."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Optional, Protocol, runtime_checkable

SOURCE_ELEMENT = "source0"
ENCODER_ELEMENT = "enc0"
PAYLOADER_ELEMENT = "pay0"

ElementHandle = Any
PadHandle = Any
PipelineHandle = Any

PipelineReadyCallback = Callable[[PipelineHandle], None]


class PropertyKind(Enum):
    STRING = "string"
    BOOLEAN = "boolean"
    INT = "int"
    UINT = "uint"
    LONG = "long"
    ULONG = "ulong"
    INT64 = "int64"
    UINT64 = "uint64"
    FLOAT = "float"
    DOUBLE = "double"
    ENUM = "enum"
    FRACTION = "fraction"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class PropertyInfo:
    """One property of a pipeline element as seen by introspection.

    ``value`` is the native value: ``(numerator, denominator)`` for fractions
    and the integer value for enums, with ``enum_nick`` carrying its symbolic
    name.
    """

    name: str
    kind: PropertyKind
    readable: bool = True
    value: Any = None
    enum_nick: str = ""


@runtime_checkable
class PipelineBackend(Protocol):
    """Operations the controller and command handlers perform on the pipeline.

    Lookups return ``None`` when a name is unknown. Property setters may raise
    (``TypeError``, ``ValueError``) when the value does not fit the property;
    callers are expected to log and continue.
    """

    def get_element_by_name(self, pipeline: PipelineHandle, name: str) -> Optional[ElementHandle]:
        ...

    def get_pad(self, element: ElementHandle, pad_name: str) -> Optional[PadHandle]:
        ...

    def set_property(self, target: Any, name: str, value: Any) -> None:
        ...

    def set_double_property(self, target: Any, name: str, value: float) -> None:
        ...

    def get_property(self, target: Any, name: str) -> Any:
        ...

    def iterate_elements(self, pipeline: PipelineHandle) -> Iterable[ElementHandle]:
        ...

    def element_class_name(self, element: ElementHandle) -> str:
        ...

    def list_properties(self, element: ElementHandle) -> Iterable[PropertyInfo]:
        ...

    def stop_pipeline(self, pipeline: PipelineHandle) -> None:
        ...

    def release(self, handle: Any) -> None:
        ...

    def watch_pipeline_ready(self, callback: PipelineReadyCallback) -> None:
        ...

    def unwatch_pipeline_ready(self) -> None:
        ...


__all__ = [
    "ENCODER_ELEMENT",
    "PAYLOADER_ELEMENT",
    "SOURCE_ELEMENT",
    "ElementHandle",
    "PadHandle",
    "PipelineBackend",
    "PipelineHandle",
    "PipelineReadyCallback",
    "PropertyInfo",
    "PropertyKind",
]

"""Property dumps of pipeline elements for the ``printbin`` command."""

from __future__ import annotations

from typing import Iterable, List, Optional

from .commands.command_protocol import StatusMessage, StatusType
from .logging_utils import get_module_logger
from .pipeline.interface import ElementHandle, PipelineBackend, PropertyInfo, PropertyKind

logger = get_module_logger("Introspection")

_INTEGER_KINDS = frozenset({
    PropertyKind.INT,
    PropertyKind.UINT,
    PropertyKind.LONG,
    PropertyKind.ULONG,
    PropertyKind.INT64,
    PropertyKind.UINT64,
})


def format_property_value(info: PropertyInfo) -> Optional[str]:
    """Render a property value, or None when its kind is not printable."""
    kind = info.kind
    value = info.value

    if kind is PropertyKind.STRING:
        return "null" if value is None else f'"{value}"'
    if kind is PropertyKind.BOOLEAN:
        return "true" if value else "false"
    if kind in _INTEGER_KINDS:
        return str(int(value))
    if kind in (PropertyKind.FLOAT, PropertyKind.DOUBLE):
        return format(float(value), ".7g")
    if kind is PropertyKind.ENUM:
        return f"[{int(value)}]{info.enum_nick}"
    if kind is PropertyKind.FRACTION:
        numerator, denominator = value
        return f"{numerator}/{denominator}"
    return None


def format_properties(class_name: str, properties: Iterable[PropertyInfo]) -> List[str]:
    lines = [f"classname: {class_name}"]
    for info in properties:
        if not info.readable:
            continue
        try:
            rendered = format_property_value(info)
        except (TypeError, ValueError):
            logger.debug("Skipping unrenderable property %s=%r", info.name, info.value)
            continue
        if rendered is not None:
            lines.append(f"{info.name}:{rendered}")
    return lines


def describe_element(backend: PipelineBackend, element: ElementHandle) -> StatusMessage:
    class_name = backend.element_class_name(element)
    properties = list(backend.list_properties(element))
    if not properties:
        logger.debug("No properties on %s", class_name)
    return StatusMessage(StatusType.ELEMENT_PROPS, format_properties(class_name, properties))


__all__ = ["describe_element", "format_properties", "format_property_value"]

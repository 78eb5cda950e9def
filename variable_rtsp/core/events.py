"""Lifecycle events delivered to the session controller."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union

from .pipeline.interface import PipelineHandle


@dataclass(frozen=True, slots=True)
class ClientAttached:
    client: Optional[Any] = None


@dataclass(frozen=True, slots=True)
class ClientDetached:
    client: Optional[Any] = None


@dataclass(frozen=True, slots=True)
class PipelineReady:
    pipeline: PipelineHandle


SessionEvent = Union[ClientAttached, ClientDetached, PipelineReady]


__all__ = ["ClientAttached", "ClientDetached", "PipelineReady", "SessionEvent"]

"""Live state of the single shared streaming session."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Optional

from .config import SessionConfig
from .pipeline.interface import ElementHandle, PipelineHandle
from .quality import QualityState


class LifecycleState(Enum):
    IDLE = "idle"                  # no clients, nothing bound
    CONFIGURING = "configuring"    # clients attached, waiting for pipeline-ready
    ACTIVE = "active"              # elements bound


@dataclass(slots=True)
class ElementHandles:
    """Handles into the running pipeline, owned for one connect cycle."""

    pipeline: Optional[PipelineHandle] = None
    source: Optional[ElementHandle] = None
    encoder: Optional[ElementHandle] = None
    payloader: Optional[ElementHandle] = None
    bound: bool = False

    def slots(self) -> Iterator[tuple[str, Any]]:
        yield "pipeline", self.pipeline
        yield "source", self.source
        yield "encoder", self.encoder
        yield "payloader", self.payloader

    def clear(self) -> None:
        self.pipeline = None
        self.source = None
        self.encoder = None
        self.payloader = None
        self.bound = False


@dataclass(slots=True)
class SessionState:
    """Client count, quality values and element handles.

    ``elements`` is None exactly while the session is idle.
    """

    config: SessionConfig
    quality: QualityState = field(init=False)
    client_count: int = 0
    elements: Optional[ElementHandles] = None
    cycles: int = 0

    def __post_init__(self) -> None:
        self.quality = QualityState.initial(self.config)

    @property
    def connected(self) -> bool:
        return self.client_count > 0

    @property
    def lifecycle(self) -> LifecycleState:
        if self.elements is None:
            return LifecycleState.IDLE
        if self.elements.bound:
            return LifecycleState.ACTIVE
        return LifecycleState.CONFIGURING

    @property
    def pipeline(self) -> Optional[PipelineHandle]:
        return self.elements.pipeline if self.elements else None

    @property
    def encoder(self) -> Optional[ElementHandle]:
        return self.elements.encoder if self.elements else None

    @property
    def payloader(self) -> Optional[ElementHandle]:
        return self.elements.payloader if self.elements else None


__all__ = ["ElementHandles", "LifecycleState", "SessionState"]

"""Client-count driven quality model.

Lower quant means higher quality, so the quant level climbs from ``min_quant``
as clients attach. Bitrate moves the other way, falling from ``max_bitrate``.
Both are pure functions of the client count and the session config.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .config import SessionConfig


class QualityMode(Enum):
    QUANT = "quant"
    BITRATE = "bitrate"


def quality_mode(cfg: SessionConfig) -> QualityMode:
    return QualityMode.BITRATE if cfg.bitrate_scaling else QualityMode.QUANT


def _step(low: int, high: int, steps: int) -> int:
    # int() truncates toward zero like the encoder-side integer math
    return int((high - low) / steps)


def quant_step(cfg: SessionConfig) -> int:
    return _step(cfg.min_quant, cfg.max_quant, cfg.steps)


def bitrate_step(cfg: SessionConfig) -> int:
    return _step(cfg.min_bitrate, cfg.max_bitrate, cfg.steps)


def step_factor(cfg: SessionConfig) -> int:
    """Step of whichever value is currently being scaled."""
    if quality_mode(cfg) is QualityMode.BITRATE:
        return bitrate_step(cfg)
    return quant_step(cfg)


def compute_quant(client_count: int, cfg: SessionConfig) -> int:
    quant = cfg.min_quant + (client_count - 1) * quant_step(cfg)
    return min(quant, cfg.max_quant)


def compute_bitrate(client_count: int, cfg: SessionConfig) -> int:
    bitrate = cfg.max_bitrate - (client_count - 1) * bitrate_step(cfg)
    return max(bitrate, cfg.min_bitrate)


@dataclass(slots=True)
class QualityState:
    """Current encoder quality; written only by the session controller."""

    current_quant: int
    current_bitrate: int

    @classmethod
    def initial(cls, cfg: SessionConfig) -> "QualityState":
        return cls(current_quant=cfg.min_quant, current_bitrate=cfg.max_bitrate)


@dataclass(frozen=True, slots=True)
class QualityChange:
    """Outcome of one recompute. ``changed`` is False when nothing needs applying."""

    mode: QualityMode
    previous: int
    value: int

    @property
    def changed(self) -> bool:
        return self.previous != self.value

    @property
    def property_name(self) -> str:
        return "bitrate" if self.mode is QualityMode.BITRATE else "quant-param"


def recompute(state: QualityState, client_count: int, cfg: SessionConfig) -> QualityChange:
    """Update ``state`` for ``client_count`` and report what moved."""
    mode = quality_mode(cfg)
    if mode is QualityMode.BITRATE:
        previous = state.current_bitrate
        state.current_bitrate = compute_bitrate(client_count, cfg)
        return QualityChange(mode, previous, state.current_bitrate)

    previous = state.current_quant
    state.current_quant = compute_quant(client_count, cfg)
    return QualityChange(mode, previous, state.current_quant)


__all__ = [
    "QualityChange",
    "QualityMode",
    "QualityState",
    "bitrate_step",
    "compute_bitrate",
    "compute_quant",
    "quality_mode",
    "quant_step",
    "recompute",
    "step_factor",
]

"""Builds the ``status`` message from the live session."""

from __future__ import annotations

from variable_rtsp.core.session_state import SessionState

from .command_protocol import StatusMessage, StatusType


def build_status_message(session: SessionState, origin: str) -> StatusMessage:
    cfg = session.config
    entries: list = [
        f'source:"{origin}"',
        ("num_cli", session.client_count),
        ("connected", session.connected),
        ("state", session.lifecycle.value),
        ("config_interval", cfg.config_interval),
        ("idr", cfg.idr_interval),
        ("enable_variable_mode", cfg.variable_mode),
    ]
    if cfg.variable_mode:
        entries.extend([
            ("steps", cfg.steps),
            ("curr_quant_lvl", session.quality.current_quant),
            ("min_quant_lvl", cfg.min_quant),
            ("max_quant_lvl", cfg.max_quant),
            ("curr_bitrate", session.quality.current_bitrate),
            ("min_bitrate", cfg.min_bitrate),
            ("max_bitrate", cfg.max_bitrate),
        ])
    entries.append(("periodic_msg_rate", cfg.status_interval))
    return StatusMessage.from_entries(StatusType.STATUS, entries)


__all__ = ["build_status_message"]

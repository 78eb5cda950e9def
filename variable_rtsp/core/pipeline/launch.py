"""Launch description for the shared RTSP media factory."""

from __future__ import annotations

from ..config import ServerConfig
from ..errors import ConfigError
from .interface import ENCODER_ELEMENT, PAYLOADER_ELEMENT, SOURCE_ELEMENT

LAUNCH_MAX = 8192

STATIC_SINK_PIPELINE = (
    " imxipuvideotransform name=caps0 !"
    f" imxvpuenc_h264 name={ENCODER_ELEMENT} !"
    f" rtph264pay name={PAYLOADER_ELEMENT} pt=96"
)


def build_launch(server: ServerConfig) -> str:
    """Return the gst-launch style description served at the mount point.

    A user pipeline replaces the built-in one entirely; it should name its
    elements ``source0``/``enc0``/``pay0`` to take part in quality control.

    Raises:
        ConfigError: if the description exceeds ``LAUNCH_MAX`` characters.
    """
    if server.user_pipeline:
        launch = f"( {server.user_pipeline} )"
    else:
        launch = f"{server.src_element} name={SOURCE_ELEMENT} !{STATIC_SINK_PIPELINE}"

    if len(launch) >= LAUNCH_MAX:
        raise ConfigError(f"Pipeline description longer than {LAUNCH_MAX - 1} characters")
    return launch


__all__ = ["LAUNCH_MAX", "STATIC_SINK_PIPELINE", "build_launch"]

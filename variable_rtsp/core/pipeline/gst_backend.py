"""GStreamer RTSP server adapter.

Runs on the GLib main context of the calling thread. Under PyGObject's GLib
asyncio policy that is the asyncio loop thread, so signal callbacks and the
session controller never run concurrently.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Iterator, Optional

from ..config import ServerConfig
from ..errors import PipelineError
from ..events import ClientAttached, ClientDetached, SessionEvent
from ..logging_utils import get_module_logger
from .interface import PipelineReadyCallback, PropertyInfo, PropertyKind
from .launch import build_launch

try:
    import gi

    gi.require_version("Gst", "1.0")
    gi.require_version("GstRtspServer", "1.0")
    from gi.repository import GLib, GObject, Gst, GstRtspServer  # type: ignore
except (ImportError, ValueError) as e:  # pragma: no cover
    Gst = None  # type: ignore
    GLib = None  # type: ignore
    GObject = None  # type: ignore
    GstRtspServer = None  # type: ignore
    _gst_import_error: Optional[BaseException] = e
else:
    _gst_import_error = None

logger = get_module_logger("GstRtspBackend")

EventSink = Callable[[SessionEvent], None]

_KIND_BY_TYPE_NAME = {
    "gchararray": PropertyKind.STRING,
    "gboolean": PropertyKind.BOOLEAN,
    "gint": PropertyKind.INT,
    "guint": PropertyKind.UINT,
    "glong": PropertyKind.LONG,
    "gulong": PropertyKind.ULONG,
    "gint64": PropertyKind.INT64,
    "guint64": PropertyKind.UINT64,
    "gfloat": PropertyKind.FLOAT,
    "gdouble": PropertyKind.DOUBLE,
    "GstFraction": PropertyKind.FRACTION,
}

_INTEGER_KINDS = frozenset({
    PropertyKind.INT,
    PropertyKind.UINT,
    PropertyKind.LONG,
    PropertyKind.ULONG,
    PropertyKind.INT64,
    PropertyKind.UINT64,
    PropertyKind.ENUM,
})


def gst_available() -> bool:
    return Gst is not None and GstRtspServer is not None


def property_kind(pspec: Any) -> PropertyKind:
    value_type = pspec.value_type
    kind = _KIND_BY_TYPE_NAME.get(value_type.name)
    if kind is not None:
        return kind
    if value_type.is_a(GObject.TYPE_ENUM):
        return PropertyKind.ENUM
    return PropertyKind.OTHER


def coerce_double(kind: PropertyKind, value: float) -> Any:
    """Convert a command value to the property's native type.

    Raises:
        TypeError: for kinds a number cannot be converted to.
    """
    if kind in _INTEGER_KINDS:
        return int(value)
    if kind is PropertyKind.BOOLEAN:
        return value != 0
    if kind in (PropertyKind.FLOAT, PropertyKind.DOUBLE):
        return value
    raise TypeError(f"cannot convert a number to a {kind.value} property")


class GstRtspBackend:
    """Serves one shared media factory and reports session events."""

    def __init__(self, server_config: ServerConfig, on_event: EventSink) -> None:
        self.server_config = server_config
        self.on_event = on_event
        self.launch: Optional[str] = None
        self._server = None
        self._factory = None
        self._attach_id = 0
        self._ready_handler_id = 0

    # ------------------------------------------------------------------
    # server lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Build the server and attach it to the default main context.

        Raises:
            PipelineError: if GStreamer is unavailable or attaching fails.
            ConfigError: if the launch description is too long.
        """
        if not gst_available():
            raise PipelineError(f"GStreamer RTSP server bindings unavailable: {_gst_import_error}")

        Gst.init(None)
        self.launch = build_launch(self.server_config)
        logger.debug("Launch description: %s", self.launch)

        server = GstRtspServer.RTSPServer()
        server.set_service(self.server_config.port)

        factory = GstRtspServer.RTSPMediaFactory()
        factory.set_launch(self.launch)
        factory.set_shared(True)

        mounts = server.get_mount_points()
        mounts.add_factory(self.server_config.mount_point, factory)

        server.connect("client-connected", self._on_client_connected)

        attach_id = server.attach(None)
        if not attach_id:
            raise PipelineError(f"Failed to attach RTSP server on port {self.server_config.port}")

        self._server = server
        self._factory = factory
        self._attach_id = attach_id
        logger.info("Stream ready at %s", self.server_config.url)

    def stop(self) -> None:
        self.unwatch_pipeline_ready()
        if self._attach_id:
            GLib.source_remove(self._attach_id)
            self._attach_id = 0
        self._factory = None
        self._server = None

    def _on_client_connected(self, server: Any, client: Any) -> None:
        client.connect("closed", self._on_client_closed)
        self.on_event(ClientAttached(client))

    def _on_client_closed(self, client: Any) -> None:
        self.on_event(ClientDetached(client))

    # ------------------------------------------------------------------
    # pipeline-ready subscription
    # ------------------------------------------------------------------

    def watch_pipeline_ready(self, callback: PipelineReadyCallback) -> None:
        if self._factory is None:
            raise PipelineError("RTSP server is not started")
        if self._ready_handler_id:
            logger.warning("media-configure handler already connected")
            return

        def _on_media_configure(factory: Any, media: Any) -> None:
            callback(media.get_element())

        self._ready_handler_id = self._factory.connect("media-configure", _on_media_configure)
        logger.debug("Connected media-configure handler %d", self._ready_handler_id)

    def unwatch_pipeline_ready(self) -> None:
        if self._ready_handler_id and self._factory is not None:
            self._factory.disconnect(self._ready_handler_id)
            logger.debug("Disconnected media-configure handler %d", self._ready_handler_id)
        self._ready_handler_id = 0

    # ------------------------------------------------------------------
    # element access
    # ------------------------------------------------------------------

    def get_element_by_name(self, pipeline: Any, name: str) -> Optional[Any]:
        return pipeline.get_by_name(name)

    def get_pad(self, element: Any, pad_name: str) -> Optional[Any]:
        return element.get_static_pad(pad_name)

    def set_property(self, target: Any, name: str, value: Any) -> None:
        target.set_property(name, value)

    def set_double_property(self, target: Any, name: str, value: float) -> None:
        pspec = target.find_property(name)
        if pspec is None:
            raise TypeError(f"{self.element_class_name(target)} has no property '{name}'")
        target.set_property(name, coerce_double(property_kind(pspec), value))

    def get_property(self, target: Any, name: str) -> Any:
        return target.get_property(name)

    def iterate_elements(self, pipeline: Any) -> Iterator[Any]:
        # Gst.Iterator is iterable through the Gst overrides
        yield from pipeline.iterate_elements()

    def element_class_name(self, element: Any) -> str:
        return element.__gtype__.name

    def list_properties(self, element: Any) -> Iterable[PropertyInfo]:
        infos = []
        for pspec in element.list_properties():
            readable = bool(pspec.flags & GObject.ParamFlags.READABLE)
            kind = property_kind(pspec)
            value = None
            nick = ""
            if readable and kind is not PropertyKind.OTHER:
                value = element.get_property(pspec.name)
                if kind is PropertyKind.FRACTION and value is not None:
                    value = (value.num, value.denom)
                elif kind is PropertyKind.ENUM:
                    nick = getattr(value, "value_nick", "")
            infos.append(PropertyInfo(pspec.name, kind, readable, value, nick))
        return infos

    def stop_pipeline(self, pipeline: Any) -> None:
        pipeline.set_state(Gst.State.NULL)

    def release(self, handle: Any) -> None:
        # PyGObject drops the reference with the last Python ref
        logger.debug("Released %s", getattr(handle, "name", handle))


__all__ = ["GstRtspBackend", "coerce_double", "gst_available", "property_kind"]

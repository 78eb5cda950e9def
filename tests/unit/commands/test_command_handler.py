"""Unit tests for command dispatch against the live session."""

import logging

import pytest

from variable_rtsp.core.commands.command_handler import SetParamResult
from variable_rtsp.core.events import ClientAttached, ClientDetached


@pytest.fixture
def streaming(controller, fake_backend, fake_pipeline, published):
    """Controller with one client and a bound pipeline; published list reset."""
    controller.dispatch(ClientAttached())
    fake_backend.fire_ready(fake_pipeline)
    fake_backend.set_calls.clear()
    fake_backend.released.clear()
    published.clear()
    return controller


def replies(published, msg_type):
    return [m.payload for m in published if m.type == msg_type]


class TestSetParam:

    def test_while_disconnected(self, handler, fake_backend, published):
        assert handler.handle_line("setparam:enc0::bitrate:5000") is True

        assert fake_backend.set_calls == []
        assert replies(published, "setparam") == [["enc0::bitrate:5000:not streaming"]]

    def test_element_property(self, streaming, handler, fake_backend, fake_pipeline, published):
        handler.handle_line("setparam:enc0::bitrate:5000")

        assert fake_backend.set_calls == [("enc0", "bitrate", 5000)]
        assert fake_pipeline.by_name("enc0").value("bitrate") == 5000
        assert replies(published, "setparam") == [["enc0::bitrate:5000:ok"]]

    def test_value_is_parsed_as_double(self, streaming, handler, fake_backend):
        handler.handle_line("setparam:enc0::gop-size:3.0e1")

        assert fake_backend.set_calls == [("enc0", "gop-size", 30)]

    def test_pad_property(self, streaming, handler, fake_backend, fake_pipeline):
        handler.handle_line("setparam:enc0:src:offset:2.5")

        assert fake_pipeline.by_name("enc0").pads["src"].properties == {"offset": 2.5}
        # element and pad references are both given back
        assert len(fake_backend.released) == 2

    def test_unknown_element(self, streaming, handler, fake_backend, published):
        handler.handle_line("setparam:enc9::bitrate:1")

        assert fake_backend.set_calls == []
        assert replies(published, "setparam") == [["enc9::bitrate:1:no such element"]]

    def test_unknown_pad(self, streaming, handler, published):
        handler.handle_line("setparam:enc0:bogus:bitrate:1")

        assert replies(published, "setparam")[-1][0].endswith(SetParamResult.NO_PAD)

    def test_non_numeric_value(self, streaming, handler, fake_backend, published):
        handler.handle_line("setparam:enc0::bitrate:fast")

        assert fake_backend.set_calls == []
        assert replies(published, "setparam")[-1] == ["enc0::bitrate:fast:invalid value"]

    def test_unknown_property_reports_failure(self, streaming, handler, published):
        handler.handle_line("setparam:enc0::no-such-prop:1")

        assert replies(published, "setparam")[-1] == ["enc0::no-such-prop:1:failed"]

    def test_too_few_delimiters_rejected(self, streaming, handler, fake_backend, published):
        assert handler.handle_line("setparam:enc0:bitrate:1") is False

        assert fake_backend.set_calls == []
        assert published == []


class TestPrintBin:

    def test_dumps_each_element(self, streaming, handler, published):
        handler.handle_line("printbin")

        dumps = replies(published, "elementprops")
        assert len(dumps) == 3
        assert dumps[0] == [
            "classname: GstV4l2Src",
            'device:"/dev/video0"',
            "do-timestamp:false",
        ]
        assert dumps[2][0] == "classname: GstRtpH264Pay"
        assert "config-interval:2" in dumps[2]
        assert not any(line.startswith("stats:") for line in dumps[2])

    def test_disconnected_emits_nothing(self, handler, published):
        handler.handle_line("printbin")

        assert published == []


class TestStatus:

    def test_reports_client_count(self, streaming, handler, published):
        streaming.dispatch(ClientAttached())
        streaming.dispatch(ClientAttached())
        published.clear()

        handler.handle_line("status")

        payload = replies(published, "status")[0]
        assert payload[0] == 'source:"command"'
        assert "num_cli:3" in payload
        assert "connected:true" in payload
        assert "state:active" in payload
        assert "curr_bitrate:5002" in payload
        assert payload[-1] == "periodic_msg_rate:5"

    def test_idle_status(self, handler, published):
        handler.handle_line("status")

        payload = replies(published, "status")[0]
        assert "num_cli:0" in payload
        assert "connected:false" in payload
        assert "state:idle" in payload

    def test_status_after_teardown(self, streaming, handler, published):
        streaming.dispatch(ClientDetached())
        published.clear()

        handler.handle_line("status")

        assert "connected:false" in replies(published, "status")[0]


class TestDispatch:

    def test_undefined_action(self, handler, published, caplog):
        caplog.set_level(logging.WARNING, logger="variable_rtsp")

        assert handler.handle_line("reboot") is False

        assert published == []
        assert "Undefined action" in caplog.text

    def test_action_is_case_sensitive(self, handler, published):
        assert handler.handle_line("STATUS") is False
        assert published == []

    def test_blank_line(self, handler):
        assert handler.handle_line("") is False

    def test_publisher_errors_are_contained(self, controller, fake_backend):
        from variable_rtsp.core.commands.command_handler import CommandHandler

        def broken(message):
            raise OSError("status pipe gone")

        handler = CommandHandler(controller.session, fake_backend, broken)

        assert handler.handle_line("status") is True

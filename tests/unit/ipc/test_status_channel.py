"""Unit tests for the outbound status pipe and its stdout fallback."""

import io
import os
import stat

import pytest

from variable_rtsp.core.commands.command_protocol import StatusMessage
from variable_rtsp.core.ipc.status_channel import StatusChannel, ensure_fifo


def sample(n=1):
    return StatusMessage("status", [f"num_cli:{n}", "connected:true"])


class TestFallback:

    def test_unconfigured_writes_to_stream(self, status_stream):
        channel = StatusChannel(output_stream=status_stream)

        channel.send(sample())

        assert channel.using_fallback
        assert status_stream.getvalue() == "status-reply: {num_cli:1,\nconnected:true}\n"

    def test_defaults_to_stdout(self, capsys):
        StatusChannel().send(sample())

        assert capsys.readouterr().out.startswith("status-reply: {")

    def test_open_failure_is_permanent(self, tmp_path, status_stream):
        channel = StatusChannel(str(tmp_path / "missing" / "status"), output_stream=status_stream)

        channel.send(sample(1))
        channel.send(sample(2))

        assert channel.using_fallback
        assert not channel.is_open
        assert status_stream.getvalue().count("status-reply:") == 2
        assert channel.sent == 2

    def test_prepare_failure_selects_fallback(self, tmp_path, status_stream):
        channel = StatusChannel(str(tmp_path / "missing" / "status"), output_stream=status_stream)

        channel.prepare()

        assert channel.using_fallback


@pytest.mark.fifo
class TestFifo:

    def test_ensure_fifo_is_idempotent(self, fifo_dir):
        path = str(fifo_dir / "status")

        ensure_fifo(path)
        ensure_fifo(path)

        assert stat.S_ISFIFO(os.stat(path).st_mode)

    def test_framed_message_reaches_reader(self, fifo_dir, status_stream):
        path = str(fifo_dir / "status")
        channel = StatusChannel(path, output_stream=status_stream)
        channel.prepare()
        reader = os.open(path, os.O_RDONLY | os.O_NONBLOCK)
        try:
            channel.send(sample())
            data = os.read(reader, 4096).decode()
        finally:
            os.close(reader)
            channel.close()

        assert data == "msg{\ntype:status,\ndata:{\nnum_cli:1,\nconnected:true\n}}\n"
        assert status_stream.getvalue() == ""

    def test_reader_gone_switches_to_fallback(self, fifo_dir, status_stream):
        path = str(fifo_dir / "status")
        channel = StatusChannel(path, output_stream=status_stream)
        channel.prepare()
        reader = os.open(path, os.O_RDONLY | os.O_NONBLOCK)
        channel.send(sample(1))
        os.close(reader)

        channel.send(sample(2))
        channel.send(sample(3))

        assert channel.using_fallback
        assert not channel.is_open
        assert "num_cli:2" in status_stream.getvalue()
        assert "num_cli:3" in status_stream.getvalue()

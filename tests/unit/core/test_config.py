"""Unit tests for typed config, clamping and option merging."""

from argparse import Namespace

import pytest

from variable_rtsp.core.config import (
    BITRATE_CAP,
    FILE_DEFAULTS,
    ServerConfig,
    SessionConfig,
    build_configs,
    clamp_max_bitrate,
    clamp_min_bitrate,
    clamp_quant,
    merge_values,
)
from variable_rtsp.core.errors import ConfigError


class TestDefaults:

    def test_defaults_build_valid_configs(self):
        server, session = build_configs(merge_values({}))

        assert server.port == "9099"
        assert server.mount_point == "/stream"
        assert server.url == "rtsp://127.0.0.1:9099/stream"
        assert server.command_pipe is None
        assert session.steps == 4
        assert session.min_quant == 0
        assert session.max_quant == 51
        assert session.max_bitrate == 10000
        assert session.cap_bitrate == BITRATE_CAP
        assert session.status_interval == 5
        assert session.variable_mode is True
        assert session.video_in == "/dev/video0"

    def test_to_dict(self):
        assert ServerConfig().to_dict()["port"] == "9099"
        assert SessionConfig().to_dict()["config_interval"] == 2


class TestClamping:

    @pytest.mark.parametrize("raw,expected", [(-5, 0), (0, 0), (30, 30), (51, 51), (90, 51)])
    def test_quant(self, raw, expected):
        assert clamp_quant(raw) == expected

    def test_min_bitrate_floor_is_one(self):
        assert clamp_min_bitrate(0) == 1
        assert clamp_min_bitrate(-20) == 1
        assert clamp_min_bitrate(BITRATE_CAP + 1) == BITRATE_CAP

    def test_max_bitrate_allows_zero(self):
        assert clamp_max_bitrate(0) == 0
        assert clamp_max_bitrate(-1) == 0
        assert clamp_max_bitrate(BITRATE_CAP * 2) == BITRATE_CAP

    def test_out_of_range_quant_is_clamped_before_validation(self):
        values = merge_values({"min_quant_lvl": -3, "max_quant_lvl": 99})

        _, session = build_configs(values)

        assert (session.min_quant, session.max_quant) == (0, 51)


class TestValidation:

    def test_inverted_quant_bounds_rejected(self):
        with pytest.raises(ConfigError, match="quant"):
            build_configs(merge_values({"min_quant_lvl": 40, "max_quant_lvl": 10}))

    def test_inverted_bitrate_bounds_rejected_in_variable_mode(self):
        with pytest.raises(ConfigError, match="bitrate"):
            build_configs(merge_values({"min_bitrate": 5000, "max_bitrate": 100}))

    def test_inverted_bitrate_bounds_allowed_without_variable_mode(self):
        values = merge_values({"min_bitrate": 5000, "max_bitrate": 100, "enable_variable_mode": False})

        _, session = build_configs(values)

        assert session.variable_mode is False

    def test_single_level_rejected(self):
        with pytest.raises(ConfigError, match="Steps"):
            build_configs(merge_values({"steps": 1}))

    def test_non_numeric_value_rejected(self):
        with pytest.raises(ConfigError):
            build_configs(merge_values({"idr": "often"}))


class TestMerge:

    def test_cli_overrides_file(self):
        args = Namespace(port="8554", steps=None, command_pipe="/tmp/ctl")

        values = merge_values({"port": "7000", "steps": 9}, args)

        assert values["port"] == "8554"
        assert values["steps"] == 9
        assert values["command_pipe"] == "/tmp/ctl"

    def test_unknown_file_keys_ignored(self):
        values = merge_values({"bogus": 1})

        assert "bogus" not in values
        assert set(values) == set(FILE_DEFAULTS)

    def test_blank_pipe_paths_become_none(self):
        server, _ = build_configs(merge_values({"status_pipe": "  "}))

        assert server.status_pipe is None

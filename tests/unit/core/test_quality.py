"""Unit tests for the client-count quality model."""

import pytest

from variable_rtsp.core.config import SessionConfig
from variable_rtsp.core.quality import (
    QualityMode,
    QualityState,
    bitrate_step,
    compute_bitrate,
    compute_quant,
    quality_mode,
    quant_step,
    recompute,
    step_factor,
)


class TestQuantScaling:
    """Quant level climbs from min_quant as clients attach."""

    def test_step_truncates(self, quant_config):
        assert quant_step(quant_config) == 12

    @pytest.mark.parametrize("clients,expected", [(1, 0), (2, 12), (5, 48), (10, 51)])
    def test_reference_values(self, quant_config, clients, expected):
        assert compute_quant(clients, quant_config) == expected

    def test_bounded_and_non_decreasing(self, quant_config):
        values = [compute_quant(n, quant_config) for n in range(1, 40)]

        assert all(quant_config.min_quant <= v <= quant_config.max_quant for v in values)
        assert values == sorted(values)

    def test_single_client_gets_starting_bound(self):
        cfg = SessionConfig(min_quant=20, max_quant=40, max_bitrate=0, steps=2)

        assert compute_quant(1, cfg) == 20

    def test_equal_bounds_never_move(self):
        cfg = SessionConfig(min_quant=30, max_quant=30, max_bitrate=0, steps=4)

        assert {compute_quant(n, cfg) for n in range(1, 10)} == {30}


class TestBitrateScaling:
    """Bitrate falls from max_bitrate as clients attach."""

    def test_step(self, session_config):
        assert bitrate_step(session_config) == 2499

    @pytest.mark.parametrize("clients,expected", [(1, 10000), (2, 7501), (5, 4), (6, 1), (50, 1)])
    def test_reference_values(self, session_config, clients, expected):
        assert compute_bitrate(clients, session_config) == expected

    def test_bounded_and_non_increasing(self, session_config):
        values = [compute_bitrate(n, session_config) for n in range(1, 40)]

        assert all(session_config.min_bitrate <= v <= session_config.max_bitrate for v in values)
        assert values == sorted(values, reverse=True)


class TestModeSelection:

    def test_positive_max_bitrate_selects_bitrate(self, session_config):
        assert quality_mode(session_config) is QualityMode.BITRATE
        assert step_factor(session_config) == 2499

    def test_zero_max_bitrate_selects_quant(self, quant_config):
        assert quality_mode(quant_config) is QualityMode.QUANT
        assert step_factor(quant_config) == 12


class TestRecompute:

    def test_initial_state_uses_starting_bounds(self, session_config):
        state = QualityState.initial(session_config)

        assert state.current_quant == 0
        assert state.current_bitrate == 10000

    def test_same_count_twice_reports_no_change(self, quant_config):
        state = QualityState.initial(quant_config)

        first = recompute(state, 3, quant_config)
        second = recompute(state, 3, quant_config)

        assert first.changed
        assert first.value == 24
        assert not second.changed
        assert state.current_quant == 24

    def test_only_active_value_moves(self, session_config):
        state = QualityState.initial(session_config)

        change = recompute(state, 2, session_config)

        assert change.property_name == "bitrate"
        assert (change.previous, change.value) == (10000, 7501)
        assert state.current_quant == 0

    def test_quant_change_targets_quant_param(self, quant_config):
        state = QualityState.initial(quant_config)

        change = recompute(state, 2, quant_config)

        assert change.property_name == "quant-param"
        assert state.current_bitrate == 0

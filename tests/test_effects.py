"""
Tests for mapping mixer settings to effects chain stages.
"""
import math

import pytest

from audiostudio.core.effects import (
    CompressorStage, FilterStage, GainStage, WaveshaperStage,
    build_chain, compression_ratio, eq_gain_db, gain_from_level, threshold_db
)
from audiostudio.core.mixer import MixerSettings


class TestParameterMappings:
    """Tests for the normalized-to-physical conversions."""

    def test_unity_level(self):
        assert gain_from_level(0.8) == pytest.approx(1.0)
        assert gain_from_level(0.4) == pytest.approx(0.5)
        assert gain_from_level(1.0) == pytest.approx(1.25)

    def test_eq_gain_range(self):
        assert eq_gain_db(0.5) == 0.0
        assert eq_gain_db(0.0) == pytest.approx(-12.0)
        assert eq_gain_db(1.0) == pytest.approx(12.0)

    def test_threshold_range(self):
        assert threshold_db(1.0) == 0.0
        assert threshold_db(0.0) == pytest.approx(-100.0)
        assert threshold_db(0.5) == pytest.approx(-50.0)

    def test_ratio_range(self):
        assert compression_ratio(0.0) == 1.0
        assert compression_ratio(1.0) == pytest.approx(20.0)
        assert compression_ratio(0.5) == pytest.approx(10.5)


class TestBuildChain:
    """Tests for stage selection and ordering."""

    def test_default_chain_is_unity_in_unity_out(self):
        chain = build_chain(MixerSettings())
        assert len(chain) == 2
        assert chain.input.gain == pytest.approx(1.0)
        assert chain.output.gain == pytest.approx(1.0)

    def test_de_esser_has_no_stage(self):
        chain = build_chain(MixerSettings(de_esser_on=True))
        assert len(chain) == 2

    def test_full_chain_order(self):
        settings = MixerSettings(eq_on=True, peak_compressor_on=True, glue_compressor_on=True, saturation_on=True)
        kinds = [type(s) for s in build_chain(settings).stages]
        assert kinds == [
            GainStage, FilterStage, FilterStage, FilterStage,
            CompressorStage, CompressorStage, WaveshaperStage, GainStage,
        ]

    def test_eq_bands(self):
        settings = MixerSettings(eq_on=True, eq_low=1.0, eq_mid=0.5, eq_high=0.0)
        low, mid, high = build_chain(settings).stages[1:4]
        assert (low.kind, low.frequency, low.gain_db) == ("lowshelf", 300.0, pytest.approx(12.0))
        assert (mid.kind, mid.frequency, mid.q) == ("peaking", 1500.0, 1.0)
        assert mid.gain_db == 0.0
        assert (high.kind, high.frequency, high.gain_db) == ("highshelf", 5000.0, pytest.approx(-12.0))
        assert low.q == pytest.approx(1 / math.sqrt(2))

    def test_peak_compressor_times(self):
        settings = MixerSettings(peak_compressor_on=True, peak_attack=1.0, peak_release=1.0)
        stage = build_chain(settings).stages[1]
        assert stage.attack == pytest.approx(0.1)
        assert stage.release == pytest.approx(0.5)
        assert stage.threshold_db == pytest.approx(-50.0)

    def test_glue_compressor_is_slower(self):
        settings = MixerSettings(glue_compressor_on=True, glue_attack=0.0, glue_release=0.0)
        stage = build_chain(settings).stages[1]
        assert stage.attack == pytest.approx(0.01)
        assert stage.release == pytest.approx(0.1)

    def test_glue_compressor_defaults(self):
        stage = build_chain(MixerSettings(glue_compressor_on=True)).stages[1]
        assert stage.attack == pytest.approx(0.1 * 0.2 + 0.01)
        assert stage.release == pytest.approx(0.2 * 0.8 + 0.1)

    def test_saturation_drive(self):
        stage = build_chain(MixerSettings(saturation_on=True, saturation_value=0.5)).stages[1]
        assert stage.amount == pytest.approx(50.0)
        assert stage.curve_size == 44100
        assert stage.oversample == 4

    def test_gain_stages_follow_levels(self):
        chain = build_chain(MixerSettings(input_gain=0.4, output_volume=1.0))
        assert chain.input.gain == pytest.approx(0.5)
        assert chain.output.gain == pytest.approx(1.25)

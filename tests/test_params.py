"""Test the parameter schemas — defaults, bypass settings, validation.

Run: uv run pytest tests/test_params.py
"""

import pytest

from engine.comb_filter import FilterType
from engine.params import (
    COMB_PARAM_RANGES, COMB_SCHEMA, VIBRATO_PARAM_RANGES, VIBRATO_SCHEMA,
    default_comb_params, default_vibrato_params,
)
from shared.params import ParamType


def test_defaults():
    comb = default_comb_params()
    assert comb == {"filter_type": "fir", "gain": 0.5, "delay": 0.01, "max_delay": 1.0}
    vib = default_vibrato_params()
    assert vib["depth"] <= vib["delay"]
    assert vib["wavetable_size"] == 1024


def test_defaults_are_fresh_dicts():
    p = default_comb_params()
    p["gain"] = 0.9
    assert default_comb_params()["gain"] == 0.5


def test_bypass_params():
    assert COMB_SCHEMA.bypass_params()["gain"] == 0.0
    bypass = VIBRATO_SCHEMA.bypass_params()
    assert bypass["delay"] == 0.0
    assert bypass["depth"] == 0.0
    assert bypass["mod_freq"] == 5.0  # no bypass value, falls back to default


def test_ranges_skip_choices():
    assert "filter_type" not in COMB_PARAM_RANGES
    assert COMB_PARAM_RANGES["gain"] == (0.0, 1.0)
    assert VIBRATO_PARAM_RANGES["wavetable_size"] == (16, 65536)


def test_sections_and_choices():
    assert COMB_SCHEMA.param_sections() == {
        "filter": ["filter_type", "gain"],
        "delay": ["delay", "max_delay"],
    }
    assert COMB_SCHEMA.choice_ranges() == {"filter_type": 2}
    assert VIBRATO_SCHEMA.choice_ranges() == {}


def test_schema_lookup():
    p = VIBRATO_SCHEMA.get("mod_freq")
    assert p.type is ParamType.FLOAT
    assert p.unit == "Hz"
    assert VIBRATO_SCHEMA.get("nope") is None
    assert len(VIBRATO_SCHEMA) == 5
    assert [p.key for p in COMB_SCHEMA] == ["filter_type", "gain", "delay", "max_delay"]
    assert [p.key for p in COMB_SCHEMA if p.hidden] == ["max_delay"]


def test_validate_and_clamp():
    raw = {
        "gain": 2.0,
        "delay": "0.02",
        "max_delay": "lots",
        "filter_type": "IIR",
        "unknown": 1,
    }
    assert COMB_SCHEMA.validate_and_clamp(raw) == {
        "gain": 1.0,
        "delay": 0.02,
        "filter_type": "iir",
    }


def test_validate_choice_values():
    assert COMB_SCHEMA.validate_and_clamp({"filter_type": FilterType.IIR}) == {"filter_type": "iir"}
    assert COMB_SCHEMA.validate_and_clamp({"filter_type": "allpass"}) == {}


def test_validate_int_params_round():
    assert VIBRATO_SCHEMA.validate_and_clamp({"wavetable_size": 511.6}) == {"wavetable_size": 512}
    assert VIBRATO_SCHEMA.validate_and_clamp({"wavetable_size": 2}) == {"wavetable_size": 16}
    assert VIBRATO_SCHEMA.validate_and_clamp({"wavetable_size": None}) == {}
    assert VIBRATO_SCHEMA.validate_and_clamp({"wavetable_size": float("inf")}) == {}
    assert VIBRATO_SCHEMA.validate_and_clamp({"wavetable_size": float("nan")}) == {}


def test_resolve_drops_infinite_int():
    p = VIBRATO_SCHEMA.resolve({"wavetable_size": float("inf")})
    assert p["wavetable_size"] == 1024


def test_resolve_overlays_defaults():
    p = VIBRATO_SCHEMA.resolve({"mod_freq": 50.0, "bogus": True})
    assert p["mod_freq"] == 20.0
    assert p["delay"] == pytest.approx(0.005)
    assert "bogus" not in p
    assert VIBRATO_SCHEMA.resolve(None) == default_vibrato_params()

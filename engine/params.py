"""Parameter schemas and defaults for the comb filter and the vibrato.

This is the shared contract between scripts, presets and the render entry
points. All parameter sources produce a dict in this format. Times are in
seconds, rates in Hz.
"""

from shared.params import ParamType as T, ParamDef, ParamSchema

SR = 44100

# ── Comb filter ───────────────────────────────────────────────────────

_COMB_PARAMS = [
    ParamDef("filter_type", T.CHOICE, section="filter",
             default="fir", choices=["fir", "iir"],
             label="Type"),

    ParamDef("gain", T.FLOAT, section="filter",
             default=0.5, bypass=0.0,
             range=(0.0, 1.0), label="Gain"),

    ParamDef("delay", T.FLOAT, section="delay",
             default=0.01, unit="s",
             range=(0.0001, 2.0), label="Delay"),

    # Allocation size of each channel's delay line; delay must stay below it
    ParamDef("max_delay", T.FLOAT, section="delay",
             default=1.0, unit="s",
             range=(0.0001, 10.0), hidden=True),
]

COMB_SCHEMA = ParamSchema(_COMB_PARAMS)

# ── Vibrato ───────────────────────────────────────────────────────────

_VIBRATO_PARAMS = [
    ParamDef("delay", T.FLOAT, section="delay",
             default=0.005, bypass=0.0, unit="s",
             range=(0.0, 0.05), label="Delay"),

    # Peak tap excursion either side of the base delay; never above delay
    ParamDef("depth", T.FLOAT, section="delay",
             default=0.002, bypass=0.0, unit="s",
             range=(0.0, 0.05), label="Depth"),

    ParamDef("mod_freq", T.FLOAT, section="lfo",
             default=5.0, unit="Hz",
             range=(0.0, 20.0), label="Rate"),

    ParamDef("amplitude", T.FLOAT, section="lfo",
             default=1.0, bypass=0.0,
             range=(0.0, 1.0), label="Amount"),

    ParamDef("wavetable_size", T.INT, section="lfo",
             default=1024,
             range=(16, 65536), hidden=True),
]

VIBRATO_SCHEMA = ParamSchema(_VIBRATO_PARAMS)

COMB_PARAM_RANGES = COMB_SCHEMA.param_ranges()
VIBRATO_PARAM_RANGES = VIBRATO_SCHEMA.param_ranges()


def default_comb_params() -> dict:
    """A gentle 10 ms feedforward comb."""
    return COMB_SCHEMA.default_params()


def default_vibrato_params() -> dict:
    """5 ms base delay swept by +/-2 ms at 5 Hz."""
    return VIBRATO_SCHEMA.default_params()

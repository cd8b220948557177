"""Errors raised by the delay effects.

Parameter setters raise InvalidValue and leave the effect in its last valid
state. Constructors (and mutators that would outgrow an allocated delay line)
raise InvalidConfiguration.
"""


class EffectError(Exception):
    """Base class for effect errors."""


class InvalidValue(EffectError, ValueError):
    """A parameter setter received a value outside its domain."""

    def __init__(self, param, value, reason: str = ""):
        self.param = param
        self.value = value
        self.reason = reason
        name = getattr(param, "name", param)
        msg = f"invalid value {value!r} for {name}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class InvalidConfiguration(EffectError, ValueError):
    """The requested configuration cannot be built or no longer fits."""

"""Declarative parameter schema for the delay effects.

An effect's parameter contract is a list of ParamDef objects. ParamSchema
wraps the list and derives the dicts callers need (defaults, bypass settings,
ranges, sections) so every caller works from the same contract.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ParamType(Enum):
    FLOAT = "float"
    INT = "int"
    CHOICE = "choice"


@dataclass
class ParamDef:
    key: str
    type: ParamType
    default: Any
    section: str
    label: str = ""
    unit: str = ""              # display unit, e.g. "s" or "Hz"
    bypass: Any = None          # if None, uses default
    range: tuple | None = None  # (min, max) for continuous params
    choices: list[str] | None = None  # allowed values for CHOICE type
    hidden: bool = False        # construction-time only, not a live control


class ParamSchema:
    """Derives param dicts from a declarative param list."""

    def __init__(self, params: list[ParamDef]):
        self._params = params
        self._by_key: dict[str, ParamDef] = {p.key: p for p in params}

    def default_params(self) -> dict:
        return {p.key: p.default for p in self._params}

    def bypass_params(self) -> dict:
        """Settings under which the effect passes audio through unchanged."""
        result = {}
        for p in self._params:
            result[p.key] = p.bypass if p.bypass is not None else p.default
        return result

    def param_ranges(self) -> dict[str, tuple]:
        """Continuous params only (float/int with a range)."""
        return {p.key: p.range for p in self._params
                if p.range is not None and p.type != ParamType.CHOICE}

    def param_sections(self) -> dict[str, list[str]]:
        """Section name -> list of param keys."""
        sections: dict[str, list[str]] = {}
        for p in self._params:
            sections.setdefault(p.section, []).append(p.key)
        return sections

    def choice_ranges(self) -> dict[str, int]:
        """Choice param -> number of options."""
        return {p.key: len(p.choices) for p in self._params
                if p.type == ParamType.CHOICE and p.choices}

    def validate_and_clamp(self, raw: dict) -> dict:
        """Validate and clamp a raw params dict (e.g. loaded from a preset).

        Unknown keys and uncastable values are dropped. Numbers are cast and
        clamped to range; choices must be one of the listed options.
        """
        result = {}
        for key, value in raw.items():
            p = self._by_key.get(key)
            if p is None:
                continue

            if p.type == ParamType.CHOICE:
                if isinstance(value, Enum):
                    value = value.value
                value = str(value).lower()
                if p.choices and value not in p.choices:
                    continue
                result[key] = value
                continue

            try:
                v = int(round(value)) if p.type == ParamType.INT else float(value)
            except (TypeError, ValueError, OverflowError):
                continue
            if p.range:
                lo, hi = p.range
                v = max(lo, min(hi, v))
            result[key] = v

        return result

    def resolve(self, raw: dict | None) -> dict:
        """Defaults overlaid with the validated entries of `raw`."""
        params = self.default_params()
        if raw:
            params.update(self.validate_and_clamp(raw))
        return params

    def get(self, key: str) -> ParamDef | None:
        return self._by_key.get(key)

    def __iter__(self):
        return iter(self._params)

    def __len__(self):
        return len(self._params)

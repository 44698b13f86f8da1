"""Macro and include-directory parameters handed to a resource compiler."""

from __future__ import annotations

import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Union

PathItem = Union[str, bytes, "os.PathLike[str]", "os.PathLike[bytes]"]

NONE: tuple[str, ...] = ()
"""No additional parameters."""


def _normalise(items: Any) -> tuple[str, ...]:
    """Turn ``None``, a single path-like value or an iterable of them into a tuple of strings."""
    if items is None:
        return ()
    if isinstance(items, (str, bytes, os.PathLike)):
        return (os.fsdecode(items),)
    return tuple(os.fsdecode(item) for item in items)


@dataclass(frozen=True)
class ParameterBundle:
    """Every parameter for one compilation: macro definitions and include directories."""

    macros: tuple[str, ...] = field(default=NONE)
    include_dirs: tuple[str, ...] = field(default=NONE)

    def __post_init__(self) -> None:
        object.__setattr__(self, "macros", _normalise(self.macros))
        object.__setattr__(self, "include_dirs", _normalise(self.include_dirs))


@dataclass(frozen=True)
class ParamsMacros:
    """Macro definitions (``-D``/``/D``), each ``MACRO=value`` or ``MACRO``."""

    macros: Iterable[PathItem] | PathItem | None = NONE


@dataclass(frozen=True)
class ParamsIncludeDirs:
    """Include directories (``-I``/``/I``)."""

    include_dirs: Iterable[PathItem] | PathItem | None = NONE


@dataclass(frozen=True)
class ParamsMacrosAndIncludeDirs:
    """Both macro definitions and include directories."""

    macros: Iterable[PathItem] | PathItem | None = NONE
    include_dirs: Iterable[PathItem] | PathItem | None = NONE


def to_bundle(parameters: Any) -> ParameterBundle:
    """Build a :class:`ParameterBundle` from any accepted parameter form.

    A bare iterable (or ``None``, or a single path-like value) is taken as macros.
    """
    match parameters:
        case ParameterBundle():
            return parameters
        case ParamsMacrosAndIncludeDirs(macros=macros, include_dirs=include_dirs):
            return ParameterBundle(macros, include_dirs)
        case ParamsMacros(macros=macros):
            return ParameterBundle(macros, NONE)
        case ParamsIncludeDirs(include_dirs=include_dirs):
            return ParameterBundle(NONE, include_dirs)
        case _:
            return ParameterBundle(parameters, NONE)


def apply_parameters(
    args: Iterable[str],
    macro_pref: str,
    include_dir_pref: str,
    parameters: Any,
) -> list[str]:
    """Return ``args`` followed by a prefixed argument pair for every macro, then every include directory."""
    bundle = to_bundle(parameters)
    result = list(args)
    for macro in bundle.macros:
        result += [macro_pref, macro]
    for include_dir in bundle.include_dirs:
        result += [include_dir_pref, include_dir]
    return result
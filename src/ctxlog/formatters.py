"""
Generic value formatting.

printf-style directives plus inspection of everything else:

    %s  str          %d  number       %i  integer      %f  float
    %j  JSON         %o  inspect      %O  inspect      %c  consumed, renders nothing
    %%  literal %

Arguments left over after the directives are appended, separated by a space:
strings as-is, anything else inspected.
"""

from __future__ import annotations

import json
import math
import pprint
import re
from dataclasses import dataclass
from typing import Any

_REX_DIRECTIVE = re.compile(r"%[sdifjoOc%]")


@dataclass
class InspectOptions:
    """How non-string values are rendered."""
    depth: int | None = None
    compact: bool = False
    colors: bool = False
    width: int = 80
    sort_keys: bool = True


class Ansi:
    """ANSI codes used when colors are enabled."""
    NUMBER = "\033[33m"      # yellow
    STRING = "\033[32m"      # green
    NONE = "\033[1m"         # bold
    SPECIAL = "\033[36m"     # cyan: classes, functions
    RESET = "\033[0m"


def _colorize(text: str, value: Any) -> str:
    if isinstance(value, (bool, int, float, complex)):
        color = Ansi.NUMBER
    elif isinstance(value, str):
        color = Ansi.STRING
    elif value is None:
        color = Ansi.NONE
    elif callable(value):
        color = Ansi.SPECIAL
    else:
        return text
    return f"{color}{text}{Ansi.RESET}"


def inspect_value(value: Any, options: InspectOptions | None = None) -> str:
    """Debug representation of `value`, honouring depth/width/compactness."""
    options = options or InspectOptions()
    text = pprint.pformat(
        value,
        depth=options.depth + 1 if options.depth is not None else None,
        width=options.width,
        compact=options.compact,
        sort_dicts=options.sort_keys,
    )
    if options.colors:
        text = _colorize(text, value)
    return text


def _as_number(value: Any, integer: bool) -> str:
    if isinstance(value, bool):
        value = int(value)
    if not isinstance(value, int):
        try:
            value = float(value)
        except (TypeError, ValueError):
            return "nan"
        if math.isfinite(value) and (integer or value.is_integer()):
            value = int(value)
    return str(value)


def _as_float(value: Any) -> str:
    try:
        return str(float(value))
    except (TypeError, ValueError):
        return "nan"


def _as_json(value: Any) -> str:
    try:
        return json.dumps(value, default=str)
    except ValueError:
        # Circular structures
        return "[Circular]"


def _render_directive(directive: str, value: Any, options: InspectOptions) -> str:
    if directive == "s":
        return value if isinstance(value, str) else inspect_value(value, options)
    if directive == "d":
        return _colorize_if(_as_number(value, integer=False), options)
    if directive == "i":
        return _colorize_if(_as_number(value, integer=True), options)
    if directive == "f":
        return _colorize_if(_as_float(value), options)
    if directive == "j":
        return _as_json(value)
    if directive in ("o", "O"):
        return inspect_value(value, options)
    # %c
    return ""


def _colorize_if(text: str, options: InspectOptions) -> str:
    return f"{Ansi.NUMBER}{text}{Ansi.RESET}" if options.colors else text


def format_with_options(options: InspectOptions | None, fmt: Any, *args: Any) -> str:
    """
    Render `fmt` with `args`.

    Directives without a matching argument are left as they are.
    When `fmt` is not a string, every argument (fmt included) is inspected.
    """
    options = options or InspectOptions()
    if not isinstance(fmt, str):
        values = (fmt, *args)
        return " ".join(
            v if isinstance(v, str) else inspect_value(v, options) for v in values
        )

    remaining = list(args)

    def substitute(match: re.Match) -> str:
        directive = match.group(0)[1]
        if directive == "%":
            return "%"
        if not remaining:
            return match.group(0)
        return _render_directive(directive, remaining.pop(0), options)

    text = _REX_DIRECTIVE.sub(substitute, fmt)
    extras = [v if isinstance(v, str) else inspect_value(v, options) for v in remaining]
    return " ".join([text, *extras]) if text else " ".join(extras)

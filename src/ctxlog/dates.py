"""
Date template compiler.

A date template is a short string of two-letter uppercase codes mixed with
arbitrary separators, e.g. ``"DA-MO-YE HO:MI:SE.ML"``. Compiling it yields a
zero-argument function that formats the *current* time on every call.

    DA  day of month   (2 digits)
    MO  month          (2 digits)
    YE  full year
    HO  hours          (2 digits)
    MI  minutes        (2 digits)
    SE  seconds        (2 digits)
    ML  milliseconds   (3 digits)

Uppercase runs that are not exactly one of these codes pass through untouched.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Callable

DATE_PLACEHOLDERS: dict[str, Callable[[datetime], int]] = {
    "DA": lambda d: d.day,
    "MO": lambda d: d.month,
    "YE": lambda d: d.year,
    "HO": lambda d: d.hour,
    "MI": lambda d: d.minute,
    "SE": lambda d: d.second,
    "ML": lambda d: d.microsecond // 1000,
}

_WIDTHS = {"ML": 3}
_DEFAULT_WIDTH = 2

_REX_PROPS = re.compile(r"[A-Z][A-Z]+")


def compile_date_template(
    template: str,
    clock: Callable[[], datetime] = datetime.now,
) -> Callable[[], str]:
    """
    Compile `template` into a function returning the formatted current time.

    Args:
        template: e.g. "DA-MO-YE".
        clock: time source, local time by default.
    """
    if not isinstance(template, str):
        raise TypeError(
            f"Expected str for date template, got {type(template).__name__}"
        )

    def replace(match: re.Match, now: datetime) -> str:
        code = match.group(0)
        getter = DATE_PLACEHOLDERS.get(code)
        if getter is None:
            return code
        return str(getter(now)).zfill(_WIDTHS.get(code, _DEFAULT_WIDTH))

    def render() -> str:
        now = clock()
        return _REX_PROPS.sub(lambda m: replace(m, now), template)

    render.template = template  # type: ignore[attr-defined]
    return render

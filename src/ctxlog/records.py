"""
Logger configuration records.

One LoggerInfo per alias. The write entry point of an alias keeps a
reference to its LoggerInfo for its whole lifetime; re-registration mutates
the record in place (shallow merge) instead of replacing it.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Callable

from ctxlog.formatters import InspectOptions
from ctxlog.writers import DEFAULT_ENCODING, Writer, is_standard_destination


@dataclass
class LoggerInfo:
    """Configuration bound to one logger alias. None means "use the default"."""
    alias: str
    destination: str
    writer: Writer
    prompt: str | None = None
    date: Callable[[], str] | None = None
    encoding: str = DEFAULT_ENCODING
    flags: str | None = None
    depth: int | None = None
    compact: bool | None = None
    colors: bool | None = None
    width: int | None = None
    sort_keys: bool | None = None

    def update(self, **changes: Any) -> None:
        """Shallow merge: overwrite only the given fields."""
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise ValueError(f"Unknown logger fields: {', '.join(sorted(unknown))}")
        for name, value in changes.items():
            setattr(self, name, value)

    def apply_color_rule(self) -> None:
        """
        Standard streams: colors on unless explicitly turned off.
        Files: colors always off.
        """
        on_standard_stream = is_standard_destination(self.destination)
        if self.colors is None:
            self.colors = on_standard_stream
        else:
            self.colors = self.colors and on_standard_stream

    @property
    def inspect_options(self) -> InspectOptions:
        defaults = InspectOptions()
        return InspectOptions(
            depth=self.depth,
            compact=defaults.compact if self.compact is None else self.compact,
            colors=bool(self.colors),
            width=defaults.width if self.width is None else self.width,
            sort_keys=defaults.sort_keys if self.sort_keys is None else self.sort_keys,
        )

    def describe(self) -> dict:
        return {
            "destination": self.destination,
            "writer": type(self.writer).__name__,
            "prompt": self.prompt,
            "date": getattr(self.date, "template", "<callable>") if self.date else None,
            "encoding": self.encoding,
            "colors": self.colors,
            "depth": self.depth,
        }

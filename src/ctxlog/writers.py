"""
Writer registry.

One open writable resource per physical destination. Every logger that
targets the same destination shares the same handle, so lines from
different aliases land in the file in call order.

Destinations are either the reserved names ``stdout`` / ``stderr`` or a
filesystem path. Relative paths are resolved against the working directory
captured when this module was first imported.
"""

from __future__ import annotations

import os
import sys
import threading
from pathlib import Path
from typing import IO, Union

STDOUT = "stdout"
STDERR = "stderr"
RESERVED_DESTINATIONS = (STDOUT, STDERR)

ENTRY_FOLDER = os.getcwd()

DEFAULT_ENCODING = "utf-8"
DEFAULT_FLAGS = "w"

# write-stream flags → open() modes
_FLAG_MODES = {
    "w": "w",
    "a": "a",
    "x": "x",
    "wx": "x",
    "ax": "x",
}


class StandardStream:
    """
    Handle for one of the process's inherited standard streams.

    The underlying stream is looked up on every write, so redirections of
    ``sys.stdout`` / ``sys.stderr`` made after registration are honoured.
    """

    def __init__(self, name: str):
        if name not in RESERVED_DESTINATIONS:
            raise ValueError(
                f"Unknown standard stream '{name}'. "
                f"Valid names: {', '.join(RESERVED_DESTINATIONS)}"
            )
        self.name = name

    @property
    def stream(self) -> IO[str]:
        return getattr(sys, self.name)

    def write(self, text: str) -> int:
        return self.stream.write(text)

    def flush(self) -> None:
        self.stream.flush()

    def isatty(self) -> bool:
        isatty = getattr(self.stream, "isatty", None)
        return bool(isatty and isatty())

    def __repr__(self) -> str:
        return f"StandardStream({self.name!r})"


Writer = Union[StandardStream, IO[str]]


def is_standard_destination(destination: str) -> bool:
    return destination in RESERVED_DESTINATIONS


def normalize_destination(destination: str, base_dir: str | Path = ENTRY_FOLDER) -> str:
    """Identity key for a destination: reserved name or normalized absolute path."""
    if not isinstance(destination, (str, Path)):
        raise TypeError(
            f"Expected str or Path for destination, got {type(destination).__name__}"
        )
    destination = os.fspath(destination)
    if not destination:
        raise ValueError("Destination must not be empty")
    if is_standard_destination(destination):
        return destination
    if not os.path.isabs(destination):
        destination = os.path.join(os.fspath(base_dir), destination)
    return os.path.normpath(destination)


def open_mode(flags: str) -> str:
    try:
        return _FLAG_MODES[flags]
    except KeyError:
        raise ValueError(
            f"Unsupported flags '{flags}'. "
            f"Valid flags: {', '.join(_FLAG_MODES)}"
        )


class WriterRegistry:
    """
    Maps a destination identifier to exactly one open writer.

    Usage:
        writers = WriterRegistry()
        a = writers.resolve("logs/app.log")
        b = writers.resolve("./logs/../logs/app.log")
        assert a is b
    """

    def __init__(self, base_dir: str | Path | None = None) -> None:
        self.base_dir = os.fspath(base_dir) if base_dir is not None else ENTRY_FOLDER
        self._writers: dict[str, Writer] = {
            STDOUT: StandardStream(STDOUT),
            STDERR: StandardStream(STDERR),
        }
        self._lock = threading.Lock()

    def resolve(
        self,
        destination: str | Path,
        encoding: str | None = None,
        flags: str | None = None,
    ) -> Writer:
        """
        Return the writer for `destination`, opening it on first use.

        `encoding` and `flags` only matter when the file is opened; later
        calls for an already-open destination ignore them. Open failures
        (permissions, missing directory) propagate and nothing is stored.
        """
        key = self.normalize(destination)
        writer = self._writers.get(key)
        if writer is not None:
            return writer

        mode = open_mode(flags or DEFAULT_FLAGS)
        with self._lock:
            writer = self._writers.get(key)
            if writer is None:
                writer = open(key, mode, encoding=encoding or DEFAULT_ENCODING, buffering=1)
                self._writers[key] = writer
        return writer

    def normalize(self, destination: str | Path) -> str:
        return normalize_destination(destination, self.base_dir)

    def get(self, destination: str | Path) -> Writer | None:
        """Writer already open for `destination`, or None."""
        return self._writers.get(self.normalize(destination))

    def __contains__(self, destination: object) -> bool:
        if not isinstance(destination, (str, Path)):
            return False
        return self.normalize(destination) in self._writers

    @property
    def destinations(self) -> list[str]:
        return list(self._writers)

    # ── Cleanup ───────────────────────────────────────────────────

    def flush(self) -> None:
        """Flush every open writer."""
        for writer in self._writers.values():
            writer.flush()

    def close(self) -> None:
        """
        Close every file writer. Standard streams stay open.
        For shutdown and tests; normal operation never closes a writer.
        """
        with self._lock:
            for key in list(self._writers):
                writer = self._writers[key]
                if isinstance(writer, StandardStream):
                    continue
                writer.close()
                del self._writers[key]

    def describe(self) -> dict:
        return {
            "base_dir": self.base_dir,
            "writers": {
                key: type(writer).__name__ for key, writer in self._writers.items()
            },
        }

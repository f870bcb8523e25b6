"""
Logger registry and write path.

Each alias maps to a LoggerInfo (its configuration) and a LoggerFunction
(its write entry point). The Logger façade looks entry points up by name:

    log("plain message %d", 42)
    log.err("goes to stderr")
    log.warn(contextualize(user), "%name% logged in from %ip%")

Registration is expected at startup; writes are synchronous, one
writer.write() call per invocation.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from ctxlog.config import LoggerOptions, RegistrationKind
from ctxlog.dates import compile_date_template
from ctxlog.formatters import format_with_options
from ctxlog.records import LoggerInfo
from ctxlog.templates import Context, render_template
from ctxlog.writers import STDOUT, WriterRegistry

DEFAULT_LOGGER_NAME = "log"

LoggerDefinition = Union[str, Path, LoggerOptions, dict]


class MessageKind(str, Enum):
    """What the first positional argument of a logger call is."""
    EMPTY = "empty"       # log()
    TEXT = "text"         # log("message %s", arg)
    CONTEXT = "context"   # log(ctx, "%name% ...", arg)
    VALUE = "value"       # log({"a": 1}), inspected like a trailing argument


def classify_message(args: tuple) -> MessageKind:
    if not args or args[0] is None:
        return MessageKind.EMPTY
    first = args[0]
    if isinstance(first, Context):
        return MessageKind.CONTEXT
    if isinstance(first, str):
        return MessageKind.TEXT
    return MessageKind.VALUE


def classify_registration(name: Any, options: Any) -> RegistrationKind:
    if isinstance(name, Mapping):
        if options is not None:
            raise TypeError("A batch of logger definitions takes no separate options")
        return RegistrationKind.BATCH
    if not isinstance(name, str):
        raise TypeError(
            f"Expected logger alias or mapping of definitions, got {type(name).__name__}"
        )
    if options is None:
        raise ValueError(f"Logger '{name}' needs a destination or options")
    if isinstance(options, (str, Path)):
        return RegistrationKind.DESTINATION
    return RegistrationKind.OPTIONS


# ── Write path ────────────────────────────────────────────────────

def build_prefix(info: LoggerInfo) -> str:
    prefix = info.prompt or ""
    if info.date is not None:
        prefix += "[" + info.date() + "]"
    if prefix:
        prefix += ":"
    return prefix


def write(info: LoggerInfo, *args: Any) -> None:
    """
    Assemble one line and push it to the logger's writer.

    prefix + (templated) message, rendered with the trailing arguments,
    then a newline. Template errors propagate before anything is written.
    """
    kind = classify_message(args)
    trailing = list(args[1:])
    message = ""

    if kind is MessageKind.TEXT:
        message = args[0]
    elif kind is MessageKind.VALUE:
        trailing.insert(0, args[0])
    elif kind is MessageKind.CONTEXT:
        template = trailing.pop(0) if trailing else None
        if isinstance(template, str):
            message = render_template(args[0], template, literal_percent="%%")
        elif template is not None:
            trailing.insert(0, template)

    line = format_with_options(info.inspect_options, build_prefix(info) + message, *trailing)
    info.writer.write(line + "\n")


class LoggerFunction:
    """Write entry point of one alias. Bound to its LoggerInfo for life."""

    __slots__ = ("info",)

    def __init__(self, info: LoggerInfo):
        self.info = info

    @property
    def alias(self) -> str:
        return self.info.alias

    def __call__(self, *args: Any) -> None:
        write(self.info, *args)

    def __repr__(self) -> str:
        return f"LoggerFunction({self.info.alias!r} -> {self.info.destination!r})"


# ── Registry ──────────────────────────────────────────────────────

class LoggerRegistry:
    """
    Alias → (configuration, entry point), plus the writers they share.

    Usage:
        registry = LoggerRegistry.instance()
        registry.register("err", "stderr")
        registry.register("audit", {"output": "audit.log", "prompt": "Audit", "date": "HO:MI:SE"})
        registry.entry("audit")("user %s logged in", name)
    """

    _instance: Optional["LoggerRegistry"] = None
    _lock = threading.Lock()

    def __init__(self, writers: WriterRegistry | None = None) -> None:
        self.writers = writers or WriterRegistry()
        self._loggers: dict[str, LoggerInfo] = {}
        self._entries: dict[str, LoggerFunction] = {}
        self._register_lock = threading.Lock()

        default = LoggerInfo(
            alias=DEFAULT_LOGGER_NAME,
            destination=STDOUT,
            writer=self.writers.resolve(STDOUT),
            colors=True,
        )
        self._loggers[DEFAULT_LOGGER_NAME] = default
        self._entries[DEFAULT_LOGGER_NAME] = LoggerFunction(default)

    @classmethod
    def instance(cls) -> "LoggerRegistry":
        """Get or create the shared registry."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """
        Drop the shared registry. For testing only.
        Closes its file writers before resetting.
        """
        with cls._lock:
            if cls._instance is not None:
                cls._instance.writers.close()
                cls._instance = None

    # ── Registration ──────────────────────────────────────────────

    def register(
        self,
        name: str | Mapping[str, LoggerDefinition],
        options: LoggerDefinition | None = None,
    ) -> None:
        """
        Create or update loggers.

            register("err", "stderr")
            register("warn", {"output": "warn.log", "prompt": "Warn"})
            register({"err": "stderr", "warn": {...}})
        """
        kind = classify_registration(name, options)
        if kind is RegistrationKind.BATCH:
            self.register_many(name)
        else:
            self._register_one(name, options)

    def register_many(self, definitions: Mapping[str, LoggerDefinition]) -> None:
        """
        Register each definition in order.

        A failing entry does not stop the ones after it and nothing is rolled
        back. Once every entry has been attempted, the failures are raised
        together as an ExceptionGroup, one exception per failed alias.
        """
        failed: list[str] = []
        failures: list[Exception] = []
        for alias, options in definitions.items():
            try:
                self._register_one(alias, options)
            except (ValueError, TypeError, OSError) as exc:
                failed.append(str(alias))
                failures.append(exc)
        if failures:
            raise ExceptionGroup(
                f"Logger definitions failed: {', '.join(failed)}", failures
            )

    def _register_one(self, alias: str, options: LoggerDefinition) -> None:
        _check_alias(alias)
        opts = LoggerOptions.coerce(options)
        changes = opts.changes()
        destination = self.writers.normalize(changes.pop("destination"))
        writer = self.writers.resolve(destination, encoding=opts.encoding, flags=opts.flags)
        if isinstance(changes.get("date"), str):
            changes["date"] = compile_date_template(changes["date"])

        with self._register_lock:
            info = self._loggers.get(alias)
            if info is None:
                info = LoggerInfo(alias=alias, destination=destination, writer=writer)
                info.update(**changes)
                self._loggers[alias] = info
                self._entries[alias] = LoggerFunction(info)
            else:
                info.update(destination=destination, writer=writer, **changes)
            info.apply_color_rule()

    # ── Lookup ────────────────────────────────────────────────────

    def entry(self, alias: str) -> LoggerFunction:
        """The write entry point for `alias`."""
        try:
            return self._entries[alias]
        except KeyError:
            raise KeyError(f"No logger registered as '{alias}'") from None

    def get(self, alias: str) -> LoggerInfo | None:
        return self._loggers.get(alias)

    def __contains__(self, alias: object) -> bool:
        return alias in self._loggers

    @property
    def aliases(self) -> list[str]:
        return list(self._loggers)

    def describe(self) -> dict:
        """Registered loggers and open writers, for display."""
        return {
            "loggers": {alias: info.describe() for alias, info in self._loggers.items()},
            "writers": self.writers.describe(),
        }

    # ── Cleanup ───────────────────────────────────────────────────

    def flush(self) -> None:
        self.writers.flush()


# ── Façade ────────────────────────────────────────────────────────

class Logger:
    """
    Callable façade over a LoggerRegistry.

    `log(...)` writes through the default logger, `log.<alias>(...)` and
    `log["<alias>"](...)` through a registered one. Entry points cannot be
    reassigned or deleted. Without an explicit registry the shared one is
    looked up on every access.
    """

    __slots__ = ("_registry",)

    def __init__(self, registry: LoggerRegistry | None = None):
        object.__setattr__(self, "_registry", registry)

    @property
    def registry(self) -> LoggerRegistry:
        return self._registry or LoggerRegistry.instance()

    def register(
        self,
        name: str | Mapping[str, LoggerDefinition],
        options: LoggerDefinition | None = None,
    ) -> None:
        self.registry.register(name, options)

    def __call__(self, *args: Any) -> None:
        self.registry.entry(DEFAULT_LOGGER_NAME)(*args)

    def __getattr__(self, alias: str) -> LoggerFunction:
        if alias.startswith("_"):
            raise AttributeError(alias)
        try:
            return self.registry.entry(alias)
        except KeyError:
            raise AttributeError(f"No logger registered as '{alias}'") from None

    def __getitem__(self, alias: str) -> LoggerFunction:
        return self.registry.entry(alias)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"Cannot assign '{name}': logger entry points are read-only")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"Cannot delete '{name}': logger entry points are permanent")

    def __dir__(self) -> list[str]:
        return sorted(set(super().__dir__()) | set(self.registry.aliases))

    def __repr__(self) -> str:
        return f"Logger(aliases={self.registry.aliases})"


# Public façade names an alias may not shadow
_FACADE_ATTRIBUTES = frozenset(
    name for name in dir(Logger) if not name.startswith("_")
)


def _check_alias(alias: Any) -> None:
    if not isinstance(alias, str):
        raise TypeError(f"Expected str for logger alias, got {type(alias).__name__}")
    if not alias:
        raise ValueError("Logger alias must not be empty")
    if alias in _FACADE_ATTRIBUTES:
        raise ValueError(
            f"Logger alias '{alias}' is reserved. "
            f"Reserved names: {', '.join(sorted(_FACADE_ATTRIBUTES))}"
        )
    if alias.startswith("_"):
        raise ValueError(f"Logger alias '{alias}' must not start with an underscore")

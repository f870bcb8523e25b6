"""
ctxlog: templated, multi-destination logging.

Named loggers, each bound to a console stream or a file, with an optional
prompt and live timestamp prefix. Messages can be templated against a
context object:

    from ctxlog import log, register_logger, contextualize

    register_logger({
        "err": {"output": "stderr", "prompt": "Error"},
        "warn": {"output": "logger.log", "prompt": "Warn", "date": "DA-MO-YE"},
    })
    log("plain %s", "message")
    log.err("to stderr")
    log.warn(contextualize(user), "%name% is %age% years old")
"""

from __future__ import annotations

from collections.abc import Mapping

from ctxlog.config import LoggerOptions, LoggingConfig, RegistrationKind
from ctxlog.core import (
    DEFAULT_LOGGER_NAME,
    Logger,
    LoggerDefinition,
    LoggerFunction,
    LoggerRegistry,
    MessageKind,
)
from ctxlog.dates import compile_date_template
from ctxlog.formatters import InspectOptions, format_with_options
from ctxlog.records import LoggerInfo
from ctxlog.templates import Context, TemplateError, contextualize, render_template
from ctxlog.writers import STDERR, STDOUT, WriterRegistry

log = Logger()


def register_logger(
    name: str | Mapping[str, LoggerDefinition],
    options: LoggerDefinition | None = None,
) -> None:
    """Register or update loggers on the shared registry."""
    LoggerRegistry.instance().register(name, options)


__all__ = [
    "log",
    "register_logger",
    "contextualize",
    "Context",
    "TemplateError",
    "Logger",
    "LoggerFunction",
    "LoggerRegistry",
    "LoggerInfo",
    "LoggerOptions",
    "LoggingConfig",
    "RegistrationKind",
    "MessageKind",
    "WriterRegistry",
    "InspectOptions",
    "compile_date_template",
    "format_with_options",
    "render_template",
    "DEFAULT_LOGGER_NAME",
    "STDOUT",
    "STDERR",
]

"""
Pydantic schemas for logger definitions.

A logger is defined either by a bare destination string or by an options
record. A whole set of loggers can be loaded from YAML:

    loggers:
      err: stderr
      warn:
        output: logs/warn.log
        prompt: Warn
        date: DA-MO-YE
        depth: 0
        compact: false

Usage:
    config = LoggingConfig.from_yaml("logging.yaml")
    config.apply()
"""

from __future__ import annotations

import codecs
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Optional, Union

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from ctxlog.writers import open_mode

if TYPE_CHECKING:
    from ctxlog.core import LoggerRegistry


class RegistrationKind(str, Enum):
    DESTINATION = "destination"   # register("err", "stderr")
    OPTIONS = "options"           # register("warn", {"output": ..., ...})
    BATCH = "batch"               # register({"err": ..., "warn": ...})


class LoggerOptions(BaseModel):
    """
    Options for one logger. Only `destination` is required.

    `output` is accepted as an alias of `destination`. `date` is either a
    date template ("DA-MO-YE HO:MI:SE") or a zero-argument callable
    returning the timestamp text.
    """

    model_config = ConfigDict(extra="forbid")

    destination: Union[str, Path] = Field(
        validation_alias=AliasChoices("destination", "output")
    )
    prompt: Optional[str] = None
    date: Optional[Union[str, Callable[[], str]]] = None

    # File writers
    encoding: Optional[str] = None
    flags: Optional[str] = None

    # Inspection of non-string arguments
    depth: Optional[int] = Field(None, ge=0)
    compact: Optional[bool] = None
    colors: Optional[bool] = None
    width: Optional[int] = Field(None, gt=0)
    sort_keys: Optional[bool] = None

    @field_validator("destination")
    @classmethod
    def destination_not_empty(cls, v: str | Path) -> str | Path:
        if not str(v):
            raise ValueError("destination must not be empty")
        return v

    @field_validator("encoding")
    @classmethod
    def encoding_known(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            try:
                codecs.lookup(v)
            except LookupError:
                raise ValueError(f"Unknown encoding '{v}'")
        return v

    @field_validator("flags")
    @classmethod
    def flags_known(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            open_mode(v)
        return v

    @classmethod
    def coerce(cls, value: Any) -> "LoggerOptions":
        """Build options from a destination string, a dict or an options record."""
        if isinstance(value, cls):
            return value
        if isinstance(value, (str, Path)):
            return cls(destination=value)
        if isinstance(value, dict):
            return cls.model_validate(value)
        raise TypeError(
            f"Expected destination string or options for a logger, "
            f"got {type(value).__name__}"
        )

    def changes(self) -> dict[str, Any]:
        """Fields the caller actually set, to be merged over an existing logger."""
        return self.model_dump(exclude_unset=True)


class LoggingConfig(BaseModel):
    """A named set of logger definitions, registered in order by apply()."""

    loggers: dict[str, Union[str, LoggerOptions]] = Field(default_factory=dict)

    source_yaml: Optional[str] = Field(None, exclude=True)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "LoggingConfig":
        """Load and validate from a YAML file."""
        path = Path(path)
        raw = path.read_text(encoding="utf-8")
        return cls.from_yaml_string(raw)

    @classmethod
    def from_yaml_string(cls, yaml_string: str) -> "LoggingConfig":
        """Load and validate from a YAML string."""
        data = yaml.safe_load(yaml_string) or {}
        config = cls.model_validate(data)
        config.source_yaml = yaml_string
        return config

    @classmethod
    def from_dict(cls, data: dict) -> "LoggingConfig":
        return cls.model_validate(data)

    def apply(self, registry: LoggerRegistry | None = None) -> None:
        """Register every logger, in file order, on `registry` (default: the shared one)."""
        from ctxlog.core import LoggerRegistry

        registry = registry or LoggerRegistry.instance()
        registry.register_many(self.loggers)

"""
Tests for logger definition schemas.

Covers:
- LoggerOptions validation (required destination, output alias, unknown keys)
- Encoding / flags / inspection option validation
- Partial options and merge changes
- LoggingConfig from YAML string, YAML file and dict
- apply() onto a registry
"""

import pytest
import yaml
from pydantic import ValidationError

from ctxlog.config import LoggerOptions, LoggingConfig
from ctxlog.core import LoggerRegistry
from ctxlog.writers import WriterRegistry


@pytest.fixture
def registry(tmp_path):
    reg = LoggerRegistry(WriterRegistry(base_dir=tmp_path))
    yield reg
    reg.writers.close()


# ═══════════════════════════════════════════════════════════════════
#  LoggerOptions
# ═══════════════════════════════════════════════════════════════════

class TestLoggerOptions:
    def test_minimal(self):
        opts = LoggerOptions(destination="stderr")
        assert opts.destination == "stderr"
        assert opts.prompt is None
        assert opts.date is None

    def test_output_alias(self):
        opts = LoggerOptions.model_validate({"output": "logger.log", "prompt": "Warn"})
        assert opts.destination == "logger.log"
        assert opts.prompt == "Warn"

    def test_destination_required(self):
        with pytest.raises(ValidationError):
            LoggerOptions.model_validate({"prompt": "Warn"})

    def test_empty_destination(self):
        with pytest.raises(ValidationError, match="must not be empty"):
            LoggerOptions(destination="")

    def test_unknown_key_rejected(self):
        with pytest.raises(ValidationError):
            LoggerOptions.model_validate({"output": "stdout", "colour": True})

    def test_unknown_encoding(self):
        with pytest.raises(ValidationError, match="Unknown encoding"):
            LoggerOptions.model_validate({"output": "x.log", "encoding": "klingon"})

    def test_known_encodings(self):
        assert LoggerOptions.model_validate({"output": "x.log", "encoding": "utf8"}).encoding == "utf8"
        assert LoggerOptions.model_validate({"output": "x.log", "encoding": "latin-1"}).encoding == "latin-1"

    def test_unknown_flags(self):
        with pytest.raises(ValidationError, match="Unsupported flags"):
            LoggerOptions.model_validate({"output": "x.log", "flags": "r+"})

    def test_negative_depth(self):
        with pytest.raises(ValidationError):
            LoggerOptions.model_validate({"output": "x.log", "depth": -1})

    def test_date_template_or_callable(self):
        assert LoggerOptions.model_validate({"output": "x", "date": "DA-MO-YE"}).date == "DA-MO-YE"
        stamp = lambda: "now"  # noqa: E731
        assert LoggerOptions.model_validate({"output": "x", "date": stamp}).date is stamp

    def test_date_must_be_text_or_callable(self):
        with pytest.raises(ValidationError):
            LoggerOptions.model_validate({"output": "x", "date": 42})

    def test_changes_only_set_fields(self):
        opts = LoggerOptions.model_validate({"output": "x.log", "prompt": "P", "colors": False})
        assert opts.changes() == {"destination": "x.log", "prompt": "P", "colors": False}

    def test_coerce(self):
        assert LoggerOptions.coerce("stderr").destination == "stderr"
        assert LoggerOptions.coerce({"output": "stdout"}).destination == "stdout"
        opts = LoggerOptions(destination="stdout")
        assert LoggerOptions.coerce(opts) is opts
        with pytest.raises(TypeError):
            LoggerOptions.coerce(["stdout"])


# ═══════════════════════════════════════════════════════════════════
#  LoggingConfig
# ═══════════════════════════════════════════════════════════════════

class TestLoggingConfig:
    YAML = """
loggers:
  err:
    output: stderr
    prompt: Error
  warn:
    output: logger.log
    prompt: Warn
    date: DA-MO-YE
    depth: 0
    compact: false
    colors: true
  audit: audit.log
"""

    def test_from_yaml_string(self):
        config = LoggingConfig.from_yaml_string(self.YAML)
        assert list(config.loggers) == ["err", "warn", "audit"]
        assert config.loggers["audit"] == "audit.log"
        warn = config.loggers["warn"]
        assert isinstance(warn, LoggerOptions)
        assert warn.date == "DA-MO-YE"
        assert warn.depth == 0
        assert config.source_yaml == self.YAML

    def test_source_yaml_excluded_from_dump(self):
        config = LoggingConfig.from_yaml_string(self.YAML)
        assert "source_yaml" not in config.model_dump()

    def test_from_yaml_file(self, tmp_path):
        path = tmp_path / "logging.yaml"
        path.write_text(self.YAML, encoding="utf-8")
        config = LoggingConfig.from_yaml(path)
        assert set(config.loggers) == {"err", "warn", "audit"}

    def test_from_dict(self):
        config = LoggingConfig.from_dict(yaml.safe_load(self.YAML))
        assert config.loggers["err"].prompt == "Error"

    def test_empty_yaml(self):
        assert LoggingConfig.from_yaml_string("").loggers == {}

    def test_invalid_entry(self):
        with pytest.raises(ValidationError):
            LoggingConfig.from_yaml_string("loggers:\n  bad:\n    prompt: no destination\n")

    def test_apply(self, registry, tmp_path, capsys):
        LoggingConfig.from_yaml_string(self.YAML).apply(registry)
        assert registry.aliases == ["log", "err", "warn", "audit"]

        warn = registry.get("warn")
        assert warn.destination == str(tmp_path / "logger.log")
        assert warn.colors is False  # file destination
        assert warn.date.template == "DA-MO-YE"

        registry.entry("err")("boom")
        assert capsys.readouterr().err == "Error:boom\n"

    def test_apply_to_shared_registry(self, tmp_path):
        LoggerRegistry.reset()
        try:
            LoggingConfig.from_dict({"loggers": {"err": "stderr"}}).apply()
            assert "err" in LoggerRegistry.instance()
        finally:
            LoggerRegistry.reset()

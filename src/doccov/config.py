"""
Configuration loading.

A ``doccov.config.json`` file may set rule severities and runtime knobs:

    {
      "rules": {"has-examples": "warn", "no-forgotten-export": "off"},
      "history": {"tier": "team", "keep": 50},
      "cache": {"maxEntries": 256},
      "retrieval": {"timeoutSeconds": 30}
    }

Every section is optional. Values are validated by pydantic into a frozen
DocCovConfig; validation failures surface as ConfigError.
"""
import json
import logging
from pathlib import Path
from typing import Any, ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from doccov.constants import (
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_HISTORY_KEEP,
    DEFAULT_RETENTION_TIER,
    RETENTION_DAYS,
    RETRIEVAL_TIMEOUT_SECONDS,
)
from doccov.errors import ConfigError
from doccov.quality import Severity, default_rule_set

logger = logging.getLogger(__name__)


class DocCovConfig(BaseModel):
    """Validated runtime configuration."""

    rules: dict[str, Severity] = Field(
        default_factory=dict,
        description="Severity overrides keyed by rule id",
    )
    history_tier: str = Field(
        default=DEFAULT_RETENTION_TIER,
        description="Retention tier used when showing trends",
    )
    history_keep: int = Field(
        default=DEFAULT_HISTORY_KEEP,
        ge=1,
        strict=True,
        description="Snapshots kept by count-based pruning",
    )
    cache_max_entries: Optional[int] = Field(
        default=None,
        ge=1,
        strict=True,
        description="Result cache capacity; unbounded when unset",
    )
    retrieval_timeout_seconds: float = Field(
        default=RETRIEVAL_TIMEOUT_SECONDS,
        gt=0,
        strict=True,
        description="Deadline for fetching both specs of a comparison",
    )

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    @field_validator("rules")
    @classmethod
    def warn_unknown_rules(cls, value: dict[str, Severity]) -> dict[str, Severity]:
        known = set(default_rule_set().ids)
        for rule_id in value:
            if rule_id not in known:
                logger.warning("Config sets severity for unknown rule %r", rule_id)
        return value

    @field_validator("history_tier")
    @classmethod
    def validate_history_tier(cls, value: str) -> str:
        if value not in RETENTION_DAYS:
            raise ValueError(f"must be one of {', '.join(RETENTION_DAYS)}, got {value!r}")
        return value

    @property
    def rule_config(self) -> dict[str, str]:
        """Severity map in the plain form the quality engine accepts."""
        return {rule_id: severity.value for rule_id, severity in self.rules.items()}


def _section(data: dict, key: str) -> dict:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{key}' must be an object")
    return value


def _format_validation_error(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        problems.append(f"'{location}': {error['msg']}")
    return "; ".join(problems)


def parse_config(data: Any) -> DocCovConfig:
    """
    Validate a config mapping.

    Raises:
        ConfigError: On any invalid value
    """
    if not isinstance(data, dict):
        raise ConfigError("config must be a JSON object")

    fields = {}
    if "rules" in data:
        fields["rules"] = data["rules"]
    history = _section(data, "history")
    for key, name in (("tier", "history_tier"), ("keep", "history_keep")):
        if key in history:
            fields[name] = history[key]
    cache = _section(data, "cache")
    if "maxEntries" in cache:
        fields["cache_max_entries"] = cache["maxEntries"]
    retrieval = _section(data, "retrieval")
    if "timeoutSeconds" in retrieval:
        fields["retrieval_timeout_seconds"] = retrieval["timeoutSeconds"]

    try:
        return DocCovConfig.model_validate(fields)
    except ValidationError as e:
        raise ConfigError(f"Invalid config: {_format_validation_error(e)}") from e


def load_config(path: Optional[Path | str] = None) -> DocCovConfig:
    """
    Load configuration from a JSON file.

    Args:
        path: Config file; when None, ``doccov.config.json`` in the current
            directory is used if present, otherwise defaults

    Raises:
        ConfigError: If an explicit path is missing, or the file is unreadable
            or invalid
    """
    if path is None:
        path = Path(DEFAULT_CONFIG_FILENAME)
        if not path.is_file():
            logger.debug("No %s found; using defaults", DEFAULT_CONFIG_FILENAME)
            return DocCovConfig()

    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {path}") from None
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e.msg} at line {e.lineno}") from e
    return parse_config(data)

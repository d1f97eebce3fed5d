"""Configuration loader for GapGraph backend."""
from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

LOGGER = logging.getLogger(__name__)

REPO_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_ENV_FILE = REPO_ROOT / ".env"

GEMINI_API_KEY_ENV = "GEMINI_API_KEY"
SCHOLAR_API_KEY_ENV = "SEMANTIC_SCHOLAR_API_KEY"


class ConfigError(RuntimeError):
    """Raised when configuration cannot be loaded."""


class _FrozenModel(BaseModel):
    """Base model enforcing immutability for config sections."""

    model_config = ConfigDict(frozen=True)


class ServiceConfig(_FrozenModel):
    """Application-level metadata and HTTP settings."""

    name: str = Field(..., min_length=1)
    version: str = Field(..., min_length=1)
    allowed_origins: List[str] = Field(default_factory=list)


class ScholarConfig(_FrozenModel):
    """Settings for the Semantic Scholar Graph API client."""

    base_url: str = Field(..., min_length=1)
    timeout_seconds: float = Field(..., gt=0)
    search_limit: int = Field(..., ge=1, le=100)
    citation_limit: int = Field(..., ge=1, le=1000)
    fields: List[str] = Field(..., min_length=1)

    @field_validator("fields")
    @classmethod
    def _normalize_fields(cls, values: List[str]) -> List[str]:
        """Strip whitespace and drop duplicate field names."""

        normalized: List[str] = []
        for value in values:
            cleaned = value.strip()
            if cleaned and cleaned not in normalized:
                normalized.append(cleaned)
        if not normalized:
            raise ValueError("scholar.fields must name at least one field")
        return normalized

    @property
    def fields_param(self) -> str:
        """Return the comma-separated ``fields`` query parameter."""

        return ",".join(self.fields)


class AIConfig(_FrozenModel):
    """Settings for the Gemini text generation adapter."""

    model: str = Field(..., min_length=1)
    gap_prompt: str = Field(..., min_length=1)
    summary_prompt: str = Field(..., min_length=1)


class LayoutConfig(_FrozenModel):
    """Radial layout geometry used for the exploration graph."""

    origin_x: float
    origin_y: float
    paper_radius: float = Field(..., gt=0)
    gap_radius: float = Field(..., gt=0)


class AppConfig(_FrozenModel):
    """Top-level application configuration composed from config.yaml."""

    app: ServiceConfig
    scholar: ScholarConfig
    ai: AIConfig
    layout: LayoutConfig

    @staticmethod
    def default_path() -> Path:
        """Return the default location of the configuration file.

        Returns:
            Path: Absolute path to config.yaml at the repository root.
        """
        return REPO_ROOT / "config.yaml"


def _determine_env_file_path() -> Optional[Path]:
    """Return the path to the environment file if one should be loaded."""

    override = os.getenv("GAPGRAPH_ENV_FILE")
    if override:
        candidate = Path(override).expanduser()
        if candidate.exists():
            return candidate
        LOGGER.warning("Configured environment file override does not exist: %s", candidate)
        return None
    if DEFAULT_ENV_FILE.exists():
        return DEFAULT_ENV_FILE
    return None


def _strip_inline_comment(value: str) -> str:
    """Remove inline comments from an environment value when unquoted."""

    comment_index = value.find("#")
    if comment_index == -1:
        return value
    return value[:comment_index].rstrip()


def _load_env_file(path: Path) -> None:
    """Populate ``os.environ`` with values read from a ``.env`` file.

    Values already present in the process environment win over the file.
    """

    try:
        with path.open("r", encoding="utf-8") as handle:
            for raw_line in handle:
                line = raw_line.strip()
                if not line or line.startswith("#"):
                    continue
                if line.lower().startswith("export "):
                    line = line[7:].lstrip()
                if "=" not in line:
                    continue
                key, raw_value = line.split("=", 1)
                key = key.strip()
                if not key:
                    continue
                existing_value = os.environ.get(key)
                if existing_value is not None and existing_value.strip() != "":
                    continue
                value = raw_value.strip()
                if not value:
                    os.environ[key] = ""
                    continue
                if value[0] in {'"', "'"} and value[-1] == value[0]:
                    os.environ[key] = value[1:-1]
                    continue
                os.environ[key] = _strip_inline_comment(value)
    except OSError:
        LOGGER.warning("Unable to read environment file at %s", path)


def load_environment() -> None:
    """Load the optional ``.env`` file into the process environment."""

    env_file_path = _determine_env_file_path()
    if env_file_path is not None:
        _load_env_file(env_file_path)


def _read_secret(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def gemini_api_key() -> Optional[str]:
    """Return the configured Gemini credential, or ``None`` when absent."""

    return _read_secret(GEMINI_API_KEY_ENV)


def scholar_api_key() -> Optional[str]:
    """Return the optional Semantic Scholar API key."""

    return _read_secret(SCHOLAR_API_KEY_ENV)


def _read_yaml(path: Path) -> Dict[str, Any]:
    """Read YAML content from disk.

    Args:
        path: Location of the YAML file.

    Returns:
        Dict[str, Any]: Parsed YAML content.

    Raises:
        ConfigError: If the file cannot be read or parsed.
    """
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except FileNotFoundError as exc:
        LOGGER.error("Configuration file missing at %s", path)
        raise ConfigError("Configuration file not found") from exc
    except yaml.YAMLError as exc:
        LOGGER.error("Invalid YAML syntax in %s", path)
        raise ConfigError("Invalid YAML syntax") from exc
    if not isinstance(data, dict):
        LOGGER.error("Configuration root must be a mapping: %s", path)
        raise ConfigError("Configuration root must be a mapping")
    return data


@lru_cache(maxsize=1)
def load_config(path: Optional[Path] = None) -> AppConfig:
    """Load application configuration from YAML.

    Args:
        path: Optional override path to the YAML file.

    Returns:
        AppConfig: Parsed configuration object.

    Raises:
        ConfigError: If the configuration cannot be loaded or validated.
    """
    config_path = path or AppConfig.default_path()
    raw_content = _read_yaml(config_path)
    load_environment()
    try:
        return AppConfig(**raw_content)
    except ValidationError as exc:
        LOGGER.error("Invalid configuration values: %s", exc)
        raise ConfigError("Configuration validation failed") from exc

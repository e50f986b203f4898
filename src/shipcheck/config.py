from dotenv import load_dotenv
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional
from pathlib import Path
import json
import logging
import os

import yaml

from shipcheck.constants import (
    CONFIG_FILE_NAMES,
    DEFAULT_CONCURRENCY,
    DEFAULT_MAX_PAGES,
    DEFAULT_REPORT_DIR,
    DEFAULT_RETRY_COUNT,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
    MAX_CONCURRENCY,
    MAX_RETRY_COUNT,
    MAX_TIMEOUT_SECONDS,
    MIN_CONCURRENCY,
    MIN_RETRY_COUNT,
    MIN_TIMEOUT_SECONDS,
)
from shipcheck.exceptions import ConfigValidationError
from shipcheck.urls import is_valid_url

load_dotenv()  # Loads variables from .env file

logger = logging.getLogger(__name__)

PROJECT_ROOT_MARKERS = ("pyproject.toml", ".git")


class Settings:
    """
    Manages application settings loaded from environment variables.
    """
    USER_AGENT = os.getenv("SHIPCHECK_USER_AGENT", DEFAULT_USER_AGENT)
    LOG_LEVEL = os.getenv("SHIPCHECK_LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("SHIPCHECK_LOG_FILE")
    REPORT_DIR = os.getenv("SHIPCHECK_REPORT_DIR", DEFAULT_REPORT_DIR)


settings = Settings()


@dataclass
class CrawlConfig:
    """Configuration for one ship-check run."""
    url: str = ""
    concurrency: int = DEFAULT_CONCURRENCY
    timeout: int = DEFAULT_TIMEOUT_SECONDS
    retry_count: int = DEFAULT_RETRY_COUNT
    exclude_patterns: List[str] = field(default_factory=list)
    replace_from: Optional[str] = None
    replace_to: Optional[str] = None
    use_sitemap: bool = False
    sitemap_url: Optional[str] = None
    no_fail: bool = False
    verbose: bool = False
    check_metadata: bool = False
    max_pages: int = DEFAULT_MAX_PAGES

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CrawlConfig":
        """Build a config from a dict, ignoring unknown keys.

        Keys may use snake_case or the camelCase spelling of config files
        (``retryCount``, ``excludePatterns``...).
        """
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            name = _snake_case(key)
            if name in known and value is not None:
                values[name] = value
            elif name not in known:
                logger.debug(f"Ignoring unknown config key: {key}")

        patterns = values.get("exclude_patterns")
        if isinstance(patterns, str):
            values["exclude_patterns"] = parse_pattern_list(patterns)

        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def validate(self) -> None:
        """Check every field, raising on the first invalid one.

        Raises:
            ConfigValidationError: If any field is out of range or malformed
        """
        if not self.url:
            raise ConfigValidationError("URL is required")
        if not is_valid_url(self.url):
            raise ConfigValidationError(f"Invalid URL: {self.url}")

        _check_range("concurrency", self.concurrency, MIN_CONCURRENCY, MAX_CONCURRENCY)
        _check_range("timeout", self.timeout, MIN_TIMEOUT_SECONDS, MAX_TIMEOUT_SECONDS)
        _check_range("retry count", self.retry_count, MIN_RETRY_COUNT, MAX_RETRY_COUNT)

        if not isinstance(self.max_pages, int) or isinstance(self.max_pages, bool) or self.max_pages < 1:
            raise ConfigValidationError("Max pages must be at least 1")

        if bool(self.replace_from) != bool(self.replace_to):
            raise ConfigValidationError(
                "Both --replace-from and --replace-to must be provided together"
            )
        if self.replace_from and not is_valid_url(self.replace_from):
            raise ConfigValidationError(f"Invalid replace-from URL: {self.replace_from}")
        if self.replace_to and not is_valid_url(self.replace_to):
            raise ConfigValidationError(f"Invalid replace-to URL: {self.replace_to}")

        if self.sitemap_url and not is_valid_url(self.sitemap_url):
            raise ConfigValidationError(f"Invalid sitemap URL: {self.sitemap_url}")

        if not isinstance(self.exclude_patterns, list) or not all(
            isinstance(p, str) for p in self.exclude_patterns
        ):
            raise ConfigValidationError("Exclude patterns must be a list of strings")


def _snake_case(name: str) -> str:
    out = []
    for char in name.replace("-", "_"):
        if char.isupper():
            out.append("_")
            out.append(char.lower())
        else:
            out.append(char)
    return "".join(out)


def _check_range(label: str, value: Any, minimum: int, maximum: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool) or not minimum <= value <= maximum:
        raise ConfigValidationError(
            f"{label.capitalize()} must be between {minimum} and {maximum}"
        )


def parse_pattern_list(value: Optional[str]) -> List[str]:
    """Split a comma-separated pattern list, dropping blanks."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def find_project_root(start_dir: Path) -> Optional[Path]:
    """Walk up from ``start_dir`` to the first directory holding a root marker."""
    for directory in [start_dir, *start_dir.parents]:
        if any((directory / marker).exists() for marker in PROJECT_ROOT_MARKERS):
            return directory
    return None


def find_config_file(start_dir: Optional[Path] = None) -> Optional[Path]:
    """Locate a config file in ``start_dir`` (default cwd), then the project root."""
    start_dir = Path(start_dir or Path.cwd()).resolve()
    search_dirs = [start_dir]
    root = find_project_root(start_dir)
    if root is not None and root != start_dir:
        search_dirs.append(root)

    for directory in search_dirs:
        for name in CONFIG_FILE_NAMES:
            path = directory / name
            if path.is_file():
                return path
    return None


def load_config_file(start_dir: Optional[Path] = None) -> Dict[str, Any]:
    """Load the first config file found, or an empty dict.

    Args:
        start_dir: Directory to start searching from (default cwd)

    Returns:
        Raw config mapping from the file

    Raises:
        ConfigValidationError: If the file exists but cannot be parsed
    """
    path = find_config_file(start_dir)
    if path is None:
        return {}

    logger.info(f"Loading config from {path}")
    try:
        with open(path) as f:
            if path.suffix == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigValidationError(f"Failed to load config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigValidationError(f"Config file {path} must contain a mapping")
    return data


def merge_config(cli_values: Dict[str, Any], file_values: Dict[str, Any]) -> Dict[str, Any]:
    """Merge file values under CLI values; CLI wins where it set a value."""
    merged = {_snake_case(k): v for k, v in file_values.items()}
    for key, value in cli_values.items():
        if value is not None:
            merged[_snake_case(key)] = value
    return merged


def apply_defaults(values: Dict[str, Any]) -> CrawlConfig:
    """Build a CrawlConfig, filling every unset field with its default."""
    return CrawlConfig.from_dict(values)

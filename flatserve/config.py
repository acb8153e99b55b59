"""Configuration module — frozen dataclass loaded from YAML and environment variables."""

import copy
import logging
import os
from dataclasses import dataclass
from datetime import timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

logger = logging.getLogger(__name__)

DEFAULT_ALLOWED_EXTENSIONS = (
    ".html", ".css", ".js",
    ".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp", ".ico",
    ".json", ".txt", ".md",
)
DEFAULT_BLOCKED_EXTENSIONS = (".log",)

# Used only when the zone database is missing the key.
_FALLBACK_OFFSETS = {
    "America/Chicago": -6,
}


@dataclass(frozen=True)
class Config:
    www_root: str = "/var/www"
    log_dir: str = "/var/log/app"
    host: str = "0.0.0.0"
    port: int = 8080
    retention_hours: int = 168  # 7 days
    log_timezone: str = "America/Chicago"
    sweep_interval_seconds: int = 3600
    allowed_extensions: tuple[str, ...] = DEFAULT_ALLOWED_EXTENSIONS
    blocked_extensions: tuple[str, ...] = DEFAULT_BLOCKED_EXTENSIONS


def normalize_extensions(values) -> tuple[str, ...]:
    """Lowercase, strip and dot-prefix a list (or comma-separated string) of extensions."""
    if isinstance(values, str):
        values = values.split(",")
    result = []
    for value in values:
        ext = str(value).strip().lower()
        if not ext:
            continue
        if not ext.startswith("."):
            ext = "." + ext
        if ext not in result:
            result.append(ext)
    return tuple(result)


def load_yaml_config(path: str | None) -> dict:
    """Load a YAML config file. Returns an empty dict if there is no usable file."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    except yaml.YAMLError:
        logger.warning("Invalid YAML in %s, using defaults", path)
        return {}
    if not isinstance(data, dict):
        return {}
    logger.info("Loaded YAML config from %s", path)
    return copy.deepcopy(data)


def _section(data: dict, key: str) -> dict:
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{key}' must be a mapping, got {type(value).__name__}")
    return value


def load_config(config_path: str | None = None) -> Config:
    """Build Config from defaults, an optional YAML file, then environment variables.

    Environment variables take precedence over the YAML file, which takes
    precedence over the dataclass defaults.
    """
    if config_path is None:
        config_path = os.environ.get("CONFIG_PATH")
    data = load_yaml_config(config_path)
    server = _section(data, "server")
    logs = _section(data, "logging")
    extensions = _section(data, "extensions")

    def pick(env_key, section, yaml_key, default):
        raw = os.environ.get(env_key)
        if raw is not None and raw != "":
            return raw
        return section.get(yaml_key, default)

    config = Config(
        www_root=str(pick("WWW_ROOT", server, "www_root", Config.www_root)),
        log_dir=str(pick("LOG_DIR", logs, "log_dir", Config.log_dir)),
        host=str(pick("SERVER_HOST", server, "host", Config.host)),
        port=int(pick("SERVER_PORT", server, "port", Config.port)),
        retention_hours=int(
            pick("RETENTION_HOURS", logs, "retention_hours", Config.retention_hours)
        ),
        log_timezone=str(pick("LOG_TIMEZONE", logs, "timezone", Config.log_timezone)),
        sweep_interval_seconds=int(
            pick("SWEEP_INTERVAL_SECONDS", logs, "sweep_interval_seconds",
                 Config.sweep_interval_seconds)
        ),
        allowed_extensions=normalize_extensions(
            pick("ALLOWED_EXTENSIONS", extensions, "allowed", DEFAULT_ALLOWED_EXTENSIONS)
        ),
        blocked_extensions=normalize_extensions(
            pick("BLOCKED_EXTENSIONS", extensions, "blocked", DEFAULT_BLOCKED_EXTENSIONS)
        ),
    )
    validate_config(config)
    return config


def validate_config(config: Config) -> None:
    # The current hour's bucket must never fall outside the window.
    if config.retention_hours < 2:
        raise ValueError(f"retention_hours must be at least 2, got {config.retention_hours}")
    if config.sweep_interval_seconds < 1:
        raise ValueError(
            f"sweep_interval_seconds must be positive, got {config.sweep_interval_seconds}"
        )
    if not 0 <= config.port <= 65535:
        raise ValueError(f"port out of range: {config.port}")


def resolve_timezone(name: str) -> tzinfo:
    """Return the tzinfo for an IANA zone name.

    Falls back to a fixed offset for known zones when the zone database is
    unavailable; raises ValueError for anything else.
    """
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        offset = _FALLBACK_OFFSETS.get(name)
        if offset is None:
            raise ValueError(f"Unknown timezone: {name}") from exc
        logger.warning(
            "Could not load %s timezone, using fixed offset UTC%+d: %s", name, offset, exc
        )
        return timezone(timedelta(hours=offset), name)

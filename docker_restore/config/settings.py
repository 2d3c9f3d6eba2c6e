"""Settings for a restore run.

Defaults live here; a JSON settings file and environment variables may
override them, and the CLI builds the final ``RestoreConfig`` from those plus
its flags. The config value is passed to every component explicitly.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Optional

from docker_restore.logging import get_logger

log = get_logger(source="config", tags=["config"])


SETTINGS_PATH = Path(
    os.environ.get(
        "DOCKER_RESTORE_SETTINGS_PATH",
        "/etc/docker-restore/settings.json",
    )
)

# Default values - use these constants instead of hardcoding values elsewhere
DEFAULT_BACKUP_DIR = "/var/backups"
DEFAULT_SNAPSHOT_PREFIX = "docker_backup_completo_"
DEFAULT_COMPOSE_RESTORE_DIR = "/data/compose"
DEFAULT_LOG_FILE = "/var/log/docker_restore.log"
DEFAULT_HELPER_IMAGE = "alpine:3.20"
CONFIRM_TIMEOUT_SECONDS = 30
DEFAULT_CONFIRM_TOKEN = "yes"

APP_DATA_VOLUME = "portainer_data"
APP_DATA_ARCHIVE_PREFIX = "portainer_data_"
COMPOSE_ARCHIVE_PREFIX = "docker_compose_files_"
COMPOSE_FILE_NAMES = (
    "docker-compose.yml",
    "docker-compose.yaml",
    "compose.yml",
    "compose.yaml",
)

ENV_OVERRIDES = {
    "backup_dir": "DOCKER_RESTORE_BACKUP_DIR",
    "compose_restore_dir": "DOCKER_RESTORE_COMPOSE_DIR",
    "log_file": "DOCKER_RESTORE_LOG_FILE",
}

# Keys a settings file may set, all strings. Run flags are CLI-only; the space
# margin and the confirmation timeout are fixed.
FILE_KEYS = (
    "backup_dir",
    "snapshot_prefix",
    "compose_restore_dir",
    "log_file",
    "helper_image",
    "confirm_token",
)

_PATH_KEYS = {"backup_dir", "compose_restore_dir", "log_file"}


@dataclass(frozen=True)
class RestoreConfig:
    backup_dir: Path = Path(DEFAULT_BACKUP_DIR)
    snapshot_prefix: str = DEFAULT_SNAPSHOT_PREFIX
    compose_restore_dir: Path = Path(DEFAULT_COMPOSE_RESTORE_DIR)
    log_file: Path = Path(DEFAULT_LOG_FILE)
    helper_image: str = DEFAULT_HELPER_IMAGE
    confirm_token: str = DEFAULT_CONFIRM_TOKEN

    # Run flags
    dry_run: bool = False
    stop_containers: bool = False
    compose_up: bool = False
    resume_running: bool = False
    assume_yes: bool = False
    debug: bool = False
    snapshot_path: Optional[Path] = None

    def with_overrides(self, **values: Any) -> RestoreConfig:
        """Return a copy with the non-None values applied."""
        known = {item.name for item in fields(self)}
        updates = {
            key: _coerce(key, value)
            for key, value in values.items()
            if key in known and value is not None
        }
        return replace(self, **updates)


def _coerce(key: str, value: Any) -> Any:
    if key in _PATH_KEYS or key == "snapshot_path":
        return Path(value)
    return value


def read_settings_file(path: Path | None = None) -> dict[str, Any]:
    """Read known keys from a JSON settings file.

    A missing, unreadable or malformed file yields no overrides; a key whose
    value is not a non-empty string is dropped with a warning.
    """
    settings_path = path or SETTINGS_PATH
    if not settings_path.exists():
        return {}
    try:
        data = json.loads(settings_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        log.warning(f"WARNING: ignoring settings file {settings_path}: {exc}")
        return {}
    if not isinstance(data, dict):
        log.warning(f"WARNING: ignoring settings file {settings_path}: not a JSON object")
        return {}
    values = {}
    for key in FILE_KEYS:
        if key not in data:
            continue
        value = data[key]
        if not isinstance(value, str) or not value.strip():
            log.warning(
                "WARNING: ignoring setting {!r} in {}: expected a non-empty string, got {!r}",
                key,
                settings_path,
                value,
            )
            continue
        values[key] = value
    return values


def read_env_overrides(environ: Optional[dict[str, str]] = None) -> dict[str, str]:
    env = os.environ if environ is None else environ
    return {key: env[name] for key, name in ENV_OVERRIDES.items() if env.get(name)}


def load_config(
    settings_path: Path | None = None,
    environ: Optional[dict[str, str]] = None,
    **cli_values: Any,
) -> RestoreConfig:
    """Build the run configuration.

    Precedence, lowest to highest: defaults, settings file, environment,
    CLI values.
    """
    config = RestoreConfig()
    config = config.with_overrides(**read_settings_file(settings_path))
    config = config.with_overrides(**read_env_overrides(environ))
    return config.with_overrides(**cli_values)

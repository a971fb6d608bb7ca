"""Configuration for project-manager.

## Sources

Settings are merged from lowest to highest precedence:

1. Built-in defaults
2. User config: ``<user config dir>/project-manager/config.json``
3. ``~/.pmrc.json``
4. ``./.pmrc.json`` in the current directory
5. ``PM_*`` environment variables

### config.json / .pmrc.json Structure

```json
{
  "default_priority": "high",
  "default_type": "bug",
  "default_privacy": "local-only",
  "default_output_format": "json",
  "storage_path": "~/work/tickets.json",
  "confirm_deletion": false
}
```

camelCase keys (``defaultPriority``) are accepted as well.

### Development mode

With ``PM_ENV=development`` (or ``NODE_ENV=development``) the user config
directory and the default tickets file live under ``project-manager-dev``
so development runs never touch real tickets.
"""

import json
import os
import re
import warnings
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Optional

from platformdirs import user_config_dir

from .errors import ValidationError
from .models.ticket import TITLE_MAX_LENGTH, TicketPriority, TicketPrivacy, TicketStatus, TicketType

APP_NAME = "project-manager"
CONFIG_FILE = "config.json"
RC_FILE = ".pmrc.json"
TICKETS_FILE = "tickets.json"

OUTPUT_FORMATS = ("table", "json", "compact")

ENV_STORAGE_PATH = "PM_STORAGE_PATH"

# Environment variable -> config field
ENV_MAPPINGS = {
    ENV_STORAGE_PATH: "storage_path",
    "PM_DEFAULT_PRIORITY": "default_priority",
    "PM_DEFAULT_TYPE": "default_type",
    "PM_DEFAULT_PRIVACY": "default_privacy",
    "PM_DEFAULT_STATUS": "default_status",
    "PM_DEFAULT_OUTPUT_FORMAT": "default_output_format",
    "PM_CONFIRM_DELETION": "confirm_deletion",
    "PM_MAX_TITLE_LENGTH": "max_title_length",
}


@dataclass
class PMConfig:
    """Resolved configuration."""

    # Defaults for new tickets
    default_priority: str = TicketPriority.MEDIUM.value
    default_type: str = TicketType.TASK.value
    default_privacy: str = TicketPrivacy.LOCAL_ONLY.value
    default_status: str = TicketStatus.PENDING.value

    # Output
    default_output_format: str = "table"
    display_title_length: int = 50

    # Storage
    storage_path: Optional[str] = None

    # Behavior
    confirm_deletion: bool = True
    max_title_length: int = TITLE_MAX_LENGTH

    def to_dict(self) -> dict:
        return asdict(self)


def is_development() -> bool:
    """Check whether development mode is enabled via PM_ENV or NODE_ENV."""
    env = os.environ.get("PM_ENV") or os.environ.get("NODE_ENV") or ""
    return env.lower() == "development"


def app_dir_name() -> str:
    return f"{APP_NAME}-dev" if is_development() else APP_NAME


def get_user_config_dir() -> Path:
    """Per-user config directory (honors XDG_CONFIG_HOME on Linux)."""
    return Path(user_config_dir(app_dir_name(), appauthor=False))


def get_user_config_file() -> Path:
    return get_user_config_dir() / CONFIG_FILE


def get_default_storage_path() -> Path:
    """Default tickets file when no override is configured."""
    return get_user_config_dir() / TICKETS_FILE


def get_config_paths(cwd: Optional[Path] = None) -> list[Path]:
    """Config files from lowest to highest precedence."""
    cwd = Path(cwd) if cwd else Path.cwd()
    return [
        get_user_config_file(),
        Path.home() / RC_FILE,
        cwd / RC_FILE,
    ]


def _snake_case(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def load_config_file(config_path: Path) -> dict:
    """Load a config file. Missing, unreadable or non-object files yield {}."""
    if not config_path.exists():
        return {}
    try:
        with open(config_path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError):
        return {}
    if not isinstance(data, dict):
        return {}
    return {_snake_case(k): v for k, v in data.items()}


def load_env_config(environ: Optional[dict] = None) -> dict:
    """Read PM_* environment variables into config field values."""
    environ = os.environ if environ is None else environ
    values: dict[str, Any] = {}
    for env_key, field_name in ENV_MAPPINGS.items():
        raw = environ.get(env_key)
        if raw is None:
            continue
        if field_name == "confirm_deletion":
            values[field_name] = raw.strip().lower() in ("1", "true", "yes", "on")
        elif field_name == "max_title_length":
            try:
                parsed = int(raw)
            except ValueError:
                continue
            if parsed > 0:
                values[field_name] = parsed
        else:
            values[field_name] = raw
    return values


def _apply(config: PMConfig, values: dict, source: str) -> None:
    """Validate and set known fields. Invalid values are skipped with a warning."""
    known = {f.name for f in fields(PMConfig)}
    for key, value in values.items():
        if key not in known:
            continue
        try:
            validated = _validate_value(key, value)
        except ValidationError as e:
            warnings.warn(f"Ignoring invalid config value for {key} in {source}: {e.message}", RuntimeWarning)
            continue
        setattr(config, key, validated)


def load_config(cwd: Optional[Path] = None, environ: Optional[dict] = None) -> PMConfig:
    """Merge defaults, config files and environment into a PMConfig.

    Args:
        cwd: Directory to look for ./.pmrc.json in (default: cwd)
        environ: Environment mapping (default: os.environ)

    Returns:
        PMConfig with resolved values
    """
    config = PMConfig()
    for path in get_config_paths(cwd):
        _apply(config, load_config_file(path), str(path))
    _apply(config, load_env_config(environ), "environment")
    return config


def resolve_storage_path(override: Optional[str] = None, config: Optional[PMConfig] = None) -> Path:
    """Resolve the tickets file path.

    Resolution order:
    1. Explicit override (CLI option / tool argument)
    2. storage_path from config files or PM_STORAGE_PATH
    3. Default path under the user config directory
    """
    if override:
        return Path(override).expanduser()
    if config is None:
        config = load_config()
    if config.storage_path:
        return Path(config.storage_path).expanduser()
    return get_default_storage_path()


# Keys that `config set` accepts, with their validators
def _validate_value(key: str, value: Any) -> Any:
    if key == "default_priority":
        return TicketPriority.parse(value).value
    if key == "default_type":
        return TicketType.parse(value).value
    if key == "default_privacy":
        return TicketPrivacy.parse(value).value
    if key == "default_status":
        status = TicketStatus.parse(value)
        if status not in (TicketStatus.PENDING, TicketStatus.IN_PROGRESS):
            raise ValidationError("default_status must be pending or in_progress", key, value)
        return status.value
    if key == "default_output_format":
        fmt = str(value).strip().lower()
        if fmt not in OUTPUT_FORMATS:
            raise ValidationError(f"default_output_format must be one of: {', '.join(OUTPUT_FORMATS)}", key, value)
        return fmt
    if key == "confirm_deletion":
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in ("1", "true", "yes", "on")
    if key in ("max_title_length", "display_title_length"):
        try:
            number = int(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{key} must be a positive integer", key, value) from None
        if number <= 0:
            raise ValidationError(f"{key} must be a positive integer", key, value)
        return number
    if key == "storage_path":
        return str(value) if value else None
    raise ValidationError(f"Unknown config key: {key}", "key", key)


def save_config_value(key: str, value: Any, config_path: Optional[Path] = None) -> Path:
    """Validate and write one setting into the user config file.

    Args:
        key: Config field name (snake_case or camelCase)
        value: New value
        config_path: File to write (default: user config file)

    Returns:
        Path to the written config file
    """
    key = _snake_case(key)
    validated = _validate_value(key, value)

    config_path = Path(config_path) if config_path else get_user_config_file()
    data = load_config_file(config_path)
    data[key] = validated

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)

    return config_path

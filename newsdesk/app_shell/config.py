import logging
import os
from pathlib import Path

from newsdesk.rules.models import Rules

logger = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Startup requirements not met."""


def validate_ops_rules(rules: Rules, data_dir: Path) -> None:
    """
    Validate operational requirements before startup.

    Raises ConfigurationError if required env vars are missing or the data
    directory cannot be created.
    """
    missing = [name for name in rules.ops.required_env if name not in os.environ]
    if missing:
        raise ConfigurationError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    try:
        data_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigurationError(f"Data directory {data_dir} is not writable: {e}") from e

    logger.info(
        "Configuration validated (rules %s, timezone %s)",
        rules.project.rules_version,
        rules.publishing.timezone,
    )


# --- Paths ---

PROJECT_ROOT = Path(__file__).resolve().parents[2]
DATA_DIR_ENV = "NEWSDESK_DATA_DIR"
RULES_PATH_ENV = "NEWSDESK_RULES_PATH"
DB_FILENAME = "newsdesk.db"


def data_dir() -> Path:
    return Path(os.environ.get(DATA_DIR_ENV, "./data"))


def rules_path() -> Path:
    return Path(os.environ.get(RULES_PATH_ENV, str(PROJECT_ROOT / "rules.yaml")))


def db_path() -> Path:
    return data_dir() / DB_FILENAME


def migrations_dir() -> Path:
    return PROJECT_ROOT / "migrations"

import logging
from functools import lru_cache
from pathlib import Path

from fastapi import Depends

from newsdesk.adapters.sqlite.migrator import SQLiteMigrator
from newsdesk.app_shell import config
from newsdesk.app_shell.context import EngineContext
from newsdesk.components.newsroom import NewsroomEngine
from newsdesk.rules.loader import load_rules
from newsdesk.rules.models import Rules

logger = logging.getLogger(__name__)


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.data_dir = config.data_dir()
        self.db_path = str(config.db_path())
        self.rules_path = config.rules_path()
        self.migrations_dir = config.migrations_dir()


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def load_cached_rules(rules_path: Path) -> Rules:
    return load_rules(rules_path)


def get_rules(settings: Settings = Depends(get_settings)) -> Rules:
    return load_cached_rules(settings.rules_path)


# --- Engine ---
@lru_cache
def build_context(db_path: str, rules_path: Path, migrations_dir: Path) -> EngineContext:
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    applied = SQLiteMigrator(db_path, str(migrations_dir)).run_migrations()
    if applied:
        logger.info("Applied migrations: %s", ", ".join(applied))
    return EngineContext.create(db_path, load_cached_rules(rules_path))


def get_context(settings: Settings = Depends(get_settings)) -> EngineContext:
    return build_context(settings.db_path, settings.rules_path, settings.migrations_dir)


def get_engine(ctx: EngineContext = Depends(get_context)) -> NewsroomEngine:
    return ctx.engine

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from newsdesk.adapters.channels import ChannelRegistry, build_dev_registry
from newsdesk.adapters.media import DraftPayloadProvider
from newsdesk.adapters.memory import (
    InMemoryChannelLogRepo,
    InMemoryContentRepo,
    InMemoryEmergencyQueueRepo,
    InMemoryPublishedContentRepo,
    InMemoryPublishJobRepo,
    InMemoryRuleRepo,
    InMemorySettingsRepo,
    InMemorySourceRepo,
)
from newsdesk.adapters.sqlite_db import (
    SQLiteChannelLogRepo,
    SQLiteContentRepo,
    SQLiteEmergencyQueueRepo,
    SQLitePublishedContentRepo,
    SQLitePublishJobRepo,
    SQLiteRuleRepo,
    SQLiteSettingsRepo,
    SQLiteSourceRepo,
)
from newsdesk.adapters.time_zone import ZoneTimeAdapter
from newsdesk.components.emergency import EmergencyQueueConfig, EmergencyQueueService
from newsdesk.components.lifecycle import LifecycleService
from newsdesk.components.newsroom import NewsroomEngine
from newsdesk.components.policy import PolicyService
from newsdesk.components.scheduler import SchedulerService, build_config
from newsdesk.core.ports.db import RuleRepoPort, SourceRepoPort
from newsdesk.core.ports.time import TimePort
from newsdesk.rules.models import Rules


@dataclass
class EngineContext:
    engine: NewsroomEngine
    rule_repo: RuleRepoPort
    source_repo: SourceRepoPort
    registry: ChannelRegistry
    rules: Rules
    time_port: TimePort

    @classmethod
    def create(
        cls,
        db_path: str,
        rules: Rules,
        time_port: TimePort | None = None,
        registry: ChannelRegistry | None = None,
    ) -> EngineContext:
        """Wire the engine against a migrated SQLite database."""
        return cls._build(
            rules,
            time_port,
            registry,
            sources=SQLiteSourceRepo(db_path),
            content=SQLiteContentRepo(db_path),
            rule_repo=SQLiteRuleRepo(db_path),
            jobs=SQLitePublishJobRepo(db_path),
            logs=SQLiteChannelLogRepo(db_path),
            published=SQLitePublishedContentRepo(db_path),
            emergency=SQLiteEmergencyQueueRepo(db_path),
            settings=SQLiteSettingsRepo(db_path),
        )

    @classmethod
    def create_in_memory(
        cls,
        rules: Rules,
        time_port: TimePort | None = None,
        registry: ChannelRegistry | None = None,
    ) -> EngineContext:
        """Wire the engine against in-memory repos seeded with the rules.yaml rules."""
        return cls._build(
            rules,
            time_port,
            registry,
            sources=InMemorySourceRepo(),
            content=InMemoryContentRepo(),
            rule_repo=InMemoryRuleRepo(rules.triage.build_rules()),
            jobs=InMemoryPublishJobRepo(),
            logs=InMemoryChannelLogRepo(),
            published=InMemoryPublishedContentRepo(),
            emergency=InMemoryEmergencyQueueRepo(),
            settings=InMemorySettingsRepo(),
        )

    @classmethod
    def _build(
        cls,
        rules: Rules,
        time_port: TimePort | None,
        registry: ChannelRegistry | None,
        **repos: Any,
    ) -> EngineContext:
        time_port = time_port or ZoneTimeAdapter(rules.publishing.timezone)
        registry = registry or build_dev_registry(rules.publishing.platforms)

        lifecycle = LifecycleService(repos["content"], time_port)
        scheduler = SchedulerService(
            jobs=repos["jobs"],
            content=repos["content"],
            logs=repos["logs"],
            published=repos["published"],
            registry=registry,
            media=DraftPayloadProvider(),
            sources=repos["sources"],
            time_port=time_port,
            config=build_config(rules.scheduler),
        )
        policy = PolicyService(repos["settings"], repos["logs"], rules.publishing, time_port)
        emergency = EmergencyQueueService(
            repos["emergency"],
            scheduler,
            time_port,
            EmergencyQueueConfig(default_platforms=registry.platforms()),
            planner=policy,
        )
        engine = NewsroomEngine(
            lifecycle=lifecycle,
            scheduler=scheduler,
            policy=policy,
            emergency=emergency,
            rules=repos["rule_repo"],
            sources=repos["sources"],
            platforms=registry.platforms(),
            time_port=time_port,
        )
        return cls(
            engine=engine,
            rule_repo=repos["rule_repo"],
            source_repo=repos["sources"],
            registry=registry,
            rules=rules,
            time_port=time_port,
        )

from typing import Any

from pydantic import BaseModel, Field

from newsdesk.domain.entities import Rule
from newsdesk.domain.policy import PublishingPolicy


class ProjectRules(BaseModel):
    slug: str
    rules_version: str


class TriageRules(BaseModel):
    # Seed rules; CSV strings are accepted for the list fields
    rules: list[dict[str, Any]] = Field(default_factory=list)

    def build_rules(self) -> list[Rule]:
        return [Rule.model_validate(r) for r in self.rules]


class SchedulerRules(BaseModel):
    max_attempts: int = Field(default=5, ge=1)
    backoff_seconds: list[int] = Field(default_factory=lambda: [60, 300, 900, 3600, 3600])
    batch_size: int = Field(default=10, ge=1)
    poll_interval_seconds: float = Field(default=30.0, gt=0)
    channel_timeout_seconds: float = Field(default=30.0, gt=0)
    claim_timeout_seconds: int = Field(default=600, ge=1)
    error_max_length: int = Field(default=2000, ge=100)


class OpsRules(BaseModel):
    required_env: list[str] = Field(default_factory=list)


class Rules(BaseModel):
    project: ProjectRules
    publishing: PublishingPolicy = Field(default_factory=PublishingPolicy)
    triage: TriageRules = Field(default_factory=TriageRules)
    scheduler: SchedulerRules = Field(default_factory=SchedulerRules)
    ops: OpsRules = Field(default_factory=OpsRules)

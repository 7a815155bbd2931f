from datetime import UTC, datetime
from typing import Any, Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

# --- Enums / Literals ---
ContentStatus = Literal[
    "new",
    "auto_ready",
    "pending_approval",
    "blocked",
    "scheduled",
    "ready_to_publish",
    "rejected",
    "published",
    "retracted",
]
DecisionType = Literal["auto_publish", "require_approval", "block", "schedule"]
RevisionAction = Literal[
    "Triaged",
    "DraftSaved",
    "Approved",
    "Rejected",
    "Scheduled",
    "Corrected",
    "Retracted",
    "BreakingMarked",
    "Resubmitted",
]
ChannelLogStatus = Literal["success", "failed", "skipped"]
ChannelErrorKind = Literal["transient", "permanent"]
EmergencyStatus = Literal["pending", "published", "cancelled"]

KNOWN_CHANNELS = ("web", "mobile", "x", "instagram")


def utc_now() -> datetime:
    return datetime.now(UTC)


# --- Sources ---


class Source(BaseModel):
    """Read-only feed metadata used for triage and emergency detection."""

    id: UUID = Field(default_factory=uuid4)
    name: str
    type: str = "rss"
    category: str = ""
    group: str = ""
    trust_level: int = 50
    is_active: bool = True
    created_at: datetime = Field(default_factory=utc_now)


# --- Content ---


class ContentDraft(BaseModel):
    """Per-channel editorial copy and channel toggles."""

    web_title: str | None = None
    web_body: str | None = None
    mobile_summary: str | None = None
    push_title: str | None = None
    push_body: str | None = None
    x_text: str | None = None
    instagram_caption: str | None = None
    media_url: str | None = None
    hashtags: list[str] = Field(default_factory=list)
    publish_to_web: bool = True
    publish_to_mobile: bool = True
    publish_to_x: bool = True
    publish_to_instagram: bool = False

    def channel_enabled(self, channel: str) -> bool:
        toggles = {
            "web": self.publish_to_web,
            "mobile": self.publish_to_mobile,
            "x": self.publish_to_x,
            "instagram": self.publish_to_instagram,
        }
        # Channels without a toggle are always on
        return toggles.get(channel, True)

    def enabled_channels(self, channels: tuple[str, ...] = KNOWN_CHANNELS) -> list[str]:
        return [c for c in channels if self.channel_enabled(c)]


class ContentItem(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    source_id: UUID | None = None
    title: str
    summary: str = ""
    body_text: str = ""
    canonical_url: str | None = None

    status: ContentStatus = "new"
    decision_type: DecisionType | None = None
    decision_reason: str | None = None
    decided_by_rule_id: UUID | None = None
    decided_at: datetime | None = None
    trust_level_snapshot: int | None = None
    scheduled_at: datetime | None = None

    current_version_no: int = 0
    published_version_no: int | None = None
    published_at: datetime | None = None

    is_breaking: bool = False
    breaking_priority: int | None = None
    breaking_push_required: bool = True

    is_retracted: bool = False
    retract_reason: str | None = None
    retracted_at: datetime | None = None

    draft: ContentDraft = Field(default_factory=ContentDraft)

    ingested_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def search_text(self) -> str:
        """Lowercased title + summary + body used by keyword matching."""
        return f"{self.title} {self.summary} {self.body_text}".lower()


class ContentRevision(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    content_id: UUID
    version_no: int
    action_type: RevisionAction
    snapshot_json: str  # Serialized ContentItem state after the action
    created_by: str | None = None
    created_at: datetime = Field(default_factory=utc_now)


class PublishedContent(BaseModel):
    """Public-facing web record, created on the first successful web publish."""

    id: UUID = Field(default_factory=uuid4)
    content_id: UUID
    version_no: int
    slug: str
    path: str
    web_title: str
    web_body: str = ""
    source_name: str | None = None
    published_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    is_retracted: bool = False
    retracted_at: datetime | None = None


# --- Publishing logs ---


class ChannelPublishLog(BaseModel):
    """Append-only result of one channel dispatch."""

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    content_id: UUID
    job_id: UUID | None = None
    channel: str
    version_no: int
    attempt_no: int
    status: ChannelLogStatus
    error: str | None = None
    error_kind: ChannelErrorKind | None = None
    external_post_id: str | None = None
    created_at: datetime = Field(default_factory=utc_now)


# --- Emergency queue ---


class EmergencyQueueItem(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    content_id: UUID
    priority: int
    matched_keywords: list[str] = Field(default_factory=list)
    reason: str = ""
    target_platforms: list[str] = Field(default_factory=list)
    status: EmergencyStatus = "pending"
    detected_at: datetime = Field(default_factory=utc_now)
    published_at: datetime | None = None
    cancelled_at: datetime | None = None
    publish_job_id: UUID | None = None


# --- Triage rules ---


def _split_values(value: Any) -> Any:
    """Accept CSV strings (legacy storage format) as well as lists."""
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return value


class Rule(BaseModel):
    """
    Triage rule with filters parsed into typed sets at load time.

    Keyword and group filters are stored lowercased so evaluation never
    re-parses or re-normalizes them.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    name: str
    priority: int = 0
    decision_type: DecisionType
    enabled: bool = True
    min_trust_level: int | None = None
    include_keywords: frozenset[str] = frozenset()
    exclude_keywords: frozenset[str] = frozenset()
    source_ids: frozenset[UUID] = frozenset()
    group_names: frozenset[str] = frozenset()
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("include_keywords", "exclude_keywords", "group_names", mode="before")
    @classmethod
    def _normalize_words(cls, value: Any) -> Any:
        return frozenset(str(v).strip().lower() for v in _split_values(value) if str(v).strip())

    @field_validator("source_ids", mode="before")
    @classmethod
    def _parse_source_ids(cls, value: Any) -> Any:
        return frozenset(_split_values(value))

"""
End-to-end publishing through the engine on a migrated SQLite database.

ingest -> triage -> job -> worker pass -> published, then correction,
retraction and the emergency path, all persisted.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from newsdesk.adapters.channels import build_dev_registry
from newsdesk.app_shell.context import EngineContext
from newsdesk.core.ports.channels import ChannelPublishResult
from newsdesk.domain.entities import ContentItem, Source

NIGHT = datetime(2025, 6, 10, 21, 0, tzinfo=UTC)


class OutagePublisher:
    def __init__(self) -> None:
        self.down = True

    def publish(self, content_id, version_no, payload):
        if self.down:
            return ChannelPublishResult.failed("503 Service Unavailable")
        return ChannelPublishResult.ok("x-post-1")


@pytest.fixture
def agency(sqlite_ctx):
    return sqlite_ctx.source_repo.save(Source(name="AA", group="agency", trust_level=95))


@pytest.fixture
def seeded_ctx(sqlite_ctx):
    for rule in sqlite_ctx.rules.triage.build_rules():
        sqlite_ctx.rule_repo.save(rule)
    return sqlite_ctx


def test_auto_publish_persists_everything(seeded_ctx, agency):
    engine = seeded_ctx.engine

    result = engine.ingest(ContentItem(title="Enflasyon beklentisi düştü", source_id=agency.id))
    assert result.job is not None

    processed = engine.process_due("w1")

    assert processed.completed == 1
    item = engine.lifecycle.get(result.item.id)
    assert item.status == "published"
    assert item.published_version_no == 1
    record = engine.scheduler.get_published(item.id)
    assert record.slug == "enflasyon-beklentisi-dustu"
    assert record.source_name == "AA"
    logs = engine.scheduler.list_channel_logs(item.id)
    assert sorted(log.channel for log in logs) == ["mobile", "web", "x"]
    assert engine.get_schedule_stats("x").count == 1
    assert [r.action_type for r in engine.lifecycle.list_revisions(item.id)] == ["Triaged"]


def test_editor_flow_correct_and_retract(seeded_ctx, clock):
    engine = seeded_ctx.engine
    item = engine.ingest(ContentItem(title="Belediye meclisi toplandı")).item
    assert item.status == "pending_approval"

    approved = engine.approve(item.id, {"web_title": "Meclis toplandı"}, actor="editor")
    engine.process_due("w1")
    first = engine.scheduler.get_published(item.id)

    clock.advance(minutes=30)
    corrected = engine.correct(item.id, title="Meclis olağanüstü toplandı", actor="editor")
    engine.process_due("w1")
    second = engine.scheduler.get_published(item.id)

    assert approved.job.version_no == 2
    assert corrected.job.version_no == 3
    assert second.path == first.path
    assert second.version_no == 3

    retracted = engine.retract(item.id, "Yanlış haber", actor="editor")

    assert retracted.item.status == "retracted"
    assert engine.scheduler.get_published(item.id).is_retracted
    actions = [r.action_type for r in engine.lifecycle.list_revisions(item.id)]
    assert actions == ["Triaged", "Approved", "Corrected", "Retracted"]


def test_retry_after_outage(db_path, rules, clock):
    outage = OutagePublisher()
    registry = build_dev_registry(["web", "mobile"])
    registry.register("x", outage)
    ctx = EngineContext.create(db_path, rules, clock, registry)
    engine = ctx.engine
    item = engine.ingest(ContentItem(title="Yağış uyarısı")).item
    job = engine.approve(item.id).job

    first = engine.process_due("w1")
    assert first.retrying == 1
    stored = engine.scheduler.get_job(job.id)
    assert stored.next_retry_at == clock.now_utc() + timedelta(seconds=60)

    outage.down = False
    clock.advance(seconds=60)
    second = engine.process_due("w1")

    assert second.completed == 1
    statuses = [(log.channel, log.status) for log in engine.scheduler.list_channel_logs(item.id)]
    assert statuses.count(("web", "success")) == 1
    assert statuses.count(("x", "failed")) == 1
    assert statuses.count(("x", "success")) == 1


def test_breaking_news_at_night(seeded_ctx, clock):
    engine = seeded_ctx.engine
    item = engine.ingest(ContentItem(title="Son dakika: Marmara'da deprem")).item
    clock.set(NIGHT)

    queued = engine.add_to_emergency_queue(item.id, priority=95)
    published = engine.publish_emergency(queued.item.id, actor="editor")
    result = engine.process_due("w1")

    assert published.success
    assert result.completed == 1
    job = engine.scheduler.get_job(published.job_id)
    assert job.is_emergency
    assert job.scheduled_at == NIGHT
    assert engine.emergency.stats().published == 1


def test_policy_update_persists(seeded_ctx, db_path, rules, clock):
    updated, errors = seeded_ctx.engine.update_policy({"schedule_offset_minutes": 45})

    assert errors == []
    reopened = EngineContext.create(db_path, rules, clock)
    policy = reopened.engine.get_policy()
    assert policy.version == updated.version == 2
    assert policy.schedule_offset_minutes == 45

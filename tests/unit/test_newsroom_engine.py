"""
Tests for the NewsroomEngine facade wired with the project rules.yaml.

The clock starts at 12:00 Istanbul time; NIGHT is 00:00 local, when x and
instagram are outside their windows and mobile pushes are silenced.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID, uuid4

import pytest

from newsdesk.adapters.channels import ChannelRegistry, DevChannelPublisher
from newsdesk.adapters.time_zone import FrozenTimeAdapter
from newsdesk.app_shell.context import EngineContext
from newsdesk.components.newsroom import IngestInput, NewsroomEngine, run_ingest
from newsdesk.core.ports.channels import ChannelPublishResult
from newsdesk.domain.entities import ContentItem, Source
from newsdesk.rules.models import Rules

NOON = datetime(2025, 6, 10, 9, 0, tzinfo=UTC)
NIGHT = datetime(2025, 6, 10, 21, 0, tzinfo=UTC)
MORNING = datetime(2025, 6, 11, 5, 0, tzinfo=UTC)


class RetractingWebPublisher:
    """Web channel whose delivery of a correction overlaps an editorial retract."""

    def __init__(self) -> None:
        self.engine: NewsroomEngine | None = None

    def publish(
        self, content_id: UUID, version_no: int, payload: dict[str, Any]
    ) -> ChannelPublishResult:
        if self.engine is not None and version_no > 1:
            self.engine.retract(content_id, "Hatalı haber")
        return ChannelPublishResult.ok(f"web-{version_no}")


@pytest.fixture
def agency(ctx: EngineContext) -> Source:
    return ctx.source_repo.save(
        Source(name="Anadolu Ajansı", group="agency", category="Ekonomi", trust_level=90)
    )


def _pending(engine: NewsroomEngine, title: str = "Belediye yeni parkı açtı") -> ContentItem:
    result = engine.ingest(ContentItem(title=title))
    assert result.item is not None
    assert result.item.status == "pending_approval"
    return result.item


class TestIngest:
    def test_trusted_agency_publishes_automatically(
        self, engine: NewsroomEngine, agency: Source
    ) -> None:
        result = run_ingest(
            IngestInput(title="Merkez Bankası faizi sabit tuttu", source_id=agency.id),
            engine=engine,
        )

        assert result.success
        assert result.item is not None
        assert result.item.status == "auto_ready"
        assert result.item.current_version_no == 1
        assert result.decision is not None
        assert result.decision.matched_rule_name == "Trusted agencies auto publish"
        assert result.job is not None
        assert result.job.version_no == 1
        assert result.job.scheduled_at == NOON
        assert result.job.target_platforms == ["web", "mobile", "x"]

        processed = engine.process_due("w1")

        assert processed.completed == 1
        stored = engine.lifecycle.get(result.item.id)
        assert stored is not None
        assert stored.status == "published"
        assert stored.published_version_no == 1

    def test_sponsored_content_is_blocked(self, engine: NewsroomEngine, agency: Source) -> None:
        result = engine.ingest(ContentItem(title="Sponsorlu: yeni telefon", source_id=agency.id))

        assert result.item is not None
        assert result.item.status == "blocked"
        assert result.job is None
        assert engine.approve(result.item.id).errors[0].code == "invalid_transition"

    def test_unknown_source_waits_for_editor(self, engine: NewsroomEngine) -> None:
        result = engine.ingest(ContentItem(title="Belediye yeni parkı açtı"))

        assert result.item is not None
        assert result.item.status == "pending_approval"
        assert result.job is None
        assert result.detection is not None
        assert not result.detection.is_emergency

    def test_duplicate_ingest_is_refused(self, engine: NewsroomEngine) -> None:
        item = ContentItem(title="x")
        engine.ingest(item)

        result = engine.ingest(item)

        assert not result.success
        assert result.errors[0].code == "already_exists"

    def test_auto_enqueue_emergency(self, engine: NewsroomEngine) -> None:
        emergency = engine.get_policy().emergency.model_dump(mode="json")
        updated, errors = engine.update_policy({"emergency": {**emergency, "auto_enqueue": True}})
        assert errors == []
        assert updated is not None

        result = engine.ingest(ContentItem(title="Son dakika: İzmir'de deprem"))

        assert result.item is not None
        assert result.emergency_item is not None
        assert result.emergency_item.status == "pending"
        assert engine.emergency.list_pending()[0].content_id == result.item.id


class TestEditorialFlow:
    def test_approve_enqueues_new_version(self, engine: NewsroomEngine) -> None:
        item = _pending(engine)

        result = engine.approve(item.id, {"web_title": "Yeni park açıldı"}, actor="editor")

        assert result.success
        assert result.version_no == 2
        assert result.job is not None
        assert result.job.version_no == 2
        assert result.job.scheduled_at == NOON
        assert not result.job.silence_push

    def test_approve_at_night_is_deferred_and_silenced(
        self, engine: NewsroomEngine, clock: FrozenTimeAdapter
    ) -> None:
        item = _pending(engine)
        clock.set(NIGHT)

        result = engine.approve(item.id)

        assert result.job is not None
        assert result.job.scheduled_at == MORNING
        assert result.job.silence_push
        assert not result.job.is_emergency

    def test_explicit_platforms(self, engine: NewsroomEngine) -> None:
        item = _pending(engine)

        result = engine.approve(item.id, platforms=["web"])

        assert result.job is not None
        assert result.job.target_platforms == ["web"]

    def test_no_enabled_platforms(self, engine: NewsroomEngine) -> None:
        platforms: dict[str, Any] = engine.get_policy().model_dump(mode="json")["platforms"]
        platforms["instagram"]["enabled"] = False
        engine.update_policy({"platforms": platforms})
        item = _pending(engine)

        result = engine.approve(item.id, platforms=["instagram"])

        assert result.item is not None
        assert result.job is None
        assert result.errors[0].code == "no_enabled_platforms"
        assert result.errors[0].component == "scheduler"

    def test_reject_cancels_pending_job(self, engine: NewsroomEngine) -> None:
        item = _pending(engine)
        job = engine.approve(item.id).job
        assert job is not None

        result = engine.reject(item.id, "Yanlış bilgi")

        assert result.success
        cancelled = engine.scheduler.get_job(job.id)
        assert cancelled is not None
        assert cancelled.status == "cancelled"

    def test_schedule_runs_at_requested_time(self, engine: NewsroomEngine) -> None:
        item = _pending(engine)
        at = NOON + timedelta(hours=2)

        result = engine.schedule(item.id, at)

        assert result.item is not None
        assert result.item.status == "scheduled"
        assert result.job is not None
        assert result.job.scheduled_at == at

    def test_schedule_into_the_night_waits_for_morning(self, engine: NewsroomEngine) -> None:
        item = _pending(engine)

        result = engine.schedule(item.id, NIGHT)

        assert result.job is not None
        assert result.job.scheduled_at == MORNING
        assert result.job.silence_push

    def test_new_version_cancels_older_jobs(
        self, engine: NewsroomEngine, clock: FrozenTimeAdapter
    ) -> None:
        item = _pending(engine)
        clock.set(NIGHT)
        first = engine.approve(item.id).job
        assert first is not None

        breaking = engine.mark_breaking(item.id, priority=90)

        stale = engine.scheduler.get_job(first.id)
        assert stale is not None
        assert stale.status == "cancelled"
        assert breaking.job is not None
        assert breaking.job.version_no == 3

    def test_correct_keeps_public_path(
        self, engine: NewsroomEngine, agency: Source, clock: FrozenTimeAdapter
    ) -> None:
        item = engine.ingest(ContentItem(title="Asgari ücret", source_id=agency.id)).item
        assert item is not None
        engine.process_due("w1")
        first = engine.scheduler.get_published(item.id)
        assert first is not None

        corrected = engine.correct(item.id, title="Asgari ücret zammı açıklandı")
        # x keeps its 30 minute gap after the first post
        clock.advance(minutes=30)
        engine.process_due("w1")

        assert corrected.job is not None
        assert corrected.job.version_no == 2
        record = engine.scheduler.get_published(item.id)
        assert record is not None
        assert record.path == first.path
        assert record.version_no == 2
        assert record.web_title == "Asgari ücret zammı açıklandı"

    def test_ten_actions_give_ten_versions(self, engine: NewsroomEngine) -> None:
        item = _pending(engine)
        steps = [
            engine.save_draft(item.id, {"web_title": "Park açıldı"}),
            engine.reject(item.id, "Eksik bilgi"),
            engine.resubmit(item.id),
            engine.save_draft(item.id, summary="Yeni park hizmete girdi"),
            engine.schedule(item.id, NOON + timedelta(hours=3)),
            engine.save_draft(item.id, {"x_text": "Yeni park açıldı"}),
            engine.approve(item.id),
            engine.save_draft(item.id, {"push_title": "Park açıldı"}),
            engine.mark_breaking(item.id, priority=60),
        ]

        assert all(step.success for step in steps)
        revisions = engine.lifecycle.list_revisions(item.id)
        assert [r.version_no for r in revisions] == list(range(1, 11))
        job = steps[-1].job
        assert job is not None
        assert job.version_no == 10
        jobs = engine.scheduler.list_jobs_for_content(item.id)
        assert [j.version_no for j in jobs if j.status == "pending"] == [10]

    def test_retract_while_correction_is_delivered(
        self, rules: Rules, clock: FrozenTimeAdapter
    ) -> None:
        web = RetractingWebPublisher()
        registry = ChannelRegistry(
            {"web": web, "mobile": DevChannelPublisher("mobile"), "x": DevChannelPublisher("x")}
        )
        ctx = EngineContext.create_in_memory(rules, clock, registry)
        engine = web.engine = ctx.engine
        agency = ctx.source_repo.save(
            Source(name="Anadolu Ajansı", group="agency", category="Ekonomi", trust_level=90)
        )
        item = engine.ingest(ContentItem(title="Asgari ücret", source_id=agency.id)).item
        assert item is not None
        engine.process_due("w1")

        engine.correct(item.id, title="Asgari ücret zammı açıklandı")
        clock.advance(minutes=30)
        engine.process_due("w1")

        stored = engine.lifecycle.get(item.id)
        assert stored is not None
        assert stored.status == "retracted"
        record = engine.scheduler.get_published(item.id)
        assert record is not None
        assert record.is_retracted
        assert record.version_no == 1

    def test_retract_pulls_public_record(self, engine: NewsroomEngine, agency: Source) -> None:
        item = engine.ingest(ContentItem(title="Seçim sonuçları", source_id=agency.id)).item
        assert item is not None
        engine.process_due("w1")

        result = engine.retract(item.id, "Hatalı sonuç")

        assert result.item is not None
        assert result.item.status == "retracted"
        record = engine.scheduler.get_published(item.id)
        assert record is not None
        assert record.is_retracted
        refused = engine.enqueue_publish_job(item.id)
        assert refused.errors[0].code == "content_retracted"


class TestEmergency:
    def test_mark_breaking_at_night_publishes_now(
        self, engine: NewsroomEngine, clock: FrozenTimeAdapter
    ) -> None:
        item = _pending(engine)
        clock.set(NIGHT)

        result = engine.mark_breaking(item.id, priority=90)

        assert result.item is not None
        assert result.item.is_breaking
        assert result.job is not None
        assert result.job.is_emergency
        assert result.job.scheduled_at == NIGHT
        assert not result.job.silence_push

    def test_detect_emergency(self, engine: NewsroomEngine) -> None:
        item = _pending(engine, "Son dakika: Ankara'da patlama")

        detection = engine.detect_emergency(item.id)

        assert detection is not None
        assert detection.is_emergency
        assert detection.matched_keywords == ("son dakika", "patlama")

    def test_queue_and_publish_pending_content(
        self, engine: NewsroomEngine, clock: FrozenTimeAdapter
    ) -> None:
        item = _pending(engine, "Son dakika: Ankara'da patlama")
        clock.set(NIGHT)

        queued = engine.add_to_emergency_queue(item.id)
        assert queued.item is not None
        published = engine.publish_emergency(queued.item.id, actor="editor")

        assert published.success
        assert published.job_id is not None
        job = engine.scheduler.get_job(published.job_id)
        assert job is not None
        assert job.is_emergency
        assert job.scheduled_at == NIGHT
        # Approved on the way out
        assert job.version_no == 2
        approved = engine.lifecycle.get(item.id)
        assert approved is not None
        assert approved.status == "ready_to_publish"

    def test_queue_publish_drops_disabled_platform(
        self, engine: NewsroomEngine, clock: FrozenTimeAdapter
    ) -> None:
        platforms: dict[str, Any] = engine.get_policy().model_dump(mode="json")["platforms"]
        platforms["x"]["enabled"] = False
        engine.update_policy({"platforms": platforms})
        item = _pending(engine, "Son dakika: Ankara'da patlama")
        clock.set(NIGHT)

        queued = engine.add_to_emergency_queue(item.id, platforms=["web", "x"])
        assert queued.item is not None
        published = engine.publish_emergency(queued.item.id)

        assert published.success
        assert published.job_id is not None
        job = engine.scheduler.get_job(published.job_id)
        assert job is not None
        assert job.target_platforms == ["web"]
        assert job.scheduled_at == NIGHT

    def test_queue_publish_respects_missing_override(
        self, engine: NewsroomEngine, clock: FrozenTimeAdapter
    ) -> None:
        platforms: dict[str, Any] = engine.get_policy().model_dump(mode="json")["platforms"]
        platforms["instagram"]["emergency_override"] = False
        engine.update_policy({"platforms": platforms})
        item = _pending(engine, "Son dakika: Ankara'da patlama")
        clock.set(NIGHT)

        queued = engine.add_to_emergency_queue(item.id, platforms=["web", "instagram"])
        assert queued.item is not None
        published = engine.publish_emergency(queued.item.id)

        assert published.job_id is not None
        job = engine.scheduler.get_job(published.job_id)
        assert job is not None
        assert job.target_platforms == ["web", "instagram"]
        # instagram waits for its 08:00 window
        assert job.scheduled_at == MORNING
        assert job.is_emergency

    def test_queue_publish_with_every_platform_disabled(self, engine: NewsroomEngine) -> None:
        platforms: dict[str, Any] = engine.get_policy().model_dump(mode="json")["platforms"]
        platforms["x"]["enabled"] = False
        engine.update_policy({"platforms": platforms})
        item = _pending(engine, "Son dakika: Ankara'da patlama")
        queued = engine.add_to_emergency_queue(item.id, platforms=["x"])
        assert queued.item is not None

        published = engine.publish_emergency(queued.item.id)

        assert not published.success
        assert published.errors[0].code == "no_enabled_platforms"
        entry = engine.emergency.get(queued.item.id)
        assert entry is not None
        assert entry.status == "pending"

    def test_editor_can_queue_undetected_item(self, engine: NewsroomEngine) -> None:
        item = _pending(engine)

        queued = engine.add_to_emergency_queue(item.id)

        assert queued.item is not None
        assert queued.item.priority == engine.get_policy().emergency.default_priority
        assert queued.item.reason == "Queued by editor"

    def test_queue_unknown_content(self, engine: NewsroomEngine) -> None:
        assert engine.add_to_emergency_queue(uuid4()).errors[0].code == "content_not_found"

    def test_retract_drops_queue_entry(self, engine: NewsroomEngine, agency: Source) -> None:
        item = engine.ingest(ContentItem(title="Fabrikada yangın", source_id=agency.id)).item
        assert item is not None
        engine.process_due("w1")
        queued = engine.add_to_emergency_queue(item.id)
        assert queued.item is not None

        engine.retract(item.id)

        entry = engine.emergency.get(queued.item.id)
        assert entry is not None
        assert entry.status == "cancelled"


class TestStats:
    def test_schedule_stats_count_deliveries(self, engine: NewsroomEngine, agency: Source) -> None:
        engine.ingest(ContentItem(title="Borsa güne yükselişle başladı", source_id=agency.id))
        engine.process_due("w1")

        stats = engine.get_schedule_stats("x")

        assert stats.count == 1
        assert stats.remaining == 9

    def test_min_interval_defers_next_job(
        self, engine: NewsroomEngine, agency: Source, clock: FrozenTimeAdapter
    ) -> None:
        engine.ingest(ContentItem(title="Borsa güne yükselişle başladı", source_id=agency.id))
        engine.process_due("w1")
        clock.advance(minutes=5)

        result = engine.ingest(ContentItem(title="Dolar yükseldi", source_id=agency.id))

        assert result.job is not None
        # x needs 30 minutes between posts
        assert result.job.scheduled_at == NOON + timedelta(minutes=30)

"""
Tests for the content state machine and LifecycleService.

- Every action bumps current_version_no by one and writes one revision
- Illegal transitions change nothing
- Concurrent writers lose with version_conflict
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from newsdesk.adapters.memory import InMemoryContentRepo
from newsdesk.adapters.time_zone import FrozenTimeAdapter
from newsdesk.components.lifecycle import ActionInput, LifecycleService, run_action
from newsdesk.domain.entities import ContentDraft, ContentItem, ContentRevision
from newsdesk.domain.state import apply_action, can_apply, mark_published

NOW = datetime(2025, 6, 10, 9, 0, tzinfo=UTC)


class StaleContentRepo(InMemoryContentRepo):
    """Every conditional write loses, as if another editor saved first."""

    def save_transition(self, item: ContentItem, revision: ContentRevision) -> bool:
        return False


@pytest.fixture
def repo() -> InMemoryContentRepo:
    return InMemoryContentRepo()


@pytest.fixture
def service(repo: InMemoryContentRepo) -> LifecycleService:
    return LifecycleService(repo, FrozenTimeAdapter(NOW))


def _pending(service: LifecycleService, draft: ContentDraft | None = None) -> ContentItem:
    item = ContentItem(title="Belediye meclisi toplandı", draft=draft or ContentDraft())
    service.create(item)
    result = service.triage(
        item.id, status="pending_approval", decision_type="require_approval", reason="Default"
    )
    assert result.item is not None
    return result.item


class TestStateMachine:
    def test_allowed_transitions(self) -> None:
        assert can_apply("new", "Triaged")
        assert can_apply("pending_approval", "Approved")
        assert can_apply("published", "Corrected")
        assert can_apply("rejected", "Resubmitted")

    def test_forbidden_transitions(self) -> None:
        assert not can_apply("new", "Approved")
        assert not can_apply("retracted", "Corrected")
        assert not can_apply("blocked", "Approved")
        assert not can_apply("ready_to_publish", "Retracted")

    def test_apply_is_pure_on_error(self) -> None:
        item = ContentItem(title="x")
        before = item.model_dump()

        result = apply_action(item, "Approved", NOW)

        assert not result.success
        assert result.errors[0].code == "invalid_transition"
        assert item.model_dump() == before

    def test_triage_status_must_be_a_decision_status(self) -> None:
        result = apply_action(ContentItem(title="x"), "Triaged", NOW, {"status": "published"})

        assert result.errors[0].code == "invalid_decision_status"

    def test_unknown_update_fields_rejected(self) -> None:
        result = apply_action(ContentItem(title="x"), "Triaged", NOW, {"current_version_no": 9})

        assert result.errors[0].code == "invalid_update"

    def test_snapshot_matches_new_state(self) -> None:
        result = apply_action(
            ContentItem(title="x"), "Triaged", NOW, {"status": "auto_ready"}, actor="system"
        )

        assert result.revision is not None
        snapshot = ContentItem.model_validate_json(result.revision.snapshot_json)
        assert snapshot.status == "auto_ready"
        assert snapshot.current_version_no == 1
        assert result.revision.created_by == "system"

    def test_mark_published_keeps_highest_version(self) -> None:
        item = ContentItem(title="x", status="published", current_version_no=3)
        item = mark_published(item, 3, NOW)

        late = mark_published(item, 2, NOW + timedelta(minutes=1))

        assert late.published_version_no == 3
        assert late.current_version_no == 3

    def test_mark_published_keeps_retraction(self) -> None:
        item = ContentItem(title="x", status="retracted", is_retracted=True, current_version_no=4)

        assert mark_published(item, 3, NOW).status == "retracted"

    def test_mark_published_leaves_rejected_item(self) -> None:
        item = ContentItem(title="x", status="rejected", current_version_no=2)

        assert mark_published(item, 2, NOW) == item


class TestLifecycleService:
    def test_create_and_triage(self, service: LifecycleService, repo: InMemoryContentRepo) -> None:
        item = _pending(service)

        assert item.status == "pending_approval"
        assert item.current_version_no == 1
        assert item.decision_reason == "Default"
        assert item.decided_at == NOW
        assert [r.action_type for r in repo.list_revisions(item.id)] == ["Triaged"]

    def test_create_twice(self, service: LifecycleService) -> None:
        item = ContentItem(title="x")
        service.create(item)

        result = service.create(item)

        assert result.errors[0].code == "already_exists"

    def test_create_requires_new_item(self, service: LifecycleService) -> None:
        result = service.create(ContentItem(title="x", status="published"))

        assert result.errors[0].code == "invalid_state"

    def test_approve(self, service: LifecycleService, repo: InMemoryContentRepo) -> None:
        item = _pending(service)

        result = service.approve(item.id, {"web_title": "Meclis toplandı"}, actor="editor")

        assert result.success
        assert result.version_no == 2
        assert result.item is not None
        assert result.item.status == "ready_to_publish"
        assert result.item.draft.web_title == "Meclis toplandı"
        assert repo.list_revisions(item.id)[-1].created_by == "editor"

    def test_illegal_action_changes_nothing(
        self, service: LifecycleService, repo: InMemoryContentRepo
    ) -> None:
        item = _pending(service)

        result = service.correct(item.id, title="Changed")

        assert result.errors[0].code == "invalid_transition"
        stored = repo.get_by_id(item.id)
        assert stored is not None
        assert stored.current_version_no == 1
        assert stored.title == item.title
        assert len(repo.list_revisions(item.id)) == 1

    def test_unknown_content(self, service: LifecycleService) -> None:
        assert service.approve(uuid4()).errors[0].code == "not_found"

    def test_version_conflict(self) -> None:
        repo = StaleContentRepo()
        service = LifecycleService(repo, FrozenTimeAdapter(NOW))
        item = ContentItem(title="x")
        service.create(item)

        result = service.triage(
            item.id, status="auto_ready", decision_type="auto_publish", reason="rule"
        )

        assert result.errors[0].code == "version_conflict"
        assert repo.get_by_id(item.id).current_version_no == 0  # type: ignore[union-attr]

    def test_reject_and_resubmit(self, service: LifecycleService) -> None:
        item = _pending(service)

        rejected = service.reject(item.id, "Duplicate story")
        resubmitted = service.resubmit(item.id)

        assert rejected.item is not None
        assert rejected.item.status == "rejected"
        assert rejected.item.decision_reason == "Duplicate story"
        assert resubmitted.item is not None
        assert resubmitted.item.status == "pending_approval"
        assert resubmitted.version_no == 3

    def test_schedule_requires_aware_time(self, service: LifecycleService) -> None:
        item = _pending(service)

        result = service.schedule(item.id, datetime(2025, 6, 10, 15, 0))

        assert result.errors[0].code == "invalid_time"

    def test_schedule_stores_utc(self, service: LifecycleService) -> None:
        item = _pending(service)
        at = datetime(2025, 6, 10, 18, 0, tzinfo=UTC) + timedelta(hours=1)

        result = service.schedule(item.id, at)

        assert result.item is not None
        assert result.item.status == "scheduled"
        assert result.item.scheduled_at == at

    def test_breaking_requires_mobile_when_push_required(self, service: LifecycleService) -> None:
        item = _pending(service, ContentDraft(publish_to_mobile=False))

        blocked = service.mark_breaking(item.id, push_required=True)
        allowed = service.mark_breaking(item.id, push_required=False, priority=80)

        assert blocked.errors[0].code == "push_required"
        assert allowed.item is not None
        assert allowed.item.is_breaking
        assert allowed.item.breaking_priority == 80
        assert allowed.item.status == "ready_to_publish"

    def test_correct_and_retract_after_publish(
        self, service: LifecycleService, repo: InMemoryContentRepo
    ) -> None:
        item = _pending(service)
        service.approve(item.id)
        service.mark_published(item.id, 2)

        corrected = service.correct(item.id, title="Düzeltme")
        retracted = service.retract(item.id, "Hatalı bilgi")

        assert corrected.item is not None
        assert corrected.item.status == "published"
        assert corrected.version_no == 3
        assert retracted.item is not None
        assert retracted.item.is_retracted
        assert retracted.item.retract_reason == "Hatalı bilgi"
        assert retracted.item.retracted_at == NOW
        assert service.correct(item.id).errors[0].code == "invalid_transition"

    def test_mark_published_does_not_bump_version(self, service: LifecycleService) -> None:
        item = _pending(service)
        service.approve(item.id)

        service.mark_published(item.id, 2)

        stored = service.get(item.id)
        assert stored is not None
        assert stored.status == "published"
        assert stored.current_version_no == 2
        assert stored.published_version_no == 2
        assert stored.published_at == NOW

    def test_list_by_status(self, service: LifecycleService) -> None:
        item = _pending(service)

        assert [i.id for i in service.list_by_status("pending_approval")] == [item.id]
        assert service.list_by_status("published") == []


class TestRunAction:
    def test_dispatches_by_name(self, service: LifecycleService) -> None:
        item = _pending(service)

        result = run_action(
            ActionInput(content_id=item.id, action="reject", params={"reason": "Off-topic"}),
            service=service,
        )

        assert result.item is not None
        assert result.item.status == "rejected"

    def test_unknown_action(self, service: LifecycleService) -> None:
        item = _pending(service)

        result = run_action(ActionInput(content_id=item.id, action="publish"), service=service)

        assert result.errors[0].code == "unknown_action"

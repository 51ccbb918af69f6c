"""
Tests for weekly transitions against a real (in-memory) database.

Covers compile, submit, approve, reject and delete, the permission checks
in front of them, and the notifications written afterwards.
"""

import pytest
from sqlalchemy.exc import OperationalError

from app.exceptions import Forbidden, InvalidEntry, InvalidTransition, InvalidWeek, NotFound, StoreUnavailable
from app.models.logbook import BundleStatus, LogbookReview
from app.models.notification import Notification
from app.models.project import ProjectParticipant
from app.services.audit_service import AuditService
from app.services.notification_service import LOGBOOK_REVIEWED, LOGBOOK_SUBMITTED, NotificationService
from app.services.submission_gate import SubmissionGate


@pytest.fixture
def compiled_week(gate, intern, make_entry):
    """Week 1 with three compiled entries plus one loose draft."""
    entries = [make_entry(day=day) for day in (1, 2, 3)]
    make_entry(day=4, content="Not part of any week yet")
    gate.compile_week(intern, 1, [e.id for e in entries])
    return entries


@pytest.fixture
def submitted_week(gate, intern, compiled_week):
    gate.submit_week(intern, 1)
    return compiled_week


def notifications_for(db_session, user_id):
    return db_session.query(Notification).filter(Notification.user_id == user_id).all()


class TestCompile:
    def test_groups_drafts_into_week(self, gate, intern, compiled_week, categories, db_session):
        assert categories() == ["weekly_1_log_compile"] * 3 + ["draft"]
        bundle = gate.get_bundle("intern-1", 1)
        assert bundle.state == BundleStatus.DRAFT
        assert bundle.entry_count == 3
        record = gate.get_record("intern-1", 1)
        assert record.status == BundleStatus.DRAFT
        assert record.project_id == "proj-1"

    def test_adding_to_a_compiled_week(self, gate, intern, compiled_week, make_entry, categories):
        extra = make_entry(day=5)
        bundle = gate.compile_week(intern, 1, [extra.id])
        assert bundle.entry_count == 4

    def test_requires_entries(self, gate, intern):
        with pytest.raises(InvalidEntry):
            gate.compile_week(intern, 1, [])

    def test_unknown_entry(self, gate, intern):
        with pytest.raises(NotFound):
            gate.compile_week(intern, 1, [999])

    def test_only_own_entries(self, gate, loner, make_entry):
        entry = make_entry(user_id="intern-1")
        with pytest.raises(Forbidden):
            gate.compile_week(loner, 1, [entry.id])

    def test_entry_already_in_a_week(self, gate, intern, compiled_week):
        with pytest.raises(InvalidTransition):
            gate.compile_week(intern, 2, [compiled_week[0].id])

    def test_locked_week_takes_no_new_entries(self, gate, intern, submitted_week, make_entry):
        extra = make_entry(day=6)
        with pytest.raises(InvalidTransition):
            gate.compile_week(intern, 1, [extra.id])

    def test_invalid_week(self, gate, intern, make_entry):
        entry = make_entry()
        with pytest.raises(InvalidWeek):
            gate.compile_week(intern, "abc", [entry.id])


class TestSubmit:
    def test_submit_retags_every_member(self, gate, intern, compiled_week, categories, db_session, slack):
        bundle = gate.submit_week(intern, 1)

        assert bundle.state == BundleStatus.SUBMITTED
        assert categories() == ["weekly_1_log_submitted"] * 3 + ["draft"]
        record = gate.get_record("intern-1", 1)
        assert record.status == BundleStatus.SUBMITTED
        assert record.submitted_at is not None

        notes = notifications_for(db_session, "mentor-1")
        assert [n.type for n in notes] == [LOGBOOK_SUBMITTED]
        assert "Intan Permata submitted Week 1" in notes[0].message
        assert slack.sent[0]["user_id"] == "U_MENTOR"

    def test_empty_week_changes_nothing(self, gate, intern, compiled_week, categories):
        before = categories()
        with pytest.raises(NotFound):
            gate.submit_week(intern, 9)
        assert categories() == before
        assert gate.get_record("intern-1", 9) is None

    def test_only_owner_submits(self, gate, mentor, compiled_week):
        with pytest.raises(Forbidden):
            gate.submit_week(mentor, 1, owner_id="intern-1")

    def test_unassigned_intern_cannot_submit(self, gate, loner, make_entry):
        entry = make_entry(user_id="intern-2")
        gate.compile_week(loner, 1, [entry.id])
        with pytest.raises(Forbidden):
            gate.submit_week(loner, 1)

    def test_cannot_submit_twice(self, gate, intern, submitted_week):
        with pytest.raises(InvalidTransition):
            gate.submit_week(intern, 1)

    def test_project_without_mentor_still_submits(self, gate, intern, compiled_week, db_session):
        db_session.query(ProjectParticipant).filter(ProjectParticipant.role_in_project == "pic").delete()
        db_session.commit()

        bundle = gate.submit_week(intern, 1)
        assert bundle.state == BundleStatus.SUBMITTED
        assert notifications_for(db_session, "mentor-1") == []

    def test_notification_failure_does_not_undo_submit(self, db_session, intern, compiled_week, categories):
        class BrokenSlack:
            enabled = True

            def send_dm(self, user_id, blocks, text=""):
                raise RuntimeError("slack is down")

        gate = SubmissionGate(db_session, NotificationService(db_session, BrokenSlack()))
        bundle = gate.submit_week(intern, 1)
        assert bundle.state == BundleStatus.SUBMITTED
        assert categories()[:3] == ["weekly_1_log_submitted"] * 3


class TestReview:
    def test_intern_cannot_approve_own_week(self, gate, intern, submitted_week, categories):
        with pytest.raises(Forbidden):
            gate.approve_week(intern, "intern-1", 1)
        assert categories()[:3] == ["weekly_1_log_submitted"] * 3

    @pytest.mark.parametrize("reviewer", ["other_mentor", "admin"])
    def test_only_project_mentor_reviews(self, gate, submitted_week, reviewer, request):
        actor = request.getfixturevalue(reviewer)
        with pytest.raises(Forbidden):
            gate.reject_week(actor, "intern-1", 1, "no")

    def test_mentor_approves(self, gate, mentor, submitted_week, categories, db_session, slack):
        bundle = gate.approve_week(mentor, "intern-1", 1, "Great week")

        assert bundle.state == BundleStatus.APPROVED
        assert categories() == ["weekly_1_log_approved"] * 3 + ["draft"]

        record = gate.get_record("intern-1", 1)
        assert record.status == BundleStatus.APPROVED
        assert record.reviewer_id == "mentor-1"
        assert record.review_comment == "Great week"

        reviews = gate.get_reviews("intern-1", 1)
        assert [(r.decision, r.comment) for r in reviews] == [(BundleStatus.APPROVED, "Great week")]

        notes = notifications_for(db_session, "intern-1")
        assert [n.type for n in notes] == [LOGBOOK_REVIEWED]
        assert notes[0].title == "Logbook Approved ✓"
        assert slack.sent[-1]["user_id"] == "U_INTERN"

    def test_cannot_review_unsubmitted_week(self, gate, mentor, compiled_week):
        with pytest.raises(InvalidTransition):
            gate.approve_week(mentor, "intern-1", 1)

    def test_reject_then_resubmit(self, gate, intern, mentor, submitted_week, categories):
        bundle = gate.reject_week(mentor, "intern-1", 1, "Add more detail")
        assert bundle.state == BundleStatus.REJECTED
        assert categories()[:3] == ["weekly_1_log_rejected_1"] * 3

        bundle = gate.submit_week(intern, 1)
        assert bundle.state == BundleStatus.SUBMITTED
        assert categories()[:3] == ["weekly_1_log_submitted"] * 3

    def test_rejection_counter_survives_resubmission(self, gate, intern, mentor, submitted_week, categories):
        gate.reject_week(mentor, "intern-1", 1, "first")
        gate.submit_week(intern, 1)
        bundle = gate.reject_week(mentor, "intern-1", 1, "second")

        assert bundle.rejection_count == 2
        assert categories()[:3] == ["weekly_1_log_rejected_2"] * 3
        assert gate.get_record("intern-1", 1).rejection_count == 2
        assert len(gate.get_reviews("intern-1", 1)) == 2

    def test_rejected_notification_carries_comment(self, gate, mentor, submitted_week, db_session):
        gate.reject_week(mentor, "intern-1", 1, "Describe the outcome")
        note = notifications_for(db_session, "intern-1")[0]
        assert note.title == "Logbook Needs Revision"
        assert note.message.endswith("Describe the outcome")

    def test_retry_completes_mixed_week(self, gate, mentor, people, make_entry, categories):
        make_entry(category="weekly_2_log_approved", day=8)
        make_entry(category="weekly_2_log_submitted", day=9)

        bundle = gate.approve_week(mentor, "intern-1", 2)
        assert bundle.is_consistent
        assert categories() == ["weekly_2_log_approved"] * 2
        assert len(gate.get_reviews("intern-1", 2)) == 1

        # The decision is now on record, so a second retry adds no review
        make_entry(category="weekly_2_log_submitted", day=10)
        gate.approve_week(mentor, "intern-1", 2)
        assert categories() == ["weekly_2_log_approved"] * 3
        assert len(gate.get_reviews("intern-1", 2)) == 1

    def test_new_entries_keep_a_rejected_week_rejected(self, gate, intern, mentor, submitted_week, make_entry, categories):
        gate.reject_week(mentor, "intern-1", 1, "Add more detail")
        extra = make_entry(day=6)

        bundle = gate.compile_week(intern, 1, [extra.id])
        assert bundle.state == BundleStatus.REJECTED
        assert bundle.is_consistent
        assert categories()[-1] == "weekly_1_log_rejected_1"

        with pytest.raises(InvalidTransition):
            gate.reject_week(mentor, "intern-1", 1, "again")
        assert len(gate.get_reviews("intern-1", 1)) == 1

        bundle = gate.submit_week(intern, 1)
        assert bundle.entry_count == 4
        assert categories()[-1] == "weekly_1_log_submitted"


class TestDeleteWeek:
    def test_removes_only_that_week(self, gate, intern, compiled_week, make_entry, categories):
        other = make_entry(day=10)
        gate.compile_week(intern, 2, [other.id])

        deleted = gate.delete_week(intern, 1)

        assert deleted == 3
        assert categories() == ["draft", "weekly_2_log_compile"]
        assert gate.get_record("intern-1", 1) is None
        assert gate.get_record("intern-1", 2) is not None

    def test_rejected_week_keeps_review_history(self, gate, intern, mentor, submitted_week, db_session):
        gate.reject_week(mentor, "intern-1", 1, "redo")
        gate.delete_week(intern, 1)
        assert gate.get_bundle("intern-1", 1).is_empty
        assert db_session.query(LogbookReview).count() == 1

    @pytest.mark.parametrize("approve", [False, True])
    def test_locked_weeks_cannot_be_deleted(self, gate, intern, mentor, submitted_week, approve, categories):
        if approve:
            gate.approve_week(mentor, "intern-1", 1)
        with pytest.raises(Forbidden):
            gate.delete_week(intern, 1)
        assert len(categories()) == 4

    def test_empty_week(self, gate, intern):
        with pytest.raises(NotFound):
            gate.delete_week(intern, 3)


class TestReads:
    def test_list_weeks(self, gate, intern, make_entry):
        make_entry(category="weekly_3_log_approved")
        make_entry(category="weekly_1_log_submitted")
        make_entry(category="weekly_3_log_approved")
        make_entry(category="weekly_5_log_compile")
        make_entry(category="draft")
        assert gate.list_weeks("intern-1") == [1, 3, 5]

    def test_zero_padded_week_is_a_plain_draft(self, gate, make_entry, people):
        make_entry(category="weekly_03_log_submitted")
        assert gate.list_weeks("intern-1") == []

    def test_like_wildcards_do_not_leak_between_weeks(self, gate, make_entry, people):
        make_entry(category="weekly_1_log_submitted")
        make_entry(category="weekly_11_log_submitted")
        assert gate.get_bundle("intern-1", 1).entry_count == 1

    def test_visibility(self, gate, intern, mentor, other_mentor, admin, loner, people):
        assert gate.can_view(intern, "intern-1")
        assert gate.can_view(mentor, "intern-1")
        assert gate.can_view(admin, "intern-1")
        assert not gate.can_view(other_mentor, "intern-1")
        assert not gate.can_view(loner, "intern-1")
        with pytest.raises(Forbidden):
            gate.ensure_can_view(loner, "intern-1")

    def test_pending_reviews(self, gate, mentor, other_mentor, submitted_week):
        pending = gate.get_pending_reviews(mentor)
        assert len(pending) == 1
        assert pending[0]["intern_name"] == "Intan Permata"
        assert pending[0]["week"] == 1
        assert pending[0]["entry_count"] == 3
        assert gate.get_pending_reviews(other_mentor) == []

    def test_reviewed_week_leaves_pending_list(self, gate, mentor, submitted_week):
        gate.approve_week(mentor, "intern-1", 1)
        assert gate.get_pending_reviews(mentor) == []

    def test_audit_trail(self, gate, intern, mentor, submitted_week, db_session):
        gate.approve_week(mentor, "intern-1", 1)
        history = AuditService.get_entity_history(db_session, "weekly_logbook", "intern-1:1")
        assert [h.action for h in history] == ["compile_weekly_log", "submit_weekly_log", "approve_weekly_log"]


class TestStoreFailure:
    @pytest.fixture
    def broken_commit(self, db_session, monkeypatch):
        def _break():
            def failing_commit():
                raise OperationalError("UPDATE", {}, Exception("database is locked"))

            monkeypatch.setattr(db_session, "commit", failing_commit)

        return _break

    def test_failed_submit_leaves_week_compiled(self, gate, intern, compiled_week, categories, broken_commit, monkeypatch):
        broken_commit()
        with pytest.raises(StoreUnavailable):
            gate.submit_week(intern, 1)
        monkeypatch.undo()

        assert categories() == ["weekly_1_log_compile"] * 3 + ["draft"]
        assert gate.get_bundle("intern-1", 1).state == BundleStatus.DRAFT
        assert gate.get_record("intern-1", 1).status == BundleStatus.DRAFT

    def test_failed_reject_leaves_week_submitted(self, gate, mentor, submitted_week, categories, broken_commit, monkeypatch):
        broken_commit()
        with pytest.raises(StoreUnavailable):
            gate.reject_week(mentor, "intern-1", 1, "redo")
        monkeypatch.undo()

        assert categories()[:3] == ["weekly_1_log_submitted"] * 3
        assert gate.get_record("intern-1", 1).status == BundleStatus.SUBMITTED
        assert gate.get_reviews("intern-1", 1) == []

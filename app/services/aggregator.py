"""
Weekly aggregation of logbook entries.

Works on rows already fetched for one owner; nothing here touches the
database. A week's aggregate state is read from its members' categories
with the precedence approved > rejected > submitted > draft, so a bundle
left half re-tagged by a failed bulk update still reads deterministically
and reports ``is_consistent = False``.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, List, Optional

from app.models.logbook import BundleStatus, LogbookEntry
from app.utils import category_codec
from app.utils.category_codec import Tag

_STATE_TO_STATUS = {
    category_codec.COMPILE: BundleStatus.DRAFT,
    category_codec.SUBMITTED: BundleStatus.SUBMITTED,
    category_codec.APPROVED: BundleStatus.APPROVED,
    category_codec.REJECTED: BundleStatus.REJECTED,
}

STATUS_PRECEDENCE = (
    BundleStatus.APPROVED,
    BundleStatus.REJECTED,
    BundleStatus.SUBMITTED,
    BundleStatus.DRAFT,
)


@dataclass
class WeeklyBundle:
    week: int
    entries: List[LogbookEntry] = field(default_factory=list)
    state: BundleStatus = BundleStatus.DRAFT
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    total_minutes: int = 0
    is_consistent: bool = True
    rejection_count: int = 0

    @property
    def entry_count(self) -> int:
        return len(self.entries)

    @property
    def entry_ids(self) -> List[int]:
        return [e.id for e in self.entries]

    @property
    def is_empty(self) -> bool:
        return not self.entries


@dataclass
class LogbookStats:
    draft_count: int = 0
    compiled_weeks: int = 0
    submitted_weeks: int = 0
    approved_weeks: int = 0
    rejected_weeks: int = 0
    total_hours: float = 0.0
    approval_rate: float = 0.0


def status_of(tag: Optional[Tag]) -> BundleStatus:
    if tag is None:
        return BundleStatus.DRAFT
    return _STATE_TO_STATUS[tag.state]


def aggregate_status(statuses: Iterable[BundleStatus]) -> BundleStatus:
    present = set(statuses)
    for status in STATUS_PRECEDENCE:
        if status in present:
            return status
    return BundleStatus.DRAFT


def _sort_key(entry: LogbookEntry):
    return (entry.entry_date or date.min, entry.start_time or datetime.min, entry.id or 0)


def list_weeks(entries: Iterable[LogbookEntry]) -> List[int]:
    """Distinct week numbers with at least one tagged entry, ascending."""
    weeks = set()
    for entry in entries:
        tag = category_codec.decode(entry.category)
        if tag is not None:
            weeks.add(tag.week)
    return sorted(weeks)


def build_bundle(entries: Iterable[LogbookEntry], week: int) -> WeeklyBundle:
    members = []
    tags = []
    for entry in entries:
        tag = category_codec.decode(entry.category)
        if tag is not None and tag.week == week:
            members.append(entry)
            tags.append(tag)

    bundle = WeeklyBundle(week=week)
    if not members:
        return bundle

    members.sort(key=_sort_key)
    statuses = [status_of(tag) for tag in tags]
    dates = [e.entry_date for e in members if e.entry_date is not None]

    bundle.entries = members
    bundle.state = aggregate_status(statuses)
    bundle.start_date = min(dates) if dates else None
    bundle.end_date = max(dates) if dates else None
    bundle.total_minutes = sum(e.duration_minutes or 0 for e in members)
    bundle.is_consistent = len(set(statuses)) == 1
    bundle.rejection_count = max(category_codec.rejection_number(tag) for tag in tags)
    return bundle


def build_bundles(entries: Iterable[LogbookEntry]) -> List[WeeklyBundle]:
    entries = list(entries)
    return [build_bundle(entries, week) for week in list_weeks(entries)]


def count_rejections(entries: Iterable[LogbookEntry], week: int) -> int:
    """Highest ``_rejected_<n>`` counter recorded for the week."""
    return build_bundle(entries, week).rejection_count


def draft_entries(entries: Iterable[LogbookEntry]) -> List[LogbookEntry]:
    """Entries not yet grouped into any week."""
    drafts = [e for e in entries if category_codec.decode(e.category) is None]
    drafts.sort(key=_sort_key)
    return drafts


def summarize(entries: Iterable[LogbookEntry]) -> LogbookStats:
    entries = list(entries)
    stats = LogbookStats()
    stats.draft_count = len(draft_entries(entries))

    for bundle in build_bundles(entries):
        if bundle.state == BundleStatus.APPROVED:
            stats.approved_weeks += 1
        elif bundle.state == BundleStatus.REJECTED:
            stats.rejected_weeks += 1
        elif bundle.state == BundleStatus.SUBMITTED:
            stats.submitted_weeks += 1
        else:
            stats.compiled_weeks += 1

    total_minutes = sum(e.duration_minutes or 0 for e in entries)
    stats.total_hours = round(total_minutes / 60, 1)

    reviewed_or_pending = stats.approved_weeks + stats.rejected_weeks + stats.submitted_weeks
    if reviewed_or_pending:
        stats.approval_rate = round(stats.approved_weeks / reviewed_or_pending * 100, 1)
    return stats

"""
State machine for weekly logbook bundles.

    DRAFT --submit--> SUBMITTED --approve--> APPROVED
                          |
                          +------reject--> REJECTED --submit--> SUBMITTED

Approved and rejected are soft terminal states: they only change what is
displayed until the intern acts again. Re-applying a transition whose target
is the bundle's current aggregate state is allowed while the bundle is mixed,
which is how a half-applied bulk re-tag gets completed.
"""
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Optional

from app.exceptions import Forbidden, InvalidTransition, NotFound
from app.models.logbook import BundleStatus
from app.services.aggregator import WeeklyBundle
from app.utils import category_codec
from app.utils.roles import Role


@dataclass(frozen=True)
class Actor:
    """Caller identity, passed explicitly into every lifecycle operation."""
    user_id: str
    role: Role


class Transition(str, Enum):
    SUBMIT = "submit"
    APPROVE = "approve"
    REJECT = "reject"


class TransitionActor(str, Enum):
    OWNER = "owner"
    MENTOR = "mentor"


@dataclass(frozen=True)
class TransitionRule:
    actor: TransitionActor
    sources: FrozenSet[BundleStatus]
    target: BundleStatus
    category_state: str


TRANSITIONS = {
    Transition.SUBMIT: TransitionRule(
        actor=TransitionActor.OWNER,
        sources=frozenset({BundleStatus.DRAFT, BundleStatus.REJECTED}),
        target=BundleStatus.SUBMITTED,
        category_state=category_codec.SUBMITTED,
    ),
    Transition.APPROVE: TransitionRule(
        actor=TransitionActor.MENTOR,
        sources=frozenset({BundleStatus.SUBMITTED}),
        target=BundleStatus.APPROVED,
        category_state=category_codec.APPROVED,
    ),
    Transition.REJECT: TransitionRule(
        actor=TransitionActor.MENTOR,
        sources=frozenset({BundleStatus.SUBMITTED}),
        target=BundleStatus.REJECTED,
        category_state=category_codec.REJECTED,
    ),
}


def authorize(transition: Transition, actor: Actor, owner_id: str, mentor_id: Optional[str]) -> TransitionRule:
    """Check who may trigger the transition. Raises Forbidden."""
    rule = TRANSITIONS[transition]
    if rule.actor == TransitionActor.OWNER:
        if actor.user_id != owner_id:
            raise Forbidden(f"Only the owner can {transition.value} this logbook")
    elif mentor_id is None or actor.user_id != mentor_id:
        raise Forbidden(f"Only the project mentor can {transition.value} this logbook")
    return rule


def check_state(transition: Transition, bundle: WeeklyBundle) -> TransitionRule:
    """Check the bundle can move along the transition. Raises NotFound / InvalidTransition."""
    rule = TRANSITIONS[transition]
    if bundle.is_empty:
        raise NotFound(f"Week {bundle.week} has no entries")
    if bundle.state in rule.sources:
        return rule
    if bundle.state == rule.target and not bundle.is_consistent:
        return rule
    raise InvalidTransition(
        f"Cannot {transition.value} week {bundle.week}: logbook is {bundle.state.value}"
    )


def target_category(transition: Transition, week: int, rejection_count: int = 0) -> str:
    """Category written to every member entry by the transition."""
    rule = TRANSITIONS[transition]
    if transition == Transition.REJECT:
        return category_codec.encode(week, rule.category_state, str(rejection_count))
    return category_codec.encode(week, rule.category_state)


def is_locked(bundle: WeeklyBundle) -> bool:
    """Entries of submitted or approved weeks cannot be edited."""
    return not bundle.is_empty and bundle.state in (BundleStatus.SUBMITTED, BundleStatus.APPROVED)

"""
Transition Table for the editorial workflow.

Every legal move of a Story or a Bulletin is an explicit TransitionRule row.
Nothing else is legal: a (status, role) pair that matches no row is rejected
by the engine, never coerced.

Story happy path:
    DRAFT -> IN_REVIEW (interns only) -> PENDING_APPROVAL -> APPROVED
          -> [PENDING_TRANSLATION] -> READY_TO_PUBLISH -> PUBLISHED -> ARCHIVED

Reviewers and approvers may send a story back to NEEDS_REVISION; the author
resubmits it to IN_REVIEW.

Sub-editors and above may swap the reviewer of an IN_REVIEW story or the
approver of a PENDING_APPROVAL story (REASSIGNMENT_RULES).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Optional, Tuple

from django.db import models

from apps.workflow.roles import (
    ALL_ROLES,
    APPROVER_ROLES,
    EDITOR_ROLES,
    StaffRole,
    TRANSLATOR_ROLES,
    coerce_role,
    publish_roles_from_settings,
    roles,
)


class EntityType(models.TextChoices):
    STORY = 'story', 'Story'
    BULLETIN = 'bulletin', 'Bulletin'


class StoryStatus(models.TextChoices):
    DRAFT = 'DRAFT', 'Draft'
    IN_REVIEW = 'IN_REVIEW', 'In Review'
    NEEDS_REVISION = 'NEEDS_REVISION', 'Needs Revision'
    PENDING_APPROVAL = 'PENDING_APPROVAL', 'Pending Approval'
    PENDING_TRANSLATION = 'PENDING_TRANSLATION', 'Pending Translation'
    APPROVED = 'APPROVED', 'Approved'
    READY_TO_PUBLISH = 'READY_TO_PUBLISH', 'Ready to Publish'
    PUBLISHED = 'PUBLISHED', 'Published'
    ARCHIVED = 'ARCHIVED', 'Archived'


class StoryStage(models.TextChoices):
    DRAFT = 'DRAFT', 'Draft'
    NEEDS_JOURNALIST_REVIEW = 'NEEDS_JOURNALIST_REVIEW', 'Needs Journalist Review'
    NEEDS_SUB_EDITOR_APPROVAL = 'NEEDS_SUB_EDITOR_APPROVAL', 'Needs Sub-Editor Approval'
    APPROVED = 'APPROVED', 'Approved'
    TRANSLATED = 'TRANSLATED', 'Translated'
    PUBLISHED = 'PUBLISHED', 'Published'
    ARCHIVED = 'ARCHIVED', 'Archived'


class BulletinStatus(models.TextChoices):
    DRAFT = 'DRAFT', 'Draft'
    IN_REVIEW = 'IN_REVIEW', 'In Review'
    NEEDS_REVISION = 'NEEDS_REVISION', 'Needs Revision'
    APPROVED = 'APPROVED', 'Approved'
    PUBLISHED = 'PUBLISHED', 'Published'
    ARCHIVED = 'ARCHIVED', 'Archived'


class Binding(str, Enum):
    """Identity binding on a rule: who, personally, must be acting."""
    AUTHOR = 'author'
    ASSIGNED_REVIEWER = 'assigned_reviewer'


class AssignmentField(str, Enum):
    REVIEWER = 'reviewer'
    APPROVER = 'approver'
    TRANSLATOR = 'translator'


@dataclass(frozen=True)
class Assignment:
    """A human handoff the transition requires."""
    field: AssignmentField
    assignee_roles: FrozenSet[StaffRole]


@dataclass(frozen=True)
class TransitionRule:
    """
    One legal move.

    ``actors`` may act by role alone. ``bound_actors`` may act only when they
    satisfy ``binding`` (they are the author, or the assigned reviewer).
    ``publish_gated`` rules take their actor set from the deployment's
    publishing roles instead of ``actors``.
    """
    entity_type: str
    from_status: str
    to_status: str
    action: str
    actors: FrozenSet[StaffRole] = frozenset()
    binding: Optional[Binding] = None
    bound_actors: FrozenSet[StaffRole] = frozenset()
    assignment: Optional[Assignment] = None
    comment_required: bool = False
    originals_only: bool = False
    publish_gated: bool = False

    def actor_roles(self, publish_roles: FrozenSet[StaffRole]) -> FrozenSet[StaffRole]:
        return publish_roles if self.publish_gated else self.actors

    def permits_role(self, role: StaffRole, publish_roles: FrozenSet[StaffRole]) -> bool:
        """True if ``role`` could act here given the right identity."""
        return role in self.actor_roles(publish_roles) or role in self.bound_actors

    def permits(
        self,
        role: StaffRole,
        publish_roles: FrozenSet[StaffRole],
        bound: bool,
        is_translation: bool = False,
    ) -> bool:
        """True if an actor with ``role`` (and ``bound`` identity) may act."""
        if self.originals_only and is_translation:
            return False
        if role in self.actor_roles(publish_roles):
            return True
        return bound and role in self.bound_actors


S = StoryStatus
B = BulletinStatus
JOURNALIST_ONLY = roles('JOURNALIST')

STORY_RULES: Tuple[TransitionRule, ...] = (
    TransitionRule(
        'story', S.DRAFT, S.IN_REVIEW, 'submit_for_review',
        binding=Binding.AUTHOR, bound_actors=roles('INTERN'),
        assignment=Assignment(AssignmentField.REVIEWER, JOURNALIST_ONLY),
    ),
    TransitionRule(
        'story', S.DRAFT, S.PENDING_APPROVAL, 'submit_for_approval',
        actors=APPROVER_ROLES,
        binding=Binding.AUTHOR, bound_actors=JOURNALIST_ONLY,
        assignment=Assignment(AssignmentField.APPROVER, APPROVER_ROLES),
    ),
    TransitionRule(
        'story', S.IN_REVIEW, S.NEEDS_REVISION, 'request_revision',
        actors=APPROVER_ROLES,
        binding=Binding.ASSIGNED_REVIEWER, bound_actors=JOURNALIST_ONLY,
        comment_required=True,
    ),
    TransitionRule(
        'story', S.IN_REVIEW, S.PENDING_APPROVAL, 'send_for_approval',
        actors=APPROVER_ROLES,
        binding=Binding.ASSIGNED_REVIEWER, bound_actors=JOURNALIST_ONLY,
        assignment=Assignment(AssignmentField.APPROVER, APPROVER_ROLES),
    ),
    TransitionRule(
        'story', S.NEEDS_REVISION, S.IN_REVIEW, 'resubmit',
        binding=Binding.AUTHOR, bound_actors=ALL_ROLES,
        assignment=Assignment(AssignmentField.REVIEWER, JOURNALIST_ONLY),
    ),
    TransitionRule(
        'story', S.PENDING_APPROVAL, S.APPROVED, 'approve',
        actors=APPROVER_ROLES,
    ),
    TransitionRule(
        'story', S.PENDING_APPROVAL, S.NEEDS_REVISION, 'request_revision',
        actors=APPROVER_ROLES,
        comment_required=True,
    ),
    TransitionRule(
        'story', S.APPROVED, S.PENDING_TRANSLATION, 'send_for_translation',
        actors=APPROVER_ROLES,
        assignment=Assignment(AssignmentField.TRANSLATOR, TRANSLATOR_ROLES),
        originals_only=True,
    ),
    TransitionRule(
        'story', S.APPROVED, S.READY_TO_PUBLISH, 'mark_ready',
        publish_gated=True, originals_only=True,
    ),
    TransitionRule(
        'story', S.PENDING_TRANSLATION, S.READY_TO_PUBLISH, 'mark_ready',
        publish_gated=True, originals_only=True,
    ),
    TransitionRule(
        'story', S.READY_TO_PUBLISH, S.PUBLISHED, 'publish',
        publish_gated=True, originals_only=True,
    ),
    TransitionRule(
        'story', S.PUBLISHED, S.ARCHIVED, 'archive',
        actors=EDITOR_ROLES,
    ),
)

BULLETIN_RULES: Tuple[TransitionRule, ...] = (
    TransitionRule(
        'bulletin', B.DRAFT, B.IN_REVIEW, 'submit_for_review',
        actors=EDITOR_ROLES,
        binding=Binding.AUTHOR, bound_actors=ALL_ROLES,
        assignment=Assignment(AssignmentField.REVIEWER, APPROVER_ROLES),
    ),
    TransitionRule(
        'bulletin', B.NEEDS_REVISION, B.IN_REVIEW, 'resubmit',
        actors=EDITOR_ROLES,
        binding=Binding.AUTHOR, bound_actors=ALL_ROLES,
        assignment=Assignment(AssignmentField.REVIEWER, APPROVER_ROLES),
    ),
    TransitionRule(
        'bulletin', B.IN_REVIEW, B.APPROVED, 'approve',
        actors=APPROVER_ROLES,
    ),
    TransitionRule(
        'bulletin', B.IN_REVIEW, B.NEEDS_REVISION, 'request_revision',
        actors=APPROVER_ROLES,
        comment_required=True,
    ),
    TransitionRule(
        'bulletin', B.APPROVED, B.PUBLISHED, 'publish',
        publish_gated=True,
    ),
    TransitionRule(
        'bulletin', B.PUBLISHED, B.ARCHIVED, 'archive',
        actors=EDITOR_ROLES,
    ),
)

TRANSITION_RULES: Dict[str, Tuple[TransitionRule, ...]] = {
    EntityType.STORY: STORY_RULES,
    EntityType.BULLETIN: BULLETIN_RULES,
}


@dataclass(frozen=True)
class ReassignmentRule:
    """
    Swapping the assignee of an in-flight item without moving it.

    The item keeps its status; only the ``assignment`` column changes.
    """
    entity_type: str
    status: str
    assignment: Assignment
    actors: FrozenSet[StaffRole]
    action: str = 'reassign'


REASSIGNMENT_RULES: Tuple[ReassignmentRule, ...] = (
    ReassignmentRule(
        'story', S.IN_REVIEW,
        Assignment(AssignmentField.REVIEWER, JOURNALIST_ONLY),
        actors=APPROVER_ROLES,
    ),
    ReassignmentRule(
        'story', S.PENDING_APPROVAL,
        Assignment(AssignmentField.APPROVER, APPROVER_ROLES),
        actors=APPROVER_ROLES,
    ),
)


def find_reassignment(
    entity_type: str,
    current_status: str,
    field: str,
    actor_role,
) -> Optional[ReassignmentRule]:
    """The rule letting ``actor_role`` swap ``field`` in ``current_status``, or None."""
    role = coerce_role(actor_role)
    for rule in REASSIGNMENT_RULES:
        if (
            rule.entity_type == entity_type
            and rule.status == current_status
            and rule.assignment.field == field
            and role in rule.actors
        ):
            return rule
    return None


def _resolve_publish_roles(publish_roles: Optional[Iterable]) -> FrozenSet[StaffRole]:
    if publish_roles is None:
        return publish_roles_from_settings()
    return frozenset(coerce_role(r) for r in publish_roles)


def rules_for(entity_type: str, from_status: Optional[str] = None) -> Tuple[TransitionRule, ...]:
    """All rules for an entity type, optionally narrowed to one starting status."""
    try:
        table = TRANSITION_RULES[entity_type]
    except KeyError:
        raise ValueError(f"Unknown entity type: {entity_type}")
    if from_status is None:
        return table
    return tuple(rule for rule in table if rule.from_status == from_status)


def legal_transitions(
    entity_type: str,
    current_status: str,
    actor_role,
    *,
    publish_roles: Optional[Iterable] = None,
) -> FrozenSet[str]:
    """
    Target statuses reachable from ``current_status`` by an actor holding
    ``actor_role``, assuming the actor satisfies any identity binding.

    Pure: identical inputs give identical output.
    """
    role = coerce_role(actor_role)
    resolved = _resolve_publish_roles(publish_roles)
    return frozenset(
        str(rule.to_status)
        for rule in rules_for(entity_type, current_status)
        if rule.permits_role(role, resolved)
    )


def find_rule(
    entity_type: str,
    current_status: str,
    target_status: str,
    actor_role,
    *,
    is_author: bool = False,
    is_assigned_reviewer: bool = False,
    is_translation: bool = False,
    publish_roles: Optional[Iterable] = None,
) -> Optional[TransitionRule]:
    """The rule that authorizes this exact move for this actor, or None."""
    role = coerce_role(actor_role)
    resolved = _resolve_publish_roles(publish_roles)
    for rule in rules_for(entity_type, current_status):
        if rule.to_status != target_status:
            continue
        if rule.binding == Binding.AUTHOR:
            bound = is_author
        elif rule.binding == Binding.ASSIGNED_REVIEWER:
            bound = is_assigned_reviewer
        else:
            bound = False
        if rule.permits(role, resolved, bound, is_translation):
            return rule
    return None


_STORY_STAGES = {
    S.DRAFT: StoryStage.DRAFT,
    S.NEEDS_REVISION: StoryStage.DRAFT,
    S.IN_REVIEW: StoryStage.NEEDS_JOURNALIST_REVIEW,
    S.PENDING_APPROVAL: StoryStage.NEEDS_SUB_EDITOR_APPROVAL,
    S.APPROVED: StoryStage.APPROVED,
    S.PENDING_TRANSLATION: StoryStage.APPROVED,
    S.READY_TO_PUBLISH: StoryStage.APPROVED,
    S.PUBLISHED: StoryStage.PUBLISHED,
    S.ARCHIVED: StoryStage.ARCHIVED,
}


def stage_for(status: str, is_translation: bool = False) -> str:
    """Stage derived from status. An approved translation reads as TRANSLATED."""
    if is_translation and status in (S.APPROVED, S.READY_TO_PUBLISH):
        return StoryStage.TRANSLATED
    return _STORY_STAGES[StoryStatus(status)]

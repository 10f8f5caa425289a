"""
Role Authority for the newsroom.

Maps a StaffRole to its capability set. Everything that needs to know
"may this role do X" asks this module: the transition table, the DRF
permission classes and the capabilities endpoint the UI renders from.

Usage:
    from apps.workflow.roles import StaffRole, capabilities_for

    caps = capabilities_for(StaffRole.SUB_EDITOR)
    if caps.can_approve:
        ...
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import FrozenSet, Iterable, Optional

from django.db import models


class StaffRole(models.TextChoices):
    """Newsroom roles, declared lowest to highest."""
    INTERN = 'INTERN', 'Intern'
    JOURNALIST = 'JOURNALIST', 'Journalist'
    SUB_EDITOR = 'SUB_EDITOR', 'Sub-Editor'
    EDITOR = 'EDITOR', 'Editor'
    ADMIN = 'ADMIN', 'Administrator'
    SUPERADMIN = 'SUPERADMIN', 'Super Administrator'

    @property
    def rank(self) -> int:
        return ROLE_ORDER.index(self)


ROLE_ORDER = (
    StaffRole.INTERN,
    StaffRole.JOURNALIST,
    StaffRole.SUB_EDITOR,
    StaffRole.EDITOR,
    StaffRole.ADMIN,
    StaffRole.SUPERADMIN,
)


def roles(*names: str) -> FrozenSet[StaffRole]:
    """Build a frozen role set from role names."""
    return frozenset(StaffRole(name) for name in names)


ALL_ROLES = frozenset(ROLE_ORDER)
APPROVER_ROLES = roles('SUB_EDITOR', 'EDITOR', 'ADMIN', 'SUPERADMIN')
EDITOR_ROLES = roles('EDITOR', 'ADMIN', 'SUPERADMIN')
ADMIN_ROLES = roles('ADMIN', 'SUPERADMIN')
TRANSLATOR_ROLES = roles('JOURNALIST', 'SUB_EDITOR', 'EDITOR')
DEFAULT_PUBLISH_ROLES = APPROVER_ROLES

# Roles that only act where they are personally bound (author or assigned
# reviewer). Everyone from SUB_EDITOR upwards acts by role.
IDENTITY_BOUND_ROLES = roles('INTERN', 'JOURNALIST')

# Statuses in which story content is frozen for everyone
_STORY_LOCKED_STATUSES = frozenset({
    'IN_REVIEW',
    'PENDING_APPROVAL',
    'APPROVED',
    'PENDING_TRANSLATION',
    'READY_TO_PUBLISH',
    'PUBLISHED',
    'ARCHIVED',
})

_EDIT_LOCK_REASONS = {
    'IN_REVIEW': 'Story is currently under review and cannot be edited',
    'PENDING_APPROVAL': 'Story is pending approval and cannot be edited',
    'NEEDS_REVISION': 'Story needs revision and can only be edited by the author',
    'APPROVED': 'Story has been approved and cannot be edited',
    'PENDING_TRANSLATION': 'Story is pending translation and cannot be edited',
    'READY_TO_PUBLISH': 'Story is ready to publish and cannot be edited',
    'PUBLISHED': 'Story has been published and cannot be edited',
    'ARCHIVED': 'Story has been archived and cannot be edited',
}


def coerce_role(value) -> Optional[StaffRole]:
    """Return a StaffRole for a role name or member, None for blanks."""
    if value is None or value == '':
        return None
    if isinstance(value, StaffRole):
        return value
    return StaffRole(str(value).strip().upper())


def publish_roles_from_settings() -> FrozenSet[StaffRole]:
    """Publishing roles are deployment configuration (WORKFLOW_PUBLISH_ROLES)."""
    from django.conf import settings

    configured = getattr(settings, 'WORKFLOW_PUBLISH_ROLES', None)
    if not configured:
        return DEFAULT_PUBLISH_ROLES
    return frozenset(coerce_role(name) for name in configured)


@dataclass(frozen=True)
class Capabilities:
    """Capability predicates for a single role."""

    role: StaffRole
    publish_roles: FrozenSet[StaffRole] = DEFAULT_PUBLISH_ROLES

    # Stories
    @property
    def can_create_story(self) -> bool:
        return True

    @property
    def can_delete_story(self) -> bool:
        return self.role in EDITOR_ROLES

    def _table_permits(self, *actions: str, entity_type: Optional[str] = None, translation: bool = False) -> bool:
        """True if a transition rule carrying one of ``actions`` admits this role."""
        # Deferred: the transition table is built from the role sets above
        from apps.workflow.transitions import TRANSITION_RULES

        return any(
            rule.action in actions
            and not (translation and rule.originals_only)
            and rule.permits_role(self.role, self.publish_roles)
            for kind, table in TRANSITION_RULES.items()
            if entity_type is None or kind == entity_type
            for rule in table
        )

    @property
    def can_review(self) -> bool:
        return self._table_permits('send_for_approval', 'request_revision')

    @property
    def can_approve(self) -> bool:
        return self._table_permits('approve')

    @property
    def can_publish(self) -> bool:
        return self._table_permits('publish')

    @property
    def can_archive(self) -> bool:
        return self._table_permits('archive')

    @property
    def can_send_for_translation(self) -> bool:
        return self._table_permits('send_for_translation')

    @property
    def can_approve_translation(self) -> bool:
        return self._table_permits('approve', entity_type='story', translation=True)

    @property
    def can_reassign(self) -> bool:
        from apps.workflow.transitions import REASSIGNMENT_RULES

        return any(self.role in rule.actors for rule in REASSIGNMENT_RULES)

    @property
    def is_identity_bound(self) -> bool:
        return self.role in IDENTITY_BOUND_ROLES

    def can_edit_story(self, status: str, is_author: bool) -> bool:
        if status in _STORY_LOCKED_STATUSES:
            return False
        if status == 'NEEDS_REVISION':
            return is_author
        # DRAFT
        if self.role in EDITOR_ROLES:
            return True
        return is_author

    @staticmethod
    def edit_lock_reason(status: str) -> Optional[str]:
        return _EDIT_LOCK_REASONS.get(status)

    def can_edit_bulletin(self, status: str, is_author: bool, is_reviewer: bool) -> bool:
        if self.role in EDITOR_ROLES:
            return status != 'ARCHIVED'
        if status in ('DRAFT', 'NEEDS_REVISION'):
            return is_author
        if status == 'IN_REVIEW':
            return is_reviewer
        return False

    # Taxonomy
    @property
    def can_create_tag(self) -> bool:
        return self.role in APPROVER_ROLES

    @property
    def can_edit_tag(self) -> bool:
        return self.role in APPROVER_ROLES

    @property
    def can_delete_tag(self) -> bool:
        return self.role in EDITOR_ROLES

    @property
    def can_manage_categories(self) -> bool:
        return self.role in APPROVER_ROLES

    # Announcements
    @property
    def can_create_announcement(self) -> bool:
        return self.role in EDITOR_ROLES

    def can_set_announcement_priority(self, priority: str) -> bool:
        if not self.can_create_announcement:
            return False
        if str(priority).upper() == 'HIGH':
            return self.role in ADMIN_ROLES
        return True

    def as_dict(self) -> dict:
        """Flat view of the role-only predicates, for API responses."""
        return {
            'role': self.role.value,
            'can_create_story': self.can_create_story,
            'can_delete_story': self.can_delete_story,
            'can_review': self.can_review,
            'can_approve': self.can_approve,
            'can_publish': self.can_publish,
            'can_archive': self.can_archive,
            'can_send_for_translation': self.can_send_for_translation,
            'can_approve_translation': self.can_approve_translation,
            'can_reassign': self.can_reassign,
            'can_create_tag': self.can_create_tag,
            'can_edit_tag': self.can_edit_tag,
            'can_delete_tag': self.can_delete_tag,
            'can_manage_categories': self.can_manage_categories,
            'can_create_announcement': self.can_create_announcement,
            'can_set_high_priority': self.can_set_announcement_priority('HIGH'),
        }


@lru_cache(maxsize=None)
def _capabilities(role: StaffRole, publish_roles: FrozenSet[StaffRole]) -> Capabilities:
    return Capabilities(role=role, publish_roles=publish_roles)


def capabilities_for(role, publish_roles: Optional[Iterable] = None) -> Capabilities:
    """
    Capability set for a role.

    Args:
        role: StaffRole or role name
        publish_roles: override for the deployment's publishing roles;
            defaults to settings.WORKFLOW_PUBLISH_ROLES
    """
    staff_role = coerce_role(role)
    if staff_role is None:
        raise ValueError("A staff role is required")
    if publish_roles is None:
        resolved = publish_roles_from_settings()
    else:
        resolved = frozenset(coerce_role(r) for r in publish_roles)
    return _capabilities(staff_role, resolved)

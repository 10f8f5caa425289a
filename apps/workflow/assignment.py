"""
Assignment Resolver.

Validates the human handoff of a transition (reviewer, approver,
translator) against the user directory. Read-only, no locking.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError

from apps.workflow.errors import InactiveUser, InvalidAssignee, MissingAssignment, RoleMismatch
from apps.workflow.roles import StaffRole, coerce_role

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Actor:
    """Directory view of a staff member."""
    id: int
    role: StaffRole
    is_active: bool
    username: str = ''
    email: str = ''


class DjangoUserDirectory:
    """Directory collaborator backed by auth.User + StaffProfile."""

    def get(self, user_id) -> Optional[Actor]:
        User = get_user_model()
        try:
            user = User.objects.select_related('staff_profile').get(pk=user_id)
        except (User.DoesNotExist, ValueError, TypeError, DjangoValidationError):
            return None
        return self.to_actor(user)

    @staticmethod
    def to_actor(user) -> Actor:
        profile = getattr(user, 'staff_profile', None)
        if profile is not None:
            role = StaffRole(profile.role)
        elif user.is_superuser:
            role = StaffRole.SUPERADMIN
        else:
            role = StaffRole.INTERN
        return Actor(
            id=user.pk,
            role=role,
            is_active=user.is_active,
            username=user.get_username(),
            email=user.email or '',
        )


class AssignmentResolver:
    """
    Resolves a candidate assignee.

    Raises MissingAssignment (no candidate), InvalidAssignee (unknown user),
    RoleMismatch or InactiveUser.
    """

    def __init__(self, directory=None):
        self.directory = directory or DjangoUserDirectory()

    def resolve_assignee(
        self,
        candidate_id,
        required_roles: Iterable,
        active_only: bool = True,
        field: str = 'assignee_id',
    ) -> Actor:
        if candidate_id in (None, ''):
            raise MissingAssignment(field=field)

        candidate = self.directory.get(candidate_id)
        if candidate is None:
            raise InvalidAssignee(f"User {candidate_id} does not exist", field=field)

        allowed = frozenset(coerce_role(r) for r in required_roles)
        if candidate.role not in allowed:
            logger.info(
                f"Assignee {candidate.id} rejected: role {candidate.role} "
                f"not in {sorted(r.value for r in allowed)}"
            )
            raise RoleMismatch(field=field, role=candidate.role.value)

        if active_only and not candidate.is_active:
            raise InactiveUser(field=field)

        return candidate


_default_resolver = AssignmentResolver()


def resolve_assignee(candidate_id, required_roles, active_only=True) -> Actor:
    """Module-level shortcut using the Django directory."""
    return _default_resolver.resolve_assignee(candidate_id, required_roles, active_only)

"""
Role-Based Permissions for Newsdesk.

Maps StaffProfile.role onto DRF permission classes. Every class asks
apps.workflow.roles for the answer; none keeps its own list of roles.

Usage:
    from apps.core.permissions import CapabilityPermission

    class TagViewSet(viewsets.ModelViewSet):
        permission_classes = [IsAuthenticated, CapabilityPermission]
        required_capabilities = {
            'create': 'can_create_tag',
            'destroy': 'can_delete_tag',
        }
"""

from rest_framework.permissions import BasePermission, SAFE_METHODS
import logging

from apps.workflow.roles import StaffRole, capabilities_for

logger = logging.getLogger(__name__)


def get_user_role(user):
    """
    The user's StaffRole, or None for anonymous users.

    Superusers without a profile act as SUPERADMIN; anyone else without a
    profile acts as INTERN.
    """
    if not user or not user.is_authenticated:
        return None

    profile = getattr(user, 'staff_profile', None)
    if profile is not None:
        return StaffRole(profile.role)
    if user.is_superuser:
        return StaffRole.SUPERADMIN
    return StaffRole.INTERN


def get_capabilities(user):
    role = get_user_role(user)
    if role is None:
        return None
    return capabilities_for(role)


class CapabilityPermission(BasePermission):
    """
    Gate viewset actions on Capabilities predicates.

    The view declares ``required_capabilities``: a mapping of action name
    to a Capabilities attribute. Actions not listed are allowed for any
    authenticated staff member.
    """
    message = "You do not have permission to perform this action."

    def has_permission(self, request, view):
        capabilities = get_capabilities(request.user)
        if capabilities is None:
            return False

        required = getattr(view, 'required_capabilities', {}).get(getattr(view, 'action', None))
        if required is None:
            return True
        allowed = bool(getattr(capabilities, required))
        if not allowed:
            logger.info(
                f"Capability {required} denied to role {capabilities.role} "
                f"on {view.__class__.__name__}.{view.action}"
            )
        return allowed


class ReadOnlyOrCapability(CapabilityPermission):
    """Safe methods for everyone on staff; writes need the mapped capability."""

    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return get_user_role(request.user) is not None
        return super().has_permission(request, view)

"""
Workflow outcomes.

The engine returns these as values inside a TransitionResult; they are
exceptions only so that callers can ``raise_for_error()`` at the HTTP
boundary, where each maps onto a NewsdeskException and an ErrorCode.
"""

from typing import Optional

from apps.core import exceptions as api_errors


class WorkflowError(Exception):
    """Base class for typed workflow failures."""

    code = 'WORKFLOW_ERROR'
    api_exception = api_errors.NewsdeskException
    default_message = 'Workflow error'

    def __init__(self, message: Optional[str] = None, field: Optional[str] = None, **details):
        self.message = message or self.default_message
        self.field = field
        self.details = details
        super().__init__(self.message)

    def to_api_exception(self) -> api_errors.NewsdeskException:
        return self.api_exception(
            message=self.message,
            field=self.field,
            details=self.details or None,
        )

    def to_dict(self) -> dict:
        result = {'code': self.code, 'message': self.message}
        if self.field:
            result['field'] = self.field
        return result


class IllegalTransition(WorkflowError):
    code = 'ILLEGAL_TRANSITION'
    api_exception = api_errors.IllegalTransitionError
    default_message = 'This action is not available in the current stage'


class MissingAssignment(WorkflowError):
    code = 'MISSING_ASSIGNMENT'
    default_message = 'Please select an assignee'

    def to_api_exception(self):
        return api_errors.AssignmentError(
            message=self.message,
            code=api_errors.ErrorCode.MISSING_ASSIGNMENT,
            field=self.field,
        )


class InvalidAssignee(WorkflowError):
    code = 'INVALID_ASSIGNEE'
    api_exception = api_errors.AssignmentError
    default_message = 'Selected user cannot be assigned this role'


class RoleMismatch(WorkflowError):
    code = 'ROLE_MISMATCH'
    default_message = "Selected user's role is not permitted for this assignment"

    def to_api_exception(self):
        return api_errors.AssignmentError(
            message=self.message,
            code=api_errors.ErrorCode.ROLE_MISMATCH,
            field=self.field,
        )


class InactiveUser(WorkflowError):
    code = 'INACTIVE_USER'
    default_message = 'Selected user is deactivated'

    def to_api_exception(self):
        return api_errors.AssignmentError(
            message=self.message,
            code=api_errors.ErrorCode.INACTIVE_USER,
            field=self.field,
        )


class MissingComment(WorkflowError):
    code = 'MISSING_COMMENT'
    api_exception = api_errors.MissingFieldError
    default_message = 'A comment is required for this action'

    def __init__(self, message: Optional[str] = None, field: Optional[str] = 'comment', **details):
        super().__init__(message, field=field, **details)


class PreconditionFailed(WorkflowError):
    code = 'PRECONDITION_FAILED'
    api_exception = api_errors.PreconditionFailedError
    default_message = 'This item is not ready for the requested action'


class ConcurrentModification(WorkflowError):
    code = 'CONCURRENT_MODIFICATION'
    api_exception = api_errors.ConflictError
    default_message = 'This item was updated elsewhere, please refresh and retry'


class EntityNotFound(WorkflowError):
    code = 'NOT_FOUND'
    api_exception = api_errors.NotFoundError
    default_message = 'Item not found'


ASSIGNMENT_ERRORS = (MissingAssignment, InvalidAssignee, RoleMismatch, InactiveUser)


class WorkflowIntegrityError(AssertionError):
    """
    An entity was about to be written in a state that breaks a workflow
    invariant (e.g. IN_REVIEW without a reviewer). Programming error; never
    returned as a result.
    """

"""
Per-entity workflow definitions.

A definition tells the engine how one entity type maps onto the generic
workflow: which model backs it, which columns hold assignments, what must
be true before a move and what happens after it. Definitions are loaded
from settings.WORKFLOW_ENTITIES:

    WORKFLOW_ENTITIES = {
        'story': 'apps.stories.workflow.StoryWorkflow',
        'bulletin': 'apps.bulletins.workflow.BulletinWorkflow',
    }

After-transition hooks follow the same shape as before/after hooks on a
state machine: they are registered per (from, to) pair or per target
status, receive a TransitionContext, and run inside the transaction.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional, Tuple

from django.apps import apps as django_apps
from django.conf import settings
from django.utils.module_loading import import_string

from apps.workflow.errors import WorkflowIntegrityError
from apps.workflow.transitions import AssignmentField, TransitionRule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationIntent:
    """Something the notification collaborator should deliver."""
    type: str
    recipient_id: Any
    entity_type: str
    entity_id: Any

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.type,
            'recipient_id': self.recipient_id,
            'entity_type': self.entity_type,
            'entity_id': str(self.entity_id),
        }


@dataclass
class TransitionContext:
    """Context passed to after-transition hooks."""
    definition: 'WorkflowDefinition'
    entity: Any
    actor: Any
    rule: TransitionRule
    request: Any
    from_status: str
    to_status: str
    now: datetime
    assignee: Any = None
    translators: List[Tuple[str, Any]] = field(default_factory=list)
    cascade: Optional[Callable[..., Any]] = None
    history: List[Any] = field(default_factory=list)
    effects: List[NotificationIntent] = field(default_factory=list)
    invalidates: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def notify(self, intent_type: str, recipient_id, entity=None):
        if recipient_id is None:
            return
        target = entity if entity is not None else self.entity
        self.effects.append(NotificationIntent(
            type=intent_type,
            recipient_id=recipient_id,
            entity_type=self.definition.entity_type,
            entity_id=target.pk,
        ))

    def invalidate(self, *keys: str):
        for key in keys:
            if key not in self.invalidates:
                self.invalidates.append(key)


HookFunction = Callable[[TransitionContext], None]


class WorkflowDefinition:
    """
    Base definition. Subclasses set ``entity_type``, ``model`` and the
    column maps, and register hooks with ``after``/``on_enter``.
    """

    entity_type: str = ''
    model: str = ''
    author_field = 'author'
    # AssignmentField -> FK column on the model
    assignment_columns: Dict[AssignmentField, str] = {}
    # status -> FK column that must be set while in that status
    required_assignments: Dict[str, str] = {}
    revision_status = 'NEEDS_REVISION'
    has_stage = False

    _after_hooks: Dict[Tuple[str, str], List[HookFunction]]
    _on_enter_hooks: Dict[str, List[HookFunction]]

    def __init__(self):
        self._after_hooks = {}
        self._on_enter_hooks = {}
        self.register_hooks()

    def register_hooks(self):
        """Override to register hooks."""

    # Hook registration
    def after(self, from_status: str, to_status: str, hook: HookFunction):
        self._after_hooks.setdefault((str(from_status), str(to_status)), []).append(hook)

    def on_enter(self, status: str, hook: HookFunction):
        self._on_enter_hooks.setdefault(str(status), []).append(hook)

    def run_hooks(self, context: TransitionContext):
        """Hooks are part of the transition: a failing hook aborts it."""
        hooks = (
            self._on_enter_hooks.get(context.to_status, [])
            + self._after_hooks.get((context.from_status, context.to_status), [])
        )
        for hook in hooks:
            try:
                hook(context)
            except Exception as e:
                logger.error(
                    f"Hook {getattr(hook, '__name__', hook)} failed during "
                    f"{context.from_status}→{context.to_status}: {e}"
                )
                raise

    # Model access
    def get_model(self):
        return django_apps.get_model(self.model)

    def get_queryset(self):
        return self.get_model().objects.all()

    # Identity
    def author_id(self, entity):
        return getattr(entity, f'{self.author_field}_id')

    def is_author(self, entity, actor) -> bool:
        return self.author_id(entity) == actor.id

    def is_assigned_reviewer(self, entity, actor) -> bool:
        column = self.assignment_columns.get(AssignmentField.REVIEWER)
        if not column:
            return False
        return getattr(entity, f'{column}_id') == actor.id

    def is_translation(self, entity) -> bool:
        return False

    # Field derivation
    def derive_stage(self, status: str, entity) -> Optional[str]:
        return None

    def assignment_updates(self, entity, rule: TransitionRule, assignee) -> Dict[str, Any]:
        """
        Assignment columns after the move.

        Entering the revision status clears every assignment. Setting an
        approver clears the reviewer unless the same person continues.
        """
        updates: Dict[str, Any] = {}
        if rule.to_status == self.revision_status:
            for column in self.assignment_columns.values():
                updates[f'{column}_id'] = None
            return updates

        if rule.assignment is None or assignee is None:
            return updates
        column = self.assignment_columns.get(rule.assignment.field)
        if not column:
            return updates
        updates[f'{column}_id'] = assignee.id

        reviewer_column = self.assignment_columns.get(AssignmentField.REVIEWER)
        if rule.assignment.field == AssignmentField.APPROVER and reviewer_column:
            if getattr(entity, f'{reviewer_column}_id') != assignee.id:
                updates[f'{reviewer_column}_id'] = None
        return updates

    def transition_fields(self, entity, rule: TransitionRule, actor, now) -> Dict[str, Any]:
        """Extra columns written with the move (timestamps and the like)."""
        return {}

    def check_preconditions(self, entity, rule: TransitionRule, request):
        """Raise PreconditionFailed if the entity is not ready."""

    def check_invariants(self, entity, to_status: str, updates: Dict[str, Any]):
        column = self.required_assignments.get(str(to_status))
        if not column:
            return
        key = f'{column}_id'
        value = updates[key] if key in updates else getattr(entity, key)
        if value is None:
            raise WorkflowIntegrityError(
                f"{self.entity_type} {entity.pk} would enter {to_status} without {column}"
            )

    # Outcomes
    def notifications(self, context: TransitionContext):
        """Default intents: notify whoever was just assigned."""
        if context.assignee is not None:
            context.notify('assigned', context.assignee.id)

    def invalidation_keys(self, entity) -> List[str]:
        return []


@lru_cache(maxsize=None)
def _load_definition(path: str) -> WorkflowDefinition:
    return import_string(path)()


def get_definition(entity_type: str) -> WorkflowDefinition:
    """Definition for ``entity_type`` from settings.WORKFLOW_ENTITIES."""
    registry = getattr(settings, 'WORKFLOW_ENTITIES', {})
    try:
        path = registry[str(entity_type)]
    except KeyError:
        raise ValueError(f"No workflow definition registered for '{entity_type}'")
    return _load_definition(path)

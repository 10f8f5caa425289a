"""
Workflow Engine.

Single entry point for every status change of a Story or Bulletin:

    engine = WorkflowEngine()
    result = engine.request_transition(TransitionRequest(
        entity_type='story',
        entity_id=story.id,
        actor_id=intern.id,
        target_status='IN_REVIEW',
        assignee_id=journalist.id,
    ))
    if not result.ok:
        result.raise_for_error()

engine.reassign(ReassignmentRequest(...)) swaps the reviewer or approver of an
in-flight item under the same compare-and-set and history rules.

Expected failures come back as typed errors on the result. The engine never
retries and performs no I/O beyond its persistence collaborator; delivery of
notifications and cache invalidation are left to the caller
(apps.workflow.services).
"""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from django.db import transaction
from django.utils import timezone

from apps.core.middleware import get_request_id
from apps.workflow.assignment import AssignmentResolver, DjangoUserDirectory
from apps.workflow.definitions import (
    NotificationIntent,
    TransitionContext,
    WorkflowDefinition,
    get_definition,
)
from apps.workflow.errors import (
    ConcurrentModification,
    EntityNotFound,
    IllegalTransition,
    InvalidAssignee,
    MissingAssignment,
    MissingComment,
    PreconditionFailed,
    WorkflowError,
)
from apps.workflow.ledger import HistoryEntry
from apps.workflow.store import DjangoEntityStore
from apps.workflow.transitions import (
    AssignmentField,
    TransitionRule,
    find_reassignment,
    find_rule,
    rules_for,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TranslationAssignment:
    language: str
    translator_id: Any


@dataclass(frozen=True)
class TransitionRequest:
    entity_type: str
    entity_id: Any
    actor_id: Any
    target_status: str
    assignee_id: Any = None
    comment: str = ''
    expected_version: Optional[int] = None
    translations: Tuple[TranslationAssignment, ...] = ()


@dataclass(frozen=True)
class ReassignmentRequest:
    entity_type: str
    entity_id: Any
    actor_id: Any
    assignment: str
    assignee_id: Any
    comment: str = ''
    expected_version: Optional[int] = None


@dataclass
class TransitionResult:
    ok: bool
    entity: Any = None
    error: Optional[WorkflowError] = None
    history: List[HistoryEntry] = field(default_factory=list)
    effects: List[NotificationIntent] = field(default_factory=list)
    invalidates: List[str] = field(default_factory=list)

    @property
    def entry(self) -> Optional[HistoryEntry]:
        """History entry of the requested transition itself."""
        return self.history[0] if self.history else None

    def raise_for_error(self):
        if self.error is not None:
            raise self.error.to_api_exception()

    @classmethod
    def failure(cls, error: WorkflowError, entity=None) -> 'TransitionResult':
        return cls(ok=False, error=error, entity=entity)


class WorkflowEngine:
    """
    Validates and applies transitions.

    Collaborators are injectable so tests can fault-inject the store.
    """

    def __init__(self, store=None, directory=None, publish_roles=None):
        self.store = store or DjangoEntityStore()
        self.directory = directory or DjangoUserDirectory()
        self.resolver = AssignmentResolver(self.directory)
        self.publish_roles = publish_roles

    def request_transition(self, request: TransitionRequest) -> TransitionResult:
        entity = None
        try:
            definition, entity = self._load(request)
            return self._transition(definition, entity, request)
        except WorkflowError as e:
            logger.info(
                f"{request.entity_type} {request.entity_id} → {request.target_status} "
                f"rejected for actor {request.actor_id}: {e.code}"
            )
            return TransitionResult.failure(e, entity=entity)

    def reassign(self, request: ReassignmentRequest) -> TransitionResult:
        """Swap the reviewer or approver of an item; its status does not change."""
        entity = None
        try:
            definition, entity = self._load(request)
            return self._reassign(definition, entity, request)
        except WorkflowError as e:
            logger.info(
                f"{request.entity_type} {request.entity_id} {request.assignment} reassignment "
                f"rejected for actor {request.actor_id}: {e.code}"
            )
            return TransitionResult.failure(e, entity=entity)

    def available_transitions(self, entity_type: str, entity, actor_id) -> List[TransitionRule]:
        """Rules this actor may take on this entity right now (identity included)."""
        definition = get_definition(entity_type)
        actor = self.directory.get(actor_id)
        if actor is None or not actor.is_active:
            return []
        available = []
        for rule in rules_for(definition.entity_type, str(entity.status)):
            matched = find_rule(
                definition.entity_type,
                str(entity.status),
                str(rule.to_status),
                actor.role,
                is_author=definition.is_author(entity, actor),
                is_assigned_reviewer=definition.is_assigned_reviewer(entity, actor),
                is_translation=definition.is_translation(entity),
                publish_roles=self.publish_roles,
            )
            if matched is rule:
                available.append(rule)
        return available

    def _load(self, request):
        definition = get_definition(request.entity_type)
        entity = self.store.load_entity(request.entity_type, request.entity_id)
        if entity is None:
            raise EntityNotFound(f"{request.entity_type} {request.entity_id} not found")
        return definition, entity

    def _active_actor(self, request, entity):
        actor = self.directory.get(request.actor_id)
        if actor is None:
            raise EntityNotFound(f"User {request.actor_id} not found")
        if not actor.is_active:
            raise IllegalTransition("Your account is deactivated")
        if request.expected_version is not None and request.expected_version != entity.version:
            raise ConcurrentModification()
        return actor

    def _transition(self, definition: WorkflowDefinition, entity, request: TransitionRequest):
        actor = self._active_actor(request, entity)

        rule = self._authorize(definition, entity, actor, request)
        assignee, translators = self._resolve_assignments(definition, entity, rule, request)

        if rule.comment_required and not (request.comment or '').strip():
            raise MissingComment()
        definition.check_preconditions(entity, rule, request)

        now = timezone.now()
        context = TransitionContext(
            definition=definition,
            entity=entity,
            actor=actor,
            rule=rule,
            request=request,
            from_status=str(entity.status),
            to_status=str(rule.to_status),
            now=now,
            assignee=assignee,
            translators=translators,
        )
        context.cascade = lambda target, to_status, action, fields=None, comment='': self._apply(
            definition, target, str(to_status), action, actor, fields or {}, comment, context,
        )

        fields = definition.assignment_updates(entity, rule, assignee)
        fields.update(definition.transition_fields(entity, rule, actor, now))
        details = {}
        if assignee is not None:
            details['assignee_id'] = assignee.id
        if translators:
            details['translations'] = [
                {'language': language, 'translator_id': translator.id}
                for language, translator in translators
            ]

        with transaction.atomic():
            context.entity = self._apply(
                definition, entity, context.to_status, rule.action, actor,
                fields, request.comment or '', context, details=details,
            )
            definition.run_hooks(context)
            definition.notifications(context)

        context.invalidate(*definition.invalidation_keys(context.entity))
        logger.info(
            f"{definition.entity_type} {entity.pk} transitioned: "
            f"{context.from_status} → {context.to_status} by {actor.id}"
        )
        return TransitionResult(
            ok=True,
            entity=context.entity,
            history=context.history,
            effects=context.effects,
            invalidates=context.invalidates,
        )

    def _authorize(self, definition, entity, actor, request) -> TransitionRule:
        if str(request.target_status) == str(entity.status):
            raise IllegalTransition(f"Item is already {entity.status}")
        rule = find_rule(
            definition.entity_type,
            str(entity.status),
            str(request.target_status),
            actor.role,
            is_author=definition.is_author(entity, actor),
            is_assigned_reviewer=definition.is_assigned_reviewer(entity, actor),
            is_translation=definition.is_translation(entity),
            publish_roles=self.publish_roles,
        )
        if rule is None:
            raise IllegalTransition()
        return rule

    def _resolve_assignments(self, definition, entity, rule, request):
        if rule.assignment is None:
            return None, []
        roles = rule.assignment.assignee_roles

        if rule.assignment.field == AssignmentField.TRANSLATOR:
            if not request.translations:
                raise MissingAssignment("Select at least one translator", field='translations')
            seen = set()
            translators = []
            for item in request.translations:
                language = str(item.language or '').strip().upper()
                if not language:
                    raise MissingAssignment("Each translation needs a language", field='translations')
                if language in seen:
                    raise PreconditionFailed(f"Language {language} requested twice", field='translations')
                seen.add(language)
                translator = self.resolver.resolve_assignee(
                    item.translator_id, roles, field='translations',
                )
                translators.append((language, translator))
            return None, translators

        assignee = self.resolver.resolve_assignee(request.assignee_id, roles)
        if assignee.id == definition.author_id(entity):
            raise InvalidAssignee("The author cannot be assigned to their own item", field='assignee_id')
        return assignee, []

    def _reassign(self, definition: WorkflowDefinition, entity, request: ReassignmentRequest):
        actor = self._active_actor(request, entity)
        status = str(entity.status)

        rule = find_reassignment(definition.entity_type, status, request.assignment, actor.role)
        column = definition.assignment_columns.get(rule.assignment.field) if rule else None
        if column is None:
            raise IllegalTransition(f"The {request.assignment} cannot be reassigned while the item is {status}")

        assignee = self.resolver.resolve_assignee(request.assignee_id, rule.assignment.assignee_roles)
        if assignee.id == definition.author_id(entity):
            raise InvalidAssignee("The author cannot be assigned to their own item", field='assignee_id')
        previous_id = getattr(entity, f'{column}_id')
        if assignee.id == previous_id:
            raise InvalidAssignee(f"This user is already the {request.assignment}", field='assignee_id')

        context = TransitionContext(
            definition=definition,
            entity=entity,
            actor=actor,
            rule=rule,
            request=request,
            from_status=status,
            to_status=status,
            now=timezone.now(),
            assignee=assignee,
        )
        details = {
            'assignment': str(request.assignment),
            'previous_assignee_id': previous_id,
            'assignee_id': assignee.id,
        }

        with transaction.atomic():
            context.entity = self._apply(
                definition, entity, status, rule.action, actor,
                {f'{column}_id': assignee.id}, request.comment or '', context, details=details,
            )
            context.notify('assigned', assignee.id)

        context.invalidate(*definition.invalidation_keys(context.entity))
        logger.info(
            f"{definition.entity_type} {entity.pk} {request.assignment} reassigned: "
            f"{previous_id} → {assignee.id} by {actor.id}"
        )
        return TransitionResult(
            ok=True,
            entity=context.entity,
            history=context.history,
            effects=context.effects,
            invalidates=context.invalidates,
        )

    def _apply(self, definition, entity, to_status, action, actor, fields, comment, context, details=None):
        """CAS the entity into ``to_status`` and append its history entry."""
        from_status = str(entity.status)
        is_translation = definition.is_translation(entity)
        values = dict(fields)
        values['status'] = to_status
        to_stage = definition.derive_stage(to_status, entity)
        from_stage = getattr(entity, 'stage', '') if definition.has_stage else ''
        if definition.has_stage:
            values['stage'] = to_stage
        definition.check_invariants(entity, to_status, values)

        if not self.store.cas_update_entity(
            definition.entity_type, entity.pk, from_status, entity.version, values,
        ):
            raise ConcurrentModification()

        entry_details = dict(details or {})
        request_id = get_request_id()
        if request_id:
            entry_details['request_id'] = request_id
        if is_translation:
            entry_details['is_translation'] = True

        entry = self.store.append_history(HistoryEntry(
            entity_type=definition.entity_type,
            entity_id=entity.pk,
            action=action,
            from_status=from_status,
            to_status=to_status,
            from_stage=from_stage or '',
            to_stage=to_stage or '',
            actor_id=actor.id,
            comment=comment,
            details=entry_details,
            created_at=context.now,
        ))
        context.history.append(entry)
        refreshed = self.store.load_entity(definition.entity_type, entity.pk)
        if refreshed is None:
            raise ConcurrentModification()
        return refreshed


def request_transition(request: TransitionRequest) -> TransitionResult:
    """Module-level shortcut with default collaborators."""
    return WorkflowEngine().request_transition(request)

"""
Audit/History Ledger.

Append-only, per-entity ordered history of workflow transitions. Reads are
restartable: pass the last sequence you saw as ``after_sequence``.

Usage:
    from apps.workflow import ledger

    entries = ledger.history_for('story', story.id)
    newer = ledger.history_for('story', story.id, after_sequence=entries[-1].sequence)
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional

from django.db.models import Max
from django.utils import timezone

from apps.workflow.models import TransitionHistory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoryEntry:
    """Immutable snapshot of one history row."""
    entity_type: str
    entity_id: Any
    action: str
    from_status: str
    to_status: str
    actor_id: Any
    from_stage: str = ''
    to_stage: str = ''
    comment: str = ''
    details: Dict[str, Any] = field(default_factory=dict)
    sequence: Optional[int] = None
    created_at: Optional[datetime] = None
    id: Any = None

    @classmethod
    def from_model(cls, row: TransitionHistory) -> 'HistoryEntry':
        return cls(
            id=row.id,
            entity_type=row.entity_type,
            entity_id=row.entity_id,
            sequence=row.sequence,
            action=row.action,
            from_status=row.from_status,
            to_status=row.to_status,
            from_stage=row.from_stage,
            to_stage=row.to_stage,
            actor_id=row.actor_id,
            comment=row.comment,
            details=dict(row.details or {}),
            created_at=row.created_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': str(self.id) if self.id else None,
            'entity_type': self.entity_type,
            'entity_id': str(self.entity_id),
            'sequence': self.sequence,
            'action': self.action,
            'from_status': self.from_status,
            'to_status': self.to_status,
            'from_stage': self.from_stage,
            'to_stage': self.to_stage,
            'actor_id': self.actor_id,
            'comment': self.comment,
            'details': self.details,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


def next_sequence(entity_type: str, entity_id) -> int:
    current = (
        TransitionHistory.objects
        .filter(entity_type=entity_type, entity_id=entity_id)
        .aggregate(last=Max('sequence'))['last']
    )
    return (current or 0) + 1


def append(entry: HistoryEntry) -> HistoryEntry:
    """
    Persist ``entry`` as the next item in its entity's history.

    Must run inside the transaction that changed the entity; the entity row
    lock taken by the compare-and-set keeps sequences gap-free per entity.
    """
    sequence = next_sequence(entry.entity_type, entry.entity_id)
    row = TransitionHistory.objects.create(
        entity_type=entry.entity_type,
        entity_id=entry.entity_id,
        sequence=sequence,
        action=entry.action,
        from_status=entry.from_status,
        to_status=entry.to_status,
        from_stage=entry.from_stage or '',
        to_stage=entry.to_stage or '',
        actor_id=entry.actor_id,
        comment=entry.comment or '',
        details=entry.details or {},
        created_at=entry.created_at or timezone.now(),
    )
    logger.debug(f"History #{sequence} appended for {entry.entity_type} {entry.entity_id}")
    return replace(entry, id=row.id, sequence=row.sequence, created_at=row.created_at)


def history_for(entity_type: str, entity_id, after_sequence: int = 0) -> List[HistoryEntry]:
    """Entries for one entity in sequence order, strictly after ``after_sequence``."""
    rows = (
        TransitionHistory.objects
        .filter(entity_type=entity_type, entity_id=entity_id, sequence__gt=after_sequence)
        .order_by('sequence')
    )
    return [HistoryEntry.from_model(row) for row in rows]

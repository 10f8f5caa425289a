"""
Persistence collaborator for the workflow engine.

The compare-and-set is a single conditional UPDATE:

    UPDATE ... SET status=?, version=version+1, ...
     WHERE id=? AND status=<expected> AND version=<expected>

Zero rows updated means somebody else got there first.
"""

import logging
from typing import Any, Dict, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import F
from django.utils import timezone

from apps.workflow import ledger
from apps.workflow.definitions import get_definition
from apps.workflow.ledger import HistoryEntry

logger = logging.getLogger(__name__)


class DjangoEntityStore:
    """ORM-backed entity store."""

    def load_entity(self, entity_type: str, entity_id) -> Optional[Any]:
        model = get_definition(entity_type).get_model()
        try:
            return model.objects.get(pk=entity_id)
        except (model.DoesNotExist, ValueError, TypeError, DjangoValidationError):
            # Malformed ids are as absent as unknown ones
            return None

    def cas_update_entity(
        self,
        entity_type: str,
        entity_id,
        expected_status: str,
        expected_version: int,
        fields: Dict[str, Any],
    ) -> bool:
        model = get_definition(entity_type).get_model()
        values = dict(fields)
        values['version'] = F('version') + 1
        if any(f.name == 'updated_at' for f in model._meta.concrete_fields):
            values.setdefault('updated_at', timezone.now())
        updated = (
            model.objects
            .filter(pk=entity_id, status=expected_status, version=expected_version)
            .update(**values)
        )
        if updated != 1:
            logger.warning(
                f"CAS miss on {entity_type} {entity_id}: expected "
                f"status={expected_status} version={expected_version}"
            )
            return False
        return True

    def append_history(self, entry: HistoryEntry) -> HistoryEntry:
        return ledger.append(entry)

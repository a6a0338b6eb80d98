# Overview: Append-only audit trail for ledger mutations.

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional

from ..extensions import db
from ..models import AuditEvent
"""
Audit trail invariants:

- Append-only: no updates/deletes of existing events.
- Events are written inside the same DB transaction as the change they record.
- occurred_at is business time; created_at is system time (DB default).
"""


def append_audit_event(
    *,
    action: str,
    entity_type: str,
    entity_id,
    occurred_at: Optional[datetime] = None,
    payload: Optional[dict[str, Any]] = None,
) -> AuditEvent:
    ev = AuditEvent(
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        payload=json.dumps(payload, default=str, sort_keys=True) if payload is not None else None,
    )
    if occurred_at is not None:
        ev.occurred_at = occurred_at  # otherwise the db default applies
    db.session.add(ev)
    db.session.flush()  # ensures ev.id is assigned without committing
    return ev


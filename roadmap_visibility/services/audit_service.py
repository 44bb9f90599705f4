"""Best-effort audit trail for visibility changes."""

import logging

from roadmap_visibility.logging_config import log_event
from roadmap_visibility.repositories import audit_repo

MAX_AUDIT_LIST = 200


def record_visibility_change(
    admin_id,
    entity_type,
    entity_id,
    previous_is_public,
    new_is_public,
    parent_roadmap_slug=None,
    parent_milestone_id=None,
    timestamp=None,
    *,
    db,
    logger,
    time_module,
):
    entity_type = str(getattr(entity_type, 'value', entity_type))
    payload = {
        'admin_id': str(admin_id or ''),
        'entity_type': entity_type,
        'entity_id': str(entity_id or ''),
        'previous_is_public': previous_is_public if isinstance(previous_is_public, bool) else None,
        'new_is_public': bool(new_is_public),
        'parent_roadmap_slug': parent_roadmap_slug or None,
        'parent_milestone_id': parent_milestone_id or None,
        'created_at': timestamp if isinstance(timestamp, (int, float)) else time_module.time(),
    }
    if logger is not None:
        log_event(logger, logging.INFO, 'visibility_changed', **payload)
    try:
        audit_repo.add_entry(db, payload)
        return True
    except Exception as exc:
        if logger is not None:
            logger.warning(f"Could not store visibility audit entry for {entity_type}:{entity_id}: {exc}")
        return False


def list_recent_changes(*, db, limit=50, firestore_module=None):
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        limit = 50
    limit = max(1, min(limit, MAX_AUDIT_LIST))
    entries = [doc.to_dict() or {} for doc in audit_repo.list_recent(db, limit, firestore_module=firestore_module)]
    entries.sort(key=lambda entry: entry.get('created_at', 0) or 0, reverse=True)
    return entries[:limit]

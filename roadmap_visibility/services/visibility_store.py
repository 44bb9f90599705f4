"""Durable mapping from (entity_type, entity_id) to the latest VisibilitySetting.

Writes are upserts keyed by a deterministic document id, so a pair can never
have two records. Single upserts read and write inside one transaction, so the
record id and created_at are decided once even when first writes race.
"""

import uuid

from firebase_admin import firestore

from roadmap_visibility.errors import BatchWriteError
from roadmap_visibility.models import EntityType, VisibilitySetting
from roadmap_visibility.repositories import visibility_repo
from roadmap_visibility.repositories.query_utils import chunked

# Firestore caps a single write batch at 500 operations.
MAX_BATCH_WRITES = 500

_PARENT_FIELDS = {
    EntityType.MILESTONE: 'parent_roadmap_slug',
    EntityType.OBJECTIVE: 'parent_milestone_id',
}


def _setting_from_snapshot(snapshot):
    if snapshot is None or not snapshot.exists:
        return None
    return VisibilitySetting.from_doc(snapshot.to_dict() or {})


def _build_payload(setting, existing, now_ts):
    entity_type = EntityType.parse(setting.entity_type)
    payload = {
        'entity_type': entity_type.value,
        'entity_id': setting.entity_id,
        'is_public': bool(setting.is_public),
        'updated_by': setting.updated_by,
        'updated_at': now_ts,
        'parent_roadmap_slug': setting.parent_roadmap_slug or None,
        'parent_milestone_id': setting.parent_milestone_id or None,
    }
    if existing is None:
        payload['id'] = uuid.uuid4().hex
        payload['created_at'] = now_ts
    return payload


def _merged(existing, payload):
    data = existing.to_dict() if existing is not None else {}
    data.update(payload)
    return VisibilitySetting.from_doc(data)


def get(entity_type, entity_id, *, db):
    entity_type = EntityType.parse(entity_type)
    return _setting_from_snapshot(visibility_repo.get_doc(db, entity_type.value, entity_id))


def get_batch(entity_type, entity_ids, *, db):
    entity_type = EntityType.parse(entity_type)
    wanted = {str(entity_id) for entity_id in (entity_ids or []) if entity_id}
    if not wanted:
        return {}
    settings = {}
    for doc in visibility_repo.list_by_ids(db, entity_type.value, sorted(wanted)):
        setting = VisibilitySetting.from_doc(doc.to_dict() or {})
        if setting.entity_id in wanted:
            settings[setting.entity_id] = setting
    return settings


def upsert(setting, *, db, time_module, firestore_module=None):
    """Write one setting atomically and return (previous, stored)."""
    firestore_module = firestore_module or firestore
    entity_type = EntityType.parse(setting.entity_type)
    ref = visibility_repo.doc_ref(db, entity_type.value, setting.entity_id)
    transaction = visibility_repo.new_transaction(db)

    @firestore_module.transactional
    def _txn(txn):
        existing = _setting_from_snapshot(ref.get(transaction=txn))
        payload = _build_payload(setting, existing, time_module.time())
        txn.set(ref, payload, merge=True)
        return existing, _merged(existing, payload)

    return _txn(transaction)


def set(setting, *, db, time_module, firestore_module=None):
    _previous, stored = upsert(setting, db=db, time_module=time_module, firestore_module=firestore_module)
    return stored


def set_batch(settings, *, db, time_module):
    """Upsert many settings; each record is independent of the others.

    Raises BatchWriteError carrying the settings from chunks that did commit.
    """
    settings = list(settings or [])
    if not settings:
        return []
    now_ts = time_module.time()
    existing_by_type = {}
    for setting in settings:
        entity_type = EntityType.parse(setting.entity_type)
        existing_by_type.setdefault(entity_type, []).append(setting.entity_id)
    existing_by_type = {
        entity_type: get_batch(entity_type, ids, db=db)
        for entity_type, ids in existing_by_type.items()
    }

    committed = []
    for chunk in chunked(settings, MAX_BATCH_WRITES):
        batch = visibility_repo.new_batch(db)
        pending = []
        for setting in chunk:
            entity_type = EntityType.parse(setting.entity_type)
            existing = existing_by_type[entity_type].get(setting.entity_id)
            payload = _build_payload(setting, existing, now_ts)
            batch.set(visibility_repo.doc_ref(db, entity_type.value, setting.entity_id), payload, merge=True)
            merged = _merged(existing, payload)
            # Later entries for the same pair see the earlier one as existing.
            existing_by_type[entity_type][setting.entity_id] = merged
            pending.append(merged)
        try:
            batch.commit()
        except Exception as exc:
            raise BatchWriteError(committed, exc) from exc
        committed.extend(pending)
    return committed


def find_public(entity_type, *, db):
    entity_type = EntityType.parse(entity_type)
    ids = []
    for doc in visibility_repo.list_public(db, entity_type.value):
        data = doc.to_dict() or {}
        if data.get('is_public') is True and data.get('entity_id'):
            ids.append(data['entity_id'])
    return ids


def find_by_parent(entity_type, parent_id, *, db):
    entity_type = EntityType.parse(entity_type)
    parent_field = _PARENT_FIELDS.get(entity_type)
    if parent_field is None or not parent_id:
        return []
    docs = visibility_repo.list_by_parent_field(db, entity_type.value, parent_field, parent_id)
    return [VisibilitySetting.from_doc(doc.to_dict() or {}) for doc in docs]


def delete(entity_type, entity_id, *, db):
    entity_type = EntityType.parse(entity_type)
    if not exists(entity_type, entity_id, db=db):
        return False
    visibility_repo.delete_doc(db, entity_type.value, entity_id)
    return True


def exists(entity_type, entity_id, *, db):
    entity_type = EntityType.parse(entity_type)
    snapshot = visibility_repo.get_doc(db, entity_type.value, entity_id)
    return bool(snapshot is not None and snapshot.exists)

"""Firestore accessors for visibility audit logs."""

COLLECTION = 'visibility_audit_logs'


def add_entry(db, payload):
    return db.collection(COLLECTION).add(payload)


def list_recent(db, limit, firestore_module=None):
    query = db.collection(COLLECTION)
    if firestore_module is not None:
        query = query.order_by('created_at', direction=firestore_module.Query.DESCENDING)
    if isinstance(limit, int) and limit > 0:
        query = query.limit(limit)
    return list(query.stream())

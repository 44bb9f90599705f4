"""Firestore accessors for the visibility_settings collection."""

from .query_utils import apply_where, stream_where_in

COLLECTION = 'visibility_settings'


def doc_id(entity_type, entity_id):
    return f"{entity_type}__{entity_id}"


def doc_ref(db, entity_type, entity_id):
    return db.collection(COLLECTION).document(doc_id(entity_type, entity_id))


def get_doc(db, entity_type, entity_id):
    return doc_ref(db, entity_type, entity_id).get()


def delete_doc(db, entity_type, entity_id):
    return doc_ref(db, entity_type, entity_id).delete()


def by_type_query(db, entity_type):
    return apply_where(db.collection(COLLECTION), 'entity_type', '==', entity_type)


def list_by_ids(db, entity_type, entity_ids):
    return stream_where_in(by_type_query(db, entity_type), 'entity_id', entity_ids)


def list_public(db, entity_type):
    return list(apply_where(by_type_query(db, entity_type), 'is_public', '==', True).stream())


def list_by_parent_field(db, entity_type, parent_field, parent_id):
    return list(apply_where(by_type_query(db, entity_type), parent_field, '==', parent_id).stream())


def new_batch(db):
    return db.batch()


def new_transaction(db):
    return db.transaction()

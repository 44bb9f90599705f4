"""Firestore accessors for the roadmaps collection (content catalog)."""

from .query_utils import apply_where, stream_where_in

COLLECTION = 'roadmaps'


def _is_active(data):
    return data.get('is_active', True) is not False


def get_roadmap_by_slug(db, slug, active_only=True):
    """Return the roadmap dict for ``slug`` or None."""
    docs = list(apply_where(db.collection(COLLECTION), 'slug', '==', slug).limit(1).stream())
    if not docs:
        return None
    data = docs[0].to_dict() or {}
    if active_only and not _is_active(data):
        return None
    return data


def list_active_roadmaps(db):
    roadmaps = []
    for doc in db.collection(COLLECTION).stream():
        data = doc.to_dict() or {}
        if _is_active(data):
            roadmaps.append(data)
    return roadmaps


def list_active_by_slugs(db, slugs):
    roadmaps = []
    for doc in stream_where_in(db.collection(COLLECTION), 'slug', slugs):
        data = doc.to_dict() or {}
        if _is_active(data):
            roadmaps.append(data)
    return roadmaps

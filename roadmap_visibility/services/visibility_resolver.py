"""Effective visibility: an entity is public only if it and every ancestor are.

A private ancestor hides every descendant regardless of the descendants' own
flags. Missing records and records with missing parent references resolve to
private.
"""

from roadmap_visibility.models import EntityType
from roadmap_visibility.services import visibility_store

_MALFORMED = object()


def ancestor_ref(setting):
    """Return ``(parent_type, parent_id)``, None for a root, or _MALFORMED."""
    entity_type = EntityType.parse(setting.entity_type)
    parent_type = entity_type.parent_type
    if parent_type is None:
        return None
    if entity_type is EntityType.MILESTONE:
        parent_id = setting.parent_roadmap_slug
    elif entity_type is EntityType.OBJECTIVE:
        # Objectives must name both ancestors even though only the milestone is followed.
        if not setting.parent_roadmap_slug:
            return _MALFORMED
        parent_id = setting.parent_milestone_id
    else:
        return _MALFORMED
    if not parent_id:
        return _MALFORMED
    return parent_type, parent_id


def is_publicly_visible(entity_type, entity_id, *, db):
    entity_type = EntityType.parse(entity_type)
    setting = visibility_store.get(entity_type, entity_id, db=db)
    # The chain can be at most as deep as the entity hierarchy.
    for _ in range(len(EntityType)):
        if setting is None or not setting.is_public:
            return False
        parent = ancestor_ref(setting)
        if parent is None:
            return True
        if parent is _MALFORMED:
            return False
        parent_type, parent_id = parent
        setting = visibility_store.get(parent_type, parent_id, db=db)
    return False


def effective_visibility(own_is_public, *ancestors_public):
    return bool(own_is_public) and all(bool(flag) for flag in ancestors_public)

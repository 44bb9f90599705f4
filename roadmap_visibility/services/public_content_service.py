"""Publicly consumable views of roadmaps.

Both entry points are safe to expose to anonymous visitors: a private roadmap,
a missing roadmap and an internal failure all look the same from outside.
"""

import sentry_sdk

from roadmap_visibility.models import EntityType, is_valid_identifier, objective_entity_id, parse_objective_index
from roadmap_visibility.repositories import roadmaps_repo
from roadmap_visibility.services import visibility_store
from roadmap_visibility.services.visibility_resolver import is_publicly_visible

PUBLIC_ROADMAP_FIELDS = ('slug', 'title', 'description', 'category', 'difficulty', 'estimated_hours')


def _public_objective_indices(milestone_id, roadmap_slug, *, db):
    indices = set()
    for setting in visibility_store.find_by_parent(EntityType.OBJECTIVE, milestone_id, db=db):
        if not setting.is_public:
            continue
        # Milestone ids are only unique per roadmap.
        if setting.parent_roadmap_slug and setting.parent_roadmap_slug != roadmap_slug:
            continue
        index = parse_objective_index(setting.entity_id)
        if index is not None and setting.entity_id == objective_entity_id(milestone_id, index):
            indices.add(index)
    return indices


def filter_roadmap_for_public(roadmap, *, db):
    """Prune a roadmap already known to be public down to its public children."""
    slug = roadmap.get('slug')
    public_milestone_ids = {
        setting.entity_id
        for setting in visibility_store.find_by_parent(EntityType.MILESTONE, slug, db=db)
        if setting.is_public
    }

    nodes = []
    for node in roadmap.get('nodes') or []:
        if not isinstance(node, dict) or node.get('id') not in public_milestone_ids:
            continue
        public_indices = _public_objective_indices(node.get('id'), slug, db=db)
        public_node = dict(node)
        public_node['learning_objectives'] = [
            objective
            for index, objective in enumerate(node.get('learning_objectives') or [])
            if index in public_indices
        ]
        nodes.append(public_node)

    public_node_ids = {node.get('id') for node in nodes}
    edges = [
        dict(edge)
        for edge in roadmap.get('edges') or []
        if isinstance(edge, dict) and edge.get('source') in public_node_ids and edge.get('target') in public_node_ids
    ]

    public_roadmap = {field: roadmap.get(field) for field in PUBLIC_ROADMAP_FIELDS}
    public_roadmap['nodes'] = nodes
    public_roadmap['edges'] = edges
    return public_roadmap


def _report(logger, message, exc):
    if logger is not None:
        logger.error(f"{message}: {exc}")
    sentry_sdk.capture_exception(exc)


def get_public_roadmap_by_slug(slug, *, db, logger=None):
    if not is_valid_identifier(slug):
        return None
    try:
        if not is_publicly_visible(EntityType.ROADMAP, slug, db=db):
            return None
        roadmap = roadmaps_repo.get_roadmap_by_slug(db, slug)
        if not roadmap:
            return None
        return filter_roadmap_for_public(roadmap, db=db)
    except Exception as exc:
        _report(logger, 'get_public_roadmap_by_slug failed', exc)
        return None


def get_public_roadmaps(*, db, logger=None):
    try:
        slugs = [slug for slug in visibility_store.find_public(EntityType.ROADMAP, db=db) if is_valid_identifier(slug)]
        if not slugs:
            return []
        roadmaps_by_slug = {roadmap.get('slug'): roadmap for roadmap in roadmaps_repo.list_active_by_slugs(db, slugs)}
        public_roadmaps = []
        for slug in slugs:
            roadmap = roadmaps_by_slug.get(slug)
            if roadmap is None:
                continue
            if not is_publicly_visible(EntityType.ROADMAP, roadmap.get('slug'), db=db):
                continue
            public_roadmaps.append(filter_roadmap_for_public(roadmap, db=db))
        return public_roadmaps
    except Exception as exc:
        _report(logger, 'get_public_roadmaps failed', exc)
        return []

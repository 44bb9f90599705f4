"""Visibility mutations for administrators, plus the admin read models.

``update_visibility`` is the only way a flag changes. It runs as
validate-parent -> persist -> audit; only validation can abort, and it does so
before anything is written. Audit failures never reach the caller.
"""

from roadmap_visibility.errors import BatchWriteError, VisibilityError, VisibilityErrorCode
from roadmap_visibility.models import (
    CreateVisibilitySetting,
    EntityType,
    is_valid_identifier,
    objective_entity_id,
)
from roadmap_visibility.repositories import roadmaps_repo
from roadmap_visibility.services import audit_service, visibility_store
from roadmap_visibility.services.visibility_resolver import effective_visibility


def _node_ids(roadmap):
    return {str(node.get('id')) for node in (roadmap.get('nodes') or []) if isinstance(node, dict) and node.get('id')}


def _load_parent_roadmap(entity_type, parent_roadmap_slug, *, db):
    try:
        roadmap = roadmaps_repo.get_roadmap_by_slug(db, parent_roadmap_slug)
    except Exception as exc:
        raise VisibilityError(
            'Could not load parent roadmap',
            VisibilityErrorCode.DATABASE_ERROR,
            entity_type,
        ) from exc
    if not roadmap:
        raise VisibilityError(
            f"Parent roadmap '{parent_roadmap_slug}' not found",
            VisibilityErrorCode.PARENT_NOT_FOUND,
            entity_type,
        )
    return roadmap


def validate_parent_exists(entity_type, entity_id, parent_roadmap_slug=None, parent_milestone_id=None, *, db):
    entity_type = EntityType.parse(entity_type)
    if entity_type is EntityType.ROADMAP:
        return

    if entity_type is EntityType.MILESTONE:
        if not parent_roadmap_slug:
            raise VisibilityError(
                'Milestone visibility requires a parent roadmap slug',
                VisibilityErrorCode.PARENT_NOT_FOUND,
                entity_type,
                entity_id,
            )
        roadmap = _load_parent_roadmap(entity_type, parent_roadmap_slug, db=db)
        if entity_id not in _node_ids(roadmap):
            raise VisibilityError(
                f"Milestone '{entity_id}' not found in roadmap '{parent_roadmap_slug}'",
                VisibilityErrorCode.PARENT_NOT_FOUND,
                entity_type,
                entity_id,
            )
        return

    if entity_type is EntityType.OBJECTIVE:
        if not parent_roadmap_slug or not parent_milestone_id:
            raise VisibilityError(
                'Objective visibility requires both parent roadmap slug and milestone ID',
                VisibilityErrorCode.PARENT_NOT_FOUND,
                entity_type,
                entity_id,
            )
        roadmap = _load_parent_roadmap(entity_type, parent_roadmap_slug, db=db)
        if parent_milestone_id not in _node_ids(roadmap):
            raise VisibilityError(
                f"Parent milestone '{parent_milestone_id}' not found in roadmap '{parent_roadmap_slug}'",
                VisibilityErrorCode.PARENT_NOT_FOUND,
                entity_type,
                entity_id,
            )


def _validate_input(admin_id, entity_type, entity_id, is_public, parent_roadmap_slug, parent_milestone_id):
    entity_type = EntityType.parse(entity_type)
    if not is_valid_identifier(admin_id):
        raise VisibilityError('A valid admin id is required', VisibilityErrorCode.INVALID_INPUT, entity_type, entity_id)
    if not is_valid_identifier(entity_id):
        raise VisibilityError('A valid entity id is required', VisibilityErrorCode.INVALID_INPUT, entity_type)
    if not isinstance(is_public, bool):
        raise VisibilityError('is_public must be a boolean', VisibilityErrorCode.INVALID_INPUT, entity_type, entity_id)

    # References that do not apply to the type are dropped, not validated.
    if entity_type is EntityType.ROADMAP:
        parent_roadmap_slug = None
        parent_milestone_id = None
    elif entity_type is EntityType.MILESTONE:
        parent_milestone_id = None
    for value in (parent_roadmap_slug, parent_milestone_id):
        if value is not None and value != '' and not is_valid_identifier(value):
            raise VisibilityError('Malformed parent reference', VisibilityErrorCode.INVALID_INPUT, entity_type, entity_id)

    return CreateVisibilitySetting(
        entity_type=entity_type,
        entity_id=entity_id.strip(),
        is_public=is_public,
        updated_by=admin_id.strip(),
        parent_roadmap_slug=(parent_roadmap_slug or '').strip() or None,
        parent_milestone_id=(parent_milestone_id or '').strip() or None,
    )


def _audit(setting, previous_is_public, *, audit_sink, db, logger, time_module):
    try:
        audit_sink(
            setting.updated_by,
            setting.entity_type,
            setting.entity_id,
            previous_is_public,
            setting.is_public,
            setting.parent_roadmap_slug,
            setting.parent_milestone_id,
            setting.updated_at,
            db=db,
            logger=logger,
            time_module=time_module,
        )
    except Exception as exc:
        if logger is not None:
            logger.warning(f"Visibility audit failed for {setting.entity_type.value}:{setting.entity_id}: {exc}")


def update_visibility(
    admin_id,
    entity_type,
    entity_id,
    is_public,
    parent_roadmap_slug=None,
    parent_milestone_id=None,
    *,
    db,
    time_module,
    logger=None,
    audit_sink=None,
    firestore_module=None,
):
    """Validate, persist and audit one visibility change.

    Raises VisibilityError with INVALID_INPUT or PARENT_NOT_FOUND before any
    write, or DATABASE_ERROR when the store itself fails.
    """
    request = _validate_input(admin_id, entity_type, entity_id, is_public, parent_roadmap_slug, parent_milestone_id)
    validate_parent_exists(
        request.entity_type,
        request.entity_id,
        request.parent_roadmap_slug,
        request.parent_milestone_id,
        db=db,
    )

    try:
        previous, setting = visibility_store.upsert(
            request, db=db, time_module=time_module, firestore_module=firestore_module
        )
    except Exception as exc:
        raise VisibilityError(
            'Could not save visibility setting',
            VisibilityErrorCode.DATABASE_ERROR,
            request.entity_type,
            request.entity_id,
        ) from exc

    previous_is_public = previous.is_public if previous is not None else None
    _audit(
        setting,
        previous_is_public,
        audit_sink=audit_sink or audit_service.record_visibility_change,
        db=db,
        logger=logger,
        time_module=time_module,
    )
    return setting


def update_visibility_batch(admin_id, updates, *, db, time_module, logger=None, audit_sink=None):
    """Apply several changes. Every entry is validated before any is written.

    When a later chunk fails to commit, the chunks already saved are still
    audited before DATABASE_ERROR is raised.
    """
    if not isinstance(updates, (list, tuple)) or not updates:
        raise VisibilityError('updates must be a non-empty list', VisibilityErrorCode.INVALID_INPUT)

    requests = []
    for update in updates:
        if not isinstance(update, dict):
            raise VisibilityError('Each update must be an object', VisibilityErrorCode.INVALID_INPUT)
        request = _validate_input(
            admin_id,
            update.get('entity_type'),
            update.get('entity_id'),
            update.get('is_public'),
            update.get('parent_roadmap_slug'),
            update.get('parent_milestone_id'),
        )
        validate_parent_exists(
            request.entity_type,
            request.entity_id,
            request.parent_roadmap_slug,
            request.parent_milestone_id,
            db=db,
        )
        requests.append(request)

    try:
        previous = {}
        for entity_type in {request.entity_type for request in requests}:
            ids = [request.entity_id for request in requests if request.entity_type is entity_type]
            previous[entity_type] = visibility_store.get_batch(entity_type, ids, db=db)
    except Exception as exc:
        raise VisibilityError('Could not save visibility settings', VisibilityErrorCode.DATABASE_ERROR) from exc

    failure = None
    try:
        settings = visibility_store.set_batch(requests, db=db, time_module=time_module)
    except BatchWriteError as exc:
        settings, failure = exc.committed, exc
    except Exception as exc:
        raise VisibilityError('Could not save visibility settings', VisibilityErrorCode.DATABASE_ERROR) from exc

    sink = audit_sink or audit_service.record_visibility_change
    for setting in settings:
        prior = previous[setting.entity_type].get(setting.entity_id)
        _audit(
            setting,
            prior.is_public if prior is not None else None,
            audit_sink=sink,
            db=db,
            logger=logger,
            time_module=time_module,
        )
        # Repeated entries for one pair audit against the value just written.
        previous[setting.entity_type][setting.entity_id] = setting

    if failure is not None:
        raise VisibilityError(
            f"Saved {len(settings)} of {len(requests)} visibility settings before the store failed",
            VisibilityErrorCode.DATABASE_ERROR,
        ) from failure.__cause__
    return settings


def _objective_title(objective):
    if isinstance(objective, dict):
        return str(objective.get('title', '') or '')
    return str(objective or '')


def get_visibility_overview(*, db):
    roadmaps = roadmaps_repo.list_active_roadmaps(db)
    roadmap_visibility = visibility_store.get_batch(
        EntityType.ROADMAP, [roadmap.get('slug') for roadmap in roadmaps], db=db
    )

    stats = {
        'total_roadmaps': len(roadmaps),
        'public_roadmaps': 0,
        'total_milestones': 0,
        'public_milestones': 0,
        'total_objectives': 0,
        'public_objectives': 0,
    }
    infos = []
    for roadmap in roadmaps:
        slug = roadmap.get('slug')
        setting = roadmap_visibility.get(slug)
        is_public = setting.is_public if setting is not None else False
        nodes = [node for node in (roadmap.get('nodes') or []) if isinstance(node, dict)]
        node_ids = {node.get('id') for node in nodes}
        public_milestone_ids = {
            s.entity_id
            for s in visibility_store.find_by_parent(EntityType.MILESTONE, slug, db=db)
            if s.is_public and s.entity_id in node_ids
        }

        stats['total_milestones'] += len(nodes)
        stats['public_milestones'] += len(public_milestone_ids)
        for node in nodes:
            objectives = node.get('learning_objectives') or []
            stats['total_objectives'] += len(objectives)
            valid_ids = {objective_entity_id(node.get('id'), index) for index in range(len(objectives))}
            stats['public_objectives'] += sum(
                1
                for s in visibility_store.find_by_parent(EntityType.OBJECTIVE, node.get('id'), db=db)
                if s.is_public and s.entity_id in valid_ids and s.parent_roadmap_slug in (None, slug)
            )
        if is_public:
            stats['public_roadmaps'] += 1

        infos.append({
            'slug': slug,
            'title': roadmap.get('title', ''),
            'is_public': is_public,
            'milestone_count': len(nodes),
            'public_milestone_count': len(public_milestone_ids),
        })

    return {'roadmaps': infos, 'stats': stats}


def get_roadmap_visibility_details(roadmap_slug, *, db):
    if not is_valid_identifier(roadmap_slug):
        return None
    roadmap = roadmaps_repo.get_roadmap_by_slug(db, roadmap_slug)
    if not roadmap:
        return None

    roadmap_setting = visibility_store.get(EntityType.ROADMAP, roadmap_slug, db=db)
    roadmap_public = roadmap_setting.is_public if roadmap_setting is not None else False
    milestone_flags = {
        s.entity_id: s.is_public
        for s in visibility_store.find_by_parent(EntityType.MILESTONE, roadmap_slug, db=db)
    }

    milestones = []
    for node in roadmap.get('nodes') or []:
        if not isinstance(node, dict):
            continue
        node_id = node.get('id')
        milestone_public = milestone_flags.get(node_id, False)
        milestone_effective = effective_visibility(milestone_public, roadmap_public)
        objective_flags = {
            s.entity_id: s.is_public
            for s in visibility_store.find_by_parent(EntityType.OBJECTIVE, node_id, db=db)
            if s.parent_roadmap_slug in (None, roadmap_slug)
        }
        objectives = []
        for index, objective in enumerate(node.get('learning_objectives') or []):
            objective_public = objective_flags.get(objective_entity_id(node_id, index), False)
            objectives.append({
                'index': index,
                'entity_id': objective_entity_id(node_id, index),
                'title': _objective_title(objective),
                'is_public': objective_public,
                'effectively_public': effective_visibility(objective_public, milestone_effective),
            })
        milestones.append({
            'node_id': node_id,
            'title': node.get('title', ''),
            'is_public': milestone_public,
            'effectively_public': milestone_effective,
            'objectives': objectives,
        })

    return {
        'roadmap': {
            'slug': roadmap_slug,
            'title': roadmap.get('title', ''),
            'is_public': roadmap_public,
            'milestone_count': len(milestones),
            'public_milestone_count': sum(1 for m in milestones if m['is_public']),
        },
        'milestones': milestones,
    }

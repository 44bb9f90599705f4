"""Request handlers for the admin and public visibility APIs."""

import logging

from roadmap_visibility.errors import VisibilityError, VisibilityErrorCode
from roadmap_visibility.logging_config import log_event
from roadmap_visibility.services import audit_service, public_content_service, visibility_service

ERROR_STATUS = {
    VisibilityErrorCode.INVALID_INPUT: 400,
    VisibilityErrorCode.PARENT_NOT_FOUND: 404,
    VisibilityErrorCode.DATABASE_ERROR: 500,
}


def _require_admin(app_ctx, request):
    decoded_token = app_ctx.verify_firebase_token(request)
    if not decoded_token:
        return None, (app_ctx.jsonify({'error': 'Unauthorized'}), 401)
    if not app_ctx.is_admin_user(decoded_token):
        return None, (app_ctx.jsonify({'error': 'Forbidden'}), 403)
    return decoded_token, None


def _error_response(app_ctx, error):
    status = ERROR_STATUS.get(error.code, 500)
    if status >= 500:
        app_ctx.logger.error(f"Visibility update failed: {error.message} ({error.__cause__})")
    return app_ctx.jsonify(error.to_dict()), status


def _db_unavailable(app_ctx):
    return app_ctx.jsonify({'error': 'Database unavailable', 'code': VisibilityErrorCode.DATABASE_ERROR.value}), 503


def update_visibility(app_ctx, request):
    decoded_token, denied = _require_admin(app_ctx, request)
    if denied:
        return denied
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return app_ctx.jsonify({'error': 'Invalid payload', 'code': VisibilityErrorCode.INVALID_INPUT.value}), 400
    if app_ctx.db is None:
        return _db_unavailable(app_ctx)

    try:
        setting = visibility_service.update_visibility(
            decoded_token.get('uid', ''),
            payload.get('entity_type'),
            payload.get('entity_id'),
            payload.get('is_public'),
            payload.get('parent_roadmap_slug'),
            payload.get('parent_milestone_id'),
            db=app_ctx.db,
            time_module=app_ctx.time,
            logger=app_ctx.logger,
            firestore_module=app_ctx.firestore_module,
        )
    except VisibilityError as error:
        return _error_response(app_ctx, error)
    return app_ctx.jsonify({'ok': True, 'setting': setting.to_dict()})


def update_visibility_batch(app_ctx, request):
    decoded_token, denied = _require_admin(app_ctx, request)
    if denied:
        return denied
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return app_ctx.jsonify({'error': 'Invalid payload', 'code': VisibilityErrorCode.INVALID_INPUT.value}), 400
    if app_ctx.db is None:
        return _db_unavailable(app_ctx)

    try:
        settings = visibility_service.update_visibility_batch(
            decoded_token.get('uid', ''),
            payload.get('updates'),
            db=app_ctx.db,
            time_module=app_ctx.time,
            logger=app_ctx.logger,
        )
    except VisibilityError as error:
        return _error_response(app_ctx, error)
    return app_ctx.jsonify({'ok': True, 'settings': [setting.to_dict() for setting in settings]})


def visibility_overview(app_ctx, request):
    _, denied = _require_admin(app_ctx, request)
    if denied:
        return denied
    if app_ctx.db is None:
        return _db_unavailable(app_ctx)
    try:
        return app_ctx.jsonify(visibility_service.get_visibility_overview(db=app_ctx.db))
    except Exception as e:
        app_ctx.logger.error(f"Error building visibility overview: {e}")
        return app_ctx.jsonify({'error': 'Could not load visibility overview'}), 500


def roadmap_visibility_details(app_ctx, request, slug):
    _, denied = _require_admin(app_ctx, request)
    if denied:
        return denied
    if app_ctx.db is None:
        return _db_unavailable(app_ctx)
    try:
        details = visibility_service.get_roadmap_visibility_details(slug, db=app_ctx.db)
    except Exception as e:
        app_ctx.logger.error(f"Error loading visibility details for roadmap {slug}: {e}")
        return app_ctx.jsonify({'error': 'Could not load visibility details'}), 500
    if details is None:
        return app_ctx.jsonify({'error': 'Roadmap not found'}), 404
    return app_ctx.jsonify(details)


def visibility_audit_log(app_ctx, request):
    _, denied = _require_admin(app_ctx, request)
    if denied:
        return denied
    if app_ctx.db is None:
        return _db_unavailable(app_ctx)
    try:
        entries = audit_service.list_recent_changes(
            db=app_ctx.db,
            limit=request.args.get('limit', 50),
            firestore_module=app_ctx.firestore_module,
        )
    except Exception as e:
        app_ctx.logger.error(f"Error loading visibility audit log: {e}")
        return app_ctx.jsonify({'error': 'Could not load audit log'}), 500
    return app_ctx.jsonify({'entries': entries})


def list_public_roadmaps(app_ctx):
    if app_ctx.db is None:
        return app_ctx.jsonify({'roadmaps': []})
    roadmaps = public_content_service.get_public_roadmaps(db=app_ctx.db, logger=app_ctx.logger)
    return app_ctx.jsonify({'roadmaps': roadmaps})


def get_public_roadmap(app_ctx, slug):
    roadmap = None
    if app_ctx.db is not None:
        roadmap = public_content_service.get_public_roadmap_by_slug(slug, db=app_ctx.db, logger=app_ctx.logger)
    if roadmap is None:
        log_event(app_ctx.logger, logging.DEBUG, 'public_roadmap_not_found', slug=str(slug)[:200])
        return app_ctx.jsonify({'error': 'Roadmap not found'}), 404
    return app_ctx.jsonify({'roadmap': roadmap})

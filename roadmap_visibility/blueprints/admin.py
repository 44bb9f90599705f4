from flask import Blueprint, request

admin_bp = Blueprint('visibility_admin_api', __name__)


@admin_bp.route('/api/admin/visibility', methods=['PUT'])
def update_visibility():
    from roadmap_visibility import runtime
    from roadmap_visibility.services import visibility_api_service

    return visibility_api_service.update_visibility(runtime, request)


@admin_bp.route('/api/admin/visibility/batch', methods=['PUT'])
def update_visibility_batch():
    from roadmap_visibility import runtime
    from roadmap_visibility.services import visibility_api_service

    return visibility_api_service.update_visibility_batch(runtime, request)


@admin_bp.route('/api/admin/visibility/overview', methods=['GET'])
def visibility_overview():
    from roadmap_visibility import runtime
    from roadmap_visibility.services import visibility_api_service

    return visibility_api_service.visibility_overview(runtime, request)


@admin_bp.route('/api/admin/visibility/roadmaps/<slug>', methods=['GET'])
def roadmap_visibility_details(slug):
    from roadmap_visibility import runtime
    from roadmap_visibility.services import visibility_api_service

    return visibility_api_service.roadmap_visibility_details(runtime, request, slug)


@admin_bp.route('/api/admin/visibility/audit', methods=['GET'])
def visibility_audit_log():
    from roadmap_visibility import runtime
    from roadmap_visibility.services import visibility_api_service

    return visibility_api_service.visibility_audit_log(runtime, request)

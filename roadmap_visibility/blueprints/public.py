from flask import Blueprint

public_bp = Blueprint('public_roadmaps_api', __name__)


@public_bp.route('/api/public/roadmaps', methods=['GET'])
def list_public_roadmaps():
    from roadmap_visibility import runtime
    from roadmap_visibility.services import visibility_api_service

    return visibility_api_service.list_public_roadmaps(runtime)


@public_bp.route('/api/public/roadmaps/<slug>', methods=['GET'])
def get_public_roadmap(slug):
    from roadmap_visibility import runtime
    from roadmap_visibility.services import visibility_api_service

    return visibility_api_service.get_public_roadmap(runtime, slug)

"""Process-wide collaborators shared by the request handlers.

Handlers receive this module as ``app_ctx``; tests monkeypatch its attributes.
"""

import time

from firebase_admin import auth, firestore
from flask import jsonify

from roadmap_visibility.config import AppConfig
from roadmap_visibility.logging_config import get_logger
from roadmap_visibility.services import auth_service

logger = get_logger()
config = AppConfig()
db = None
firebase_init_error = ''
firestore_module = firestore
auth_module = auth


def verify_firebase_token(request):
    return auth_service.verify_firebase_token(request, auth_module=auth_module, logger=logger)


def is_admin_user(decoded_token):
    return auth_service.is_admin_user(
        decoded_token,
        admin_uids=config.admin_uids,
        admin_emails=config.admin_emails,
    )

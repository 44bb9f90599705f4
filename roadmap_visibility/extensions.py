import json
import os

import firebase_admin
import sentry_sdk
from firebase_admin import credentials, firestore
from sentry_sdk.integrations.flask import FlaskIntegration

from roadmap_visibility import runtime


def init_sentry(config) -> bool:
    if not config.sentry_dsn:
        return False
    sentry_sdk.init(
        dsn=config.sentry_dsn,
        integrations=[FlaskIntegration()],
        traces_sample_rate=config.sentry_traces_sample_rate,
        send_default_pii=False,
        environment=config.sentry_environment,
        release=config.sentry_release,
    )
    return True


def _load_credentials(config):
    if os.path.exists(config.firebase_credentials_path):
        return credentials.Certificate(config.firebase_credentials_path)
    if not config.firebase_credentials:
        raise ValueError("FIREBASE_CREDENTIALS is not set and firebase-credentials.json was not found.")
    return credentials.Certificate(json.loads(config.firebase_credentials))


def init_firestore(config):
    """Return a Firestore client, or None when Firebase cannot be initialised."""
    try:
        cred = _load_credentials(config)
        if not firebase_admin._apps:
            firebase_admin.initialize_app(cred)
        return firestore.client(), ''
    except Exception as e:
        runtime.logger.warning(f"Firebase disabled; visibility storage unavailable: {e}")
        return None, str(e)


def init_extensions(app, config) -> None:
    """Wire Sentry and Firestore into the runtime used by request handlers."""
    runtime.config = config
    sentry_enabled = init_sentry(config)
    if runtime.db is None:
        runtime.db, runtime.firebase_init_error = init_firestore(config)
    if app is None or not hasattr(app, 'extensions'):
        return
    app.extensions.setdefault('roadmap_visibility', {})
    app.extensions['roadmap_visibility'].update({
        'sentry_enabled': sentry_enabled,
        'firestore_ready': runtime.db is not None,
    })

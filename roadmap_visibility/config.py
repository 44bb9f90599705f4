import os
from dataclasses import dataclass, field


def _split_env_set(name, lower=False):
    raw = os.getenv(name, '') or ''
    values = set()
    for item in raw.split(','):
        item = item.strip()
        if item:
            values.add(item.lower() if lower else item)
    return frozenset(values)


def _float_env(name, default):
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class AppConfig:
    """Central config object, read once from the environment."""

    flask_secret_key: str = field(default_factory=lambda: os.getenv('FLASK_SECRET_KEY', ''))
    log_level: str = field(default_factory=lambda: (os.getenv('LOG_LEVEL', 'INFO') or 'INFO').strip().upper())
    sentry_dsn: str = field(default_factory=lambda: (os.getenv('SENTRY_DSN', '') or '').strip())
    sentry_environment: str = field(default_factory=lambda: (os.getenv('SENTRY_ENVIRONMENT', os.getenv('FLASK_ENV', 'production')) or 'production').strip())
    sentry_release: str = field(default_factory=lambda: (os.getenv('SENTRY_RELEASE', 'roadmap-visibility') or 'roadmap-visibility').strip())
    sentry_traces_sample_rate: float = field(default_factory=lambda: _float_env('SENTRY_TRACES_SAMPLE_RATE', 0.0))
    firebase_credentials: str = field(default_factory=lambda: (os.getenv('FIREBASE_CREDENTIALS', '') or '').strip())
    firebase_credentials_path: str = field(default_factory=lambda: os.getenv('FIREBASE_CREDENTIALS_PATH', 'firebase-credentials.json'))
    admin_emails: frozenset = field(default_factory=lambda: _split_env_set('ADMIN_EMAILS', lower=True))
    admin_uids: frozenset = field(default_factory=lambda: _split_env_set('ADMIN_UIDS'))


def runtime_environment():
    return (
        os.getenv('SENTRY_ENVIRONMENT')
        or os.getenv('FLASK_ENV')
        or os.getenv('ENV')
        or ('production' if os.getenv('RENDER') else 'development')
    ).strip().lower()


def load_config() -> AppConfig:
    config = AppConfig()
    is_dev_like = runtime_environment() in {'development', 'dev', 'local', 'test'}
    if not is_dev_like and not config.flask_secret_key.strip():
        raise RuntimeError('FLASK_SECRET_KEY must be set in non-development environments.')
    return config

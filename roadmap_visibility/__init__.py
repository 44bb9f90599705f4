import os

from dotenv import load_dotenv
from flask import Flask

from .config import load_config
from .extensions import init_extensions
from .logging_config import configure_logging


def create_app(config=None):
    """App factory entrypoint."""
    load_dotenv()
    config = config or load_config()
    configure_logging(config.log_level)

    app = Flask(__name__)
    app.secret_key = config.flask_secret_key or os.urandom(32).hex()

    from .blueprints import admin_bp, public_bp

    app.register_blueprint(admin_bp)
    app.register_blueprint(public_bp)
    init_extensions(app, config)
    return app

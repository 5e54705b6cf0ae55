# backend/salepilot/__init__.py
import logging

from flask import Flask

from .config import Config
from .extensions import db, migrate



def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        # Must land before db.init_app: engines are built there
        app.config.update(test_config)

    _configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app


def _configure_logging(app: Flask) -> None:
    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO
    app.logger.setLevel(level)
    logging.getLogger("salepilot").setLevel(level)

"""
Package: content_steps
Create and configure the Flask app, logging, and database access used by
the content step library
"""

from flask import Flask

from content_steps import config
from content_steps.common import log_handlers
from content_steps.models import db


def create_app(overrides: dict | None = None, logger_name: str = "behave") -> Flask:
    """Build a Flask app bound to the CMS database.

    The app is only a container for configuration, logging and the
    SQLAlchemy session; it serves no routes. Push its app_context() before
    using the SQL content store.
    """
    app = Flask(__name__)
    app.config.from_object(config)
    if overrides:
        app.config.update(overrides)
        if "DATABASE_URI" in overrides and "SQLALCHEMY_DATABASE_URI" not in overrides:
            app.config["SQLALCHEMY_DATABASE_URI"] = overrides["DATABASE_URI"]

    db.init_app(app)
    log_handlers.init_logging(app, logger_name)

    app.logger.info(70 * "*")
    app.logger.info("  C O N T E N T   S T E P S   I N I T  ".center(70, "*"))
    app.logger.info(70 * "*")
    return app

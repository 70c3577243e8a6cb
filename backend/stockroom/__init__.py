# backend/stockroom/__init__.py
import logging

from flask import Flask

from .config import Config
from .extensions import db, migrate, MEDIA_STORE_KEY, NOTIFICATION_SERVICE_KEY



def create_app(config_overrides: dict | None = None, *, media_store=None, notification_service=None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Collaborators (injectable for tests and alternative backends)
    from .services.media_service import LocalMediaStore
    from .services.notification_service import ArrivalNotificationService

    app.extensions[MEDIA_STORE_KEY] = media_store or LocalMediaStore(
        app.config["MEDIA_ROOT"], app.config["MEDIA_URL_PREFIX"]
    )
    app.extensions[NOTIFICATION_SERVICE_KEY] = notification_service or ArrivalNotificationService()

    # Register blueprints
    from .routes.inventory import inventory_bp
    from .routes.orders import orders_bp
    from .routes.notifications import notifications_bp

    app.register_blueprint(inventory_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(notifications_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app

# Overview: Flask extension instances for database and migrations, plus collaborator lookup.

from flask import current_app
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

db = SQLAlchemy()
migrate = Migrate()

MEDIA_STORE_KEY = "stockroom.media_store"
NOTIFICATION_SERVICE_KEY = "stockroom.notification_service"


def get_media_store():
    """MediaStore registered on the current app."""
    return current_app.extensions[MEDIA_STORE_KEY]


def get_notification_service():
    """NotificationService registered on the current app."""
    return current_app.extensions[NOTIFICATION_SERVICE_KEY]

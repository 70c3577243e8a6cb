# backend/stockroom/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/stockroom.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///stockroom.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Receipt photos and documents (LocalMediaStore)
    MEDIA_ROOT = os.environ.get("MEDIA_ROOT", os.path.join(os.getcwd(), "media"))
    MEDIA_URL_PREFIX = os.environ.get("MEDIA_URL_PREFIX", "/media")
    MEDIA_MAX_FILES = int(os.environ.get("MEDIA_MAX_FILES", "20"))
    # Per file, 1 GiB by default
    MEDIA_MAX_FILE_SIZE = int(os.environ.get("MEDIA_MAX_FILE_SIZE", str(1024 * 1024 * 1024)))
    # Whole request body, enforced by Flask while parsing
    MAX_CONTENT_LENGTH = int(os.environ.get("MAX_CONTENT_LENGTH", str(MEDIA_MAX_FILES * MEDIA_MAX_FILE_SIZE)))

    # Users with these roles receive arrival notifications
    ADMIN_ROLES = ("admin", "super_admin", "system_admin")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

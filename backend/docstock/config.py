# backend/docstock/config.py
from __future__ import annotations
import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/docstock.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///docstock.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Collision-resolving allocator (payment numbering)
    ALLOCATOR_MAX_ATTEMPTS = int(os.environ.get("ALLOCATOR_MAX_ATTEMPTS", "50"))
    ALLOCATOR_RETRY_DELAY_MS = int(os.environ.get("ALLOCATOR_RETRY_DELAY_MS", "50"))
    ALLOCATOR_SAMPLE_SIZE = int(os.environ.get("ALLOCATOR_SAMPLE_SIZE", "500"))

    # Counter reservation retry on lock/deadlock errors
    STORAGE_RETRY_ATTEMPTS = int(os.environ.get("STORAGE_RETRY_ATTEMPTS", "3"))
    STORAGE_RETRY_BACKOFF = float(os.environ.get("STORAGE_RETRY_BACKOFF", "0.1"))

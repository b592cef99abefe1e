"""Persistence layer: models, the DBStorage singleton and read-side queries.

The engine is not created at import time; ``create_app`` calls
``storage.init_app(url)`` with the configured database URL.
"""
from models.db_storage import DBStorage

storage = DBStorage()

"""
Database package for the venue booking engine.

This package provides modular database operations:
- connection: Connection management (get_db, close_db, init_db, immediate_transaction)
- schema: Table creation and indexes
- seed: Demo seed data

All public functions are re-exported from this module.
"""

from database.connection import get_db, close_db, init_db, immediate_transaction
from database.schema import drop_tables, create_tables, create_indexes
from database.seed import seed_database

__all__ = [
    # Connection
    'get_db',
    'close_db',
    'init_db',
    'immediate_transaction',
    # Schema
    'drop_tables',
    'create_tables',
    'create_indexes',
    # Seed
    'seed_database',
]

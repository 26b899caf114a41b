"""
Database connection management.
Handles per-request connections, write transactions, initialization, and teardown.
"""

import logging
import os
import sqlite3
from contextlib import contextmanager

from flask import g, current_app

logger = logging.getLogger(__name__)


def get_db():
    """
    Get the request-scoped database connection with row factory.

    Returns:
        sqlite3.Connection: Database connection object
    """
    if 'db' not in g:
        db_path = current_app.config.get('DATABASE_PATH', 'instance/venue_bookings.db')
        if db_path != ':memory:':
            directory = os.path.dirname(db_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
        g.db = sqlite3.connect(
            db_path,
            timeout=current_app.config.get('DATABASE_TIMEOUT', 10)
        )
        g.db.row_factory = sqlite3.Row
        # Enable foreign key constraints
        g.db.execute('PRAGMA foreign_keys = ON')
        # WAL lets readers proceed while a booking write holds the lock
        g.db.execute('PRAGMA journal_mode = WAL')
    return g.db


def close_db(e=None):
    """
    Close database connection.

    Args:
        e: Exception if any (from Flask teardown context)
    """
    db = g.pop('db', None)
    if db is not None:
        db.close()


@contextmanager
def immediate_transaction(db=None):
    """
    Run a block inside BEGIN IMMEDIATE.

    The write lock is taken before the first read, so a check-then-insert
    inside the block cannot interleave with another writer. Commits on
    success, rolls back and re-raises on any error.

    Yields:
        sqlite3.Cursor bound to the transaction
    """
    db = db or get_db()
    if db.in_transaction:
        db.commit()
    db.execute('BEGIN IMMEDIATE')
    cursor = db.cursor()
    try:
        yield cursor
    except Exception:
        db.rollback()
        raise
    else:
        db.commit()


def init_db(seed: bool = True):
    """
    Initialize database: drop existing tables, create new schema, insert seed data.
    WARNING: This will delete all existing data!
    """
    from database.schema import drop_tables, create_tables, create_indexes
    from database.seed import seed_database

    db = get_db()

    drop_tables(db)
    create_tables(db)
    create_indexes(db)

    if seed:
        seed_database(db)

    db.commit()
    logger.info("Database initialized at %s", current_app.config.get('DATABASE_PATH'))

"""
Database schema definitions.
Table creation, indexes, and structure management.
"""


def drop_tables(db):
    """Drop all existing tables."""
    # Disable foreign key constraints before dropping
    db.execute('PRAGMA foreign_keys = OFF')

    tables = [
        'booking_status_history',
        'bookings',
        'promo_codes',
        'spaces',
    ]

    for table in tables:
        db.execute(f'DROP TABLE IF EXISTS {table}')

    # Re-enable foreign key constraints
    db.execute('PRAGMA foreign_keys = ON')


def create_tables(db):
    """Create all database tables."""

    # 1. Spaces (owned by brand owners, read-mostly for the engine).
    # operating_hours, blackout_dates, pricing, booking_rules and
    # cancellation_policy are JSON documents.
    db.execute('''
        CREATE TABLE spaces (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            owner_id TEXT NOT NULL,
            name TEXT NOT NULL,
            capacity INTEGER NOT NULL DEFAULT 1,
            category TEXT NOT NULL DEFAULT 'coworking',
            operating_hours TEXT NOT NULL DEFAULT '{}',
            blackout_dates TEXT NOT NULL DEFAULT '[]',
            pricing TEXT NOT NULL DEFAULT '{}',
            booking_rules TEXT NOT NULL DEFAULT '{}',
            cancellation_policy TEXT,
            is_active INTEGER DEFAULT 1,
            total_bookings INTEGER DEFAULT 0,
            total_revenue REAL DEFAULT 0,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    ''')

    # 2. Promo codes
    db.execute('''
        CREATE TABLE promo_codes (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            code TEXT UNIQUE NOT NULL,
            discount_type TEXT NOT NULL CHECK(discount_type IN ('percentage', 'fixed')),
            value REAL NOT NULL CHECK(value >= 0),
            min_order_amount REAL,
            max_discount_amount REAL,
            valid_from TEXT NOT NULL,
            valid_until TEXT NOT NULL,
            usage_limit INTEGER,
            used_count INTEGER NOT NULL DEFAULT 0,
            is_active INTEGER DEFAULT 1,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
            CHECK(usage_limit IS NULL OR used_count <= usage_limit)
        )
    ''')

    # 3. Bookings (never deleted; terminal statuses end the lifecycle)
    db.execute('''
        CREATE TABLE bookings (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            booking_code TEXT UNIQUE NOT NULL,
            space_id INTEGER NOT NULL REFERENCES spaces(id),
            customer_id TEXT NOT NULL,
            booking_date TEXT NOT NULL,
            start_at TEXT NOT NULL,
            end_at TEXT NOT NULL,
            status TEXT NOT NULL DEFAULT 'pending' CHECK(status IN (
                'pending', 'confirmed', 'checked_in', 'checked_out',
                'completed', 'cancelled', 'no_show'
            )),
            payment_status TEXT NOT NULL DEFAULT 'pending' CHECK(payment_status IN (
                'pending', 'paid', 'failed', 'refunded'
            )),
            pricing TEXT NOT NULL DEFAULT '{}',
            total_amount REAL NOT NULL DEFAULT 0,
            currency TEXT NOT NULL DEFAULT 'INR',
            promo_code TEXT,
            checked_in_at TEXT,
            checked_in_by TEXT,
            checked_out_at TEXT,
            checked_out_by TEXT,
            cancellation_reason TEXT,
            cancelled_at TEXT,
            cancelled_by TEXT,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP,
            updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
            CHECK(start_at < end_at)
        )
    ''')

    # 4. Status history (one row per transition)
    db.execute('''
        CREATE TABLE booking_status_history (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            booking_id INTEGER NOT NULL REFERENCES bookings(id),
            from_status TEXT,
            to_status TEXT NOT NULL,
            changed_by TEXT,
            notes TEXT,
            created_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
    ''')


def create_indexes(db):
    """Create indexes for performance optimization."""
    db.execute('CREATE INDEX IF NOT EXISTS idx_bookings_space_date ON bookings(space_id, booking_date, status)')
    db.execute('CREATE INDEX IF NOT EXISTS idx_bookings_status_start ON bookings(status, start_at)')
    db.execute('CREATE INDEX IF NOT EXISTS idx_bookings_customer ON bookings(customer_id)')
    db.execute('CREATE INDEX IF NOT EXISTS idx_status_history_booking ON booking_status_history(booking_id)')
    db.execute('CREATE INDEX IF NOT EXISTS idx_spaces_owner ON spaces(owner_id, is_active)')

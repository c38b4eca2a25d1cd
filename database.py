import os
import sqlite3
from contextlib import contextmanager

# Database configuration
DATABASE_URL = os.environ.get('DATABASE_URL', '')
if DATABASE_URL and DATABASE_URL.startswith('postgres'):
    # PostgreSQL for production
    USE_POSTGRES = True
    if DATABASE_URL.startswith('postgres://'):
        DATABASE_URL = DATABASE_URL.replace('postgres://', 'postgresql://', 1)
else:
    # SQLite for local development
    USE_POSTGRES = False

DATABASE = os.environ.get(
    'DATABASE_PATH',
    os.path.join(os.path.dirname(os.path.abspath(__file__)), 'quizarena.db')
)

DEFAULT_LIFELINES = '{"fifty_fifty": 2, "time_freeze": 1, "shield": 1}'


def get_placeholder():
    """Return the correct placeholder for the current database."""
    return '%s' if USE_POSTGRES else '?'


def get_db():
    if USE_POSTGRES:
        import psycopg2
        from psycopg2.extras import RealDictCursor
        conn = psycopg2.connect(DATABASE_URL)
        conn.cursor_factory = RealDictCursor
        return conn
    else:
        conn = sqlite3.connect(DATABASE)
        conn.row_factory = sqlite3.Row
        conn.execute('PRAGMA foreign_keys = ON')
        return conn


@contextmanager
def transaction():
    """Open a connection and run the block as one transaction.

    SQLite takes the write lock up front (BEGIN IMMEDIATE) so check-then-write
    sequences serialize. On PostgreSQL callers lock the rows they depend on
    with SELECT ... FOR UPDATE.
    """
    conn = get_db()
    try:
        if not USE_POSTGRES:
            conn.execute('BEGIN IMMEDIATE')
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def integrity_errors():
    """Exception types raised on a unique or foreign key violation."""
    if USE_POSTGRES:
        import psycopg2
        return (psycopg2.IntegrityError,)
    return (sqlite3.IntegrityError,)


def insert_returning_id(cur, sql, params):
    """Run an INSERT and return the new row id on either database."""
    if USE_POSTGRES:
        cur.execute(sql + ' RETURNING id', params)
        return cur.fetchone()['id']
    cur.execute(sql, params)
    return cur.lastrowid


def init_db():
    conn = get_db()
    cur = conn.cursor()

    if USE_POSTGRES:
        # PostgreSQL schema
        cur.execute(f'''
            CREATE TABLE IF NOT EXISTS users (
                id SERIAL PRIMARY KEY,
                username TEXT UNIQUE NOT NULL,
                password TEXT,
                email TEXT UNIQUE,
                name TEXT DEFAULT '',
                provider TEXT DEFAULT 'email',
                provider_id TEXT,
                xp INTEGER DEFAULT 0 NOT NULL,
                coins INTEGER DEFAULT 500 NOT NULL,
                wins INTEGER DEFAULT 0 NOT NULL,
                losses INTEGER DEFAULT 0 NOT NULL,
                games_played INTEGER DEFAULT 0 NOT NULL,
                streak INTEGER DEFAULT 0 NOT NULL,
                lifelines TEXT DEFAULT '{DEFAULT_LIFELINES}' NOT NULL,
                equipped_frame TEXT DEFAULT 'default',
                equipped_theme TEXT DEFAULT 'default',
                owned_frames TEXT DEFAULT '["default"]' NOT NULL,
                owned_themes TEXT DEFAULT '["default"]' NOT NULL,
                owned_badges TEXT DEFAULT '[]' NOT NULL,
                recent_matches TEXT DEFAULT '[]' NOT NULL,
                sound_enabled INTEGER DEFAULT 1 NOT NULL,
                notifications_enabled INTEGER DEFAULT 1 NOT NULL,
                name_changed_at TIMESTAMP,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        cur.execute('''
            CREATE TABLE IF NOT EXISTS friend_requests (
                id SERIAL PRIMARY KEY,
                sender_id INTEGER NOT NULL REFERENCES users(id),
                receiver_id INTEGER NOT NULL REFERENCES users(id),
                status TEXT DEFAULT 'pending' NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                CHECK (sender_id <> receiver_id)
            )
        ''')

        cur.execute('''
            CREATE TABLE IF NOT EXISTS friendships (
                id SERIAL PRIMARY KEY,
                user_id INTEGER NOT NULL REFERENCES users(id),
                friend_id INTEGER NOT NULL REFERENCES users(id),
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE(user_id, friend_id)
            )
        ''')

        cur.execute('''
            CREATE TABLE IF NOT EXISTS support_tickets (
                id SERIAL PRIMARY KEY,
                user_id INTEGER REFERENCES users(id),
                subject TEXT NOT NULL,
                message TEXT NOT NULL,
                status TEXT DEFAULT 'open' NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        pending_pair_index = '''
            CREATE UNIQUE INDEX IF NOT EXISTS idx_friend_requests_pending_pair
            ON friend_requests (LEAST(sender_id, receiver_id), GREATEST(sender_id, receiver_id))
            WHERE status = 'pending'
        '''
    else:
        # SQLite schema
        cur.execute(f'''
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                username TEXT UNIQUE NOT NULL,
                password TEXT,
                email TEXT UNIQUE,
                name TEXT DEFAULT '',
                provider TEXT DEFAULT 'email',
                provider_id TEXT,
                xp INTEGER DEFAULT 0 NOT NULL,
                coins INTEGER DEFAULT 500 NOT NULL,
                wins INTEGER DEFAULT 0 NOT NULL,
                losses INTEGER DEFAULT 0 NOT NULL,
                games_played INTEGER DEFAULT 0 NOT NULL,
                streak INTEGER DEFAULT 0 NOT NULL,
                lifelines TEXT DEFAULT '{DEFAULT_LIFELINES}' NOT NULL,
                equipped_frame TEXT DEFAULT 'default',
                equipped_theme TEXT DEFAULT 'default',
                owned_frames TEXT DEFAULT '["default"]' NOT NULL,
                owned_themes TEXT DEFAULT '["default"]' NOT NULL,
                owned_badges TEXT DEFAULT '[]' NOT NULL,
                recent_matches TEXT DEFAULT '[]' NOT NULL,
                sound_enabled INTEGER DEFAULT 1 NOT NULL,
                notifications_enabled INTEGER DEFAULT 1 NOT NULL,
                name_changed_at TIMESTAMP,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        cur.execute('''
            CREATE TABLE IF NOT EXISTS friend_requests (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                sender_id INTEGER NOT NULL,
                receiver_id INTEGER NOT NULL,
                status TEXT DEFAULT 'pending' NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (sender_id) REFERENCES users(id),
                FOREIGN KEY (receiver_id) REFERENCES users(id),
                CHECK (sender_id <> receiver_id)
            )
        ''')

        cur.execute('''
            CREATE TABLE IF NOT EXISTS friendships (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                friend_id INTEGER NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (user_id) REFERENCES users(id),
                FOREIGN KEY (friend_id) REFERENCES users(id),
                UNIQUE(user_id, friend_id)
            )
        ''')

        cur.execute('''
            CREATE TABLE IF NOT EXISTS support_tickets (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER,
                subject TEXT NOT NULL,
                message TEXT NOT NULL,
                status TEXT DEFAULT 'open' NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (user_id) REFERENCES users(id)
            )
        ''')

        pending_pair_index = '''
            CREATE UNIQUE INDEX IF NOT EXISTS idx_friend_requests_pending_pair
            ON friend_requests (MIN(sender_id, receiver_id), MAX(sender_id, receiver_id))
            WHERE status = 'pending'
        '''

    conn.commit()

    # At most one pending request per unordered pair, enforced by the database too
    index_statements = [
        pending_pair_index,
        'CREATE INDEX IF NOT EXISTS idx_friend_requests_sender ON friend_requests(sender_id, status)',
        'CREATE INDEX IF NOT EXISTS idx_friend_requests_receiver ON friend_requests(receiver_id, status)',
        'CREATE INDEX IF NOT EXISTS idx_friendships_user ON friendships(user_id)',
        'CREATE INDEX IF NOT EXISTS idx_support_tickets_user ON support_tickets(user_id)',
    ]

    for stmt in index_statements:
        try:
            cur.execute(stmt)
        except Exception as e:
            print(f"Index creation note: {e}")
            if USE_POSTGRES:
                conn.rollback()

    conn.commit()
    conn.close()

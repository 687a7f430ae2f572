"""Database schema migrations."""

from __future__ import annotations

from .connection import OptimizedSQLitePool


SCHEMA_SQL: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS sessions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        admin_username TEXT NOT NULL,
        session_token TEXT UNIQUE NOT NULL,
        public_url TEXT NOT NULL,
        is_active BOOLEAN NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_sessions_admin ON sessions(admin_username, is_active, created_at);",
    """
    CREATE TABLE IF NOT EXISTS participants (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        session_id INTEGER NOT NULL,
        name TEXT NOT NULL,
        external_id TEXT NOT NULL,
        email TEXT NOT NULL,
        team TEXT,
        mobile TEXT,
        is_active BOOLEAN NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL,
        FOREIGN KEY(session_id) REFERENCES sessions(id)
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_participants_session ON participants(session_id, is_active, created_at);",
    # Uniqueness only among active rows; deactivated rows keep their history
    """
    CREATE UNIQUE INDEX IF NOT EXISTS uq_participants_session_external_id
    ON participants(session_id, external_id) WHERE is_active = 1;
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS uq_participants_session_email
    ON participants(session_id, email) WHERE is_active = 1;
    """,
    """
    CREATE TABLE IF NOT EXISTS spins (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        session_id INTEGER NOT NULL,
        spin_result TEXT NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY(session_id) REFERENCES sessions(id)
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_spins_session ON spins(session_id, created_at);",
    """
    CREATE TABLE IF NOT EXISTS selections (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        spin_id INTEGER UNIQUE NOT NULL,
        session_id INTEGER NOT NULL,
        participant_id INTEGER NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY(spin_id) REFERENCES spins(id),
        FOREIGN KEY(session_id) REFERENCES sessions(id),
        FOREIGN KEY(participant_id) REFERENCES participants(id),
        UNIQUE(session_id, participant_id)
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_selections_session_order ON selections(session_id, created_at, id);",
    # session_id must always match the owning spin's session
    """
    CREATE TRIGGER IF NOT EXISTS trg_selections_session_matches_spin
    BEFORE INSERT ON selections
    WHEN NEW.session_id IS NOT (SELECT session_id FROM spins WHERE id = NEW.spin_id)
    BEGIN
        SELECT RAISE(ABORT, 'selection session does not match spin session');
    END;
    """,
    # Selections and spins are append-only
    """
    CREATE TRIGGER IF NOT EXISTS trg_selections_immutable
    BEFORE UPDATE ON selections
    BEGIN
        SELECT RAISE(ABORT, 'selections are immutable');
    END;
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_spins_immutable
    BEFORE UPDATE ON spins
    BEGIN
        SELECT RAISE(ABORT, 'spins are immutable');
    END;
    """,
)


async def run_migrations(pool: OptimizedSQLitePool) -> None:
    async with pool.connection() as conn:
        await conn.execute("BEGIN")
        try:
            for statement in SCHEMA_SQL:
                await conn.execute(statement)
        except Exception:
            await conn.rollback()
            raise
        else:
            await conn.commit()

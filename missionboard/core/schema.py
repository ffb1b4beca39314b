"""SQLite schema management (code-first approach)."""

import logging

from missionboard.core import db_client


logger = logging.getLogger(__name__)


# Central list of all collections in the schema, in dependency order
COLLECTIONS = [
    "conciergeries",
    "employees",
    "homes",
    "missions",
    "notification_jobs",
]


TABLE_SCHEMAS: dict[str, str] = {
    "conciergeries": """CREATE TABLE IF NOT EXISTS conciergeries (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT (datetime('now')),
        name TEXT NOT NULL UNIQUE,
        email TEXT NOT NULL,
        tel TEXT NOT NULL DEFAULT '',
        color TEXT NOT NULL DEFAULT '',
        notification_settings TEXT NOT NULL DEFAULT '{}'
    )""",
    "employees": """CREATE TABLE IF NOT EXISTS employees (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT (datetime('now')),
        first_name TEXT NOT NULL,
        family_name TEXT NOT NULL,
        email TEXT NOT NULL,
        tel TEXT NOT NULL DEFAULT '',
        geographic_zone TEXT NOT NULL DEFAULT '',
        conciergerie_name TEXT,
        message TEXT,
        device_ids TEXT NOT NULL DEFAULT '[]',
        status TEXT NOT NULL DEFAULT 'pending' CHECK (status IN ('pending', 'accepted', 'rejected')),
        notification_settings TEXT NOT NULL DEFAULT '{}'
    )""",
    "homes": """CREATE TABLE IF NOT EXISTS homes (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        modified_date TEXT NOT NULL DEFAULT (datetime('now')),
        title TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        objectives TEXT NOT NULL DEFAULT '[]',
        images TEXT NOT NULL DEFAULT '[]',
        geographic_zone TEXT NOT NULL DEFAULT '',
        hours_of_cleaning REAL NOT NULL DEFAULT 0,
        hours_of_gardening REAL NOT NULL DEFAULT 0,
        conciergerie_name TEXT NOT NULL
    )""",
    "missions": """CREATE TABLE IF NOT EXISTS missions (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        modified_date TEXT NOT NULL DEFAULT (datetime('now')),
        home_id INTEGER NOT NULL REFERENCES homes(id),
        tasks TEXT NOT NULL,
        start_date_time TEXT NOT NULL,
        end_date_time TEXT NOT NULL,
        conciergerie_name TEXT NOT NULL,
        employee_id INTEGER,
        status TEXT CHECK (status IS NULL OR status IN ('accepted', 'started', 'completed')),
        allowed_employees TEXT NOT NULL DEFAULT '[]',
        hours REAL NOT NULL DEFAULT 0,
        late_notified INTEGER NOT NULL DEFAULT 0
    )""",
    "notification_jobs": """CREATE TABLE IF NOT EXISTS notification_jobs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        kind TEXT NOT NULL,
        payload TEXT NOT NULL,
        created_at TEXT NOT NULL,
        last_attempt TEXT NOT NULL,
        attempts INTEGER NOT NULL DEFAULT 1
    )""",
}


INDEXES: list[str] = [
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_homes_title ON homes (conciergerie_name, title COLLATE NOCASE)",
    "CREATE INDEX IF NOT EXISTS idx_missions_employee ON missions (employee_id)",
    "CREATE INDEX IF NOT EXISTS idx_missions_conciergerie ON missions (conciergerie_name)",
]


async def init_db(*, db_path: str | None = None) -> None:
    """Create all tables and indexes if they do not exist yet."""
    conn = await db_client.get_connection(db_path=db_path)

    for collection in COLLECTIONS:
        await conn.execute(TABLE_SCHEMAS[collection])
    for index in INDEXES:
        await conn.execute(index)
    await conn.commit()

    logger.info("Database schema initialized", extra={"collections": COLLECTIONS})

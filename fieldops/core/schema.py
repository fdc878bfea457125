"""SQLite schema management (code-first approach)."""

import logging

from fieldops.core import db_client


logger = logging.getLogger(__name__)


# Central list of all tables in creation order (referenced tables first)
TABLE_SCHEMAS: dict[str, str] = {
    "users": """CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        name TEXT NOT NULL,
        email TEXT,
        phone TEXT,
        roles TEXT NOT NULL DEFAULT '["worker"]',
        banned INTEGER NOT NULL DEFAULT 0,
        deleted_at TEXT
    )""",
    "customers": """CREATE TABLE IF NOT EXISTS customers (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        name TEXT NOT NULL,
        phone TEXT NOT NULL,
        UNIQUE(name, phone)
    )""",
    "geo_locations": """CREATE TABLE IF NOT EXISTS geo_locations (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        name TEXT,
        address TEXT,
        lat REAL NOT NULL,
        lng REAL NOT NULL
    )""",
    "tasks": """CREATE TABLE IF NOT EXISTS tasks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT,
        status TEXT NOT NULL DEFAULT 'PREPARING'
            CHECK (status IN ('PREPARING', 'READY', 'IN_PROGRESS', 'COMPLETED', 'ON_HOLD')),
        assignee_ids TEXT NOT NULL DEFAULT '[]',
        completed_assignee_ids TEXT,
        customer_id INTEGER REFERENCES customers(id),
        geo_location_id INTEGER REFERENCES geo_locations(id),
        scheduled_at TEXT,
        started_at TEXT,
        completed_at TEXT,
        expected_revenue TEXT,
        expected_currency TEXT NOT NULL DEFAULT 'VND',
        searchable_text TEXT NOT NULL DEFAULT '',
        created_by TEXT,
        deleted_at TEXT,
        deleted_by TEXT
    )""",
    "activities": """CREATE TABLE IF NOT EXISTS activities (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created_at TEXT NOT NULL,
        topic TEXT NOT NULL,
        user_id TEXT NOT NULL,
        action TEXT NOT NULL,
        payload TEXT NOT NULL DEFAULT '{}'
    )""",
    "attachments": """CREATE TABLE IF NOT EXISTS attachments (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        task_id INTEGER REFERENCES tasks(id) ON DELETE SET NULL,
        provider TEXT NOT NULL,
        pathname TEXT NOT NULL,
        size INTEGER NOT NULL,
        mime_type TEXT NOT NULL,
        original_filename TEXT NOT NULL,
        file_hash TEXT,
        uploaded_by TEXT NOT NULL,
        deleted_at TEXT,
        deleted_by TEXT
    )""",
    "payments": """CREATE TABLE IF NOT EXISTS payments (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        task_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
        amount TEXT NOT NULL,
        currency TEXT NOT NULL DEFAULT 'VND',
        collected_at TEXT NOT NULL,
        collected_by TEXT NOT NULL,
        invoice_attachment_id INTEGER UNIQUE REFERENCES attachments(id) ON DELETE SET NULL,
        notes TEXT
    )""",
}

INDEXES: list[str] = [
    "CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks (status)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_created_at ON tasks (created_at, id)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_scheduled_at ON tasks (scheduled_at, id)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_completed_at ON tasks (completed_at, id)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_customer_id ON tasks (customer_id)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_deleted_at ON tasks (deleted_at)",
    "CREATE INDEX IF NOT EXISTS idx_activities_topic ON activities (topic, id)",
    "CREATE INDEX IF NOT EXISTS idx_activities_user_action ON activities (user_id, action, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_attachments_task_id ON attachments (task_id)",
    "CREATE INDEX IF NOT EXISTS idx_attachments_uploaded_by ON attachments (uploaded_by)",
    "CREATE INDEX IF NOT EXISTS idx_payments_task_id ON payments (task_id)",
    "CREATE INDEX IF NOT EXISTS idx_payments_collected_by ON payments (collected_by)",
    "CREATE INDEX IF NOT EXISTS idx_payments_collected_at ON payments (collected_at)",
]


async def init_db(*, db_path: str | None = None) -> None:
    """Create all tables and indexes (idempotent).

    Args:
        db_path: Optional database path. Defaults to settings.sqlite_db_path.
    """
    logger.info("Starting SQLite schema initialization...")

    conn = await db_client.get_connection(db_path=db_path)
    for table_name, ddl in TABLE_SCHEMAS.items():
        await conn.execute(ddl)
        logger.debug("Ensured table: %s", table_name)

    for index_sql in INDEXES:
        await conn.execute(index_sql)

    await conn.commit()
    logger.info("SQLite schema initialization complete", extra={"tables": list(TABLE_SCHEMAS)})

"""Database schema management."""

from __future__ import annotations

from policy_ledger.repositories.db_pool import ThreadLocalConnection

# Application code enforces referential integrity before deletes; the store
# only guarantees per-row atomicity and unique indexes.
TABLES = (
    """
    CREATE TABLE IF NOT EXISTS customers (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        phone TEXT NOT NULL DEFAULT '',
        email TEXT NOT NULL DEFAULT '',
        created_by TEXT NOT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS insurers (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE,
        code TEXT UNIQUE,
        contact_person TEXT NOT NULL DEFAULT '',
        phone TEXT NOT NULL DEFAULT '',
        email TEXT NOT NULL DEFAULT '',
        address TEXT NOT NULL DEFAULT '',
        notes TEXT NOT NULL DEFAULT '',
        is_active INTEGER NOT NULL DEFAULT 1,
        created_by TEXT NOT NULL,
        updated_by TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS policies (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        insurer_id INTEGER NOT NULL,
        name TEXT NOT NULL,
        code TEXT UNIQUE,
        premium_amount TEXT NOT NULL,
        premium_frequency TEXT NOT NULL,
        currency TEXT NOT NULL,
        term_months INTEGER,
        min_cover_amount TEXT,
        max_cover_amount TEXT,
        active INTEGER NOT NULL DEFAULT 1,
        description TEXT NOT NULL DEFAULT '',
        coverage_details TEXT NOT NULL DEFAULT '',
        created_by TEXT NOT NULL,
        updated_by TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        UNIQUE (insurer_id, name)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS customer_policies (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        customer_id INTEGER NOT NULL,
        policy_id INTEGER NOT NULL,
        insurer_id INTEGER NOT NULL,
        policy_number TEXT NOT NULL UNIQUE,
        status TEXT NOT NULL,
        start_date TEXT,
        end_date TEXT,
        next_premium_due_date TEXT,
        insured_person_id INTEGER,
        sum_insured TEXT,
        premium TEXT,
        premium_frequency TEXT,
        currency TEXT NOT NULL,
        notes TEXT NOT NULL DEFAULT '',
        created_by TEXT NOT NULL,
        updated_by TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS policy_payments (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        customer_policy_id INTEGER NOT NULL,
        payer_id TEXT,
        amount TEXT NOT NULL,
        currency TEXT NOT NULL,
        payment_date TEXT NOT NULL,
        mode_of_payment TEXT NOT NULL,
        reference TEXT NOT NULL DEFAULT '',
        transaction_id TEXT NOT NULL UNIQUE,
        created_by TEXT NOT NULL,
        updated_by TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS claims (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        customer_policy_id INTEGER NOT NULL,
        claim_number TEXT NOT NULL UNIQUE,
        date_of_event TEXT NOT NULL,
        amount_claimed TEXT,
        amount_approved TEXT,
        currency TEXT NOT NULL,
        status TEXT NOT NULL,
        claimant_id TEXT NOT NULL,
        handled_by TEXT,
        notes TEXT NOT NULL DEFAULT '',
        supporting_docs TEXT NOT NULL DEFAULT '[]',
        created_by TEXT NOT NULL,
        updated_by TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS audit_logs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        actor_id TEXT NOT NULL,
        action TEXT NOT NULL,
        entity_type TEXT NOT NULL,
        entity_id INTEGER,
        summary TEXT NOT NULL,
        details TEXT,
        created_at TEXT NOT NULL
    )
    """,
)

INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_policies_insurer ON policies(insurer_id)",
    "CREATE INDEX IF NOT EXISTS idx_customer_policies_customer ON customer_policies(customer_id)",
    "CREATE INDEX IF NOT EXISTS idx_customer_policies_policy ON customer_policies(policy_id)",
    "CREATE INDEX IF NOT EXISTS idx_customer_policies_owner ON customer_policies(created_by)",
    "CREATE INDEX IF NOT EXISTS idx_policy_payments_binding ON policy_payments(customer_policy_id)",
    "CREATE INDEX IF NOT EXISTS idx_claims_binding ON claims(customer_policy_id)",
    "CREATE INDEX IF NOT EXISTS idx_claims_status ON claims(status)",
    "CREATE INDEX IF NOT EXISTS idx_audit_logs_entity ON audit_logs(entity_type, entity_id)",
    "CREATE INDEX IF NOT EXISTS idx_audit_logs_created_at ON audit_logs(created_at)",
)


def initialize_schema(pool: ThreadLocalConnection) -> None:
    """Create required tables and indexes if they do not exist."""
    for statement in TABLES:
        pool.execute(statement)
    for statement in INDEXES:
        pool.execute(statement)

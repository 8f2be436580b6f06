"""
Startup schema probe.

A fresh deployment may come up before its tables are provisioned. Rather
than guessing that from driver error codes on every read, the app inspects
the database once at startup and records which ledger relations exist.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

FACTS_TABLE = "attendance_facts"
AUDIT_TABLE = "attendance_audit_entries"


@dataclass
class SchemaStatus:
    facts_provisioned: bool = True
    audit_provisioned: bool = True
    checked: bool = False


schema_status = SchemaStatus()


async def probe_schema(engine: AsyncEngine, status: SchemaStatus = schema_status) -> SchemaStatus:
    """Inspect the database and update *status* in place."""
    async with engine.connect() as conn:
        tables = await conn.run_sync(lambda sync_conn: set(inspect(sync_conn).get_table_names()))

    status.facts_provisioned = FACTS_TABLE in tables
    status.audit_provisioned = AUDIT_TABLE in tables
    status.checked = True

    if not status.facts_provisioned:
        logger.warning("Table %s is not provisioned; fact reads will return empty results", FACTS_TABLE)
    if not status.audit_provisioned:
        logger.warning("Table %s is not provisioned; audited updates will fail", AUDIT_TABLE)
    return status

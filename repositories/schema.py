# ============================================================================
# JOB STORE SCHEMA
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# STATUS: Core - DDL for the monitoring_jobs table
# PURPOSE: Idempotent schema/table/index creation for the PostgreSQL store
# CREATED: 03 OCT 2026
# ============================================================================
"""
Job Store Schema

DDL for MonitoringJob. Column names follow the model's field names; the
index list is MonitoringJob.__sql_indexes__.

Every statement uses IF NOT EXISTS so deploying twice is harmless.
"""

import logging
from typing import List

from psycopg import sql
from psycopg_pool import AsyncConnectionPool

from core.models import MonitoringJob

logger = logging.getLogger(__name__)


def build_ddl(schema: str) -> List[sql.Composed]:
    """
    Build the DDL statements for the job store.

    Args:
        schema: Target PostgreSQL schema name

    Returns:
        Statements in execution order
    """
    table = sql.Identifier(schema, MonitoringJob.__sql_table__)

    statements = [
        sql.SQL("CREATE SCHEMA IF NOT EXISTS {}").format(sql.Identifier(schema)),
        sql.SQL("""
        CREATE TABLE IF NOT EXISTS {} (
            job_id VARCHAR(128) PRIMARY KEY,
            purchaser_identifier VARCHAR(64) NOT NULL,
            location VARCHAR(256) NOT NULL,
            request_text TEXT NOT NULL,
            amount_paid BOOLEAN NOT NULL DEFAULT FALSE,
            status VARCHAR(32),
            payment JSONB,
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            paid_at TIMESTAMPTZ
        )
        """).format(table),
    ]

    for index_name, columns in MonitoringJob.__sql_indexes__:
        statements.append(
            sql.SQL("CREATE INDEX IF NOT EXISTS {} ON {} ({})").format(
                sql.Identifier(index_name),
                table,
                sql.SQL(", ").join(sql.Identifier(c) for c in columns),
            )
        )

    return statements


async def deploy_schema(pool: AsyncConnectionPool, schema: str) -> int:
    """
    Execute the DDL in one transaction.

    Returns:
        Number of statements executed
    """
    statements = build_ddl(schema)
    async with pool.connection() as conn:
        async with conn.transaction():
            for statement in statements:
                await conn.execute(statement)
    logger.info(f"Deployed job store schema '{schema}' ({len(statements)} statements)")
    return len(statements)


__all__ = ["build_ddl", "deploy_schema"]

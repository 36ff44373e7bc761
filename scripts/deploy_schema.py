#!/usr/bin/env python
# ============================================================================
# SCHEMA DEPLOYMENT SCRIPT
# ============================================================================
# EPOCH: 1 - JOB LIFECYCLE
# PURPOSE: Deploy the job store table to PostgreSQL
# USAGE:
#   python scripts/deploy_schema.py --dry-run    # Preview SQL
#   python scripts/deploy_schema.py              # Execute deployment
#   python scripts/deploy_schema.py --status     # Check current status
# ============================================================================

import argparse
import asyncio
import logging
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from psycopg import sql

from core.config import get_defaults
from core.models import MonitoringJob
from repositories.database import close_pool, init_pool, mask_connection_string, get_connection_string
from repositories.schema import build_ddl, deploy_schema


async def show_status(schema: str, connection: str = None) -> int:
    pool = await init_pool(min_size=1, max_size=1, connection_string=connection)
    try:
        async with pool.connection() as conn:
            result = await conn.execute(
                "SELECT to_regclass(%s) IS NOT NULL",
                (f"{schema}.{MonitoringJob.__sql_table__}",),
            )
            exists = (await result.fetchone())[0]
            print(f"Table {schema}.{MonitoringJob.__sql_table__} exists: {exists}")
            if exists:
                result = await conn.execute(
                    sql.SQL("SELECT COUNT(*), COUNT(*) FILTER (WHERE amount_paid) FROM {}").format(
                        sql.Identifier(schema, MonitoringJob.__sql_table__)
                    )
                )
                total, paid = await result.fetchone()
                print(f"Rows: {total} ({paid} paid)")
    finally:
        await close_pool()
    return 0


async def deploy(schema: str, connection: str = None) -> int:
    pool = await init_pool(min_size=1, max_size=1, connection_string=connection)
    try:
        count = await deploy_schema(pool, schema)
    finally:
        await close_pool()
    print(f"Deployment completed: {count} statements executed")
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Deploy the climate monitor job store schema to PostgreSQL",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/deploy_schema.py --dry-run     # Preview DDL without executing
  python scripts/deploy_schema.py               # Deploy schema
  python scripts/deploy_schema.py --status      # Check current installation

Environment Variables:
  DATABASE_URL          Full PostgreSQL connection string
  POSTGRES_HOST         Database host (default: localhost)
  POSTGRES_DB           Database name (default: postgres)
  POSTGRES_USER         Database user (default: postgres)
  POSTGRES_PASSWORD     Database password
  POSTGRES_PORT         Database port (default: 5432)
  POSTGRES_SSLMODE      SSL mode (default: prefer)
  MONITOR_DB_SCHEMA     Target schema (default: climate)
        """
    )
    parser.add_argument("--dry-run", action="store_true", help="Print DDL without executing")
    parser.add_argument("--status", action="store_true", help="Check current installation status")
    parser.add_argument("--connection", type=str, help="PostgreSQL connection string (overrides environment)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    schema = get_defaults().store.schema

    print("=" * 70)
    print("CLIMATE MONITOR - Schema Deployment")
    print("=" * 70)
    print(f"Target: {mask_connection_string(args.connection or get_connection_string())}")
    print(f"Schema: {schema}")
    print("=" * 70)

    if args.dry_run:
        for statement in build_ddl(schema):
            print(statement.as_string().strip() + ";\n")
        return

    if args.status:
        sys.exit(asyncio.run(show_status(schema, args.connection)))

    sys.exit(asyncio.run(deploy(schema, args.connection)))


if __name__ == "__main__":
    main()

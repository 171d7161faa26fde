"""
Company Database Management Script.

Command-line utility for administering per-company databases. Every company
has its own PostgreSQL database named {TENANT_DATABASE_PREFIX}_{company_key};
in normal operation these are created automatically on a company's first
legitimate access. This script covers the manual cases.

**Commands:**
    - list: List every company database with its size on disk
    - create <company_name>: Provision a company database (idempotent)
    - delete <company_name> --yes: Terminate connections and drop the database
    - exists <company_name>: Check whether a company database exists
    - stats <company_name>: Count the company's users by role

**Example Usage:**
    ```bash
    python scripts/manage_tenant_databases.py list
    python scripts/manage_tenant_databases.py create "Acme Corp"
    python scripts/manage_tenant_databases.py stats acme_corp
    python scripts/manage_tenant_databases.py delete acme_corp --yes
    ```

**Configuration:**
    POSTGRES_HOST, POSTGRES_PORT, POSTGRES_USER, POSTGRES_PASSWORD and
    TENANT_DATABASE_PREFIX, from the environment or a .env file.

**Exit Codes:**
    - 0 on success
    - 1 on failure (invalid name, database errors, company not found)
    - 2 on usage errors, or delete without --yes
"""

import argparse
import asyncio
from pathlib import Path
import sys

from dotenv import load_dotenv
from loguru import logger

load_dotenv()

# Add the project's root directory to the Python path
sys.path.append(str(Path(__file__).parent.parent.resolve()))

from common.config import get_settings  # noqa: E402
from common.database import TenantDatabaseManager  # noqa: E402
from common.exceptions import TenantError  # noqa: E402
from common.logging import setup_logging  # noqa: E402

SERVICE_NAME = "tenant-cli"


def _format_size(size_on_disk: int | None) -> str:
    if size_on_disk is None:
        return "-"
    size = float(size_on_disk)
    for unit in ("B", "kB", "MB"):
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage per-company databases.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("list", help="List all company databases.")

    create = subparsers.add_parser("create", help="Create a company database if it does not exist.")
    create.add_argument("company_name", help="Company name, e.g. 'Acme Corp'.")

    delete = subparsers.add_parser("delete", help="Drop a company database. Irreversible.")
    delete.add_argument("company_name", help="Company name or key.")
    delete.add_argument("--yes", action="store_true", help="Confirm the deletion.")

    exists = subparsers.add_parser("exists", help="Check whether a company database exists.")
    exists.add_argument("company_name", help="Company name or key.")

    stats = subparsers.add_parser("stats", help="Count the users of a company by role.")
    stats.add_argument("company_name", help="Company name or key.")

    return parser


async def run_command(args: argparse.Namespace, manager: TenantDatabaseManager) -> int:
    """
    Execute one parsed command against a manager.

    Returns:
        Process exit code.
    """
    if args.command == "list":
        records = await manager.list_tenant_databases(include_size=True)
        if not records:
            logger.info("No company databases found.")
            return 0
        logger.info(f"Found {len(records)} company database(s):")
        for record in records:
            logger.info(
                f"  {record.tenant_key:<30} {record.database_name:<45} {_format_size(record.size_on_disk)}"
            )
        return 0

    if args.command == "create":
        database_name = await manager.ensure(args.company_name)
        logger.info(f"✓ Database ready: {database_name}")
        return 0

    if args.command == "delete":
        if not args.yes:
            logger.error("Refusing to delete without --yes. This operation is irreversible.")
            return 2
        database_name = manager.provisioner.database_name(args.company_name)
        await manager.delete(args.company_name, actor="manage_tenant_databases")
        logger.info(f"✓ Database deleted: {database_name}")
        return 0

    if args.command == "exists":
        database_name = manager.provisioner.database_name(args.company_name)
        exists = await manager.exists(args.company_name)
        logger.info(f"{database_name}: {'exists' if exists else 'does not exist'}")
        return 0 if exists else 1

    if args.command == "stats":
        stats = await manager.tenant_stats(args.company_name)
        logger.info(
            f"Users: {stats['total_users']} total, "
            f"{stats['managers']} manager(s), {stats['employees']} employee(s)"
        )
        return 0

    logger.error(f"Unknown command: {args.command}")
    return 2


async def main(argv: list[str] | None = None, manager: TenantDatabaseManager | None = None) -> int:
    """
    Parse arguments, run one command, and always shut the manager down.

    Args:
        argv: Command-line arguments. Defaults to sys.argv[1:].
        manager: Optional prebuilt manager. Built from settings when omitted.

    Returns:
        Process exit code.
    """
    args = build_parser().parse_args(argv)
    setup_logging(SERVICE_NAME, log_to_files=False)

    if manager is None:
        manager = TenantDatabaseManager.from_settings(get_settings(SERVICE_NAME))

    try:
        return await run_command(args, manager)
    except TenantError as e:
        logger.error(f"✗ {e.message}")
        if e.internal_error is not None:
            logger.debug(f"Cause: {e.internal_error}")
        return 1
    finally:
        await manager.shutdown()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))

"""Bulk payroll command line interface.

Provides operator tools for:
- Schema creation
- Batch creation
- Running, resuming and pausing batches
- Progress and failure inspection

Usage:
    python -m bulk_payroll.cli init-db
    python -m bulk_payroll.cli create --name X --start 2024-01-01 --end 2024-01-14 --employee-ids A,B
    python -m bulk_payroll.cli start --batch-id X
    python -m bulk_payroll.cli pause --batch-id X
    python -m bulk_payroll.cli status --batch-id X
    python -m bulk_payroll.cli failures --batch-id X
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import date
from typing import Any, Awaitable, Callable
from uuid import UUID

from bulk_payroll.calculators import PayPolicy, to_cents
from bulk_payroll.config import configure_logging, get_settings
from bulk_payroll.database import create_schema, dispose_db, get_session, init_db
from bulk_payroll.services import (
    BulkPayrollError,
    BulkPayrollPipeline,
    BulkPayrollService,
    ProgressSnapshot,
)


def parse_date(s: str) -> date:
    """Parse ISO date string."""
    return date.fromisoformat(s)


def parse_uuid(s: str) -> UUID:
    """Parse UUID string."""
    return UUID(s)


def parse_uuid_list(s: str) -> list[UUID]:
    """Parse comma-separated UUIDs."""
    return [UUID(part.strip()) for part in s.split(",") if part.strip()]


class BulkPayrollCli:
    """Bulk payroll command line interface."""

    def __init__(self) -> None:
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="python -m bulk_payroll.cli",
            description="Bulk payroll operator tools",
        )
        parser.add_argument(
            "--log-level",
            type=str,
            default=None,
            help="Logging level (default: LOG_LEVEL or INFO)",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        subparsers.add_parser("init-db", help="Create database tables")

        create = subparsers.add_parser("create", help="Create a draft batch")
        create.add_argument("--name", type=str, required=True, help="Batch name")
        create.add_argument("--description", type=str, help="Batch description")
        create.add_argument(
            "--start",
            type=parse_date,
            required=True,
            help="Pay period start (YYYY-MM-DD)",
        )
        create.add_argument(
            "--end",
            type=parse_date,
            required=True,
            help="Pay period end (YYYY-MM-DD)",
        )
        create.add_argument(
            "--employee-ids",
            type=parse_uuid_list,
            required=True,
            help="Comma-separated employee profile IDs",
        )
        create.add_argument("--created-by", type=parse_uuid, help="Acting profile ID")

        for name, help_text in (
            ("start", "Start or resume a batch"),
            ("pause", "Pause a processing batch"),
            ("status", "Show batch progress"),
            ("failures", "List failed items of a batch"),
        ):
            sub = subparsers.add_parser(name, help=help_text)
            sub.add_argument(
                "--batch-id",
                type=parse_uuid,
                required=True,
                help="Bulk payroll batch ID",
            )

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run CLI with given arguments."""
        parsed = self.parser.parse_args(args)
        configure_logging(parsed.log_level)

        if not parsed.command:
            self.parser.print_help()
            return 1

        commands: dict[str, Callable[[argparse.Namespace], Awaitable[int]]] = {
            "init-db": self._cmd_init_db,
            "create": self._cmd_create,
            "start": self._cmd_start,
            "pause": self._cmd_pause,
            "status": self._cmd_status,
            "failures": self._cmd_failures,
        }
        return asyncio.run(self._dispatch(commands[parsed.command], parsed))

    async def _dispatch(
        self,
        command: Callable[[argparse.Namespace], Awaitable[int]],
        args: argparse.Namespace,
    ) -> int:
        try:
            return await command(args)
        except BulkPayrollError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        finally:
            await dispose_db()

    async def _cmd_init_db(self, args: argparse.Namespace) -> int:
        engine, _ = init_db()
        await create_schema(engine)
        print("Schema created")
        return 0

    async def _cmd_create(self, args: argparse.Namespace) -> int:
        async with get_session() as session:
            batch = await BulkPayrollService(session).create_batch(
                name=args.name,
                description=args.description,
                period_start=args.start,
                period_end=args.end,
                employee_ids=args.employee_ids,
                created_by=args.created_by,
            )
            self._print_json(
                {
                    "id": batch.id,
                    "name": batch.name,
                    "status": batch.status,
                    "total_records": batch.total_records,
                }
            )
        return 0

    async def _cmd_start(self, args: argparse.Namespace) -> int:
        async def report(snapshot: ProgressSnapshot) -> None:
            print(
                f"[{snapshot.status}] {snapshot.processed_records}/{snapshot.total_records} "
                f"processed, {snapshot.failed_records} failed",
                file=sys.stderr,
            )

        policy = PayPolicy.from_settings(get_settings())
        async with get_session() as session:
            result = await BulkPayrollPipeline(session, policy).start_batch(
                args.batch_id, on_progress=report
            )
        self._print_json(
            {
                "batch_id": result.batch_id,
                "status": result.status,
                "message": result.message,
                "processed": result.processed,
                "succeeded": result.succeeded,
                "failed": result.failed,
                "total_amount": to_cents(result.total_amount),
                "failures": [
                    {"profile_id": f.profile_id, "error": f.error_message}
                    for f in result.failures
                ],
            }
        )
        return 0 if result.status != "failed" else 1

    async def _cmd_pause(self, args: argparse.Namespace) -> int:
        async with get_session() as session:
            batch = await BulkPayrollService(session).pause_batch(args.batch_id)
            print(f"Bulk payroll {batch.id} is {batch.status}")
        return 0

    async def _cmd_status(self, args: argparse.Namespace) -> int:
        async with get_session() as session:
            batch = await BulkPayrollService(session).get_batch(args.batch_id)
            self._print_json(
                {
                    "id": batch.id,
                    "name": batch.name,
                    "status": batch.status,
                    "pay_period": [batch.pay_period_start, batch.pay_period_end],
                    "total_records": batch.total_records,
                    "processed_records": batch.processed_records,
                    "succeeded_records": batch.succeeded_records,
                    "failed_records": batch.failed_records,
                    "total_amount": to_cents(batch.total_amount),
                }
            )
        return 0

    async def _cmd_failures(self, args: argparse.Namespace) -> int:
        async with get_session() as session:
            service = BulkPayrollService(session)
            await service.get_batch(args.batch_id)
            failures = await service.get_failure_manifest(args.batch_id)
        for failure in failures:
            print(f"{failure.profile_id}\t{failure.error_message}")
        print(f"{len(failures)} failed item(s)", file=sys.stderr)
        return 0

    def _print_json(self, data: dict[str, Any]) -> None:
        print(json.dumps(data, indent=2, default=str))


def main() -> int:
    """CLI entry point."""
    return BulkPayrollCli().run()


if __name__ == "__main__":
    sys.exit(main())

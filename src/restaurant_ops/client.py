"""
CLI client — approves pending orders through Temporal and prints menu stats.

Usage:
    # Approve a pending order and post kitchen/bar tickets:
    python -m restaurant_ops.client approve --pending-id 665f1c...

    # Approve without announcing, querying progress once after starting:
    python -m restaurant_ops.client approve --pending-id 665f1c... --no-announce --query

    # Print an owner's menu statistics as JSON:
    python -m restaurant_ops.client stats --owner-id owner-1
"""

import argparse
import asyncio
import logging
import sys

from temporalio.client import Client
from temporalio.contrib.pydantic import pydantic_data_converter

from restaurant_ops.domain.models import ApprovalRequest
from restaurant_ops.logging_setup import configure_logging
from restaurant_ops.services.factory import ServiceFactory
from restaurant_ops.workflows import ApprovePendingOrderWorkflow

logger = logging.getLogger(__name__)


async def approve(args: argparse.Namespace) -> int:
    settings = ServiceFactory.get_settings()
    pending = await ServiceFactory.get_ledger().get_pending_order(args.pending_id)
    if pending is None:
        logger.error("Pending order %s not found", args.pending_id)
        return 1

    client = await Client.connect(
        settings.temporal_address,
        namespace=settings.temporal_namespace,
        data_converter=pydantic_data_converter,
    )
    req = ApprovalRequest(pending_order_id=args.pending_id, pending_order=pending, announce=not args.no_announce)
    # One workflow id per pending order, so a double click cannot approve twice.
    workflow_id = f"approve-{args.pending_id}"

    logger.info("Starting workflow %s", workflow_id)
    handle = await client.start_workflow(
        ApprovePendingOrderWorkflow.run,
        req,
        id=workflow_id,
        task_queue=settings.approval_task_queue,
    )

    if args.query:
        status = await handle.query(ApprovePendingOrderWorkflow.get_status)
        logger.info("Query result: %s", status)

    result = await handle.result()
    print(result.model_dump_json(indent=2))
    return 0 if result.status == "COMPLETED" else 2


async def stats(args: argparse.Namespace) -> int:
    menu_stats = await ServiceFactory.get_ledger().compute_menu_stats(args.owner_id)
    print(menu_stats.model_dump_json(indent=2))
    return 0


async def run_client(args: argparse.Namespace) -> int:
    configure_logging(ServiceFactory.get_settings().log_level)
    try:
        return await args.handler(args)
    finally:
        await ServiceFactory.aclose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Restaurant order operations")
    commands = parser.add_subparsers(dest="command", required=True)

    approve_cmd = commands.add_parser("approve", help="Approve a pending order via Temporal")
    approve_cmd.add_argument("--pending-id", required=True, help="Pending order document id")
    approve_cmd.add_argument("--no-announce", action="store_true", help="Do not post kitchen/bar tickets")
    approve_cmd.add_argument("--query", action="store_true", help="Query workflow status once after starting")
    approve_cmd.set_defaults(handler=approve)

    stats_cmd = commands.add_parser("stats", help="Print menu statistics for an owner")
    stats_cmd.add_argument("--owner-id", required=True, help="Restaurant owner id")
    stats_cmd.set_defaults(handler=stats)
    return parser


def main() -> None:
    args = build_parser().parse_args()
    sys.exit(asyncio.run(run_client(args)))


if __name__ == "__main__":
    main()

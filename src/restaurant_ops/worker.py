"""
Temporal worker — polls the order-approval task queue.

Registers ApprovePendingOrderWorkflow and the approval activities. The
activities share the MongoDB and Telegram clients cached by ServiceFactory,
which are closed when the worker stops.

Run with:
    python -m restaurant_ops.worker
"""

import asyncio
import logging

from temporalio.client import Client
from temporalio.contrib.pydantic import pydantic_data_converter
from temporalio.worker import Worker

from restaurant_ops.activities import ALL_ACTIVITIES
from restaurant_ops.logging_setup import configure_logging
from restaurant_ops.services.factory import ServiceFactory
from restaurant_ops.workflows import ApprovePendingOrderWorkflow


async def run_worker() -> None:
    settings = ServiceFactory.get_settings()
    configure_logging(settings.log_level)
    logger = logging.getLogger(__name__)

    # The same data_converter must be used by the client, or Pydantic
    # payloads will not deserialize.
    client = await Client.connect(
        settings.temporal_address,
        namespace=settings.temporal_namespace,
        data_converter=pydantic_data_converter,
    )
    logger.info("Connected to Temporal — starting worker on queue %r", settings.approval_task_queue)

    worker = Worker(
        client,
        task_queue=settings.approval_task_queue,
        workflows=[ApprovePendingOrderWorkflow],
        activities=ALL_ACTIVITIES,
    )
    try:
        await worker.run()
    finally:
        await ServiceFactory.aclose()


def main() -> None:
    asyncio.run(run_worker())


if __name__ == "__main__":
    main()

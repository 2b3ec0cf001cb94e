"""RQ worker entry point for the AI job queues."""

import logging

from recruitq.core.config import settings
from recruitq.workers.runner import run_workers

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

if __name__ == "__main__":
    logger.info("Starting RQ workers...")
    run_workers()

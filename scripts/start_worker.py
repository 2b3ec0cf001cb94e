#!/usr/bin/env python3
"""Start RQ workers for background AI job processing.

Usage:
    python scripts/start_worker.py [--queue cv-analysis] [--queue job-requirements] [--burst]

Options:
    --queue: Queue to listen to, may be repeated (default: all queues)
    --burst: Run in burst mode (process all jobs then exit)
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from recruitq.core.config import settings
from recruitq.models.job import QueueName
from recruitq.workers.runner import run_workers

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


def main():
    """Start the RQ workers."""
    parser = argparse.ArgumentParser(description="Start RQ workers for AI job queues")
    parser.add_argument(
        "--queue",
        action="append",
        choices=[name.value for name in QueueName],
        help="Queue to listen to, may be repeated (default: all queues)"
    )
    parser.add_argument(
        "--burst",
        action="store_true",
        help="Run in burst mode (process all jobs then exit)"
    )
    args = parser.parse_args()

    logger.info(f"Connecting to Redis: {settings.redis_url}")
    logger.info(f"Worker listening on queues: {', '.join(args.queue) if args.queue else 'all'}")
    logger.info(f"Burst mode: {args.burst}")

    try:
        run_workers(args.queue, burst=args.burst)
    except KeyboardInterrupt:
        logger.info("Worker stopped by user")
    except Exception as e:
        logger.error(f"Worker error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()

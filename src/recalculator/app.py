"""
Command line entry point for the recalculator component.
- Scores every active artist with a public track for one time range
- Persists the scores and reports the finished job
"""

import argparse
import asyncio
import sys
from typing import Any, Dict, Optional

from recalculator.service import BatchRecalculationCoordinator
from shared.db.database import db
from shared.utils.configs import base_configs
from shared.utils.helpers import dumps
from shared.utils.logger import logger
from shared.utils.time_range import VALID_TIME_RANGES
from shared.utils.types import JobStatus


async def app(
    time_range: str, coordinator: Optional[BatchRecalculationCoordinator] = None
) -> Dict[str, Any]:
    """
    Run one recalculation to completion.

    Args:
        time_range: Range token to recalculate
        coordinator: Coordinator to run through, a new one by default

    Returns:
        The finished job, or the in-flight job when another run holds the range
    """
    coordinator = coordinator or BatchRecalculationCoordinator()
    try:
        job = await coordinator.trigger(time_range)
        if not job.accepted:
            logger.warning(
                f"Recalculation for {job.time_range} already running as {job.job_id}"
            )
            return job.to_dict()
        finished = await coordinator.wait(job.time_range)
        return finished.to_dict()
    finally:
        await db.close()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Recalculate and persist artist strength scores"
    )
    parser.add_argument(
        "--time-range",
        type=str,
        default=base_configs["default_time_range"],
        help=f"Range to recalculate, one of {', '.join(VALID_TIME_RANGES)}",
    )
    args = parser.parse_args(argv)

    result = asyncio.run(app(args.time_range))
    logger.info(f"Recalculation result: {dumps(result)}")
    return 1 if result["status"] == JobStatus.FAILED.value else 0


if __name__ == "__main__":
    sys.exit(main())

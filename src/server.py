"""Background runner for the push relay.

Runs the Protean Engine (asynchronous event handlers and projectors) next to
two periodic jobs:
- CleanupSweep: deletes terminal notifications past the retention window
- ProcessRearmedNotifications: sends notifications re-armed after a failure

Usage:
    python src/server.py               # Engine + periodic jobs
    python src/server.py --jobs-only   # Periodic jobs only (sync event processing)
"""

import argparse
import asyncio

import structlog
from protean.server.engine import Engine

logger = structlog.get_logger(__name__)


def _get_domain():
    from pushrelay.domain import pushrelay

    pushrelay.init()
    return pushrelay


async def _every(domain, interval_seconds: float, name: str, make_command):
    """Process ``make_command()`` every ``interval_seconds`` until cancelled."""
    while True:
        try:
            with domain.domain_context():
                result = domain.process(make_command(), asynchronous=False)
            logger.info("Periodic job finished", job=name, processed=result)
        except Exception as e:
            logger.error("Periodic job failed", job=name, error=str(e))
        await asyncio.sleep(interval_seconds)


async def run(jobs_only: bool = False):
    domain = _get_domain()

    from pushrelay.notification.redispatch import ProcessRearmedNotifications
    from pushrelay.notification.retention import CleanupSweep
    from pushrelay.settings import get_settings

    settings = get_settings()
    tasks = [
        _every(domain, settings.sweep_interval_hours * 3600, "cleanup-sweep", CleanupSweep),
        _every(
            domain,
            settings.redispatch_interval_seconds,
            "redispatch",
            ProcessRearmedNotifications,
        ),
    ]
    if not jobs_only:
        tasks.append(Engine(domain).run())

    await asyncio.gather(*tasks)


def main():
    parser = argparse.ArgumentParser(description="Push relay background runner")
    parser.add_argument(
        "--jobs-only",
        action="store_true",
        help="Run only the periodic sweep and redispatch jobs",
    )
    args = parser.parse_args()

    asyncio.run(run(jobs_only=args.jobs_only))


if __name__ == "__main__":
    main()

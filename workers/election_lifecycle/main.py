"""Asynchronous worker running the election lifecycle scan."""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime

from clubvote.core.config import get_settings
from clubvote.db.session import SessionLocal
from clubvote.services.lifecycle import ElectionLifecycleManager, LifecycleReport
from clubvote.services.notifications import HTTPNotificationSender
from clubvote.workers.observability import configure_worker, worker_span

LOGGER = logging.getLogger(__name__)


async def run_once(manager: ElectionLifecycleManager, *, now: datetime | None = None) -> LifecycleReport:
    """Execute a single lifecycle scan."""

    with worker_span("election_lifecycle.cycle"):
        report = manager.manage_election_lifecycles(now=now or datetime.now(tz=UTC))
        LOGGER.info(
            "election lifecycle cycle complete",
            extra={
                "opened": report.opened,
                "closed": report.closed,
                "errors": sorted(report.errors),
                "registry_persisted": report.registry_persisted,
            },
        )
        return report


async def run() -> None:
    """Continuously scan elections at the configured cadence."""

    settings = get_settings()
    configure_worker("election-lifecycle-worker")
    interval = max(60, settings.lifecycle_interval_seconds)
    sender = HTTPNotificationSender.from_settings(settings)
    LOGGER.info("starting election lifecycle worker", extra={"interval_seconds": interval})
    while True:
        with SessionLocal() as session:
            manager = ElectionLifecycleManager(session, sender=sender, settings=settings)
            await run_once(manager)
            session.commit()
        await asyncio.sleep(interval)


def main() -> None:
    try:
        asyncio.run(run())
    except KeyboardInterrupt:  # pragma: no cover - manual shutdown
        LOGGER.info("election lifecycle worker stopped")


if __name__ == "__main__":
    main()

from __future__ import annotations

import logging

from apscheduler.schedulers.background import BackgroundScheduler

from ..common.event_loop import EngineLoop
from ..core.constants import MAX_ROLLOVER_CHECK_SECONDS
from .service import PunchStateMachine

logger = logging.getLogger(__name__)

ROLLOVER_JOB_ID = "punch-day-rollover"


def _check_rollover(machine: PunchStateMachine, engine: EngineLoop):
    return engine.spawn(machine.sync_day())


def initialize_scheduler(
    machine: PunchStateMachine,
    engine: EngineLoop,
    *,
    interval_seconds: float = MAX_ROLLOVER_CHECK_SECONDS,
    start: bool = True,
) -> BackgroundScheduler:
    """Background job that checks for the civil day rollover.

    The job only schedules `sync_day` onto the engine loop; the state
    machine is never touched from the scheduler thread.
    """
    interval = min(float(interval_seconds), MAX_ROLLOVER_CHECK_SECONDS)
    scheduler = BackgroundScheduler(daemon=True)
    scheduler.add_job(
        _check_rollover,
        "interval",
        args=[machine, engine],
        seconds=interval,
        id=ROLLOVER_JOB_ID,
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    if start:
        scheduler.start()
        logger.info("Rollover check scheduled every %.0fs", interval)
    return scheduler

from __future__ import annotations

from datetime import date

from src.punch_engine.punch_engine.common.event_loop import EngineLoop
from src.punch_engine.punch_engine.container import build_container
from src.punch_engine.punch_engine.punch.scheduler import ROLLOVER_JOB_ID, initialize_scheduler

import config.testing as settings


def test_rollover_job_runs_on_engine_loop(clock):
    container = build_container(settings, clock=clock)
    engine = container.engine
    machine = container.punch_machine
    try:
        scheduler = initialize_scheduler(machine, engine, interval_seconds=600, start=False)
        job = scheduler.get_job(ROLLOVER_JOB_ID)

        assert job.trigger.interval.total_seconds() == 60

        clock.advance(days=1)
        assert job.func(*job.args).result(timeout=5) is True

        day = engine.call(lambda: machine._state)
        assert day.local_date == date(2025, 1, 7)
        assert day.phase.value == "NOT_PUNCHED"
    finally:
        engine.stop()


def test_engine_loop_runs_coroutines_and_callables():
    engine = EngineLoop(name="test-loop")

    async def add(a, b):
        return a + b

    try:
        assert engine.run(add(1, 2)) == 3
        assert engine.spawn(add(2, 3)).result(timeout=1) == 5
        assert engine.call(max, 4, 9) == 9
    finally:
        engine.stop()

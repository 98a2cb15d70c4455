"""Example: drive the punch engine without Flask.

Controllers are a thin layer; everything below goes through the container.
"""

import asyncio
import importlib
import os

from dotenv import load_dotenv

from config import get_settings_module

from src.punch_engine.punch_engine.container import build_container
from src.punch_engine.punch_engine.core.enums import PunchKind
from src.punch_engine.punch_engine.geofence.model import Coordinate


async def run(container) -> None:
    client = container.session_client
    if not client.sessions.snapshot().is_authenticated:
        await client.login(os.environ["PUNCH_USERNAME"], os.environ["PUNCH_PASSWORD"])

    machine = container.punch_machine
    container.location_provider.report(Coordinate(latitude=23.0352554, longitude=72.5616832, accuracy=12.0))

    result = await machine.request_punch(PunchKind.IN)
    print(result.to_dict())
    print(machine.state.to_dict())

    await client.aclose()


def main():
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    container = build_container(settings)
    asyncio.run(run(container))


if __name__ == "__main__":
    main()

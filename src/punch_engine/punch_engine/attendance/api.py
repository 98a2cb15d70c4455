from __future__ import annotations

import logging
from datetime import datetime

from ..common.datetime_utils import to_backend_format
from ..core.constants import DEFAULT_TIMEZONE_OFFSET_MINUTES
from ..core.enums import PunchKind
from ..geofence.model import Coordinate
from ..session.client import ResilientSessionClient
from ..session.model import ApiRequest
from .model import PunchConfirmation, RemotePunchStatus

logger = logging.getLogger(__name__)

PUNCH_PATH = "/emp-punch/"
PUNCH_STATUS_PATH = "/dashboard-punch-status/"


class RemoteAttendanceApi:
    """Backend attendance endpoints, always called with the bearer session."""

    def __init__(
        self,
        client: ResilientSessionClient,
        *,
        timezone_offset_minutes: int = DEFAULT_TIMEZONE_OFFSET_MINUTES,
        is_away: bool = False,
    ):
        self._client = client
        self._offset = timezone_offset_minutes
        self._is_away = is_away

    async def submit_punch(self, kind: PunchKind, requested_at: datetime, location: Coordinate) -> PunchConfirmation:
        body = {
            "PunchType": kind.wire_code,
            "Latitude": str(location.latitude),
            "Longitude": str(location.longitude),
            "IsAway": self._is_away,
            "DateTime": to_backend_format(requested_at, self._offset),
        }
        if location.accuracy is not None:
            body["Accuracy"] = location.accuracy

        response = await self._client.send(ApiRequest("POST", PUNCH_PATH, json=body), requires_auth=True)
        confirmation = PunchConfirmation.from_body(kind, response.body, timezone_offset_minutes=self._offset)
        logger.info("Punch %s recorded (server time %s)", kind.value, confirmation.confirmed_at_utc)
        return confirmation

    async def fetch_punch_status(self) -> RemotePunchStatus:
        response = await self._client.send(ApiRequest("GET", PUNCH_STATUS_PATH), requires_auth=True)
        return RemotePunchStatus.from_body(response.body, timezone_offset_minutes=self._offset)

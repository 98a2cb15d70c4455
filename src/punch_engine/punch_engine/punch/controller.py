from __future__ import annotations

import asyncio
import logging

from flask import Flask, jsonify, request

from ..common.datetime_utils import parse_iso_date
from ..core.enums import PunchFailure, PunchKind
from ..core.exceptions import PunchError, ValidationError
from ..container import Container
from ..geofence.location import ReportedLocationProvider
from ..geofence.model import Coordinate

logger = logging.getLogger(__name__)

HTTP_STATUS_BY_FAILURE = {
    PunchFailure.ALREADY_IN_PROGRESS: 409,
    PunchFailure.INVALID_TRANSITION: 409,
    PunchFailure.LOCATION_UNAVAILABLE: 422,
    PunchFailure.OUT_OF_RANGE: 403,
    PunchFailure.AUTH_EXPIRED: 401,
    PunchFailure.NETWORK_UNAVAILABLE: 503,
    PunchFailure.SERVER_REJECTED: 502,
    PunchFailure.UNEXPECTED: 500,
}


def register(app: Flask, container: Container) -> None:
    engine = container.engine
    machine = container.punch_machine

    async def snapshot():
        await machine.sync_day()
        state = machine.state
        return {
            "state": state.to_dict(),
            "worked_minutes": state.worked_minutes(machine.now()),
            "last_result": machine.last_result.to_dict() if machine.last_result else None,
        }

    def report_location(data: dict) -> None:
        provider = container.location_provider
        if not isinstance(provider, ReportedLocationProvider):
            return
        if data.get("permission_granted") is False:
            engine.call(provider.revoke)
            return
        if "latitude" in data and "longitude" in data:
            engine.call(provider.report, Coordinate.from_dict(data))

    def punch(kind: PunchKind):
        data = request.get_json(silent=True) or {}
        try:
            report_location(data)
        except (ValidationError, KeyError, TypeError, ValueError) as e:
            return jsonify({"success": False, "message": f"Invalid location: {e}"}), 400

        try:
            result = engine.run(machine.request_punch(kind))
        except Exception:
            logger.exception("Punch %s crashed", kind.value)
            return jsonify({"success": False, "failure": PunchFailure.UNEXPECTED.value, "message": PunchError.default_message}), 500

        status = 200 if result.success else HTTP_STATUS_BY_FAILURE.get(result.failure, 500)
        return jsonify({**result.to_dict(), **engine.run(snapshot())}), status

    @app.route("/api/punch/state", methods=["GET"], endpoint="punch_state")
    def punch_state():
        return jsonify({"success": True, **engine.run(snapshot())})

    @app.route("/api/punch/in", methods=["POST"], endpoint="punch_in")
    def punch_in():
        return punch(PunchKind.IN)

    @app.route("/api/punch/out", methods=["POST"], endpoint="punch_out")
    def punch_out():
        return punch(PunchKind.OUT)

    @app.route("/api/punch/location", methods=["POST"], endpoint="punch_location")
    def punch_location():
        data = request.get_json(silent=True) or {}
        try:
            report_location(data)
        except (ValidationError, KeyError, TypeError, ValueError) as e:
            return jsonify({"success": False, "message": f"Invalid location: {e}"}), 400
        return jsonify({"success": True})

    @app.route("/api/punch/foreground", methods=["POST"], endpoint="punch_foreground")
    def punch_foreground():
        rolled_over = engine.run(machine.on_foreground())
        return jsonify({"success": True, "rolled_over": rolled_over, **engine.run(snapshot())})

    @app.route("/api/punch/reconcile", methods=["POST"], endpoint="punch_reconcile")
    def punch_reconcile():
        try:
            engine.run(machine.reconcile())
        except PunchError as e:
            return jsonify({"success": False, "failure": e.kind.value, "message": e.message}), HTTP_STATUS_BY_FAILURE[e.kind]
        return jsonify({"success": True, **engine.run(snapshot())})

    @app.route("/api/punch/ledger", methods=["GET"], endpoint="punch_ledger")
    def punch_ledger():
        ledger = container.ledger
        raw_date = request.args.get("date")
        try:
            local_date = parse_iso_date(raw_date) if raw_date else None
        except ValueError:
            return jsonify({"success": False, "message": "date must be YYYY-MM-DD"}), 400

        if request.args.get("pending") in {"1", "true"}:
            read, args = ledger.pending, ()
        elif local_date is not None:
            read, args = ledger.for_date, (local_date,)
        else:
            read, args = ledger.all, ()
        entries = engine.run(asyncio.to_thread(read, *args))
        return jsonify({"success": True, "entries": [e.to_dict() for e in entries]})

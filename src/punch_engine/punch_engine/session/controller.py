from __future__ import annotations

from flask import Flask, jsonify, request

from ..core.exceptions import NetworkUnavailableError, PunchError, ServerRejectedError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    engine = container.engine
    client = container.session_client

    @app.route("/api/session", methods=["GET"], endpoint="session_status")
    def session_status():
        return jsonify({"success": True, "authenticated": client.sessions.snapshot().is_authenticated})

    @app.route("/api/session/login", methods=["POST"], endpoint="session_login")
    def session_login():
        data = request.get_json(silent=True) or {}
        username = str(data.get("username") or "").strip()
        password = str(data.get("password") or "")
        if not username or not password:
            return jsonify({"success": False, "message": "Username and password are required"}), 400

        try:
            engine.run(client.login(username, password))
        except ServerRejectedError as e:
            status = 401 if 400 <= e.status_code < 500 else 502
            return jsonify({"success": False, "message": e.message}), status
        except NetworkUnavailableError as e:
            return jsonify({"success": False, "message": e.message}), 503
        except PunchError as e:
            return jsonify({"success": False, "message": e.message}), 401
        return jsonify({"success": True, "authenticated": True})

    @app.route("/api/session/logout", methods=["POST"], endpoint="session_logout")
    def session_logout():
        engine.run(client.logout())
        return jsonify({"success": True, "authenticated": False})

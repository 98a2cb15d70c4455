from __future__ import annotations

import asyncio
import logging
import secrets
import time
from typing import Any, Optional

import httpx

from ..core.constants import DEFAULT_HTTP_TIMEOUT_SECONDS
from ..core.exceptions import AuthExpiredError, NetworkUnavailableError, PunchError, ServerRejectedError
from .error_payload import decode_error_payload, error_message
from .model import ApiRequest, ApiResponse, Session
from .store import SessionStore

logger = logging.getLogger(__name__)

LOGIN_PATH = "/api/token/"
REFRESH_PATH = "/api/token/refresh/"
LOGOUT_PATH = "/logout/"


def generate_request_id() -> str:
    """Trace id sent as X-Request-ID: epoch millis plus a short random suffix."""
    return f"{int(time.time() * 1000)}-{secrets.token_hex(4)}"


def create_http_client(
    base_url: str,
    *,
    timeout: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=timeout,
        transport=transport,
        headers={"Content-Type": "application/json", "Accept": "application/json"},
    )


def _decode_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class ResilientSessionClient:
    """HTTP client with bearer auth and a single refresh-and-retry on 401.

    Concurrent 401s share one in-flight refresh; a request is retried at most
    once. Failures surface as `AuthExpiredError`, `NetworkUnavailableError` or
    `ServerRejectedError`.
    """

    def __init__(self, http: httpx.AsyncClient, sessions: SessionStore):
        self._http = http
        self._sessions = sessions
        self._refresh_task: Optional[asyncio.Future] = None

    @property
    def sessions(self) -> SessionStore:
        return self._sessions

    async def send(self, request: ApiRequest, *, requires_auth: bool = False) -> ApiResponse:
        generation = self._sessions.generation
        snapshot = self._sessions.snapshot()
        if requires_auth and not snapshot.access_token:
            raise AuthExpiredError()

        response = await self._issue(request, snapshot.access_token if requires_auth else None)

        if response.status_code == 401 and requires_auth:
            access_token = await self._refreshed_access_token(stale=snapshot.access_token)
            response = await self._issue(request, access_token)
            if response.status_code == 401:
                logger.warning("%s %s still unauthorized after refresh", request.method, request.path)
                self._sessions.clear(generation=generation)
                raise AuthExpiredError()

        return self._to_api_response(request, response)

    async def login(self, username: str, password: str) -> Session:
        response = await self.send(
            ApiRequest("POST", LOGIN_PATH, json={"username": username, "password": password})
        )
        body = response.body if isinstance(response.body, dict) else {}
        access = body.get("access")
        if not access:
            raise ServerRejectedError(response.status_code, response.body, "Login failed. Please try again.")
        logger.info("Login succeeded for %s", username)
        return self._sessions.start(str(access), body.get("refresh"))

    async def logout(self) -> None:
        """Best-effort server logout; local credentials are cleared regardless."""
        snapshot = self._sessions.snapshot()
        try:
            if snapshot.access_token:
                await self.send(
                    ApiRequest("POST", LOGOUT_PATH, json={"refresh_token": snapshot.refresh_token}),
                    requires_auth=True,
                )
        except PunchError as exc:
            logger.warning("Logout request failed: %s", exc.message)
        finally:
            self._sessions.clear()

        # A refresh still in flight is refused by the store; wait for it to settle.
        pending = self._refresh_task
        if pending is not None and not pending.done():
            await asyncio.wait([pending])

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _issue(self, request: ApiRequest, access_token: Optional[str]) -> httpx.Response:
        headers = {"X-Request-ID": generate_request_id(), **dict(request.headers)}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"

        logger.info("%s %s", request.method, request.path)
        try:
            return await self._http.request(
                request.method,
                request.path,
                json=request.json,
                params=request.params,
                headers=headers,
            )
        except httpx.RequestError as exc:
            logger.warning("%s %s failed before a response: %s", request.method, request.path, exc)
            raise NetworkUnavailableError() from exc

    async def _refreshed_access_token(self, *, stale: Optional[str]) -> str:
        current = self._sessions.snapshot()
        if current.access_token and current.access_token != stale:
            # Another request already refreshed.
            return current.access_token

        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.ensure_future(self._refresh())
        return await asyncio.shield(self._refresh_task)

    async def _refresh(self) -> str:
        generation = self._sessions.generation
        refresh_token = self._sessions.snapshot().refresh_token
        if not refresh_token:
            self._sessions.clear(generation=generation)
            raise AuthExpiredError()

        logger.warning("Access token rejected; refreshing")
        try:
            response = await self._http.post(
                REFRESH_PATH,
                json={"refresh": refresh_token},
                headers={"X-Request-ID": generate_request_id()},
            )
        except httpx.RequestError as exc:
            logger.warning("Token refresh failed: %s", exc)
            self._sessions.clear(generation=generation)
            raise AuthExpiredError() from exc

        body = _decode_body(response)
        access = body.get("access") if isinstance(body, dict) else None
        if not response.is_success or not access:
            logger.warning("Token refresh rejected with status %s", response.status_code)
            self._sessions.clear(generation=generation)
            raise AuthExpiredError()

        session = self._sessions.replace(str(access), body.get("refresh"), generation=generation)
        return str(session.access_token)

    def _to_api_response(self, request: ApiRequest, response: httpx.Response) -> ApiResponse:
        body = _decode_body(response)
        if response.is_success:
            if isinstance(body, str):
                logger.warning("%s %s returned a non-JSON body (%s)", request.method, request.path, response.status_code)
            return ApiResponse(status_code=response.status_code, body=body)

        payload = decode_error_payload(body, response.status_code)
        message = error_message(payload)
        logger.warning("%s %s rejected (%s): %s", request.method, request.path, response.status_code, message)
        raise ServerRejectedError(response.status_code, body, message, payload)

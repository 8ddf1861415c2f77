"""HTTP client for the arcade server, driving one play from start to leaderboard."""

from __future__ import annotations

import time
from http import HTTPStatus
from typing import TYPE_CHECKING, Any

import httpx
import structlog

from arcade.client.recorder import PlayRecorder, SessionContext
from arcade.scoring.submission import submission_payload
from shared.signing import compute_signature

if TYPE_CHECKING:
    from collections.abc import Callable

DEFAULT_TIMEOUT_SECONDS = 10.0

logger = structlog.get_logger()


class ArcadeClientError(Exception):
    """The server could not be reached or failed to answer.

    Validation rejections are not errors; they come back as result dicts with
    success=False.
    """

    def __init__(self, message: str, *, retryable: bool = False) -> None:
        self.retryable = retryable
        super().__init__(message)


class ArcadeClient:
    """Thin async wrapper over the arcade HTTP API.

    Pass an existing httpx.AsyncClient (for example one built on
    httpx.ASGITransport in tests); otherwise one is created from base_url.
    """

    def __init__(
        self,
        base_url: str = "",
        *,
        http: httpx.AsyncClient | None = None,
        wall_clock: Callable[[], float] = time.time,
    ) -> None:
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(base_url=base_url, timeout=DEFAULT_TIMEOUT_SECONDS)
        self._wall_clock = wall_clock

    async def __aenter__(self) -> ArcadeClient:
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def start_session(self, recorder: PlayRecorder | None = None) -> SessionContext:
        """Open a play session and, if given, attach it to the recorder."""
        data = await self._request("POST", "/game/start", expected=(HTTPStatus.CREATED,))
        context = SessionContext(session_id=data["sessionId"], secret=data["secret"], seed=data["seed"])
        if recorder is not None:
            recorder.attach(context)
        return context

    async def end_game(self, recorder: PlayRecorder, final_score: int) -> dict[str, Any]:
        """Send the signed event log. Returns the server's result, accepted or not."""
        signed = recorder.sign_end_game(final_score)
        result = await self._request(
            "POST",
            "/game/end",
            json=signed.to_wire(),
            expected=(HTTPStatus.OK, HTTPStatus.BAD_REQUEST),
        )
        if not result.get("success"):
            logger.info("end of game rejected by server", message=result.get("message"))
        return result

    async def submit_score(self, context: SessionContext, name: str, score: int) -> dict[str, Any]:
        """Submit a validated score under a display name (signature #2)."""
        timestamp = int(self._wall_clock() * 1000)
        payload = submission_payload(context.session_id, name, score, timestamp)
        body = {
            "name": name,
            "score": score,
            "sessionId": context.session_id,
            "timestamp": timestamp,
            "signature": compute_signature(context.secret, payload),
        }
        return await self._request(
            "POST",
            "/scores",
            json=body,
            expected=(HTTPStatus.CREATED, HTTPStatus.BAD_REQUEST),
        )

    async def get_leaderboard(self) -> list[dict[str, Any]]:
        data = await self._request("GET", "/scores", expected=(HTTPStatus.OK,))
        return data["leaderboard"]

    async def check_qualification(self, score: int) -> dict[str, Any]:
        return await self._request("GET", f"/scores/check/{score}", expected=(HTTPStatus.OK,))

    async def _request(
        self,
        method: str,
        path: str,
        *,
        expected: tuple[int, ...],
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            response = await self._http.request(method, path, json=json)
        except httpx.RequestError as e:
            raise ArcadeClientError(f"Failed to reach arcade server: {e}", retryable=True) from e

        if response.status_code >= HTTPStatus.INTERNAL_SERVER_ERROR:
            raise ArcadeClientError(
                f"Arcade server error {response.status_code} on {method} {path}",
                retryable=True,
            )
        if response.status_code not in expected:
            raise ArcadeClientError(f"Unexpected status {response.status_code} on {method} {path}: {response.text}")

        try:
            return response.json()
        except ValueError as e:
            raise ArcadeClientError(f"Invalid JSON from arcade server on {method} {path}") from e

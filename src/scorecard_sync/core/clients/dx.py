"""DX Web API client for scorecards.

API docs: https://docs.getdx.com/webapi/
Bearer-token authentication. Endpoints use the ``scorecards.<verb>`` form.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Optional, Union

import httpx
import pydantic

from ..errors import APIError, DecodeError, NotFound, TransportError
from ..models import LevelScorecardPayload, PointsScorecardPayload, ScorecardEnvelope
from ..payload import encode_payload

logger = logging.getLogger(__name__)

API_BASE = "https://api.getdx.com"
DEFAULT_TIMEOUT_SECONDS = 30.0

Payload = Union[LevelScorecardPayload, PointsScorecardPayload]


class DXClient:
    """Remote scorecard operations over HTTP.

    One ``httpx.AsyncClient`` is opened per call; the client holds no
    connection state between calls. Retries are not attempted.
    """

    def __init__(
        self,
        token: str,
        base_url: str = API_BASE,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._token = token
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    @classmethod
    def from_env(cls) -> "DXClient":
        """Build a client from ``DX_API_TOKEN``, ``DX_API_BASE_URL`` and ``DX_TIMEOUT_SECONDS``."""
        token = os.environ.get("DX_API_TOKEN", "")
        if not token:
            raise ValueError(
                "Missing API Token: DX_API_TOKEN environment variable is required to authenticate with the DX API."
            )
        return cls(
            token,
            base_url=os.environ.get("DX_API_BASE_URL", API_BASE),
            timeout=float(os.environ.get("DX_TIMEOUT_SECONDS", str(DEFAULT_TIMEOUT_SECONDS))),
        )

    async def create(self, payload: Payload) -> ScorecardEnvelope:
        """POST ``scorecards.create``."""
        response = await self._send(
            "create scorecard", "POST", "/scorecards.create",
            content=encode_payload(payload), ok_statuses=(200, 201),
        )
        return self._decode("create scorecard", response)

    async def fetch(self, scorecard_id: str) -> ScorecardEnvelope:
        """GET ``scorecards.info``. Raises ``NotFound`` on 404."""
        response = await self._send(
            "read scorecard", "GET", "/scorecards.info",
            params={"id": scorecard_id}, ok_statuses=(200,), not_found_id=scorecard_id,
        )
        return self._decode("read scorecard", response)

    async def update(self, payload: Payload) -> ScorecardEnvelope:
        """POST ``scorecards.update``; the payload must carry the scorecard ``id``."""
        response = await self._send(
            "update scorecard", "POST", "/scorecards.update",
            content=encode_payload(payload), ok_statuses=(200, 201),
        )
        return self._decode("update scorecard", response)

    async def delete(self, scorecard_id: str) -> None:
        """POST ``scorecards.delete``. A 404 is reported as ``APIError``."""
        await self._send(
            "delete scorecard", "POST", "/scorecards.delete",
            content=json.dumps({"id": scorecard_id}).encode("utf-8"), ok_statuses=(200, 204),
        )

    async def _send(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        ok_statuses: tuple[int, ...],
        content: Optional[bytes] = None,
        params: Optional[dict] = None,
        not_found_id: Optional[str] = None,
    ) -> httpx.Response:
        headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {self._token}",
        }
        if content is not None:
            headers["Content-Type"] = "application/json"

        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self._timeout, connect=10.0),
            transport=self._transport,
        ) as client:
            try:
                response = await client.request(
                    method, f"{self._base_url}{path}",
                    content=content, params=params, headers=headers,
                )
            except httpx.TimeoutException as exc:
                raise TransportError(f"{operation}: request timed out: {exc}") from exc
            except httpx.RequestError as exc:
                raise TransportError(f"{operation}: making HTTP request: {exc}") from exc
            except httpx.InvalidURL as exc:
                raise TransportError(f"{operation}: invalid request URL: {exc}") from exc

        if not_found_id is not None and response.status_code == 404:
            raise NotFound(not_found_id)
        if response.status_code not in ok_statuses:
            raise APIError(response.status_code, response.text, operation=operation)
        return response

    def _decode(self, operation: str, response: httpx.Response) -> ScorecardEnvelope:
        try:
            envelope = ScorecardEnvelope.model_validate(response.json())
        except (ValueError, pydantic.ValidationError) as exc:
            raise DecodeError(f"{operation}: decoding API response: {exc}") from exc
        if not envelope.ok:
            raise APIError(response.status_code, response.text, operation=operation)

        logger.debug("API response from %s:\n%s", operation, envelope.model_dump_json(indent=2))
        return envelope

"""
SignalFx Monitoring Adapter

Architectural Intent:
- Implements MonitoringPort against the SignalFx REST API
- Uses stdlib urllib for the HTTP layer (no external dependencies)
- Every request is authenticated with the X-SF-TOKEN header

Design Decisions:
- Credentials and base URL are injected at construction, never read globally
- Endpoint paths are class constants
- Blocking urllib calls run in the default executor
- Only the first page of incidents is fetched (limit 500, offset 0);
  further paging is not implemented
- Non-expected status codes raise ApiStatusError carrying the response body
"""

import asyncio
import json
import logging
import time
import urllib.error
import urllib.parse
import urllib.request
from functools import partial
from typing import Any, Optional

from sfx_janitor.domain.entities.incident import RawIncident
from sfx_janitor.domain.errors import (
    ApiStatusError,
    ResponseDecodeError,
    TransportError,
)
from sfx_janitor.domain.value_objects.mute_window import MuteWindow

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.signalfx.com/"

ACTIVE_INCIDENTS_QUERY = (
    "sf_organizationID:{org_id} AND (NOT sf_archived:true) AND "
    '((((sf_anomalyState:("anomalous" "too high" "too low"))) AND '
    "(sf_detector.lowercase:* OR sf_displayName.lowercase:*)))"
)
ACTIVE_INCIDENTS_ORDER = "-sf_priority,-sf_anomalyStateUpdateTimestampMs"


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


class SignalFxAdapter:
    """SignalFx incident and alert muting client."""

    INCIDENTS_PATH = "v1/eventtimeseries"
    CLEAR_PATH = "v2/incident/{incident_id}/clear"
    MUTE_PATH = "v2/alertmuting"

    def __init__(
        self,
        api_token: str,
        org_id: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: Optional[float] = None,
        page_limit: int = 500,
        telemetry=None,
    ) -> None:
        """Initialize SignalFx adapter.

        Args:
            api_token: SignalFx API access token
            org_id: Organization the incident query is scoped to
            base_url: API root, must end with a slash
            timeout: Socket timeout in seconds; None keeps urllib's default
            page_limit: Maximum number of incidents fetched in one call
            telemetry: Optional OTELExporter for spans and request timings
        """
        if not base_url.endswith("/"):
            base_url += "/"
        self._api_token = api_token
        self._org_id = org_id
        self._base_url = base_url
        self._timeout = timeout
        self._page_limit = page_limit
        self._telemetry = telemetry

    def incidents_query(self) -> dict[str, str]:
        """Query parameters for the active incident search."""
        return {
            "query": ACTIVE_INCIDENTS_QUERY.format(org_id=self._org_id),
            "offset": "0",
            "limit": str(self._page_limit),
            "order_by": ACTIVE_INCIDENTS_ORDER,
        }

    async def list_active_incidents(self) -> list[RawIncident]:
        status, body = await self._request(
            "GET", self.INCIDENTS_PATH, query=self.incidents_query()
        )
        if not 200 <= status < 300:
            logger.error("error: %s", body)
            raise ApiStatusError(
                f"Error listing incidents, got StatusCode {status}", status, body
            )
        return self._decode_incidents(body)

    async def clear_incident(self, incident_id: str) -> None:
        path = self.CLEAR_PATH.format(incident_id=urllib.parse.quote(incident_id, safe=""))
        status, body = await self._request("PUT", path)
        if status != 200:
            logger.error("error: %s", body, extra={"incident_id": incident_id})
            raise ApiStatusError(
                f"Error clearing incident {incident_id}, got StatusCode {status}",
                status,
                body,
            )
        logger.info(
            "Cleared incident %s", incident_id, extra={"incident_id": incident_id}
        )

    async def mute_detector(self, window: MuteWindow) -> None:
        status, body = await self._request(
            "POST", self.MUTE_PATH, payload=window.to_payload()
        )
        if status != 201:
            logger.error("error: %s", body, extra={"detector_id": window.detector_id})
            raise ApiStatusError(
                f"Error muting detector {window.detector_id}, got StatusCode {status}",
                status,
                body,
            )
        logger.info(
            "Muted detector %s until %d",
            window.detector_id,
            window.stop_ms,
            extra={"detector_id": window.detector_id},
        )

    @staticmethod
    def _decode_incidents(body: str) -> list[RawIncident]:
        try:
            document = json.loads(body, parse_constant=_reject_constant)
        except ValueError as e:
            raise ResponseDecodeError(f"invalid JSON in incident list: {e}") from e

        if not isinstance(document, dict):
            raise ResponseDecodeError("incident list response is not a JSON object")

        records = document.get("rs") or []
        if not isinstance(records, list):
            raise ResponseDecodeError("incident list field 'rs' is not an array")

        try:
            return [RawIncident.from_api(record) for record in records]
        except ValueError as e:
            raise ResponseDecodeError(f"invalid incident record: {e}") from e

    async def _request(
        self,
        method: str,
        path: str,
        query: Optional[dict[str, str]] = None,
        payload: Optional[dict[str, Any]] = None,
    ) -> tuple[int, str]:
        span = None
        if self._telemetry:
            span = self._telemetry.start_span(
                f"signalfx {method} {path}", {"http.method": method}
            )
        started = time.monotonic()
        try:
            return await asyncio.get_event_loop().run_in_executor(
                None, partial(self._send, method, path, query, payload)
            )
        finally:
            if self._telemetry:
                self._telemetry.record_api_request(
                    method, path, (time.monotonic() - started) * 1000
                )
                self._telemetry.end_span(span)

    def _send(
        self,
        method: str,
        path: str,
        query: Optional[dict[str, str]],
        payload: Optional[dict[str, Any]],
    ) -> tuple[int, str]:
        """Perform one blocking HTTP exchange. Returns (status, body text)."""
        url = self._base_url + path
        if query:
            url += "?" + urllib.parse.urlencode(query)

        headers = {"X-SF-TOKEN": self._api_token}
        data = None
        if payload is not None:
            data = json.dumps(payload).encode("utf-8")
        if method in ("PUT", "POST"):
            headers["Content-Type"] = "application/json"

        request = urllib.request.Request(url, data=data, headers=headers, method=method)
        kwargs = {}
        if self._timeout:
            kwargs["timeout"] = self._timeout

        logger.debug("%s %s", method, url)
        try:
            with urllib.request.urlopen(request, **kwargs) as response:
                return response.status, response.read().decode("utf-8", errors="replace")
        except urllib.error.HTTPError as e:
            body = e.read().decode("utf-8", errors="replace") if e.fp else ""
            return e.code, body
        except (urllib.error.URLError, OSError) as e:
            raise TransportError(f"{method} {path} failed: {e}") from e

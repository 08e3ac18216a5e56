"""Tests for the SignalFx monitoring adapter."""

import io
import json
import urllib.error
import urllib.parse
import pytest
from datetime import datetime, timedelta, UTC
from unittest.mock import MagicMock, patch

from sfx_janitor.domain.errors import (
    ApiStatusError,
    ResponseDecodeError,
    TransportError,
)
from sfx_janitor.domain.ports.monitoring_port import MonitoringPort
from sfx_janitor.domain.value_objects.mute_window import MuteWindow
from sfx_janitor.infrastructure.adapters.signalfx_adapter import SignalFxAdapter

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)


def _response(status: int, body: str = ""):
    response = MagicMock()
    response.status = status
    response.read.return_value = body.encode("utf-8")
    context = MagicMock()
    context.__enter__.return_value = response
    context.__exit__.return_value = False
    return context


def _http_error(status: int, body: str = ""):
    return urllib.error.HTTPError(
        "https://api.signalfx.com/", status, "error", {}, io.BytesIO(body.encode())
    )


def _adapter(**kwargs):
    return SignalFxAdapter(api_token="secret", org_id="ORG1", **kwargs)


def _sent_request(urlopen):
    urlopen.assert_called_once()
    return urlopen.call_args.args[0]


class TestListActiveIncidents:
    @pytest.mark.asyncio
    async def test_parses_records(self):
        body = json.dumps({
            "rs": [
                {
                    "sf_incidentId": "inc1",
                    "sf_updatedOnMs": 1700000000000,
                    "sf_detector": "cpu",
                    "sf_detectorId": "det1",
                }
            ]
        })
        with patch("urllib.request.urlopen", return_value=_response(200, body)):
            incidents = await _adapter().list_active_incidents()

        assert len(incidents) == 1
        assert incidents[0].incident_id == "inc1"
        assert incidents[0].detector == "cpu"
        assert incidents[0].detector_id == "det1"

    @pytest.mark.asyncio
    async def test_request_shape(self):
        with patch(
            "urllib.request.urlopen", return_value=_response(200, '{"rs": []}')
        ) as urlopen:
            await _adapter().list_active_incidents()

        request = _sent_request(urlopen)
        assert request.get_method() == "GET"
        assert request.get_header("X-sf-token") == "secret"
        parsed = urllib.parse.urlparse(request.full_url)
        assert parsed.netloc == "api.signalfx.com"
        assert parsed.path == "/v1/eventtimeseries"
        params = urllib.parse.parse_qs(parsed.query)
        assert params["offset"] == ["0"]
        assert params["limit"] == ["500"]
        assert params["order_by"] == [
            "-sf_priority,-sf_anomalyStateUpdateTimestampMs"
        ]
        query = params["query"][0]
        assert query.startswith("sf_organizationID:ORG1 AND (NOT sf_archived:true)")
        assert 'sf_anomalyState:("anomalous" "too high" "too low")' in query
        assert "sf_detector.lowercase:* OR sf_displayName.lowercase:*" in query

    @pytest.mark.asyncio
    async def test_missing_rs_is_empty(self):
        with patch("urllib.request.urlopen", return_value=_response(200, "{}")):
            assert await _adapter().list_active_incidents() == []

    @pytest.mark.asyncio
    async def test_non_json_body_is_decode_error(self):
        with patch(
            "urllib.request.urlopen",
            return_value=_response(200, "<html>gateway timeout</html>"),
        ):
            with pytest.raises(ResponseDecodeError, match="invalid JSON"):
                await _adapter().list_active_incidents()

    @pytest.mark.asyncio
    async def test_non_object_body_is_decode_error(self):
        with patch("urllib.request.urlopen", return_value=_response(200, "[1, 2]")):
            with pytest.raises(ResponseDecodeError):
                await _adapter().list_active_incidents()

    @pytest.mark.asyncio
    async def test_bad_record_is_decode_error(self):
        body = json.dumps({"rs": [{"sf_updatedOnMs": 1}]})
        with patch("urllib.request.urlopen", return_value=_response(200, body)):
            with pytest.raises(ResponseDecodeError, match="invalid incident record"):
                await _adapter().list_active_incidents()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("constant", ["NaN", "Infinity", "-Infinity"])
    async def test_non_standard_constant_is_decode_error(self, constant):
        body = '{"rs": [{"sf_incidentId": "a", "sf_updatedOnMs": ' + constant + "}]}"
        with patch("urllib.request.urlopen", return_value=_response(200, body)):
            with pytest.raises(ResponseDecodeError, match=constant):
                await _adapter().list_active_incidents()

    @pytest.mark.asyncio
    async def test_timestamp_beyond_datetime_range_is_decode_error(self):
        body = '{"rs": [{"sf_incidentId": "a", "sf_updatedOnMs": 1e20}]}'
        with patch("urllib.request.urlopen", return_value=_response(200, body)):
            with pytest.raises(ResponseDecodeError, match="out of range"):
                await _adapter().list_active_incidents()

    @pytest.mark.asyncio
    async def test_clear_error_log_carries_incident_id(self, caplog):
        with patch("urllib.request.urlopen", side_effect=_http_error(404, "gone")):
            with pytest.raises(ApiStatusError):
                await _adapter().clear_incident("inc1")
        errors = [r for r in caplog.records if r.levelname == "ERROR"]
        assert errors[-1].incident_id == "inc1"

    @pytest.mark.asyncio
    async def test_error_status(self):
        with patch(
            "urllib.request.urlopen", side_effect=_http_error(401, "unauthorized")
        ):
            with pytest.raises(ApiStatusError) as exc_info:
                await _adapter().list_active_incidents()
        assert exc_info.value.status == 401
        assert exc_info.value.body == "unauthorized"

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        with patch(
            "urllib.request.urlopen",
            side_effect=urllib.error.URLError("connection refused"),
        ):
            with pytest.raises(TransportError, match="connection refused"):
                await _adapter().list_active_incidents()

    @pytest.mark.asyncio
    async def test_custom_page_limit(self):
        with patch(
            "urllib.request.urlopen", return_value=_response(200, '{"rs": []}')
        ) as urlopen:
            await _adapter(page_limit=50).list_active_incidents()
        params = urllib.parse.parse_qs(
            urllib.parse.urlparse(_sent_request(urlopen).full_url).query
        )
        assert params["limit"] == ["50"]


class TestClearIncident:
    @pytest.mark.asyncio
    async def test_success(self):
        with patch(
            "urllib.request.urlopen", return_value=_response(200)
        ) as urlopen:
            await _adapter().clear_incident("inc1")

        request = _sent_request(urlopen)
        assert request.get_method() == "PUT"
        assert request.full_url == "https://api.signalfx.com/v2/incident/inc1/clear"
        assert request.get_header("X-sf-token") == "secret"
        assert request.get_header("Content-type") == "application/json"

    @pytest.mark.asyncio
    async def test_not_found_is_error_and_not_retried(self):
        with patch(
            "urllib.request.urlopen", side_effect=_http_error(404, "no such incident")
        ) as urlopen:
            with pytest.raises(ApiStatusError) as exc_info:
                await _adapter().clear_incident("inc1")

        assert "inc1" in str(exc_info.value)
        assert "404" in str(exc_info.value)
        assert exc_info.value.status == 404
        assert exc_info.value.body == "no such incident"
        assert urlopen.call_count == 1

    @pytest.mark.asyncio
    async def test_other_2xx_is_error(self):
        with patch("urllib.request.urlopen", return_value=_response(204)):
            with pytest.raises(ApiStatusError, match="204"):
                await _adapter().clear_incident("inc1")

    @pytest.mark.asyncio
    async def test_incident_id_is_escaped(self):
        with patch(
            "urllib.request.urlopen", return_value=_response(200)
        ) as urlopen:
            await _adapter().clear_incident("a/b")
        assert _sent_request(urlopen).full_url.endswith("/v2/incident/a%2Fb/clear")


class TestMuteDetector:
    @pytest.mark.asyncio
    async def test_success(self):
        window = MuteWindow.starting_at("det1", timedelta(minutes=30), now=NOW)
        with patch(
            "urllib.request.urlopen", return_value=_response(201, "{}")
        ) as urlopen:
            await _adapter().mute_detector(window)

        request = _sent_request(urlopen)
        assert request.get_method() == "POST"
        assert request.full_url == "https://api.signalfx.com/v2/alertmuting"
        assert request.get_header("X-sf-token") == "secret"
        assert request.get_header("Content-type") == "application/json"
        payload = json.loads(request.data)
        assert payload == {
            "filters": [{"property": "sf_detectorId", "propertyValue": "det1"}],
            "startTime": window.start_ms,
            "stopTime": window.stop_ms,
            "description": "Muted by signalfx-janitor",
        }

    @pytest.mark.asyncio
    async def test_ok_instead_of_created_is_error(self):
        window = MuteWindow.starting_at("det1", timedelta(minutes=30), now=NOW)
        with patch("urllib.request.urlopen", return_value=_response(200, "{}")):
            with pytest.raises(ApiStatusError, match="det1"):
                await _adapter().mute_detector(window)

    @pytest.mark.asyncio
    async def test_bad_request(self):
        window = MuteWindow.starting_at("det1", timedelta(minutes=30), now=NOW)
        with patch(
            "urllib.request.urlopen", side_effect=_http_error(400, "bad filter")
        ):
            with pytest.raises(ApiStatusError) as exc_info:
                await _adapter().mute_detector(window)
        assert exc_info.value.body == "bad filter"


class TestAdapterConfiguration:
    def test_implements_port(self):
        assert isinstance(_adapter(), MonitoringPort)

    @pytest.mark.asyncio
    async def test_base_url_gets_trailing_slash(self):
        with patch(
            "urllib.request.urlopen", return_value=_response(200)
        ) as urlopen:
            await _adapter(base_url="https://api.eu0.signalfx.com").clear_incident("x")
        assert _sent_request(urlopen).full_url == (
            "https://api.eu0.signalfx.com/v2/incident/x/clear"
        )

    @pytest.mark.asyncio
    async def test_timeout_passed_through(self):
        with patch(
            "urllib.request.urlopen", return_value=_response(200)
        ) as urlopen:
            await _adapter(timeout=5).clear_incident("x")
        assert urlopen.call_args.kwargs == {"timeout": 5}

    @pytest.mark.asyncio
    async def test_records_request_telemetry(self):
        telemetry = MagicMock()
        with patch("urllib.request.urlopen", return_value=_response(200)):
            await _adapter(telemetry=telemetry).clear_incident("x")
        telemetry.start_span.assert_called_once()
        telemetry.end_span.assert_called_once()
        method, path, _ = telemetry.record_api_request.call_args.args
        assert method == "PUT"
        assert path == "v2/incident/x/clear"

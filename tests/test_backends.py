"""
Tests — Geocoding backends
===========================
Unit tests for :class:`~sheet_geocoder.backends.HereBackend`,
:class:`~sheet_geocoder.backends.GoogleBackend` and
:class:`~sheet_geocoder.backends.Credentials`.

HERE's HTTP calls are mocked via the ``responses`` library; Google's
geopy geocoder is replaced through the injectable factory, or driven
over HTTP mocked by ``responses`` to exercise its payload parsing.  No real
network requests are made during testing.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock
from urllib.parse import parse_qs, urlparse

import pytest
import requests
import responses as rsps_lib
from geopy.exc import (
    GeocoderAuthenticationFailure,
    GeocoderQuotaExceeded,
    GeocoderServiceError,
)

from sheet_geocoder.backends import (
    Credentials,
    GoogleBackend,
    HereBackend,
    make_backend,
)
from sheet_geocoder.exceptions import (
    AuthError,
    GeocodingRateLimitError,
    InputValidationError,
    NoMatchFound,
    TransportError,
)

HERE_URL = "https://geocoder.api.here.com/6.2/geocode.json"
HERE_CREDS = Credentials(app_id="id-123", app_code="code-456")
GOOGLE_URL = "https://maps.googleapis.com/maps/api/geocode/json"


def _here_hit(*positions: tuple[float, float]) -> dict:
    """Build a mock HERE geocode response with one result per position."""
    return {
        "Response": {
            "View": [
                {
                    "Result": [
                        {"Location": {"DisplayPosition": {"Latitude": lat, "Longitude": lon}}}
                        for lat, lon in positions
                    ]
                }
            ]
        }
    }


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------


class TestCredentials:
    def test_missing_lists_blank_fields(self) -> None:
        creds = Credentials(app_id="abc", app_code="  ")
        assert creds.missing(["app_id", "app_code"]) == ["app_code"]

    def test_from_query_string_uses_form_names(self) -> None:
        creds = Credentials.from_query_string("https://tool.example/?appId=abc&appCode=xyz")
        assert creds.app_id == "abc"
        assert creds.app_code == "xyz"
        assert creds.api_key is None

    def test_from_query_string_ignores_unknown_keys(self) -> None:
        creds = Credentials.from_query_string("apiKey=k&lang=en")
        assert creds == Credentials(api_key="k")

    def test_explicit_values_win_over_query(self) -> None:
        explicit = Credentials(app_id="explicit")
        merged = explicit.merged(Credentials.from_query_string("appId=q&appCode=c"))
        assert merged.app_id == "explicit"
        assert merged.app_code == "c"

    def test_repr_masks_secrets(self) -> None:
        assert "secret" not in repr(Credentials(api_key="secret"))


# ---------------------------------------------------------------------------
# HereBackend tests (mocked HTTP)
# ---------------------------------------------------------------------------


class TestHereBackend:
    @rsps_lib.activate
    def test_successful_geocode_sends_credentials(self) -> None:
        rsps_lib.add(rsps_lib.GET, HERE_URL, json=_here_hit((51.5237, -0.1585)), status=200)
        coords = HereBackend().lookup("221B Baker Street", HERE_CREDS)
        assert coords.latitude == pytest.approx(51.5237)
        assert coords.longitude == pytest.approx(-0.1585)

        params = parse_qs(urlparse(rsps_lib.calls[0].request.url).query)
        assert params["app_id"] == ["id-123"]
        assert params["app_code"] == ["code-456"]
        assert params["searchtext"] == ["221B Baker Street"]

    @rsps_lib.activate
    def test_first_candidate_wins(self) -> None:
        rsps_lib.add(rsps_lib.GET, HERE_URL, json=_here_hit((1.0, 2.0), (3.0, 4.0)), status=200)
        coords = HereBackend().lookup("Springfield", HERE_CREDS)
        assert (coords.latitude, coords.longitude) == (1.0, 2.0)

    @rsps_lib.activate
    def test_empty_view_is_no_match(self) -> None:
        rsps_lib.add(rsps_lib.GET, HERE_URL, json={"Response": {"View": []}}, status=200)
        with pytest.raises(NoMatchFound):
            HereBackend().lookup("zzz-nonexistent-place-xyz", HERE_CREDS)

    @pytest.mark.parametrize("status", [401, 403])
    @rsps_lib.activate
    def test_rejected_credentials_raise_auth_error(self, status: int) -> None:
        rsps_lib.add(rsps_lib.GET, HERE_URL, status=status)
        with pytest.raises(AuthError) as info:
            HereBackend().lookup("anywhere", HERE_CREDS)
        assert isinstance(info.value, TransportError)

    @rsps_lib.activate
    def test_rate_limit_raises(self) -> None:
        rsps_lib.add(rsps_lib.GET, HERE_URL, status=429, headers={"Retry-After": "30"})
        with pytest.raises(GeocodingRateLimitError) as info:
            HereBackend().lookup("anywhere", HERE_CREDS)
        assert info.value.retry_after == 30

    @rsps_lib.activate
    def test_server_error_is_transport_error(self) -> None:
        rsps_lib.add(rsps_lib.GET, HERE_URL, status=503)
        with pytest.raises(TransportError):
            HereBackend().lookup("anywhere", HERE_CREDS)

    @rsps_lib.activate
    def test_connection_error_is_transport_error(self) -> None:
        rsps_lib.add(rsps_lib.GET, HERE_URL, body=requests.ConnectionError("refused"))
        with pytest.raises(TransportError):
            HereBackend().lookup("anywhere", HERE_CREDS)

    @rsps_lib.activate
    def test_malformed_body_is_transport_error(self) -> None:
        rsps_lib.add(rsps_lib.GET, HERE_URL, body="<html>oops</html>", status=200)
        with pytest.raises(TransportError):
            HereBackend().lookup("anywhere", HERE_CREDS)

    @rsps_lib.activate
    def test_unexpected_structure_is_transport_error(self) -> None:
        rsps_lib.add(rsps_lib.GET, HERE_URL, json={"unexpected": True}, status=200)
        with pytest.raises(TransportError):
            HereBackend().lookup("anywhere", HERE_CREDS)

    def test_empty_address_rejected_without_request(self) -> None:
        session = MagicMock()
        with pytest.raises(InputValidationError):
            HereBackend(session=session).lookup("   ", HERE_CREDS)
        session.get.assert_not_called()


# ---------------------------------------------------------------------------
# GoogleBackend tests (mocked geopy, and real GoogleV3 over mocked HTTP)
# ---------------------------------------------------------------------------


class TestGoogleBackend:
    @staticmethod
    def _backend(geolocator: MagicMock) -> tuple[GoogleBackend, MagicMock]:
        factory = MagicMock(return_value=geolocator)
        return GoogleBackend(timeout=7, geolocator_factory=factory), factory

    def test_successful_geocode(self) -> None:
        geolocator = MagicMock()
        geolocator.geocode.return_value = SimpleNamespace(latitude=38.897, longitude=-77.036)
        backend, factory = self._backend(geolocator)

        coords = backend.lookup(" 1600 Pennsylvania Ave NW ", Credentials(api_key="k"))

        assert (coords.latitude, coords.longitude) == (38.897, -77.036)
        factory.assert_called_once_with("k", 7)
        geolocator.geocode.assert_called_once_with("1600 Pennsylvania Ave NW", exactly_one=True)

    def test_none_is_no_match(self) -> None:
        geolocator = MagicMock()
        geolocator.geocode.return_value = None
        backend, _ = self._backend(geolocator)
        with pytest.raises(NoMatchFound):
            backend.lookup("nowhere", Credentials(api_key="k"))

    def test_authentication_failure_is_auth_error(self) -> None:
        geolocator = MagicMock()
        geolocator.geocode.side_effect = GeocoderAuthenticationFailure("bad key")
        backend, _ = self._backend(geolocator)
        with pytest.raises(AuthError):
            backend.lookup("anywhere", Credentials(api_key="k"))

    @rsps_lib.activate
    def test_request_denied_payload_is_auth_error(self) -> None:
        rsps_lib.add(
            rsps_lib.GET,
            GOOGLE_URL,
            json={"status": "REQUEST_DENIED", "error_message": "The provided API key is invalid.", "results": []},
            status=200,
        )
        with pytest.raises(AuthError) as info:
            GoogleBackend().lookup("1600 Pennsylvania Ave NW", Credentials(api_key="bad-key"))
        assert "API key is invalid" in info.value.message
        assert len(rsps_lib.calls) == 1

    @rsps_lib.activate
    def test_zero_results_payload_is_no_match(self) -> None:
        rsps_lib.add(rsps_lib.GET, GOOGLE_URL, json={"status": "ZERO_RESULTS", "results": []}, status=200)
        with pytest.raises(NoMatchFound):
            GoogleBackend().lookup("nowhere at all", Credentials(api_key="k"))

    @rsps_lib.activate
    def test_ok_payload_uses_first_result(self) -> None:
        rsps_lib.add(
            rsps_lib.GET,
            GOOGLE_URL,
            json={
                "status": "OK",
                "results": [
                    {
                        "formatted_address": "1600 Pennsylvania Ave NW, Washington, DC",
                        "geometry": {"location": {"lat": 38.8977, "lng": -77.0365}},
                    },
                    {
                        "formatted_address": "1600 Pennsylvania Ave, Baltimore, MD",
                        "geometry": {"location": {"lat": 39.3, "lng": -76.6}},
                    },
                ],
            },
            status=200,
        )
        coords = GoogleBackend().lookup("1600 Pennsylvania Ave NW", Credentials(api_key="k"))

        assert (coords.latitude, coords.longitude) == (38.8977, -77.0365)
        params = parse_qs(urlparse(rsps_lib.calls[0].request.url).query)
        assert params["key"] == ["k"]
        assert params["address"] == ["1600 Pennsylvania Ave NW"]

    def test_quota_is_rate_limit(self) -> None:
        geolocator = MagicMock()
        geolocator.geocode.side_effect = GeocoderQuotaExceeded("quota")
        backend, _ = self._backend(geolocator)
        with pytest.raises(GeocodingRateLimitError):
            backend.lookup("anywhere", Credentials(api_key="k"))

    def test_service_error_is_transport_error(self) -> None:
        geolocator = MagicMock()
        geolocator.geocode.side_effect = GeocoderServiceError("down")
        backend, _ = self._backend(geolocator)
        with pytest.raises(TransportError):
            backend.lookup("anywhere", Credentials(api_key="k"))


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


class TestMakeBackend:
    def test_resolves_names_case_insensitively(self) -> None:
        assert isinstance(make_backend("HERE"), HereBackend)
        assert isinstance(make_backend("google", timeout=3), GoogleBackend)

    def test_unknown_provider_raises(self) -> None:
        with pytest.raises(InputValidationError):
            make_backend("bing")

    def test_required_credentials(self) -> None:
        assert HereBackend.required_credentials == ("app_id", "app_code")
        assert GoogleBackend.required_credentials == ("api_key",)

"""
Sheet Geocoder — Geocoding Backends
====================================
Uniform "address text in, coordinate pair or failure out" lookup over
interchangeable providers.

Architecture:
    ``GeocoderBackend`` is an abstract strategy.  The pipeline only ever
    calls :meth:`GeocoderBackend.lookup`, so providers can be swapped
    (or replaced by a stub in tests) without touching the orchestrator.
    Backends are constructed explicitly and passed in; nothing here is a
    process-wide singleton.

Classes:
    Credentials     In-memory provider key material.
    GeocoderBackend Abstract base for geocoding providers.
    HereBackend     HERE Geocoder API over plain HTTP (app id + app code).
    GoogleBackend   Google Geocoding API through geopy's ``GoogleV3``.

Usage::

    backend = HereBackend(timeout=10)
    coords = backend.lookup(
        "221B Baker Street, London",
        Credentials(app_id="my-id", app_code="my-code"),
    )
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Sequence
from urllib.parse import parse_qs

import requests
from geopy.exc import (
    GeocoderAuthenticationFailure,
    GeocoderInsufficientPrivileges,
    GeocoderQuotaExceeded,
    GeopyError,
)
from geopy.geocoders import GoogleV3

from sheet_geocoder.exceptions import (
    AuthError,
    GeocodingRateLimitError,
    InputValidationError,
    NoMatchFound,
    TransportError,
)
from sheet_geocoder.records import Coordinates

logger = logging.getLogger("sheet_geocoder.backends")

DEFAULT_TIMEOUT = 10

# Query-string keys accepted by Credentials.from_query_string.
_QUERY_KEYS = {
    "appId": "app_id",
    "app_id": "app_id",
    "appCode": "app_code",
    "app_code": "app_code",
    "apiKey": "api_key",
    "api_key": "api_key",
    "key": "api_key",
}


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Credentials:
    """Provider key material, held in memory only.

    HERE needs ``app_id`` and ``app_code``; Google needs ``api_key``.
    Which fields are required is declared by each backend.
    """

    api_key: str | None = None
    app_id: str | None = None
    app_code: str | None = None

    def missing(self, required: Sequence[str]) -> list[str]:
        """Return the names in *required* that are absent or blank."""
        return [name for name in required if not (getattr(self, name) or "").strip()]

    def merged(self, other: Credentials) -> Credentials:
        """Return a copy where blank fields are filled from *other*."""
        return Credentials(
            api_key=self.api_key or other.api_key,
            app_id=self.app_id or other.app_id,
            app_code=self.app_code or other.app_code,
        )

    @classmethod
    def from_query_string(cls, query: str) -> Credentials:
        """Build credentials from a URL query string.

        Accepts the parameter names used by the web form
        (``appId``, ``appCode``, ``apiKey``) as well as their snake_case
        spellings.  A leading ``?`` or a full URL is tolerated.

        Example::

            Credentials.from_query_string("?appId=abc&appCode=xyz")
        """
        if "?" in query:
            query = query.split("?", 1)[1]
        values: dict[str, str] = {}
        for key, items in parse_qs(query, keep_blank_values=False).items():
            field_name = _QUERY_KEYS.get(key)
            if field_name and items:
                values[field_name] = items[-1]
        return cls(**values)

    def __repr__(self) -> str:
        def mask(value: str | None) -> str:
            return "None" if value is None else "'***'"

        return (
            f"Credentials(api_key={mask(self.api_key)}, "
            f"app_id={mask(self.app_id)}, app_code={mask(self.app_code)})"
        )


# ---------------------------------------------------------------------------
# Backend strategies
# ---------------------------------------------------------------------------


class GeocoderBackend(ABC):
    """Abstract strategy for a geocoding provider.

    Subclass this and implement :meth:`_lookup` to add a new provider.
    """

    #: Human-readable provider name used in logs and error messages.
    name: str = "geocoder"

    #: :class:`Credentials` fields this provider cannot work without.
    required_credentials: tuple[str, ...] = ()

    def lookup(self, address: str, credentials: Credentials) -> Coordinates:
        """Geocode a single address string.

        Makes exactly one outbound call.  When the provider offers
        several candidates the first one wins.

        Args:
            address: The full, non-empty address to geocode.
            credentials: Key material for this provider.

        Returns:
            The first :class:`Coordinates` returned by the provider.

        Raises:
            InputValidationError: If *address* is empty.
            NoMatchFound: If the provider returned zero candidates.
            AuthError: If the provider rejected *credentials*.
            GeocodingRateLimitError: If the provider throttled the call.
            TransportError: For any other network, HTTP or parse failure.
        """
        if not address or not address.strip():
            raise InputValidationError("Cannot geocode an empty address.")
        return self._lookup(address.strip(), credentials)

    @abstractmethod
    def _lookup(self, address: str, credentials: Credentials) -> Coordinates:
        """Provider-specific lookup; *address* is already stripped."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class HereBackend(GeocoderBackend):
    """Geocoder backend for the HERE Geocoder API (v6.2).

    Requires an application id / application code pair.

    Args:
        timeout: HTTP request timeout in seconds.
        session: Optional :class:`requests.Session` to send requests
                 through.  A private session is created when omitted.
        base_url: Endpoint override, mainly for self-hosted proxies.

    Reference:
        https://developer.here.com/documentation/geocoder/
    """

    name = "HERE"
    required_credentials = ("app_id", "app_code")

    _BASE_URL = "https://geocoder.api.here.com/6.2/geocode.json"

    def __init__(
        self,
        timeout: int = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
        base_url: str | None = None,
    ) -> None:
        self.timeout = timeout
        self.base_url = base_url or self._BASE_URL
        self._session = session or requests.Session()

    def _lookup(self, address: str, credentials: Credentials) -> Coordinates:
        params = {
            "app_id": credentials.app_id,
            "app_code": credentials.app_code,
            "searchtext": address,
        }
        try:
            response = self._session.get(self.base_url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransportError(f"HERE request failed: {exc}") from exc

        if response.status_code in (401, 403):
            raise AuthError(self.name, f"HTTP {response.status_code}")
        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise GeocodingRateLimitError(
                self.name, retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None
            )
        if not response.ok:
            raise TransportError(f"HERE returned HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise TransportError("HERE returned a body that is not valid JSON") from exc

        return self._first_position(address, data)

    def _first_position(self, address: str, data: Any) -> Coordinates:
        """Extract the first DisplayPosition from a HERE response body."""
        try:
            views = data["Response"]["View"]
            results = views[0]["Result"] if views else []
            if not results:
                raise NoMatchFound(address, provider=self.name)
            position = results[0]["Location"]["DisplayPosition"]
            return Coordinates(
                latitude=float(position["Latitude"]),
                longitude=float(position["Longitude"]),
            )
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise TransportError(f"Unexpected HERE response structure: {exc!r}") from exc


class GoogleBackend(GeocoderBackend):
    """Geocoder backend for the Google Maps Geocoding API via geopy.

    Requires a valid Google Maps API key with the Geocoding API enabled.
    A fresh ``GoogleV3`` geocoder is built for every lookup from the key
    in the supplied credentials.

    Args:
        timeout: Request timeout in seconds, passed to geopy.
        geolocator_factory: Callable taking ``(api_key, timeout)`` and
                            returning an object with a geopy-style
                            ``geocode(query, exactly_one=True)`` method.
                            Defaults to a :class:`geopy.geocoders.GoogleV3`
                            subclass that maps ``REQUEST_DENIED`` to
                            an authentication failure.

    Reference:
        https://geopy.readthedocs.io/en/stable/#googlev3
    """

    name = "Google"
    required_credentials = ("api_key",)

    def __init__(
        self,
        timeout: int = DEFAULT_TIMEOUT,
        geolocator_factory: Callable[[str, int], Any] | None = None,
    ) -> None:
        self.timeout = timeout
        self._factory = geolocator_factory or _google_v3

    def _lookup(self, address: str, credentials: Credentials) -> Coordinates:
        try:
            geolocator = self._factory(credentials.api_key or "", self.timeout)
            location = geolocator.geocode(address, exactly_one=True)
        except (GeocoderAuthenticationFailure, GeocoderInsufficientPrivileges) as exc:
            raise AuthError(self.name, str(exc)) from exc
        except GeocoderQuotaExceeded as exc:
            raise GeocodingRateLimitError(
                self.name, retry_after=getattr(exc, "retry_after", None)
            ) from exc
        except GeopyError as exc:
            raise TransportError(f"Google geocoding failed: {exc}") from exc

        if location is None:
            raise NoMatchFound(address, provider=self.name)
        return Coordinates(latitude=float(location.latitude), longitude=float(location.longitude))


class _GoogleGeocoder(GoogleV3):
    """``GoogleV3`` that reports a denied request as an authentication failure.

    Google answers a rejected or unauthorised key with HTTP 200 and
    ``status: REQUEST_DENIED``, which geopy surfaces as a generic
    ``GeocoderQueryError``.
    """

    def _parse_json(self, page, exactly_one=True):
        if page.get("status") == "REQUEST_DENIED":
            raise GeocoderAuthenticationFailure(page.get("error_message") or "Request denied.")
        return super()._parse_json(page, exactly_one=exactly_one)


def _google_v3(api_key: str, timeout: int) -> GoogleV3:
    return _GoogleGeocoder(api_key=api_key, timeout=timeout)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

BACKENDS: dict[str, type[GeocoderBackend]] = {
    "here": HereBackend,
    "google": GoogleBackend,
}


def make_backend(name: str, **options: Any) -> GeocoderBackend:
    """Instantiate the backend registered under *name*.

    Args:
        name: ``"here"`` or ``"google"`` (case-insensitive).
        **options: Keyword arguments forwarded to the backend constructor.

    Raises:
        InputValidationError: If *name* is not a known provider.
    """
    try:
        backend_cls = BACKENDS[name.lower()]
    except KeyError:
        raise InputValidationError(
            f"Unknown geocoding provider {name!r}. "
            f"Choose one of: {', '.join(sorted(BACKENDS))}"
        ) from None
    logger.debug("Using %s backend", backend_cls.__name__)
    return backend_cls(**options)

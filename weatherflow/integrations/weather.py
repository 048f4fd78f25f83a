"""Weather API clients and the integration client that resolves locations."""

from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional, Tuple

import requests

from ..core.context import Variables
from ..core.exceptions import (
    LocationNotFoundError,
    MalformedResponseError,
    UpstreamCallError,
)
from ..core.logging import get_logger
from ..models.node_data import IntegrationMetadata, LocationOption

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 10.0


@dataclass
class APIResponse:
    """Decoded response of a weather API call."""
    status_code: int
    data: Dict[str, Any] = field(default_factory=dict)


class APIClient(ABC):
    """Interface for weather API transports."""

    @abstractmethod
    def call_api(self, url: str) -> APIResponse:
        """
        Perform a GET request and decode its JSON object body.

        Raises:
            UpstreamCallError: On transport failure, non-2xx status or undecodable body
        """


class HTTPAPIClient(APIClient):
    """Weather API transport backed by a requests session."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})

    def call_api(self, url: str) -> APIResponse:
        logger.debug(f"Calling weather API: {url}")
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise UpstreamCallError(f"request failed: {e}", endpoint=url) from e

        if not 200 <= response.status_code < 300:
            raise UpstreamCallError(
                f"API request failed with status {response.status_code}: {response.text}",
                endpoint=url,
                status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamCallError(
                f"failed to parse JSON response: {e}",
                endpoint=url,
                status_code=response.status_code
            ) from e

        if not isinstance(data, dict):
            raise UpstreamCallError(
                "failed to parse JSON response: expected an object",
                endpoint=url,
                status_code=response.status_code
            )

        return APIResponse(status_code=response.status_code, data=data)

    def close(self) -> None:
        self.session.close()


class MockAPIClient(APIClient):
    """
    Deterministic in-process weather API.

    Lookup order: exact URL response, then substring response patterns, then
    substring error patterns, then a default reading of 25.0. Only the most
    recent max_recorded_calls URLs are kept in calls.
    """

    DEFAULT_TEMPERATURE = 25.0
    MAX_RECORDED_CALLS = 100

    def __init__(self, max_recorded_calls: int = MAX_RECORDED_CALLS):
        self._responses: Dict[str, Dict[str, Any]] = {}
        self._patterns: List[Tuple[str, Dict[str, Any]]] = []
        self._errors: List[Tuple[str, str]] = []
        self.calls: Deque[str] = deque(maxlen=max_recorded_calls)

    def set_response(self, url_or_pattern: str, data: Dict[str, Any], exact: bool = False) -> None:
        if exact:
            self._responses[url_or_pattern] = data
        else:
            self._patterns.append((url_or_pattern, data))

    def set_temperature(self, pattern: str, temperature: float) -> None:
        self.set_response(pattern, _weather_payload(temperature))

    def set_error(self, pattern: str, message: str) -> None:
        self._errors.append((pattern, message))

    def set_api_error(self, message: str) -> None:
        """Make every Open-Meteo call fail."""
        self.set_error("api.open-meteo.com", f"API error: {message}")

    def set_default_weather_response(self) -> None:
        """Seed readings for Sydney and Melbourne."""
        self.set_temperature("latitude=-33.868800", 28.5)
        self.set_temperature("latitude=-37.813600", 22.1)

    def reset(self) -> None:
        self._responses.clear()
        self._patterns.clear()
        self._errors.clear()
        self.calls.clear()

    def call_api(self, url: str) -> APIResponse:
        self.calls.append(url)

        if url in self._responses:
            return APIResponse(status_code=200, data=self._responses[url])

        for pattern, data in self._patterns:
            if pattern in url:
                return APIResponse(status_code=200, data=data)

        for pattern, message in self._errors:
            if pattern in url:
                raise UpstreamCallError(message, endpoint=url)

        return APIResponse(status_code=200, data=_weather_payload(self.DEFAULT_TEMPERATURE))


def _weather_payload(temperature: float) -> Dict[str, Any]:
    return {
        "current_weather": {
            "temperature": temperature,
            "windspeed": 10.0,
            "winddirection": 180.0,
            "weathercode": 0,
            "time": "2024-01-01T12:00",
        }
    }


@dataclass
class IntegrationResult:
    temperature: float
    location: str
    api_response: Dict[str, Any]
    endpoint: str
    status_code: int


def build_endpoint(template: str, option: LocationOption) -> str:
    """Substitute {lat}/{lon} with fixed six-decimal coordinates."""
    return template.replace("{lat}", f"{option.lat:.6f}").replace("{lon}", f"{option.lon:.6f}")


def find_location(city: str, options: List[LocationOption]) -> LocationOption:
    """Case-insensitive lookup of a city among the configured options."""
    wanted = city.casefold()
    for option in options:
        if option.city.casefold() == wanted:
            return option
    raise LocationNotFoundError(city, [option.city for option in options])


def _temperature_problem(data: Dict[str, Any]) -> Optional[str]:
    if "current_weather" not in data:
        return "current_weather not found in API response"
    current = data["current_weather"]
    if not isinstance(current, dict):
        return "current_weather is not an object"
    if "temperature" not in current:
        return "temperature not found in current_weather"
    temperature = current["temperature"]
    if isinstance(temperature, bool) or not isinstance(temperature, (int, float)):
        return "temperature is not a numeric value"
    return None


def extract_temperature(data: Dict[str, Any]) -> float:
    """Read current_weather.temperature from a decoded response."""
    problem = _temperature_problem(data)
    if problem:
        raise MalformedResponseError(f"failed to extract temperature: {problem}")
    return float(data["current_weather"]["temperature"])


class IntegrationClient:
    """Resolves a city to coordinates, calls the weather API and extracts the reading."""

    def __init__(self, api_client: APIClient):
        self.api_client = api_client

    def resolve_and_call(self, metadata: IntegrationMetadata, variables: Variables) -> IntegrationResult:
        """
        Run the integration step for a node.

        Args:
            metadata: The integration node's metadata (endpoint template and options)
            variables: Current run variables; "city" is required

        Returns:
            The reading, the canonical location name and the raw call details

        Raises:
            MissingInputError: If "city" is absent
            TypeMismatchError: If "city" is not a string
            LocationNotFoundError: If no option matches the city
            UpstreamCallError: If the call fails or returns non-2xx
            MalformedResponseError: If the reading cannot be extracted
        """
        city = variables.get_string("city", type_message="city must be a string")
        option = find_location(city, metadata.options)
        url = build_endpoint(metadata.api_endpoint, option)

        try:
            response = self.api_client.call_api(url)
        except UpstreamCallError as e:
            raise UpstreamCallError(
                f"API call failed: {e.message}",
                endpoint=url,
                status_code=e.status_code
            ) from e

        temperature = extract_temperature(response.data)
        logger.info(f"Weather reading for {option.city}: {temperature:.1f}°C")

        return IntegrationResult(
            temperature=temperature,
            location=option.city,
            api_response=response.data,
            endpoint=url,
            status_code=response.status_code,
        )

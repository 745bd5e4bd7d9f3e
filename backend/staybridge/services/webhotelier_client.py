"""WebHotelier API client: provider adapter for live availability and flexible calendars."""

import logging
from datetime import date

import httpx
from pydantic import ValidationError

from staybridge.config import settings
from staybridge.schemas.provider import RawAvailability, RawCalendar
from staybridge.services.availability.errors import ProviderUnavailable
from staybridge.services.availability.interfaces import ProviderClient

logger = logging.getLogger(__name__)


class WebHotelierClient(ProviderClient):
    """Adapter for the WebHotelier REST API. No retries: failures surface to the caller."""

    def __init__(
        self,
        base_url: str | None = None,
        username: str | None = None,
        password: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url or settings.webhotelier_base_url
        self._auth = (
            username if username is not None else settings.webhotelier_username,
            password if password is not None else settings.webhotelier_password,
        )
        self._timeout = timeout or settings.webhotelier_timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                auth=self._auth,
                timeout=self._timeout,
                headers={"Accept": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def query_availability(
        self, hotel_id: str, check_in: date, check_out: date, party_descriptor: str
    ) -> RawAvailability:
        params = {
            "party": party_descriptor,
            "checkin": check_in.isoformat(),
            "checkout": check_out.isoformat(),
            "payments": 1,
        }
        payload = await self._get_json(f"availability/{hotel_id}", params, hotel_id, check_in, check_out)
        try:
            return RawAvailability.model_validate(payload)
        except ValidationError as e:
            raise ProviderUnavailable(hotel_id, check_in, check_out, f"unreadable availability: {e}") from e

    async def query_flexible_calendar(
        self, hotel_id: str, party_descriptor: str, from_date: date, to_date: date
    ) -> RawCalendar:
        params = {
            "party": party_descriptor,
            "startDate": from_date.isoformat(),
            "endDate": to_date.isoformat(),
        }
        payload = await self._get_json(
            f"availability/{hotel_id}/flexible-calendar", params, hotel_id, from_date, to_date
        )
        try:
            return RawCalendar.model_validate(payload)
        except ValidationError as e:
            raise ProviderUnavailable(hotel_id, from_date, to_date, f"unreadable calendar: {e}") from e

    async def _get_json(
        self, path: str, params: dict, hotel_id: str, start: date, end: date
    ) -> dict:
        client = await self._get_client()
        try:
            resp = await client.get(path, params=params)
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"WebHotelier {path} returned {e.response.status_code} for {start}..{end}")
            raise ProviderUnavailable(hotel_id, start, end, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            logger.error(f"WebHotelier request error on {path} for {start}..{end}: {e}")
            raise ProviderUnavailable(hotel_id, start, end, str(e) or type(e).__name__) from e
        except ValueError as e:
            raise ProviderUnavailable(hotel_id, start, end, "response is not JSON") from e

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None


webhotelier_client = WebHotelierClient()

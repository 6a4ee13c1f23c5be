"""
Schedule store backed by a PostgREST-style HTTP API.
"""

import logging
from typing import Any, Dict, FrozenSet, List

import requests
from pendulum import DateTime

from ..domain.exceptions import StoreError
from ..domain.models import (
    OCCUPYING_STATUSES,
    AvailabilityRule,
    ExistingBooking,
    TimeOffBlock,
)
from .records import (
    booking_from_record,
    format_instant,
    rule_from_record,
    time_off_from_record,
)

logger = logging.getLogger(__name__)


class RestScheduleStore:
    """
    Client for the ``availability_rules``, ``bookings`` and ``time_off``
    tables exposed under ``{base_url}/rest/v1``.

    Filters are pushed down to the server using PostgREST operators
    (``eq.``, ``in.()``, ``lt.``, ``gt.``).
    """

    REST_PATH = "/rest/v1"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        occupying_statuses: FrozenSet[str] = OCCUPYING_STATUSES
    ):
        """
        Initialize the REST store.

        Args:
            base_url: Project URL, e.g. https://example.supabase.co
            api_key: Service key with read access to the schedule tables
            timeout: Request timeout in seconds
            occupying_statuses: Booking statuses that reserve a slot
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.occupying_statuses = frozenset(occupying_statuses)
        self.headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json"
        }

    def get_rules_for_day_of_week(self, day_of_week: int) -> List[AvailabilityRule]:
        rows = self._get("availability_rules", {
            "select": "day_of_week,start_time,end_time",
            "day_of_week": f"eq.{day_of_week}",
        })
        return self._parse(rows, "availability_rules", rule_from_record)

    def get_occupying_bookings_in_range(
        self,
        utc_start: DateTime,
        utc_end: DateTime
    ) -> List[ExistingBooking]:
        statuses = ",".join(sorted(self.occupying_statuses))
        rows = self._get("bookings", {
            "select": "id,start_datetime,end_datetime,status",
            "status": f"in.({statuses})",
            "start_datetime": f"lt.{format_instant(utc_end)}",
            "end_datetime": f"gt.{format_instant(utc_start)}",
        })
        return self._parse(rows, "bookings", booking_from_record)

    def get_time_off_in_range(
        self,
        utc_start: DateTime,
        utc_end: DateTime
    ) -> List[TimeOffBlock]:
        rows = self._get("time_off", {
            "select": "id,start_datetime,end_datetime,reason",
            "start_datetime": f"lt.{format_instant(utc_end)}",
            "end_datetime": f"gt.{format_instant(utc_start)}",
        })
        return self._parse(rows, "time_off", time_off_from_record)

    def _get(self, table: str, params: Dict[str, str]) -> List[Dict[str, Any]]:
        """
        Fetch rows from a table.

        Raises:
            StoreError: If the request fails or returns something other than a list
        """
        url = f"{self.base_url}{self.REST_PATH}/{table}"
        logger.debug("GET %s %s", url, params)

        try:
            response = requests.get(
                url,
                headers=self.headers,
                params=params,
                timeout=self.timeout
            )
            response.raise_for_status()
            data = response.json()

        except requests.exceptions.RequestException as e:
            raise StoreError(f"Failed to fetch {table}: {e}") from e

        except ValueError as e:
            raise StoreError(f"Invalid JSON returned for {table}: {e}") from e

        if not isinstance(data, list):
            raise StoreError(f"Expected a list of rows for {table}, got {type(data).__name__}")

        return data

    @staticmethod
    def _parse(rows: List[Dict[str, Any]], table: str, parse) -> list:
        parsed = []

        for row in rows:
            try:
                parsed.append(parse(row))
            except (KeyError, TypeError, ValueError) as e:
                raise StoreError(f"Malformed row in {table}: {e}") from e

        return parsed

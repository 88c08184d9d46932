"""Holiday calendar source port."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class IHolidayCalendarSource(Protocol):
    """External public-holiday calendar."""

    async def fetch_holiday_table(self) -> dict[str, bool]:
        """
        Fetch the published calendar.

        Returns:
            ``YYYY-MM-DD`` -> whether the date is a holiday, for every date
            the source publishes

        Raises:
            HolidayOracleUnavailable: If the source cannot be reached or
                returns an unexpected payload
        """
        ...

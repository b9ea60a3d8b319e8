"""Current date and time variables."""

from datetime import datetime
from typing import Dict, Any, Callable, Optional

from ..core.base import VariableProvider
from ..core.registry import variable_provider_registry


@variable_provider_registry.register("datetime", aliases=["date_time", "clock"])
class DateTimeVariables(VariableProvider):
    """Exposes the current local date and time to every template."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self._clock = clock or (lambda: datetime.now().astimezone())

    def get_variables(self) -> Dict[str, Any]:
        now = self._clock()
        return {
            "current_date": now.strftime("%Y-%m-%d"),
            "current_time": now.strftime("%H:%M:%S"),
            "current_datetime": now.strftime("%Y-%m-%d %H:%M:%S"),
            "current_timestamp": int(now.timestamp()),
            "current_year": now.year,
            "current_month": now.month,
            "current_day": now.day,
            "current_day_of_week": now.strftime("%A"),
            "current_timezone": now.tzname() or "UTC",
        }

"""Domain exceptions raised by the billing services.

The API layer translates these into HTTP responses; batch operations catch the
data-quality and configuration subclasses per item and report them as issues.
"""

from __future__ import annotations

from typing import Any


class BillingError(RuntimeError):
    """Base class for all billing engine errors."""

    status_code = 400

    def to_dict(self) -> dict[str, Any]:
        return {"detail": str(self)}


class NotFoundError(BillingError):
    status_code = 404

    def __init__(self, entity: str, entity_id: object) -> None:
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class ValidationError(BillingError):
    status_code = 422


class StateConflictError(BillingError):
    """A transition was attempted from a state that does not allow it.

    Also raised when a compare-and-set write loses against a concurrent writer;
    ``current_status`` then reflects the state the other writer left behind.
    """

    status_code = 409

    def __init__(
        self,
        entity: str,
        entity_id: object,
        current_status: str | None,
        action: str,
    ) -> None:
        if current_status is None:
            message = f"Cannot {action} {entity} {entity_id}: it changed concurrently"
        else:
            message = f"Cannot {action} {entity} {entity_id} while it is {current_status}"
        super().__init__(message)
        self.entity = entity
        self.entity_id = entity_id
        self.current_status = current_status
        self.action = action

    def to_dict(self) -> dict[str, Any]:
        return {
            "detail": str(self),
            "current_status": self.current_status,
            "action": self.action,
        }


class RateResolutionError(BillingError):
    """No single rate could be determined for a visit."""

    status_code = 422


class NoRateCardError(RateResolutionError):
    pass


class NoMatchingRateError(RateResolutionError):
    pass


class AmbiguousRateError(RateResolutionError):
    pass


class HolidayCalendarUnavailableError(BillingError):
    """The holiday calendar has no data for the requested region and year."""

    status_code = 422

    def __init__(self, region: str, year: int) -> None:
        super().__init__(f"No bank holiday calendar loaded for {region} {year}")
        self.region = region
        self.year = year


__all__ = [
    "AmbiguousRateError",
    "BillingError",
    "HolidayCalendarUnavailableError",
    "NoMatchingRateError",
    "NoRateCardError",
    "NotFoundError",
    "RateResolutionError",
    "StateConflictError",
    "ValidationError",
]

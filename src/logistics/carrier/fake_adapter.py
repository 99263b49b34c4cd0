"""Fake carrier adapter — deterministic carrier for testing and development.

Quotes from parcel weight, issues mock carrier tracking numbers and labels,
and remembers bookings by reference so retries do not double-book.
"""

from decimal import Decimal
from uuid import uuid4

from logistics.carrier.port import CarrierPort
from logistics.shared.money import quantize

_BASE_RATE = Decimal("5")
_RATE_PER_KG = Decimal("2.5")
_EXPRESS_FACTOR = Decimal("1.5")


class FakeCarrier(CarrierPort):
    """Fake carrier that always succeeds by default."""

    def __init__(self):
        self.should_succeed = True
        self.failure_reason = "Carrier unavailable"
        self.bookings: dict[str, dict] = {}
        self.cancelled: set[str] = set()

    def configure(self, should_succeed: bool = True, failure_reason: str = "Carrier unavailable"):
        """Configure the fake carrier behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def quote_rate(self, _origin, _destination, parcels, service_code, _timeout=None) -> dict:
        if not self.should_succeed:
            return {"cost_price": None, "error": self.failure_reason}

        weight = sum(
            Decimal(str(p.get("weight") or 0)) * int(p.get("quantity") or 1) for p in parcels
        )
        cost = _BASE_RATE + weight * _RATE_PER_KG
        if service_code == "E":
            cost *= _EXPRESS_FACTOR
        return {"cost_price": float(quantize(cost)), "currency": "KWD", "service_code": service_code}

    def create_shipment(self, reference, _origin, _destination, _parcels, _service_code, _timeout=None) -> dict:
        if not self.should_succeed:
            return {"carrier_tracking_number": None, "label_url": None, "error": self.failure_reason}

        if reference in self.bookings:
            return self.bookings[reference]

        carrier_tracking_number = f"FAKE-{uuid4().hex[:10].upper()}"
        booking = {
            "carrier_tracking_number": carrier_tracking_number,
            "label_url": f"https://fake-carrier.example.com/labels/{carrier_tracking_number}.pdf",
        }
        self.bookings[reference] = booking
        return booking

    def cancel_shipment(self, carrier_tracking_number, _timeout=None) -> dict:
        if not self.should_succeed:
            return {"cancelled": False, "reason": self.failure_reason}
        self.cancelled.add(carrier_tracking_number)
        for reference, booking in list(self.bookings.items()):
            if booking["carrier_tracking_number"] == carrier_tracking_number:
                del self.bookings[reference]
        return {"cancelled": True, "reason": "Shipment cancelled successfully"}

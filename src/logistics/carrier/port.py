"""Carrier port — abstract interface for the parcel carrier.

The brokerage never speaks the carrier's wire protocol itself. Adapters
translate these calls, bound every remote call by ``timeout`` seconds and
report failures as an ``error`` key instead of raising.
"""

from abc import ABC, abstractmethod


class CarrierPort(ABC):
    """Abstract interface for carrier adapters."""

    @abstractmethod
    def quote_rate(self, origin: dict, destination: dict, parcels: list[dict], service_code: str, timeout: float) -> dict:
        """Ask for the raw cost of moving ``parcels``.

        Returns:
            dict with keys: cost_price, currency, service_code (or error)
        """
        ...

    @abstractmethod
    def create_shipment(
        self,
        reference: str,
        origin: dict,
        destination: dict,
        parcels: list[dict],
        service_code: str,
        timeout: float,
    ) -> dict:
        """Book a shipment. Booking the same ``reference`` twice returns the first booking.

        Returns:
            dict with keys: carrier_tracking_number, label_url (or error)
        """
        ...

    @abstractmethod
    def cancel_shipment(self, carrier_tracking_number: str, timeout: float) -> dict:
        """Cancel a booking.

        Returns:
            dict with keys: cancelled (bool), reason (str)
        """
        ...

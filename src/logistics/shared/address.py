"""Address value object shared by pickup requests and shipments."""

import json
import re

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import String

from logistics.domain import logistics


@logistics.value_object
class Address:
    """A contactable street address.

    Contact person, phone, street, city and a two-letter country code are
    required; company, email and postal code are optional.
    """

    contact_person = String(required=True, max_length=150)
    company = String(max_length=150)
    phone = String(required=True, max_length=30)
    email = String(max_length=254)
    street = String(required=True, max_length=300)
    city = String(required=True, max_length=100)
    postal_code = String(max_length=20)
    country_code = String(required=True, max_length=2)

    @invariant.post
    def country_code_is_iso_alpha2(self):
        if not re.fullmatch(r"[A-Z]{2}", self.country_code or ""):
            raise ValidationError({"country_code": [f"Invalid country code: {self.country_code!r}"]})

    def label(self) -> str:
        """One-line rendering used for current location and history entries."""
        parts = [self.street, self.city, self.country_code]
        return ", ".join(p for p in parts if p)


def parse_address(data, field: str = "address") -> Address:
    """Build an Address from a dict or its JSON text."""
    if isinstance(data, str):
        try:
            data = json.loads(data)
        except json.JSONDecodeError:
            raise ValidationError({field: ["Address must be a JSON object"]}) from None
    if not isinstance(data, dict):
        raise ValidationError({field: ["Address is required"]})
    return Address(**data)

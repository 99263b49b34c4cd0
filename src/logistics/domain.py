"""Logistics bounded context — parcel brokerage.

Tracks shipments from pickup request to delivery and meters every booking
against a prepaid/credit balance that may be pooled across an organization.
Accounts, shipments and pickup requests live in one domain so that a booking
can debit the ledger and confirm the shipment in a single unit of work.
"""

from protean.domain import Domain

from logistics.utils.logging import configure_logging

configure_logging()

logistics = Domain(name="logistics")

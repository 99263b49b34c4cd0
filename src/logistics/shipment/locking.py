"""Serializing shipment commands.

Every command against a shipment runs under the shipment's lock. Commands
that may move money also hold the lock of the billing account involved,
which is the account recorded at booking once the shipment is booked.
"""

from protean.utils.globals import current_domain

from logistics.shipment.shipment import Shipment
from logistics.utils.locks import account_key, serialized, shipment_key


def lock_shipment(tracking_number: str, *account_ids: str, timeout: float | None = None):
    keys = [shipment_key(tracking_number)]
    shipment = current_domain.repository_for(Shipment).find_by_tracking_number(tracking_number)
    if shipment is not None and shipment.billing_account_id:
        keys.append(account_key(shipment.billing_account_id))
    keys.extend(account_key(a) for a in account_ids if a)
    return serialized(*keys, timeout=timeout)


def process_locked(tracking_number: str, command, *account_ids: str):
    with lock_shipment(tracking_number, *account_ids):
        return current_domain.process(command, asynchronous=False)

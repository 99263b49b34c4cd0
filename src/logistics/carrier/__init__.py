"""Carrier adapters, chosen by name from ``CARRIER_ADAPTER``.

Every booking, cancellation and quote goes through ``get_carrier()``, which
builds the named adapter on first use and keeps it for the process.
"""

from logistics.carrier.port import CarrierPort
from logistics.utils import config

_ADAPTERS: dict[str, str] = {
    "fake": "logistics.carrier.fake_adapter:FakeCarrier",
}

_active: CarrierPort | None = None


def _load(path: str) -> type[CarrierPort]:
    from importlib import import_module

    module_name, class_name = path.split(":")
    return getattr(import_module(module_name), class_name)


def get_carrier() -> CarrierPort:
    global _active
    if _active is None:
        name = config.carrier_adapter()
        if name not in _ADAPTERS:
            raise ValueError(f"No carrier adapter named {name!r}; known: {', '.join(sorted(_ADAPTERS))}")
        _active = _load(_ADAPTERS[name])()
    return _active


def reset_carrier() -> None:
    """Drop the active adapter so the next call rebuilds it from config."""
    global _active
    _active = None

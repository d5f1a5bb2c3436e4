"""Product definitions: European and barrier calls/puts."""

from bridgepricer.products.base import (
    Product,
    PayoffType,
    BarrierType,
    Frequency,
)
from bridgepricer.products.options import (
    EuropeanCallPut,
    BarrierCallPut,
)

__all__ = [
    "Product",
    "PayoffType",
    "BarrierType",
    "Frequency",
    "EuropeanCallPut",
    "BarrierCallPut",
]

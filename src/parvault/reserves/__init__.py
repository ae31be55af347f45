"""Reserve subsystem — reserve contract, verified gateway, rebalancer."""

from parvault.reserves.gateway import SafeReserveGateway
from parvault.reserves.interface import Reserve, reserve_value
from parvault.reserves.memory import InMemoryReserve
from parvault.reserves.rebalancer import ReserveRebalancer

__all__ = [
    "InMemoryReserve",
    "Reserve",
    "ReserveRebalancer",
    "SafeReserveGateway",
    "reserve_value",
]

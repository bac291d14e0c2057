"""Control-plane collaborators."""

from .interfaces import TunnelRunner, TunnelStore
from .local import LocalTunnelRunner, LocalTunnelStore, StoreState

__all__ = [
    "TunnelStore",
    "TunnelRunner",
    "LocalTunnelStore",
    "LocalTunnelRunner",
    "StoreState",
]

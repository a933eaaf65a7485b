"""Connectivity signal for the optional AWMS server."""

from .monitor import OFFLINE, ONLINE, ConnectivityMonitor

__all__ = [
    "ConnectivityMonitor",
    "OFFLINE",
    "ONLINE",
]

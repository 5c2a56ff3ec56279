"""Transports performing single request/response exchanges."""

from pyagency.transport.asgi import ASGITransport
from pyagency.transport.network import HttpxTransport
from pyagency.transport.types import Transport

__all__ = [
    "ASGITransport",
    "HttpxTransport",
    "Transport",
]

"""Requests classes and builders."""

from pyagency.request.builder import RequestBuilder
from pyagency.request.request import Request

__all__ = [
    "Request",
    "RequestBuilder",
]

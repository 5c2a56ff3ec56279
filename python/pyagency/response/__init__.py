"""Response classes and builders."""

from pyagency.response.builder import ResponseBuilder
from pyagency.response.response import Response

__all__ = [
    "Response",
    "ResponseBuilder",
]

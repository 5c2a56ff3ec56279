"""HTTP utils classes and types."""

from pyagency.http.headers import HeaderMap
from pyagency.http.url import Url

__all__ = [
    "HeaderMap",
    "Url",
]

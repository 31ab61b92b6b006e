"""Courier networking layer: request building, retries and decoding."""

from .client import HttpClient
from .codec import ContentMode
from .config import HttpClientConfig
from .errors import (
    BuildError,
    ConfigurationError,
    DecodeError,
    HttpClientError,
    RequestTimeoutError,
    StatusError,
    TransportError,
)
from .request import BodyModel, ModelSlot, RawBody, RequestSpec
from .types import Err, Ok, Result

__all__ = [
    "BodyModel",
    "BuildError",
    "ConfigurationError",
    "ContentMode",
    "DecodeError",
    "Err",
    "HttpClient",
    "HttpClientConfig",
    "HttpClientError",
    "ModelSlot",
    "Ok",
    "RawBody",
    "RequestSpec",
    "RequestTimeoutError",
    "Result",
    "StatusError",
    "TransportError",
]

"""Synchronous request engine shared by courier API clients.

Endpoint clients describe a call as a ``RequestSpec``; the engine builds the
wire request, sends it with retries, classifies the outcome and decodes the
payload into the caller's models. Errors are returned inside ``Err`` rather
than raised, always carrying the last request and response.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

import requests

from .builder import build_request
from .codec import codec_for
from .config import HttpClientConfig
from .decode import ResponseDecoder
from .errors import (
    BuildError,
    ConfigurationError,
    HttpClientError,
    TransportError,
)
from .request import RequestSpec
from .retry import AttemptOutcome, RetryExecutor, Timeout
from .types import Err, Ok, Result

logger = logging.getLogger(__name__)


class HttpClient:
    """Request engine (sync).

    One instance is long-lived and shared across calls and threads. Its only
    mutable state is the request counter, which counts logical calls that
    reached the transport (retries are not counted).
    """

    def __init__(
        self,
        config: HttpClientConfig | None,
        session: requests.Session | None = None,
    ) -> None:
        """Create a new HttpClient.

        Args:
            config: Content mode, retry policy, timeouts and headers.
            session: Optional transport to share; a new one is created
                otherwise.

        Raises:
            ConfigurationError: ``config`` is None.
        """
        if config is None:
            raise ConfigurationError("HttpClientConfig must not be None")
        self._config = config
        self._session = session if session is not None else requests.Session()
        if self._config.user_agent:
            self._session.headers["User-Agent"] = self._config.user_agent
        self._session.headers.update(self._config.default_headers)

        self._codec = codec_for(self._config.content_mode)
        self._decoder = ResponseDecoder(self._codec)
        self._executor = RetryExecutor(
            max_retries=self._config.max_retries,
            backoff_base_seconds=self._config.backoff_base_seconds,
            backoff_jitter_seconds=self._config.backoff_jitter_seconds,
            should_retry=self._config.should_retry,
            verify_tls=self._config.verify_tls,
            diagnostics=self._config.diagnostics,
        )
        self._request_count = 0
        self._count_lock = threading.Lock()

    @property
    def config(self) -> HttpClientConfig:
        return self._config

    @property
    def request_count(self) -> int:
        with self._count_lock:
            return self._request_count

    def reset_request_count(self) -> None:
        with self._count_lock:
            self._request_count = 0

    def _count_request(self) -> None:
        with self._count_lock:
            self._request_count += 1

    def _get_timeout(self, override: float | None) -> Timeout:
        """Resolve timeout preference."""
        if override is not None:
            if override <= 0:
                raise ValueError("timeout override must be > 0 when provided")
            return override
        if (
            self._config.connect_timeout_seconds is not None
            and self._config.read_timeout_seconds is not None
        ):
            return (
                self._config.connect_timeout_seconds,
                self._config.read_timeout_seconds,
            )
        return self._config.timeout_seconds

    def _build_meta(
        self,
        spec: RequestSpec,
        outcome: AttemptOutcome | None,
        timeout: Timeout,
        error: HttpClientError | None = None,
    ) -> dict[str, Any]:
        """Construct metadata dictionary from the outcome and caller context."""
        meta: dict[str, Any] = {}
        meta["method"] = spec.method.upper()
        meta["url"] = spec.full_url()
        meta["attempts"] = outcome.attempt if outcome is not None else 0
        meta["timeout_s"] = timeout
        if spec.context:
            context_dict = dict(spec.context)
            meta["context"] = context_dict
            for key, value in context_dict.items():
                meta.setdefault(key, value)

        response = outcome.response if outcome is not None else None
        if response is not None:
            meta["status"] = response.status_code
            meta["status_code"] = response.status_code
            meta["url"] = response.url
            meta["reason"] = response.reason
            try:
                meta["elapsed_s"] = response.elapsed.total_seconds()
            except AttributeError:
                pass  # In case elapsed is not available or mocked
        if error is not None:
            meta["final_error"] = error.extra.get(
                "final_error", type(error).__name__
            )

        return meta

    def request(self, spec: RequestSpec) -> Result[Any, HttpClientError]:
        """Perform one logical call described by ``spec``.

        Returns:
            ``Ok`` with the decoded response model (or the raw payload bytes
            when no response model was requested), or ``Err`` with a
            ``BuildError``, ``TransportError``, ``StatusError`` or
            ``DecodeError``.

        Raises:
            ValueError: The per-call timeout or retry override is invalid.
        """
        timeout = self._get_timeout(spec.timeout)
        if spec.max_retries is not None and spec.max_retries < 0:
            raise ValueError("max_retries must be >= 0 when provided")
        diagnostics = self._config.diagnostics

        try:
            built = build_request(
                spec, self._codec, self._session, diagnostics=diagnostics
            )
        except BuildError as exc:
            logger.debug(
                "could not build %s %s: %s", spec.method, spec.url, exc
            )
            return Err(
                exc,
                meta=self._build_meta(spec, None, timeout, exc),
                request=exc.request,
            )

        self._count_request()
        if diagnostics:
            logger.debug(
                "request: %s %s headers=%r",
                built.prepared.method,
                built.prepared.url,
                dict(built.prepared.headers),
            )

        outcome = self._executor.execute(
            self._session,
            built.prepared,
            built.body,
            max_retries=spec.max_retries,
            timeout=timeout,
        )
        if outcome is None:
            error = TransportError("no request was sent")
            error.set_request(built.prepared)
            return Err(
                error,
                meta=self._build_meta(spec, None, timeout, error),
                request=built.prepared,
            )

        if diagnostics:
            logger.debug(
                "response: status=%d classification=%s",
                outcome.status_code,
                outcome.classification.value,
            )

        value, error = self._decoder.decode(spec, outcome)
        if error is not None:
            return Err(
                error,
                meta=self._build_meta(spec, outcome, timeout, error),
                request=outcome.request,
                response=outcome.response,
            )
        return Ok(
            value,
            meta=self._build_meta(spec, outcome, timeout),
            request=outcome.request,
            response=outcome.response,
        )

    def get(self, url: str, **fields: Any) -> Result[Any, HttpClientError]:
        """Perform a GET; ``fields`` are ``RequestSpec`` attributes."""
        return self.request(RequestSpec("GET", url, **fields))

    def post(self, url: str, **fields: Any) -> Result[Any, HttpClientError]:
        return self.request(RequestSpec("POST", url, **fields))

    def put(self, url: str, **fields: Any) -> Result[Any, HttpClientError]:
        return self.request(RequestSpec("PUT", url, **fields))

    def patch(self, url: str, **fields: Any) -> Result[Any, HttpClientError]:
        return self.request(RequestSpec("PATCH", url, **fields))

    def delete(self, url: str, **fields: Any) -> Result[Any, HttpClientError]:
        return self.request(RequestSpec("DELETE", url, **fields))


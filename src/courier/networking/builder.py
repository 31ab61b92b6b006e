"""Turn a RequestSpec into a prepared transport request."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Sequence

import requests

from .body import ReplayableBody
from .codec import FORM_CONTENT_TYPE, ContentCodec, form_encode
from .errors import BuildError
from .request import BodyModel, RawBody, RequestSpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuiltRequest:
    prepared: requests.PreparedRequest
    body: ReplayableBody


def encode_body(spec: RequestSpec, codec: ContentCodec) -> bytes | None:
    body = spec.body
    if isinstance(body, RawBody):
        return ReplayableBody.capture(body.data).payload
    if body is None:
        return None
    if spec.form_encoded:
        return form_encode(body.model)
    return codec.encode(body.model)


def default_headers(spec: RequestSpec, codec: ContentCodec) -> dict[str, str]:
    """Headers implied by the content mode, before the caller's overlay.

    A form-encoded body always declares its own content type, whatever the
    content mode.
    """
    headers: dict[str, str] = {}
    if codec.content_type is not None:
        headers["Accept"] = codec.content_type
    if isinstance(spec.body, BodyModel):
        if spec.form_encoded:
            headers["Content-Type"] = FORM_CONTENT_TYPE
        elif codec.content_type is not None:
            headers["Content-Type"] = codec.content_type
    return headers


def apply_overlay(
    headers: dict[str, str | None],
    overlay: Mapping[str, Sequence[str]] | None,
) -> dict[str, str | None]:
    """Replace each overlay header wholesale; an empty list removes it.

    Removal is expressed as ``None`` so that ``requests`` also drops any
    session-level header with the same name.

    Raises:
        BuildError: A header value is not a string.
    """
    if not overlay:
        return headers
    merged = dict(headers)
    for name, values in overlay.items():
        for existing in [key for key in merged if key.lower() == name.lower()]:
            del merged[existing]
        if isinstance(values, str):
            values = [values]
        if not all(isinstance(value, str) for value in values):
            raise BuildError(f"header {name!r} values must be strings")
        merged[name] = ", ".join(values) if values else None
    return merged


def build_request(
    spec: RequestSpec,
    codec: ContentCodec,
    session: requests.Session,
    *,
    diagnostics: bool = False,
) -> BuiltRequest:
    """Assemble method, URL, body and headers into a prepared request.

    Raises:
        BuildError: The body could not be encoded, or the URL or a header
            is invalid.
    """
    if diagnostics:
        logger.debug("full url: %s", spec.full_url())
        if spec.response_model is not None:
            logger.debug("response model: %r", spec.response_model)
        if spec.error_model is not None:
            logger.debug("error model: %r", spec.error_model)

    try:
        payload = encode_body(spec, codec)
    except BuildError:
        raise
    except (OSError, ValueError, TypeError) as exc:
        raise BuildError(f"cannot read request body: {exc}") from exc

    if diagnostics:
        if isinstance(spec.body, RawBody):
            logger.debug("raw body: length = %d", len(payload or b""))
        elif isinstance(spec.body, BodyModel):
            logger.debug("body: %r", payload)

    headers: dict[str, str | None] = dict(default_headers(spec, codec))
    headers = apply_overlay(headers, spec.headers)
    params = sorted(spec.params.items()) if spec.params else None

    request = requests.Request(
        method=spec.method.upper(),
        url=spec.url,
        headers=headers,
        params=params,
        data=payload,
    )
    try:
        prepared = session.prepare_request(request)
    except (
        requests.exceptions.MissingSchema,
        requests.exceptions.InvalidSchema,
        requests.exceptions.InvalidURL,
    ) as exc:
        error = BuildError(exc)
        error.set_extra("url", spec.full_url())
        raise error from exc
    except requests.exceptions.InvalidHeader as exc:
        raise BuildError(exc) from exc

    return BuiltRequest(prepared=prepared, body=ReplayableBody(payload))

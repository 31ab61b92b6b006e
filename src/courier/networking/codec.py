"""Body encoding and response decoding for each content mode."""

from __future__ import annotations

import json
import re
import xml.etree.ElementTree as ET
from enum import Enum
from functools import lru_cache
from typing import Any, Callable, Mapping, Protocol, get_origin
from urllib.parse import urlencode

from pydantic import BaseModel, PydanticUserError, TypeAdapter

from .errors import BuildError, DecodeError

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

_SEQUENCE_ORIGINS = (list, tuple, set, frozenset)

_XML_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_.\-]*")


class ContentMode(str, Enum):
    """Serialization format negotiated once per engine."""

    JSON = "json"
    XML = "xml"
    RAW = "raw"


class ContentCodec(Protocol):
    """Encodes body models to bytes and decodes payloads into models."""

    mode: ContentMode
    content_type: str | None

    def encode(self, model: Any) -> bytes: ...

    def decode(self, payload: bytes, model_type: Any) -> Any: ...


@lru_cache(maxsize=256)
def _adapter(model_type: Any) -> TypeAdapter[Any]:
    return TypeAdapter(model_type)


def _dump(model: Any) -> Any:
    """Return the JSON-compatible form of ``model`` using field aliases."""
    try:
        return _adapter(type(model)).dump_python(
            model, mode="json", by_alias=True
        )
    except (PydanticUserError, ValueError, TypeError) as exc:
        raise BuildError(
            f"cannot encode {type(model).__name__}: {exc}"
        ) from exc


def _validate(data: Any, model_type: Any) -> Any:
    try:
        return _adapter(model_type).validate_python(data)
    except (PydanticUserError, ValueError, TypeError) as exc:
        raise DecodeError(str(exc)) from exc


class JsonCodec:
    mode = ContentMode.JSON
    content_type: str | None = "application/json"

    def encode(self, model: Any) -> bytes:
        try:
            return _adapter(type(model)).dump_json(model, by_alias=True)
        except (PydanticUserError, ValueError, TypeError) as exc:
            raise BuildError(
                f"cannot encode {type(model).__name__}: {exc}"
            ) from exc

    def decode(self, payload: bytes, model_type: Any) -> Any:
        try:
            return _adapter(model_type).validate_json(payload)
        except (PydanticUserError, ValueError, TypeError) as exc:
            raise DecodeError(str(exc)) from exc


class XmlCodec:
    """XML codec built on ``xml.etree.ElementTree``.

    Objects become elements named after their fields, sequences repeat the
    child element, and the root element is named after the model class.
    Decoding reverses this into plain dicts (attributes merged in) which are
    then validated against the requested model type.
    """

    mode = ContentMode.XML
    content_type: str | None = "application/xml"

    def encode(self, model: Any) -> bytes:
        data = _dump(model)
        if isinstance(model, Mapping):
            tag = "root"
        elif isinstance(model, (list, tuple)):
            tag = "items"
        else:
            tag = type(model).__name__
        root = ET.Element(tag)
        _fill_element(root, data)
        return ET.tostring(root, encoding="utf-8")

    def decode(self, payload: bytes, model_type: Any) -> Any:
        try:
            root = ET.fromstring(payload)
        except ET.ParseError as exc:
            raise DecodeError(f"invalid XML: {exc}") from exc
        data = _element_to_python(root)
        return _validate(_wrap_sequences(data, model_type), model_type)


class RawCodec:
    """Pass-through codec for endpoints that speak neither JSON nor XML."""

    mode = ContentMode.RAW
    content_type: str | None = None

    def encode(self, model: Any) -> bytes:
        if isinstance(model, bytes):
            return model
        if isinstance(model, str):
            return model.encode("utf-8")
        return JsonCodec().encode(model)

    def decode(self, payload: bytes, model_type: Any) -> Any:
        if model_type is bytes:
            return payload
        if model_type is str:
            try:
                return payload.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise DecodeError(str(exc)) from exc
        return JsonCodec().decode(payload, model_type)


_CODECS: dict[ContentMode, Callable[[], ContentCodec]] = {
    ContentMode.JSON: JsonCodec,
    ContentMode.XML: XmlCodec,
    ContentMode.RAW: RawCodec,
}


def codec_for(mode: ContentMode | str) -> ContentCodec:
    return _CODECS[ContentMode(mode)]()


def form_encode(model: Any) -> bytes:
    """Flatten ``model`` into ``application/x-www-form-urlencoded`` bytes.

    Keys are the model's JSON field names. ``None`` values are skipped,
    sequences repeat the key and nested objects are sent as JSON text.
    """
    data = _dump(model)
    if not isinstance(data, Mapping):
        raise BuildError(
            f"form encoding needs an object, got {type(model).__name__}"
        )
    pairs: list[tuple[str, str]] = []
    for key, value in data.items():
        if value is None:
            continue
        values = value if isinstance(value, list) else [value]
        for item in values:
            if item is not None:
                pairs.append((str(key), _form_value(item)))
    return urlencode(pairs).encode("ascii")


def _form_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def _scalar_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _fill_element(element: ET.Element, data: Any) -> None:
    if isinstance(data, Mapping):
        for key, value in data.items():
            if value is None:
                continue
            items = value if isinstance(value, list) else [value]
            tag = str(key)
            if not _XML_NAME.fullmatch(tag):
                raise BuildError(f"invalid XML element name {tag!r}")
            for item in items:
                _fill_element(ET.SubElement(element, tag), item)
    elif isinstance(data, list):
        for item in data:
            _fill_element(ET.SubElement(element, "item"), item)
    elif data is not None:
        element.text = _scalar_text(data)


def _element_to_python(element: ET.Element) -> Any:
    children = list(element)
    if not children and not element.attrib:
        return element.text
    data: dict[str, Any] = dict(element.attrib)
    for child in children:
        value = _element_to_python(child)
        if child.tag in data:
            existing = data[child.tag]
            if isinstance(existing, list):
                existing.append(value)
            else:
                data[child.tag] = [existing, value]
        else:
            data[child.tag] = value
    if not children and element.text and element.text.strip():
        data["text"] = element.text
    return data


def _wrap_sequences(data: Any, model_type: Any) -> Any:
    """Turn single children into one-item lists where the model wants a list.

    XML cannot tell a one-element sequence apart from a scalar, so the target
    model's field annotations decide.
    """
    origin = get_origin(model_type) or model_type
    if origin in _SEQUENCE_ORIGINS:
        if isinstance(data, Mapping) and len(data) == 1:
            (only,) = data.values()
            data = only
        if data is None:
            return []
        return data if isinstance(data, list) else [data]
    if not (
        isinstance(data, Mapping)
        and isinstance(model_type, type)
        and issubclass(model_type, BaseModel)
    ):
        return data
    wrapped = dict(data)
    for name, info in model_type.model_fields.items():
        key = info.alias or name
        if key not in wrapped:
            continue
        annotation = info.annotation
        if get_origin(annotation) in _SEQUENCE_ORIGINS:
            value = wrapped[key]
            if not isinstance(value, list):
                wrapped[key] = [] if value is None else [value]
        elif isinstance(annotation, type) and issubclass(annotation, BaseModel):
            wrapped[key] = _wrap_sequences(wrapped[key], annotation)
    return wrapped

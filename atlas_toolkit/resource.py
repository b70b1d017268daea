"""Conversion between resource identifiers and database values.

A message is any object standing for a resource type. Its name is taken from
a ``message_name()`` method, then from a protobuf ``DESCRIPTOR.full_name``,
then from its class name. A message with a ``resource_name()`` method names
its resource itself.
"""

from __future__ import annotations

import dataclasses
import re
import threading
from typing import Any, Optional, Protocol

DEFAULT_RESOURCE = "<default>"

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_INTEGER = re.compile(r"[+-]?[0-9]+")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


@dataclasses.dataclass
class Identifier:
    """A fully qualified resource reference."""

    application_name: str = ""
    resource_type: str = ""
    resource_id: str = ""


class ResourceError(ValueError):
    """Raised when an identifier or value cannot be converted."""


class RegistrationError(RuntimeError):
    """Raised on invalid registration of an application name or codec."""


class Codec(Protocol):
    """Converts between identifiers and database values. Must be thread safe."""

    def encode(self, value: Any) -> Optional[Identifier]:
        """Return the identifier for a database value."""
        ...

    def decode(self, identifier: Optional[Identifier]) -> Any:
        """Return the database value for an identifier."""
        ...


@dataclasses.dataclass
class _Settings:
    appname: str = ""
    as_empty: bool = False
    as_plural: bool = False
    registry: dict = dataclasses.field(default_factory=dict)


_lock = threading.RLock()
_settings = _Settings()


def _message_name(pb: Any) -> str:
    named = getattr(pb, "message_name", None)
    if callable(named):
        return named()
    full_name = getattr(getattr(pb, "DESCRIPTOR", None), "full_name", None)
    if isinstance(full_name, str):
        return full_name
    return type(pb).__name__


def _registry_key(pb: Any) -> str:
    return DEFAULT_RESOURCE if pb is None else _message_name(pb)


def _camel_to_snake(text: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", text).lower()


def _is_nil(identifier: Optional[Identifier]) -> bool:
    return identifier is None or not (
        identifier.application_name or identifier.resource_type or identifier.resource_id
    )


def _build_string(identifier: Identifier) -> str:
    return "/".join(
        (identifier.application_name, identifier.resource_type, identifier.resource_id)
    )


def _parse_string(text: str) -> tuple[str, str, str]:
    parts = text.split("/", 2)
    if len(parts) == 3:
        return parts[0], parts[1], parts[2]
    if len(parts) == 2:
        return "", parts[0], parts[1]
    return "", "", text


def register_application(name: str) -> None:
    """Register the application name used by ``encode``; allowed only once."""
    with _lock:
        if _settings.appname:
            raise RegistrationError("resource: application name already registered")
        _settings.appname = name


def set_return_empty() -> None:
    """Make ``encode`` turn None values into empty identifiers."""
    with _lock:
        _settings.as_empty = True


def return_empty() -> bool:
    """Whether None values are encoded as empty identifiers."""
    with _lock:
        return _settings.as_empty


def set_plural() -> None:
    """Make ``name`` return plural resource names."""
    with _lock:
        _settings.as_plural = True


def plural() -> bool:
    """Whether ``name`` returns plural resource names."""
    with _lock:
        return _settings.as_plural


def register_codec(codec: Optional[Codec], pb: Any) -> None:
    """Register ``codec`` for the resource of ``pb``, or as default if ``pb`` is None."""
    with _lock:
        key = _registry_key(pb)
        if codec is None:
            raise RegistrationError(f"resource: register None codec for resource {key}")
        if key in _settings.registry:
            raise RegistrationError(
                f"resource: register codec called twice for resource {key}"
            )
        _settings.registry[key] = codec


def _lookup_codec(pb: Any) -> Optional[Codec]:
    with _lock:
        return _settings.registry.get(_registry_key(pb))


def application_name() -> str:
    """Return the registered application name."""
    with _lock:
        return _settings.appname


def reset() -> None:
    """Forget the application name, codecs and flags."""
    global _settings
    with _lock:
        _settings = _Settings()


def name(pb: Any) -> str:
    """Return the snake_case resource name of ``pb``."""
    if pb is None:
        return ""
    resource_name = getattr(pb, "resource_name", None)
    if callable(resource_name):
        return resource_name()
    result = _camel_to_snake(_message_name(pb).split(".")[-1])
    if plural():
        result += "s"
    return result


def decode(pb: Any, identifier: Optional[Identifier]) -> Any:
    """Decode ``identifier`` into a database value.

    A codec registered for ``pb`` is used when there is one. Otherwise an
    empty identifier gives None, a None ``pb`` gives the fully qualified
    string, and any other ``pb`` gives the resource id after checking the
    application name and resource type.
    """
    codec = _lookup_codec(pb)
    if codec is not None:
        return codec.decode(identifier)
    if _is_nil(identifier):
        return None
    if pb is None:
        return _build_string(identifier)

    app = application_name()
    resource = name(pb)
    if identifier.application_name not in ("", app):
        raise ResourceError(
            f"resource: invalid application name - {identifier.application_name}, expected {app}"
        )
    if identifier.resource_type not in ("", resource):
        raise ResourceError(
            f"resource: invalid resource name - {identifier.resource_type}, expected {resource}"
        )
    return identifier.resource_id


def decode_int64(pb: Any, identifier: Optional[Identifier]) -> int:
    """Decode ``identifier`` as a 64-bit integer."""
    value = decode(pb, identifier)
    if value is None:
        return 0
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if not isinstance(value, str):
        raise ResourceError("resource: invalid value type, expected int64")
    if value == "":
        return 0
    if not _INTEGER.fullmatch(value):
        raise ResourceError("resource: invalid value type, expected int64")
    number = int(value)
    if not _INT64_MIN <= number <= _INT64_MAX:
        raise ResourceError("resource: invalid value type, expected int64")
    return number


def decode_bytes(pb: Any, identifier: Optional[Identifier]) -> Optional[bytes]:
    """Decode ``identifier`` as bytes; empty values give None."""
    value = decode(pb, identifier)
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if not isinstance(value, str):
        raise ResourceError("resource: invalid value type, expected bytes")
    if value == "":
        return None
    return value.encode()


def encode(pb: Any, value: Any) -> Optional[Identifier]:
    """Encode a database value into an identifier.

    A codec registered for ``pb`` is used when there is one. Otherwise the
    value must be None, bytes, an integer or a string. With a None ``pb`` a
    string is read as a fully qualified reference. Missing parts are filled
    from the registered application name and ``name(pb)``.
    """
    codec = _lookup_codec(pb)
    if codec is not None:
        return codec.encode(value)
    if value is None:
        return Identifier() if return_empty() else None

    if isinstance(value, (bytes, bytearray)):
        text = bytes(value).decode()
    elif isinstance(value, int) and not isinstance(value, bool):
        text = str(value)
    elif isinstance(value, str):
        text = value
    else:
        raise ResourceError(f"resource: unsupported value type {type(value).__name__}")

    if text == "":
        return Identifier()
    identifier = Identifier(*_parse_string(text)) if pb is None else Identifier()
    if not identifier.application_name:
        identifier.application_name = application_name()
    if not identifier.resource_type:
        identifier.resource_type = name(pb)
    if not identifier.resource_id:
        identifier.resource_id = text
    return identifier
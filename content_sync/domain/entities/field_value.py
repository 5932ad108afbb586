"""
Valores de campo tipados.

El JSON del CMS mezcla mapas por locale, links y arrays. Aquí se decodifica
a una unión etiquetada guiada SIEMPRE por el tipo declarado del campo,
nunca por la forma del valor:

    FieldValue = Scalar | LocalizedMap | LinkValue | ArrayValue
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Union

from content_sync.domain.entities.contentful import Field
from content_sync.shared.exceptions import InvalidEntryError, MalformedLinkError


@dataclass(frozen=True)
class Scalar:
    value: Any


@dataclass(frozen=True)
class LinkValue:
    target_id: str
    link_type: Optional[str] = None


@dataclass(frozen=True)
class ArrayValue:
    items: tuple["FieldValue", ...]


@dataclass(frozen=True)
class LocalizedMap:
    values: dict[str, Optional["FieldValue"]]

    def has(self, locale: str) -> bool:
        return locale in self.values

    def get(self, locale: str) -> Optional["FieldValue"]:
        return self.values.get(locale)


FieldValue = Union[Scalar, LocalizedMap, LinkValue, ArrayValue]


@dataclass(frozen=True)
class JsonValue:
    """Valor de una columna JSONB: se serializa como JSON sin importar su tipo Python."""

    value: Any


def _decode_link(raw: Any, f: Field) -> LinkValue:
    sys = raw.get("sys") if isinstance(raw, dict) else None
    if not isinstance(sys, dict) or not sys.get("id"):
        raise MalformedLinkError(f.id, raw)
    return LinkValue(target_id=sys["id"], link_type=sys.get("linkType") or f.element_link_type)


def _decode_element(raw: Any, f: Field) -> Optional[FieldValue]:
    if raw is None:
        return None
    if f.element_type == "Link":
        return _decode_link(raw, f)
    return Scalar(raw)


def _decode_localized(raw: Any, f: Field) -> Optional[FieldValue]:
    if raw is None:
        return None
    if f.is_array:
        if not isinstance(raw, list):
            raise InvalidEntryError(f"El campo Array '{f.id}' no contiene una lista: {raw!r}")
        items = []
        for item in raw:
            decoded = _decode_element(item, f)
            if decoded is not None:
                items.append(decoded)
        return ArrayValue(tuple(items))
    return _decode_element(raw, f)


def decode_field_value(raw: Any, f: Field) -> Optional[LocalizedMap]:
    """
    Decodifica el valor crudo de un campo de entrada (mapa locale -> valor).

    Retorna None si el campo no tiene valor.
    """
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise InvalidEntryError(f"El campo '{f.id}' no es un mapa por locale: {raw!r}")
    return LocalizedMap({locale: _decode_localized(value, f) for locale, value in raw.items()})


def to_python(value: Optional[FieldValue]) -> Any:
    """Valor Python plano de un FieldValue ya desenvuelto de su locale."""
    if value is None:
        return None
    if isinstance(value, Scalar):
        return value.value
    if isinstance(value, LinkValue):
        return value.target_id
    if isinstance(value, ArrayValue):
        return [to_python(item) for item in value.items]
    raise TypeError(f"LocalizedMap debe desenvolverse antes de convertir: {value!r}")

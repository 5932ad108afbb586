"""
Serialización de valores Python / FieldValue a literales SQL (PostgreSQL).

Compartido por el migrador y los importadores: cualquier cambio de escape
aplica a ambos.
"""
from __future__ import annotations

import json
import math
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from content_sync.domain.entities.field_value import ArrayValue, JsonValue, LinkValue, LocalizedMap, Scalar


class ValueSerializer:
    """
    Convierte un valor a texto SQL.

    - None -> NULL
    - bool -> TRUE / FALSE
    - int / float / Decimal -> tal cual
    - str -> comillas simples, escapando `'` como `''`
    - datetime / date -> ISO-8601 entre comillas
    - list / tuple -> literal de array `'{...}'` (elementos con `"`)
    - LocalizedMap -> valor del locale por defecto (NULL si falta)
    - JsonValue -> JSON entre comillas (columnas JSONB, cualquier tipo)
    - dict y otros -> JSON entre comillas
    """

    def __init__(self, default_locale: str = "en-US") -> None:
        self._default_locale = default_locale

    def serialize(self, value: Any) -> str:
        value = self._unwrap(value)
        if isinstance(value, JsonValue):
            return self.quote(self._json(value.value))

        if value is None:
            return "NULL"
        # bool antes que int: bool es subclase de int
        if isinstance(value, bool):
            return "TRUE" if value else "FALSE"
        if isinstance(value, float) and not math.isfinite(value):
            return self.quote(str(value))
        if isinstance(value, (int, float, Decimal)):
            return str(value)
        if isinstance(value, (list, tuple)):
            return self.quote(self._array_literal(value))
        if isinstance(value, str):
            return self.quote(value)
        if isinstance(value, (datetime, date)):
            return self.quote(value.isoformat())
        return self.quote(self._json(value))

    def quote(self, text: str) -> str:
        return "'" + text.replace("'", "''") + "'"

    def _json(self, value: Any) -> str:
        return json.dumps(value, default=str)

    def _unwrap(self, value: Any) -> Any:
        if isinstance(value, LocalizedMap):
            return self._unwrap(value.get(self._default_locale))
        if isinstance(value, Scalar):
            return value.value
        if isinstance(value, LinkValue):
            return value.target_id
        if isinstance(value, ArrayValue):
            return list(value.items)
        return value

    def _array_literal(self, items: Any) -> str:
        return "{" + ",".join(self._array_element(item) for item in items) + "}"

    def _array_element(self, value: Any) -> str:
        value = self._unwrap(value)
        if isinstance(value, JsonValue):
            return self._element_quote(self._json(value.value))

        if value is None:
            return "NULL"
        if isinstance(value, bool):
            return "TRUE" if value else "FALSE"
        if isinstance(value, float) and not math.isfinite(value):
            return self._element_quote(str(value))
        if isinstance(value, (int, float, Decimal)):
            return str(value)
        if isinstance(value, (list, tuple)):
            return self._array_literal(value)
        if isinstance(value, str):
            return self._element_quote(value)
        if isinstance(value, (datetime, date)):
            return self._element_quote(value.isoformat())
        return self._element_quote(self._json(value))

    def _element_quote(self, text: str) -> str:
        return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'

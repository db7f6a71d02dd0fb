"""MetricRecord - registro de telemetría tal como lo devuelve el data service.

Formato de cada línea NDJSON:
    {"timestamp": "2024-03-01T12:00:00.123456789Z",
     "name": "sys.uptime",
     "value": 86400,
     "meta": {"node": "000048b02d15bc7c", "host": "000048b02d15bc7c.ws-nxcore", "vsn": "W08D"}}
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Union

from ...errors import DecodeError

MetricValue = Union[int, float, str]

_FRACTION_RE = re.compile(r"\.(\d+)")


def parse_timestamp(raw: Any) -> datetime:
    """Parsea un timestamp ISO-8601 (con 'Z' y hasta nanosegundos) a datetime UTC.

    Raises:
        DecodeError: si el valor no es un timestamp válido
    """
    if isinstance(raw, datetime):
        ts = raw
    elif isinstance(raw, str) and raw:
        text = raw.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        # fromisoformat solo acepta 6 dígitos de fracción
        text = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
        try:
            ts = datetime.fromisoformat(text)
        except ValueError as e:
            raise DecodeError(f"invalid timestamp: {raw!r}") from e
    else:
        raise DecodeError(f"invalid timestamp: {raw!r}")

    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


@dataclass(frozen=True)
class MetricRecord:
    """Registro inmutable; solo lo produce RecordSource."""

    timestamp: datetime
    name: str
    value: MetricValue
    meta: Mapping[str, str] = field(default_factory=dict)

    @property
    def node(self) -> Optional[str]:
        return self.meta.get("node")

    @property
    def host(self) -> Optional[str]:
        return self.meta.get("host")

    @property
    def vsn(self) -> Optional[str]:
        return self.meta.get("vsn")

    @property
    def plugin(self) -> Optional[str]:
        return self.meta.get("plugin")

    def numeric_value(self) -> float:
        """Valor como número (los rollups y uptimes siempre son numéricos)."""
        if isinstance(self.value, (int, float)):
            return self.value
        try:
            return float(self.value)
        except ValueError as e:
            raise DecodeError(f"non numeric value for {self.name}: {self.value!r}") from e

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MetricRecord":
        """Crea un registro desde un objeto JSON ya decodificado.

        Raises:
            DecodeError: si faltan campos obligatorios o tienen tipo inválido
        """
        if not isinstance(data, Mapping):
            raise DecodeError(f"record is not an object: {type(data).__name__}")

        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise DecodeError("record without name")

        value = data.get("value")
        if value is None or isinstance(value, bool) or not isinstance(value, (int, float, str)):
            raise DecodeError(f"record {name} has invalid value: {value!r}")

        raw_meta = data.get("meta") or {}
        if not isinstance(raw_meta, Mapping):
            raise DecodeError(f"record {name} has invalid meta")
        meta: Dict[str, str] = {str(k): str(v) for k, v in raw_meta.items() if v is not None}

        return cls(
            timestamp=parse_timestamp(data.get("timestamp")),
            name=name,
            value=value,
            meta=MappingProxyType(meta),
        )

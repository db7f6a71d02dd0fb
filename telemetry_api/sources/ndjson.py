"""Decodificación NDJSON: un registro JSON por línea.

Cada línea se decodifica de forma independiente; una línea inválida no
invalida el batch.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import List

from ..core.domain import MetricRecord
from ..errors import DecodeError

logger = logging.getLogger(__name__)


@dataclass
class DecodeResult:
    records: List[MetricRecord] = field(default_factory=list)
    dropped: int = 0


def decode_records(text: str) -> DecodeResult:
    """Decodifica un body NDJSON.

    Args:
        text: Body de la respuesta (puede estar vacío)

    Returns:
        DecodeResult con los registros válidos y el conteo de descartados
    """
    result = DecodeResult()
    if not text:
        return result

    for lineno, line in enumerate(text.strip().split("\n"), start=1):
        line = line.strip()
        if not line:
            continue
        try:
            result.records.append(decode_line(line))
        except DecodeError as e:
            result.dropped += 1
            logger.debug("NDJSON_DROPPED line=%d err=%s", lineno, e)

    if result.dropped:
        logger.warning(
            "NDJSON_DECODE records=%d dropped=%d",
            len(result.records), result.dropped,
        )
    return result


def decode_line(line: str) -> MetricRecord:
    try:
        obj = json.loads(line)
    except json.JSONDecodeError as e:
        raise DecodeError(f"invalid json: {e.msg}", line=line) from e
    return MetricRecord.from_dict(obj)

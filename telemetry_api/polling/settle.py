"""settle_all - despacha varias fetches y captura el resultado de cada una.

A diferencia de asyncio.gather (sin return_exceptions), un fallo rápido no
corta a las demás: se espera a que todas terminen y cada una queda como
Settled con su valor o su error.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Dict, Generic, Mapping, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Settled(Generic[T]):
    """Resultado de una fetch: valor o error, nunca ambos."""
    name: str
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def value_or_none(self) -> Optional[T]:
        return self.value if self.ok else None


async def settle_all(fetches: Mapping[str, Awaitable[Any]]) -> Dict[str, Settled]:
    """Ejecuta todas las fetches en paralelo y espera a que todas terminen.

    Todas se despachan antes de esperar ninguna. Si quien llama es cancelado,
    las fetches pendientes se cancelan y CancelledError se propaga.

    Args:
        fetches: nombre -> awaitable

    Returns:
        nombre -> Settled, en el mismo orden que `fetches`
    """
    tasks = {name: asyncio.ensure_future(aw) for name, aw in fetches.items()}
    if not tasks:
        return {}

    try:
        await asyncio.wait(tasks.values())
    except asyncio.CancelledError:
        for task in tasks.values():
            task.cancel()
        raise

    results: Dict[str, Settled] = {}
    for name, task in tasks.items():
        if task.cancelled():
            results[name] = Settled(name=name, error=asyncio.CancelledError())
            continue
        error = task.exception()
        if error is not None:
            logger.warning("SOURCE_FAILED name=%s err=%s", name, error)
            results[name] = Settled(name=name, error=error)
        else:
            results[name] = Settled(name=name, value=task.result())
    return results

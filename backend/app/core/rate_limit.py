"""
Rate limiter in memoria
Proyecto: Taller Manager (Gestión de Taller)

Registra los instantes de cada petición por clave (normalmente IP + ruta)
con ventana deslizante. Un barrido periódico, lanzado en el lifespan de la
aplicación, elimina las entradas caducadas.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class RateLimitResult:
    """Resultado de una comprobación del rate limiter."""

    allowed: bool
    retry_after: float = 0.0

    @property
    def retry_after_seconds(self) -> int:
        """Segundos de espera redondeados hacia arriba."""
        return int(-(-self.retry_after // 1))


class RateLimiter:
    """
    Rate limiter de ventana deslizante, por proceso.

    Args:
        clock: Función que devuelve el tiempo actual en segundos
               (inyectable para los tests)
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._store: dict[str, list[float]] = {}

    def check(self, key: str, max_attempts: int, window_seconds: float) -> RateLimitResult:
        """
        Registra un intento para `key` si está dentro del límite.

        Args:
            key: Identificador único (ej. "203.0.113.5:login")
            max_attempts: Intentos permitidos dentro de la ventana
            window_seconds: Duración de la ventana

        Returns:
            RateLimitResult: allowed=False con el tiempo de espera si se superó
        """
        now = self._clock()
        timestamps = [t for t in self._store.get(key, []) if now - t < window_seconds]

        if len(timestamps) >= max_attempts:
            self._store[key] = timestamps
            retry_after = max(0.0, window_seconds - (now - timestamps[0]))
            logger.warning("Rate limit superado para %s", key)
            return RateLimitResult(allowed=False, retry_after=retry_after)

        timestamps.append(now)
        self._store[key] = timestamps
        return RateLimitResult(allowed=True)

    def sweep(self, max_age_seconds: float) -> int:
        """
        Elimina los instantes más antiguos que `max_age_seconds`.

        Returns:
            int: Número de claves eliminadas
        """
        now = self._clock()
        removed = 0
        for key in list(self._store):
            fresh = [t for t in self._store[key] if now - t < max_age_seconds]
            if fresh:
                self._store[key] = fresh
            else:
                del self._store[key]
                removed += 1
        return removed

    def reset(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)


async def run_sweeper(limiter: RateLimiter, interval_seconds: float) -> None:
    """
    Bucle de limpieza periódica; se cancela en el shutdown.

    Args:
        limiter: Rate limiter a limpiar
        interval_seconds: Intervalo entre barridos (también edad máxima)
    """
    while True:
        await asyncio.sleep(interval_seconds)
        removed = limiter.sweep(interval_seconds)
        if removed:
            logger.debug("Rate limiter: eliminadas %d claves caducadas", removed)


# Instancia compartida por la aplicación
rate_limiter = RateLimiter()


def client_ip(forwarded_for: Optional[str], real_ip: Optional[str], fallback: Optional[str]) -> str:
    """IP del cliente a partir de las cabeceras del proxy."""
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    return real_ip or fallback or "unknown"

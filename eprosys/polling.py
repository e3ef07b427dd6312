from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Poller:
    """Chama `tick` a cada `interval` segundos numa thread daemon até `stop()`."""

    def __init__(self, interval: float, tick: Callable[[], None], *, name: str = "eprosys-poller"):
        if interval <= 0:
            raise ValueError("interval deve ser positivo")
        self.interval = float(interval)
        self._tick = tick
        self._name = name
        self._stop = threading.Event()
        self._wake = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.ticks = 0

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name=self._name, daemon=True)
        self._thread.start()
        logger.info("polling configurado para %.0f segundos", self.interval)

    def trigger(self) -> None:
        """Acorda o loop agora, sem esperar o intervalo."""
        self._wake.set()

    def stop(self, timeout: float = 2.0) -> None:
        self._stop.set()
        self._wake.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
        self._thread = None

    def _loop(self) -> None:
        while not self._stop.is_set():
            self._wake.wait(self.interval)
            self._wake.clear()
            if self._stop.is_set():
                break
            try:
                self._tick()
            except Exception:
                logger.exception("falha no polling")
            self.ticks += 1

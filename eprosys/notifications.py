"""
Avisos para o usuário.

O hub é compartilhado entre sessões do Streamlit, então não dá para "consumir"
avisos de uma fila: cada sessão guarda o último número de sequência que já
mostrou e pede só os mais novos (`since`).
"""

from __future__ import annotations

import itertools
import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)

LEVELS = ("info", "success", "error")


@dataclass(frozen=True)
class Notice:
    title: str
    description: str = ""
    level: str = "info"
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class Notifier:
    def __init__(self, maxlen: int = 200):
        self._items: deque[tuple[int, Notice]] = deque(maxlen=maxlen)
        self._seq = itertools.count(1)
        self._last = 0
        self._lock = threading.Lock()

    def push(self, title: str, description: str = "", level: str = "info") -> Notice:
        if level not in LEVELS:
            raise ValueError(f"Nível de aviso desconhecido: {level}")
        notice = Notice(title=title, description=description, level=level)
        with self._lock:
            self._last = next(self._seq)
            self._items.append((self._last, notice))
        logger.debug("aviso [%s] %s: %s", level, title, description)
        return notice

    def info(self, title: str, description: str = "") -> Notice:
        return self.push(title, description, "info")

    def success(self, title: str, description: str = "") -> Notice:
        return self.push(title, description, "success")

    def error(self, title: str, description: str = "") -> Notice:
        return self.push(title, description, "error")

    @property
    def last_seq(self) -> int:
        return self._last

    def since(self, seq: Optional[int]) -> tuple[list[Notice], int]:
        """Avisos publicados depois de `seq`, e o novo cursor."""
        with self._lock:
            if seq is None:
                return [], self._last
            return [n for s, n in self._items if s > seq], self._last

from __future__ import annotations

import threading
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

NEW_WINDOW = timedelta(seconds=3)


@dataclass(frozen=True)
class Activity:
    title: str
    type: str      # faq | pendencia | acesso | author | sped | system
    action: str    # created | updated | deleted
    description: Optional[str] = None
    author: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: str = field(default_factory=lambda: f"activity_{uuid.uuid4().hex[:12]}")

    def is_new(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now - self.timestamp < NEW_WINDOW


class ActivityLog:
    """Atividades recentes (mais novas primeiro), limitado às últimas `limit`."""

    def __init__(self, limit: int = 50):
        self._items: deque[Activity] = deque(maxlen=limit)
        self._lock = threading.Lock()

    def record(self, title: str, type: str, action: str, description: Optional[str] = None,
               author: Optional[str] = None) -> Activity:
        activity = Activity(title=title, type=type, action=action, description=description, author=author)
        with self._lock:
            self._items.appendleft(activity)
        return activity

    def items(self) -> list[Activity]:
        with self._lock:
            return list(self._items)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

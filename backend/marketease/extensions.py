# Overview: Flask extension instances for database, migrations, and view caching.

from __future__ import annotations

import threading

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

from .signals import views_invalidated


class ViewCache:
    """
    Process-local cache for derived read views (dashboard metrics and friends).

    Entries are dropped whenever `views_invalidated` fires for their name.
    """

    def __init__(self, app=None):
        self._values: dict[str, object] = {}
        self._generation = 0
        self._lock = threading.Lock()
        if app is not None:
            self.init_app(app)

    def init_app(self, app) -> None:
        app.extensions["view_cache"] = self
        views_invalidated.connect(self._on_invalidated, weak=False)

    def _on_invalidated(self, sender, views=(), **extra) -> None:
        self.invalidate(*views)

    def get_or_compute(self, name: str, compute):
        """
        Return the cached view, computing it on a miss.

        A value computed while an invalidation fired is returned to the
        caller but not stored.
        """
        with self._lock:
            if name in self._values:
                return self._values[name]
            generation = self._generation
        value = compute()
        with self._lock:
            if self._generation == generation:
                self._values[name] = value
        return value

    def invalidate(self, *names: str) -> None:
        with self._lock:
            self._generation += 1
            if not names:
                self._values.clear()
                return
            # "dashboard" also drops scoped keys such as "dashboard:2026-10-18"
            for key in list(self._values):
                if key in names or key.split(":", 1)[0] in names:
                    del self._values[key]

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return any(key == name or key.split(":", 1)[0] == name for key in self._values)


db = SQLAlchemy()
migrate = Migrate()
view_cache = ViewCache()

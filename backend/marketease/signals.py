# Overview: Blinker signals broadcast after committed writes.

from blinker import Namespace

_signals = Namespace()

# Sent after a committed write. kwargs: views=tuple of view names ("products", "sales", "dashboard").
views_invalidated = _signals.signal("views-invalidated")


def invalidate_views(sender, *views: str) -> None:
    views_invalidated.send(sender, views=tuple(views))

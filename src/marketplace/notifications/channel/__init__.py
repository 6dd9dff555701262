"""Channel adapter registry.

Only the in-memory adapter ships with the engine; real delivery services
plug in by implementing ``NotificationPort`` and registering a factory.
Event handlers send through the adapter installed with ``use_channel``.
"""

from collections.abc import Callable

from marketplace.notifications.channel.fake import FakeNotifier
from marketplace.notifications.channel.port import NotificationPort

_factories: dict[str, Callable[[], NotificationPort]] = {"fake": FakeNotifier}
_active: NotificationPort | None = None


def register_channel(name: str, factory: Callable[[], NotificationPort]) -> None:
    _factories[name] = factory


def build_channel(name: str) -> NotificationPort:
    """Instantiate the adapter registered under ``name``."""
    try:
        factory = _factories[name]
    except KeyError:
        raise ValueError(f"Unknown notification channel: {name}") from None
    return factory()


def use_channel(channel: NotificationPort) -> None:
    global _active
    _active = channel


def get_channel() -> NotificationPort:
    """Return the installed adapter, falling back to a fake one."""
    global _active
    if _active is None:
        _active = FakeNotifier()
    return _active


def reset_channel():
    """Forget the installed adapter (useful for testing)."""
    global _active
    _active = None


__all__ = [
    "FakeNotifier",
    "NotificationPort",
    "build_channel",
    "get_channel",
    "register_channel",
    "reset_channel",
    "use_channel",
]

"""
Declarative markers read from module metadata.

A marker is the compiled form of an attribute: a full type name plus the
positional arguments it was constructed with. Every type, method and
property in the IR carries a list of them, and this module answers the only
question the weaver asks: "does X carry marker Y, and with which arguments?"

Markers understood by the weaver:
    NotifierAttribute       — on a type, optional mode (Explicit/Implicit)
    NotifyTargetAttribute   — on a method, no arguments
    NotifyAttribute         — on a property, optional list of names (or null)
    SuppressNotifyAttribute — on a property, no arguments
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Protocol


# =============================================================================
# MARKER NAMES
# =============================================================================

MARKER_NAMESPACE = "NotifyWeave"

NOTIFIER_MARKER = f"{MARKER_NAMESPACE}.NotifierAttribute"
NOTIFY_TARGET_MARKER = f"{MARKER_NAMESPACE}.NotifyTargetAttribute"
NOTIFY_MARKER = f"{MARKER_NAMESPACE}.NotifyAttribute"
SUPPRESS_NOTIFY_MARKER = f"{MARKER_NAMESPACE}.SuppressNotifyAttribute"


# =============================================================================
# NOTIFICATION MODE
# =============================================================================

class NotificationMode(Enum):
    """
    How properties of a notifier type are selected.

    EXPLICIT: only properties carrying a notify marker are woven
    IMPLICIT: unmarked properties with a public setter are woven too
    """
    EXPLICIT = "Explicit"
    IMPLICIT = "Implicit"

    @classmethod
    def parse(cls, value: Any) -> NotificationMode:
        """Accept the enum name, its value, or the compiled ordinal (0/1)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise ValueError(f"Invalid notification mode: {value!r}")
        if isinstance(value, int):
            ordinals = list(cls)
            if 0 <= value < len(ordinals):
                return ordinals[value]
            raise ValueError(f"Invalid notification mode ordinal: {value}")
        if isinstance(value, str):
            for mode in cls:
                if value.lower() in (mode.value.lower(), mode.name.lower()):
                    return mode
        raise ValueError(f"Invalid notification mode: {value!r}")


# =============================================================================
# MARKER
# =============================================================================

@dataclass
class Marker:
    """A single declarative marker and its constructor arguments."""
    type_name: str
    arguments: tuple[Any, ...] = field(default_factory=tuple)

    @property
    def has_arguments(self) -> bool:
        return len(self.arguments) > 0


class Marked(Protocol):
    markers: list[Marker]


def find_marker(definition: Marked, marker_name: str) -> Optional[Marker]:
    """Return the first marker of the given type, or None."""
    return next(
        (m for m in definition.markers if m.type_name == marker_name),
        None,
    )


def contains_marker(definition: Marked, marker_name: str) -> bool:
    """Check whether a definition is decorated with the named marker."""
    return any(m.type_name == marker_name for m in definition.markers)


def notifier(mode: Optional[NotificationMode] = None) -> Marker:
    """Notifier marker, optionally carrying a mode."""
    if mode is None:
        return Marker(NOTIFIER_MARKER)
    return Marker(NOTIFIER_MARKER, (mode.value,))


def notify_target() -> Marker:
    return Marker(NOTIFY_TARGET_MARKER)


def notify(*names: Optional[str], null: bool = False) -> Marker:
    """
    Notify marker.

    notify()              -> no arguments
    notify("A", "B")      -> one argument, the list ["A", "B"]
    notify(null=True)     -> one argument, an explicit null
    """
    if null:
        return Marker(NOTIFY_MARKER, (None,))
    if not names:
        return Marker(NOTIFY_MARKER)
    return Marker(NOTIFY_MARKER, (list(names),))


def suppress_notify() -> Marker:
    return Marker(SUPPRESS_NOTIFY_MARKER)

"""
Property Name Resolver for NotifyWeave.

Computes the ordered names a property reports when it changes.

Rules (notify marker on the property):
    absent                       -> nothing
    present, no arguments        -> the property's own name
    present, null argument       -> a single null
    present, empty list          -> the property's own name
    present, list of names       -> each name, in order, duplicates kept

Implicit-mode defaults are not decided here; that is the scanner's call.
"""

from __future__ import annotations

from typing import Iterator, Optional

from ..markers import NOTIFY_MARKER, find_marker
from ..model import PropertyDef


def get_notify_property_names(prop: PropertyDef) -> Iterator[Optional[str]]:
    """Yield the names to pass to the notify target for this property."""
    marker = find_marker(prop, NOTIFY_MARKER)
    if marker is None:
        return

    if not marker.has_arguments:
        yield prop.name
        return

    names = marker.arguments[0]
    if names is None:
        # An explicit null is reported as-is.
        yield None
    elif isinstance(names, str):
        yield names
    elif len(names) == 0:
        yield prop.name
    else:
        for name in names:
            yield name

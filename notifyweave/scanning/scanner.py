"""
Marker Scanner for NotifyWeave.

Walks a type tree and weaves every property its markers select.

Selection per notifier type:
    1. Mode is Explicit unless the notifier marker supplies one
    2. The notify target must resolve (locally or inherited), else fatal
    3. Suppressed properties are never woven
    4. A notify marker supplies the names (see property_names)
    5. In Implicit mode an unmarked property with a public setter
       reports its own name
    6. Properties without a setter are skipped

Nested types are always visited, whether or not the outer type is a
notifier. A type's own result never includes its nested types; the
session records every woven property for the whole module.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from ..errors import WeaveRule, WeavingError
from ..image.resolver import MetadataResolver
from ..markers import (
    NOTIFIER_MARKER,
    SUPPRESS_NOTIFY_MARKER,
    NotificationMode,
    contains_marker,
    find_marker,
)
from ..model import MethodRef, PropertyDef, TypeDef
from ..resolution.property_names import get_notify_property_names
from ..resolution.target_resolver import get_notify_target
from ..weaving.setter_rewriter import (
    check_setter_weavable,
    insert_notifications_into_property,
)

logger = logging.getLogger(__name__)


# =============================================================================
# PLANS AND SESSION STATE
# =============================================================================

@dataclass(frozen=True)
class WeavePlan:
    """The notifications one property will receive."""
    property: PropertyDef
    target: MethodRef
    names: tuple[Optional[str], ...]
    mode: NotificationMode
    implicit: bool = False

    @property
    def location(self) -> str:
        owner = self.property.declaring_type
        return f"{owner.full_name if owner else '<unknown>'}.{self.property.name}"


@dataclass
class WeaveSession:
    """
    State for one pass over a module.

    `woven` covers nested types too; the orchestrator persists the module
    when it is non-empty.
    """
    metadata_resolver: MetadataResolver
    woven: list[WeavePlan] = field(default_factory=list)
    types_scanned: int = 0
    notifier_types: int = 0

    @property
    def modified(self) -> bool:
        return len(self.woven) > 0


# =============================================================================
# PLANNING
# =============================================================================

def get_notification_mode(type_def: TypeDef) -> Optional[NotificationMode]:
    """Mode of a notifier type, or None if the type is not a notifier."""
    marker = find_marker(type_def, NOTIFIER_MARKER)
    if marker is None:
        return None
    if not marker.has_arguments:
        return NotificationMode.EXPLICIT
    try:
        return NotificationMode.parse(marker.arguments[0])
    except ValueError as e:
        raise WeavingError(
            WeaveRule.W6_INVALID_MODULE_IMAGE,
            f"{e} on notifier type {type_def.full_name}",
            type_def.full_name,
        )


def plan_property(
    prop: PropertyDef,
    target: MethodRef,
    mode: NotificationMode,
) -> Optional[WeavePlan]:
    """Decide whether and how a single property is woven."""
    if contains_marker(prop, SUPPRESS_NOTIFY_MARKER):
        logger.debug(f"Suppressed: {prop.name}")
        return None

    names = tuple(get_notify_property_names(prop))
    implicit = False

    if (
        not names
        and mode == NotificationMode.IMPLICIT
        and prop.set_method is not None
        and prop.set_method.is_public
    ):
        names = (prop.name,)
        implicit = True

    if not names:
        return None

    if prop.set_method is None:
        logger.debug(f"Read-only, nothing to weave: {prop.name}")
        return None

    check_setter_weavable(prop)
    return WeavePlan(property=prop, target=target, names=names, mode=mode, implicit=implicit)


def plan_type(type_def: TypeDef, session: WeaveSession) -> list[WeavePlan]:
    """
    Plan the weaving of one type's own properties.

    Leaves the type untouched; only the session's scan counters move.

    Raises:
        WeavingError: W1 if a notifier type has no notify target, or any
            error raised while resolving the target or checking setters
    """
    session.types_scanned += 1
    mode = get_notification_mode(type_def)
    if mode is None:
        return []
    session.notifier_types += 1

    target = get_notify_target(type_def, session.metadata_resolver)
    if target is None:
        raise WeavingError(
            WeaveRule.W1_MISSING_TARGET,
            f"Cannot locate notify target for type: {type_def.full_name}",
            type_def.full_name,
        )

    plans = []
    for prop in type_def.properties:
        plan = plan_property(prop, target, mode)
        if plan is not None:
            plans.append(plan)

    logger.debug(f"Notifier type {type_def.full_name}: {len(plans)} property(ies) to weave")
    return plans


def plan_type_tree(type_def: TypeDef, session: WeaveSession) -> list[WeavePlan]:
    """Plan a type and all of its nested types, outer first."""
    plans = plan_type(type_def, session)
    for nested in type_def.nested_types:
        plans.extend(plan_type_tree(nested, session))
    return plans


# =============================================================================
# PROCESSING
# =============================================================================

def process_type(type_def: TypeDef, session: WeaveSession) -> bool:
    """
    Weave notifications into a type and, recursively, its nested types.

    Returns:
        True if any property of this type (not its nested types) was woven
    """
    altered = False
    for plan in plan_type(type_def, session):
        insert_notifications_into_property(plan.property, plan.target, plan.names)
        session.woven.append(plan)
        altered = True

    for nested in type_def.nested_types:
        process_type(nested, session)

    return altered

"""
Notify Target Resolver for NotifyWeave.

Finds the method a notifier type reports property changes to.

Search order:
    1. Methods declared on the type itself (declaration order)
    2. The base type, resolved through the metadata resolver
    3. ...and so on up to the root of the inheritance chain

First match wins. Levels are never merged: a target on the type itself
hides any target further up the chain.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..errors import ResolutionError, WeaveRule, WeavingError
from ..image.resolver import MetadataResolver
from ..markers import NOTIFY_TARGET_MARKER, contains_marker
from ..model import MethodDef, MethodRef, STRING_TYPE_NAME, TypeDef

logger = logging.getLogger(__name__)


def validate_notify_target(method: MethodDef) -> None:
    """
    Verify a marked method takes exactly one string.

    Raises:
        WeavingError: With W2_INVALID_TARGET_SIGNATURE otherwise
    """
    declaring = method.declaring_type.full_name if method.declaring_type else "<unknown>"
    location = f"{declaring}.{method.name}"

    if len(method.parameters) != 1 or method.parameters[0].type_name != STRING_TYPE_NAME:
        shape = ", ".join(p.type_name for p in method.parameters) or "no parameters"
        raise WeavingError(
            WeaveRule.W2_INVALID_TARGET_SIGNATURE,
            f"Notify target {location} must take a single {STRING_TYPE_NAME}, got ({shape})",
            location,
        )


def find_local_notify_target(type_def: TypeDef) -> Optional[MethodDef]:
    """Return the first method on the type carrying the notify-target marker."""
    for method in type_def.methods:
        if contains_marker(method, NOTIFY_TARGET_MARKER):
            validate_notify_target(method)
            return method
    return None


def get_notify_target(
    type_def: TypeDef,
    metadata_resolver: MetadataResolver,
    _visited: Optional[set[str]] = None,
) -> Optional[MethodRef]:
    """
    Resolve the notify target for a type, walking up its base types.

    A target inherited from an ancestor is imported into the module of
    `type_def` before it is returned.

    Returns:
        MethodRef of the target, or None if the root was reached without one

    Raises:
        ResolutionError: If the base type chain loops back on itself
    """
    visited = set() if _visited is None else _visited
    key = str(type_def.reference()) if type_def.module is not None else type_def.full_name
    if key in visited:
        raise ResolutionError(
            f"Base type chain of {type_def.full_name} loops back on itself",
            type_def.full_name,
        )
    visited.add(key)

    local = find_local_notify_target(type_def)
    if local is not None:
        logger.debug(f"Notify target for {type_def.full_name}: {local.name} (local)")
        return local.reference()

    if type_def.base_type is None:
        logger.debug(f"No notify target found up to root type {type_def.full_name}")
        return None

    base_def = metadata_resolver.resolve(type_def.base_type)
    inherited = get_notify_target(base_def, metadata_resolver, visited)

    if inherited is not None and type_def.module is not None:
        inherited = type_def.module.import_reference(inherited)
        logger.debug(
            f"Notify target for {type_def.full_name}: {inherited.full_name} "
            f"(inherited from {inherited.declaring_type})"
        )

    return inherited

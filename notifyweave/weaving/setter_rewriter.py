"""
Setter Rewriter for NotifyWeave.

Weaves notify-target calls into a property setter. This is where the
instructions actually change.

A compiler-generated setter such as

    IL_0000:  ldarg.0
    IL_0001:  ldarg.1
    IL_0002:  stfld      string T::'<Name>k__BackingField'
    IL_0007:  ret

becomes, for names ["Name"]:

    nop
    ldarg.0
    ldarg.1
    stfld      string T::'<Name>k__BackingField'
    ldarg.0
    ldstr      "Name"
    call       void T::OnChanged(string)
    nop
    ret

One four-instruction block per name, in order, all between the stored
value and the original return. Repeated names are not collapsed and a
second pass over a woven setter adds a second set of blocks.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from ..errors import WeaveRule, WeavingError
from ..model import Instruction, MethodRef, OpCode, PropertyDef

logger = logging.getLogger(__name__)


def _property_location(prop: PropertyDef) -> str:
    owner = prop.declaring_type.full_name if prop.declaring_type else "<unknown>"
    return f"{owner}.{prop.name}"


def check_setter_weavable(prop: PropertyDef) -> None:
    """
    Raise if the property has a setter that cannot be rewritten.

    A missing setter is not an error; there is simply nothing to weave.

    Raises:
        WeavingError: W3 for abstract/external setters, W4 for empty bodies
    """
    setter = prop.set_method
    if setter is None:
        return

    location = _property_location(prop)
    if setter.body is None:
        raise WeavingError(
            WeaveRule.W3_BODYLESS_SETTER,
            f"Notifications cannot be woven into abstract or external setter of {location}",
            location,
        )
    if len(setter.body.instructions) == 0:
        raise WeavingError(
            WeaveRule.W4_EMPTY_SETTER_BODY,
            f"Setter of {location} has no instructions",
            location,
        )


def create_notification_block(
    notify_target: MethodRef,
    name: Optional[str],
) -> list[Instruction]:
    """this.<target>(name); followed by a nop landmark."""
    load_name = (
        Instruction.create(OpCode.LDNULL)
        if name is None
        else Instruction.create(OpCode.LDSTR, name)
    )
    return [
        Instruction.create(OpCode.LDARG_0),
        load_name,
        Instruction.create(OpCode.CALL, notify_target),
        Instruction.create(OpCode.NOP),
    ]


def insert_notifications_into_property(
    prop: PropertyDef,
    notify_target: MethodRef,
    names: Iterable[Optional[str]],
) -> None:
    """
    Rewrite the property's setter to call `notify_target` once per name.

    Read-only properties are left alone.

    Raises:
        WeavingError: If the setter has no body or an empty one
    """
    if prop.set_method is None:
        logger.debug(f"Skipping read-only property {_property_location(prop)}")
        return

    check_setter_weavable(prop)
    body = prop.set_method.body.instructions

    # Landmark before the original first instruction.
    body.insert_before(body.first, Instruction.create(OpCode.NOP))

    count = 0
    for name in names:
        block = create_notification_block(notify_target, name)
        body.insert_before(body.last, block[0])
        for previous, instruction in zip(block, block[1:]):
            body.insert_after(previous, instruction)
        count += 1

    logger.debug(
        f"Wove {count} notification(s) into {_property_location(prop)} "
        f"-> {notify_target.full_name}"
    )

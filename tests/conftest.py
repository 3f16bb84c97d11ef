"""Pytest configuration and shared builders."""

import json
from pathlib import Path
from typing import Optional

import pytest

from notifyweave.image.codec import dump_module
from notifyweave.image.resolver import MetadataResolver, ModuleResolver
from notifyweave.markers import NotificationMode, notifier, notify_target
from notifyweave.model import (
    Instruction,
    InstructionList,
    MethodBody,
    MethodDef,
    ModuleDef,
    OpCode,
    ParameterDef,
    STRING_TYPE_NAME,
    TypeDef,
    TypeRef,
)
from notifyweave.scanning.scanner import WeaveSession


def make_target_method(name: str = "OnPropertyChanged", param_types=(STRING_TYPE_NAME,)) -> MethodDef:
    """A protected callback taking the changed property's name."""
    return MethodDef(
        name=name,
        parameters=[ParameterDef(f"arg{i}", t) for i, t in enumerate(param_types)],
        visibility="family",
        markers=[notify_target()],
        body=MethodBody(InstructionList([
            Instruction.create(OpCode.NOP),
            Instruction.create(OpCode.RET),
        ])),
    )


def make_type(
    name: str,
    mode: Optional[NotificationMode] = None,
    is_notifier: bool = True,
    with_target: bool = True,
    base_type: Optional[TypeRef] = None,
    namespace: str = "Sample",
) -> TypeDef:
    """A type optionally marked as notifier and carrying a notify target."""
    type_def = TypeDef(name=name, namespace=namespace, base_type=base_type)
    if is_notifier:
        type_def.markers.append(notifier(mode))
    if with_target:
        type_def.add_method(make_target_method())
    return type_def


def make_session(*modules: ModuleDef, search_dirs=()) -> WeaveSession:
    resolver = ModuleResolver(list(search_dirs))
    for module in modules:
        resolver.register(module)
    return WeaveSession(metadata_resolver=MetadataResolver(resolver))


def write_image(path: Path, module: ModuleDef) -> Path:
    path.write_text(json.dumps(dump_module(module), indent=2), encoding="utf-8")
    return path


def opcodes(method: MethodDef) -> list[str]:
    return [i.opcode.value for i in method.body.instructions]


@pytest.fixture
def sample_module() -> ModuleDef:
    """Module with one implicit notifier type holding a public Name property."""
    module = ModuleDef(name="Sample")
    type_def = module.add_type(make_type("T", mode=NotificationMode.IMPLICIT))
    type_def.add_auto_property("Name")
    return module

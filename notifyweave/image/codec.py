"""
Module Image Codec for NotifyWeave.

Module images are UTF-8 JSON documents. This codec converts between
those documents and the in-memory IR in `notifyweave.model`.

Writing is all-or-nothing: the image is serialized to a temporary file
next to the target and moved over it with os.replace, so a failure
never leaves a half-written module behind.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any

from ..errors import ImageFormatError
from ..markers import Marker
from ..model import (
    Instruction,
    InstructionList,
    MethodBody,
    MethodDef,
    MethodRef,
    ModuleDef,
    OpCode,
    ParameterDef,
    PropertyDef,
    TypeDef,
    TypeRef,
    VOID_TYPE_NAME,
    OBJECT_TYPE_NAME,
)

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION CONSTANTS
# =============================================================================

SYMBOLS_SUFFIX = ".symbols.json"

METHOD_OPERAND_OPCODES = frozenset({OpCode.CALL, OpCode.CALLVIRT})


def symbols_path_for(module_path: Path) -> Path:
    """Path of the companion debug-symbol file for a module image."""
    return module_path.with_name(module_path.name + SYMBOLS_SUFFIX)


# =============================================================================
# DECODING
# =============================================================================

def _require(data: dict, key: str, where: str) -> Any:
    if not isinstance(data, dict) or key not in data:
        raise ImageFormatError(f"Missing '{key}' in {where}", where)
    return data[key]


def _decode_type_ref(data: dict, where: str) -> TypeRef:
    return TypeRef(
        module=_require(data, "module", where),
        full_name=_require(data, "type", where),
    )


def _decode_method_ref(data: dict, where: str) -> MethodRef:
    return MethodRef(
        declaring_type=_decode_type_ref(_require(data, "type", where), where),
        name=_require(data, "name", where),
        parameter_types=tuple(data.get("parameters", [])),
        return_type=data.get("return_type", VOID_TYPE_NAME),
    )


def _decode_markers(items: list, where: str) -> list[Marker]:
    return [
        Marker(
            type_name=_require(item, "type", where),
            arguments=tuple(item.get("args", [])),
        )
        for item in items
    ]


def _decode_instruction(data: dict, where: str) -> Instruction:
    op = _require(data, "op", where)
    try:
        opcode = OpCode(op)
    except ValueError:
        raise ImageFormatError(f"Unknown opcode '{op}' in {where}", where)

    operand = data.get("operand")
    if opcode in METHOD_OPERAND_OPCODES:
        operand = _decode_method_ref(operand, where)
    return Instruction.create(opcode, operand)


def _decode_method(data: dict, owner: str) -> MethodDef:
    name = _require(data, "name", owner)
    where = f"{owner}::{name}"
    body = data.get("body")
    return MethodDef(
        name=name,
        parameters=[
            ParameterDef(_require(p, "name", where), _require(p, "type", where))
            for p in data.get("parameters", [])
        ],
        return_type=data.get("return_type", VOID_TYPE_NAME),
        visibility=data.get("visibility", "public"),
        markers=_decode_markers(data.get("markers", []), where),
        body=None if body is None else MethodBody(InstructionList(
            [_decode_instruction(i, where) for i in body]
        )),
    )


def _decode_type(data: dict, owner: str = "module") -> TypeDef:
    name = _require(data, "name", owner)
    where = f"{owner}/{name}"
    base = data.get("base")
    type_def = TypeDef(
        name=name,
        namespace=data.get("namespace", ""),
        base_type=None if base is None else _decode_type_ref(base, where),
        markers=_decode_markers(data.get("markers", []), where),
    )

    for method_data in data.get("methods", []):
        type_def.add_method(_decode_method(method_data, where))

    for prop_data in data.get("properties", []):
        prop_name = _require(prop_data, "name", where)
        accessors = {}
        for role in ("getter", "setter"):
            method_name = prop_data.get(role)
            if method_name is None:
                accessors[role] = None
                continue
            method = type_def.find_method(method_name)
            if method is None:
                raise ImageFormatError(
                    f"Property {prop_name} refers to unknown {role} '{method_name}' in {where}",
                    where,
                )
            accessors[role] = method
        type_def.add_property(PropertyDef(
            name=prop_name,
            type_name=prop_data.get("type", OBJECT_TYPE_NAME),
            get_method=accessors["getter"],
            set_method=accessors["setter"],
            markers=_decode_markers(prop_data.get("markers", []), f"{where}.{prop_name}"),
        ))

    for nested_data in data.get("nested", []):
        type_def.add_nested_type(_decode_type(nested_data, where))

    return type_def


def load_module(data: dict) -> ModuleDef:
    """Build a ModuleDef from a decoded JSON document."""
    module = ModuleDef(
        name=_require(data, "name", "module"),
        references=list(data.get("references", [])),
    )
    for type_data in data.get("types", []):
        module.add_type(_decode_type(type_data))
    return module


def _read_json(path: Path, what: str) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ImageFormatError(f"{what} {path} is not valid UTF-8 JSON: {e}", str(path))


def read_module(path: Path | str, read_symbols: bool = False) -> ModuleDef:
    """
    Load a module image from disk.

    The companion symbol file is only read when `read_symbols` is set and
    the file exists.
    """
    path = Path(path)
    module = load_module(_read_json(path, "Module image"))

    if read_symbols:
        sym_path = symbols_path_for(path)
        if sym_path.exists():
            module.symbols = _read_json(sym_path, "Symbol file")
            logger.debug(f"Read symbols for {module.name} from {sym_path}")
        else:
            logger.debug(f"No symbol file for {module.name} at {sym_path}")

    logger.debug(f"Loaded module {module.name} from {path}")
    return module


# =============================================================================
# ENCODING
# =============================================================================

def _encode_type_ref(ref: TypeRef) -> dict:
    return {"module": ref.module, "type": ref.full_name}


def _encode_method_ref(ref: MethodRef) -> dict:
    return {
        "type": _encode_type_ref(ref.declaring_type),
        "name": ref.name,
        "parameters": list(ref.parameter_types),
        "return_type": ref.return_type,
    }


def _encode_markers(markers: list[Marker]) -> list[dict]:
    encoded = []
    for marker in markers:
        item: dict[str, Any] = {"type": marker.type_name}
        if marker.has_arguments:
            item["args"] = list(marker.arguments)
        encoded.append(item)
    return encoded


def _encode_instruction(instruction: Instruction) -> dict:
    item: dict[str, Any] = {"op": instruction.opcode.value}
    if instruction.opcode in METHOD_OPERAND_OPCODES:
        item["operand"] = _encode_method_ref(instruction.operand)
    elif instruction.operand is not None:
        item["operand"] = instruction.operand
    return item


def _encode_method(method: MethodDef) -> dict:
    return {
        "name": method.name,
        "visibility": method.visibility,
        "return_type": method.return_type,
        "parameters": [{"name": p.name, "type": p.type_name} for p in method.parameters],
        "markers": _encode_markers(method.markers),
        "body": None if method.body is None else [
            _encode_instruction(i) for i in method.body.instructions
        ],
    }


def _encode_type(type_def: TypeDef) -> dict:
    return {
        "name": type_def.name,
        "namespace": type_def.namespace,
        "base": None if type_def.base_type is None else _encode_type_ref(type_def.base_type),
        "markers": _encode_markers(type_def.markers),
        "methods": [_encode_method(m) for m in type_def.methods],
        "properties": [
            {
                "name": p.name,
                "type": p.type_name,
                "getter": p.get_method.name if p.get_method else None,
                "setter": p.set_method.name if p.set_method else None,
                "markers": _encode_markers(p.markers),
            }
            for p in type_def.properties
        ],
        "nested": [_encode_type(n) for n in type_def.nested_types],
    }


def dump_module(module: ModuleDef) -> dict:
    """Convert a ModuleDef to a JSON-ready document."""
    return {
        "name": module.name,
        "references": list(module.references),
        "types": [_encode_type(t) for t in module.types],
    }


def _stage(path: Path, payload: str) -> str:
    """Write `payload` to a temporary file beside `path`, keeping its mode."""
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(payload)
        if path.exists():
            shutil.copymode(path, tmp_name)
    except BaseException:
        os.unlink(tmp_name)
        raise
    return tmp_name


def write_module(module: ModuleDef, path: Path | str, write_symbols: bool = False) -> None:
    """
    Persist a module image, replacing the file at `path` atomically.

    With `write_symbols`, the companion symbol file is rewritten too
    (only when symbols were read on load). Both payloads are staged
    before either file is replaced.
    """
    path = Path(path)
    targets = [(path, json.dumps(dump_module(module), indent=2))]
    if write_symbols and module.symbols is not None:
        targets.append((symbols_path_for(path), json.dumps(module.symbols, indent=2)))

    staged: list[tuple[str, Path]] = []
    try:
        for target, payload in targets:
            staged.append((_stage(target, payload), target))
        while staged:
            tmp_name, target = staged[0]
            os.replace(tmp_name, target)
            staged.pop(0)
    finally:
        for tmp_name, _ in staged:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)

    logger.info(f"Wrote module {module.name} to {path}")

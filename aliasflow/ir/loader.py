"""Load IR modules from their JSON description.

A module document looks like::

    {
      "name": "example",
      "globals": [{"name": "gp", "type": "i32*", "initializer": "@x"}],
      "functions": [
        {"name": "main", "return_type": "i32", "params": [{"name": "p", "type": "i32*"}],
         "blocks": [{"label": "entry", "instructions": [
             {"op": "alloca", "name": "a", "type": "i32**"},
             {"op": "store", "value": "%p", "pointer": "%a"},
             {"op": "ret", "value": "0"}]}]},
        {"name": "malloc", "return_type": "i8*", "declaration": true}
      ]
    }

Operands are written ``@name`` (global), ``%name`` (instruction result or
argument of the enclosing function), ``null`` or an integer literal.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Union

from aliasflow.ir.models import (
    Module, Function, Instruction, Opcode, Value, Constant, GlobalVariable
)
from aliasflow.utils import IRLoadError


_OPERAND_KEYS = {
    Opcode.ALLOCA: [],
    Opcode.LOAD: ["pointer"],
    Opcode.STORE: ["value", "pointer"],
    Opcode.FIELD: ["base"],
    Opcode.COPY: ["source"],
    Opcode.BRANCH: [],
}


class ModuleLoader:
    """Builds a :class:`Module` from a parsed JSON document."""

    def __init__(self, logger=None):
        self.logger = logger

    def load(self, source: Union[str, Path, Dict[str, Any]]) -> Module:
        """Load a module from a path or an already-parsed document."""
        if isinstance(source, dict):
            document = source
        else:
            path = Path(source)
            if not path.exists():
                raise IRLoadError(f"IR file not found: {path}", self.logger)
            try:
                with open(path, "r", encoding="utf-8") as f:
                    document = json.load(f)
            except json.JSONDecodeError as e:
                raise IRLoadError(f"Invalid JSON in {path}: {e}", self.logger) from e
        if not isinstance(document, dict):
            raise IRLoadError("Module document must be a JSON object", self.logger)
        return self._build_module(document)

    def _build_module(self, document: Dict[str, Any]) -> Module:
        module = Module(name=document.get("name", "module"))

        for entry in self._list(document, "globals", "module"):
            self._require(entry, "name", "global")
            module.globals.append(GlobalVariable(name=entry["name"],
                                                 value_type=entry.get("type", "i32")))

        for entry in self._list(document, "functions", "module"):
            self._require(entry, "name", "function")
            attributes = self._list(entry, "attributes", entry["name"])
            func = Function(name=entry["name"],
                            return_type=entry.get("return_type", "void"),
                            is_declaration=bool(entry.get("declaration", False)),
                            attributes={a: True for a in attributes})
            for param in self._list(entry, "params", func.name):
                self._require(param, "name", f"parameter of {func.name}")
                func.add_argument(param["name"], param.get("type", "i32"))
            module.functions.append(func)

        # Globals may be initialized with the address of a later global.
        for entry, var in zip(self._list(document, "globals", "module"), module.globals):
            if entry.get("initializer") is not None:
                var.initializer = self._resolve(entry["initializer"], module, {}, var.name)

        for entry, func in zip(self._list(document, "functions", "module"), module.functions):
            if not func.is_declaration:
                self._build_body(entry, func, module)

        if self.logger:
            self.logger.log(f"Loaded module {module.name} with {len(module.functions)} functions "
                            f"and {len(module.globals)} globals")
        return module

    def _build_body(self, entry: Dict[str, Any], func: Function, module: Module):
        locals_by_name: Dict[str, Value] = {arg.name: arg for arg in func.arguments}
        pending = []

        # First pass creates every instruction so operands may refer forward.
        for block_entry in self._list(entry, "blocks", func.name):
            self._require(block_entry, "label", f"block of {func.name}")
            block = func.add_block(block_entry["label"])
            where = f"{func.name}: {block.label}"
            for inst_entry in self._list(block_entry, "instructions", where):
                self._require(inst_entry, "op", f"instruction of {func.name}")
                inst = self._create_instruction(inst_entry, func)
                block.append(inst)
                if inst.name:
                    locals_by_name[inst.name] = inst
                pending.append((inst, inst_entry))

        labels = {block.label for block in func.blocks}
        for inst, inst_entry in pending:
            context = f"{func.name}: {inst_entry.get('op')}"
            if inst.opcode == Opcode.CALL:
                inst.operands = [self._resolve(arg, module, locals_by_name, context)
                                 for arg in self._list(inst_entry, "args", context)]
            elif inst.opcode == Opcode.RET:
                if inst_entry.get("value") is not None:
                    value = self._resolve(inst_entry["value"], module, locals_by_name, context)
                    inst.operands = [value]
                    inst.type = value.type
            elif inst.opcode == Opcode.OTHER:
                inst.operands = [self._resolve(op, module, locals_by_name, context)
                                 for op in self._list(inst_entry, "operands", context)]
            else:
                for key in _OPERAND_KEYS[inst.opcode]:
                    if key not in inst_entry:
                        raise IRLoadError(f"Missing '{key}' operand in {context}", self.logger)
                    inst.operands.append(
                        self._resolve(inst_entry[key], module, locals_by_name, context))
            for target in inst.targets:
                if target not in labels:
                    raise IRLoadError(f"Unknown branch target '{target}' in {func.name}",
                                      self.logger)

    def _create_instruction(self, entry: Dict[str, Any], func: Function) -> Instruction:
        op = entry.get("op")
        try:
            opcode = Opcode(op)
        except ValueError:
            raise IRLoadError(f"Unknown opcode '{op}' in {func.name}", self.logger)
        context = f"{func.name}: {op}"
        attributes = {a: True for a in self._list(entry, "attributes", context)}
        return Instruction(name=entry.get("name", ""),
                           type=entry.get("type", "void"),
                           opcode=opcode,
                           callee=entry.get("callee"),
                           indices=self._list(entry, "indices", context),
                           targets=self._list(entry, "targets", context),
                           attributes=attributes)

    def _resolve(self, spelling: Any, module: Module, locals_by_name: Dict[str, Value],
                 context: str) -> Value:
        if isinstance(spelling, bool):
            raise IRLoadError(f"Invalid operand {spelling!r} in {context}", self.logger)
        if isinstance(spelling, int):
            return Constant(type="i32", value=spelling)
        if not isinstance(spelling, str):
            raise IRLoadError(f"Invalid operand {spelling!r} in {context}", self.logger)
        if spelling == "null":
            return Constant(type="ptr", value=None)
        if spelling.startswith("@"):
            var = module.get_global(spelling[1:])
            if var is None:
                raise IRLoadError(f"Unknown global '{spelling}' in {context}", self.logger)
            return var
        if spelling.startswith("%"):
            value = locals_by_name.get(spelling[1:])
            if value is None:
                raise IRLoadError(f"Unknown value '{spelling}' in {context}", self.logger)
            return value
        try:
            return Constant(type="i32", value=int(spelling))
        except ValueError:
            raise IRLoadError(f"Invalid operand '{spelling}' in {context}", self.logger)

    def _require(self, entry: Any, key: str, what: str):
        if not isinstance(entry, dict) or key not in entry:
            raise IRLoadError(f"Missing '{key}' for {what}", self.logger)

    def _list(self, entry: Dict[str, Any], key: str, context: str) -> List[Any]:
        """Optional list-valued key of ``entry``; a copy so the document is not shared."""
        value = entry.get(key, [])
        if not isinstance(value, list):
            raise IRLoadError(f"'{key}' must be a list in {context}", self.logger)
        return list(value)


def load_module(source: Union[str, Path, Dict[str, Any]], logger=None) -> Module:
    """Load a module from a JSON file path or a parsed document."""
    return ModuleLoader(logger=logger).load(source)


def dump_module(module: Module) -> Dict[str, Any]:
    """Inverse of :func:`load_module` for modules built in memory."""
    def spell(value: Value) -> Union[str, int]:
        if isinstance(value, Constant):
            return "null" if value.is_null else value.value
        return value.ref

    functions: List[Dict[str, Any]] = []
    for func in module.functions:
        entry: Dict[str, Any] = {
            "name": func.name,
            "return_type": func.return_type,
            "params": [{"name": a.name, "type": a.type} for a in func.arguments],
        }
        if func.is_declaration:
            entry["declaration"] = True
        if func.attributes:
            entry["attributes"] = sorted(k for k, v in func.attributes.items() if v)
        blocks = []
        for block in func.blocks:
            insts = []
            for inst in block.instructions:
                item: Dict[str, Any] = {"op": inst.opcode.value}
                if inst.name:
                    item["name"] = inst.name
                if inst.type != "void" and inst.opcode != Opcode.RET:
                    item["type"] = inst.type
                if inst.opcode == Opcode.CALL:
                    item["callee"] = inst.callee
                    item["args"] = [spell(a) for a in inst.operands]
                elif inst.opcode == Opcode.RET:
                    if inst.operands:
                        item["value"] = spell(inst.operands[0])
                elif inst.opcode == Opcode.OTHER:
                    item["operands"] = [spell(a) for a in inst.operands]
                else:
                    for key, op in zip(_OPERAND_KEYS[inst.opcode], inst.operands):
                        item[key] = spell(op)
                if inst.indices:
                    item["indices"] = list(inst.indices)
                if inst.targets:
                    item["targets"] = list(inst.targets)
                if inst.attributes:
                    item["attributes"] = sorted(k for k, v in inst.attributes.items() if v)
                insts.append(item)
            blocks.append({"label": block.label, "instructions": insts})
        if blocks:
            entry["blocks"] = blocks
        functions.append(entry)

    return {
        "name": module.name,
        "globals": [
            {"name": g.name, "type": g.value_type,
             **({"initializer": spell(g.initializer)} if g.initializer is not None else {})}
            for g in module.globals
        ],
        "functions": functions,
    }

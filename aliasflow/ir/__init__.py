"""IR (Intermediate Representation) module consumed by the points-to analysis.

This module provides:
- Data models for modules, functions, blocks and instructions
- A builder API and a JSON loader for constructing modules
- The instruction-level control flow graph
"""

from .models import (
    Opcode,
    Value,
    Constant,
    GlobalVariable,
    Argument,
    Instruction,
    BasicBlock,
    Function,
    Module,
    is_pointer_type,
)

from .builder import IRBuilder
from .loader import ModuleLoader, load_module, dump_module
from .control_flow_graph import CFGBuilder

__all__ = [
    # Models
    'Opcode',
    'Value',
    'Constant',
    'GlobalVariable',
    'Argument',
    'Instruction',
    'BasicBlock',
    'Function',
    'Module',
    'is_pointer_type',
    # Builders
    'IRBuilder',
    'ModuleLoader',
    'load_module',
    'dump_module',
    'CFGBuilder'
]

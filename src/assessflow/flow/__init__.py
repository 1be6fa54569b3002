"""
Flow Module

Flow compiler (declarative stages -> explicit FSM) and the stage executor
that runs a compiled flow.
"""

from .compiler import (
    CompileError,
    CompileResult,
    FlowCompilationError,
    compile_branching,
    compile_flow,
)
from .runtime import (
    FlowTerminatedError,
    RuntimeResult,
    StageExecutor,
    UnknownOptionError,
    UnknownStageError,
)

__all__ = [
    "CompileError",
    "CompileResult",
    "FlowCompilationError",
    "FlowTerminatedError",
    "RuntimeResult",
    "StageExecutor",
    "UnknownOptionError",
    "UnknownStageError",
    "compile_branching",
    "compile_flow",
]

"""codexec: untrusted code execution engine."""

from codexec.config import Config
from codexec.errors import (
    CompileError,
    ExecutionError,
    ExecutionTimeoutError,
    OutputLimitError,
    SpawnError,
    UnsupportedLanguageError,
)
from codexec.models import ExecutionRequest, ExecutionResult, Status, TestCase, TestResult
from codexec.orchestrator import Orchestrator

__all__ = [
    "CompileError",
    "Config",
    "ExecutionError",
    "ExecutionRequest",
    "ExecutionResult",
    "ExecutionTimeoutError",
    "Orchestrator",
    "OutputLimitError",
    "SpawnError",
    "Status",
    "TestCase",
    "TestResult",
    "UnsupportedLanguageError",
]

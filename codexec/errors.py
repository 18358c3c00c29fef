"""Exception taxonomy for the execution engine."""

from __future__ import annotations


class ExecutionError(Exception):
    """Base class for failures that abort a run or a single test case."""


class UnsupportedLanguageError(ExecutionError):
    def __init__(self, language: str) -> None:
        super().__init__(f"Unsupported language: {language}")
        self.language = language


class CompileError(ExecutionError):
    """The compiler produced diagnostics; the program is never run."""

    def __init__(self, diagnostics: str) -> None:
        super().__init__(diagnostics)
        self.diagnostics = diagnostics


class SpawnError(ExecutionError):
    """The OS could not launch the process (missing binary, permissions)."""


class ExecutionTimeoutError(ExecutionError, TimeoutError):
    """A process exceeded its wall-clock budget and was killed."""

    def __init__(self, timeout_ms: int, stdout: str = "", stderr: str = "") -> None:
        super().__init__(f"Execution timed out after {timeout_ms} ms")
        self.timeout_ms = timeout_ms
        self.stdout = stdout
        self.stderr = stderr


class OutputLimitError(ExecutionError):
    def __init__(self, limit_bytes: int) -> None:
        super().__init__(f"Output exceeded the limit of {limit_bytes} bytes")
        self.limit_bytes = limit_bytes

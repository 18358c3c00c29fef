"""Data models for codexec."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path


class Status(enum.Enum):
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"
    TIMEOUT = "TIMEOUT"


@dataclass(frozen=True)
class TestCase:
    __test__ = False  # not a pytest class

    id: str
    input: str
    expected_output: str
    is_hidden: bool = False


@dataclass(frozen=True)
class ExecutionRequest:
    code: str
    language: str
    test_cases: tuple[TestCase, ...] = ()


@dataclass
class TestResult:
    __test__ = False

    passed: bool
    input: str
    expected: str
    actual: str


@dataclass
class ExecutionResult:
    status: Status
    output: str | None = None
    error: str | None = None
    execution_time_ms: int = 0
    memory_usage_bytes: int | None = None
    tests_passed: int | None = None
    total_tests: int | None = None
    test_results: list[TestResult] | None = None

    def to_dict(self) -> dict:
        """JSON-ready mapping; optional fields that are absent are omitted."""
        data: dict = {
            "status": self.status.value,
            "execution_time_ms": self.execution_time_ms,
        }
        for name in ("output", "error", "memory_usage_bytes", "tests_passed", "total_tests"):
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        if self.test_results is not None:
            data["test_results"] = [
                {"passed": r.passed, "input": r.input, "expected": r.expected, "actual": r.actual}
                for r in self.test_results
            ]
        return data


@dataclass
class ProcessOutput:
    stdout: str
    stderr: str
    exit_code: int
    duration_ms: int = 0

    @property
    def failed(self) -> bool:
        return self.exit_code != 0


@dataclass(frozen=True)
class Artifact:
    """Runnable files for one attempt, all located under ``workdir``."""

    workdir: Path
    source: Path
    entry: str
    binary: Path | None = None

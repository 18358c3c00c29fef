"""Public entry point: bare run, optional test cases, guaranteed cleanup."""

from __future__ import annotations

import sys
import time
from collections.abc import Sequence

from codexec.adapter_base import LanguageAdapter
from codexec.adapter_factory import create_adapters
from codexec.config import Config
from codexec.errors import (
    CompileError,
    ExecutionError,
    ExecutionTimeoutError,
    UnsupportedLanguageError,
)
from codexec.harness import TestHarness
from codexec.models import (
    ExecutionRequest,
    ExecutionResult,
    ProcessOutput,
    Status,
    TestCase,
)
from codexec.workspace import workspace


class Orchestrator:
    def __init__(
        self,
        config: Config | None = None,
        adapters: dict[str, LanguageAdapter] | None = None,
        harness: TestHarness | None = None,
    ) -> None:
        self.config = config or Config()
        self._adapters = adapters if adapters is not None else create_adapters(self.config)
        self.harness = harness or TestHarness(
            timeout_ms=self.config.test_timeout_ms,
            temp_root=self.config.temp_root,
        )

    @property
    def languages(self) -> list[str]:
        return sorted(self._adapters)

    def adapter_for(self, language: str) -> LanguageAdapter:
        try:
            return self._adapters[language]
        except KeyError:
            raise UnsupportedLanguageError(language) from None

    def run(self, request: ExecutionRequest) -> ExecutionResult:
        return self.execute(request.code, request.language, request.test_cases)

    def execute(
        self,
        code: str,
        language: str,
        test_cases: Sequence[TestCase] = (),
    ) -> ExecutionResult:
        """Run ``code`` once, then score it against ``test_cases`` if any.

        Compile, spawn, output-limit and workspace failures of the bare run
        return status ERROR and a timeout returns TIMEOUT; in both cases no test case
        is run. A bare run that exits non-zero is reported as ERROR with the
        program's stderr, but its test cases are still evaluated.
        """
        start = time.perf_counter()
        try:
            adapter = self.adapter_for(language)
        except UnsupportedLanguageError as exc:
            self._log(str(exc))
            return ExecutionResult(status=Status.ERROR, error=str(exc), execution_time_ms=_elapsed_ms(start))

        self._log(f"Running {language} code ({len(code)} chars, {len(test_cases)} test case(s))")
        try:
            output = self._run_bare(code, adapter)
        except ExecutionTimeoutError as exc:
            self._log(str(exc))
            return ExecutionResult(
                status=Status.TIMEOUT,
                output=exc.stdout or None,
                error=str(exc),
                execution_time_ms=_elapsed_ms(start),
            )
        except CompileError as exc:
            self._log("Compilation failed.")
            return ExecutionResult(status=Status.ERROR, error=exc.diagnostics, execution_time_ms=_elapsed_ms(start))
        except (ExecutionError, OSError, UnicodeError) as exc:
            self._log(f"Execution failed: {exc}")
            return ExecutionResult(status=Status.ERROR, error=str(exc), execution_time_ms=_elapsed_ms(start))

        result = ExecutionResult(
            status=Status.ERROR if output.failed else Status.SUCCESS,
            output=output.stdout,
            error=output.stderr or None,
            execution_time_ms=_elapsed_ms(start),
        )
        self._log(f"Bare run finished: {result.status.value} in {result.execution_time_ms} ms")

        if test_cases:
            test_results = self.harness.run_test_cases(code, test_cases, adapter)
            result.test_results = test_results
            result.tests_passed = sum(1 for tr in test_results if tr.passed)
            result.total_tests = len(test_cases)
            self._log(f"Tests passed: {result.tests_passed}/{result.total_tests}")
        return result

    def _run_bare(self, code: str, adapter: LanguageAdapter) -> ProcessOutput:
        with workspace(self.config.temp_root) as workdir:
            artifact = adapter.prepare(code, workdir)
            return adapter.invoke(artifact, [], self.config.run_timeout_ms)

    def _log(self, message: str) -> None:
        if self.config.verbose:
            print(message, file=sys.stderr)


def _elapsed_ms(start: float) -> int:
    return max(0, int((time.perf_counter() - start) * 1000))

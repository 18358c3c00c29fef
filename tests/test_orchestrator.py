"""Tests for the execution orchestrator."""

from __future__ import annotations

import shutil
import time
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock

import pytest

from codexec.config import Config
from codexec.errors import SpawnError, UnsupportedLanguageError
from codexec.languages import CompiledAdapter, InterpretedAdapter, default_languages
from codexec.models import ExecutionRequest, ProcessOutput, Status, TestCase
from codexec.orchestrator import Orchestrator

IDENTITY = "def solution(input):\n    return input\n"


@pytest.fixture
def temp_root(tmp_path):
    root = tmp_path / "runs"
    root.mkdir()
    return root


@pytest.fixture
def orchestrator(temp_root):
    return Orchestrator(Config(temp_root=str(temp_root)))


def _cases(*pairs: tuple[str, str]) -> list[TestCase]:
    return [TestCase(id=str(i), input=inp, expected_output=exp) for i, (inp, exp) in enumerate(pairs, 1)]


class TestBareRun:
    def test_hello(self, orchestrator):
        result = orchestrator.execute('print("hello")', "python")
        assert result.status is Status.SUCCESS
        assert result.output == "hello\n"
        assert result.error is None
        assert result.execution_time_ms >= 0
        assert result.tests_passed is None
        assert result.total_tests is None
        assert result.test_results is None

    def test_nonzero_exit_is_error(self, orchestrator):
        result = orchestrator.execute("print('partial')\nraise SystemExit(2)", "python")
        assert result.status is Status.ERROR
        assert result.output == "partial\n"
        assert result.error == "Process exited with code 2"

    def test_stderr_on_success_is_reported(self, orchestrator):
        result = orchestrator.execute("import sys\nprint('warn', file=sys.stderr)", "python")
        assert result.status is Status.SUCCESS
        assert result.error == "warn\n"

    def test_timeout(self, temp_root):
        orchestrator = Orchestrator(Config(temp_root=str(temp_root), run_timeout_ms=1000))
        start = time.monotonic()
        result = orchestrator.execute("while True:\n    pass\n", "python", _cases(("1", "1")))
        assert time.monotonic() - start < 1.5
        assert result.status is Status.TIMEOUT
        assert result.error == "Execution timed out after 1000 ms"
        assert result.test_results is None
        assert result.total_tests is None
        assert list(temp_root.iterdir()) == []

    def test_output_limit_is_error(self, temp_root):
        orchestrator = Orchestrator(Config(temp_root=str(temp_root), max_output_bytes=1000))
        result = orchestrator.execute("print('x' * 10_000)", "python")
        assert result.status is Status.ERROR
        assert "exceeded" in result.error

    def test_unencodable_source_is_error(self, orchestrator, temp_root):
        result = orchestrator.execute("print('\ud800')", "python", _cases(("1", "1")))
        assert result.status is Status.ERROR
        assert "surrogates not allowed" in result.error
        assert result.test_results is None
        assert list(temp_root.iterdir()) == []

    def test_missing_temp_root_is_error(self, tmp_path):
        orchestrator = Orchestrator(Config(temp_root=str(tmp_path / "missing")))
        result = orchestrator.execute('print("hi")', "python")
        assert result.status is Status.ERROR
        assert "No such file or directory" in result.error

    def test_run_request(self, orchestrator):
        request = ExecutionRequest(code=IDENTITY, language="python", test_cases=tuple(_cases(("5", "5"))))
        result = orchestrator.run(request)
        assert result.status is Status.SUCCESS
        assert result.tests_passed == 1


class TestUnsupportedLanguage:
    def test_surfaced_as_error(self, orchestrator, temp_root):
        result = orchestrator.execute("puts 'hi'", "ruby", _cases(("1", "1")))
        assert result.status is Status.ERROR
        assert result.error == "Unsupported language: ruby"
        assert result.test_results is None
        assert list(temp_root.iterdir()) == []

    def test_adapter_for_raises(self, orchestrator):
        with pytest.raises(UnsupportedLanguageError):
            orchestrator.adapter_for("ruby")

    def test_no_adapter_activity(self):
        adapter = MagicMock()
        orchestrator = Orchestrator(Config(), adapters={"python": adapter})
        orchestrator.execute("x", "ruby")
        adapter.prepare.assert_not_called()
        adapter.invoke.assert_not_called()

    def test_languages(self, orchestrator):
        assert orchestrator.languages == ["cpp", "java", "javascript", "python"]


class TestCompileError:
    def _orchestrator(self, temp_root, runner):
        adapter = CompiledAdapter(default_languages()["cpp"], runner)
        return Orchestrator(Config(temp_root=str(temp_root)), adapters={"cpp": adapter})

    def test_aborts_before_running(self, temp_root):
        runner = MagicMock()
        runner.run.return_value = ProcessOutput(stdout="", stderr="main.cpp:1:10: error: expected ')'", exit_code=1)
        result = self._orchestrator(temp_root, runner).execute("int main( {", "cpp", _cases(("1", "1")))
        assert result.status is Status.ERROR
        assert "expected ')'" in result.error
        assert result.test_results is None
        # compile only: neither the program nor any test case ran
        assert runner.run.call_count == 1
        assert runner.run.call_args.args[0] == "g++"
        assert list(temp_root.iterdir()) == []

    @pytest.mark.skipif(shutil.which("g++") is None, reason="g++ not installed")
    def test_real_compiler(self, orchestrator):
        result = orchestrator.execute("int main( {", "cpp")
        assert result.status is Status.ERROR
        assert result.error


class TestSpawnError:
    def test_missing_interpreter(self, temp_root):
        runner = MagicMock()
        runner.run.side_effect = SpawnError("Failed to launch python3: No such file or directory")
        adapter = InterpretedAdapter(default_languages()["python"], runner)
        orchestrator = Orchestrator(Config(temp_root=str(temp_root)), adapters={"python": adapter})
        result = orchestrator.execute("print(1)", "python", _cases(("1", "1")))
        assert result.status is Status.ERROR
        assert "Failed to launch" in result.error
        assert result.test_results is None
        assert list(temp_root.iterdir()) == []


class TestTestCases:
    def test_pass(self, orchestrator):
        result = orchestrator.execute(IDENTITY, "python", _cases(("5", "5")))
        assert result.status is Status.SUCCESS
        assert result.tests_passed == 1
        assert result.total_tests == 1
        assert result.test_results[0].passed
        assert result.test_results[0].actual == "5"

    def test_fail(self, orchestrator):
        result = orchestrator.execute(IDENTITY, "python", _cases(("5", "6")))
        assert result.status is Status.SUCCESS
        assert result.tests_passed == 0
        assert not result.test_results[0].passed
        assert result.test_results[0].actual == "5"

    def test_counts_and_order(self, orchestrator):
        cases = _cases(("a", "a"), ("b", "x"), ("c", "c"), ("d", "y"))
        result = orchestrator.execute(IDENTITY, "python", cases)
        assert result.total_tests == len(cases) == len(result.test_results)
        assert result.tests_passed == sum(1 for r in result.test_results if r.passed) == 2
        assert [r.input for r in result.test_results] == ["a", "b", "c", "d"]

    def test_runtime_error_still_scores_tests(self, orchestrator):
        code = IDENTITY + "raise RuntimeError('only when run directly')\n"
        result = orchestrator.execute(code, "python", _cases(("1", "1")))
        assert result.status is Status.ERROR
        assert "RuntimeError" in result.error
        assert result.total_tests == 1
        assert result.tests_passed == 0

    def test_idempotent_verdicts(self, orchestrator):
        cases = _cases(("1", "1"), ("2", "3"))
        first = orchestrator.execute(IDENTITY, "python", cases)
        second = orchestrator.execute(IDENTITY, "python", cases)
        assert [r.passed for r in first.test_results] == [r.passed for r in second.test_results]
        assert [r.actual for r in first.test_results] == [r.actual for r in second.test_results]


class TestCleanup:
    def test_no_leftovers_after_success_and_tests(self, orchestrator, temp_root):
        orchestrator.execute(IDENTITY, "python", _cases(("1", "1"), ("2", "3")))
        assert list(temp_root.iterdir()) == []

    def test_no_leftovers_after_runtime_error(self, orchestrator, temp_root):
        orchestrator.execute("raise ValueError()", "python")
        assert list(temp_root.iterdir()) == []


def test_concurrent_executions(orchestrator, temp_root):
    def run(i: int):
        return orchestrator.execute(f"print({i})", "python")

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(run, range(16)))
    assert [r.output for r in results] == [f"{i}\n" for i in range(16)]
    assert all(r.status is Status.SUCCESS for r in results)
    assert list(temp_root.iterdir()) == []


def test_verbose_logging(temp_root, capsys):
    orchestrator = Orchestrator(Config(temp_root=str(temp_root), verbose=True))
    orchestrator.execute(IDENTITY, "python", _cases(("1", "1")))
    err = capsys.readouterr().err
    assert "Running python code" in err
    assert "Tests passed: 1/1" in err


def test_quiet_by_default(orchestrator, capsys):
    orchestrator.execute('print("hi")', "python")
    assert capsys.readouterr().err == ""


@pytest.mark.skipif(shutil.which("node") is None, reason="node not installed")
def test_javascript_end_to_end(orchestrator):
    result = orchestrator.execute("console.log('hello')", "javascript")
    assert result.status is Status.SUCCESS
    assert result.output == "hello\n"


@pytest.mark.skipif(shutil.which("javac") is None, reason="javac not installed")
def test_java_end_to_end(temp_root):
    orchestrator = Orchestrator(Config(temp_root=str(temp_root), run_timeout_ms=10_000, test_timeout_ms=10_000))
    code = (
        "public class Solution {\n"
        "    public static String solution(String input) { return input; }\n"
        "    public static void main(String[] args) { System.out.println(\"hello\"); }\n"
        "}\n"
    )
    result = orchestrator.execute(code, "java", _cases(("5", "5")))
    assert result.status is Status.SUCCESS
    assert result.output == "hello\n"
    assert result.tests_passed == 1
    assert list(temp_root.iterdir()) == []


@pytest.mark.skipif(shutil.which("g++") is None, reason="g++ not installed")
def test_cpp_end_to_end(orchestrator):
    code = (
        "#include <iostream>\n"
        "#include <string>\n"
        "std::string solution(std::string input) { return input; }\n"
        "int main() { std::cout << \"hello\" << std::endl; }\n"
    )
    result = orchestrator.execute(code, "cpp", _cases(("5", "5"), ("5", "6")))
    assert result.status is Status.SUCCESS
    assert result.output == "hello\n"
    assert [r.passed for r in result.test_results] == [True, False]

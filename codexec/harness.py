"""Test harness: wraps user code per test case, runs it and scores the output.

The user's code must expose ``solution``: a top-level function, or a member
of a ``Solution`` class (a static method of the public class for Java). The
wrapper passes the test input as a string literal, calls ``solution`` once
and prints the return value.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from codexec.adapter_base import LanguageAdapter
from codexec.errors import CompileError, ExecutionError, UnsupportedLanguageError
from codexec.languages import LanguageSpec
from codexec.models import TestCase, TestResult
from codexec.workspace import workspace

_JAVA_HARNESS_CLASS = "TestSolution"
_CPP_USER_MAIN = "codexec_user_main"


@dataclass(frozen=True)
class HarnessProgram:
    source: str
    entry: str | None = None  # overrides the class to run, if the language needs one


class TestHarness:
    """Runs test cases one after another, each in its own workspace."""

    __test__ = False

    def __init__(self, timeout_ms: int = 3_000, temp_root: str | None = None) -> None:
        self.timeout_ms = timeout_ms
        self.temp_root = temp_root

    def run_test_cases(
        self,
        code: str,
        test_cases: Sequence[TestCase],
        adapter: LanguageAdapter,
    ) -> list[TestResult]:
        return [self.run_test_case(code, tc, adapter) for tc in test_cases]

    def run_test_case(self, code: str, test_case: TestCase, adapter: LanguageAdapter) -> TestResult:
        """Never raises for a failing program; the failure becomes ``actual``."""
        try:
            actual, passed = self._evaluate(code, test_case, adapter)
        except CompileError as exc:
            actual, passed = f"Compilation failed: {exc.diagnostics.strip()}", False
        except (ExecutionError, OSError, UnicodeError) as exc:
            actual, passed = str(exc), False
        return TestResult(
            passed=passed,
            input=test_case.input,
            expected=test_case.expected_output,
            actual=actual,
        )

    def _evaluate(self, code: str, test_case: TestCase, adapter: LanguageAdapter) -> tuple[str, bool]:
        program = build_test_program(code, test_case, adapter.spec)
        with workspace(self.temp_root) as workdir:
            artifact = adapter.prepare(program.source, workdir, entry=program.entry)
            output = adapter.invoke(artifact, [], self.timeout_ms)
        if output.failed:
            return output.stderr.strip(), False
        actual = output.stdout.strip()
        return actual, outputs_match(test_case.expected_output, actual)


def outputs_match(expected: str, actual: str) -> bool:
    """Exact comparison after trimming outer whitespace."""
    return expected.strip() == actual.strip()


def build_test_program(code: str, test_case: TestCase, spec: LanguageSpec) -> HarnessProgram:
    synthesize = _SYNTHESIZERS.get(spec.name)
    if synthesize is None:
        raise UnsupportedLanguageError(spec.name)
    return synthesize(code, test_case.input, spec)


def _python_program(code: str, test_input: str, spec: LanguageSpec) -> HarnessProgram:
    return HarnessProgram(
        f"{code}\n\n\n"
        f"# test case\n"
        f"_input = {test_input!r}\n"
        f"try:\n"
        f"    _entry = solution\n"
        f"except NameError:\n"
        f"    _entry = Solution().solution\n"
        f"print(_entry(_input))\n"
    )


def _javascript_program(code: str, test_input: str, spec: LanguageSpec) -> HarnessProgram:
    return HarnessProgram(
        f"{code}\n\n"
        f"// test case\n"
        f"const __input = {json.dumps(test_input)};\n"
        f"const __entry = typeof solution === \"function\"\n"
        f"  ? solution\n"
        f"  : (arg) => new Solution().solution(arg);\n"
        f"console.log(__entry(__input));\n"
    )


def _java_program(code: str, test_input: str, spec: LanguageSpec) -> HarnessProgram:
    # json.dumps escapes non-ASCII as \uXXXX, which javac reads back unchanged.
    main = spec.detect_main(code)
    return HarnessProgram(
        f"{code}\n\n"
        f"class {_JAVA_HARNESS_CLASS} {{\n"
        f"    public static void main(String[] args) {{\n"
        f"        String input = {json.dumps(test_input)};\n"
        f"        System.out.println({main}.solution(input));\n"
        f"    }}\n"
        f"}}\n",
        entry=_JAVA_HARNESS_CLASS,
    )


def _cpp_program(code: str, test_input: str, spec: LanguageSpec) -> HarnessProgram:
    # A user-defined main is renamed so the harness can provide its own.
    return HarnessProgram(
        f"#define main {_CPP_USER_MAIN}\n"
        f"{code}\n"
        f"#undef main\n\n"
        f"#include <iostream>\n"
        f"#include <string>\n\n"
        f"int main() {{\n"
        f"    std::string input = {_c_string_literal(test_input)};\n"
        f"    std::cout << solution(input) << std::endl;\n"
        f"    return 0;\n"
        f"}}\n"
    )


def _c_string_literal(text: str) -> str:
    """Quote ``text`` as a C/C++ literal; bytes outside printable ASCII become octal escapes."""
    parts = ['"']
    for byte in text.encode("utf-8"):
        char = chr(byte)
        if char in ('"', "\\"):
            parts.append("\\" + char)
        elif 0x20 <= byte < 0x7F and char != "?":
            parts.append(char)
        else:
            parts.append(f"\\{byte:03o}")
    parts.append('"')
    return "".join(parts)


_SYNTHESIZERS: dict[str, Callable[[str, str, LanguageSpec], HarnessProgram]] = {
    "python": _python_program,
    "javascript": _javascript_program,
    "java": _java_program,
    "cpp": _cpp_program,
}

"""CLI interface for codexec."""

from __future__ import annotations

import argparse
import json
import sys

from codexec.config import Config
from codexec.models import Status, TestCase
from codexec.orchestrator import Orchestrator


def load_test_cases(path: str) -> list[TestCase]:
    """Load test cases from a JSON file: a list, or an object with "test_cases"."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("test_cases", [])
    return [
        TestCase(
            id=str(tc.get("id", index)),
            input=tc["input"],
            expected_output=tc["expected_output"],
            is_hidden=bool(tc.get("is_hidden", False)),
        )
        for index, tc in enumerate(data, 1)
    ]


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="codexec",
        description="codexec: run untrusted code against test cases",
    )
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Run a source file")
    run_parser.add_argument("source", help="Path to the source file")
    run_parser.add_argument("-l", "--language", required=True)
    run_parser.add_argument("-t", "--tests", type=str, default=None, help="Path to test cases JSON file")
    run_parser.add_argument("--timeout-ms", type=int, default=None, help="Bare run timeout")
    run_parser.add_argument("--executor", choices=["local", "judge0"], default=None, help="Execution backend")
    run_parser.add_argument("--judge0-url", type=str, default=None, help="Judge0 API base URL")
    run_parser.add_argument("-v", "--verbose", action="store_true", default=False)

    subparsers.add_parser("languages", help="List supported languages")

    args = parser.parse_args(argv)

    if args.command not in ("run", "languages"):
        parser.print_help()
        sys.exit(1)

    # Build config from env + CLI overrides
    overrides = {}
    if args.command == "run":
        if args.timeout_ms is not None:
            overrides["run_timeout_ms"] = args.timeout_ms
        if args.executor is not None:
            overrides["executor_type"] = args.executor
        if args.judge0_url is not None:
            overrides["judge0_url"] = args.judge0_url
        if args.verbose:
            overrides["verbose"] = True

    try:
        config = Config.from_env(**overrides)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    orchestrator = Orchestrator(config)

    if args.command == "languages":
        for name in orchestrator.languages:
            print(name)
        return

    with open(args.source, encoding="utf-8") as f:
        code = f.read()
    test_cases = load_test_cases(args.tests) if args.tests else []

    result = orchestrator.execute(code, args.language, test_cases)
    print(json.dumps(result.to_dict(), indent=2))
    if result.status is not Status.SUCCESS:
        sys.exit(1)

"""Language table and the local adapters that prepare and run code."""

from __future__ import annotations

import enum
import re
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from codexec.errors import CompileError
from codexec.models import Artifact, ProcessOutput
from codexec.process import ProcessRunner


class LanguageKind(enum.Enum):
    INTERPRETED = "interpreted"
    BYTECODE = "bytecode"
    NATIVE = "native"


@dataclass(frozen=True)
class LanguageSpec:
    """How one language is written to disk, compiled and run.

    Command templates are argument tuples. Each argument may reference
    ``{source}``, ``{workdir}``, ``{binary}`` or ``{entry}``; they are
    substituted per argument and never passed through a shell.
    """

    name: str
    kind: LanguageKind
    source_name: str  # may reference {main}
    run_command: tuple[str, ...]
    compile_command: tuple[str, ...] = ()
    binary_name: str | None = None
    default_main: str = "main"
    main_pattern: str | None = None  # regex capturing the main class name
    limit_memory: bool = True  # JVM and V8 reserve more address space than RLIMIT_AS allows

    def detect_main(self, code: str) -> str:
        if self.main_pattern:
            match = re.search(self.main_pattern, code)
            if match:
                return match.group(1)
        return self.default_main


def default_languages(python_executable: str = "python3") -> dict[str, LanguageSpec]:
    """The built-in language table, keyed by language name."""
    specs = [
        LanguageSpec(
            name="python",
            kind=LanguageKind.INTERPRETED,
            source_name="main.py",
            run_command=(python_executable, "{source}"),
        ),
        LanguageSpec(
            name="javascript",
            kind=LanguageKind.INTERPRETED,
            source_name="main.js",
            run_command=("node", "{source}"),
            limit_memory=False,
        ),
        LanguageSpec(
            name="java",
            kind=LanguageKind.BYTECODE,
            source_name="{main}.java",
            compile_command=("javac", "-nowarn", "-XDsuppressNotes", "-d", "{workdir}", "{source}"),
            run_command=("java", "-cp", "{workdir}", "{entry}"),
            default_main="Solution",
            main_pattern=r"public\s+(?:(?:final|abstract)\s+)*class\s+(\w+)",
            limit_memory=False,
        ),
        LanguageSpec(
            name="cpp",
            kind=LanguageKind.NATIVE,
            source_name="main.cpp",
            compile_command=("g++", "-std=c++17", "-O2", "-w", "{source}", "-o", "{binary}"),
            run_command=("{binary}",),
            binary_name="main",
        ),
    ]
    return {spec.name: spec for spec in specs}


def render(template: Sequence[str], artifact: Artifact) -> list[str]:
    fields = {
        "source": str(artifact.source),
        "workdir": str(artifact.workdir),
        "binary": str(artifact.binary) if artifact.binary else "",
        "entry": artifact.entry,
    }
    return [part.format(**fields) for part in template]


class InterpretedAdapter:
    """Writes the source file and runs the interpreter on it."""

    def __init__(self, spec: LanguageSpec, runner: ProcessRunner) -> None:
        self.spec = spec
        self._runner = runner

    def prepare(self, code: str, workdir: Path, entry: str | None = None) -> Artifact:
        main = self.spec.detect_main(code)
        source = workdir / self.spec.source_name.format(main=main)
        source.write_text(code, encoding="utf-8")
        binary = workdir / self.spec.binary_name if self.spec.binary_name else None
        return Artifact(workdir=workdir, source=source, entry=entry or main, binary=binary)

    def invoke(self, artifact: Artifact, args: Sequence[str], timeout_ms: int) -> ProcessOutput:
        command, *argv = render(self.spec.run_command, artifact)
        return self._runner.run(
            command,
            [*argv, *args],
            timeout_ms,
            cwd=artifact.workdir,
            limit_memory=self.spec.limit_memory,
        )


class CompiledAdapter(InterpretedAdapter):
    """Adds a compile step to ``prepare``; used for bytecode and native targets."""

    def __init__(self, spec: LanguageSpec, runner: ProcessRunner, compile_timeout_ms: int = 10_000) -> None:
        super().__init__(spec, runner)
        self.compile_timeout_ms = compile_timeout_ms

    def prepare(self, code: str, workdir: Path, entry: str | None = None) -> Artifact:
        artifact = super().prepare(code, workdir, entry)
        command, *argv = render(self.spec.compile_command, artifact)
        output = self._runner.run(
            command,
            argv,
            self.compile_timeout_ms,
            cwd=artifact.workdir,
            limit_memory=False,
        )
        # Warnings are switched off in the compile commands, so any stderr is a diagnostic.
        if output.stderr:
            raise CompileError(output.stderr)
        return artifact

"""Abstract language adapter interface."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from codexec.models import Artifact, ProcessOutput

if TYPE_CHECKING:
    from codexec.languages import LanguageSpec


@runtime_checkable
class LanguageAdapter(Protocol):
    spec: LanguageSpec

    def prepare(self, code: str, workdir: Path, entry: str | None = None) -> Artifact: ...

    def invoke(self, artifact: Artifact, args: Sequence[str], timeout_ms: int) -> ProcessOutput: ...

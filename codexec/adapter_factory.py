"""Factory for the language -> adapter mapping, based on configuration."""

from __future__ import annotations

from typing import TYPE_CHECKING

from codexec.adapter_base import LanguageAdapter
from codexec.languages import (
    CompiledAdapter,
    InterpretedAdapter,
    LanguageKind,
    LanguageSpec,
    default_languages,
)
from codexec.process import ProcessRunner

if TYPE_CHECKING:
    from codexec.config import Config


def create_adapters(
    config: Config,
    languages: dict[str, LanguageSpec] | None = None,
) -> dict[str, LanguageAdapter]:
    """Create one adapter per language for config.executor_type."""
    if languages is None:
        languages = default_languages(config.python_executable)

    if config.executor_type == "judge0":
        from codexec.judge0 import JUDGE0_LANGUAGE_IDS, Judge0Adapter, Judge0Config

        judge0_config = Judge0Config(
            base_url=config.judge0_url or Judge0Config.base_url,
            api_key=config.judge0_api_key,
            max_memory_mb=config.max_memory_mb,
        )
        return {
            name: Judge0Adapter(spec, JUDGE0_LANGUAGE_IDS[name], judge0_config)
            for name, spec in languages.items()
            if name in JUDGE0_LANGUAGE_IDS
        }

    runner = ProcessRunner(
        max_output_bytes=config.max_output_bytes,
        memory_limit_mb=config.max_memory_mb,
    )
    return {
        name: build_adapter(spec, runner, config.compile_timeout_ms)
        for name, spec in languages.items()
    }


def build_adapter(spec: LanguageSpec, runner: ProcessRunner, compile_timeout_ms: int) -> LanguageAdapter:
    if spec.kind is LanguageKind.INTERPRETED:
        return InterpretedAdapter(spec, runner)
    return CompiledAdapter(spec, runner, compile_timeout_ms)

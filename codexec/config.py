"""Configuration for codexec, loaded from environment variables."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass


@dataclass
class Config:
    run_timeout_ms: int = 5_000
    compile_timeout_ms: int = 10_000
    test_timeout_ms: int = 3_000
    max_output_bytes: int = 1_000_000  # per stream
    max_memory_mb: int = 256
    temp_root: str | None = None  # None -> system temp dir
    python_executable: str = sys.executable
    executor_type: str = "local"  # "local" or "judge0"
    judge0_url: str = ""
    judge0_api_key: str = ""
    verbose: bool = False

    @classmethod
    def from_env(cls, **overrides) -> Config:
        kwargs: dict = {}
        env_map: dict[str, tuple[str, type]] = {
            "CODEXEC_RUN_TIMEOUT_MS": ("run_timeout_ms", int),
            "CODEXEC_COMPILE_TIMEOUT_MS": ("compile_timeout_ms", int),
            "CODEXEC_TEST_TIMEOUT_MS": ("test_timeout_ms", int),
            "CODEXEC_MAX_OUTPUT_BYTES": ("max_output_bytes", int),
            "CODEXEC_MAX_MEMORY_MB": ("max_memory_mb", int),
            "CODEXEC_TEMP_ROOT": ("temp_root", str),
            "CODEXEC_PYTHON": ("python_executable", str),
            "CODEXEC_EXECUTOR": ("executor_type", str),
            "JUDGE0_URL": ("judge0_url", str),
            "JUDGE0_API_KEY": ("judge0_api_key", str),
        }
        for env_var, (field_name, conv) in env_map.items():
            val = os.environ.get(env_var)
            if val is not None:
                try:
                    kwargs[field_name] = conv(val)
                except ValueError:
                    raise ValueError(f"{env_var} must be an integer, got {val!r}") from None
        # CODEXEC_VERBOSE: "1", "true" or "yes" enables
        verbose = os.environ.get("CODEXEC_VERBOSE")
        if verbose is not None:
            kwargs["verbose"] = verbose.lower() in ("1", "true", "yes")
        kwargs.update(overrides)
        config = cls(**kwargs)
        if config.executor_type not in ("local", "judge0"):
            raise ValueError(f"Unknown executor type: {config.executor_type}")
        return config

"""Subprocess runner with wall-clock timeout, output cap and process-tree kill."""

from __future__ import annotations

import math
import os
import signal
import subprocess
import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from functools import partial
from typing import IO

try:  # POSIX resource limits (best-effort)
    import resource
except ImportError:  # pragma: no cover - non-POSIX
    resource = None  # type: ignore[assignment]

from codexec.errors import ExecutionTimeoutError, OutputLimitError, SpawnError
from codexec.models import ProcessOutput

DEFAULT_MAX_OUTPUT_BYTES = 1_000_000
_CHUNK_SIZE = 64 * 1024
_DRAIN_GRACE_SEC = 1.0
_FILE_SIZE_LIMIT = 16 * 1024 * 1024
_ENV_ALLOWLIST = ("PATH", "HOME", "LANG", "LC_ALL", "TMPDIR", "JAVA_HOME", "SYSTEMROOT")


@dataclass(frozen=True)
class ResourceLimits:
    memory_mb: int | None = None
    cpu_seconds: int | None = None
    file_size_bytes: int | None = _FILE_SIZE_LIMIT


class ProcessRunner:
    """Runs commands with a shared output cap, resource limits and environment."""

    def __init__(
        self,
        max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES,
        memory_limit_mb: int | None = None,
        env: dict[str, str] | None = None,
    ) -> None:
        self.max_output_bytes = max_output_bytes
        self.memory_limit_mb = memory_limit_mb
        self.env = env if env is not None else sanitized_env()

    def run(
        self,
        command: str,
        args: Sequence[str],
        timeout_ms: int,
        *,
        cwd: str | os.PathLike | None = None,
        limit_memory: bool = True,
    ) -> ProcessOutput:
        limits = ResourceLimits(
            memory_mb=self.memory_limit_mb if limit_memory else None,
            # backstop only; the wall clock below is the real deadline
            cpu_seconds=math.ceil(timeout_ms / 1000) + 1,
        )
        return run_process(
            command,
            args,
            timeout_ms,
            cwd=cwd,
            max_output_bytes=self.max_output_bytes,
            limits=limits,
            env=self.env,
        )


# ---------------------------------------------------------------------------
# Module-level functions
# ---------------------------------------------------------------------------


def run_process(
    command: str,
    args: Sequence[str],
    timeout_ms: int,
    *,
    cwd: str | os.PathLike | None = None,
    max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES,
    limits: ResourceLimits | None = None,
    env: dict[str, str] | None = None,
) -> ProcessOutput:
    """Run ``command args`` and capture its output.

    A non-zero exit is returned, not raised: stderr carries the diagnostics,
    or ``Process exited with code N`` when the program wrote nothing there.

    Raises SpawnError if the command cannot be launched, ExecutionTimeoutError
    if it outlives ``timeout_ms`` and OutputLimitError if either stream grows
    beyond ``max_output_bytes``. In the last two cases the whole process group
    is killed before the error is raised.
    """
    posix = os.name == "posix"
    start = time.perf_counter()
    try:
        proc = subprocess.Popen(  # nosec: B603 (argv list, no shell)
            [command, *args],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            cwd=cwd,
            env=env,
            start_new_session=posix,
            preexec_fn=_limit_preexec(limits) if limits is not None else None,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        reason = exc.strerror if isinstance(exc, OSError) and exc.strerror else str(exc)
        raise SpawnError(f"Failed to launch {command}: {reason}") from exc

    kill = partial(_kill_tree, proc)
    readers = [
        _StreamReader(proc.stdout, max_output_bytes, kill),
        _StreamReader(proc.stderr, max_output_bytes, kill),
    ]
    for reader in readers:
        reader.start()

    timed_out = False
    try:
        proc.wait(timeout=timeout_ms / 1000)
    except subprocess.TimeoutExpired:
        timed_out = True
        _kill_tree(proc)
        proc.wait()

    # Descendants outlive their parent and may still hold the pipes open.
    # A reader still blocked after the grace period closes its pipe on EOF.
    _kill_tree(proc)
    for reader in readers:
        reader.join(_DRAIN_GRACE_SEC)

    duration_ms = int((time.perf_counter() - start) * 1000)
    stdout, stderr = readers[0].text(), readers[1].text()

    if any(reader.overflowed for reader in readers):
        raise OutputLimitError(max_output_bytes)
    if timed_out:
        raise ExecutionTimeoutError(timeout_ms, stdout=stdout, stderr=stderr)

    exit_code = proc.returncode
    if exit_code != 0 and not stderr:
        stderr = f"Process exited with code {exit_code}"
    return ProcessOutput(stdout=stdout, stderr=stderr, exit_code=exit_code, duration_ms=duration_ms)


def sanitized_env(extra: dict[str, str] | None = None) -> dict[str, str]:
    """Return a reduced environment for child processes."""
    env = {key: os.environ[key] for key in _ENV_ALLOWLIST if key in os.environ}
    env.setdefault("PATH", os.defpath)
    env["PYTHONIOENCODING"] = "utf-8"
    if extra:
        env.update(extra)
    return env


class _StreamReader(threading.Thread):
    """Drains one pipe into memory, up to ``limit`` bytes."""

    def __init__(self, stream: IO[bytes], limit: int, on_overflow: Callable[[], None]) -> None:
        super().__init__(daemon=True)
        self._stream = stream
        self._limit = limit
        self._on_overflow = on_overflow
        self._chunks: list[bytes] = []
        self._size = 0
        self.overflowed = False

    def run(self) -> None:
        try:
            for chunk in iter(partial(self._stream.read1, _CHUNK_SIZE), b""):
                if self._size + len(chunk) > self._limit:
                    self.overflowed = True
                    self._on_overflow()
                    return
                self._chunks.append(chunk)
                self._size += len(chunk)
        except (OSError, ValueError):
            return
        finally:
            self._stream.close()

    def text(self) -> str:
        return b"".join(self._chunks).decode("utf-8", errors="replace")


def _kill_tree(proc: subprocess.Popen) -> None:
    if os.name != "posix":
        proc.kill()
        return
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except (ProcessLookupError, PermissionError):
        pass


def _limit_preexec(limits: ResourceLimits) -> Callable[[], None] | None:
    if resource is None or os.name != "posix":
        return None

    def _apply() -> None:  # executed in child before exec
        if limits.cpu_seconds is not None:
            _set_limit(resource.RLIMIT_CPU, limits.cpu_seconds)
        if limits.memory_mb is not None:
            _set_limit(resource.RLIMIT_AS, limits.memory_mb * 1024 * 1024)
        if limits.file_size_bytes is not None:
            _set_limit(resource.RLIMIT_FSIZE, limits.file_size_bytes)

    return _apply


def _set_limit(which: int, value: int) -> None:
    _, hard = resource.getrlimit(which)
    if hard != resource.RLIM_INFINITY:
        value = min(value, hard)
    try:
        resource.setrlimit(which, (value, value))
    except (ValueError, OSError):
        pass

"""Judge0 REST API adapter for sandboxed remote code execution."""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

import httpx

from codexec.errors import CompileError, ExecutionTimeoutError, SpawnError
from codexec.languages import LanguageSpec
from codexec.models import Artifact, ProcessOutput

# Judge0 status codes
_STATUS_IN_QUEUE = 1
_STATUS_PROCESSING = 2
_STATUS_ACCEPTED = 3  # ran successfully (exit code 0)
_STATUS_TLE = 5
_STATUS_COMPILATION_ERROR = 6
_STATUS_INTERNAL_ERROR = 13
_STATUS_EXEC_FORMAT_ERROR = 14

# Judge0 runs Java as `java Main`, which the Solution/TestSolution layout
# does not fit, so Java stays on the local backend.
JUDGE0_LANGUAGE_IDS: dict[str, int] = {
    "python": 71,  # Python 3
    "javascript": 63,  # Node.js
    "cpp": 54,  # C++ (GCC)
}


@dataclass
class Judge0Config:
    base_url: str = "http://localhost:2358"
    api_key: str = ""
    max_memory_mb: int = 256
    poll_interval: float = 0.5
    max_poll_attempts: int = 60


class Judge0Adapter:
    """Runs code on a Judge0 server; ``prepare`` only stages the source locally."""

    def __init__(self, spec: LanguageSpec, language_id: int, config: Judge0Config | None = None) -> None:
        self.spec = spec
        self.language_id = language_id
        self._config = config or Judge0Config()

    def prepare(self, code: str, workdir: Path, entry: str | None = None) -> Artifact:
        source = workdir / self.spec.source_name.format(main=self.spec.detect_main(code))
        source.write_text(code, encoding="utf-8")
        return Artifact(workdir=workdir, source=source, entry=entry or self.spec.detect_main(code))

    def invoke(self, artifact: Artifact, args: Sequence[str], timeout_ms: int) -> ProcessOutput:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._config.api_key:
            headers["X-Auth-Token"] = self._config.api_key

        timeout_sec = timeout_ms / 1000
        payload: dict = {
            "source_code": artifact.source.read_text(encoding="utf-8"),
            "language_id": self.language_id,
            "stdin": "",
            "cpu_time_limit": timeout_sec,
            "wall_time_limit": timeout_sec,
            "memory_limit": self._config.max_memory_mb * 1024,  # Judge0 expects KB
        }
        if args:
            payload["command_line_arguments"] = " ".join(args)

        base = self._config.base_url.rstrip("/")
        start = time.perf_counter()

        try:
            # Try synchronous submission (wait=true)
            resp = httpx.post(
                f"{base}/submissions?base64_encoded=false&wait=true",
                json=payload,
                headers=headers,
                timeout=timeout_sec + 30,  # extra margin for queueing and network
            )
            resp.raise_for_status()
            data = resp.json()

            # A token without a status means the server did not wait; poll
            if not data.get("status") or data["status"].get("id") in (
                _STATUS_IN_QUEUE,
                _STATUS_PROCESSING,
            ):
                token = data.get("token", "")
                if token:
                    data = self._poll(token, headers, base)
        except httpx.TimeoutException as exc:
            raise ExecutionTimeoutError(timeout_ms) from exc
        except httpx.HTTPError as exc:
            raise SpawnError(f"Judge0 request failed: {exc}") from exc

        duration_ms = int((time.perf_counter() - start) * 1000)
        return self._parse_response(data, timeout_ms, duration_ms)

    def _poll(self, token: str, headers: dict[str, str], base: str) -> dict:
        for _ in range(self._config.max_poll_attempts):
            time.sleep(self._config.poll_interval)
            resp = httpx.get(
                f"{base}/submissions/{token}?base64_encoded=false",
                headers=headers,
                timeout=30,
            )
            resp.raise_for_status()
            data = resp.json()
            status_id = (data.get("status") or {}).get("id", 0)
            if status_id not in (_STATUS_IN_QUEUE, _STATUS_PROCESSING):
                return data
        return {"status": {"id": _STATUS_TLE}, "stdout": "", "stderr": "Poll timeout"}

    def _parse_response(self, data: dict, timeout_ms: int, duration_ms: int) -> ProcessOutput:
        status = data.get("status") or {}
        status_id = status.get("id", 0)
        stdout = data.get("stdout") or ""
        stderr = data.get("stderr") or ""

        if status_id == _STATUS_ACCEPTED:
            return ProcessOutput(stdout=stdout, stderr=stderr, exit_code=0, duration_ms=duration_ms)

        if status_id == _STATUS_TLE:
            raise ExecutionTimeoutError(timeout_ms, stdout=stdout, stderr=stderr)

        if status_id == _STATUS_COMPILATION_ERROR:
            raise CompileError(data.get("compile_output") or "Compilation error")

        if status_id in (_STATUS_INTERNAL_ERROR, _STATUS_EXEC_FORMAT_ERROR):
            raise SpawnError(f"Judge0 could not run the submission: {status.get('description') or status_id}")

        # Runtime errors (7-12): signals and non-zero exits
        exit_code = data.get("exit_code") or 1
        return ProcessOutput(
            stdout=stdout,
            stderr=stderr or status.get("description") or f"Process exited with code {exit_code}",
            exit_code=exit_code,
            duration_ms=duration_ms,
        )

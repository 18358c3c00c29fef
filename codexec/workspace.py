"""Per-attempt scratch directories."""

from __future__ import annotations

import shutil
import tempfile
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path


@contextmanager
def workspace(root: str | None = None, prefix: str = "codexec-") -> Iterator[Path]:
    """Create a uniquely named directory and remove it on exit.

    Every artifact of one attempt (sources, class files, binaries) is written
    below this directory, so a single recursive delete releases all of them.
    Removal errors propagate.
    """
    path = Path(tempfile.mkdtemp(prefix=f"{prefix}{uuid.uuid4().hex[:12]}-", dir=root))
    try:
        yield path
    finally:
        shutil.rmtree(path)

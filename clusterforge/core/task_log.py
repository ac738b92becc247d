"""Per-node task log — names of install tasks already completed.

Stored as a flat UTF-8 text file, one task name per line.  The file is
rewritten as a whole (never appended to) through a temporary file and
``os.replace`` so a crash mid-write cannot leave a torn log behind.
"""

from __future__ import annotations

import os
from pathlib import Path


class TaskLog:
    """On-disk ordered set of completed task names.

    Parameters
    ----------
    path:
        Location of the log file.  Parent directories are created on save.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    def load(self) -> list[str]:
        """Task names in the order they completed; empty if no log exists."""
        if not self._path.is_file():
            return []
        names: list[str] = []
        for line in self._path.read_text(encoding="utf-8").splitlines():
            name = line.strip()
            if name and name not in names:
                names.append(name)
        return names

    def save(self, names: list[str]) -> None:
        """Overwrite the log with *names*, dropping blanks and duplicates."""
        unique: list[str] = []
        for name in names:
            if name and name not in unique:
                unique.append(name)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_name(self._path.name + ".tmp")
        tmp.write_text("".join(f"{n}\n" for n in unique), encoding="utf-8")
        os.replace(tmp, self._path)

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)

    def __contains__(self, name: str) -> bool:
        return name in self.load()

    def __repr__(self) -> str:
        return f"TaskLog({str(self._path)!r})"

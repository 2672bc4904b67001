"""Local document store.

The sync engine only talks to the vault through :class:`LocalStore`, keyed by
vault-relative POSIX paths. :class:`FileSystemStore` is the implementation
backed by a directory on disk. The store never deletes: the only destructive
looking operation is ``rename``, and it refuses to overwrite.
"""

from __future__ import annotations

import os
from pathlib import Path, PurePosixPath
from typing import Protocol


def normalize_path(path: str) -> str:
    """Collapse separators and strip leading/trailing slashes (vault style)."""
    parts = [p for p in path.replace("\\", "/").split("/") if p and p != "."]
    return "/".join(parts)


def join_path(*parts: str) -> str:
    return normalize_path("/".join(p for p in parts if p))


class LocalStore(Protocol):  # pragma: no cover - interface only
    def exists(self, path: str) -> bool: ...

    def is_file(self, path: str) -> bool: ...

    def read_text(self, path: str) -> str: ...

    def read_bytes(self, path: str) -> bytes: ...

    def write_text(self, path: str, content: str) -> None: ...

    def rename(self, path: str, new_path: str) -> None: ...

    def ensure_folder(self, path: str) -> None: ...

    def list_files(self, folder: str) -> list[str]: ...

    def iter_all_files(self) -> list[str]: ...


class FileSystemStore:
    def __init__(self, root: str | Path):
        self.root = Path(root).expanduser().resolve()

    def _abs(self, path: str) -> Path:
        rel = normalize_path(path)
        target = (self.root / rel).resolve() if rel else self.root
        if target != self.root and self.root not in target.parents:
            raise ValueError(f"Path escapes vault root: {path}")
        return target

    def _inside(self, path: str) -> Path | None:
        try:
            return self._abs(path)
        except ValueError:
            return None

    def exists(self, path: str) -> bool:
        # paths outside the vault are reported as absent, never raised
        target = self._inside(path)
        return target is not None and target.exists()

    def is_file(self, path: str) -> bool:
        target = self._inside(path)
        return target is not None and target.is_file()

    def read_text(self, path: str) -> str:
        return self._abs(path).read_text(encoding="utf-8")

    def read_bytes(self, path: str) -> bytes:
        return self._abs(path).read_bytes()

    def write_text(self, path: str, content: str) -> None:
        target = self._abs(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp = target.with_name(target.name + ".tmp")
        tmp.write_text(content, encoding="utf-8")
        tmp.replace(target)

    def rename(self, path: str, new_path: str) -> None:
        source = self._abs(path)
        target = self._abs(new_path)
        if target.exists():
            raise FileExistsError(f"Refusing to overwrite {new_path}")
        target.parent.mkdir(parents=True, exist_ok=True)
        source.rename(target)

    def ensure_folder(self, path: str) -> None:
        self._abs(path).mkdir(parents=True, exist_ok=True)

    def list_files(self, folder: str) -> list[str]:
        """Direct child files of ``folder`` (non-recursive), sorted."""
        base = self._abs(folder)
        if not base.is_dir():
            return []
        rel_folder = normalize_path(folder)
        return sorted(
            join_path(rel_folder, child.name) for child in base.iterdir() if child.is_file()
        )

    def iter_all_files(self) -> list[str]:
        out: list[str] = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
            rel_dir = Path(dirpath).relative_to(self.root).as_posix()
            for name in sorted(filenames):
                out.append(join_path("" if rel_dir == "." else rel_dir, name))
        return out


def unique_path(store: LocalStore, path: str) -> str:
    """Return ``path`` or the first ``name N.ext`` variant that is free."""
    if not store.exists(path):
        return path
    pure = PurePosixPath(path)
    counter = 2
    while True:
        candidate = str(pure.with_name(f"{pure.stem} {counter}{pure.suffix}"))
        if not store.exists(candidate):
            return candidate
        counter += 1


__all__ = [
    "FileSystemStore",
    "LocalStore",
    "join_path",
    "normalize_path",
    "unique_path",
]

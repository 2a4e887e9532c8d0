"""Write targets for generated files.

The generator talks to one small capability interface and never to the file
system directly.  Paths are relative POSIX keys below the target root; the
keys returned by ``missing_root`` are opaque and only ever passed back to the
same target.

- ``DiskTarget``: a directory on the local file system
- ``MemoryTarget``: an in-memory path -> content tree (preview mode)
"""

from __future__ import annotations

import os
import stat
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Optional, Protocol, Union, runtime_checkable


EXECUTABLE_MODE = 0o755


@dataclass(frozen=True)
class FileSnapshot:
    """Previous state of an overwritten file."""

    content: bytes
    mode: Optional[int] = None
    executable: bool = False


@runtime_checkable
class WriteTarget(Protocol):
    """Capability interface shared by every output target."""

    def missing_root(self) -> list[str]:
        """Keys of the root and its missing ancestors, outermost first."""
        ...

    def exists(self, path: str) -> bool: ...

    def is_file(self, path: str) -> bool: ...

    def is_dir(self, path: str) -> bool: ...

    def create_dir(self, path: str) -> None:
        """Create exactly one directory level; the parent must exist."""
        ...

    def write_file(self, path: str, content: str, executable: bool = False) -> None: ...

    def remove_file(self, path: str) -> None: ...

    def remove_dir(self, path: str) -> None:
        """Remove an empty directory."""
        ...

    def snapshot(self, path: str) -> FileSnapshot: ...

    def restore(self, path: str, snapshot: FileSnapshot) -> None: ...

    def describe(self, path: str = "") -> str: ...


# ---------------------------------------------------------------------------
# Disk
# ---------------------------------------------------------------------------


class DiskTarget:
    """Writes below *root* on the local file system."""

    mode = "disk"

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root).absolute()

    def _resolve(self, path: str) -> Path:
        # Absolute keys (from missing_root) are returned unchanged by the join.
        return self.root / path if path else self.root

    def missing_root(self) -> list[str]:
        missing: list[str] = []
        node = self.root
        while not os.path.lexists(node) and node.parent != node:
            missing.append(str(node))
            node = node.parent
        return list(reversed(missing))

    def exists(self, path: str) -> bool:
        return os.path.lexists(self._resolve(path))

    def is_file(self, path: str) -> bool:
        return self._resolve(path).is_file()

    def is_dir(self, path: str) -> bool:
        return self._resolve(path).is_dir()

    def create_dir(self, path: str) -> None:
        self._resolve(path).mkdir()

    def write_file(self, path: str, content: str, executable: bool = False) -> None:
        target = self._resolve(path)
        with open(target, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)
        if executable:
            target.chmod(EXECUTABLE_MODE)

    def remove_file(self, path: str) -> None:
        self._resolve(path).unlink()

    def remove_dir(self, path: str) -> None:
        self._resolve(path).rmdir()

    def snapshot(self, path: str) -> FileSnapshot:
        target = self._resolve(path)
        mode = stat.S_IMODE(target.stat().st_mode)
        return FileSnapshot(content=target.read_bytes(), mode=mode, executable=bool(mode & 0o111))

    def restore(self, path: str, snapshot: FileSnapshot) -> None:
        target = self._resolve(path)
        target.write_bytes(snapshot.content)
        if snapshot.mode is not None:
            target.chmod(snapshot.mode)

    def describe(self, path: str = "") -> str:
        return str(self._resolve(path))


# ---------------------------------------------------------------------------
# Memory
# ---------------------------------------------------------------------------


class MemoryTarget:
    """Virtual file tree.  The root always exists; nothing touches the disk."""

    mode = "memory"

    def __init__(self, initial: Optional[Mapping[str, str]] = None) -> None:
        self.files: dict[str, str] = {}
        self.executables: set[str] = set()
        self.dirs: set[str] = set()
        for path, content in (initial or {}).items():
            parts = path.split("/")
            for depth in range(1, len(parts)):
                self.dirs.add("/".join(parts[:depth]))
            self.files[path] = content

    def tree(self) -> Mapping[str, str]:
        """Read-only copy of the current path -> content map."""
        return MappingProxyType(dict(self.files))

    def missing_root(self) -> list[str]:
        return []

    def exists(self, path: str) -> bool:
        return path == "" or path in self.files or path in self.dirs

    def is_file(self, path: str) -> bool:
        return path in self.files

    def is_dir(self, path: str) -> bool:
        return path == "" or path in self.dirs

    def create_dir(self, path: str) -> None:
        if self.exists(path):
            raise FileExistsError(f"memory://{path} already exists")
        parent = path.rpartition("/")[0]
        if not self.is_dir(parent):
            raise FileNotFoundError(f"memory://{parent} does not exist")
        self.dirs.add(path)

    def write_file(self, path: str, content: str, executable: bool = False) -> None:
        if path in self.dirs:
            raise IsADirectoryError(f"memory://{path} is a directory")
        parent = path.rpartition("/")[0]
        if not self.is_dir(parent):
            raise FileNotFoundError(f"memory://{parent} does not exist")
        self.files[path] = content
        if executable:
            self.executables.add(path)
        else:
            self.executables.discard(path)

    def remove_file(self, path: str) -> None:
        if path not in self.files:
            raise FileNotFoundError(f"memory://{path} does not exist")
        del self.files[path]
        self.executables.discard(path)

    def remove_dir(self, path: str) -> None:
        if path not in self.dirs:
            raise FileNotFoundError(f"memory://{path} does not exist")
        prefix = path + "/"
        if any(key.startswith(prefix) for key in self.files) or any(
            key.startswith(prefix) for key in self.dirs
        ):
            raise OSError(f"memory://{path} is not empty")
        self.dirs.discard(path)

    def snapshot(self, path: str) -> FileSnapshot:
        if path not in self.files:
            raise FileNotFoundError(f"memory://{path} does not exist")
        return FileSnapshot(
            content=self.files[path].encode("utf-8"),
            executable=path in self.executables,
        )

    def restore(self, path: str, snapshot: FileSnapshot) -> None:
        self.files[path] = snapshot.content.decode("utf-8")
        if snapshot.executable:
            self.executables.add(path)
        else:
            self.executables.discard(path)

    def describe(self, path: str = "") -> str:
        return f"memory://{path}"

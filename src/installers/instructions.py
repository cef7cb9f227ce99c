"""
instructions.py
Install instructions handed back to the host's installer pipeline.

All paths are archive-relative and use forward slashes; directory entries in
an archive file list end with ``/``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


class ModInstallError(RuntimeError):
    """The archive cannot be installed; the message is shown to the user."""


@dataclass
class InstallInstruction:
    type: str                    # "copy" | "attribute" | "generatefile" | "rule"
    source: str = ""
    destination: str = ""
    key: str = ""
    value: Any = None
    data: str = ""

    @classmethod
    def copy(cls, source: str, destination: str) -> InstallInstruction:
        return cls(type="copy", source=source, destination=destination)

    @classmethod
    def attribute(cls, key: str, value: Any) -> InstallInstruction:
        return cls(type="attribute", key=key, value=value)

    @classmethod
    def generate_file(cls, destination: str, data: str) -> InstallInstruction:
        return cls(type="generatefile", destination=destination, data=data)


@dataclass
class InstallResult:
    instructions: list[InstallInstruction] = field(default_factory=list)

    def attribute(self, key: str) -> Any:
        for instr in self.instructions:
            if instr.type == "attribute" and instr.key == key:
                return instr.value
        return None

    @property
    def copies(self) -> list[InstallInstruction]:
        return [i for i in self.instructions if i.type == "copy"]


@dataclass(frozen=True)
class SupportedResult:
    supported: bool
    required_files: tuple[str, ...] = ()


def normalise_path(path: str) -> str:
    """Forward slashes, no leading ``./``; a trailing ``/`` (directory) is kept."""
    p = path.replace("\\", "/")
    while p.startswith("./"):
        p = p[2:]
    return p


def is_dir_entry(path: str) -> bool:
    return path.endswith("/")


def dirname(path: str) -> str:
    """``posixpath.dirname`` that returns ``"."`` for top-level files."""
    p = path.rstrip("/")
    return p.rsplit("/", 1)[0] if "/" in p else "."


def basename(path: str) -> str:
    return path.rstrip("/").rsplit("/", 1)[-1]

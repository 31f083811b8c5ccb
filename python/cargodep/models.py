"""Core data models for cargo-dep."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import semantic_version

from .errors import DependencyAlreadyResolvedError


class DependencyKind(Enum):
    """Kind of dependency relation as reported by cargo metadata."""

    NORMAL = "normal"
    DEVELOPMENT = "dev"
    BUILD = "build"

    @classmethod
    def from_metadata(cls, kind: Optional[str]) -> 'DependencyKind':
        """Map cargo's `kind` field (null, "dev", "build") to a DependencyKind."""
        if kind is None or kind == "normal":
            return cls.NORMAL
        return cls(kind)


@dataclass
class Dependency:
    """A dependency declared by a package, resolved to a package index in a second pass."""

    name: str
    req: str = "*"
    kind: DependencyKind = DependencyKind.NORMAL
    optional: bool = False
    source: Optional[str] = None
    index: Optional[int] = None

    @property
    def is_resolved(self) -> bool:
        return self.index is not None

    def resolve(self, index: int) -> None:
        """Point this dependency at a package index. Can only happen once."""
        if self.index is not None:
            raise DependencyAlreadyResolvedError(
                f"Dependency `{self.name}` already resolved to index {self.index}, "
                f"cannot resolve again to {index}"
            )
        self.index = index


@dataclass
class Package:
    """A package in the workspace graph, one per distinct (name, version, source)."""

    name: str
    version: semantic_version.Version
    id: str
    source: Optional[str] = None
    is_member: bool = False
    include: bool = False
    dependencies: List[Dependency] = field(default_factory=list)

    @property
    def label(self) -> str:
        """Return the display label in `name version` format."""
        return f"{self.name} {self.version}"

    def __str__(self) -> str:
        return self.label

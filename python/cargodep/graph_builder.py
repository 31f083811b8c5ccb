"""Builds the workspace package graph from cargo metadata using a two-phase approach."""

import logging
from typing import Any, Dict, List, Tuple

import semantic_version

from .errors import DuplicatePackageIdError, UnresolvedIdError
from .metadata import Metadata, ResolveNode, WorkspaceMember
from .models import Dependency, DependencyKind, Package
from .version_parser import VersionParser, descriptor_name

logger = logging.getLogger(__name__)


class DependencyGraphBuilder:
    """
    Builds the package list of a workspace using a two-phase approach:

    Phase 1: Build packages
    - One Package per raw package record, in metadata order
    - Each package gets its position in the list as a stable index
    - Declared dependencies are attached unresolved (name and requirement only)

    Phase 2: Resolve edges
    - Map package ids to indices
    - Match each declared dependency by name against the resolve node of its
      owning package and point it at the index of the matched descriptor
    """

    def __init__(self, metadata: Metadata):
        """Initialize the graph builder."""
        self.metadata = metadata
        self.packages: List[Package] = []
        self.id_to_index: Dict[str, int] = {}

    def build(self) -> List[Package]:
        """Run both phases and return the resolved package list."""
        logger.info(f"Building package graph for {len(self.metadata.packages)} packages")

        # PHASE 1: Packages with unresolved dependencies
        self.packages = self.build_packages(self.metadata.packages, self.metadata.workspace_members)

        # PHASE 2: Resolve dependency edges to indices
        self.id_to_index = self.build_id_index(self.packages)
        self.resolve_dependencies(self.packages, self.id_to_index, self.metadata.resolve)

        return self.packages

    @staticmethod
    def build_packages(
        raw_packages: List[Dict[str, Any]],
        members: List[WorkspaceMember]
    ) -> List[Package]:
        """
        Convert raw package records into Packages.

        Raises:
            InvalidVersionError: If any package or member version is malformed
        """
        member_versions: List[Tuple[str, semantic_version.Version]] = [
            (member.name, VersionParser.parse(member.version)) for member in members
        ]

        packages = [package_from_metadata(raw, member_versions) for raw in raw_packages]

        member_count = sum(1 for pkg in packages if pkg.is_member)
        logger.info(f"Built {len(packages)} packages ({member_count} workspace members)")
        return packages

    @staticmethod
    def build_id_index(packages: List[Package]) -> Dict[str, int]:
        """
        Map every package id to its index in the package list.

        Raises:
            DuplicatePackageIdError: If two packages share an id
        """
        id_to_index: Dict[str, int] = {}
        for i, pkg in enumerate(packages):
            if pkg.id in id_to_index:
                raise DuplicatePackageIdError(f"Duplicate key `{pkg.id}`")
            id_to_index[pkg.id] = i
        return id_to_index

    @staticmethod
    def resolve_dependencies(
        packages: List[Package],
        id_to_index: Dict[str, int],
        nodes: List[ResolveNode]
    ) -> None:
        """
        Populate Dependency.index from the resolved edges.

        Dependencies with no matching descriptor (optional or platform-specific
        dependencies that are not part of this resolution) stay unresolved.

        Raises:
            UnresolvedIdError: If a node id or a matched descriptor is not a known package id
            DependencyAlreadyResolvedError: If a dependency matches more than one descriptor
        """
        resolved = 0
        for node in nodes:
            index = id_to_index.get(node.id)
            if index is None:
                raise UnresolvedIdError(f"Could not find resolve id `{node.id}`")

            pkg = packages[index]
            for dep in pkg.dependencies:
                for descriptor in node.dependencies:
                    # Only the name is matched; version and source are not compared
                    if descriptor_name(descriptor) != dep.name:
                        continue
                    dep_index = id_to_index.get(descriptor)
                    if dep_index is None:
                        raise UnresolvedIdError(f"Could not find dep id `{descriptor}`")
                    dep.resolve(dep_index)
                    resolved += 1

                if not dep.is_resolved:
                    logger.debug(f"{pkg.label}: dependency `{dep.name}` not in resolve graph")

        logger.info(f"Resolved {resolved} dependency edges")


def package_from_metadata(
    raw: Dict[str, Any],
    member_versions: List[Tuple[str, semantic_version.Version]]
) -> Package:
    """Create a Package from a raw package record."""
    version = VersionParser.parse(raw["version"])

    # TODO: compare source as well once members carry it
    is_member = any(
        name == raw["name"] and member_version == version
        for name, member_version in member_versions
    )

    dependencies = [
        Dependency(
            name=dep["name"],
            req=dep.get("req", "*"),
            kind=DependencyKind.from_metadata(dep.get("kind")),
            optional=dep.get("optional", False),
            source=dep.get("source"),
        )
        for dep in raw.get("dependencies", [])
    ]

    return Package(
        name=raw["name"],
        version=version,
        id=raw["id"],
        source=raw.get("source"),
        is_member=is_member,
        dependencies=dependencies,
    )

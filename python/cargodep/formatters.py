"""Output formatters for the included part of the workspace graph."""

import json
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set
from uuid import uuid4

from packageurl import PackageURL
from cyclonedx.model.bom import Bom
from cyclonedx.model.component import Component, ComponentScope, ComponentType
from cyclonedx.output.json import JsonV1Dot6

from .models import Package

logger = logging.getLogger(__name__)

FORMATS = ('dot', 'list', 'tree', 'sbom')

MEMBER_TAG = "workspace-member"


def _node_id(index: int) -> str:
    return f"N{index}"


def _quote(text: str) -> str:
    """Quote a string for use as a DOT attribute value."""
    return '"' + text.replace('\\', '\\\\').replace('"', '\\"') + '"'


def _visible(packages: List[Package], ignore_set: Set[int]) -> List[int]:
    """Indices of included, non-ignored packages in ascending order."""
    return [i for i, pkg in enumerate(packages) if pkg.include and i not in ignore_set]


class OutputFormatter:
    """Formatter for the supported output formats."""

    @staticmethod
    def format(
        output_format: str,
        packages: List[Package],
        root_set: Set[int],
        ignore_set: Set[int],
        command_line: Optional[str] = None
    ) -> str:
        """Dispatch to the formatter for output_format."""
        if output_format == 'dot':
            return OutputFormatter.format_as_dot(packages, ignore_set)
        if output_format == 'list':
            return OutputFormatter.format_as_list(packages, ignore_set)
        if output_format == 'tree':
            return OutputFormatter.format_as_tree(packages, root_set, ignore_set)
        if output_format == 'sbom':
            return OutputFormatter.format_as_sbom(packages, ignore_set, command_line)
        raise ValueError(f"Unknown output format: {output_format}")

    @staticmethod
    def format_as_dot(packages: List[Package], ignore_set: Set[int]) -> str:
        """
        Format as a Graphviz digraph.

        Workspace members go into a cluster subgraph, other packages are loose
        nodes. An edge is drawn for every resolved dependency of a visible
        package unless the target is excluded. Nodes are named by index so
        same-named packages stay distinct.
        """
        visible = _visible(packages, ignore_set)

        lines = ["digraph dependencies {"]
        lines.append("  subgraph cluster0 {")
        lines.append('  label = "Workspace Members";')
        for i in visible:
            if packages[i].is_member:
                lines.append(f"    {_node_id(i)} [label={_quote(packages[i].label)}];")
        lines.append("  }")

        for i in visible:
            if not packages[i].is_member:
                lines.append(f"  {_node_id(i)} [label={_quote(packages[i].label)}];")

        for i in visible:
            for dep in packages[i].dependencies:
                if dep.index is not None and dep.index not in ignore_set:
                    lines.append(f"  {_node_id(i)} -> {_node_id(dep.index)};")
        lines.append("}")

        return '\n'.join(lines) + '\n'

    @staticmethod
    def format_as_list(packages: List[Package], ignore_set: Set[int]) -> str:
        """Format packages as a flat list (one `name version` per line)."""
        lines = [packages[i].label for i in _visible(packages, ignore_set)]
        return '\n'.join(lines) + '\n' if lines else ''

    @staticmethod
    def format_as_tree(packages: List[Package], root_set: Set[int], ignore_set: Set[int]) -> str:
        """Format as a tree visualization, one tree per root."""
        lines = ["Dependency Tree:", ""]

        roots = [i for i in sorted(root_set) if i not in ignore_set]
        visited: Set[int] = set()
        for root in roots:
            lines.extend(OutputFormatter._format_tree_node(packages, root, ignore_set, "", True, 0, visited))

        lines.extend([
            "",
            "Dependency Statistics:",
            f"  Total Packages: {len(_visible(packages, ignore_set))}",
            f"  Root Packages: {len(roots)}"
        ])

        return '\n'.join(lines) + '\n'

    @staticmethod
    def _format_tree_node(
        packages: List[Package],
        index: int,
        ignore_set: Set[int],
        prefix: str,
        is_last: bool,
        depth: int,
        visited: Set[int]
    ) -> List[str]:
        """Format a single node and, on first visit, its children."""
        pkg = packages[index]
        connector = "" if depth == 0 else ("└── " if is_last else "├── ")

        # Subtrees already printed are only referenced
        if index in visited:
            return [f"{prefix}{connector}{pkg.label} (*)"]
        visited.add(index)

        lines = [f"{prefix}{connector}{pkg.label}"]

        children = [
            dep.index for dep in pkg.dependencies
            if dep.index is not None and dep.index not in ignore_set
        ]
        if depth == 0:
            child_prefix = ""
        else:
            child_prefix = prefix + ("    " if is_last else "│   ")
        for n, child in enumerate(children):
            is_last_child = (n == len(children) - 1)
            lines.extend(OutputFormatter._format_tree_node(
                packages, child, ignore_set, child_prefix, is_last_child, depth + 1, visited
            ))

        return lines

    @staticmethod
    def format_as_sbom(
        packages: List[Package],
        ignore_set: Set[int],
        command_line: Optional[str] = None
    ) -> str:
        """Generate a CycloneDX SBOM in JSON format."""
        from . import __version__

        bom = Bom()
        bom.serial_number = uuid4()
        bom.metadata.timestamp = datetime.now(timezone.utc).replace(microsecond=0)

        tool_component = Component(
            name="cargo-dep",
            version=__version__,
            type=ComponentType.APPLICATION,
        )
        bom.metadata.tools.components.add(tool_component)

        visible = _visible(packages, ignore_set)
        for i in visible:
            bom.components.add(OutputFormatter._package_to_component(packages[i]))

        sbom = json.loads(JsonV1Dot6(bom).output_as_string())

        # Dependencies are added by hand, restricted to the visible packages
        visible_set = set(visible)
        dependencies = []
        for i in visible:
            depends_on = sorted({
                packages[dep.index].id for dep in packages[i].dependencies
                if dep.index is not None and dep.index in visible_set
            })
            dependencies.append({"ref": packages[i].id, "dependsOn": depends_on})
        sbom['dependencies'] = dependencies

        # Keep component order stable (index order) regardless of library sorting
        order: Dict[str, int] = {packages[i].id: n for n, i in enumerate(visible)}
        sbom['components'] = sorted(
            sbom.get('components', []), key=lambda c: order.get(c.get('bom-ref'), len(order))
        )

        if command_line:
            metadata = sbom.setdefault('metadata', {})
            metadata.setdefault('properties', []).append({
                'name': 'commandLine',
                'value': command_line
            })

        logger.info(f"Generated SBOM with {len(visible)} components")
        return json.dumps(sbom, indent=2) + '\n'

    @staticmethod
    def _package_to_component(pkg: Package) -> Component:
        """Convert a Package to a CycloneDX Component."""
        return Component(
            name=pkg.name,
            version=str(pkg.version),
            type=ComponentType.LIBRARY,
            purl=OutputFormatter._build_purl(pkg),
            bom_ref=pkg.id,
            scope=ComponentScope.REQUIRED,
            tags=[MEMBER_TAG] if pkg.is_member else None
        )

    @staticmethod
    def _build_purl(pkg: Package) -> PackageURL:
        """Build a Package URL (purl) for a crate."""
        return PackageURL(type="cargo", name=pkg.name, version=str(pkg.version))

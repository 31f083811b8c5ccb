"""Loading of `cargo metadata` output from cargo itself, a file, or a URL."""

import json
import logging
import os
import subprocess
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import requests

from .errors import MetadataError
from .version_parser import VersionParser, descriptor_name

logger = logging.getLogger(__name__)

METADATA_FORMAT_VERSION = "1"

# Values of a dependency's `kind` field; null means a normal dependency
DEPENDENCY_KINDS = (None, "normal", "dev", "build")


@dataclass
class WorkspaceMember:
    """A first-party package of the workspace, identified by name and version."""

    name: str
    version: str


@dataclass
class ResolveNode:
    """Resolved dependency edges of one package, as package id descriptors."""

    id: str
    dependencies: List[str] = field(default_factory=list)


@dataclass
class Metadata:
    """The subset of `cargo metadata` output the graph is built from."""

    packages: List[Dict[str, Any]]
    workspace_members: List[WorkspaceMember]
    resolve: List[ResolveNode]


def _is_url(path: str) -> bool:
    """Check if a path is a URL."""
    return urlparse(path).scheme in ('http', 'https')


def _read_content(path: str) -> str:
    """
    Read content from a file path, a URL, or stdin when path is `-`.

    Raises:
        OSError: If the file can't be read
        requests.RequestException: If URL fetch fails
    """
    if path == '-':
        logger.info("Reading metadata from stdin")
        return sys.stdin.read()
    if _is_url(path):
        logger.info(f"Fetching metadata from URL: {path}")
        response = requests.get(path, timeout=30)
        response.raise_for_status()
        return response.text
    logger.info(f"Reading metadata from file: {path}")
    with open(path, 'r') as f:
        return f.read()


class MetadataProvider:
    """
    Supplies package records, workspace members and resolved edges.

    By default runs `cargo metadata` (honouring the CARGO environment variable
    that cargo sets for its subcommands). A previously captured metadata JSON
    document can be used instead through `metadata_file`.
    """

    def __init__(
        self,
        manifest_path: Optional[str] = None,
        metadata_file: Optional[str] = None,
        cargo: Optional[str] = None
    ):
        self.manifest_path = manifest_path
        self.metadata_file = metadata_file
        self.cargo = cargo or os.environ.get("CARGO", "cargo")

    def load(self) -> Metadata:
        """
        Load and normalize metadata.

        Raises:
            MetadataError: Wrapping whatever prevented the metadata from loading
        """
        try:
            if self.metadata_file:
                content = _read_content(self.metadata_file)
            else:
                content = self._run_cargo_metadata()
            document = json.loads(content)
            return self.parse_metadata(document)
        except (OSError, subprocess.SubprocessError, requests.RequestException,
                ValueError, KeyError, TypeError, AttributeError, MetadataError) as e:
            raise MetadataError("Failed to load cargo metadata.") from e

    def _run_cargo_metadata(self) -> str:
        cmd = [self.cargo, "metadata", "--format-version", METADATA_FORMAT_VERSION]
        if self.manifest_path:
            cmd.extend(["--manifest-path", self.manifest_path])

        logger.info(f"Running: {' '.join(cmd)}")
        result = subprocess.run(cmd, capture_output=True, text=True)
        if result.returncode != 0:
            raise MetadataError(
                f"`{' '.join(cmd)}` exited with status {result.returncode}: "
                f"{result.stderr.strip()}"
            )
        return result.stdout

    @classmethod
    def parse_metadata(cls, document: Dict[str, Any]) -> Metadata:
        """
        Build a Metadata record from a decoded `cargo metadata` document.

        Package ids in the newer `source#name@version` format are rewritten to
        the legacy `name version (source)` descriptor form so that the leading
        token of every id is the package name.
        """
        cls._check_shape(document)
        raw_packages = document["packages"]
        resolve = document["resolve"]

        renamed = cls._legacy_id_map(raw_packages)
        if renamed:
            logger.debug(f"Rewrote {len(renamed)} package ids to legacy descriptor form")

        def rename(package_id: str) -> str:
            return renamed.get(package_id, package_id)

        packages = []
        by_original_id: Dict[str, Dict[str, Any]] = {}
        for raw in raw_packages:
            by_original_id[raw["id"]] = raw
            packages.append(dict(raw, id=rename(raw["id"])))

        members = []
        for member_id in document.get("workspace_members", []):
            owner = by_original_id.get(member_id)
            if owner is not None:
                members.append(WorkspaceMember(name=owner["name"], version=owner["version"]))
                continue
            info = VersionParser.parse_package_id(member_id)
            if info is None:
                raise MetadataError(f"Could not parse workspace member id `{member_id}`")
            members.append(WorkspaceMember(name=info.name, version=info.version))

        nodes = [
            ResolveNode(
                id=rename(node["id"]),
                dependencies=[rename(dep_id) for dep_id in node.get("dependencies", [])]
            )
            for node in resolve.get("nodes", [])
        ]

        logger.info(
            f"Loaded metadata: {len(packages)} packages, {len(members)} workspace members, "
            f"{len(nodes)} resolve nodes"
        )
        return Metadata(packages=packages, workspace_members=members, resolve=nodes)

    @staticmethod
    def _legacy_id_map(raw_packages: List[Dict[str, Any]]) -> Dict[str, str]:
        """Map each non-legacy package id to `name version (original id)`."""
        renamed = {}
        for raw in raw_packages:
            package_id = raw["id"]
            if descriptor_name(package_id) == raw["name"]:
                continue
            renamed[package_id] = f"{raw['name']} {raw['version']} ({package_id})"
        return renamed

    @staticmethod
    def _check_shape(document: Any) -> None:
        """
        Check the fields the graph is built from before anything reads them.

        Raises:
            MetadataError: Naming the first malformed record
        """
        if not isinstance(document, dict):
            raise MetadataError("Metadata document is not a JSON object")

        raw_packages = document.get("packages")
        if not isinstance(raw_packages, list):
            raise MetadataError("Metadata has no `packages` list")

        for i, raw in enumerate(raw_packages):
            if not isinstance(raw, dict):
                raise MetadataError(f"Package record {i} is not an object")
            for key in ("name", "version", "id"):
                if not isinstance(raw.get(key), str):
                    raise MetadataError(f"Package record {i} has no `{key}`")
            dependencies = raw.get("dependencies", [])
            if not isinstance(dependencies, list):
                raise MetadataError(f"Package `{raw['name']}` has a malformed `dependencies` field")
            for dep in dependencies:
                if not isinstance(dep, dict) or not isinstance(dep.get("name"), str):
                    raise MetadataError(f"Package `{raw['name']}` has a dependency with no `name`")
                if dep.get("kind") not in DEPENDENCY_KINDS:
                    raise MetadataError(
                        f"Package `{raw['name']}` has a dependency `{dep['name']}` "
                        f"of unknown kind `{dep.get('kind')}`"
                    )

        members = document.get("workspace_members", [])
        if not isinstance(members, list) or not all(isinstance(m, str) for m in members):
            raise MetadataError("Metadata `workspace_members` is not a list of package ids")

        resolve = document.get("resolve")
        if resolve is None:
            raise MetadataError("Metadata has no `resolve` section (was it generated with --no-deps?)")
        if not isinstance(resolve, dict) or not isinstance(resolve.get("nodes", []), list):
            raise MetadataError("Metadata `resolve` section is not an object with a `nodes` list")
        for node in resolve.get("nodes", []):
            if not isinstance(node, dict) or not isinstance(node.get("id"), str):
                raise MetadataError("Resolve node has no `id`")
            descriptors = node.get("dependencies", [])
            if not isinstance(descriptors, list) or not all(isinstance(d, str) for d in descriptors):
                raise MetadataError(f"Resolve node `{node['id']}` has a malformed `dependencies` list")

"""Version and package id parsing utilities."""

import re
from dataclasses import dataclass
from typing import Optional

import semantic_version

from .errors import InvalidVersionError


@dataclass
class PackageIdInfo:
    """
    Parsed legacy Cargo package id.

    Attributes:
        name: Package name (leading token of the id)
        version: Version string as written in the id
        source: Source in parentheses, e.g. registry+https://... or path+file://...
    """
    name: str
    version: str
    source: Optional[str] = None


def descriptor_name(descriptor: str) -> str:
    """Return the package name of a `name version source` descriptor."""
    parts = descriptor.split(None, 1)
    return parts[0] if parts else ""


class VersionParser:
    """Parser for semantic versions and Cargo package ids."""

    # Legacy Cargo package id: <name> <version> (<source>)
    # Example: serde 1.0.190 (registry+https://github.com/rust-lang/crates.io-index)
    LEGACY_ID_PATTERN = re.compile(
        r'^(\S+)'             # Package name
        r' (\S+)'             # Version
        r'(?: \((.*)\))?$'    # Optional source in parentheses
    )

    @classmethod
    def parse(cls, version: str) -> semantic_version.Version:
        """
        Parse a strict semantic version.

        Args:
            version: The version string to parse

        Returns:
            The parsed semantic_version.Version

        Raises:
            InvalidVersionError: If the string is not a valid semantic version
        """
        try:
            return semantic_version.Version(version)
        except (ValueError, TypeError) as e:
            raise InvalidVersionError(f"Invalid version `{version}`") from e

    @classmethod
    def is_valid(cls, version: str) -> bool:
        """Return True if the string is a valid semantic version."""
        return semantic_version.validate(version)

    @classmethod
    def parse_package_id(cls, package_id: str) -> Optional[PackageIdInfo]:
        """
        Split a legacy `name version (source)` package id.

        Returns None for ids in any other format (e.g. the newer
        `registry+https://...#name@version` form) or when the version part is
        not a valid semantic version.
        """
        match = cls.LEGACY_ID_PATTERN.match(package_id)
        if not match:
            return None

        name, version, source = match.group(1), match.group(2), match.group(3)
        if not cls.is_valid(version):
            return None

        return PackageIdInfo(name=name, version=version, source=source)

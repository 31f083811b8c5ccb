"""Exception types raised while building and selecting the dependency graph."""


class CargoDepError(Exception):
    """Base class for all fatal cargo-dep errors."""


class MetadataError(CargoDepError):
    """Cargo metadata could not be obtained or is malformed."""


class InvalidVersionError(CargoDepError):
    """A package version is not a valid semantic version."""


class DuplicatePackageIdError(CargoDepError):
    """Two packages share the same id."""


class UnresolvedIdError(CargoDepError):
    """A resolve node or dependency descriptor references an unknown package id."""


class DependencyAlreadyResolvedError(CargoDepError):
    """A dependency matched more than one resolved descriptor."""


class ExcludeSpecNotFoundError(CargoDepError):
    """An --exclude name did not match any package."""

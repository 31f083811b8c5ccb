"""Root/exclude selection by package name and reachability marking."""

import logging
from typing import Iterable, List, Optional, Set

from .errors import ExcludeSpecNotFoundError
from .models import Package

logger = logging.getLogger(__name__)


def select_roots(packages: List[Package], names: Optional[Iterable[str]] = None) -> Set[int]:
    """
    Compute the root set.

    With explicit names every package whose name matches becomes a root (all
    versions of it). A name matching nothing is not an error. Without names
    every workspace member is a root.
    """
    if names:
        wanted = set(names)
        roots = {i for i, pkg in enumerate(packages) if pkg.name in wanted}
        logger.info(f"Selected {len(roots)} root packages matching {sorted(wanted)}")
    else:
        roots = {i for i, pkg in enumerate(packages) if pkg.is_member}
        logger.info(f"Selected {len(roots)} workspace members as roots")
    return roots


def select_ignored(packages: List[Package], names: Optional[Iterable[str]] = None) -> Set[int]:
    """
    Compute the ignore set: every package whose name matches an exclude name.

    Raises:
        ExcludeSpecNotFoundError: If an exclude name matches no package
    """
    ignore_set: Set[int] = set()
    for exclude in names or []:
        # TODO: support full package specs, at least name@version
        matches = {i for i, pkg in enumerate(packages) if pkg.name == exclude}
        if not matches:
            raise ExcludeSpecNotFoundError(f"Could not find exclude spec `{exclude}`.")
        ignore_set.update(matches)
    if ignore_set:
        logger.info(f"Excluding {len(ignore_set)} packages")
    return ignore_set


def mark_included(packages: List[Package], root_set: Set[int], ignore_set: Set[int]) -> Set[int]:
    """
    Mark every package reachable from a root without passing through an ignored package.

    Ignored packages are neither marked nor traversed, even when they are
    roots themselves. Sets Package.include on every marked package and returns
    the include set.
    """
    include_set: Set[int] = set()

    for root in sorted(root_set):
        stack = [root]
        while stack:
            index = stack.pop()
            if index in ignore_set or index in include_set:
                continue
            include_set.add(index)
            # Reversed so dependencies are visited in declaration order
            for dep in reversed(packages[index].dependencies):
                if dep.index is not None:
                    stack.append(dep.index)

    for index in include_set:
        packages[index].include = True

    logger.info(f"Including {len(include_set)} of {len(packages)} packages")
    return include_set

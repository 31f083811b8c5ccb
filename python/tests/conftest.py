"""Shared metadata fixtures."""

import pytest

REGISTRY = "registry+https://github.com/rust-lang/crates.io-index"


def make_package(name, version, package_id, dependencies=(), source=None):
    """Build a raw `cargo metadata` package record."""
    return {
        "name": name,
        "version": version,
        "id": package_id,
        "source": source,
        "dependencies": [
            {"name": dep, "req": "^1.0", "kind": None, "optional": False, "source": REGISTRY}
            for dep in dependencies
        ],
    }


def make_document(packages, members, nodes):
    """Build a `cargo metadata` document from packages, member ids and (id, deps) pairs."""
    return {
        "packages": packages,
        "workspace_members": members,
        "resolve": {
            "nodes": [{"id": node_id, "dependencies": list(deps)} for node_id, deps in nodes],
            "root": None,
        },
        "version": 1,
    }


@pytest.fixture
def simple_document():
    """A(member), B(member, depends on C), C(third-party)."""
    packages = [
        make_package("a", "1.0.0", "a 1.0.0 path"),
        make_package("b", "1.0.0", "b 1.0.0 path", dependencies=["c"]),
        make_package("c", "1.0.0", "c 1.0.0 registry", source=REGISTRY),
    ]
    return make_document(
        packages,
        members=["a 1.0.0 path", "b 1.0.0 path"],
        nodes=[
            ("a 1.0.0 path", []),
            ("b 1.0.0 path", ["c 1.0.0 registry"]),
            ("c 1.0.0 registry", []),
        ],
    )


@pytest.fixture
def diamond_document():
    """
    app(member) -> left, right; left -> base 1.0.0; right -> base 2.0.0, log.

    Two versions of `base` share a name.
    """
    packages = [
        make_package("app", "0.1.0", "app 0.1.0 (path+file:///ws/app)", dependencies=["left", "right"]),
        make_package("left", "1.2.0", f"left 1.2.0 ({REGISTRY})", dependencies=["base"], source=REGISTRY),
        make_package("right", "0.4.1", f"right 0.4.1 ({REGISTRY})", dependencies=["base", "log"], source=REGISTRY),
        make_package("base", "1.0.0", f"base 1.0.0 ({REGISTRY})", source=REGISTRY),
        make_package("base", "2.0.0", f"base 2.0.0 ({REGISTRY})", source=REGISTRY),
        make_package("log", "0.4.20", f"log 0.4.20 ({REGISTRY})", source=REGISTRY),
    ]
    return make_document(
        packages,
        members=["app 0.1.0 (path+file:///ws/app)"],
        nodes=[
            ("app 0.1.0 (path+file:///ws/app)", [f"left 1.2.0 ({REGISTRY})", f"right 0.4.1 ({REGISTRY})"]),
            (f"left 1.2.0 ({REGISTRY})", [f"base 1.0.0 ({REGISTRY})"]),
            (f"right 0.4.1 ({REGISTRY})", [f"base 2.0.0 ({REGISTRY})", f"log 0.4.20 ({REGISTRY})"]),
            (f"base 1.0.0 ({REGISTRY})", []),
            (f"base 2.0.0 ({REGISTRY})", []),
            (f"log 0.4.20 ({REGISTRY})", []),
        ],
    )

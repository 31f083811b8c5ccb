"""cargo-dep: render the dependency graph of a Cargo workspace."""

__version__ = "0.1.0"

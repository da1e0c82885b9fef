"""notegraph - knowledge graph engine for markdown note vaults."""

__version__ = "0.1.0"

"""Vault loading and parsing utilities."""

from .loader import load_vault, Vault
from .parser import extract_links, extract_tags, iter_link_refs, LinkRef

__all__ = [
    "load_vault",
    "Vault",
    "extract_links",
    "extract_tags",
    "iter_link_refs",
    "LinkRef",
]

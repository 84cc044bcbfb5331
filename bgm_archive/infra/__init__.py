"""Infra layer utilities (identifier storage)."""

from .id_store import IdentifierStore

__all__ = ["IdentifierStore"]

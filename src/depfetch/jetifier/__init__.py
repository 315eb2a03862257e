"""Jetifier: remap legacy Android support libraries to AndroidX."""

from .adapter import JetifierAdapter
from .mapping import JetifierMapping
from .rewriter import ArchiveReferenceRewriter, ReferenceRewriter

__all__ = ["JetifierAdapter", "JetifierMapping", "ArchiveReferenceRewriter", "ReferenceRewriter"]

"""Adapters layer - document source implementations."""

from .document_source import CANONICAL_DOCUMENTS, AbstractDocumentSource, InMemoryDocumentSource
from .xml_source import XmlDocumentSource


__all__ = [
    "CANONICAL_DOCUMENTS",
    "AbstractDocumentSource",
    "InMemoryDocumentSource",
    "XmlDocumentSource",
]

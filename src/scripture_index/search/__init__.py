"""
Indexing and retrieval core.

This package provides the database-free index stack:
- analyzers: Tokenizer, prefix derivation and identifier normalization
- snapshots: Versioned snapshot records and their invariants
- index_data: Immutable search/concordance indexes and their chapter writers
- indexer: Corpus walk, cancellation token and batch builder
- storage: Snapshot load/save
- cross_reference: Topical cross-reference parsing and index
"""

"""
Search indexing and query engine package.

This package provides a pure-Python search stack:
- analyzers: Tokenizer and filters (lowercase, accents, stopwords, stemming)
- schema: Search scope definition (fields, weights, prefix default)
- index: Copy-on-write inverted index with snapshots
- query: Query parsing with prefix and negation support
- ranker: OR-of-terms matching and weighted scoring
- snippet: Highlighted excerpts
- storage: JSON document persistence
"""

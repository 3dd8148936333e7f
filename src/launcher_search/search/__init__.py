"""
Search indexing and ranking package.

This package provides the pure-Python launcher search stack:
- normalizer: NFC + case-folding normalization and field layout
- index: copy-on-write index with auxiliary maps
- fuzzy: subsequence matcher with positional bonuses
- ranking: field weights plus usage/recency/favorite signals
- filters: structural candidate filtering
- cache, scratch, metrics: hot-path support
"""

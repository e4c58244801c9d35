"""Song catalog persistence providers.

MongoCatalogProvider keeps one document per (artist, title) pair, keyed by
their normalized forms, and serves the search/browse queries.
"""

"""Tree walking, document collection, indexing and search."""

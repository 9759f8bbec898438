"""Video storage, quality ladder and byte-range streaming module."""

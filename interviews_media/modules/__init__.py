"""Application modules.

This package contains the feature modules of the media service:
- auth: JWT tokens, principals, ownership and role checks
- video: Video storage, quality ladder and byte-range streaming
"""

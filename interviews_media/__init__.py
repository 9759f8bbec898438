"""Interviews.tv media backend.

Serves interview recordings to their owners: video file metadata, quality
ladders built from completed compression jobs, and byte-range streaming for
seekable playback.

Modules:
    - core: Configuration, database, storage, logging, metrics, tracing
    - modules.auth: JWT bearer authentication and authorization checks
    - modules.video: Video storage, quality ladder and streaming endpoints
"""

__version__ = "0.1.0"

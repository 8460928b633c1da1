"""
Sync client.

Tracks a project's files with a content-addressed change tree, splits changed
files into hashed semantic chunks and synchronizes them with the ingestor
through the two-phase hash-then-content protocol.
"""

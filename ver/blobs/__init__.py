"""Content-addressed blob storage.

Blobs are immutable byte sequences filed under the SHA-1 digest of their
content, sharded into subdirectories by the first two hex characters of the
digest (the same layout git uses for loose objects).
"""

"""Filesystem helpers shared by the blob store and the registry."""

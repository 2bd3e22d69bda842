"""ver — a local patch registry backed by a content-addressed blob store."""

import importlib.metadata as importlib_metadata


def _detect_version() -> str:
    """Return installed package version or a local fallback when metadata is unavailable."""
    try:
        return importlib_metadata.version("ver-patches")
    except importlib_metadata.PackageNotFoundError:
        return "0.0.0+unknown"


__version__ = _detect_version()

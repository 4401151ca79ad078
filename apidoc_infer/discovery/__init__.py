"""Entry-point discovery from route manifests."""

from .manifest import ManifestLoader

__all__ = ["ManifestLoader"]

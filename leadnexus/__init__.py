"""Lead Nexus - media lead discovery and semantic search."""

__version__ = "1.0.0"

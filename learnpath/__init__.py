"""Learning-path resource curation service."""

__version__ = "1.0.0"

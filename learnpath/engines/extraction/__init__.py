"""Content extraction for reading resources."""

from learnpath.engines.extraction.content_extractor import ContentExtractor, ExtractionResult

__all__ = ["ContentExtractor", "ExtractionResult"]

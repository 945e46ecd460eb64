"""
Extraction strategies for the board scraper
"""

from .base_extractor import BaseExtractor, MarkupExtractor
from .embedded_data_extractor import EmbeddedDataExtractor, EmbeddedDataParser
from .heuristic_extractor import HeuristicExtractor, HeuristicMarkupExtractor

__all__ = [
    'BaseExtractor',
    'MarkupExtractor',
    'EmbeddedDataExtractor',
    'EmbeddedDataParser',
    'HeuristicExtractor',
    'HeuristicMarkupExtractor',
]

"""D-NAV decision extraction."""
from .config import ExtractionConfig, get_config
from .pipeline import extract_document, run_extraction
from .schema import DecisionCandidate, ExtractionResponse, parse_request

__all__ = [
    "DecisionCandidate",
    "ExtractionConfig",
    "ExtractionResponse",
    "extract_document",
    "get_config",
    "parse_request",
    "run_extraction",
]

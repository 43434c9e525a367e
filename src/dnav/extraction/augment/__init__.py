"""Optional model augmentation: extraction from snippets or refinement of local candidates."""
from .augmentor import ExternalAugmentor, PageSnippets, RefinementOutcome
from .parsing import Failed, NeedsRepair, Parsed, parse_json

__all__ = [
    "ExternalAugmentor",
    "Failed",
    "NeedsRepair",
    "PageSnippets",
    "Parsed",
    "RefinementOutcome",
    "parse_json",
]

"""D-NAV decision intake: extract decision candidates from document text."""

__version__ = "0.1.0"

"""thesisflow: thesis submission and multi-stage approval service."""

__version__ = "0.3.0"

"""Eligibility, ranking, caching and admission control for grant matching."""

__version__ = "0.1.0"

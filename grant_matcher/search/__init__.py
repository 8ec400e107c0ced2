"""Candidate retrieval collaborators."""

from grant_matcher.search.base import Candidate, CandidateSearch, SearchFilters
from grant_matcher.search.http import HttpCandidateSearch
from grant_matcher.search.tfidf import TfidfCandidateSearch

__all__ = [
    "Candidate",
    "CandidateSearch",
    "HttpCandidateSearch",
    "SearchFilters",
    "TfidfCandidateSearch",
]

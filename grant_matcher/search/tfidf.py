from __future__ import annotations

from typing import Iterable, Sequence

import numpy as np
from sklearn.feature_extraction.text import TfidfVectorizer

from grant_matcher.normalize.schema import Opportunity, Profile
from grant_matcher.search.base import (
    Candidate,
    SearchFilters,
    build_profile_query,
    opportunity_matches_filters,
)


def build_opportunity_text(opportunity: Opportunity) -> str:
    fields = [
        opportunity.title,
        opportunity.description,
        " ".join(opportunity.keywords),
        " ".join(opportunity.eligible_majors),
    ]
    return " ".join(text.strip() for text in fields if text and text.strip()).strip()


def compute_tfidf_similarity(query_text: str, opportunity_texts: list[str]) -> np.ndarray:
    if not opportunity_texts:
        return np.array([], dtype=float)
    if not query_text.strip() or not any(text.strip() for text in opportunity_texts):
        return np.zeros(len(opportunity_texts), dtype=float)

    vectorizer = TfidfVectorizer(
        lowercase=True,
        stop_words="english",
        ngram_range=(1, 2),
        min_df=1,
    )
    corpus = [query_text, *opportunity_texts]
    try:
        matrix = vectorizer.fit_transform(corpus)
    except ValueError:
        # Raised when the corpus holds only stop words.
        return np.zeros(len(opportunity_texts), dtype=float)
    query_vector = matrix[0]
    opportunity_matrix = matrix[1:]

    similarities = (opportunity_matrix @ query_vector.T).toarray().ravel()
    return np.clip(similarities, 0.0, 1.0)


class TfidfCandidateSearch:
    """In-process retrieval over a fixed opportunity pool."""

    def __init__(self, opportunities: Iterable[Opportunity]) -> None:
        self._opportunities = tuple(opportunities)
        self._texts = [build_opportunity_text(opportunity) for opportunity in self._opportunities]

    def __len__(self) -> int:
        return len(self._opportunities)

    def search(
        self,
        profile: Profile,
        filters: SearchFilters,
        min_similarity: float,
        limit: int,
        *,
        query: str | None = None,
    ) -> Sequence[Candidate]:
        similarities = compute_tfidf_similarity(query or build_profile_query(profile), self._texts)
        candidates = [
            Candidate(
                opportunity_id=opportunity.opportunity_id,
                similarity=float(similarity),
                opportunity=opportunity,
            )
            for opportunity, similarity in zip(self._opportunities, similarities, strict=True)
            if similarity >= min_similarity and opportunity_matches_filters(opportunity, filters)
        ]
        candidates.sort(key=lambda candidate: (-candidate.similarity, candidate.opportunity_id))
        return candidates[:limit]

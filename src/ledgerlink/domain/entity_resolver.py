"""Resolve free-text counterparty names against payees or clients."""

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Protocol

from ledgerlink.domain.entities import MatchResult, MatchType, PayeeType
from ledgerlink.utils.similarity import similarity


class NamedEntity(Protocol):
    id: int
    name: str
    alternate_name: Optional[str]


@dataclass(frozen=True)
class MatchThresholds:
    """Confidence cut-offs for name matching.

    ``auto_match`` and ``suggestion`` are on the 0-100 scale used by the
    resolver; ``backfill_link`` and ``exact_ratio`` are similarity ratios.
    """

    auto_match: float = 75.0
    suggestion: float = 40.0
    backfill_link: float = 0.8
    exact_ratio: float = 0.999
    max_suggestions: int = 3

    @classmethod
    def from_settings(cls, settings) -> "MatchThresholds":
        return cls(
            auto_match=settings.auto_match_threshold,
            suggestion=settings.suggestion_threshold,
            backfill_link=settings.backfill_threshold,
        )


@dataclass(frozen=True)
class ResolutionResult:
    """Ranked matches for one name."""

    name: str
    matches: list[MatchResult] = field(default_factory=list)
    best_match: Optional[MatchResult] = None
    suggestions: list[MatchResult] = field(default_factory=list)

    @property
    def is_unmatched(self) -> bool:
        """True when no candidate reached the suggestion threshold."""
        return not self.matches

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "best_match": self.best_match.to_dict() if self.best_match else None,
            "suggestions": [s.to_dict() for s in self.suggestions],
        }


# Account path keywords -> payee type, first hit wins
PAYEE_TYPE_KEYWORDS: list[tuple[tuple[str, ...], PayeeType]] = [
    (("contract labor", "subcontractor"), PayeeType.SUBCONTRACTOR),
    (("materials", "supplies"), PayeeType.MATERIAL_SUPPLIER),
    (("equipment", "rental"), PayeeType.EQUIPMENT_RENTAL),
    (("permit", "license"), PayeeType.PERMIT_AUTHORITY),
]


def infer_payee_type(account_path: Optional[str]) -> PayeeType:
    """Guess a payee's type from the account its expense was booked to."""
    if not account_path:
        return PayeeType.OTHER
    lowered = account_path.lower()
    for keywords, payee_type in PAYEE_TYPE_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return payee_type
    return PayeeType.OTHER


class EntityResolver:
    """Fuzzy name matcher shared by the import pipeline and the backfill."""

    def __init__(self, thresholds: Optional[MatchThresholds] = None):
        self.thresholds = thresholds or MatchThresholds()

    def score(self, name: str, candidate: NamedEntity) -> tuple[float, bool]:
        """Score a candidate against a name.

        Returns:
            Tuple of (confidence 0-100, is_exact). Primary and alternate names
            are both tried and the higher score is kept.
        """
        wanted = (name or "").strip().lower()
        best = 0.0
        for candidate_name in (candidate.name, candidate.alternate_name):
            if not candidate_name:
                continue
            if wanted and candidate_name.strip().lower() == wanted:
                return 100.0, True
            best = max(best, similarity(name, candidate_name))
        return round(best * 100, 2), False

    def resolve(self, name: str, candidates: Iterable[NamedEntity]) -> ResolutionResult:
        """Rank candidates for a name.

        Args:
            name: Free-text counterparty name from a transaction
            candidates: Payees or clients to match against

        Returns:
            ResolutionResult with every candidate at or above the suggestion
            threshold, the best match (if it reached the auto threshold) and up
            to ``max_suggestions`` lower-confidence suggestions for review.
        """
        if not name or not name.strip():
            return ResolutionResult(name=name or "")

        scored: list[MatchResult] = []
        for candidate in candidates:
            confidence, is_exact = self.score(name, candidate)
            if confidence < self.thresholds.suggestion:
                continue
            if is_exact:
                match_type = MatchType.EXACT
            elif confidence >= self.thresholds.auto_match:
                match_type = MatchType.AUTO
            else:
                match_type = MatchType.FUZZY
            scored.append(
                MatchResult(
                    candidate_id=candidate.id,
                    candidate_name=candidate.name,
                    confidence=confidence,
                    match_type=match_type,
                )
            )

        # sorted() is stable, so equal scores keep candidate order
        scored = sorted(scored, key=lambda m: m.confidence, reverse=True)

        best_match = None
        if scored and scored[0].confidence >= self.thresholds.auto_match:
            best_match = scored[0]

        suggestions = [
            m for m in scored if m.confidence < self.thresholds.auto_match
        ][: self.thresholds.max_suggestions]

        return ResolutionResult(
            name=name,
            matches=scored,
            best_match=best_match,
            suggestions=suggestions,
        )

    def link_confidence(self, name: str, other: str) -> tuple[float, Optional[MatchType]]:
        """Decide whether two names are close enough to link records.

        Returns:
            Tuple of (similarity ratio, match type). The match type is None
            when the ratio is below the backfill threshold, EXACT when the
            ratio is effectively 1.0 and FUZZY otherwise.
        """
        ratio = similarity(name, other)
        if ratio < self.thresholds.backfill_link:
            return ratio, None
        if ratio >= self.thresholds.exact_ratio:
            return ratio, MatchType.EXACT
        return ratio, MatchType.FUZZY

"""Cosine matching of a probe embedding against an enrolled profile."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

import numpy as np

from core.metrics import similarity_score

logger = logging.getLogger(__name__)


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """dot(a, b) / (|a| |b| + 1e-8) over the shared leading components."""
    a = np.asarray(a, dtype=np.float64).ravel()
    b = np.asarray(b, dtype=np.float64).ravel()
    n = min(a.size, b.size)
    if n == 0:
        return 0.0
    a, b = a[:n], b[:n]
    denom = float(np.linalg.norm(a) * np.linalg.norm(b)) + 1e-8
    return float(np.clip(np.dot(a, b) / denom, -1.0, 1.0))


def score_confidence(score: float, threshold: float) -> str:
    """Calculate confidence level from cosine similarity."""
    if score >= threshold + 0.12:
        return "High"
    if score >= threshold + 0.05:
        return "Medium"
    return "Low"


@dataclass
class MatchResult:
    scores: List[float] = field(default_factory=list)
    decision_score: float = 0.0
    mean_score: float = 0.0
    threshold: float = 0.75
    accepted: bool = False
    confidence: str = "Low"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scores": list(self.scores),
            "score": self.decision_score,
            "mean_score": self.mean_score,
            "threshold": self.threshold,
            "match": self.accepted,
            "confidence": self.confidence,
        }


class VoiceMatcher:
    """Max-over-samples cosine decision with a strict threshold."""

    def __init__(self, threshold: float = 0.75):
        if not -1.0 <= threshold <= 1.0:
            raise ValueError(f"threshold must lie in [-1, 1], got {threshold}")
        self.threshold = float(threshold)

    def match(self, probe: np.ndarray, enrolled: Sequence[np.ndarray]) -> MatchResult:
        """Score ``probe`` against every enrolled embedding.

        Raises:
            ValueError: if ``enrolled`` is empty
        """
        if len(enrolled) == 0:
            raise ValueError("Cannot match against an empty profile")

        scores = [cosine_similarity(probe, vec) for vec in enrolled]
        decision = float(max(scores))
        mean = float(np.mean(scores))
        accepted = decision > self.threshold

        similarity_score.observe(decision)
        logger.info(
            f"Match scores={[round(s, 4) for s in scores]} max={decision:.4f} "
            f"mean={mean:.4f} threshold={self.threshold:.2f} accepted={accepted}"
        )

        return MatchResult(
            scores=scores,
            decision_score=decision,
            mean_score=mean,
            threshold=self.threshold,
            accepted=accepted,
            confidence=score_confidence(decision, self.threshold),
        )

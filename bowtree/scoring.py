"""Word weighting and BoW vector scoring models."""

from __future__ import annotations

import math
import sys
from enum import Enum

from .bow_vector import L1, L2, BowVector

LOG_EPS = math.log(sys.float_info.epsilon)


class WeightingType(Enum):
    TF_IDF = "tf-idf"
    TF = "tf"
    IDF = "idf"
    BINARY = "binary"

    @classmethod
    def from_name(cls, name: str) -> "WeightingType":
        key = name.strip().lower().replace("_", "-")
        for member in cls:
            if member.value == key:
                return member
        raise ValueError(f"Unknown weighting type: {name} (choose from {', '.join(m.value for m in cls)})")


class ScoringType(Enum):
    L1_NORM = ("l1", "L1-norm")
    L2_NORM = ("l2", "L2-norm")
    CHI_SQUARE = ("chi-square", "Chi square distance")
    KL = ("kl", "KL-divergence")
    BHATTACHARYYA = ("bhattacharyya", "Bhattacharyya coefficient")
    DOT_PRODUCT = ("dot-product", "Dot product")

    @property
    def cli_name(self) -> str:
        return self.value[0]

    @property
    def display_name(self) -> str:
        return self.value[1]

    @classmethod
    def from_name(cls, name: str) -> "ScoringType":
        key = name.strip().lower().replace("_", "-")
        if key.endswith("-norm"):
            key = key[: -len("-norm")]
        for member in cls:
            if member.cli_name == key:
                return member
        raise ValueError(f"Unknown scoring type: {name} (choose from {', '.join(m.cli_name for m in cls)})")


class Scorer:
    """Base scorer. Subclasses define the norm and the per-word accumulation."""

    must_normalize = False
    norm: str | None = None
    # KL: lower is better
    ascending = False

    def score(self, v: BowVector, w: BowVector) -> float:
        raise NotImplementedError


class L1Scorer(Scorer):
    must_normalize = True
    norm = L1

    def score(self, v: BowVector, w: BowVector) -> float:
        s = 0.0
        for wid, vi in v.items():
            wi = w.get(wid)
            if wi is not None:
                s += abs(vi - wi) - abs(vi) - abs(wi)
        # ||v - w||_1 = 2 + sum(|vi - wi| - |vi| - |wi|) for unit L1 vectors
        return -s / 2.0


class L2Scorer(Scorer):
    must_normalize = True
    norm = L2

    def score(self, v: BowVector, w: BowVector) -> float:
        s = 0.0
        for wid, vi in v.items():
            wi = w.get(wid)
            if wi is not None:
                s += vi * wi
        if s >= 1.0:
            return 1.0
        return 1.0 - math.sqrt(1.0 - s)


class ChiSquareScorer(Scorer):
    must_normalize = True
    norm = L1

    def score(self, v: BowVector, w: BowVector) -> float:
        s = 0.0
        for wid, vi in v.items():
            wi = w.get(wid)
            if wi is not None and vi + wi != 0.0:
                s += vi * wi / (vi + wi)
        return 2.0 * s


class KLScorer(Scorer):
    must_normalize = True
    norm = L1
    ascending = True

    def score(self, v: BowVector, w: BowVector) -> float:
        s = 0.0
        for wid, vi in v.items():
            if vi == 0.0:
                continue
            wi = w.get(wid)
            if wi:
                s += vi * math.log(vi / wi)
            else:
                s += vi * (math.log(vi) - LOG_EPS)
        return s


class BhattacharyyaScorer(Scorer):
    must_normalize = True
    norm = L1

    def score(self, v: BowVector, w: BowVector) -> float:
        s = 0.0
        for wid, vi in v.items():
            wi = w.get(wid)
            if wi is not None:
                s += math.sqrt(vi * wi)
        return s


class DotProductScorer(Scorer):
    def score(self, v: BowVector, w: BowVector) -> float:
        s = 0.0
        for wid, vi in v.items():
            wi = w.get(wid)
            if wi is not None:
                s += vi * wi
        return s


_SCORERS = {
    ScoringType.L1_NORM: L1Scorer,
    ScoringType.L2_NORM: L2Scorer,
    ScoringType.CHI_SQUARE: ChiSquareScorer,
    ScoringType.KL: KLScorer,
    ScoringType.BHATTACHARYYA: BhattacharyyaScorer,
    ScoringType.DOT_PRODUCT: DotProductScorer,
}


def scoring_object(scoring: ScoringType) -> Scorer:
    return _SCORERS[scoring]()

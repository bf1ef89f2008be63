import math

import pytest

from bowtree.bow_vector import BowVector
from bowtree.scoring import LOG_EPS, ScoringType, WeightingType, scoring_object

V = BowVector({1: 0.5, 2: 0.5})
W = BowVector({2: 0.5, 3: 0.5})


@pytest.mark.parametrize(
    "scoring, expected",
    [
        (ScoringType.L1_NORM, 0.5),
        (ScoringType.CHI_SQUARE, 0.5),
        (ScoringType.BHATTACHARYYA, 0.5),
        (ScoringType.DOT_PRODUCT, 0.25),
    ],
)
def test_scores_on_half_overlapping_vectors(scoring, expected):
    assert scoring_object(scoring).score(V, W) == pytest.approx(expected)


def test_l2_score():
    a = 1.0 / math.sqrt(2.0)
    v = BowVector({1: a, 2: a})
    w = BowVector({2: a, 3: a})
    scorer = scoring_object(ScoringType.L2_NORM)
    assert scorer.score(v, w) == pytest.approx(1.0 - math.sqrt(0.5))
    assert scorer.score(v, v) == pytest.approx(1.0)


def test_l1_score_of_identical_vectors_is_one():
    assert scoring_object(ScoringType.L1_NORM).score(V, V) == pytest.approx(1.0)


def test_kl_divergence():
    scorer = scoring_object(ScoringType.KL)
    assert scorer.ascending
    assert scorer.score(V, V) == pytest.approx(0.0)
    assert scorer.score(BowVector({1: 1.0}), BowVector({2: 1.0})) == pytest.approx(-LOG_EPS)


def test_normalisation_requirements():
    assert scoring_object(ScoringType.L1_NORM).norm == "L1"
    assert scoring_object(ScoringType.L2_NORM).norm == "L2"
    assert not scoring_object(ScoringType.DOT_PRODUCT).must_normalize


def test_names():
    assert WeightingType.from_name("TF_IDF") is WeightingType.TF_IDF
    assert WeightingType.from_name("binary") is WeightingType.BINARY
    assert ScoringType.from_name("L1-norm") is ScoringType.L1_NORM
    assert ScoringType.from_name("chi_square") is ScoringType.CHI_SQUARE
    assert ScoringType.L1_NORM.display_name == "L1-norm"
    with pytest.raises(ValueError):
        ScoringType.from_name("cosine")
    with pytest.raises(ValueError):
        WeightingType.from_name("bm25")

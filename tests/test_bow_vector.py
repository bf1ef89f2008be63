import pytest

from bowtree.bow_vector import L1, L2, BowVector, FeatureVector


def test_add_weight_accumulates():
    v = BowVector()
    v.add_weight(3, 0.5)
    v.add_weight(3, 0.25)
    v.add_weight(1, 1.0)
    assert v[3] == pytest.approx(0.75)
    assert v.sorted_items() == [(1, 1.0), (3, 0.75)]


def test_add_if_not_exist_keeps_first_value():
    v = BowVector()
    v.add_if_not_exist(2, 0.3)
    v.add_if_not_exist(2, 0.9)
    assert v[2] == pytest.approx(0.3)


def test_normalize_l1_and_l2():
    v = BowVector({0: 1.0, 1: 3.0})
    v.normalize(L1)
    assert sum(v.values()) == pytest.approx(1.0)

    w = BowVector({0: 3.0, 1: 4.0})
    w.normalize(L2)
    assert w[0] == pytest.approx(0.6)
    assert w[1] == pytest.approx(0.8)


def test_normalize_zero_vector_is_noop():
    v = BowVector({0: 0.0})
    v.normalize(L1)
    assert v[0] == 0.0
    with pytest.raises(ValueError):
        v.normalize("L7")


def test_string_forms():
    v = BowVector({4: 0.5, 1: 0.25})
    assert str(v) == "<1, 0.25>, <4, 0.5>"

    fv = FeatureVector()
    fv.add_feature(7, 0)
    fv.add_feature(7, 2)
    fv.add_feature(3, 1)
    assert fv[7] == [0, 2]
    assert str(fv) == "3: [1]; 7: [0, 2]"

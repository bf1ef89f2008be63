import json

import pytest

from bowtree.brisk import BriskParams
from bowtree.config_io import load_config_json, parse_brisk_params_dict, parse_vocabulary_dict
from bowtree.scoring import ScoringType, WeightingType


def test_brisk_params_from_section():
    params = parse_brisk_params_dict({"brisk": {"threshold": 30, "octaves": 3, "rotation_invariant": False}})
    assert params.threshold == 30.0
    assert params.octaves == 3
    assert params.rotation_invariant is False
    assert params.max_keypoints == BriskParams().max_keypoints


def test_brisk_params_defaults_and_base():
    assert parse_brisk_params_dict({}) == BriskParams()
    base = BriskParams(max_keypoints=10)
    assert parse_brisk_params_dict({"threshold": 25}, base).max_keypoints == 10


def test_brisk_params_validation():
    with pytest.raises(ValueError):
        parse_brisk_params_dict({"scale_invariant": "yes"})
    with pytest.raises(ValueError):
        parse_brisk_params_dict({"max_keypoints": -1})


def test_vocabulary_section():
    out = parse_vocabulary_dict({"vocabulary": {"k": 8, "L": 3, "weighting": "idf", "scoring": "l2"}})
    assert out == {"k": 8, "L": 3, "weighting": WeightingType.IDF, "scoring": ScoringType.L2_NORM}
    assert parse_vocabulary_dict({"brisk": {}}) is None
    with pytest.raises(ValueError):
        parse_vocabulary_dict({"scoring": "hamming"})


def test_load_config_json(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"brisk": {"octaves": 1}}))
    assert load_config_json(path) == {"brisk": {"octaves": 1}}

    path.write_text("[1, 2]")
    with pytest.raises(ValueError):
        load_config_json(path)

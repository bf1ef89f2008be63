from __future__ import annotations

import json
from dataclasses import fields
from pathlib import Path
from typing import Optional

from .brisk import BriskParams
from .scoring import ScoringType, WeightingType


def parse_brisk_params_dict(data: dict, base: BriskParams | None = None) -> BriskParams:
    """Parse BRISK parameters from a dict.

    Accepted formats:
    - {"threshold":.., "octaves":.., "max_keypoints":.., ...}
    - {"brisk": {...same keys...}}

    Missing keys keep the values of ``base`` (defaults when omitted).
    """

    if "brisk" in data and isinstance(data["brisk"], dict):
        data = data["brisk"]

    params = base if base is not None else BriskParams()
    values = {}
    for f in fields(BriskParams):
        if f.name not in data:
            values[f.name] = getattr(params, f.name)
            continue
        v = data[f.name]
        if f.name in ("rotation_invariant", "scale_invariant"):
            if not isinstance(v, bool):
                raise ValueError(f"'{f.name}' must be true or false")
            values[f.name] = v
        elif f.name in ("octaves", "max_keypoints"):
            values[f.name] = int(v)
        else:
            values[f.name] = float(v)

    if values["octaves"] < 0:
        raise ValueError(f"'octaves' must be >= 0, got {values['octaves']}")
    if values["max_keypoints"] < 0:
        raise ValueError(f"'max_keypoints' must be >= 0, got {values['max_keypoints']}")
    return BriskParams(**values)


def parse_vocabulary_dict(data: dict) -> Optional[dict]:
    """Parse vocabulary parameters from a dict.

    Accepted formats:
    - {"vocabulary": {"k":.., "L":.., "weighting": "tf-idf", "scoring": "l1"}}
    - {"k":.., "L":.., ...}

    Returns a dict with only the keys present (k, L, weighting, scoring), or
    None if none are.
    """

    if "vocabulary" in data and isinstance(data["vocabulary"], dict):
        data = data["vocabulary"]

    out: dict = {}
    if "k" in data:
        out["k"] = int(data["k"])
    if "L" in data:
        out["L"] = int(data["L"])
    if "weighting" in data:
        out["weighting"] = WeightingType.from_name(str(data["weighting"]))
    if "scoring" in data:
        out["scoring"] = ScoringType.from_name(str(data["scoring"]))
    return out or None


def load_config_json(path: Path) -> dict:
    data = json.loads(Path(path).read_text())
    if not isinstance(data, dict):
        raise ValueError("Config JSON must be an object")
    return data

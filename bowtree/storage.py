from __future__ import annotations

import gzip
import os
import pickle


def _ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def _open(filepath: str, mode: str):
    if str(filepath).endswith(".gz"):
        return gzip.open(filepath, mode)
    return open(filepath, mode)


def save_dict(filepath: str, data: dict) -> None:
    """Pickle a dict of plain values/arrays, gzip-compressed for ``*.gz`` paths."""
    filepath = str(filepath)
    _ensure_dir(os.path.dirname(filepath) or ".")
    with _open(filepath, "wb") as f:
        pickle.dump(data, f, protocol=pickle.HIGHEST_PROTOCOL)


def load_dict(filepath: str) -> dict:
    filepath = str(filepath)
    if not os.path.exists(filepath):
        raise FileNotFoundError(f"No such file: {filepath}")
    with _open(filepath, "rb") as f:
        data = pickle.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Unexpected content in {filepath}")
    return data

"""Image database with an inverted file (word -> images) and an optional
direct file (image -> features grouped by vocabulary node)."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .bow_vector import BowVector, FeatureVector
from .scoring import LOG_EPS, ScoringType
from .storage import load_dict, save_dict
from .vocabulary import Vocabulary


@dataclass
class Result:
    entry_id: int
    score: float
    n_words: int = 0

    def __str__(self) -> str:
        return f"<EntryId: {self.entry_id}, Score: {self.score:g}>"


class QueryResults(list):
    def __str__(self) -> str:
        return "[" + " ".join(str(r) for r in self) + "]"


class Database:
    def __init__(self, vocabulary: Vocabulary | None = None, use_direct_index: bool = True, di_levels: int = 0):
        self.use_direct_index = bool(use_direct_index)
        self.di_levels = int(di_levels)
        self.voc: Vocabulary | None = None
        self.inverted: list[list[tuple[int, float]]] = []
        self.direct: list[FeatureVector] = []
        self.n_entries = 0
        if vocabulary is not None:
            self.set_vocabulary(vocabulary)

    def set_vocabulary(
        self, vocabulary: Vocabulary, use_direct_index: bool | None = None, di_levels: int | None = None
    ) -> None:
        """Replace the vocabulary with a copy of the given one and clear all entries."""
        if use_direct_index is not None:
            self.use_direct_index = bool(use_direct_index)
        if di_levels is not None:
            self.di_levels = int(di_levels)
        self.voc = Vocabulary.from_dict(vocabulary.to_dict())
        self.clear()

    @property
    def vocabulary(self) -> Vocabulary | None:
        return self.voc

    @property
    def using_direct_index(self) -> bool:
        return self.use_direct_index

    @property
    def direct_index_levels(self) -> int:
        return self.di_levels

    def size(self) -> int:
        return self.n_entries

    def clear(self) -> None:
        self.inverted = [[] for _ in range(self.voc.size() if self.voc is not None else 0)]
        self.direct = []
        self.n_entries = 0

    def _check_ready(self) -> None:
        if self.voc is None or self.voc.empty():
            raise RuntimeError("Database has no vocabulary")

    # ------------------------------------------------------------------- add

    def add(self, features: Sequence[np.ndarray] | np.ndarray) -> int:
        """Add an image given its descriptors. Returns the new entry id."""
        self._check_ready()
        if self.use_direct_index:
            bow, fv = self.voc.transform_with_features(features, self.di_levels)
            return self.add_bow(bow, fv)
        return self.add_bow(self.voc.transform(features))

    def add_bow(self, bow: BowVector, feature_vector: FeatureVector | None = None) -> int:
        self._check_ready()
        entry_id = self.n_entries
        self.n_entries += 1

        if self.use_direct_index:
            self.direct.append(feature_vector if feature_vector is not None else FeatureVector())

        for word_id, weight in bow.items():
            self.inverted[word_id].append((entry_id, float(weight)))
        return entry_id

    def retrieve_features(self, entry_id: int) -> FeatureVector:
        if not self.use_direct_index:
            raise RuntimeError("Database was created without direct index")
        if entry_id < 0 or entry_id >= self.n_entries:
            raise ValueError(f"Entry {entry_id} out of range (size {self.n_entries})")
        return self.direct[entry_id]

    # ----------------------------------------------------------------- query

    def query(
        self, features: Sequence[np.ndarray] | np.ndarray, max_results: int = 1, max_id: int = -1
    ) -> QueryResults:
        self._check_ready()
        return self.query_bow(self.voc.transform(features), max_results=max_results, max_id=max_id)

    def query_bow(self, bow: BowVector, max_results: int = 1, max_id: int = -1) -> QueryResults:
        """Score every entry sharing a word with ``bow``.

        ``max_id >= 0`` restricts the search to entries with id < max_id;
        ``max_results <= 0`` returns them all.
        """
        self._check_ready()
        scoring = self.voc.scoring
        acc: dict[int, float] = {}
        n_words: dict[int, int] = {}

        for word_id, qv in bow.items():
            for entry_id, dv in self.inverted[word_id]:
                if 0 <= max_id <= entry_id:
                    continue
                if scoring is ScoringType.L1_NORM:
                    value = abs(qv - dv) - abs(qv) - abs(dv)
                elif scoring is ScoringType.L2_NORM or scoring is ScoringType.DOT_PRODUCT:
                    value = qv * dv
                elif scoring is ScoringType.CHI_SQUARE:
                    value = qv * dv / (qv + dv) if qv + dv != 0.0 else 0.0
                elif scoring is ScoringType.KL:
                    if qv <= 0.0 or dv <= 0.0:
                        continue
                    # replaces the missing-word term counted in the base below
                    value = qv * math.log(qv / dv) - qv * (math.log(qv) - LOG_EPS)
                else:
                    value = math.sqrt(qv * dv)
                acc[entry_id] = acc.get(entry_id, 0.0) + value
                n_words[entry_id] = n_words.get(entry_id, 0) + 1

        if scoring is ScoringType.KL:
            base = sum(qv * (math.log(qv) - LOG_EPS) for qv in bow.values() if qv > 0.0)

        results = QueryResults()
        for entry_id, value in acc.items():
            if scoring is ScoringType.L1_NORM:
                score = -value / 2.0
            elif scoring is ScoringType.L2_NORM:
                score = 1.0 if value >= 1.0 else 1.0 - math.sqrt(1.0 - value)
            elif scoring is ScoringType.CHI_SQUARE:
                score = 2.0 * value
            elif scoring is ScoringType.KL:
                score = base + value
            else:
                score = value
            results.append(Result(entry_id, score, n_words[entry_id]))

        if self.voc.scorer.ascending:
            results.sort(key=lambda r: (r.score, r.entry_id))
        else:
            results.sort(key=lambda r: (-r.score, r.entry_id))

        if max_results > 0:
            del results[max_results:]
        return results

    # ----------------------------------------------------------- persistence

    def save(self, filepath: str) -> None:
        """Save the vocabulary and all entries to one file."""
        self._check_ready()
        save_dict(
            filepath,
            {
                "vocabulary": self.voc.to_dict(),
                "database": {
                    "n_entries": self.n_entries,
                    "use_direct_index": self.use_direct_index,
                    "di_levels": self.di_levels,
                    "inverted": [list(row) for row in self.inverted],
                    "direct": [dict(fv) for fv in self.direct],
                },
            },
        )

    @classmethod
    def load(cls, filepath: str) -> "Database":
        data = load_dict(filepath)
        if "vocabulary" not in data or "database" not in data:
            raise ValueError(f"{filepath} does not contain a database")
        info = data["database"]
        db = cls(
            Vocabulary.from_dict(data["vocabulary"]),
            use_direct_index=bool(info["use_direct_index"]),
            di_levels=int(info["di_levels"]),
        )
        db.n_entries = int(info["n_entries"])
        db.inverted = [[(int(e), float(w)) for e, w in row] for row in info["inverted"]]
        db.direct = []
        for fv_data in info["direct"]:
            fv = FeatureVector()
            for node_id, indices in fv_data.items():
                fv[int(node_id)] = list(indices)
            db.direct.append(fv)
        return db

    def __str__(self) -> str:
        text = f"Database: Entries = {self.n_entries}, Using direct index = {'yes' if self.use_direct_index else 'no'}"
        if self.use_direct_index:
            text += f", Direct index levels = {self.di_levels}"
        if self.voc is not None:
            text += f". {self.voc}"
        return text

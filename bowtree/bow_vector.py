from __future__ import annotations

import numpy as np

L1 = "L1"
L2 = "L2"


class BowVector(dict):
    """Sparse bag-of-words vector: word id -> weight."""

    def add_weight(self, word_id: int, value: float) -> None:
        self[word_id] = self.get(word_id, 0.0) + float(value)

    def add_if_not_exist(self, word_id: int, value: float) -> None:
        if word_id not in self:
            self[word_id] = float(value)

    def normalize(self, norm: str) -> None:
        if not self:
            return
        values = np.fromiter(self.values(), dtype=np.float64, count=len(self))
        if norm == L1:
            n = float(np.abs(values).sum())
        elif norm == L2:
            n = float(np.sqrt(np.dot(values, values)))
        else:
            raise ValueError(f"Unknown norm: {norm}")

        if n > 0.0:
            for word_id in self:
                self[word_id] /= n

    def sorted_items(self) -> list[tuple[int, float]]:
        return sorted(self.items())

    def __str__(self) -> str:
        return ", ".join(f"<{wid}, {value:g}>" for wid, value in self.sorted_items())


class FeatureVector(dict):
    """Node id -> indices of the local features that fall under that node."""

    def add_feature(self, node_id: int, feature_index: int) -> None:
        self.setdefault(node_id, []).append(int(feature_index))

    def __str__(self) -> str:
        parts = []
        for node_id in sorted(self):
            parts.append(f"{node_id}: [{', '.join(str(i) for i in self[node_id])}]")
        return "; ".join(parts)

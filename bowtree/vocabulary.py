"""Hierarchical vocabulary of binary words (vocabulary tree).

The tree is built with hierarchical k-majority clustering: k-means where the
distance is the Hamming distance and the cluster center is the bitwise
majority of its members. Leaves of the tree are the visual words.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np
from sklearn.cluster import kmeans_plusplus

from .bow_vector import BowVector, FeatureVector
from .descriptor import as_matrix, hamming_matrix, hamming_matrix_bits, majority_bits, unpack
from .scoring import Scorer, ScoringType, WeightingType, scoring_object
from .storage import load_dict, save_dict


@dataclass
class Node:
    id: int
    parent: int = 0
    children: list[int] = field(default_factory=list)
    descriptor: np.ndarray | None = None
    weight: float = 0.0
    word_id: int = -1

    def is_leaf(self) -> bool:
        return not self.children


class Vocabulary:
    def __init__(
        self,
        k: int = 10,
        L: int = 5,
        weighting: WeightingType = WeightingType.TF_IDF,
        scoring: ScoringType = ScoringType.L1_NORM,
        max_iterations: int = 100,
        random_state: int | None = None,
    ):
        if int(k) < 2:
            raise ValueError(f"Branching factor must be >= 2, got {k}")
        if int(L) < 1:
            raise ValueError(f"Depth levels must be >= 1, got {L}")
        self.k = int(k)
        self.L = int(L)
        self.weighting = weighting
        self.scoring = scoring
        self.max_iterations = max(1, int(max_iterations))
        self.random_state = random_state
        self._scorer = scoring_object(scoring)

        self.nodes: list[Node] = [Node(0)]
        self.words: list[int] = []
        self._centers_cache: dict[int, np.ndarray] = {}

    # ------------------------------------------------------------------ build

    def create(self, training_features: Sequence[Sequence[np.ndarray] | np.ndarray]) -> None:
        """Build the tree from per-image descriptor lists, then set word weights."""
        per_image = [as_matrix(f) for f in training_features]
        non_empty = [d for d in per_image if len(d) > 0]
        if not non_empty:
            raise ValueError("No descriptors provided to create the vocabulary")
        all_desc = np.vstack(non_empty)

        self.nodes = [Node(0)]
        self.words = []
        self._centers_cache = {}
        self._rng = np.random.RandomState(self.random_state)

        self._hkmeans_step(0, all_desc, 1)
        self._create_words()
        self._set_node_weights(per_image)

    def _initial_centers(self, bits: np.ndarray) -> np.ndarray:
        # squared Euclidean distance between bit vectors is their Hamming distance
        _, indices = kmeans_plusplus(bits, n_clusters=self.k, random_state=self._rng)
        return indices

    def _hkmeans_step(self, parent_id: int, descriptors: np.ndarray, level: int) -> None:
        if len(descriptors) == 0:
            return

        if len(descriptors) <= self.k:
            centers = descriptors.copy()
            groups = [np.array([i]) for i in range(len(descriptors))]
        else:
            bits = unpack(descriptors).astype(np.float32)
            indices = self._initial_centers(bits)
            centers = descriptors[indices].copy()
            center_bits = bits[indices].copy()
            last = None
            for _ in range(self.max_iterations):
                assign = hamming_matrix_bits(bits, center_bits).argmin(axis=1)
                if last is not None and np.array_equal(assign, last):
                    break
                for c in range(self.k):
                    members = bits[assign == c]
                    if len(members) > 0:
                        centers[c] = majority_bits(members)
                center_bits = unpack(centers).astype(np.float32)
                last = assign
            del bits
            groups = [np.flatnonzero(last == c) for c in range(self.k)]

        child_ids = []
        for center in centers:
            node = Node(len(self.nodes), parent=parent_id, descriptor=center.copy())
            self.nodes.append(node)
            self.nodes[parent_id].children.append(node.id)
            child_ids.append(node.id)

        if level < self.L:
            for child_id, group in zip(child_ids, groups):
                if len(group) > 1:
                    self._hkmeans_step(child_id, descriptors[group], level + 1)

    def _create_words(self) -> None:
        self.words = []
        for node in self.nodes[1:]:
            if node.is_leaf():
                node.word_id = len(self.words)
                self.words.append(node.id)

    def _set_node_weights(self, per_image: list[np.ndarray]) -> None:
        n_words = len(self.words)
        if self.weighting in (WeightingType.TF, WeightingType.BINARY):
            for nid in self.words:
                self.nodes[nid].weight = 1.0
            return

        # IDF and TF-IDF: idf = log(N / Ni)
        n_images = len(per_image)
        ni = np.zeros(n_words, dtype=np.int64)
        for desc in per_image:
            if len(desc) == 0:
                continue
            word_ids, _ = self._quantize(desc)
            ni[np.unique(word_ids)] += 1

        for wid, nid in enumerate(self.words):
            if ni[wid] > 0:
                self.nodes[nid].weight = math.log(n_images / ni[wid])

    # ----------------------------------------------------------------- lookup

    def _child_centers(self, node_id: int) -> np.ndarray:
        centers = self._centers_cache.get(node_id)
        if centers is None:
            centers = np.vstack([self.nodes[c].descriptor for c in self.nodes[node_id].children])
            self._centers_cache[node_id] = centers
        return centers

    def _quantize(self, descriptors: np.ndarray, node_level: int | None = None) -> tuple[np.ndarray, np.ndarray]:
        """Descend the tree for every descriptor.

        Returns the word id of each descriptor and the id of its ancestor node
        at depth ``node_level`` (the word node itself when the word is shallower,
        the root when ``node_level <= 0``).
        """
        n = len(descriptors)
        current = np.zeros(n, dtype=np.int64)
        node_at = np.zeros(n, dtype=np.int64)
        depth = 0
        while True:
            active = np.fromiter((not self.nodes[c].is_leaf() for c in current), dtype=bool, count=n)
            if not active.any():
                break
            depth += 1
            for nid in np.unique(current[active]):
                idx = np.flatnonzero(current == nid)
                best = hamming_matrix(descriptors[idx], self._child_centers(nid)).argmin(axis=1)
                current[idx] = np.asarray(self.nodes[nid].children)[best]
            if node_level is not None and depth <= node_level:
                node_at[active] = current[active]

        word_ids = np.fromiter((self.nodes[c].word_id for c in current), dtype=np.int64, count=n)
        return word_ids, node_at

    # -------------------------------------------------------------- transform

    def _check_ready(self) -> None:
        if self.empty():
            raise RuntimeError("Vocabulary is empty: create or load it first")

    def transform(self, features: Sequence[np.ndarray] | np.ndarray) -> BowVector:
        bow, _ = self._transform(features, None)
        return bow

    def transform_with_features(
        self, features: Sequence[np.ndarray] | np.ndarray, levels_up: int
    ) -> tuple[BowVector, FeatureVector]:
        """BoW vector plus the features grouped by their node ``levels_up`` above the words."""
        return self._transform(features, levels_up)

    def _transform(self, features, levels_up: int | None) -> tuple[BowVector, FeatureVector]:
        self._check_ready()
        bow = BowVector()
        fv = FeatureVector()
        descriptors = as_matrix(features)
        if len(descriptors) == 0:
            return bow, fv

        node_level = None if levels_up is None else self.L - int(levels_up)
        word_ids, node_ids = self._quantize(descriptors, node_level)
        must = self._scorer.must_normalize

        if self.weighting in (WeightingType.TF, WeightingType.TF_IDF):
            for i, wid in enumerate(word_ids):
                w = self.nodes[self.words[wid]].weight
                if w > 0:
                    bow.add_weight(int(wid), w)
                    if levels_up is not None:
                        fv.add_feature(int(node_ids[i]), i)
            if bow and not must:
                # no normalisation follows, so scale by the number of distinct words
                nd = float(len(bow))
                for wid in bow:
                    bow[wid] /= nd
        else:
            for i, wid in enumerate(word_ids):
                w = self.nodes[self.words[wid]].weight
                if w > 0:
                    bow.add_if_not_exist(int(wid), w)
                    if levels_up is not None:
                        fv.add_feature(int(node_ids[i]), i)

        if must:
            bow.normalize(self._scorer.norm)
        return bow, fv

    def transform_feature(self, feature: np.ndarray, levels_up: int = 0) -> tuple[int, float, int]:
        """Word id, word weight and ancestor node id of a single descriptor."""
        self._check_ready()
        word_ids, node_ids = self._quantize(as_matrix(feature), self.L - int(levels_up))
        wid = int(word_ids[0])
        return wid, self.word_weight(wid), int(node_ids[0])

    def score(self, a: BowVector, b: BowVector) -> float:
        return self._scorer.score(a, b)

    @property
    def scorer(self) -> Scorer:
        return self._scorer

    # ------------------------------------------------------------- accessors

    @property
    def branching_factor(self) -> int:
        return self.k

    @property
    def depth_levels(self) -> int:
        return self.L

    def size(self) -> int:
        return len(self.words)

    def empty(self) -> bool:
        return not self.words

    def effective_levels(self) -> int:
        levels = 0
        for nid in self.words:
            depth = 0
            while nid != 0:
                nid = self.nodes[nid].parent
                depth += 1
            levels = max(levels, depth)
        return levels

    def word(self, word_id: int) -> np.ndarray:
        return self.nodes[self.words[word_id]].descriptor

    def word_weight(self, word_id: int) -> float:
        return self.nodes[self.words[word_id]].weight

    def parent_node(self, word_id: int, levels_up: int) -> int:
        nid = self.words[word_id]
        while levels_up > 0 and nid != 0:
            nid = self.nodes[nid].parent
            levels_up -= 1
        return nid

    def words_from_node(self, node_id: int) -> list[int]:
        node = self.nodes[node_id]
        if node.is_leaf():
            return [node.word_id] if node.word_id >= 0 else []
        word_ids = []
        stack = list(reversed(node.children))
        while stack:
            child = self.nodes[stack.pop()]
            if child.is_leaf():
                word_ids.append(child.word_id)
            else:
                stack.extend(reversed(child.children))
        return word_ids

    def set_weighting_type(self, weighting: WeightingType) -> None:
        self.weighting = weighting

    def set_scoring_type(self, scoring: ScoringType) -> None:
        self.scoring = scoring
        self._scorer = scoring_object(scoring)

    def stop_words(self, min_weight: float) -> int:
        """Zero the weight of every word lighter than min_weight. Returns how many."""
        count = 0
        for nid in self.words:
            if self.nodes[nid].weight < min_weight:
                self.nodes[nid].weight = 0.0
                count += 1
        return count

    # ----------------------------------------------------------- persistence

    def to_dict(self) -> dict:
        n = len(self.nodes)
        desc_size = 0
        for node in self.nodes[1:]:
            desc_size = len(node.descriptor)
            break
        descriptors = np.zeros((n, desc_size), dtype=np.uint8)
        for node in self.nodes[1:]:
            descriptors[node.id] = node.descriptor
        return {
            "k": self.k,
            "L": self.L,
            "weighting": self.weighting.value,
            "scoring": self.scoring.cli_name,
            "parents": np.array([node.parent for node in self.nodes], dtype=np.int64),
            "weights": np.array([node.weight for node in self.nodes], dtype=np.float64),
            "descriptors": descriptors,
            "words": np.array(self.words, dtype=np.int64),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Vocabulary":
        voc = cls(
            k=int(data["k"]),
            L=int(data["L"]),
            weighting=WeightingType.from_name(data["weighting"]),
            scoring=ScoringType.from_name(data["scoring"]),
        )
        parents = data["parents"]
        weights = data["weights"]
        descriptors = data["descriptors"]
        voc.nodes = [Node(0)]
        for nid in range(1, len(parents)):
            node = Node(nid, parent=int(parents[nid]), descriptor=descriptors[nid].copy(), weight=float(weights[nid]))
            voc.nodes.append(node)
            voc.nodes[node.parent].children.append(nid)
        voc.words = [int(nid) for nid in data["words"]]
        for wid, nid in enumerate(voc.words):
            voc.nodes[nid].word_id = wid
        return voc

    def save(self, filepath: str) -> None:
        save_dict(filepath, {"vocabulary": self.to_dict()})

    @classmethod
    def load(cls, filepath: str) -> "Vocabulary":
        data = load_dict(filepath)
        if "vocabulary" not in data:
            raise ValueError(f"{filepath} does not contain a vocabulary")
        return cls.from_dict(data["vocabulary"])

    def __str__(self) -> str:
        return (
            f"Vocabulary: k = {self.k}, L = {self.L}, "
            f"Weighting = {self.weighting.value}, "
            f"Scoring = {self.scoring.display_name}, "
            f"Number of words = {self.size()}"
        )

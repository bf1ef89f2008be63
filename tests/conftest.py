import cv2
import matplotlib
import numpy as np
import pytest

matplotlib.use("Agg")


def make_clustered_descriptors(n_clusters=4, per_cluster=30, flips=10, seed=0):
    """Descriptors scattered around random 64-byte centers; returns (rows, labels)."""
    rng = np.random.RandomState(seed)
    bases = rng.randint(0, 256, size=(n_clusters, 64)).astype(np.uint8)
    rows = []
    labels = []
    for c in range(n_clusters):
        base_bits = np.unpackbits(bases[c])
        for _ in range(per_cluster):
            bits = base_bits.copy()
            idx = rng.choice(bits.size, flips, replace=False)
            bits[idx] ^= 1
            rows.append(np.packbits(bits))
            labels.append(c)
    return np.vstack(rows), np.array(labels)


def make_synthetic_image(seed=0, width=320, height=240, n_shapes=40):
    rng = np.random.RandomState(seed)
    img = np.full((height, width), 30, dtype=np.uint8)
    for _ in range(n_shapes):
        x0 = int(rng.randint(30, width - 60))
        y0 = int(rng.randint(30, height - 60))
        w = int(rng.randint(8, 30))
        h = int(rng.randint(8, 30))
        value = int(rng.randint(90, 256))
        if rng.rand() < 0.5:
            cv2.rectangle(img, (x0, y0), (x0 + w, y0 + h), value, -1)
        else:
            cv2.circle(img, (x0 + w // 2, y0 + h // 2), max(4, w // 2), value, -1)
    return img


@pytest.fixture
def image_features():
    """Four images, each holding the descriptors of one cluster."""
    rows, labels = make_clustered_descriptors()
    return [rows[labels == c] for c in range(4)]


@pytest.fixture
def image_dir(tmp_path):
    folder = tmp_path / "images"
    folder.mkdir()
    for i in range(6):
        cv2.imwrite(str(folder / f"frame_{i:03d}.png"), make_synthetic_image(seed=i))
    return folder

from __future__ import annotations

import math
import os

import cv2
import matplotlib.pyplot as plt
import numpy as np
from PIL import Image, ImageDraw


def draw_keypoints(
    image: Image.Image,
    keypoints: list,
    color: tuple[int, int, int] = (0, 255, 0),
    line_width: int = 1,
) -> Image.Image:
    """Draw keypoints as circles of their size, with a tick showing the orientation."""

    img = image.convert("RGB")
    draw = ImageDraw.Draw(img)

    for kp in keypoints:
        x, y = float(kp.pt[0]), float(kp.pt[1])
        r = max(1.0, float(kp.size) / 2.0)
        draw.ellipse([x - r, y - r, x + r, y + r], outline=color, width=line_width)

        if kp.angle >= 0:
            a = math.radians(kp.angle)
            draw.line([(x, y), (x + r * math.cos(a), y + r * math.sin(a))], fill=color, width=line_width)

    return img


def save_keypoints_image(image_path: str, keypoints: list, out_dir: str) -> str:
    img = cv2.imread(str(image_path), cv2.IMREAD_COLOR)
    if img is None:
        raise FileNotFoundError(f"Could not load image: {image_path}")
    img_pil = Image.fromarray(cv2.cvtColor(img, cv2.COLOR_BGR2RGB))
    img_pil = draw_keypoints(img_pil, keypoints)

    os.makedirs(out_dir, exist_ok=True)
    stem = os.path.splitext(os.path.basename(image_path))[0]
    out_path = os.path.join(out_dir, f"{stem}_keypoints.png")
    img_pil.save(out_path)
    return out_path


def _rgb_or_blank(path: str) -> np.ndarray:
    img = cv2.imread(path, cv2.IMREAD_COLOR)
    if img is None:
        return np.zeros((10, 10, 3), dtype=np.uint8)
    return cv2.cvtColor(img, cv2.COLOR_BGR2RGB)


def show_query_results(query_image_path: str, results: list, image_paths: list[str], max_display: int = 5):
    """Plot the query image next to its best database entries.

    ``results`` are database query results; their entry ids index
    ``image_paths``. Each panel is titled with rank, entry id, score and the
    number of shared words. Returns the figure.
    """
    shown = [r for r in results if 0 <= r.entry_id < len(image_paths)][:max_display]

    fig, axes = plt.subplots(1, 1 + len(shown), figsize=(4 * (1 + len(shown)), 4), squeeze=False)
    axes = axes[0]

    axes[0].imshow(_rgb_or_blank(query_image_path))
    axes[0].set_title(f"Query\n{os.path.basename(query_image_path)}")
    axes[0].axis("off")

    for rank, (ax, r) in enumerate(zip(axes[1:], shown), start=1):
        path = image_paths[r.entry_id]
        ax.imshow(_rgb_or_blank(path))
        ax.set_title(f"#{rank} entry {r.entry_id}\n{os.path.basename(path)}\nscore {r.score:.3f}, {r.n_words} words")
        ax.axis("off")

    fig.tight_layout()
    plt.show()
    return fig

"""BRISK keypoint detection and binary descriptor extraction (OpenCV)."""

from __future__ import annotations

import glob
import os
from dataclasses import dataclass

import cv2
import numpy as np

BRISK_DESCRIPTOR_BYTES = 64
# keypoint size used for every keypoint when scale invariance is off
FIXED_KEYPOINT_SIZE = 12.0

IMAGE_EXTS = ("*.jpg", "*.jpeg", "*.png", "*.bmp", "*.pgm", "*.ppm", "*.tif", "*.tiff")


@dataclass
class BriskParams:
    threshold: float = 20.0
    octaves: int = 2
    pattern_scale: float = 1.0
    max_keypoints: int = 400
    rotation_invariant: bool = True
    scale_invariant: bool = True


def list_images(pattern: str) -> list[str]:
    """Sorted image paths for a glob pattern, or for every image in a directory."""
    if os.path.isdir(pattern):
        paths: list[str] = []
        for ext in IMAGE_EXTS:
            paths.extend(glob.glob(os.path.join(pattern, ext)))
        return sorted(set(paths))
    return sorted(glob.glob(pattern))


def split_rows(descriptors: np.ndarray | None) -> list[np.ndarray]:
    """One 1xB row per descriptor of an NxB matrix."""
    if descriptors is None:
        return []
    return [descriptors[i : i + 1] for i in range(descriptors.shape[0])]


class BriskExtractor:
    def __init__(self, params: BriskParams | None = None):
        self.params = params if params is not None else BriskParams()
        self.brisk = cv2.BRISK_create(
            thresh=int(round(self.params.threshold)),
            octaves=int(self.params.octaves),
            patternScale=float(self.params.pattern_scale),
        )

    def detect(self, gray: np.ndarray) -> list:
        keypoints = list(self.brisk.detect(gray, None))
        limit = int(self.params.max_keypoints)
        if limit > 0 and len(keypoints) > limit:
            keypoints.sort(key=lambda kp: kp.response, reverse=True)
            keypoints = keypoints[:limit]
        return keypoints

    def compute(self, gray: np.ndarray, keypoints: list) -> tuple[list, np.ndarray]:
        if not keypoints:
            return [], np.empty((0, BRISK_DESCRIPTOR_BYTES), dtype=np.uint8)

        if not self.params.rotation_invariant or not self.params.scale_invariant:
            adjusted = []
            for kp in keypoints:
                angle = 0.0 if not self.params.rotation_invariant else kp.angle
                size = FIXED_KEYPOINT_SIZE if not self.params.scale_invariant else kp.size
                adjusted.append(cv2.KeyPoint(kp.pt[0], kp.pt[1], size, angle, kp.response, kp.octave, kp.class_id))
            keypoints = adjusted

        keypoints, descriptors = self.brisk.compute(gray, keypoints)
        if descriptors is None:
            return list(keypoints), np.empty((0, BRISK_DESCRIPTOR_BYTES), dtype=np.uint8)
        return list(keypoints), descriptors

    def extract_from_gray(self, gray: np.ndarray) -> tuple[list, np.ndarray]:
        if gray.ndim == 3:
            gray = cv2.cvtColor(gray, cv2.COLOR_BGR2GRAY)
        return self.compute(gray, self.detect(gray))

    def extract(self, image_path: str) -> tuple[list, np.ndarray]:
        img = cv2.imread(str(image_path), cv2.IMREAD_GRAYSCALE)
        if img is None:
            raise FileNotFoundError(f"Could not load image: {image_path}")
        return self.extract_from_gray(img)

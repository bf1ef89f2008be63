#!/usr/bin/env python3
"""
BRISK bag-of-binary-words vocabulary demo
- Extracts BRISK features from every n-th image of a directory
- Builds a k^L vocabulary tree over them and saves it
- Optionally builds an image database, queries it with every image,
  saves it and loads it back
"""

from __future__ import annotations

import argparse
import os
from pathlib import Path

import numpy as np

from bowtree.brisk import BriskExtractor, BriskParams, list_images, split_rows
from bowtree.config_io import load_config_json, parse_brisk_params_dict, parse_vocabulary_dict
from bowtree.database import Database
from bowtree.drawing import save_keypoints_image, show_query_results
from bowtree.scoring import ScoringType, WeightingType
from bowtree.vocabulary import Vocabulary

IMAGE_GLOB = "/externd/datasets/Bovisa_2008_09_01-FRONTAL/*.png"
IMAGE_STEP = 6

# branching factor and depth levels
K = 10
LEVELS = 6

VOC_OUTPUT = "large_voc.pkl.gz"
DB_OUTPUT = "small_db.pkl.gz"


def wait() -> None:
    print("\nPress enter to continue")
    input()


def load_features(
    image_glob: str,
    step: int,
    extractor: BriskExtractor,
    keypoints_dir: str | None = None,
) -> tuple[list[list[np.ndarray]], list[str]]:
    """BRISK descriptors of every ``step``-th image, one list of rows per image."""
    filenames = list_images(image_glob)
    if not filenames:
        raise FileNotFoundError(f"No images found for {image_glob}")
    if step < 1:
        raise ValueError(f"Image step must be >= 1, got {step}")

    features: list[list[np.ndarray]] = []
    used: list[str] = []

    print("Extracting BRISK features...")
    for i in range(0, len(filenames), step):
        print(f"im: {i}")
        keypoints, descriptors = extractor.extract(filenames[i])
        if len(descriptors) == 0:
            print(f"WARNING: no features in {os.path.basename(filenames[i])}")

        features.append(split_rows(descriptors))
        used.append(filenames[i])

        if keypoints_dir:
            save_keypoints_image(filenames[i], keypoints, keypoints_dir)

    return features, used


def match_images(voc: Vocabulary, features: list[list[np.ndarray]], labels: list[int]) -> None:
    print("Matching images against themselves (0 low, 1 high): ")
    vectors = [voc.transform(f) for f in features]
    for i, v1 in zip(labels, vectors):
        for j, v2 in zip(labels, vectors):
            print(f"Image {i} vs Image {j}: {voc.score(v1, v2):g}")


def test_voc_creation(
    features: list[list[np.ndarray]],
    k: int = K,
    L: int = LEVELS,
    weighting: WeightingType = WeightingType.TF_IDF,
    scoring: ScoringType = ScoringType.L1_NORM,
    output: str = VOC_OUTPUT,
    labels: list[int] | None = None,
    random_state: int | None = None,
) -> Vocabulary:
    voc = Vocabulary(k, L, weighting, scoring, random_state=random_state)

    print(f"Creating a large {k}^{L} vocabulary...")
    voc.create(features)
    print("... done!")

    print(f"Vocabulary information: \n{voc}\n")

    if labels is not None:
        match_images(voc, features, labels)

    # save the vocabulary to disk
    print("\nSaving vocabulary...")
    voc.save(output)
    print("Done")
    return voc


def test_database(
    features: list[list[np.ndarray]],
    vocabulary_path: str,
    top_k: int = 4,
    output: str = DB_OUTPUT,
    use_direct_index: bool = False,
    di_levels: int = 0,
    image_paths: list[str] | None = None,
    show: bool = False,
) -> Database:
    print("Creating a small database...")

    # load the vocabulary from disk
    voc = Vocabulary.load(vocabulary_path)

    # the database keeps its own copy of the vocabulary
    db = Database(voc, use_direct_index, di_levels)

    for f in features:
        db.add(f)

    print("... done!")
    print(f"Database information: \n{db}")

    print("Querying the database: ")
    for i, f in enumerate(features):
        ret = db.query(f, top_k)
        # ret[0] is the image itself, ret[1] the best other match
        print(f"Searching for Image {i}. {ret}")

        if show and i == 0 and image_paths:
            show_query_results(image_paths[0], ret, image_paths, max_display=top_k)

    print()

    # the saved file holds the vocabulary and the entries
    print("Saving database...")
    db.save(output)
    print("... done!")

    print("Retrieving database once again...")
    db2 = Database.load(output)
    print(f"... done! This is: \n{db2}")
    return db2


def parse_args(argv: list[str] | None = None):
    p = argparse.ArgumentParser(description="Build a BRISK vocabulary tree and an image database.")

    p.add_argument("--images", default=IMAGE_GLOB, help="Image glob pattern or directory")
    p.add_argument("--step", type=int, default=IMAGE_STEP, help="Use every n-th image")
    p.add_argument("--config", type=Path, help="JSON with 'brisk' and 'vocabulary' sections (optional)")

    # BRISK parameters (override JSON)
    p.add_argument("--threshold", type=float, help="BRISK detection threshold (default: 20)")
    p.add_argument("--octaves", type=int, help="BRISK detection octaves (default: 2)")
    p.add_argument("--max-keypoints", type=int, help="Keep the strongest n keypoints, 0 = all (default: 400)")
    p.add_argument("--no-rotation-invariance", action="store_true")
    p.add_argument("--no-scale-invariance", action="store_true")
    p.add_argument("--save-keypoints", metavar="DIR", help="Write images with the detected keypoints drawn")

    # Vocabulary parameters (override JSON)
    p.add_argument("-k", type=int, help=f"Branching factor (default: {K})")
    p.add_argument("-L", type=int, help=f"Depth levels (default: {LEVELS})")
    p.add_argument("--weighting", help="tf-idf, tf, idf or binary (default: tf-idf)")
    p.add_argument("--scoring", help="l1, l2, chi-square, kl, bhattacharyya or dot-product (default: l1)")
    p.add_argument("--seed", type=int, default=None, help="Random seed for clustering")
    p.add_argument("--output", default=VOC_OUTPUT, help="Vocabulary output file")
    p.add_argument("--match", action="store_true", help="Score every image against every other one")

    # Database
    p.add_argument("--database", action="store_true", help="Also build, query and save a database")
    p.add_argument("--db-vocabulary", help="Vocabulary file for the database (default: --output)")
    p.add_argument("--db-output", default=DB_OUTPUT, help="Database output file")
    p.add_argument("--top-k", type=int, default=4)
    p.add_argument("--direct-index", action="store_true", help="Keep a direct index in the database")
    p.add_argument("--di-levels", type=int, default=0, help="Direct index levels up from the words")
    p.add_argument("--skip-vocabulary", action="store_true", help="Do not build a vocabulary (needs --db-vocabulary)")
    p.add_argument("--wait", action="store_true", help="Wait for enter between stages")
    p.add_argument("--show", action="store_true", help="Show the retrieval results of the first image")

    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    json_data = load_config_json(args.config) if args.config else {}
    params = parse_brisk_params_dict(json_data)
    voc_params = parse_vocabulary_dict(json_data) or {}

    if args.threshold is not None:
        params.threshold = args.threshold
    if args.octaves is not None:
        params.octaves = args.octaves
    if args.max_keypoints is not None:
        params.max_keypoints = args.max_keypoints
    if args.no_rotation_invariance:
        params.rotation_invariant = False
    if args.no_scale_invariance:
        params.scale_invariant = False

    k = args.k if args.k is not None else voc_params.get("k", K)
    L = args.L if args.L is not None else voc_params.get("L", LEVELS)
    weighting = WeightingType.from_name(args.weighting) if args.weighting else voc_params.get("weighting", WeightingType.TF_IDF)
    scoring = ScoringType.from_name(args.scoring) if args.scoring else voc_params.get("scoring", ScoringType.L1_NORM)

    if args.skip_vocabulary and not args.db_vocabulary:
        raise ValueError("--skip-vocabulary needs --db-vocabulary")

    extractor = BriskExtractor(params)
    features, paths = load_features(args.images, args.step, extractor, args.save_keypoints)
    labels = [i * args.step for i in range(len(features))]

    if not args.skip_vocabulary:
        test_voc_creation(
            features,
            k=k,
            L=L,
            weighting=weighting,
            scoring=scoring,
            output=args.output,
            labels=labels if args.match else None,
            random_state=args.seed,
        )

    if args.database:
        if args.wait:
            wait()
        test_database(
            features,
            args.db_vocabulary or args.output,
            top_k=args.top_k,
            output=args.db_output,
            use_direct_index=args.direct_index,
            di_levels=args.di_levels,
            image_paths=paths,
            show=args.show,
        )


if __name__ == "__main__":
    main()

"""
Stroke Matching & Verification Engine
- Geometry helpers for 2D point curves
- Decides whether a captured stroke matches a reference median
- Guards against stroke-order confusion with later strokes
"""

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

import config

logger = logging.getLogger(__name__)

# Small tilt compensation for shape fit (radians)
SHAPE_FIT_ROTATIONS = (
    math.pi / 16,
    math.pi / 32,
    0.0,
    -math.pi / 32,
    -math.pi / 16,
)


# ===============================
# Geometry & Normalization Utils
# ===============================

def as_curve(points) -> np.ndarray:
    """Convert a point sequence to an (n, 2) float64 array."""
    arr = np.asarray(points, dtype=np.float64)
    if arr.size == 0:
        return arr.reshape(0, 2)
    return arr.reshape(-1, 2)


def subtract(p1, p2) -> np.ndarray:
    return np.asarray(p1, dtype=np.float64) - np.asarray(p2, dtype=np.float64)


def magnitude(v) -> float:
    v = np.asarray(v, dtype=np.float64)
    return float(np.sqrt(v[0] * v[0] + v[1] * v[1]))


def distance(p1, p2) -> float:
    """Euclidean distance between two points."""
    return magnitude(subtract(p1, p2))


def path_length(points) -> float:
    """Total length of a polyline."""
    pts = as_curve(points)
    if len(pts) < 2:
        return 0.0
    return float(np.linalg.norm(np.diff(pts, axis=0), axis=1).sum())


def edge_vectors(points) -> np.ndarray:
    """Vectors between consecutive points."""
    return np.diff(as_curve(points), axis=0)


def cosine_similarity(v1, v2) -> float:
    """
    Cosine of the angle between two vectors.
    A zero-length vector has no direction, so it scores 0.0.
    """
    m1 = magnitude(v1)
    m2 = magnitude(v2)
    if m1 == 0.0 or m2 == 0.0:
        return 0.0
    return float(np.dot(v1, v2) / (m1 * m2))


def normalize_curve(points) -> np.ndarray:
    """Center the bounding box on the origin and scale it into a unit box."""
    pts = as_curve(points)
    if len(pts) < 2:
        return pts

    minxy = pts.min(axis=0)
    maxxy = pts.max(axis=0)
    size = float(np.max(maxxy - minxy))
    if size == 0.0:
        size = 1.0
    center = (minxy + maxxy) / 2.0
    return (pts - center) / size


def rotate(points, angle: float) -> np.ndarray:
    """Rotate points about the origin."""
    pts = as_curve(points)
    c = math.cos(angle)
    s = math.sin(angle)
    x = pts[:, 0]
    y = pts[:, 1]
    return np.column_stack((x * c - y * s, x * s + y * c))


def frechet_dist(curve1, curve2) -> float:
    """
    Discrete Frechet distance between two point sequences.

    Works on the sample points only (no segment interpolation), so the
    result depends on sampling density. Keeps one DP column at a time.
    """
    a = as_curve(curve1)
    b = as_curve(curve2)
    if len(a) == 0 or len(b) == 0:
        return math.inf

    long_c, short_c = (a, b) if len(a) >= len(b) else (b, a)
    n_short = len(short_c)

    prev_col: List[float] = []
    for i in range(len(long_c)):
        dists = np.linalg.norm(short_c - long_c[i], axis=1)
        cur_col: List[float] = []
        for j in range(n_short):
            d = float(dists[j])
            if i == 0 and j == 0:
                val = d
            elif j == 0:
                val = max(prev_col[0], d)
            elif i == 0:
                val = max(cur_col[j - 1], d)
            else:
                val = max(min(prev_col[j], prev_col[j - 1], cur_col[j - 1]), d)
            cur_col.append(val)
        prev_col = cur_col
    return prev_col[n_short - 1]


# ===============================
# Match Configuration & Results
# ===============================

@dataclass(frozen=True)
class MatchResult:
    is_match: bool
    avg_distance: float


@dataclass(frozen=True)
class MatchConfig:
    """Tunable thresholds for a match attempt. Leniency scales them all."""
    cosine_similarity_threshold: float = config.COSINE_SIMILARITY_THRESHOLD
    start_end_dist_threshold: float = config.START_END_DIST_THRESHOLD
    frechet_threshold: float = config.FRECHET_THRESHOLD
    min_length_ratio: float = config.MIN_LENGTH_RATIO
    max_length_ratio: float = config.MAX_LENGTH_RATIO
    average_distance_threshold: float = config.AVERAGE_DISTANCE_THRESHOLD
    leniency: float = config.DEFAULT_LENIENCY

    def __post_init__(self):
        if not self.leniency > 0:
            raise ValueError(f"leniency must be positive, got {self.leniency}")
        if self.min_length_ratio > self.max_length_ratio:
            raise ValueError(
                f"min_length_ratio {self.min_length_ratio} exceeds "
                f"max_length_ratio {self.max_length_ratio}"
            )

    @classmethod
    def from_difficulty(cls, name: str, **overrides) -> "MatchConfig":
        """Build a config from a DIFFICULTY_LEVELS preset."""
        level = config.DIFFICULTY_LEVELS.get(name)
        if level is None:
            raise ValueError(
                f"Unknown difficulty '{name}' "
                f"(expected one of {', '.join(config.DIFFICULTY_LEVELS)})"
            )
        params = {
            "leniency": level["leniency"],
            "frechet_threshold": level["frechet_threshold"],
        }
        params.update(overrides)
        return cls(**params)


# ===============================
# Stroke Matching
# ===============================

def strip_duplicates(points) -> np.ndarray:
    """Drop points that exactly repeat the previous one."""
    pts = as_curve(points)
    if len(pts) < 2:
        return pts
    keep = np.ones(len(pts), dtype=bool)
    keep[1:] = np.any(pts[1:] != pts[:-1], axis=1)
    return pts[keep]


def start_and_end_matches(
    user_pts,
    stroke_pts,
    leniency: float,
    start_end_threshold: float = config.START_END_DIST_THRESHOLD,
) -> bool:
    """Both endpoints must land near the reference endpoints."""
    user_pts = as_curve(user_pts)
    stroke_pts = as_curve(stroke_pts)
    start_dist = distance(stroke_pts[0], user_pts[0])
    end_dist = distance(stroke_pts[-1], user_pts[-1])
    threshold = start_end_threshold * leniency
    passes = start_dist <= threshold and end_dist <= threshold
    logger.debug(
        "start/end: start=%.1f end=%.1f threshold=%.1f -> %s",
        start_dist, end_dist, threshold, passes,
    )
    return passes


def direction_matches(
    user_pts,
    stroke_pts,
    cosine_threshold: float = config.COSINE_SIMILARITY_THRESHOLD,
) -> bool:
    """
    Each captured edge is compared with its best-aligned reference edge.
    The average of those best similarities must exceed the threshold.
    """
    user_vecs = edge_vectors(user_pts)
    stroke_vecs = edge_vectors(stroke_pts)
    if len(user_vecs) == 0 or len(stroke_vecs) == 0:
        return False

    # Same rule as cosine_similarity(), over every edge pair at once
    dots = user_vecs @ stroke_vecs.T
    norms = np.outer(
        np.linalg.norm(user_vecs, axis=1),
        np.linalg.norm(stroke_vecs, axis=1),
    )
    sims = np.divide(dots, norms, out=np.zeros_like(dots), where=norms > 0)

    avg_similarity = float(sims.max(axis=1).mean())
    passes = avg_similarity > cosine_threshold
    logger.debug(
        "direction: avg similarity=%.3f threshold=%.3f -> %s",
        avg_similarity, cosine_threshold, passes,
    )
    return passes


def shape_fit(
    user_pts,
    stroke_pts,
    leniency: float,
    frechet_threshold: float = config.FRECHET_THRESHOLD,
) -> bool:
    """Frechet distance of the normalized curves, best over a small tilt sweep."""
    norm_user = normalize_curve(user_pts)
    norm_stroke = normalize_curve(stroke_pts)

    min_dist = math.inf
    for angle in SHAPE_FIT_ROTATIONS:
        d = frechet_dist(norm_user, rotate(norm_stroke, angle))
        if d < min_dist:
            min_dist = d

    threshold = frechet_threshold * leniency
    passes = min_dist <= threshold
    logger.debug(
        "shape: frechet=%.3f threshold=%.3f -> %s", min_dist, threshold, passes
    )
    return passes


def length_matches(
    user_pts,
    stroke_pts,
    leniency: float,
    min_length_ratio: float = config.MIN_LENGTH_RATIO,
    max_length_ratio: float = config.MAX_LENGTH_RATIO,
) -> bool:
    """Path length ratio must fall inside [min_length_ratio, max_length_ratio]."""
    pad = config.LENGTH_RATIO_PADDING
    user_len = path_length(user_pts)
    stroke_len = path_length(stroke_pts)
    ratio = leniency * (user_len + pad) / (stroke_len + pad)
    passes = min_length_ratio <= ratio <= max_length_ratio
    logger.debug(
        "length: user=%.1f stroke=%.1f ratio=%.3f -> %s",
        user_len, stroke_len, ratio, passes,
    )
    return passes


def average_distance(user_pts, stroke_pts) -> float:
    """Mean distance from each captured point to its nearest reference point."""
    user_pts = as_curve(user_pts)
    stroke_pts = as_curve(stroke_pts)
    if len(user_pts) == 0 or len(stroke_pts) == 0:
        return math.inf
    diffs = user_pts[:, None, :] - stroke_pts[None, :, :]
    nearest = np.linalg.norm(diffs, axis=2).min(axis=1)
    return float(nearest.mean())


def test_match(
    user_pts,
    stroke_pts,
    leniency: float,
    average_distance_threshold: float,
    match_config: Optional[MatchConfig] = None,
) -> MatchResult:
    """
    Coarse average-distance check first; only if it passes are the four
    predicates evaluated. avg_distance is always reported.
    """
    cfg = match_config or MatchConfig()
    avg_dist = average_distance(user_pts, stroke_pts)

    if avg_dist > average_distance_threshold * leniency:
        logger.debug(
            "rejected by average distance %.1f > %.1f",
            avg_dist, average_distance_threshold * leniency,
        )
        return MatchResult(is_match=False, avg_distance=avg_dist)

    start_end_ok = start_and_end_matches(
        user_pts, stroke_pts, leniency, cfg.start_end_dist_threshold
    )
    direction_ok = direction_matches(
        user_pts, stroke_pts, cfg.cosine_similarity_threshold
    )
    shape_ok = shape_fit(user_pts, stroke_pts, leniency, cfg.frechet_threshold)
    length_ok = length_matches(
        user_pts, stroke_pts, leniency, cfg.min_length_ratio, cfg.max_length_ratio
    )

    is_match = start_end_ok and direction_ok and shape_ok and length_ok
    return MatchResult(is_match=is_match, avg_distance=avg_dist)


# ===============================
# Stroke Order Disambiguation
# ===============================

def find_better_later_match(
    user_pts,
    current_avg_distance: float,
    later_strokes: Sequence,
    leniency: float,
    average_distance_threshold: float,
    match_config: Optional[MatchConfig] = None,
) -> Optional[float]:
    """
    Return the smallest avg distance among later strokes that also match and
    beat the current target, or None if no later stroke fits better.
    """
    closest = current_avg_distance
    found_idx = None
    for i, stroke_pts in enumerate(later_strokes):
        result = test_match(
            user_pts, stroke_pts, leniency, average_distance_threshold, match_config
        )
        if result.is_match and result.avg_distance < closest:
            closest = result.avg_distance
            found_idx = i

    if found_idx is None:
        return None
    logger.debug(
        "later stroke +%d fits better (%.1f < %.1f)",
        found_idx + 1, closest, current_avg_distance,
    )
    return closest


def retest_with_reduced_leniency(
    user_pts,
    stroke_pts,
    leniency: float,
    current_avg_distance: float,
    better_avg_distance: float,
    average_distance_threshold: float,
    match_config: Optional[MatchConfig] = None,
) -> MatchResult:
    """Re-run the target test with leniency shrunk by how much better the rival fits."""
    adjustment = (
        config.AMBIGUITY_LENIENCY_FACTOR
        * (better_avg_distance + current_avg_distance)
        / (2.0 * current_avg_distance)
    )
    logger.debug("retesting target with leniency x%.3f", adjustment)
    return test_match(
        user_pts,
        stroke_pts,
        leniency * adjustment,
        average_distance_threshold,
        match_config,
    )


def match_stroke(
    user_pts,
    stroke_pts,
    leniency: Optional[float] = None,
    average_distance_threshold: Optional[float] = None,
    all_strokes: Optional[Sequence] = None,
    current_index: int = 0,
    has_drawn_strokes: bool = False,
    match_config: Optional[MatchConfig] = None,
) -> MatchResult:
    """
    Decide whether a captured stroke matches the expected reference stroke.

    leniency and average_distance_threshold default to the values in
    match_config. When all_strokes is given, strokes after current_index
    are checked for a closer fit; if one exists the target is retested more
    strictly. A later stroke is never accepted in place of the target.

    Returns MatchResult(is_match, avg_distance). Captured input with fewer
    than two distinct points gives MatchResult(False, inf).
    """
    cfg = match_config or MatchConfig()
    if leniency is None:
        leniency = cfg.leniency
    elif not leniency > 0:
        raise ValueError(f"leniency must be positive, got {leniency}")
    if average_distance_threshold is None:
        average_distance_threshold = cfg.average_distance_threshold

    clean_pts = strip_duplicates(user_pts)
    if len(clean_pts) < 2:
        return MatchResult(is_match=False, avg_distance=math.inf)
    stroke_pts = as_curve(stroke_pts)

    # Later strokes are judged more strictly
    if has_drawn_strokes:
        average_distance_threshold *= config.PRIOR_STROKES_DISTANCE_FACTOR

    current = test_match(
        clean_pts, stroke_pts, leniency, average_distance_threshold, cfg
    )
    if not current.is_match:
        return current

    if all_strokes is None or current_index >= len(all_strokes) - 1:
        return current

    later_strokes = [as_curve(s) for s in all_strokes[current_index + 1:]]
    better = find_better_later_match(
        clean_pts,
        current.avg_distance,
        later_strokes,
        leniency,
        average_distance_threshold,
        cfg,
    )
    if better is None:
        return current

    return retest_with_reduced_leniency(
        clean_pts,
        stroke_pts,
        leniency,
        current.avg_distance,
        better,
        average_distance_threshold,
        cfg,
    )

"""
Scoring Engine
- Per-stroke quality score (0-100) from a match result
- Session accuracy / quality / speed and final grade
"""

import logging
import math
import time
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import config
from stroke_engine import MatchResult, as_curve, distance

logger = logging.getLogger(__name__)


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class FinalScore:
    total_score: float
    accuracy_score: float
    quality_score: float
    speed_score: float
    grade: str


# ===============================
# Per-stroke Quality
# ===============================

def stroke_quality_score(
    match_result: MatchResult,
    stroke_pts,
    user_pts,
    mistakes_on_stroke: int = 0,
) -> float:
    """
    Quality of one accepted stroke (0-100).

    60 base points, up to 25 for closeness to the reference, up to 7.5 each
    for the start and end points, minus 5 per miss on this stroke.
    """
    score = config.QUALITY_BASE_SCORE
    score += max(
        0.0,
        config.QUALITY_DISTANCE_MAX
        - match_result.avg_distance / config.QUALITY_DISTANCE_DIVISOR,
    )

    stroke_pts = as_curve(stroke_pts)
    user_pts = as_curve(user_pts)
    if len(user_pts) > 0 and len(stroke_pts) > 0:
        start_dist = distance(user_pts[0], stroke_pts[0])
        end_dist = distance(user_pts[-1], stroke_pts[-1])
        for d in (start_dist, end_dist):
            score += max(
                0.0,
                config.QUALITY_ENDPOINT_MAX - d / config.QUALITY_ENDPOINT_DIVISOR,
            )

    score -= mistakes_on_stroke * config.QUALITY_MISTAKE_PENALTY
    return _clamp(score)


# ===============================
# Session Score
# ===============================

def accuracy_score(total_mistakes: int) -> float:
    return _clamp(100.0 - total_mistakes * config.ACCURACY_MISTAKE_PENALTY)


def quality_score(stroke_scores: Sequence[float]) -> float:
    if not stroke_scores:
        return 0.0
    return sum(stroke_scores) / len(stroke_scores)


def speed_score(stroke_count: int, elapsed_seconds: float) -> float:
    """
    Compare elapsed time with the ideal 4 s per stroke.
    A time ratio between 0.5 and 2 earns full marks.
    """
    ideal_time = stroke_count * config.IDEAL_SECONDS_PER_STROKE
    if elapsed_seconds <= 0:
        time_ratio = math.inf
    else:
        time_ratio = ideal_time / elapsed_seconds

    if time_ratio < 0.5:
        speed = time_ratio * 2 * 100
    elif time_ratio > 2:
        speed = max(60.0, 100 - (time_ratio - 2) * 20)
    else:
        speed = 100.0
    return _clamp(speed)


def grade_for(total: float) -> str:
    for threshold, grade in config.GRADE_THRESHOLDS:
        if total >= threshold:
            return grade
    return config.LOWEST_GRADE


def final_score(
    stroke_count: int,
    total_mistakes: int,
    stroke_scores: Sequence[float],
    elapsed_seconds: float,
) -> FinalScore:
    """Weighted session score: 40% accuracy, 40% quality, 20% speed."""
    weights = config.SCORE_WEIGHTS
    accuracy = accuracy_score(total_mistakes)
    quality = quality_score(stroke_scores)
    speed = speed_score(stroke_count, elapsed_seconds)

    total = (
        accuracy * weights["accuracy"]
        + quality * weights["quality"]
        + speed * weights["speed"]
    )
    return FinalScore(
        total_score=total,
        accuracy_score=accuracy,
        quality_score=quality,
        speed_score=speed,
        grade=grade_for(total),
    )


# ===============================
# Session State
# ===============================

@dataclass
class StrokeSession:
    """
    Counters for one attempt at a character.
    Owned by the caller; not safe to share between threads.
    """
    current_stroke_index: int = 0
    mistakes_on_stroke: int = 0
    total_mistakes: int = 0
    stroke_quality_scores: List[float] = field(default_factory=list)
    start_time: float = field(default_factory=time.time)

    def record_mistake(self):
        self.mistakes_on_stroke += 1
        self.total_mistakes += 1

    def record_stroke(self, score: float):
        """Store an accepted stroke's quality and move to the next stroke."""
        self.stroke_quality_scores.append(score)
        self.current_stroke_index += 1
        self.mistakes_on_stroke = 0

    def elapsed(self, now: Optional[float] = None) -> float:
        if now is None:
            now = time.time()
        return now - self.start_time

    def finish(self, stroke_count: int, now: Optional[float] = None) -> FinalScore:
        result = final_score(
            stroke_count,
            self.total_mistakes,
            self.stroke_quality_scores,
            self.elapsed(now),
        )
        logger.debug(
            "session finished: %d strokes, %d mistakes, total %.1f (%s)",
            stroke_count, self.total_mistakes, result.total_score, result.grade,
        )
        return result

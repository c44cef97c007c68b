"""
Stroke Quiz

Drives one character quiz: each captured stroke is matched against the
expected median, scored, and counted as correct or a mistake. When the
last stroke is accepted the session is graded.

Medians use the MakeMeAHanzi / hanzi-writer 1024 unit space and are
mapped into capture space by centering on the character's bounds and
scaling. Captured points must already be in that capture space.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

import config
from scoring import FinalScore, StrokeSession, stroke_quality_score
from stroke_engine import MatchConfig, MatchResult, as_curve, match_stroke

logger = logging.getLogger(__name__)

Bounds = Tuple[float, float, float, float]


# ===============================
# Character Space
# ===============================

def character_bounds(medians: Sequence) -> Optional[Bounds]:
    """(min_x, min_y, max_x, max_y) over every median point."""
    curves = [as_curve(m) for m in medians]
    curves = [c for c in curves if len(c) > 0]
    if not curves:
        return None
    pts = np.concatenate(curves)
    min_x, min_y = pts.min(axis=0)
    max_x, max_y = pts.max(axis=0)
    return float(min_x), float(min_y), float(max_x), float(max_y)


def medians_to_reference_strokes(
    medians: Sequence,
    scale: float = 1.0,
    bounds: Optional[Bounds] = None,
) -> List[np.ndarray]:
    """
    Map medians into capture space: (p - center) * scale.
    Without bounds the center of the SVG viewBox is used.
    """
    if bounds is None:
        center = np.array([config.SVG_SIZE / 2.0, config.SVG_SIZE / 2.0])
    else:
        min_x, min_y, max_x, max_y = bounds
        center = np.array([(min_x + max_x) / 2.0, (min_y + max_y) / 2.0])
    return [(as_curve(m) - center) * scale for m in medians]


# ===============================
# Quiz
# ===============================

@dataclass(frozen=True)
class StrokeFeedback:
    accepted: bool
    match: MatchResult
    quality_score: float
    stroke_index: int
    show_hint: bool
    finished: bool


class StrokeQuiz:
    """Stroke-by-stroke quiz for a single character."""

    def __init__(
        self,
        medians: Sequence,
        scale: float = 1.0,
        match_config: Optional[MatchConfig] = None,
        show_hint_after_misses: int = config.SHOW_HINT_AFTER_MISSES,
        mark_correct_after_misses: int = config.MARK_CORRECT_AFTER_MISSES,
        clock: Callable[[], float] = time.time,
    ):
        if not medians:
            raise ValueError("Character has no strokes")

        self.references = medians_to_reference_strokes(
            medians, scale, character_bounds(medians)
        )
        self.match_config = match_config or MatchConfig()
        # Distances are in capture space, so follow the display scale
        self.average_distance_threshold = (
            self.match_config.average_distance_threshold * scale
        )
        self.show_hint_after_misses = show_hint_after_misses
        self.mark_correct_after_misses = mark_correct_after_misses
        self.clock = clock

        self.session: Optional[StrokeSession] = None
        self.final_score: Optional[FinalScore] = None

    @classmethod
    def from_difficulty(
        cls,
        medians: Sequence,
        difficulty: str = "normal",
        scale: float = 1.0,
        clock: Callable[[], float] = time.time,
    ) -> "StrokeQuiz":
        match_config = MatchConfig.from_difficulty(difficulty)
        level = config.DIFFICULTY_LEVELS[difficulty]
        return cls(
            medians,
            scale=scale,
            match_config=match_config,
            show_hint_after_misses=level["show_hint_after_misses"],
            mark_correct_after_misses=level["mark_correct_after_misses"],
            clock=clock,
        )

    @property
    def num_strokes(self) -> int:
        return len(self.references)

    @property
    def is_finished(self) -> bool:
        return (
            self.session is not None
            and self.session.current_stroke_index >= self.num_strokes
        )

    @property
    def should_show_hint(self) -> bool:
        if self.session is None or self.is_finished:
            return False
        return (
            self.show_hint_after_misses > 0
            and self.session.mistakes_on_stroke >= self.show_hint_after_misses
        )

    def start(self) -> StrokeSession:
        """Begin (or restart) the quiz with fresh counters."""
        self.session = StrokeSession(start_time=self.clock())
        self.final_score = None
        return self.session

    def submit_stroke(self, user_pts) -> StrokeFeedback:
        """Validate one finished stroke and update the session."""
        if self.session is None:
            self.start()
        if self.is_finished:
            raise IndexError("Quiz already finished, no stroke expected")

        session = self.session
        idx = session.current_stroke_index
        target = self.references[idx]

        match = match_stroke(
            user_pts,
            target,
            average_distance_threshold=self.average_distance_threshold,
            all_strokes=self.references,
            current_index=idx,
            has_drawn_strokes=idx > 0,
            match_config=self.match_config,
        )
        score = stroke_quality_score(
            match, target, user_pts, session.mistakes_on_stroke
        )

        accepted = match.is_match or (
            self.mark_correct_after_misses > 0
            and session.mistakes_on_stroke + 1 >= self.mark_correct_after_misses
        )

        if accepted:
            session.record_stroke(score)
            logger.debug("stroke %d accepted (quality %.1f)", idx + 1, score)
            if self.is_finished:
                self._finish()
        else:
            session.record_mistake()
            logger.debug(
                "stroke %d rejected (avg distance %.1f, %d misses)",
                idx + 1, match.avg_distance, session.mistakes_on_stroke,
            )

        return StrokeFeedback(
            accepted=accepted,
            match=match,
            quality_score=score,
            stroke_index=idx,
            show_hint=self.should_show_hint,
            finished=self.is_finished,
        )

    def _finish(self):
        now = self.clock()
        self.final_score = self.session.finish(self.num_strokes, now=now)
        result = self.final_score
        logger.info(
            "Quiz complete: %.1fs, %d mistakes, score %.1f (%s)",
            self.session.elapsed(now),
            self.session.total_mistakes,
            result.total_score,
            result.grade,
        )
        logger.info(
            "  accuracy %.1f (40%%), quality %.1f (40%%), speed %.1f (20%%)",
            result.accuracy_score,
            result.quality_score,
            result.speed_score,
        )

"""Tests for the stroke-by-stroke quiz driver in quiz.py."""

import logging

import numpy as np
import pytest

from quiz import (
    StrokeQuiz,
    character_bounds,
    medians_to_reference_strokes,
)
from stroke_engine import MatchConfig

FAR_STROKE = [(2000.0, 2000.0), (2100.0, 2000.0)]


def test_character_bounds(er_medians):
    assert character_bounds(er_medians) == (200.0, 300.0, 800.0, 600.0)


def test_character_bounds_empty():
    assert character_bounds([]) is None


def test_medians_centered_on_bounds(er_medians):
    refs = medians_to_reference_strokes(er_medians, 1.0, character_bounds(er_medians))
    np.testing.assert_array_equal(refs[0], [[-200, 150], [0, 150], [200, 150]])
    np.testing.assert_array_equal(refs[1], [[-300, -150], [0, -150], [300, -150]])


def test_medians_default_to_viewbox_center():
    refs = medians_to_reference_strokes([[[512, 512], [612, 512]]], scale=0.5)
    np.testing.assert_array_equal(refs[0], [[0, 0], [50, 0]])


def test_empty_character_rejected():
    with pytest.raises(ValueError):
        StrokeQuiz([])


def test_threshold_follows_scale(er_medians):
    quiz = StrokeQuiz(er_medians, scale=0.5)
    assert quiz.average_distance_threshold == pytest.approx(175.0)


def test_perfect_run(er_medians, fake_clock):
    quiz = StrokeQuiz(er_medians, clock=fake_clock)
    quiz.start()

    first = quiz.submit_stroke(quiz.references[0])
    assert first.accepted
    assert first.stroke_index == 0
    assert first.quality_score == 100.0
    assert not first.finished

    fake_clock.advance(8.0)  # ideal time for two strokes
    second = quiz.submit_stroke(quiz.references[1])
    assert second.accepted
    assert second.finished
    assert quiz.is_finished

    score = quiz.final_score
    assert score.accuracy_score == 100.0
    assert score.speed_score == 100.0
    assert score.quality_score == pytest.approx(100.0)
    assert score.grade == "S"


def test_submit_auto_starts(er_medians, fake_clock):
    quiz = StrokeQuiz(er_medians, clock=fake_clock)
    quiz.submit_stroke(quiz.references[0])
    assert quiz.session.start_time == fake_clock.now
    assert quiz.session.current_stroke_index == 1


def test_wrong_stroke_order_is_a_mistake(er_medians, fake_clock):
    quiz = StrokeQuiz(er_medians, clock=fake_clock)
    quiz.start()
    feedback = quiz.submit_stroke(quiz.references[1])
    assert not feedback.accepted
    assert quiz.session.total_mistakes == 1
    assert quiz.session.current_stroke_index == 0


def test_hint_after_misses(er_medians, fake_clock):
    quiz = StrokeQuiz(er_medians, show_hint_after_misses=3, clock=fake_clock)
    quiz.start()

    hints = [quiz.submit_stroke(FAR_STROKE).show_hint for _ in range(3)]
    assert hints == [False, False, True]
    assert quiz.should_show_hint

    good = quiz.submit_stroke(quiz.references[0])
    assert good.accepted
    assert good.quality_score == pytest.approx(100.0 - 3 * 5.0)
    assert not good.show_hint
    assert quiz.session.total_mistakes == 3


def test_hint_disabled(er_medians, fake_clock):
    quiz = StrokeQuiz(er_medians, show_hint_after_misses=0, clock=fake_clock)
    for _ in range(5):
        assert not quiz.submit_stroke(FAR_STROKE).show_hint


def test_mark_correct_after_misses(er_medians, fake_clock):
    quiz = StrokeQuiz(er_medians, mark_correct_after_misses=2, clock=fake_clock)
    quiz.start()

    first = quiz.submit_stroke(FAR_STROKE)
    assert not first.accepted
    assert not first.match.is_match

    second = quiz.submit_stroke(FAR_STROKE)
    assert second.accepted
    assert not second.match.is_match
    assert second.quality_score == pytest.approx(60.0 - 5.0)
    assert quiz.session.current_stroke_index == 1
    assert quiz.session.stroke_quality_scores == [pytest.approx(55.0)]


def test_degenerate_stroke_is_a_mistake(er_medians, fake_clock):
    quiz = StrokeQuiz(er_medians, clock=fake_clock)
    feedback = quiz.submit_stroke([(0.0, 150.0), (0.0, 150.0)])
    assert not feedback.accepted
    assert feedback.match.avg_distance == float("inf")


def test_submit_after_finish_raises(er_medians, fake_clock):
    quiz = StrokeQuiz(er_medians, clock=fake_clock)
    for ref in quiz.references:
        quiz.submit_stroke(ref)
    with pytest.raises(IndexError):
        quiz.submit_stroke(quiz.references[0])


def test_restart_clears_result(er_medians, fake_clock):
    quiz = StrokeQuiz(er_medians, clock=fake_clock)
    for ref in quiz.references:
        quiz.submit_stroke(ref)
    assert quiz.final_score is not None

    session = quiz.start()
    assert quiz.final_score is None
    assert session.current_stroke_index == 0
    assert not quiz.is_finished


def test_from_difficulty(er_medians, fake_clock):
    quiz = StrokeQuiz.from_difficulty(er_medians, "easy", clock=fake_clock)
    assert quiz.match_config == MatchConfig.from_difficulty("easy")
    assert quiz.show_hint_after_misses == 2
    assert quiz.mark_correct_after_misses == 5


def test_completion_is_logged(er_medians, fake_clock, caplog):
    caplog.set_level(logging.INFO, logger="quiz")
    quiz = StrokeQuiz(er_medians, clock=fake_clock)
    for ref in quiz.references:
        quiz.submit_stroke(ref)
    assert "Quiz complete" in caplog.text

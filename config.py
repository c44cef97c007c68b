"""
Configuration file for the Stroke Verifier
Tune matching thresholds, difficulty and scoring here
"""

import logging

# ===============================
# STROKE MATCHING
# ===============================

# Average direction alignment required (cosine similarity, -1..1).
# 0 means "net forward", anything reversed fails.
COSINE_SIMILARITY_THRESHOLD = 0.0

# Max distance between the captured and reference start/end points
START_END_DIST_THRESHOLD = 250.0

# Discrete Frechet distance on curves normalized to a unit box
FRECHET_THRESHOLD = 0.5

# Allowed captured/reference path length ratio window
MIN_LENGTH_RATIO = 0.35
MAX_LENGTH_RATIO = 2.5

# Added to both path lengths so very short strokes don't blow up the ratio
LENGTH_RATIO_PADDING = 25.0

# Coarse pre-filter: mean nearest-point distance to the reference
AVERAGE_DISTANCE_THRESHOLD = 350.0

# Later strokes of a character are judged against this fraction of the
# average distance threshold
PRIOR_STROKES_DISTANCE_FACTOR = 0.5

# Multiplier on all thresholds (bigger = more forgiving)
DEFAULT_LENIENCY = 1.0

# Scale applied to the stroke-order ambiguity retest
AMBIGUITY_LENIENCY_FACTOR = 0.6

# ===============================
# CHARACTER DATA
# ===============================

# HanziWriter / MakeMeAHanzi viewBox size
SVG_SIZE = 1024

# ===============================
# QUIZ
# ===============================

# Show a hint after this many misses on one stroke (0 = never)
SHOW_HINT_AFTER_MISSES = 3

# Accept the stroke anyway after this many misses (0 = never)
MARK_CORRECT_AFTER_MISSES = 0

# ===============================
# DIFFICULTY LEVELS
# ===============================

DIFFICULTY_LEVELS = {
    "easy": {
        "leniency": 1.3,
        "frechet_threshold": 0.6,
        "show_hint_after_misses": 2,
        "mark_correct_after_misses": 5,
    },
    "normal": {
        "leniency": 1.0,
        "frechet_threshold": 0.5,
        "show_hint_after_misses": 3,
        "mark_correct_after_misses": 0,
    },
    "hard": {
        "leniency": 0.75,
        "frechet_threshold": 0.4,
        "show_hint_after_misses": 0,
        "mark_correct_after_misses": 0,
    },
}

# ===============================
# SCORING
# ===============================

# Per-stroke quality (0-100)
QUALITY_BASE_SCORE = 60.0
QUALITY_DISTANCE_MAX = 25.0
QUALITY_DISTANCE_DIVISOR = 10.0
QUALITY_ENDPOINT_MAX = 7.5
QUALITY_ENDPOINT_DIVISOR = 20.0
QUALITY_MISTAKE_PENALTY = 5.0

# Session accuracy
ACCURACY_MISTAKE_PENALTY = 10.0

# Ideal writing time per stroke (seconds)
IDEAL_SECONDS_PER_STROKE = 4.0

# Weights of the final score
SCORE_WEIGHTS = {
    "accuracy": 0.4,
    "quality": 0.4,
    "speed": 0.2,
}

# Minimum total score per grade, best first
GRADE_THRESHOLDS = [
    (95, "S"),
    (90, "A+"),
    (85, "A"),
    (80, "A-"),
    (75, "B+"),
    (70, "B"),
    (65, "B-"),
    (60, "C+"),
    (55, "C"),
    (50, "C-"),
    (40, "D"),
]
LOWEST_GRADE = "F"

# ===============================
# DEBUG & DEVELOPMENT
# ===============================

# Log every predicate decision
DEBUG_MODE = False

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s: %(message)s"

# ===============================
# SYSTEM SETTINGS
# ===============================

APP_NAME = "Stroke Verifier"
APP_VERSION = "1.0.0"


def get_config(key: str, default=None):
    """Get configuration value by key."""
    parts = key.split(".")
    obj = globals()

    for part in parts:
        if isinstance(obj, dict):
            obj = obj.get(part, default)
        else:
            return default

    return obj if obj is not None else default


def configure_logging(level=None):
    """Set up root logging; DEBUG_MODE switches to debug output."""
    if level is None:
        level = logging.DEBUG if DEBUG_MODE else logging.INFO
    logging.basicConfig(level=level, format=LOG_FORMAT)


if __name__ == "__main__":
    configure_logging()
    log = logging.getLogger(APP_NAME)
    log.info("%s %s configuration", APP_NAME, APP_VERSION)
    log.info("Start/end threshold: %s", START_END_DIST_THRESHOLD)
    log.info("Frechet threshold: %s", FRECHET_THRESHOLD)
    log.info("Length ratio: %s - %s", MIN_LENGTH_RATIO, MAX_LENGTH_RATIO)
    log.info("Average distance threshold: %s", AVERAGE_DISTANCE_THRESHOLD)
    log.info("Difficulty levels: %s", ", ".join(DIFFICULTY_LEVELS))
    log.info("Debug Mode: %s", DEBUG_MODE)

# ==============================================================================
# app/importer/scoring.py
# ------------------------------------------------------------------------------
# Converts one raw score cell into a canonical 0-100 score.
# ==============================================================================

import re
from dataclasses import dataclass

# Indonesian rating words, matched case-insensitively.
RATING_WORDS = {
    'kurang baik': 65,
    'baik': 75,
    'sangat baik': 85,
}

# Bucketing of raw integer scores.
LEGACY_FAIR_SCORE = 10
FAIR_SCORE = 65
GOOD_SCORE = 75
EXCELLENT_SCORE = 85

MIN_SCORE = 0
MAX_SCORE = 100

INTEGER_PATTERN = re.compile(r'^[+-]?\d+$')
INTEGRAL_DECIMAL_PATTERN = re.compile(r'^[+-]?\d+\.0+$')
NUMERIC_PATTERN = re.compile(r'^[+-]?(\d+([.,]\d*)?|[.,]\d+)$')
WHITESPACE_RUN = re.compile(r'\s+')

EMPTY = 'empty'
ACCEPTED = 'accepted'
INVALID = 'invalid'
OUT_OF_RANGE = 'out_of_range'


@dataclass(frozen=True)
class ScoreOutcome:
    status: str
    raw_value: str
    score: float = None

    @property
    def contributes(self):
        return self.status == ACCEPTED

    @property
    def is_rejected(self):
        return self.status in (INVALID, OUT_OF_RANGE)


def _rating_key(value):
    return WHITESPACE_RUN.sub(' ', value.strip()).lower()


def is_rating_word(value):
    return _rating_key(value or '') in RATING_WORDS


def is_numeric(value):
    return bool(NUMERIC_PATTERN.match((value or '').strip()))


def parse_integer(value):
    """Returns the integer a cell spells out ("75", "75.0"), or None."""
    text = value.strip()
    if INTEGER_PATTERN.match(text):
        return int(text)
    if INTEGRAL_DECIMAL_PATTERN.match(text):
        return int(text.split('.')[0])
    return None


def bucket_score(raw):
    """
    Applies the fixed bucketing table to a raw integer already in 0-100.
    Values not named by the table (e.g. 70) are kept as they are.
    """
    if raw == LEGACY_FAIR_SCORE:
        return FAIR_SCORE
    if raw == FAIR_SCORE:
        return FAIR_SCORE
    if raw == GOOD_SCORE:
        return GOOD_SCORE
    if raw > GOOD_SCORE:
        return EXCELLENT_SCORE
    return raw


def classify_score(raw_value):
    """
    Normalizes one cell and reports why it did or did not yield a sample.

    Returns:
        ScoreOutcome: status is 'empty', 'accepted', 'invalid' or 'out_of_range'.
    """
    raw_value = '' if raw_value is None else str(raw_value)
    if not raw_value.strip():
        return ScoreOutcome(EMPTY, raw_value)

    rating = RATING_WORDS.get(_rating_key(raw_value))
    if rating is not None:
        return ScoreOutcome(ACCEPTED, raw_value, float(rating))

    raw = parse_integer(raw_value)
    if raw is None:
        return ScoreOutcome(INVALID, raw_value)
    if raw < MIN_SCORE or raw > MAX_SCORE:
        return ScoreOutcome(OUT_OF_RANGE, raw_value)

    return ScoreOutcome(ACCEPTED, raw_value, float(bucket_score(raw)))


def normalize_score(raw_value):
    """Returns the canonical score for a cell, or None when it contributes nothing."""
    return classify_score(raw_value).score


def is_valid_score(score):
    return score is not None and MIN_SCORE <= score <= MAX_SCORE

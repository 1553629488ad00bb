# ==============================================================================
# app/importer/aggregator.py
# ------------------------------------------------------------------------------
# Accumulates score samples per (employee, competency) across the data rows
# of one pasted block and emits one averaged record per employee.
# ==============================================================================

import logging
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP

from .errors import ImportDataError, ImportErrorCode, SCORE_GUIDANCE
from .scoring import classify_score, is_numeric, is_rating_word

DEFAULT_ORGANIZATIONAL_LEVEL = 'Staff/Other'

# Mixed rows (reviewer details + scores) carry the reviewer's position here.
ORG_LEVEL_HINT_COLUMN = 3

PREFERRED_LEVEL_TOKEN = 'eselon'

TWO_PLACES = Decimal('0.01')


@dataclass(frozen=True)
class CompetencyScore:
    name: str
    score: float

    def to_dict(self):
        return {'name': self.name, 'score': self.score}


@dataclass(frozen=True)
class ParsedEmployee:
    name: str
    organizational_level: str
    performance: tuple = ()

    def to_dict(self):
        return {
            'name': self.name,
            'organizational_level': self.organizational_level,
            'performance': [p.to_dict() for p in self.performance],
        }


@dataclass(frozen=True)
class RejectedCell:
    row_number: int
    column_index: int
    employee_name: str
    competency_name: str
    raw_value: str
    reason: str

    def to_dict(self):
        return {
            'row_number': self.row_number,
            'column_index': self.column_index,
            'employee_name': self.employee_name,
            'competency_name': self.competency_name,
            'raw_value': self.raw_value,
            'reason': self.reason,
        }


@dataclass
class AggregationResult:
    employees: list = field(default_factory=list)
    rejected_cells: list = field(default_factory=list)
    duplicate_columns: dict = field(default_factory=dict)  # (employee, competency) -> [column indexes]
    defaulted_levels: list = field(default_factory=list)


class EmployeeAccumulator:
    """
    Score samples of one employee, keyed by exact competency name in
    first-seen order, plus the organizational level resolved on the first
    accepted sample.
    """

    def __init__(self, name):
        self.name = name
        self.samples = {}
        self.organizational_level = None
        self.level_defaulted = False

    def add_sample(self, competency_name, score):
        self.samples.setdefault(competency_name, []).append(score)

    @property
    def has_samples(self):
        return any(self.samples.values())

    def competency_averages(self):
        return tuple(
            CompetencyScore(name, average_score(scores))
            for name, scores in self.samples.items()
            if scores
        )


def average_score(scores):
    """Arithmetic mean rounded half-up to two decimals."""
    total = sum(Decimal(str(s)) for s in scores)
    mean = (total / len(scores)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    return float(mean)


def level_candidates(name, roster_mapping, organizational_mapping, row_hint=None):
    candidates = [
        (roster_mapping or {}).get(name),
        (organizational_mapping or {}).get(name),
        row_hint,
    ]
    return [c.strip() for c in candidates if c and c.strip()]


def resolve_organizational_level(name, roster_mapping, organizational_mapping,
                                 row_hint=None, default=DEFAULT_ORGANIZATIONAL_LEVEL):
    """
    Priority: roster mapping, then organizational mapping, then the row hint.
    A candidate naming an eselon rank beats any earlier plain candidate.
    """
    candidates = level_candidates(name, roster_mapping, organizational_mapping, row_hint)
    for candidate in candidates:
        if PREFERRED_LEVEL_TOKEN in candidate.lower():
            return candidate
    return candidates[0] if candidates else default


def is_pure_score_row(values):
    """True when every field is empty, numeric or a rating word."""
    return bool(values) and all(
        not v.strip() or is_numeric(v) or is_rating_word(v) for v in values
    )


def row_level_hint(values, pure_score_row, column_map=None):
    if pure_score_row or len(values) <= ORG_LEVEL_HINT_COLUMN:
        return None
    # A score column in the hint position carries a score, not a position.
    if ORG_LEVEL_HINT_COLUMN in (column_map or {}):
        return None
    return values[ORG_LEVEL_HINT_COLUMN].strip() or None


def find_duplicate_columns(column_map):
    positions = {}
    for index in sorted(column_map):
        mapping = column_map[index]
        positions.setdefault((mapping.employee_name, mapping.competency_name), []).append(index)
    return {pair: indexes for pair, indexes in positions.items() if len(indexes) > 1}


def aggregate(grid, column_map, roster_mapping=None, organizational_mapping=None,
              exclude_names=(), default_level=DEFAULT_ORGANIZATIONAL_LEVEL):
    """
    Runs the row-by-row accumulation for one grid.

    Args:
        grid (RawGrid): Tokenized block; rows after the header are data rows.
        column_map (dict): column index -> ColumnMapping.
        roster_mapping (dict): name -> level derived from the employee roster.
        organizational_mapping (dict): name -> level from reconciliation/resolution.
        exclude_names (iterable): names whose records must not be finalized.

    Returns:
        AggregationResult

    Raises:
        ImportDataError: when no employee received any sample.
    """
    excluded = set(exclude_names or ())
    accumulators = {}
    for index in sorted(column_map):
        name = column_map[index].employee_name
        if name not in excluded and name not in accumulators:
            accumulators[name] = EmployeeAccumulator(name)

    result = AggregationResult(duplicate_columns=find_duplicate_columns(column_map))

    for offset, values in enumerate(grid.data_rows):
        row_number = offset + 2
        pure = is_pure_score_row(values)
        hint = row_level_hint(values, pure, column_map)
        logging.debug(f"Row {row_number}: {len(values)} fields, pure score row={pure}, level hint={hint!r}")

        for index, mapping in column_map.items():
            if index >= len(values):
                continue
            accumulator = accumulators.get(mapping.employee_name)
            if accumulator is None:
                continue

            outcome = classify_score(values[index])
            if outcome.is_rejected:
                result.rejected_cells.append(RejectedCell(
                    row_number, index, mapping.employee_name, mapping.competency_name,
                    outcome.raw_value, outcome.status,
                ))
                logging.debug(f"  Row {row_number}, column {index}: rejected {outcome.raw_value!r} ({outcome.status})")
                continue
            if not outcome.contributes:
                continue

            accumulator.add_sample(mapping.competency_name, outcome.score)
            if accumulator.organizational_level is None:
                candidates = level_candidates(accumulator.name, roster_mapping, organizational_mapping, hint)
                accumulator.level_defaulted = not candidates
                accumulator.organizational_level = resolve_organizational_level(
                    accumulator.name, roster_mapping, organizational_mapping, hint, default_level)

    for name, accumulator in accumulators.items():
        if not accumulator.has_samples:
            logging.info(f"Dropping '{name}': no scores were parsed for this employee.")
            continue
        stored = None if accumulator.level_defaulted else accumulator.organizational_level
        level = resolve_organizational_level(name, roster_mapping, organizational_mapping, stored, default_level)
        if not level_candidates(name, roster_mapping, organizational_mapping, stored):
            result.defaulted_levels.append(name)
        result.employees.append(ParsedEmployee(name, level, accumulator.competency_averages()))

    if not result.employees and accumulators:
        raise ImportDataError(
            ImportErrorCode.NO_SCORES,
            "No numeric or rated scores were found for any employee.",
            guidance=SCORE_GUIDANCE,
            details={'rejected_cells': len(result.rejected_cells)},
        )

    logging.info(f"Aggregation finished: {len(result.employees)} employees, "
                 f"{len(result.rejected_cells)} rejected cells, "
                 f"{len(result.defaulted_levels)} defaulted levels.")
    return result

# ==============================================================================
# app/importer/pipeline.py
# ------------------------------------------------------------------------------
# Orchestrates one import: tokenize -> interpret header -> reconcile names ->
# aggregate -> validate. Performs no I/O; the caller supplies the directory
# snapshot and any roster mapping.
# ==============================================================================

import logging
from dataclasses import dataclass, field

from .aggregator import aggregate, DEFAULT_ORGANIZATIONAL_LEVEL
from .errors import ImportDataError, ImportErrorCode, HEADER_GUIDANCE, ROSTER_GUIDANCE
from .headers import interpret_header, require_mapped_columns, distinct_employee_names
from .matching import match_employee_names, apply_resolution, SIMILARITY_THRESHOLD
from .roster import parse_roster_text
from .schema import ROSTER_KEYWORDS, ROSTER_KEYWORD_MINIMUM
from .tokenizer import tokenize, tokenize_line, detect_delimiter, significant_lines
from .validator import (ImportValidator, DEFAULT_REQUIRED_COMPETENCIES, COMPLETENESS_THRESHOLD,
                        SEVERITY_HIGH_ERROR_COUNT, SEVERITY_MEDIUM_WARNING_COUNT)

PERFORMANCE_DATA = 'performance_data'
EMPLOYEE_ROSTER = 'employee_roster'

COMPLETED = 'completed'
NEEDS_RESOLUTION = 'needs_resolution'
ROSTER = 'roster'


@dataclass(frozen=True)
class ImportSettings:
    """Tunable thresholds of the pipeline. Built from AppSetting rows by the web layer."""
    similarity_threshold: float = SIMILARITY_THRESHOLD
    completeness_threshold: float = COMPLETENESS_THRESHOLD
    severity_high_error_count: int = SEVERITY_HIGH_ERROR_COUNT
    severity_medium_warning_count: int = SEVERITY_MEDIUM_WARNING_COUNT
    required_competencies: tuple = DEFAULT_REQUIRED_COMPETENCIES
    default_organizational_level: str = DEFAULT_ORGANIZATIONAL_LEVEL

    @classmethod
    def from_settings_dict(cls, settings_dict):
        defaults = cls()
        return cls(
            similarity_threshold=float(settings_dict.get('SIMILARITY_THRESHOLD', defaults.similarity_threshold)),
            completeness_threshold=float(settings_dict.get('COMPLETENESS_THRESHOLD', defaults.completeness_threshold)),
            severity_high_error_count=int(settings_dict.get('SEVERITY_HIGH_ERROR_COUNT', defaults.severity_high_error_count)),
            severity_medium_warning_count=int(settings_dict.get('SEVERITY_MEDIUM_WARNING_COUNT', defaults.severity_medium_warning_count)),
            required_competencies=tuple(settings_dict.get('REQUIRED_COMPETENCIES', defaults.required_competencies)),
            default_organizational_level=settings_dict.get('DEFAULT_ORGANIZATIONAL_LEVEL', defaults.default_organizational_level),
        )

    def build_validator(self):
        return ImportValidator(
            required_competencies=self.required_competencies,
            completeness_threshold=self.completeness_threshold,
            high_error_count=self.severity_high_error_count,
            medium_warning_count=self.severity_medium_warning_count,
            default_level=self.default_organizational_level,
        )


@dataclass
class ImportOutcome:
    status: str
    employees: list = field(default_factory=list)
    validation: object = None
    matches: list = field(default_factory=list)
    unresolved_names: list = field(default_factory=list)
    partial_directory_mapping: dict = field(default_factory=dict)
    roster_entries: list = field(default_factory=list)

    @property
    def needs_resolution(self):
        return self.status == NEEDS_RESOLUTION

    def to_dict(self):
        payload = {'status': self.status, 'matches': [m.to_dict() for m in self.matches]}
        if self.status == NEEDS_RESOLUTION:
            payload['unresolved_names'] = list(self.unresolved_names)
            payload['partial_directory_mapping'] = dict(self.partial_directory_mapping)
        elif self.status == ROSTER:
            payload['roster_entries'] = [e.to_dict() for e in self.roster_entries]
        else:
            payload['employees'] = [e.to_dict() for e in self.employees]
            payload['validation'] = self.validation.to_dict() if self.validation else None
        return payload


def detect_data_type(text):
    """
    Guesses whether a pasted block is an employee roster or performance scores.

    Returns:
        tuple: (data type, confidence between 0 and 1)
    """
    lines = significant_lines(text)
    if not lines:
        return PERFORMANCE_DATA, 0.1

    # Mapped score columns win over roster keywords; mixed-row headers carry both.
    if interpret_header(tokenize_line(lines[0], detect_delimiter(lines[0]))):
        return PERFORMANCE_DATA, 0.9

    header = lines[0].lower()
    found = [keyword for keyword in ROSTER_KEYWORDS if keyword in header]
    if len(found) >= ROSTER_KEYWORD_MINIMUM:
        return EMPLOYEE_ROSTER, max(0.8, len(found) / len(ROSTER_KEYWORDS))
    if '[' in header and ']' in header:
        return PERFORMANCE_DATA, 0.9
    return PERFORMANCE_DATA, 0.5


def extract_employee_names(text):
    """Distinct bracketed employee names of a block's header, in column order."""
    grid = tokenize(text)
    return distinct_employee_names(interpret_header(grid.header))


def _prepare(text):
    grid = tokenize(text)
    column_map = require_mapped_columns(interpret_header(grid.header))
    return grid, column_map


def _finalize(grid, column_map, reconciliation, roster_mapping, settings):
    result = aggregate(
        grid, column_map,
        roster_mapping=roster_mapping,
        organizational_mapping=reconciliation.organizational_mapping,
        exclude_names=reconciliation.unresolved_names,
        default_level=settings.default_organizational_level,
    )
    employees = sorted(result.employees, key=lambda e: e.name.lower())
    validation = settings.build_validator().validate(
        employees,
        unresolved_names=reconciliation.unresolved_names,
        rejected_cells=result.rejected_cells,
        duplicate_columns=result.duplicate_columns,
        defaulted_levels=result.defaulted_levels,
    )
    return ImportOutcome(
        status=COMPLETED,
        employees=employees,
        validation=validation,
        matches=reconciliation.matches,
        unresolved_names=list(reconciliation.unresolved_names),
        partial_directory_mapping=dict(reconciliation.organizational_mapping),
    )


def process_import(text, directory, roster_mapping=None, settings=None):
    """
    First step of an import.

    Args:
        text (str): The pasted block.
        directory (list): DirectoryEntry snapshot to reconcile names against.
        roster_mapping (dict): Optional name -> level mapping from a roster.
        settings (ImportSettings): Thresholds; defaults when omitted.

    Returns:
        ImportOutcome: 'needs_resolution' when some names matched nothing in the
            directory, otherwise 'completed' with employees and validation.

    Raises:
        ImportDataError: for structural problems with the block.
    """
    settings = settings or ImportSettings()
    data_type, confidence = detect_data_type(text)
    logging.info(f"Detected data type '{data_type}' (confidence {confidence:.2f}).")
    if data_type == EMPLOYEE_ROSTER:
        entries = parse_roster_text(text)
        if not entries:
            raise ImportDataError(
                ImportErrorCode.INVALID_ROSTER,
                "The pasted roster contains no employee rows.",
                guidance=ROSTER_GUIDANCE,
            )
        return ImportOutcome(status=ROSTER, roster_entries=entries)

    grid, column_map = _prepare(text)
    names = distinct_employee_names(column_map)
    reconciliation = match_employee_names(names, directory, settings.similarity_threshold)

    if reconciliation.needs_resolution:
        logging.info(f"Import paused: {len(reconciliation.unresolved_names)} names need resolution.")
        return ImportOutcome(
            status=NEEDS_RESOLUTION,
            matches=reconciliation.matches,
            unresolved_names=list(reconciliation.unresolved_names),
            partial_directory_mapping=dict(reconciliation.organizational_mapping),
        )

    return _finalize(grid, column_map, reconciliation, roster_mapping, settings)


def continue_import(text, directory, resolution, roster_mapping=None, settings=None):
    """
    Second step of an import, after a human resolved the unknown names.

    Reconciliation is re-run against the same directory snapshot and the
    resolution mapping ({name: {'chosen_name', 'organizational_level', 'is_new'}})
    is folded in. Names left without a resolution are not finalized and are
    reported as critical validation errors.
    """
    settings = settings or ImportSettings()
    if detect_data_type(text)[0] == EMPLOYEE_ROSTER:
        raise ImportDataError(
            ImportErrorCode.INVALID_RESOLUTION,
            "Only performance data can be continued after name resolution.",
            guidance=HEADER_GUIDANCE,
        )

    grid, column_map = _prepare(text)
    names = distinct_employee_names(column_map)
    reconciliation = match_employee_names(names, directory, settings.similarity_threshold)
    reconciliation = apply_resolution(reconciliation, resolution, directory)
    if reconciliation.unresolved_names:
        logging.warning(f"Continuing with {len(reconciliation.unresolved_names)} names still unresolved.")
    return _finalize(grid, column_map, reconciliation, roster_mapping, settings)

# ==============================================================================
# app/importer/validator.py
# ------------------------------------------------------------------------------
# Inspects the aggregated employee records of one import and produces a
# ValidationReport: errors, warnings, a summary and an overall severity.
# ==============================================================================

import re
import logging
import unicodedata
from dataclasses import dataclass, field

import pandas as pd

from .aggregator import DEFAULT_ORGANIZATIONAL_LEVEL
from .scoring import MIN_SCORE, MAX_SCORE

# Competencies every performance dataset is expected to contain.
DEFAULT_REQUIRED_COMPETENCIES = (
    {'name': 'inisiatif dan fleksibilitas', 'aliases': ['inisiatif', 'fleksibilitas', 'initiative', 'flexibility']},
    {'name': 'kehadiran dan ketepatan waktu', 'aliases': ['kehadiran', 'ketepatan', 'attendance', 'punctuality']},
    {'name': 'kerjasama dan team work', 'aliases': ['kerjasama', 'teamwork', 'cooperation', 'collaboration']},
    {'name': 'manajemen waktu kerja', 'aliases': ['manajemen waktu', 'time management', 'work management']},
    {'name': 'kepemimpinan', 'aliases': ['leadership', 'pemimpin']},
    {'name': 'kualitas kinerja', 'aliases': ['kualitas', 'work quality']},
    {'name': 'kemampuan berkomunikasi', 'aliases': ['komunikasi', 'berkomunikasi', 'communication', 'komunikatif']},
    {'name': 'pemahaman tentang permasalahan sosial', 'aliases': ['permasalahan sosial', 'pemahaman sosial', 'social understanding']},
)

COMPLETENESS_THRESHOLD = 80.0
SEVERITY_HIGH_ERROR_COUNT = 3
SEVERITY_MEDIUM_WARNING_COUNT = 5
LOW_SCORE_WARNING = 60
MIN_COMPETENCIES_PER_EMPLOYEE = 3

# Error types that make a dataset unusable as a whole.
STRUCTURAL_ERROR_TYPES = {'unresolved_employee', 'missing_employee', 'duplicate_employee', 'critical_data'}

SUCCESS = 'success'
LOW = 'low'
MEDIUM = 'medium'
HIGH = 'high'
CRITICAL = 'critical'

MOJIBAKE = re.compile(r'â€|Ã.')
PUNCTUATION = re.compile(r'[^\w\s]')
WHITESPACE_RUN = re.compile(r'\s+')


@dataclass(frozen=True)
class ValidationIssue:
    type: str
    message: str
    details: str = None
    employee_name: str = None
    competency_name: str = None
    affected_count: int = None

    def to_dict(self):
        payload = {'type': self.type, 'message': self.message}
        for key in ('details', 'employee_name', 'competency_name', 'affected_count'):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        return payload


@dataclass(frozen=True)
class ValidationSummary:
    total_employees: int
    valid_employees: int
    total_competencies: int
    data_completeness_percent: float
    missing_required_competencies: tuple
    required_competencies_present: tuple
    score_quality_label: str

    def to_dict(self):
        return {
            'total_employees': self.total_employees,
            'valid_employees': self.valid_employees,
            'total_competencies': self.total_competencies,
            'data_completeness_percent': self.data_completeness_percent,
            'missing_required_competencies': list(self.missing_required_competencies),
            'required_competencies_present': list(self.required_competencies_present),
            'score_quality_label': self.score_quality_label,
        }


@dataclass(frozen=True)
class ValidationReport:
    errors: tuple
    warnings: tuple
    summary: ValidationSummary
    severity: str

    @property
    def is_valid(self):
        return not self.errors

    def to_dict(self):
        return {
            'is_valid': self.is_valid,
            'severity': self.severity,
            'errors': [e.to_dict() for e in self.errors],
            'warnings': [w.to_dict() for w in self.warnings],
            'summary': self.summary.to_dict(),
        }


def normalize_competency_name(name):
    text = PUNCTUATION.sub('', (name or '').lower())
    return WHITESPACE_RUN.sub(' ', text).strip()


def has_encoding_issue(text):
    if not text:
        return False
    if '\ufffd' in text or MOJIBAKE.search(text):
        return True
    return any(unicodedata.category(ch) == 'Cc' for ch in text)


def is_requirement_list(value):
    """True for a list of {'name': str, 'aliases': [str, ...]} objects; aliases may be omitted."""
    if not isinstance(value, list):
        return False
    for requirement in value:
        if not isinstance(requirement, dict):
            return False
        if not isinstance(requirement.get('name'), str) or not requirement['name'].strip():
            return False
        aliases = requirement.get('aliases', [])
        if not isinstance(aliases, list) or not all(isinstance(a, str) for a in aliases):
            return False
    return True


def matches_required(competencies, requirement):
    """
    A required competency is present when a competency equals its name,
    contains (or is contained in) one of its aliases, or contains one of the
    longer words of its name.
    """
    required_name = normalize_competency_name(requirement['name'])
    if required_name in competencies:
        return True
    for alias in requirement.get('aliases', []):
        alias = normalize_competency_name(alias)
        if any(alias in c or c in alias for c in competencies if c):
            return True
    keywords = [w for w in required_name.split(' ') if len(w) > 3]
    return any(k in c for c in competencies for k in keywords)


def classify_severity(structural_error_count, error_count, warning_count, completeness,
                      completeness_threshold=COMPLETENESS_THRESHOLD,
                      high_error_count=SEVERITY_HIGH_ERROR_COUNT,
                      medium_warning_count=SEVERITY_MEDIUM_WARNING_COUNT):
    """Maps issue counts to a severity. No other input influences the result."""
    if structural_error_count > 0:
        return CRITICAL
    if error_count == 0 and warning_count == 0:
        return SUCCESS
    if error_count >= high_error_count:
        return HIGH
    if error_count > 0 or completeness < completeness_threshold or warning_count >= medium_warning_count:
        return MEDIUM
    return LOW


def score_quality_label(completeness, error_count):
    if completeness >= 90 and error_count == 0:
        return 'excellent'
    if completeness >= 80 and error_count <= 2:
        return 'good'
    if completeness >= 70 and error_count <= 5:
        return 'fair'
    return 'poor'


class ImportValidator:
    """Collects issues for one set of parsed employees."""

    def __init__(self, required_competencies=DEFAULT_REQUIRED_COMPETENCIES,
                 completeness_threshold=COMPLETENESS_THRESHOLD,
                 high_error_count=SEVERITY_HIGH_ERROR_COUNT,
                 medium_warning_count=SEVERITY_MEDIUM_WARNING_COUNT,
                 default_level=DEFAULT_ORGANIZATIONAL_LEVEL):
        self.required_competencies = list(required_competencies or [])
        self.completeness_threshold = completeness_threshold
        self.high_error_count = high_error_count
        self.medium_warning_count = medium_warning_count
        self.default_level = default_level
        self.errors = []
        self.warnings = []

    def validate(self, employees, unresolved_names=(), rejected_cells=(),
                 duplicate_columns=None, defaulted_levels=()):
        self.errors = []
        self.warnings = []
        employees = list(employees)
        unresolved_names = list(unresolved_names)

        self._check_structure(employees, unresolved_names)
        self._check_encoding(employees)
        self._check_duplicate_competencies(employees, duplicate_columns or {})
        found_required = self._check_required_competencies(employees)
        self._check_scores(employees)
        self._check_rejected_cells(rejected_cells)
        self._check_organizational_levels(employees, defaulted_levels)
        self._check_score_distribution(employees)

        total = len(employees) + len(unresolved_names)
        flagged = {e.employee_name for e in self.errors if e.employee_name}
        valid = sum(1 for emp in employees if emp.performance and emp.name not in flagged)
        completeness = round(valid / total * 100, 2) if total else 0.0

        if total and completeness < self.completeness_threshold:
            self.warnings.append(ValidationIssue(
                'low_completeness', 'Data completeness is below the expected level',
                details=f"{completeness}% of employees are valid (expected at least {self.completeness_threshold}%)",
                affected_count=total - valid,
            ))

        competencies = {normalize_competency_name(p.name) for emp in employees for p in emp.performance}
        missing = tuple(r['name'] for r in self.required_competencies if r['name'] not in found_required)
        summary = ValidationSummary(
            total_employees=total,
            valid_employees=valid,
            total_competencies=len(competencies),
            data_completeness_percent=completeness,
            missing_required_competencies=missing,
            required_competencies_present=tuple(found_required),
            score_quality_label=score_quality_label(completeness, len(self.errors)),
        )

        structural = sum(1 for e in self.errors if e.type in STRUCTURAL_ERROR_TYPES)
        severity = classify_severity(
            structural, len(self.errors), len(self.warnings), completeness,
            self.completeness_threshold, self.high_error_count, self.medium_warning_count,
        )
        logging.info(f"Validation finished: {len(self.errors)} errors, {len(self.warnings)} warnings, "
                     f"completeness {completeness}%, severity '{severity}'.")
        return ValidationReport(tuple(self.errors), tuple(self.warnings), summary, severity)

    # --- Individual checks ---

    def _check_structure(self, employees, unresolved_names):
        if not employees and not unresolved_names:
            self.errors.append(ValidationIssue(
                'critical_data', 'No employee data found',
                details='The dataset contains no employee records'))
            return

        for name in unresolved_names:
            self.errors.append(ValidationIssue(
                'unresolved_employee', 'Employee name could not be matched to the directory',
                details='Choose an existing employee or declare a new employee before finalizing',
                employee_name=name))

        counts = pd.Series([emp.name for emp in employees], dtype='object').value_counts()
        duplicates = sorted(counts[counts > 1].index)
        if duplicates:
            self.errors.append(ValidationIssue(
                'duplicate_employee', 'Duplicate employee names found',
                details=f"Employees: {', '.join(duplicates)}",
                affected_count=int(counts[counts > 1].sum())))

        blank = [emp for emp in employees if not emp.name or not emp.name.strip()]
        if blank:
            self.errors.append(ValidationIssue(
                'missing_employee', 'Employees with empty names found',
                details='Employee names are required for data processing',
                affected_count=len(blank)))

    def _check_encoding(self, employees):
        for emp in employees:
            for text in (emp.name, emp.organizational_level):
                if has_encoding_issue(text):
                    self.warnings.append(ValidationIssue(
                        'encoding_issue', 'Potential encoding issues detected',
                        details=f"Text field contains suspicious characters: {text!r}",
                        employee_name=emp.name))
            for perf in emp.performance:
                if has_encoding_issue(perf.name):
                    self.warnings.append(ValidationIssue(
                        'encoding_issue', 'Competency name has encoding issues',
                        details=f"Competency name contains suspicious characters: {perf.name!r}",
                        employee_name=emp.name, competency_name=perf.name))

    def _check_duplicate_competencies(self, employees, duplicate_columns):
        for (employee_name, competency_name), indexes in duplicate_columns.items():
            self.warnings.append(ValidationIssue(
                'duplicate_competency', 'Competency appears in more than one column',
                details=f"Columns {', '.join(str(i + 1) for i in indexes)} were averaged together",
                employee_name=employee_name, competency_name=competency_name,
                affected_count=len(indexes)))

        for emp in employees:
            seen = {}
            for perf in emp.performance:
                seen.setdefault(normalize_competency_name(perf.name), []).append(perf.name)
            for variants in seen.values():
                if len(variants) > 1:
                    self.warnings.append(ValidationIssue(
                        'duplicate_competency', 'Competency recorded under several spellings',
                        details=f"Variants: {', '.join(variants)}",
                        employee_name=emp.name, competency_name=variants[0],
                        affected_count=len(variants)))

    def _check_required_competencies(self, employees):
        dataset = {normalize_competency_name(p.name) for emp in employees for p in emp.performance}
        found = [r['name'] for r in self.required_competencies if matches_required(dataset, r)]
        missing = [r['name'] for r in self.required_competencies if r['name'] not in found]

        if missing and employees:
            self.errors.append(ValidationIssue(
                'missing_competency', 'Required competencies missing from dataset',
                details=f"Missing: {', '.join(missing)}",
                affected_count=len(missing)))

        for emp in employees:
            if not emp.performance:
                self.errors.append(ValidationIssue(
                    'missing_competency', 'Employee has no performance data',
                    employee_name=emp.name))
                continue

            own = {normalize_competency_name(p.name) for p in emp.performance}
            lacking = [r['name'] for r in self.required_competencies
                       if r['name'] in found and not matches_required(own, r)]
            if lacking:
                self.warnings.append(ValidationIssue(
                    'partial_data', 'Employee missing some competencies',
                    details=f"Missing: {', '.join(lacking)}",
                    employee_name=emp.name, affected_count=len(lacking)))

            if len(emp.performance) < MIN_COMPETENCIES_PER_EMPLOYEE:
                self.warnings.append(ValidationIssue(
                    'partial_data', 'Employee has very few competency scores',
                    details=f"Only {len(emp.performance)} competencies recorded",
                    employee_name=emp.name))
        return found

    def _check_scores(self, employees):
        for emp in employees:
            for perf in emp.performance:
                if perf.score is None or perf.score < MIN_SCORE or perf.score > MAX_SCORE:
                    self.errors.append(ValidationIssue(
                        'invalid_score', f'Score out of valid range ({MIN_SCORE}-{MAX_SCORE})',
                        details=f"Score: {perf.score}",
                        employee_name=emp.name, competency_name=perf.name))
                elif perf.score < LOW_SCORE_WARNING:
                    self.warnings.append(ValidationIssue(
                        'quality_concern', 'Very low performance score detected',
                        details=f"Score: {perf.score}",
                        employee_name=emp.name, competency_name=perf.name))

    def _check_rejected_cells(self, rejected_cells):
        for cell in rejected_cells:
            reason = 'outside 0-100' if cell.reason == 'out_of_range' else 'not a number or rating'
            self.warnings.append(ValidationIssue(
                'rejected_score', 'Score cell was ignored',
                details=f"Row {cell.row_number}, column {cell.column_index + 1}: {cell.raw_value!r} is {reason}",
                employee_name=cell.employee_name, competency_name=cell.competency_name))

    def _check_organizational_levels(self, employees, defaulted_levels):
        defaulted = list(defaulted_levels)
        if defaulted:
            self.warnings.append(ValidationIssue(
                'org_level_default', 'Employees without a known organizational level',
                details=f"Defaulted to '{self.default_level}': {', '.join(defaulted)}",
                affected_count=len(defaulted)))

        placeholder = sum(1 for emp in employees if emp.organizational_level == self.default_level)
        if employees and placeholder > len(employees) * 0.5:
            self.warnings.append(ValidationIssue(
                'quality_concern', 'High number of employees with default organizational level',
                details='Consider importing employee roster data first',
                affected_count=placeholder))

    def _check_score_distribution(self, employees):
        records = [(emp.name, p.name, p.score) for emp in employees for p in emp.performance]
        if not records:
            return
        frame = pd.DataFrame(records, columns=['employee', 'competency', 'score'])
        stats = frame.groupby('competency', sort=False)['score'].agg(['count', 'nunique', 'first'])
        for competency, row in stats.iterrows():
            if row['count'] >= 2 and row['nunique'] == 1:
                self.warnings.append(ValidationIssue(
                    'quality_concern', 'All employees have identical scores for competency',
                    details=f"All {int(row['count'])} scores are {row['first']}",
                    competency_name=competency, affected_count=int(row['count'])))


def validate_import(employees, unresolved_names=(), rejected_cells=(), duplicate_columns=None,
                    defaulted_levels=(), **options):
    """Convenience wrapper around ImportValidator.validate()."""
    return ImportValidator(**options).validate(
        employees, unresolved_names, rejected_cells, duplicate_columns, defaulted_levels)

# tests/test_validator.py

import pytest

from app.importer.aggregator import CompetencyScore, ParsedEmployee, RejectedCell
from app.importer.validator import (ImportValidator, validate_import, classify_severity, score_quality_label,
                                    SUCCESS, LOW, MEDIUM, HIGH, CRITICAL)

def employee(name, level='Eselon III', **scores):
    return ParsedEmployee(name, level, tuple(CompetencyScore(k, v) for k, v in scores.items()))

@pytest.fixture
def clean_employees():
    """Two employees with three varied scores each and known levels."""
    return [
        employee('Budi Santoso', Komunikasi=75.0, Integritas=85.0, Disiplin=80.0),
        employee('Siti Aminah', level='Eselon IV', Komunikasi=85.0, Integritas=75.0, Disiplin=65.0),
    ]

# --- Severity ---

@pytest.mark.parametrize("counts, expected", [
    ((1, 1, 0, 100.0), CRITICAL),
    ((0, 0, 0, 100.0), SUCCESS),
    ((0, 3, 0, 100.0), HIGH),
    ((0, 1, 0, 100.0), MEDIUM),
    ((0, 0, 1, 50.0), MEDIUM),
    ((0, 0, 5, 100.0), MEDIUM),
    ((0, 0, 4, 100.0), LOW),
])
def test_classify_severity(counts, expected):
    assert classify_severity(*counts) == expected

def test_severity_thresholds_are_configurable():
    assert classify_severity(0, 2, 0, 100.0, high_error_count=2) == HIGH
    assert classify_severity(0, 0, 2, 100.0, medium_warning_count=2) == MEDIUM

@pytest.mark.parametrize("completeness, errors, label", [
    (95.0, 0, 'excellent'), (95.0, 1, 'good'), (75.0, 3, 'fair'), (50.0, 0, 'poor'),
])
def test_score_quality_label(completeness, errors, label):
    assert score_quality_label(completeness, errors) == label

# --- Whole reports ---

def test_clean_dataset_is_success(clean_employees):
    report = ImportValidator(required_competencies=()).validate(clean_employees)
    assert report.severity == SUCCESS
    assert report.is_valid
    assert report.warnings == ()
    assert report.summary.total_employees == 2
    assert report.summary.valid_employees == 2
    assert report.summary.total_competencies == 3
    assert report.summary.data_completeness_percent == 100.0

def test_unresolved_names_make_the_report_critical(clean_employees):
    report = ImportValidator(required_competencies=()).validate(clean_employees, unresolved_names=['Joko'])
    assert report.severity == CRITICAL
    assert [e.type for e in report.errors] == ['unresolved_employee']
    assert report.errors[0].employee_name == 'Joko'
    assert report.summary.total_employees == 3
    assert report.summary.data_completeness_percent == pytest.approx(66.67)

def test_no_employees_is_critical():
    report = validate_import([], required_competencies=())
    assert report.severity == CRITICAL
    assert report.errors[0].type == 'critical_data'

def test_missing_required_competencies_are_reported():
    employees = [
        employee('Budi', **{'Kemampuan Komunikasi': 75.0, 'Kepemimpinan': 85.0, 'Integritas': 80.0}),
        employee('Siti', **{'Komunikasi': 65.0, 'Integritas': 75.0, 'Disiplin': 85.0}),
    ]
    required = [
        {'name': 'kemampuan berkomunikasi', 'aliases': ['komunikasi']},
        {'name': 'kepemimpinan', 'aliases': ['leadership']},
        {'name': 'kualitas kinerja', 'aliases': ['kualitas']},
    ]
    report = ImportValidator(required_competencies=required).validate(employees)

    assert report.summary.missing_required_competencies == ('kualitas kinerja',)
    assert set(report.summary.required_competencies_present) == {'kemampuan berkomunikasi', 'kepemimpinan'}
    assert any(e.type == 'missing_competency' for e in report.errors)
    # Siti lacks leadership, which other employees have
    partial = [w for w in report.warnings if w.type == 'partial_data']
    assert [w.employee_name for w in partial] == ['Siti']
    assert report.severity == MEDIUM

def test_quality_warnings(clean_employees):
    employees = clean_employees + [employee('Rina', Komunikasi=40.0)]
    report = ImportValidator(required_competencies=()).validate(employees)
    types = [w.type for w in report.warnings]
    assert 'quality_concern' in types      # score below 60
    assert 'partial_data' in types         # a single competency
    assert report.severity == LOW

def test_rejected_cells_and_defaulted_levels_become_warnings(clean_employees):
    rejected = [RejectedCell(3, 1, 'Budi Santoso', 'Integritas', '200', 'out_of_range')]
    report = ImportValidator(required_competencies=()).validate(
        clean_employees, rejected_cells=rejected, defaulted_levels=['Siti Aminah'])
    types = [w.type for w in report.warnings]
    assert types.count('rejected_score') == 1
    assert 'org_level_default' in types
    assert "'200'" in next(w.details for w in report.warnings if w.type == 'rejected_score')

def test_duplicate_columns_become_warnings(clean_employees):
    report = ImportValidator(required_competencies=()).validate(
        clean_employees, duplicate_columns={('Budi Santoso', 'Komunikasi'): [0, 4]})
    duplicate = [w for w in report.warnings if w.type == 'duplicate_competency']
    assert len(duplicate) == 1
    assert duplicate[0].affected_count == 2

def test_identical_scores_across_employees_are_flagged():
    employees = [
        employee('Budi', Komunikasi=75.0, Integritas=85.0, Disiplin=80.0),
        employee('Siti', Komunikasi=75.0, Integritas=65.0, Disiplin=70.0),
    ]
    report = ImportValidator(required_competencies=()).validate(employees)
    flagged = [w.competency_name for w in report.warnings if w.type == 'quality_concern']
    assert flagged == ['Komunikasi']

def test_control_characters_are_encoding_warnings():
    employees = [
        employee('Budi\x07 Santoso', Komunikasi=75.0, Integritas=85.0, Disiplin=80.0),
    ]
    report = ImportValidator(required_competencies=()).validate(employees)
    assert [w.type for w in report.warnings] == ['encoding_issue']

def test_report_serializes(clean_employees):
    payload = ImportValidator(required_competencies=()).validate(clean_employees).to_dict()
    assert payload['severity'] == SUCCESS
    assert payload['summary']['score_quality_label'] == 'excellent'
    assert payload['errors'] == [] and payload['warnings'] == []

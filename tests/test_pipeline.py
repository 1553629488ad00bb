# tests/test_pipeline.py

import pytest

from app.importer.aggregator import CompetencyScore
from app.importer.errors import ImportDataError, ImportErrorCode
from app.importer.matching import DirectoryEntry
from app.importer.pipeline import (ImportSettings, detect_data_type, extract_employee_names, process_import,
                                   continue_import, PERFORMANCE_DATA, EMPLOYEE_ROSTER, COMPLETED,
                                   NEEDS_RESOLUTION, ROSTER)

BUDI_BLOCK = '"1. Komunikasi [Budi Santoso]","2. Integritas [Budi Santoso]"\n"75","Baik"'

# Two employees, three varied competencies each
TEAM_BLOCK = (
    "1. Komunikasi [Budi Santoso]\t2. Integritas [Budi Santoso]\t3. Disiplin [Budi Santoso]\t"
    "1. Komunikasi [Joko Widodo]\t2. Integritas [Joko Widodo]\t3. Disiplin [Joko Widodo]\n"
    "75\tsangat baik\t80\t85\tbaik\t65\n"
)

NO_REQUIREMENTS = ImportSettings(required_competencies=())

# Mixed rows: reviewer details before the scores, reviewer position in column 3
MIXED_ROW_BLOCK = (
    "Timestamp\tNama Penilai\tNIP Penilai\tJabatan\t1. Komunikasi [Budi Santoso]\n"
    "2024-01-05\tAndi\t1988\tStaff\t75\n"
)

@pytest.fixture
def directory():
    return [
        DirectoryEntry(1, 'Budi Santoso', 'Eselon III'),
        DirectoryEntry(2, 'Siti Aminah', 'Eselon IV'),
    ]

# --- Data type detection ---

def test_detect_data_type():
    assert detect_data_type("NAMA\tNIP\tGOL\tJABATAN\nBudi\t1\tIII/d\tKasi")[0] == EMPLOYEE_ROSTER
    assert detect_data_type(BUDI_BLOCK) == (PERFORMANCE_DATA, 0.9)
    assert detect_data_type("a,b\n1,2") == (PERFORMANCE_DATA, 0.5)
    assert detect_data_type("") == (PERFORMANCE_DATA, 0.1)
    # Reviewer columns mention nama, nip and jabatan, but the scores are bracketed
    assert detect_data_type(MIXED_ROW_BLOCK) == (PERFORMANCE_DATA, 0.9)

def test_extract_employee_names():
    assert extract_employee_names(TEAM_BLOCK) == ['Budi Santoso', 'Joko Widodo']

# --- First step ---

def test_known_employee_completes_in_one_step(directory):
    outcome = process_import(BUDI_BLOCK, directory)

    assert outcome.status == COMPLETED
    assert len(outcome.employees) == 1
    budi = outcome.employees[0]
    assert budi.name == 'Budi Santoso'
    assert budi.organizational_level == 'Eselon III'
    assert budi.performance == (CompetencyScore('Komunikasi', 75.0), CompetencyScore('Integritas', 75.0))
    # Most of the default required competencies are absent from this tiny block
    assert outcome.validation.severity == 'medium'

def test_unknown_employee_pauses_for_resolution(directory):
    outcome = process_import(TEAM_BLOCK, directory, settings=NO_REQUIREMENTS)

    assert outcome.status == NEEDS_RESOLUTION
    assert outcome.needs_resolution
    assert outcome.unresolved_names == ['Joko Widodo']
    assert outcome.partial_directory_mapping == {'Budi Santoso': 'Eselon III'}
    assert outcome.employees == []
    payload = outcome.to_dict()
    assert payload['unresolved_names'] == ['Joko Widodo']
    assert 'employees' not in payload

def test_fatal_input_errors_propagate(directory):
    with pytest.raises(ImportDataError) as excinfo:
        process_import("Komunikasi [Budi Santoso]", directory)
    assert excinfo.value.code == ImportErrorCode.NOT_ENOUGH_LINES

    with pytest.raises(ImportDataError) as excinfo:
        process_import("Nama,Nilai\nBudi,75", directory)
    assert excinfo.value.code == ImportErrorCode.NO_MAPPED_COLUMNS

def test_roster_text_is_routed_to_the_roster_parser(directory):
    outcome = process_import("NAMA\tNIP\tGOL\tJABATAN\nRina Wulandari\t1988\tIII/b\tAnalis", directory)
    assert outcome.status == ROSTER
    assert [e.name for e in outcome.roster_entries] == ['Rina Wulandari']
    assert outcome.roster_entries[0].organizational_level == 'Eselon IV'

def test_roster_mapping_takes_priority(directory):
    outcome = process_import(BUDI_BLOCK, directory, roster_mapping={'Budi Santoso': 'Eselon II'})
    assert outcome.employees[0].organizational_level == 'Eselon II'

# --- Continuation ---

def test_new_employee_resolution_completes_the_import(directory):
    resolution = {'Joko Widodo': {'organizational_level': 'Staff', 'is_new': True}}
    outcome = continue_import(TEAM_BLOCK, directory, resolution, settings=NO_REQUIREMENTS)

    assert outcome.status == COMPLETED
    levels = {e.name: e.organizational_level for e in outcome.employees}
    assert levels == {'Budi Santoso': 'Eselon III', 'Joko Widodo': 'Staff'}
    joko = next(e for e in outcome.employees if e.name == 'Joko Widodo')
    assert {p.name: p.score for p in joko.performance} == {'Komunikasi': 85.0, 'Integritas': 75.0, 'Disiplin': 65.0}
    assert outcome.validation.severity == 'success'

def test_existing_employee_resolution_uses_chosen_level(directory):
    resolution = {'Joko Widodo': {'chosen_name': 'Siti Aminah', 'organizational_level': 'Eselon IV'}}
    outcome = continue_import(TEAM_BLOCK, directory, resolution, settings=NO_REQUIREMENTS)
    match = next(m for m in outcome.matches if m.source_name == 'Joko Widodo')
    assert match.matched_directory_name == 'Siti Aminah'
    assert {e.name: e.organizational_level for e in outcome.employees}['Joko Widodo'] == 'Eselon IV'

def test_incomplete_resolution_is_critical(directory):
    outcome = continue_import(TEAM_BLOCK, directory, {}, settings=NO_REQUIREMENTS)

    assert outcome.status == COMPLETED
    assert [e.name for e in outcome.employees] == ['Budi Santoso']
    assert outcome.unresolved_names == ['Joko Widodo']
    assert outcome.validation.severity == 'critical'
    assert outcome.validation.summary.total_employees == 2

def test_resolution_for_unknown_name_is_rejected(directory):
    with pytest.raises(ImportDataError) as excinfo:
        continue_import(TEAM_BLOCK, directory, {'Budi Santoso': {'organizational_level': 'Staff'}})
    assert excinfo.value.code == ImportErrorCode.INVALID_RESOLUTION

# --- Settings ---

def test_settings_from_app_setting_values():
    settings = ImportSettings.from_settings_dict({
        'SIMILARITY_THRESHOLD': 0.95,
        'SEVERITY_HIGH_ERROR_COUNT': 5,
        'REQUIRED_COMPETENCIES': [],
    })
    assert settings.similarity_threshold == 0.95
    assert settings.severity_high_error_count == 5
    assert settings.required_competencies == ()
    assert settings.completeness_threshold == 80.0

def test_similarity_threshold_setting_is_applied():
    directory = [DirectoryEntry(1, 'Budi Santosa', 'Eselon III')]
    text = "Komunikasi [Budi Santoso]\n75"
    assert process_import(text, directory).status == COMPLETED
    strict = ImportSettings(similarity_threshold=0.95)
    assert process_import(text, directory, settings=strict).status == NEEDS_RESOLUTION

# --- Mixed rows and empty rosters ---

def test_mixed_row_header_with_reviewer_columns_imports_scores(directory):
    outcome = process_import(MIXED_ROW_BLOCK, directory, settings=NO_REQUIREMENTS)

    assert outcome.status == COMPLETED
    assert outcome.roster_entries == []
    budi = outcome.employees[0]
    assert budi.performance == (CompetencyScore('Komunikasi', 75.0),)
    # The directory eselon beats the reviewer's plain 'Staff' position
    assert budi.organizational_level == 'Eselon III'

def test_roster_without_employee_rows_is_rejected(directory):
    with pytest.raises(ImportDataError) as excinfo:
        process_import("Nama Pegawai\tNIP\tGOL\tJABATAN\nBudi Santoso\t1987\tIV/a\tKepala Bidang", directory)
    assert excinfo.value.code == ImportErrorCode.INVALID_ROSTER
    assert excinfo.value.guidance

def test_resolution_to_a_name_outside_the_directory_is_rejected(directory):
    resolution = {'Joko Widodo': {'chosen_name': 'Bambang', 'organizational_level': 'Staff', 'is_new': False}}
    with pytest.raises(ImportDataError) as excinfo:
        continue_import(TEAM_BLOCK, directory, resolution, settings=NO_REQUIREMENTS)
    assert excinfo.value.code == ImportErrorCode.INVALID_RESOLUTION

# tests/test_roster.py

import pandas as pd
import pytest

from app.importer.roster import (RosterEntry, infer_level_from_golongan, simplify_organizational_level,
                                 load_roster_file, parse_roster_text, roster_mapping)

# --- Level simplification ---

@pytest.mark.parametrize("golongan, expected", [
    ("IV/e", "Eselon II"),
    ("IV/c", "Eselon II"),
    ("IV/b", "Eselon III"),
    ("III/d", "Eselon III"),
    ("III / c", "Eselon IV"),
    ("iii/b", "Eselon IV"),
    ("III/a", "Staff"),
    ("II/d", "Staff"),
    ("", "Staff"),
    (None, "Staff"),
])
def test_infer_level_from_golongan(golongan, expected):
    assert infer_level_from_golongan(golongan) == expected

@pytest.mark.parametrize("level, golongan, expected", [
    ("Kepala Bidang (Eselon III)", "II/a", "Eselon III"),
    ("Kasubag Es IV", None, "Eselon IV"),
    ("Sekretaris Dinas, Eselon 2", None, "Eselon II"),
    ("Pejabat Eselon", None, "Eselon"),
    ("Staf Pelaksana", "IV/c", "Staff"),
    ("Analis Kebijakan", "III/d", "Eselon III"),
    ("", "", "Staff"),
])
def test_simplify_organizational_level(level, golongan, expected):
    assert simplify_organizational_level(level, golongan) == expected

# --- Files ---

def test_load_csv_roster(tmp_path):
    path = tmp_path / "roster.csv"
    path.write_text(
        "Nama,NIP,Gol,Jabatan\n"
        "Budi Santoso,198701012010011001,III/d,Kepala Seksi\n"
        "Rina Wulandari,199002022015022002,III/a,Staf Pelaksana\n",
        encoding="utf-8",
    )
    entries, errors = load_roster_file(str(path))

    assert errors == []
    assert [e.name for e in entries] == ['Budi Santoso', 'Rina Wulandari']
    assert entries[0].nip == '198701012010011001'
    assert entries[0].organizational_level == 'Eselon III'
    assert entries[1].organizational_level == 'Staff'

def test_load_xlsx_roster_with_explicit_level(tmp_path):
    path = tmp_path / "roster.xlsx"
    pd.DataFrame({
        'NAMA': ['Siti Aminah', ''],
        'GOL': ['III/c', 'III/a'],
        'LEVEL': ['Eselon IV', ''],
    }).to_excel(path, index=False)

    entries, errors = load_roster_file(str(path))
    # The row without a name is skipped
    assert errors == []
    assert entries == [RosterEntry(name='Siti Aminah', gol='III/c', organizational_level='Eselon IV')]

def test_roster_without_name_column_is_rejected(tmp_path):
    path = tmp_path / "roster.csv"
    path.write_text("NIP,GOL\n1,III/a\n", encoding="utf-8")
    entries, errors = load_roster_file(str(path))
    assert entries is None
    assert 'NAMA' in errors[0]

def test_unreadable_roster_file_is_reported(tmp_path):
    path = tmp_path / "roster.xlsx"
    path.write_bytes(b"not a spreadsheet")
    entries, errors = load_roster_file(str(path))
    assert entries is None
    assert errors and 'cannot be read' in errors[0]

# --- Pasted rosters ---

def test_parse_pasted_roster_with_header():
    text = "NAMA\tNIP\tGOL\tPANGKAT\tJABATAN\nBudi Santoso\t1987\tIV/a\tPembina\tKepala Bidang\n"
    entries = parse_roster_text(text)
    assert len(entries) == 1
    assert entries[0].pangkat == 'Pembina'
    assert entries[0].organizational_level == 'Eselon III'

def test_parse_pasted_roster_without_header_uses_column_positions():
    text = "Budi Santoso  1987  III/d  Penata  Kepala Seksi Eselon IV  Umum"
    entries = parse_roster_text(text)
    assert entries[0].name == 'Budi Santoso'
    assert entries[0].position == 'Kepala Seksi Eselon IV'
    assert entries[0].sub_position == 'Umum'
    assert entries[0].organizational_level == 'Eselon IV'

def test_roster_mapping_first_entry_wins():
    entries = [
        RosterEntry(name='Budi', organizational_level='Eselon III'),
        RosterEntry(name='Budi', organizational_level='Staff'),
        RosterEntry(name='Siti', organizational_level='Eselon IV'),
    ]
    assert roster_mapping(entries) == {'Budi': 'Eselon III', 'Siti': 'Eselon IV'}

# ==============================================================================
# app/importer/roster.py
# ------------------------------------------------------------------------------
# Reads employee rosters (CSV/XLSX exports or pasted text) into directory
# entries and a name -> organizational level mapping.
# ==============================================================================

import os
import re
import logging
from dataclasses import dataclass
from io import StringIO

import pandas as pd

from .schema import ROSTER_COLUMNS, ROSTER_POSITIONAL_COLUMNS, ROSTER_FIELDS
from .tokenizer import significant_lines

ESELON_PATTERNS = (
    ('Eselon II', re.compile(r'\b(eselon|echelon|es|esl)\s*(ii|2)\b')),
    ('Eselon III', re.compile(r'\b(eselon|echelon|es|esl)\s*(iii|3)\b')),
    ('Eselon IV', re.compile(r'\b(eselon|echelon|es|esl)\s*(iv|4)\b')),
)
GOLONGAN_PATTERN = re.compile(r'^\s*(IV|III|II|I)\s*/\s*([a-e])\s*$', re.IGNORECASE)
STAFF_TOKENS = ('staff', 'staf', 'pelaksana')


@dataclass(frozen=True)
class RosterEntry:
    name: str
    nip: str = ''
    gol: str = ''
    pangkat: str = ''
    position: str = ''
    sub_position: str = ''
    organizational_level: str = 'Staff'

    def to_dict(self):
        return {
            'name': self.name,
            'nip': self.nip,
            'gol': self.gol,
            'pangkat': self.pangkat,
            'position': self.position,
            'sub_position': self.sub_position,
            'organizational_level': self.organizational_level,
        }


def infer_level_from_golongan(golongan):
    """Maps a civil-service golongan such as 'III/d' to its usual eselon, or 'Staff'."""
    match = GOLONGAN_PATTERN.match(golongan or '')
    if not match:
        return 'Staff'
    level, grade = match.group(1).upper(), match.group(2).lower()
    if level == 'IV' and grade in ('c', 'd', 'e'):
        return 'Eselon II'
    if (level == 'IV' and grade in ('a', 'b')) or (level == 'III' and grade == 'd'):
        return 'Eselon III'
    if level == 'III' and grade in ('b', 'c'):
        return 'Eselon IV'
    return 'Staff'


def simplify_organizational_level(level, golongan=None):
    """
    Turns free-text position/level into 'Eselon II/III/IV', 'Eselon' or 'Staff'.
    Explicit text wins; golongan is only consulted when the text says nothing.
    """
    text = (level or '').strip().lower()
    for label, pattern in ESELON_PATTERNS:
        if pattern.search(text):
            return label
    if 'eselon' in text or 'echelon' in text:
        return 'Eselon'
    if any(token in text for token in STAFF_TOKENS):
        return 'Staff'
    return infer_level_from_golongan(golongan)


def _clean(value):
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ''
    text = str(value).strip()
    return '' if text.lower() == 'nan' else text


def entries_from_dataframe(df):
    """Converts a roster DataFrame with canonical column names into RosterEntry records."""
    entries = []
    for index, row in df.iterrows():
        values = {attr: _clean(row.get(column)) for column, attr in ROSTER_FIELDS.items()}
        if not values['name']:
            logging.debug(f"Skipping roster row {index + 2}: empty name.")
            continue
        explicit = values.pop('level')
        level = explicit if explicit else simplify_organizational_level(values['position'], values['gol'])
        entries.append(RosterEntry(organizational_level=level, **values))
    return entries


def _normalize_columns(df):
    df.columns = [str(c).strip().upper() for c in df.columns]
    return df


def load_roster_file(filepath):
    """
    Reads and validates a roster export.

    Args:
        filepath (str): Path to a .csv or .xlsx file.

    Returns:
        tuple: A tuple containing:
            - list: RosterEntry records if validation is successful, else None.
            - list: A list of human-readable error messages if validation fails.
    """
    extension = os.path.splitext(filepath)[1].lower()
    try:
        if extension == '.xlsx':
            df = pd.read_excel(filepath, dtype=str)
        else:
            df = pd.read_csv(filepath, dtype=str, sep=None, engine='python')
    except Exception as e:
        return None, [f"The roster file is invalid or cannot be read. Technical error: {e}"]

    df = _normalize_columns(df)
    missing = [col for col in ROSTER_COLUMNS['required_columns'] if col not in df.columns]
    if missing:
        return None, [f"The roster is missing required columns: {', '.join(missing)}"]

    entries = entries_from_dataframe(df)
    if not entries:
        return None, ["The roster contains no employee rows."]

    logging.info(f"Loaded {len(entries)} roster entries from '{os.path.basename(filepath)}'.")
    return entries, []


def parse_roster_text(text):
    """
    Parses a pasted roster. Columns are tab separated (or separated by two or
    more spaces); a first line mentioning NAMA is treated as the header.
    """
    lines = significant_lines(text)
    if not lines:
        return []

    body = '\n'.join(lines)
    separator = '\t' if '\t' in lines[0] else r'\s{2,}'
    has_header = 'nama' in lines[0].lower()
    df = pd.read_csv(
        StringIO(body),
        sep=separator,
        engine='python',
        dtype=str,
        header=0 if has_header else None,
        skipinitialspace=True,
    )
    if has_header:
        df = _normalize_columns(df)
    else:
        df.columns = ROSTER_POSITIONAL_COLUMNS[:len(df.columns)] + \
            [f'EXTRA {i}' for i in range(max(0, len(df.columns) - len(ROSTER_POSITIONAL_COLUMNS)))]

    entries = entries_from_dataframe(df)
    logging.info(f"Parsed {len(entries)} roster entries from pasted text.")
    return entries


def roster_mapping(entries):
    """name -> organizational level, first entry wins for repeated names."""
    mapping = {}
    for entry in entries:
        mapping.setdefault(entry.name, entry.organizational_level)
    return mapping

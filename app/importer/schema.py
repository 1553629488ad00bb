# ==============================================================================
# app/importer/schema.py
# ------------------------------------------------------------------------------
# Defines the expected structure of an employee roster (directory export).
# This schema is the single source of truth for the roster loader.
# ==============================================================================

ROSTER_COLUMNS = {
    'required_columns': ['NAMA'],
    'optional_columns': ['NIP', 'GOL', 'PANGKAT', 'JABATAN', 'SUB POSISI', 'LEVEL'],
}

# Positional layout used when a pasted roster has no header line.
ROSTER_POSITIONAL_COLUMNS = ['NAMA', 'NIP', 'GOL', 'PANGKAT', 'JABATAN', 'SUB POSISI']

# Column name -> RosterEntry attribute
ROSTER_FIELDS = {
    'NAMA': 'name',
    'NIP': 'nip',
    'GOL': 'gol',
    'PANGKAT': 'pangkat',
    'JABATAN': 'position',
    'SUB POSISI': 'sub_position',
    'LEVEL': 'level',
}

# Header keywords that identify a pasted block as a roster rather than scores.
ROSTER_KEYWORDS = ['nama', 'nip', 'gol', 'pangkat', 'jabatan']
ROSTER_KEYWORD_MINIMUM = 3

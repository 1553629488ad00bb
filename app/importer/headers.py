# ==============================================================================
# app/importer/headers.py
# ------------------------------------------------------------------------------
# Interprets header cells of the form "1. Competency Name [Employee Name]".
# ==============================================================================

import re
import logging
from dataclasses import dataclass

from .errors import ImportDataError, ImportErrorCode, HEADER_GUIDANCE

BRACKETED_NAME = re.compile(r'\[(.*?)\]')
NAME_ORDINAL = re.compile(r'^\d+\.\s*|^\d+\s+')
COMPETENCY_NUMBERING = re.compile(r'^\d+\s*\.?\s*')
WHITESPACE_RUN = re.compile(r'\s+')


@dataclass(frozen=True)
class ColumnMapping:
    employee_name: str
    competency_name: str


def extract_employee_name(header):
    """Returns the bracketed employee name without its ordinal, or None."""
    match = BRACKETED_NAME.search(header or '')
    if not match:
        return None
    name = NAME_ORDINAL.sub('', match.group(1).strip()).strip()
    return name or None


def clean_competency_name(header):
    """Strips the bracketed name and leading numbering from a header cell."""
    text = BRACKETED_NAME.sub(' ', header or '', count=1)
    text = COMPETENCY_NUMBERING.sub('', text.strip())
    return WHITESPACE_RUN.sub(' ', text).strip()


def interpret_header(header_fields):
    """
    Builds the column map for a header row.

    Args:
        header_fields (list): Tokenized header cells.

    Returns:
        dict: column index -> ColumnMapping, for mapped columns only.
    """
    column_map = {}
    for index, header in enumerate(header_fields):
        employee_name = extract_employee_name(header)
        if not employee_name:
            continue
        competency_name = clean_competency_name(header)
        if not competency_name:
            logging.debug(f"Header column {index} has a name but no competency: '{header}'")
            continue
        column_map[index] = ColumnMapping(employee_name, competency_name)

    logging.info(f"Header interpretation: {len(column_map)} of {len(header_fields)} columns mapped.")
    return column_map


def require_mapped_columns(column_map):
    if not column_map:
        raise ImportDataError(
            ImportErrorCode.NO_MAPPED_COLUMNS,
            "No header column contains an employee name in square brackets.",
            guidance=HEADER_GUIDANCE,
        )
    return column_map


def distinct_employee_names(column_map):
    """Employee names in first-seen column order, without duplicates."""
    names = []
    for index in sorted(column_map):
        name = column_map[index].employee_name
        if name not in names:
            names.append(name)
    return names

# ==============================================================================
# app/importer/tokenizer.py
# ------------------------------------------------------------------------------
# Splits a pasted block (spreadsheet copy/paste, CSV export, TSV) into a grid
# of fields. The delimiter style is decided once from the header line and then
# applied to every row of the block.
# ==============================================================================

import re
import logging
from dataclasses import dataclass, field
from enum import Enum

from .errors import ImportDataError, ImportErrorCode, HEADER_GUIDANCE

MULTI_SPACE_RUN = re.compile(r' {2,}')
QUOTED_SEGMENT = re.compile(r'"(?:[^"]|"")*"')
BLANK_LINE = re.compile(r'^[\s,]*$')


class DelimiterStyle(str, Enum):
    TAB = "tab"
    MULTI_SPACE = "multi_space"
    COMMA = "comma"


_DELIMITER_CHARS = {
    DelimiterStyle.TAB: '\t',
    DelimiterStyle.COMMA: ',',
}


@dataclass
class RawGrid:
    """Rows of trimmed fields; rows[0] is the header row."""
    style: DelimiterStyle
    rows: list = field(default_factory=list)

    @property
    def header(self):
        return self.rows[0]

    @property
    def data_rows(self):
        return self.rows[1:]


def detect_delimiter(header_line):
    """
    Picks the delimiter style for a block from its header line.

    Priority is tab > runs of two or more spaces > comma. Space runs only win
    when there are at least as many of them as commas. Quoted segments are
    ignored while counting.
    """
    unquoted = QUOTED_SEGMENT.sub('', header_line)
    tab_count = unquoted.count('\t')
    comma_count = unquoted.count(',')
    multi_space_count = len(MULTI_SPACE_RUN.findall(unquoted))

    if tab_count > 0:
        style = DelimiterStyle.TAB
    elif multi_space_count > 0 and multi_space_count >= comma_count:
        style = DelimiterStyle.MULTI_SPACE
    else:
        style = DelimiterStyle.COMMA

    logging.debug(f"Delimiter detection: tabs={tab_count}, commas={comma_count}, "
                  f"space runs={multi_space_count} -> {style.value}")
    return style


def split_quoted(line, delimiter):
    """
    Splits on a single-character delimiter, honouring double-quote quoting.
    A doubled quote inside a quoted field yields one literal quote.
    """
    fields = []
    current = []
    in_quotes = False
    i = 0
    while i < len(line):
        char = line[i]
        if char == '"':
            if in_quotes and i + 1 < len(line) and line[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            fields.append(''.join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1
    fields.append(''.join(current).strip())
    return fields


def tokenize_line(line, style):
    """
    Splits one line with an already detected style.

    Empty fields are kept for tab and comma styles so that every cell stays
    under its header column; space-run splitting cannot express empty cells
    and drops them.
    """
    if style == DelimiterStyle.MULTI_SPACE:
        return [f.strip() for f in MULTI_SPACE_RUN.split(line) if f.strip()]
    return split_quoted(line, _DELIMITER_CHARS[style])


def significant_lines(text):
    """Returns the lines of `text` that are not blank or delimiter-only."""
    lines = (text or '').replace('\r\n', '\n').replace('\r', '\n').split('\n')
    return [line for line in lines if not BLANK_LINE.match(line)]


def tokenize(text):
    """
    Turns a pasted block into a RawGrid.

    Raises:
        ImportDataError: when fewer than two usable lines remain.
    """
    lines = significant_lines(text)
    if len(lines) < 2:
        raise ImportDataError(
            ImportErrorCode.NOT_ENOUGH_LINES,
            "Data must have a header row and at least one data row.",
            guidance=HEADER_GUIDANCE,
            details={'usable_lines': len(lines)},
        )

    style = detect_delimiter(lines[0])
    rows = [tokenize_line(line, style) for line in lines]
    logging.info(f"Tokenized {len(rows)} lines ({len(rows) - 1} data rows) using '{style.value}' delimiter.")
    return RawGrid(style=style, rows=rows)

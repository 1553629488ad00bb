# ==============================================================================
# app/importer/errors.py
# ------------------------------------------------------------------------------
# Fatal (structural) import errors. Data-quality problems never raise; they are
# collected in the ValidationReport instead.
# ==============================================================================

from enum import Enum


class ImportErrorCode(str, Enum):
    NOT_ENOUGH_LINES = "NOT_ENOUGH_LINES"
    NO_MAPPED_COLUMNS = "NO_MAPPED_COLUMNS"
    NO_SCORES = "NO_SCORES"
    INVALID_RESOLUTION = "INVALID_RESOLUTION"
    INVALID_ROSTER = "INVALID_ROSTER"


HEADER_GUIDANCE = (
    "The first line must be a header whose columns look like "
    "'1. Competency Name [Employee Name]', separated by tabs, commas "
    "or two or more spaces."
)

SCORE_GUIDANCE = (
    "Score cells must be whole numbers between 0 and 100 or one of the "
    "ratings 'Kurang Baik', 'Baik', 'Sangat Baik'."
)


ROSTER_GUIDANCE = (
    "A pasted roster needs a header line with a NAMA column and one "
    "employee per line below it."
)


class ImportDataError(Exception):
    """Raised when a pasted block cannot be imported at all."""

    def __init__(self, code, message, guidance=None, details=None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.guidance = guidance
        self.details = details

    def to_dict(self):
        payload = {
            "error": {
                "code": self.code.value if isinstance(self.code, ImportErrorCode) else str(self.code),
                "message": self.message,
            }
        }
        if self.guidance:
            payload["error"]["guidance"] = self.guidance
        if self.details:
            payload["error"]["details"] = self.details
        return payload

# ==============================================================================
# app/importer/matching.py
# ------------------------------------------------------------------------------
# Reconciles employee names found in pasted data with the employee directory:
# exact match, match after normalization, then fuzzy (edit distance) match.
# ==============================================================================

import re
import logging
from dataclasses import dataclass, field

from rapidfuzz.distance import Levenshtein

from .errors import ImportDataError, ImportErrorCode

# Indonesian academic titles and honorifics, removed as whole words.
HONORIFIC_TOKENS = (
    'st', 'sh', 'se', 'mm', 'si', 'sk', 'sos', 'ssos', 'sap', 'skep',
    'ners', 'mi', 'mps', 'sp', 'kom', 'stp', 'ap', 'pd', 'map', 'msc',
    'ma', 'mph', 'dra', 'dr', 'ir', 'amd',
)

SIMILARITY_THRESHOLD = 0.80

NAME_PUNCTUATION = re.compile(r'[.,\-_]')
WHITESPACE_RUN = re.compile(r'\s+')
HONORIFIC_PATTERN = re.compile(r'\b(?:' + '|'.join(HONORIFIC_TOKENS) + r')\b')

TIER_EXACT = 'exact'
TIER_NORMALIZED = 'normalized'
TIER_FUZZY = 'fuzzy'
TIER_RESOLVED = 'resolved'
TIER_UNMATCHED = 'unmatched'


@dataclass(frozen=True)
class DirectoryEntry:
    id: int
    name: str
    organizational_level: str


@dataclass(frozen=True)
class NameMatchResult:
    source_name: str
    matched_directory_name: str = None
    confidence: float = 0.0
    is_new_employee: bool = False
    tier: str = TIER_UNMATCHED

    @property
    def is_matched(self):
        return self.matched_directory_name is not None or self.tier == TIER_RESOLVED

    def to_dict(self):
        return {
            'source_name': self.source_name,
            'matched_directory_name': self.matched_directory_name,
            'confidence': round(self.confidence, 4),
            'is_new_employee': self.is_new_employee,
            'tier': self.tier,
        }


@dataclass
class ReconciliationResult:
    matches: list = field(default_factory=list)
    organizational_mapping: dict = field(default_factory=dict)  # source name -> level
    unresolved_names: list = field(default_factory=list)

    @property
    def needs_resolution(self):
        return bool(self.unresolved_names)


def normalize_name(name):
    """
    Lowercases, drops punctuation and honorific tokens, collapses whitespace.

    "Dr. Siti Aminah, S.Sos" -> "siti aminah"
    """
    text = NAME_PUNCTUATION.sub('', (name or '').lower())
    text = WHITESPACE_RUN.sub(' ', text)
    text = HONORIFIC_PATTERN.sub('', text)
    return WHITESPACE_RUN.sub(' ', text).strip()


def levenshtein_distance(a, b):
    """Edit distance with unit-cost insert, delete and substitute."""
    return Levenshtein.distance(a, b)


def similarity(a, b):
    """(max_len - edit_distance) / max_len, 1.0 for two empty strings."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return (longest - levenshtein_distance(a, b)) / longest


def find_best_match(name, candidates, threshold=SIMILARITY_THRESHOLD):
    """
    Returns (candidate, ratio) for the most similar candidate at or above the
    threshold, or None. Ties keep the earliest candidate.
    """
    target = normalize_name(name)
    if not target:
        return None
    best_name, best_ratio = None, 0.0
    for candidate in candidates:
        normalized = normalize_name(candidate)
        if not normalized:
            continue
        ratio = similarity(target, normalized)
        if ratio >= threshold and ratio > best_ratio:
            best_name, best_ratio = candidate, ratio
    if best_name is None:
        return None
    return best_name, best_ratio


def match_employee_names(names, directory, threshold=SIMILARITY_THRESHOLD):
    """
    Matches every distinct imported name against the directory.

    Args:
        names (list): Names extracted from the header, in column order.
        directory (list): DirectoryEntry records.
        threshold (float): Minimum similarity ratio for a fuzzy match.

    Returns:
        ReconciliationResult
    """
    by_name = {}
    by_normalized = {}
    for entry in directory:
        by_name.setdefault(entry.name, entry)
        key = normalize_name(entry.name)
        if key:
            by_normalized.setdefault(key, entry)
    directory_names = list(by_name)

    result = ReconciliationResult()
    seen = set()
    for name in names:
        if name in seen:
            continue
        seen.add(name)

        entry = by_name.get(name)
        if entry is not None:
            result.matches.append(NameMatchResult(name, entry.name, 1.0, False, TIER_EXACT))
            result.organizational_mapping[name] = entry.organizational_level
            continue

        entry = by_normalized.get(normalize_name(name))
        if entry is not None:
            result.matches.append(NameMatchResult(name, entry.name, 1.0, False, TIER_NORMALIZED))
            result.organizational_mapping[name] = entry.organizational_level
            continue

        best = find_best_match(name, directory_names, threshold)
        if best is not None:
            entry = by_name[best[0]]
            result.matches.append(NameMatchResult(name, entry.name, best[1], False, TIER_FUZZY))
            result.organizational_mapping[name] = entry.organizational_level
            logging.info(f"Fuzzy matched '{name}' -> '{entry.name}' ({best[1]:.1%}).")
            continue

        result.matches.append(NameMatchResult(name, None, 0.0, True, TIER_UNMATCHED))
        result.unresolved_names.append(name)

    logging.info(f"Name matching: {len(result.matches) - len(result.unresolved_names)} matched, "
                 f"{len(result.unresolved_names)} unresolved.")
    return result


def apply_resolution(reconciliation, resolution, directory):
    """
    Folds a caller's resolution mapping into a reconciliation result.

    Args:
        reconciliation (ReconciliationResult): The paused result.
        resolution (dict): imported name -> {'chosen_name', 'organizational_level', 'is_new'}.
        directory (list): DirectoryEntry snapshot; a non-new choice must name one of its entries.

    Returns:
        ReconciliationResult: a new result; names still lacking a resolution stay unresolved.

    Raises:
        ImportDataError: for entries naming an employee that was not awaiting
            resolution, entries without an organizational level, non-text
            fields, or an existing-employee choice missing from the directory.
    """
    resolution = resolution or {}
    pending = set(reconciliation.unresolved_names)
    unexpected = [name for name in resolution if name not in pending]
    if unexpected:
        raise ImportDataError(
            ImportErrorCode.INVALID_RESOLUTION,
            "Resolution given for names that were not awaiting resolution.",
            details={'names': unexpected},
        )
    directory_names = {entry.name for entry in directory}

    mapping = dict(reconciliation.organizational_mapping)
    matches = []
    still_unresolved = []
    for match in reconciliation.matches:
        choice = resolution.get(match.source_name)
        if match.source_name not in pending:
            matches.append(match)
            continue
        if choice is None:
            matches.append(match)
            still_unresolved.append(match.source_name)
            continue

        for key in ('organizational_level', 'chosen_name'):
            if choice.get(key) is not None and not isinstance(choice[key], str):
                raise ImportDataError(
                    ImportErrorCode.INVALID_RESOLUTION,
                    f"Resolution for '{match.source_name}' has a non-text '{key}'.",
                    details={'name': match.source_name, 'field': key},
                )
        level = (choice.get('organizational_level') or '').strip()
        if not level:
            raise ImportDataError(
                ImportErrorCode.INVALID_RESOLUTION,
                f"Resolution for '{match.source_name}' has no organizational level.",
                details={'name': match.source_name},
            )
        is_new = bool(choice.get('is_new'))
        chosen = (choice.get('chosen_name') or '').strip() or match.source_name
        if not is_new and chosen not in directory_names:
            raise ImportDataError(
                ImportErrorCode.INVALID_RESOLUTION,
                f"Resolution for '{match.source_name}' chooses '{chosen}', which is not in the directory.",
                details={'name': match.source_name, 'chosen_name': chosen},
            )
        mapping[match.source_name] = level
        matches.append(NameMatchResult(
            match.source_name,
            None if is_new else chosen,
            1.0,
            is_new,
            TIER_RESOLVED,
        ))

    return ReconciliationResult(matches, mapping, still_unresolved)

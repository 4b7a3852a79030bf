"""Business permit parser for extracting structured fields from OCR text.

This module has no dependencies on Flask or on the OCR engine, so it can be used
from the web application, the CLI and tests alike. Every field is produced by a
small ordered table of matchers; the first matcher that yields a value wins.
Nothing here raises for malformed input - a field that cannot be found is None.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
import logging
import re

logger = logging.getLogger(__name__)

# Fixed score reported whenever any text was recognized
EXTRACTION_CONFIDENCE = 0.85

# Per-field confidence by the kind of matcher that produced the value
SOURCE_CONFIDENCE = {
    "pattern": 0.95,
    "label": 0.9,
    "date_range": 0.8,
    "locality": 0.7,
    "keyword": 0.6,
    "heuristic": 0.4,
}

# Known false positives, compared case-insensitively against the whole cleaned value
ARTIFACT_DENYLIST: dict[str, frozenset[str]] = {
    "address": frozenset({"NOTES"}),
}

# camelCase keys used by the mobile client and the permit backend
FIELD_KEYS = {
    "owner_name": "ownerName",
    "business_name": "businessName",
    "address": "address",
    "business_id_no": "businessIdNo",
    "business_tin": "businessTin",
    "business_permit_no": "businessPermitNo",
    "date_issued": "dateIssued",
    "valid_until": "validUntil",
}


@dataclass(frozen=True)
class ExtractedPermitInfo:
    """Business identity fields extracted from a permit."""

    owner_name: str | None = None
    business_name: str | None = None
    address: str | None = None
    business_id_no: str | None = None
    business_tin: str | None = None
    business_permit_no: str | None = None
    date_issued: str | None = None
    valid_until: str | None = None
    sources: dict[str, str] = field(default_factory=dict, compare=False)
    confidence_scores: dict[str, float] = field(default_factory=dict, compare=False)

    def to_dict(self) -> dict[str, str | None]:
        """Return the fields keyed the way the mobile client and backend expect."""
        return {key: getattr(self, attr) for attr, key in FIELD_KEYS.items()}

    def has_any_field(self) -> bool:
        return any(getattr(self, attr) for attr in FIELD_KEYS)


# --------------------------------------------------------------------------
# Labels
# --------------------------------------------------------------------------

OWNER_LABEL = r"OWNER['’`\s]*S?\s*NAME"
BUSINESS_NAME_LABEL = r"BUSINESS\s*NAME"
ADDRESS_LABEL = r"(?:BUSINESS\s*)?ADDRESS"

# Every caption that can terminate a label-anchored value
KNOWN_LABELS = (
    OWNER_LABEL,
    BUSINESS_NAME_LABEL,
    ADDRESS_LABEL,
    r"BUSINESS\s*ID\s*NO\.?",
    r"(?:BUSINESS\s*)?TIN(?:\s*NO\.?)?[ \t]*:",
    r"BUSINESS\s*PERMIT\s*(?:NO\.?|#)",
    r"DATE\s*ISSUED",
    r"VALID\s*(?:UNTIL|THRU)",
)
_ANY_LABEL = r"\b(?:" + "|".join(KNOWN_LABELS) + r")"

# Words that show up in permit captions and headers, never in an owner's name
LABEL_VOCABULARY = frozenset(
    {
        "ADDRESS",
        "BARANGAY",
        "BUSINESS",
        "CERTIFICATE",
        "CITY",
        "DATE",
        "ID",
        "ISSUED",
        "LICENSING",
        "MAYOR",
        "MAYOR'S",
        "MUNICIPAL",
        "MUNICIPALITY",
        "NAME",
        "NO",
        "NO.",
        "OFFICE",
        "OWNER",
        "OWNER'S",
        "PERMIT",
        "PHILIPPINES",
        "PROVINCE",
        "REPUBLIC",
        "TIN",
        "UNTIL",
        "VALID",
    }
)

BUSINESS_KEYWORDS = (
    "cottages?",
    "rentals?",
    "resorts?",
    "shops?",
    "stores?",
    "services?",
    "cent(?:er|re)s?",
    "enterprises?",
    "trading",
    "restaurants?",
    "eatery",
    "cafe",
    "bakery",
    "bakeshop",
    "salon",
    "pharmacy",
    "hardware",
    "canteen",
    "carinderia",
    "inn",
    "lodge",
    "market",
    "mart",
    "supply",
    "sari-sari",
)
_BUSINESS_KEYWORD_RE = re.compile(r"\b(?:" + "|".join(BUSINESS_KEYWORDS) + r")\b", re.IGNORECASE)

# Header filler words; a run of capitals is split at these when guessing a name
NAME_BREAK_WORDS = LABEL_VOCABULARY | {"AND", "FOR", "OF", "THE"}

# --------------------------------------------------------------------------
# Patterns
# --------------------------------------------------------------------------

BUSINESS_ID_PATTERN = re.compile(r"(?<![A-Za-z0-9])[A-Z]\d{6}-\d{5}(?![\d-])")
TIN_PATTERN = re.compile(r"(?<![\d-])\d{3}-\d{3}-\d{3}-\d{5}(?![\d-])")
PERMIT_NO_PATTERN = re.compile(r"(?<![\d-])\d{4}-\d{10}-\d{4}(?![\d-])")
ISO_DATE_PATTERN = re.compile(r"(?<![\d-])\d{4}-\d{2}-\d{2}(?![\d-])")

_UPPER_WORD = re.compile(r"[A-Z][A-Z'’.\-]*")

# Capitalized words joined by spaces, optionally through a short lowercase connector
_CAPITALIZED_WORD = r"[A-Z][A-Za-z'’&.\-]*"
CAPITALIZED_PHRASE = re.compile(
    rf"(?<![\w'’]){_CAPITALIZED_WORD}(?:[ \t]+(?:(?:of|ng|ni|sa|de|del|la|and|&)[ \t]+)?{_CAPITALIZED_WORD})+"
)
CAPITALIZED_PHRASE_LINE = re.compile(
    r"^[ \t]*([A-Z][\w'’&.\-]*(?:[ \t]+[\w'’&.\-]+){1,5})[ \t]*$",
    re.MULTILINE,
)
BARANGAY_ADDRESS = re.compile(
    r"(?i:\bBARANGAY)[ \t]+\d+[ \t]*,[ \t]*[A-Z][A-Z .\-]*(?:,[ \t]*[A-Z][A-Z .\-]*)*"
)


def _label_pattern(label: str) -> re.Pattern[str]:
    # The value may follow the caption on the same line or start on the next one
    return re.compile(
        rf"\b{label}[ \t]*[:\-]?[ \t]*\n?[ \t]*(?!{_ANY_LABEL})([^\n]+?)(?={_ANY_LABEL}|\n|$)",
        re.IGNORECASE,
    )


def clean_label_value(value: str, label: str) -> str | None:
    """Strip caption text, stray colons/dashes and extra whitespace from a match."""
    value = re.sub(rf"^\s*(?:{label})", "", value, count=1, flags=re.IGNORECASE)
    value = re.sub(r"\s+", " ", value)
    value = value.strip().strip(":-–—").strip()
    return value or None


# --------------------------------------------------------------------------
# Matchers
# --------------------------------------------------------------------------

Matcher = Callable[[str], str | None]


def regex_matcher(pattern: re.Pattern[str]) -> Matcher:
    def match(text: str) -> str | None:
        found = pattern.search(text)
        return found.group(0).strip() if found else None

    return match


def label_matcher(label: str) -> Matcher:
    """Match the text that follows a caption such as ``Owner's Name:``."""
    pattern = _label_pattern(label)

    def match(text: str) -> str | None:
        for found in pattern.finditer(text):
            value = clean_label_value(found.group(1), label)
            if value:
                return value
        return None

    return match


def _has_label_vocabulary(words: list[str]) -> bool:
    return any(word.upper().rstrip(":") in LABEL_VOCABULARY for word in words)


def _uppercase_runs(line: str) -> list[list[str]]:
    runs: list[list[str]] = [[]]
    for word in line.split():
        if _UPPER_WORD.fullmatch(word) and word.upper() not in NAME_BREAK_WORDS:
            runs[-1].append(word)
        elif runs[-1]:
            runs.append([])
    return [run for run in runs if run]


def match_uppercase_name(text: str) -> str | None:
    """Guess an owner name from three or four consecutive all-uppercase words.

    Printed permit forms tend to type the owner's name in capitals, often after a
    caption we do not know (``Proprietor: JUAN DELA CRUZ``). Runs are split at
    caption and header words; a run naming a business type is skipped.
    """
    for line in text.splitlines():
        for run in _uppercase_runs(line):
            if not 3 <= len(run) <= 4:
                continue
            candidate = " ".join(run)
            if _BUSINESS_KEYWORD_RE.search(candidate):
                continue
            return candidate.strip(" .-")
    return None


def match_business_keyword_phrase(text: str) -> str | None:
    """Find a capitalized phrase that carries a business-type keyword (``Aling Nena's Bakery``)."""
    for found in CAPITALIZED_PHRASE.finditer(text):
        candidate = found.group(0).strip(" .-")
        words = candidate.split()
        if all(word.upper() in LABEL_VOCABULARY for word in words):
            continue
        if _BUSINESS_KEYWORD_RE.search(candidate):
            return candidate
    return None


def match_capitalized_phrase(text: str) -> str | None:
    # All-uppercase lines are left alone so an owner name is not picked up twice
    for found in CAPITALIZED_PHRASE_LINE.finditer(text):
        candidate = re.sub(r"\s+", " ", found.group(1)).strip()
        if candidate.isupper() or re.search(r"\d", candidate):
            continue
        if not 5 <= len(candidate) <= 60:
            continue
        if _has_label_vocabulary(candidate.split()):
            continue
        return candidate
    return None


def match_barangay_address(text: str) -> str | None:
    found = BARANGAY_ADDRESS.search(text)
    if not found:
        return None
    return re.sub(r"[ \t]+", " ", found.group(0)).strip(" ,.-")


# --------------------------------------------------------------------------
# Rules
# --------------------------------------------------------------------------


@dataclass(frozen=True)
class FieldRule:
    """Ordered (source, matcher) pairs for a single field."""

    field: str
    matchers: tuple[tuple[str, Matcher], ...]


DEFAULT_RULES: tuple[FieldRule, ...] = (
    FieldRule("business_id_no", (("pattern", regex_matcher(BUSINESS_ID_PATTERN)),)),
    FieldRule("business_tin", (("pattern", regex_matcher(TIN_PATTERN)),)),
    FieldRule("business_permit_no", (("pattern", regex_matcher(PERMIT_NO_PATTERN)),)),
    FieldRule(
        "owner_name",
        (
            ("label", label_matcher(OWNER_LABEL)),
            ("heuristic", match_uppercase_name),
        ),
    ),
    FieldRule(
        "business_name",
        (
            ("label", label_matcher(BUSINESS_NAME_LABEL)),
            ("keyword", match_business_keyword_phrase),
            ("heuristic", match_capitalized_phrase),
        ),
    ),
    FieldRule(
        "address",
        (
            ("label", label_matcher(ADDRESS_LABEL)),
            ("locality", match_barangay_address),
        ),
    ),
)


def find_date_range(text: str) -> tuple[str, str] | None:
    """Return the earliest and latest ISO dates, or None if fewer than two appear.

    A date printed twice counts twice, so a one-day permit gets the same issue
    and expiry date.
    """
    dates = sorted(ISO_DATE_PATTERN.findall(text))
    if len(dates) < 2:
        return None
    return dates[0], dates[-1]


def extraction_succeeded(text: str | None) -> bool:
    return bool(text and text.strip())


def extraction_confidence(text: str | None) -> float:
    return EXTRACTION_CONFIDENCE if extraction_succeeded(text) else 0.0


class PermitParser:
    """Extracts business permit fields from recognized text."""

    def __init__(
        self,
        rules: tuple[FieldRule, ...] = DEFAULT_RULES,
        denylist: Mapping[str, frozenset[str]] | None = None,
    ) -> None:
        self.rules = rules
        self.denylist = ARTIFACT_DENYLIST if denylist is None else denylist

    def extract(self, text: str | None) -> ExtractedPermitInfo:
        """Extract permit fields from OCR text.

        Args:
            text: Full recognized text; may be empty or noisy

        Returns:
            ExtractedPermitInfo with every field either None or a cleaned string
        """
        if text is None or not text.strip():
            logger.debug("No text to extract permit fields from")
            return ExtractedPermitInfo()

        values: dict[str, str] = {}
        sources: dict[str, str] = {}

        for rule in self.rules:
            result = self._apply_rule(rule, text)
            if result:
                source, value = result
                values[rule.field] = value
                sources[rule.field] = source

        date_range = find_date_range(text)
        if date_range:
            values["date_issued"], values["valid_until"] = date_range
            sources["date_issued"] = sources["valid_until"] = "date_range"
        else:
            logger.debug("Fewer than two distinct dates found; leaving date fields empty")

        scores = {name: SOURCE_CONFIDENCE[source] for name, source in sources.items()}
        for name, value in values.items():
            logger.debug(f"  {name}: {value!r} ({sources[name]})")

        return ExtractedPermitInfo(**values, sources=sources, confidence_scores=scores)

    def _apply_rule(self, rule: FieldRule, text: str) -> tuple[str, str] | None:
        for source, matcher in rule.matchers:
            value = matcher(text)
            if not value:
                continue
            if self._is_artifact(rule.field, value):
                logger.debug(f"Discarding {rule.field} artifact {value!r}")
                continue
            return source, value
        return None

    def _is_artifact(self, field_name: str, value: str) -> bool:
        blocked = self.denylist.get(field_name, frozenset())
        return value.strip().upper() in {item.upper() for item in blocked}


_default_parser = PermitParser()


def extract_permit_info(text: str | None) -> ExtractedPermitInfo:
    """Extract permit fields with the default rule table."""
    return _default_parser.extract(text)

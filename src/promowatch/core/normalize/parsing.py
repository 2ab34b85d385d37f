"""
Parsing utilities for promotion price and date fields.

Handles money and date extraction from free-form promotional text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

import dateparser


# =============================================================================
# Money Parsing
# =============================================================================


@dataclass
class ParsedPrice:
    """Result of parsing a price string."""

    amount: Decimal | None
    currency: str
    original: str
    is_range: bool = False
    confidence: float = 0.0


# Currency symbols and their codes (longest first so "US$" wins over "$")
CURRENCY_SYMBOLS: dict[str, str] = {
    "US$": "USD",
    "CA$": "CAD",
    "AU$": "AUD",
    "C$": "CAD",
    "A$": "AUD",
    "$": "USD",
    "€": "EUR",
    "£": "GBP",
    "¥": "JPY",
    "₹": "INR",
}

CURRENCY_CODES = {"USD", "EUR", "GBP", "JPY", "CAD", "AUD", "INR", "CHF", "CNY", "MXN"}

# A number with optional thousands separators/decimals and an optional K/M suffix
AMOUNT_PATTERN = re.compile(
    r"(?<![\d.,])(\d{1,3}(?:[,.]\d{3})+(?:[.,]\d{1,2})?|\d+(?:[.,]\d{1,2})?)\s*([KkMm](?![A-Za-z]))?"
)
RANGE_PATTERN = re.compile(
    r"(\d[\d,.]*)\s*[KkMm]?\s*(?:-|–|—|to)\s*[^\d\s]{0,4}\s*(\d[\d,.]*)",
)
SUFFIX_MULTIPLIERS = {"K": 1_000, "M": 1_000_000}


def parse_price(value: str | None, *, default_currency: str = "USD") -> ParsedPrice:
    """Parse the primary amount from a price string.

    Handles:
    - Currency symbols and codes ($1,299 / USD 1299 / €1.299,00)
    - Thousands separators
    - Ranges ("$899-$1,599" -> lowest figure)
    - "From $X" / "Starting at $X"
    - K/M suffixes ($1.5K)

    Years and other 4-digit numbers next to a currency marker are preferred
    over bare numbers, so "$1,299 per person (2025)" parses as 1299.
    """
    if value is None:
        return ParsedPrice(amount=None, currency=default_currency, original="")

    original = str(value).strip()
    if not original:
        return ParsedPrice(amount=None, currency=default_currency, original=original)

    currency, has_marker = _detect_currency(original, default_currency)

    amounts = _extract_amounts(original)
    if not amounts:
        return ParsedPrice(amount=None, currency=currency, original=original)

    is_range = bool(RANGE_PATTERN.search(original))
    if is_range:
        amount = min(amounts)
    else:
        amount = amounts[0]

    confidence = 0.9 if has_marker else 0.6
    if is_range:
        confidence *= 0.9

    return ParsedPrice(
        amount=amount,
        currency=currency,
        original=original,
        is_range=is_range,
        confidence=confidence,
    )


def _detect_currency(text: str, default_currency: str) -> tuple[str, bool]:
    upper = text.upper()
    for symbol, code in CURRENCY_SYMBOLS.items():
        if symbol in upper:
            return code, True
    for code in CURRENCY_CODES:
        if re.search(rf"\b{code}\b", upper):
            return code, True
    return default_currency, False


def _extract_amounts(text: str) -> list[Decimal]:
    """Extract amounts, preferring the ones attached to a currency marker."""
    marked: list[Decimal] = []
    bare: list[Decimal] = []

    for match in AMOUNT_PATTERN.finditer(text):
        amount = _parse_numeric(match.group(1))
        if amount is None:
            continue
        suffix = (match.group(2) or "").upper()
        if suffix:
            amount *= SUFFIX_MULTIPLIERS[suffix]

        prefix = text[max(0, match.start() - 4):match.start()].upper()
        if any(symbol in prefix for symbol in CURRENCY_SYMBOLS) or any(
            prefix.rstrip().endswith(code) for code in CURRENCY_CODES
        ):
            marked.append(amount)
        else:
            bare.append(amount)

    return marked or bare


def _parse_numeric(text: str) -> Decimal | None:
    """Parse a numeric string, handling commas and decimals."""
    text = text.strip()
    if not text:
        return None

    last_comma = text.rfind(",")
    last_period = text.rfind(".")

    if last_comma > last_period:
        # "1.299,00" is European; "1,299" is US thousands
        if len(text) - last_comma - 1 == 3 and last_period == -1:
            text = text.replace(",", "")
        else:
            text = text.replace(".", "").replace(",", ".")
    elif last_comma == -1 and text.count(".") > 1:
        # "1.299.000" dotted thousands
        text = text.replace(".", "")
    else:
        text = text.replace(",", "")

    try:
        return Decimal(text)
    except InvalidOperation:
        return None


# =============================================================================
# Date Parsing
# =============================================================================


@dataclass
class ParsedDates:
    """Result of parsing the dates referenced in a string."""

    values: list[date] = field(default_factory=list)
    original: str = ""
    format_detected: str | None = None

    @property
    def primary(self) -> date | None:
        """The first (most prominent) date referenced."""
        return self.values[0] if self.values else None


MONTHS = {
    "jan": 1, "january": 1, "feb": 2, "february": 2, "mar": 3, "march": 3,
    "apr": 4, "april": 4, "may": 5, "jun": 6, "june": 6, "jul": 7, "july": 7,
    "aug": 8, "august": 8, "sep": 9, "sept": 9, "september": 9, "oct": 10,
    "october": 10, "nov": 11, "november": 11, "dec": 12, "december": 12,
}
MONTH_NAMES = "|".join(sorted(MONTHS, key=len, reverse=True))

# Ordered from most to least specific
DATE_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\b(\d{4})-(\d{2})-(\d{2})\b"), "iso_date"),
    (re.compile(r"\b(\d{1,2})/(\d{1,2})/(\d{4})\b"), "us_date"),
    (re.compile(r"\b(\d{1,2})/(\d{1,2})/(\d{2})\b"), "us_date_short"),
    (
        re.compile(rf"\b({MONTH_NAMES})\.?\s+(\d{{1,2}})(?:st|nd|rd|th)?,?\s+(\d{{4}})\b", re.IGNORECASE),
        "month_day_year",
    ),
    (
        re.compile(rf"\b(\d{{1,2}})(?:st|nd|rd|th)?\s+({MONTH_NAMES})\.?,?\s+(\d{{4}})\b", re.IGNORECASE),
        "day_month_year",
    ),
    (re.compile(r"\b(\d{1,2})/(\d{4})\b"), "us_month_year"),
    (re.compile(rf"\b({MONTH_NAMES})\.?,?\s+(\d{{4}})\b", re.IGNORECASE), "month_year"),
]

DATE_PREFIXES = re.compile(
    r"^(?:valid|expires?|through|thru|until|till|from|dates?|travel|book by|ends?)\b[:\s]*",
    re.IGNORECASE,
)


def parse_dates(value: str | date | None) -> ParsedDates:
    """Parse the dates referenced in a promotion's date text.

    Handles:
    - ISO dates (2025-03-15)
    - US formats (03/15/2025, 3/15/25)
    - Month names (March 15, 2025 / 15 March 2025)
    - Month precision (06/2025, June 2025 -> first of month)
    - Anything else dateparser understands, as a last resort

    Dates are returned in the order they appear in the text.
    """
    if value is None:
        return ParsedDates()

    if isinstance(value, datetime):
        return ParsedDates(values=[value.date()], original=value.isoformat(), format_detected="datetime")
    if isinstance(value, date):
        return ParsedDates(values=[value], original=value.isoformat(), format_detected="date")

    original = str(value).strip()
    if not original:
        return ParsedDates(original=original)

    found: list[tuple[int, date]] = []
    consumed: list[tuple[int, int]] = []
    detected: str | None = None

    for pattern, name in DATE_PATTERNS:
        for match in pattern.finditer(original):
            if any(start < match.end() and match.start() < end for start, end in consumed):
                continue
            parsed = _build_date(name, match.groups())
            if parsed is None:
                continue
            found.append((match.start(), parsed))
            consumed.append((match.start(), match.end()))
            detected = detected or name

    if found:
        found.sort(key=lambda item: item[0])
        return ParsedDates(values=[d for _, d in found], original=original, format_detected=detected)

    fallback = _parse_with_dateparser(original)
    if fallback is not None:
        return ParsedDates(values=[fallback], original=original, format_detected="dateparser")

    return ParsedDates(original=original)


def _build_date(name: str, groups: tuple[str, ...]) -> date | None:
    try:
        if name == "iso_date":
            return date(int(groups[0]), int(groups[1]), int(groups[2]))
        if name in ("us_date", "us_date_short"):
            year = int(groups[2])
            if year < 100:
                year += 2000 if year < 50 else 1900
            return date(year, int(groups[0]), int(groups[1]))
        if name == "month_day_year":
            return date(int(groups[2]), MONTHS[groups[0].lower()], int(groups[1]))
        if name == "day_month_year":
            return date(int(groups[2]), MONTHS[groups[1].lower()], int(groups[0]))
        if name == "us_month_year":
            return date(int(groups[1]), int(groups[0]), 1)
        if name == "month_year":
            return date(int(groups[1]), MONTHS[groups[0].lower()], 1)
    except (ValueError, KeyError):
        return None
    return None


def _parse_with_dateparser(text: str) -> date | None:
    """Fall back to dateparser for natural-language dates."""
    cleaned = DATE_PREFIXES.sub("", text).strip()
    if not cleaned or not re.search(r"\d", cleaned):
        # Without any digits ("Summer sailings") dateparser only guesses
        return None

    settings = {
        "PREFER_DAY_OF_MONTH": "first",
        "DATE_ORDER": "MDY",
        "RETURN_AS_TIMEZONE_AWARE": False,
        "STRICT_PARSING": False,
        "REQUIRE_PARTS": ["year"],
    }

    try:
        parsed = dateparser.parse(cleaned, settings=settings)
    except (ValueError, TypeError, OverflowError):
        return None

    return parsed.date() if parsed else None

"""
Per-field extraction rules.

Each semantic field owns one ``FieldRules`` entry. The same ordered
``summary_rules`` table serves both the direct-content tier (rules flagged
``direct``) and the business-logic refiner (every rule), so a phrase
combination is only ever described once.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, Optional

from fieldsync.rules.primitives import (
    PatternFamily,
    Predicate,
    Rule,
    capitalize_first,
    clean_and_truncate,
    has_all,
    has_all_any,
    has_any,
    matches,
    normalize_quotes,
)
from fieldsync.schemas.extraction import SemanticKey

MONTHS = (
    "january", "february", "march", "april", "may", "june", "july",
    "august", "september", "october", "november", "december",
)
MONTH_ALT = "|".join(MONTHS)
# "may" is only a month after a temporal preposition; otherwise it is the verb.
MONTH_MENTION_RE = re.compile(
    r"\b(?:" + "|".join(m for m in MONTHS if m != "may") + r")\b"
    r"|\b(?:by|in|before|until|around|after|early|late|mid)[\s-]+may\b",
    re.IGNORECASE,
)

US_STATES = (
    "Alabama", "Alaska", "Arizona", "Arkansas", "California", "Colorado",
    "Connecticut", "Delaware", "Florida", "Georgia", "Hawaii", "Idaho",
    "Illinois", "Indiana", "Iowa", "Kansas", "Kentucky", "Louisiana", "Maine",
    "Maryland", "Massachusetts", "Michigan", "Minnesota", "Mississippi",
    "Missouri", "Montana", "Nebraska", "Nevada", "New Hampshire", "New Jersey",
    "New Mexico", "New York", "North Carolina", "North Dakota", "Ohio",
    "Oklahoma", "Oregon", "Pennsylvania", "Rhode Island", "South Carolina",
    "South Dakota", "Tennessee", "Texas", "Utah", "Vermont", "Virginia",
    "Washington", "West Virginia", "Wisconsin", "Wyoming",
)
STATE_ABBREVIATIONS = frozenset({
    "al", "ak", "az", "ar", "ca", "co", "ct", "de", "fl", "ga", "hi", "id",
    "il", "in", "ia", "ks", "ky", "la", "me", "md", "ma", "mi", "mn", "ms",
    "mo", "mt", "ne", "nv", "nh", "nj", "nm", "ny", "nc", "nd", "oh", "ok",
    "or", "pa", "ri", "sc", "sd", "tn", "tx", "ut", "vt", "va", "wa", "wv",
    "wi", "wy",
})
# Longest names first so "West Virginia" wins over "Virginia".
STATE_RE = re.compile(
    r"\b(" + "|".join(sorted((s.replace(" ", r"\s+") for s in US_STATES), key=len, reverse=True)) + r")\b",
    re.IGNORECASE,
)
REGION_RE = re.compile(r"\b(down south|up north|out west|back east)\b", re.IGNORECASE)

DESTINATION_STOP = (
    r"(?=\s+(?:and|by|in|on|for|next|after|when|because|within|once|with|around|"
    r"before|soon|this|so|to\s+be|where)\b|[,.;!?\"]|$)"
)
DESTINATION_RE = re.compile(
    r"(?:moving|relocating|relocate|move|heading|head)\s+(?:back\s+|out\s+|down\s+|up\s+)?to\s+"
    r"(?:the\s+)?([A-Za-z][A-Za-z .'-]*?)" + DESTINATION_STOP,
    re.IGNORECASE,
)
NOT_PLACES = frozenset({"sell", "buy", "get", "a", "an", "another", "new", "be", "do", "make", "find"})

WORD_NUMBERS = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5, "six": 6,
    "seven": 7, "eight": 8, "nine": 9, "ten": 10,
}

MEMORY_ORDER = (
    SemanticKey.MOTIVATION,
    SemanticKey.EXPECTATIONS,
    SemanticKey.TIMELINE,
    SemanticKey.CONCERNS,
    SemanticKey.OPENNESS_TO_RELIST,
    SemanticKey.NEXT_DESTINATION,
)


@dataclass(frozen=True)
class FieldRules:
    """Everything the pipeline needs to extract one semantic field."""
    key: SemanticKey
    gate: Predicate
    families: tuple[PatternFamily, ...]
    summary_rules: tuple[Rule, ...]
    span_rules: tuple[Rule, ...] = ()
    max_length: int = 40
    min_length: int = 3
    allowed_short: frozenset[str] = field(default_factory=frozenset)
    fallback: str = ""
    memory_label: Optional[str] = None
    accept_raw: Callable[[str], bool] = lambda span: True


def _family(name: str, *patterns: str) -> PatternFamily:
    return PatternFamily(name, tuple(re.compile(p, re.IGNORECASE) for p in patterns))


# ── Money ────────────────────────────────────────────────────────

_AMOUNT = r"(\d[\d,]*(?:\.\d+)?)"
MILLION_RE = re.compile(r"\$\s?" + _AMOUNT + r"\s*(?:million|mil|m)\b|\b" + _AMOUNT + r"\s*(?:million|mil)\b", re.IGNORECASE)
THOUSAND_RE = re.compile(
    r"\$\s?" + _AMOUNT + r"\s*(?:thousand|k)\b|\b" + _AMOUNT + r"\s*thousand\b|\b(\d{2,3}(?:\.\d+)?)k\b",
    re.IGNORECASE,
)
DOLLAR_RE = re.compile(r"\$\s?(\d{1,3}(?:,\d{3})+|\d{4,})(?:\.\d{2})?\b")
CONVERSATIONAL_MILLION_RE = re.compile(r"\ba\s+million\s+(?:and\s+)?(\d{1,3})\b", re.IGNORECASE)
WITHIN_DAYS_RE = re.compile(r"within\s+(\d+)\s+days", re.IGNORECASE)


def _to_number(raw: str) -> Optional[float]:
    try:
        return float(raw.replace(",", ""))
    except ValueError:
        return None


def format_amount(amount: float) -> str:
    """Render a dollar amount the way agents write it: $1.05M, $750K, $950."""
    if amount >= 1_000_000:
        return f"${amount / 1_000_000:.2f}".rstrip("0").rstrip(".") + "M"
    if amount >= 1_000:
        return f"${amount / 1_000:.1f}".rstrip("0").rstrip(".") + "K"
    return f"${amount:g}"


def find_price(text: str) -> Optional[str]:
    """
    Find an explicit price in ``text``.

    A figure only counts as a price when it carries a currency symbol or a
    spelled unit ("million", "thousand"); a bare "23 m" never does.
    """
    text = normalize_quotes(text)
    match = CONVERSATIONAL_MILLION_RE.search(text)
    if match:
        return format_amount(1_000_000 + int(match.group(1)) * 1_000)
    match = MILLION_RE.search(text)
    if match:
        amount = _to_number(match.group(1) or match.group(2))
        if amount is not None:
            return format_amount(amount * 1_000_000 if amount < 1_000 else amount)
    match = THOUSAND_RE.search(text)
    if match:
        raw = next(g for g in match.groups() if g)
        amount = _to_number(raw)
        if amount is not None:
            return format_amount(amount * 1_000 if amount < 100_000 else amount)
    match = DOLLAR_RE.search(text)
    if match:
        amount = _to_number(match.group(1))
        if amount is not None:
            return format_amount(amount)
    return None


def _has_price(text: str) -> bool:
    return find_price(text) is not None


def _price_within_days(text: str) -> Optional[str]:
    price = find_price(text)
    days = WITHIN_DAYS_RE.search(text)
    if price and days:
        return f"{price} / <{days.group(1)} days"
    return None


# ── Places ───────────────────────────────────────────────────────

def find_destination(text: str) -> Optional[str]:
    match = DESTINATION_RE.search(normalize_quotes(text))
    if not match:
        return None
    place = match.group(1).strip()
    if len(place) < 2 or place.split()[0].lower() in NOT_PLACES:
        return None
    return clean_and_truncate(place.title() if place.islower() else place, 25)


def find_state(text: str) -> Optional[str]:
    match = STATE_RE.search(text)
    if not match:
        return None
    return " ".join(part.capitalize() for part in match.group(1).split())


def names_place(span: str) -> bool:
    return bool(STATE_RE.search(span) or REGION_RE.search(span) or DESTINATION_RE.search(span))


# ── Time ─────────────────────────────────────────────────────────

def _by_month(text: str) -> Optional[str]:
    match = re.search(
        r"\b(by|before|around|after|in|until)\s+(?:next\s+|this\s+|early\s+|late\s+|mid[\s-]?)?(" + MONTH_ALT + r")\b",
        text,
        re.IGNORECASE,
    )
    if not match:
        return None
    return f"{match.group(1).capitalize()} {match.group(2).capitalize()}"


def mentions_month(text: str) -> bool:
    return MONTH_MENTION_RE.search(text) is not None


def _bare_month(text: str) -> Optional[str]:
    match = MONTH_MENTION_RE.search(text)
    if not match:
        return None
    return re.split(r"[\s-]+", match.group(0))[-1].capitalize()


def _within_period(text: str) -> Optional[str]:
    match = re.search(r"within\s+(?:the\s+next\s+)?(\d+|a few|a couple of)\s+(days?|weeks?|months?)", text, re.IGNORECASE)
    if not match:
        return None
    return f"Within {match.group(1)} {match.group(2).lower()}"


def _count_period(text: str) -> Optional[str]:
    match = re.search(r"\b(\d+)\s*(?:-|to)\s*(\d+)\s+(months|weeks|years)\b", text, re.IGNORECASE)
    if match:
        return f"{match.group(1)}-{match.group(2)} {match.group(3).lower()}"
    match = re.search(
        r"\b(\d+|a few|a couple(?: of)?|two|three|four|five|six|twelve)\s+(months?|weeks?|years?)\b",
        text,
        re.IGNORECASE,
    )
    if match:
        return f"{match.group(1).lower()} {match.group(2).lower()}"
    return None


def _season(prefix: str) -> Callable[[str], Optional[str]]:
    compiled = re.compile(r"\b" + prefix + r"\s+(year|spring|summer|fall|autumn|winter)\b", re.IGNORECASE)

    def _canonical(text: str) -> Optional[str]:
        match = compiled.search(text)
        return f"{prefix.capitalize()} {match.group(1).lower()}" if match else None

    return _canonical


def looks_like_timeline(span: str) -> bool:
    lowered = span.lower()
    return len(span) < 50 and (
        any(unit in lowered for unit in ("day", "week", "month", "year", "soon", "asap"))
        or mentions_month(lowered)
        or any(ch.isdigit() for ch in span)
    )


# ── Rooms ────────────────────────────────────────────────────────

BEDROOM_RE = re.compile(r"\b(\d+|one|two|three|four|five|six|seven)[\s-]*(?:bed(?:room)?s?|br)\b", re.IGNORECASE)
BATHROOM_RE = re.compile(r"\b(\d+(?:\.5)?|one|two|three|four|five)[\s-]*(?:bath(?:room)?s?|ba)\b", re.IGNORECASE)

PROPERTY_TYPES: tuple[tuple[str, str], ...] = (
    ("multi family", "Multi family"),
    ("multi-family", "Multi family"),
    ("single family", "Single family"),
    ("single-family", "Single family"),
    ("townhouse", "Townhouse"),
    ("townhome", "Townhouse"),
    ("condo", "Condo"),
    ("duplex", "Duplex"),
    ("mobile home", "Mobile home"),
    ("manufactured home", "Mobile home"),
    ("apartment", "Apartment"),
    ("acre", "Land"),
    ("vacant lot", "Land"),
    ("ranch", "Ranch"),
    ("house", "House"),
)


def count_from(raw: str) -> str:
    lowered = raw.lower()
    return str(WORD_NUMBERS.get(lowered, lowered))


# ═════════════════════════════════════════════════════════════════
# Field tables
# ═════════════════════════════════════════════════════════════════

_SAVE_COMMISSION = r"\b(?:sav(?:e|ing)|avoid(?:ing)?|cut(?:ting)?(?:\s+out)?|skip(?:ping)?|not\s+pay(?:ing)?|keep(?:ing)?)\b[^.]{0,25}\bcommissions?\b"
_MOST_MONEY = ("most money", "top dollar", "maximize", "maximum price", "best price")

MOTIVATION = FieldRules(
    key=SemanticKey.MOTIVATION,
    gate=has_any(
        "sell", "because", "reason", "motivat", "commission", "money", "moving",
        "move", "relocat", "downsiz", "retir", "divorce", "job", "save", "upgrad",
    ),
    families=(
        _family(
            "financial",
            r"(?:want(?:s|ed)?\s+to|wanna)\s+(?:save|avoid|cut\s+out)\s+(?:the\s+)?(?:agent\s+)?commissions?",
            r"(?:get|make|keep|maximize)\s+(?:the\s+)?most\s+money(?:\s+out\s+of\s+(?:the\s+)?(?:sale|house|home))?",
            r"(?:save|avoid|cut\s+out|eliminate|skip|bypass)\s+(?:the\s+)?(?:agent\s+)?(?:commissions?|fees|costs)",
        ),
        _family(
            "life_event",
            r"\b(?:job\s+transfer|relocating|moving|divorce|retiring|retirement|downsizing|upgrading)\b",
        ),
        _family(
            "conversational",
            r"(?:because|since|due\s+to|the\s+reason\s+is)\s+(.+?)(?:[.,;]|$)",
        ),
    ),
    summary_rules=(
        Rule(has_all_any(("commission",), ("money", "top dollar", "maximize")), "Save commission, get the most money", 85, direct=True),
        Rule(matches(_SAVE_COMMISSION), "Save commission", 85, direct=True),
        Rule(has_any("already bought", "bought a new", "closed on a new"), "Relocation / Already bought", 85, direct=True),
        Rule(has_any("downsiz", "kids moved out", "empty nest", "too big for"), "Downsizing", 85, direct=True),
        Rule(has_any("job transfer", "transferred", "new job", "work is moving"), "Job relocation", 85, direct=True),
        Rule(matches(r"\b(?:to move to|moving to|relocat\w*)"), "Relocation", 85, direct=True),
        Rule(has_any("divorce", "separat"), "Divorce", 85),
        Rule(has_any("retire"), "Retirement", 85),
        Rule(has_any("upgrad", "bigger house", "bigger home", "more space"), "Upgrading", 85),
        Rule(has_any("inherit", "passed away", "estate"), "Inherited property", 85),
        Rule(has_any(*_MOST_MONEY), "Get the most money", 85),
        Rule(has_any("need to sell"), "Need to sell", 85),
    ),
    span_rules=(
        Rule(has_all("commission", "money"), "Save commission, get the most money"),
        Rule(has_any("commission"), "Save commission"),
        Rule(has_any("most money", "maximize"), "Get the most money"),
        Rule(has_any("money"), "Get the most money"),
        Rule(has_any("moving", "relocat"), "Relocation"),
        Rule(has_any("downsiz"), "Downsizing"),
        Rule(has_any("retir"), "Retirement"),
        Rule(has_any("divorce"), "Divorce"),
        Rule(has_any("upgrad"), "Upgrading"),
    ),
    max_length=40,
    fallback="Personal reasons",
    memory_label="Motivation",
)

_PRICE_RULES = (
    Rule(_has_price, find_price, 90, direct=True),
)

EXPECTATIONS = FieldRules(
    key=SemanticKey.EXPECTATIONS,
    gate=has_any(
        "price", "$", "million", "thousand", "money", "expect", "hoping", "hope",
        "important", "dollar", "value", "quick", "fast", "smooth", "easy",
        "hassle", "control",
    ),
    families=(
        _family(
            "financial",
            r"\$\s?\d[\d,]*(?:\.\d+)?\s*(?:million|mil|m|thousand|k)?\b",
            r"\b\d[\d,]*(?:\.\d+)?\s*(?:million|thousand)\b",
            r"\ba\s+million\s+(?:and\s+)?\d{1,3}\b",
        ),
        _family(
            "outcome",
            r"(?:get|make|keep|maximize)\s+(?:the\s+)?most\s+money(?:\s+(?:possible|out\s+of|from)[^.,;]*)?",
            r"(?:top\s+dollar|best\s+(?:price|value)|maximum\s+(?:price|value))",
            r"(?:fair|good|competitive)\s+(?:market\s+)?(?:price|value)",
        ),
        _family(
            "process",
            r"(?:smooth|easy|hassle.free|straightforward|simple|quick|fast)\s+(?:process|transaction|deal|sale|close|closing)",
        ),
        _family(
            "conversational",
            r"(?:expect(?:ing|s)?|hoping|hope)\s+(?:to\s+)?(?:get|make|receive|sell\s+for)\s+(.+?)(?:[.,;]|$)",
        ),
    ),
    summary_rules=(
        Rule(matches(r"within\s+\d+\s+days"), _price_within_days, 90),
        *_PRICE_RULES,
        Rule(has_all_any(("commission",), _MOST_MONEY), "Get the most money, save commission", 85),
        Rule(has_any(*_MOST_MONEY), "Get the most money possible", 85, direct=True),
        Rule(has_any("full list price", "full asking price"), "Full list price", 85, direct=True),
        Rule(has_any("near list price", "close to asking"), "Near list price", 85, direct=True),
        Rule(has_all("control", "process"), "Control over the process", 85, direct=True),
        Rule(matches(r"\b(?:quick|fast)\s+(?:sale|close|closing)|sell\s+(?:it\s+)?(?:quickly|fast)"), "Quick sale", 85, direct=True),
        Rule(matches(r"\b(?:smooth|easy|hassle.free|simple)\b"), "Smooth, easy sale", 85),
        Rule(has_all("fair", "price"), "Fair market price", 85),
        Rule(has_any("market value"), "Market value", 85),
    ),
    span_rules=(
        Rule(has_any("most money", "top dollar"), "Get the most money possible"),
        Rule(has_all("maximize", "money"), "Get the most money possible"),
        Rule(_has_price, find_price),
        Rule(has_any("best price", "best value"), "Best price"),
        Rule(has_all("fair", "price"), "Fair market price"),
        Rule(has_any("market value"), "Market value"),
        Rule(has_any("quick", "fast"), "Quick sale"),
        Rule(has_any("smooth", "easy", "hassle"), "Smooth, easy sale"),
    ),
    max_length=35,
    fallback="Fair market value",
    memory_label="Expects",
)

_AGENT_CALLS = (
    r"(?:frustrat|annoy|tired|disappoint|overwhelm)\w*\s+(?:by|with|of|about)\s+(?:all\s+(?:the\s+)?|the\s+|constant\s+)?"
    r"(?:real\s+estate\s+)?(?:agent|realtor)s?\s+(?:calls|calling)"
    r"|(?:too\s+many|lots?\s+of|constant|non-?stop)\s+(?:calls\s+from\s+(?:agents|realtors)|(?:agent|realtor)\s+calls)"
)
_MORE_AGENTS = (
    r"more\s+(?:agents|realtors)\s+than\s+buyers"
    r"|(?:agents|realtors)\s+than\s+buyers\s+(?:are\s+)?calling"
    r"|every\s+\w+\s+buyers?[^.]{0,40}(?:agents|realtors)"
    r"|buyers?\s+versus\s+(?:agents|realtors)"
)
_UNQUALIFIED = r"\b(?:unqualified|not\s+qualified|aren'?t\s+qualified|unserious|not\s+serious|tire[\s-]?kickers)\b"

DISAPPOINTMENTS = FieldRules(
    key=SemanticKey.DISAPPOINTMENTS,
    gate=has_any(
        "disappoint", "frustrat", "challeng", "difficult", "problem", "struggl",
        "annoy", "upset", "lowball", "low-ball", "low ball", "qualified",
        "showing", "tire", "calls",
    ),
    families=(
        _family(
            "emotional",
            r"(?:disappointed|frustrated|upset|annoyed)\s+(?:by|with|about|that)\s+(.+?)(?:[.,;]|$)",
            r"(?:expressed|has|voiced)\s+(?:disappointment|frustration)\s+(?:about|with|over)\s+(.+?)(?:[.,;]|$)",
            r"(?:challenging|disappointing|difficult|frustrating)\s+(?:part|thing)\s+(?:has\s+been|was|is)\s+(.+?)(?:[.,;]|$)",
        ),
        _family(
            "market",
            r"(?:quality|type|caliber)\s+of\s+(?:the\s+)?buyers?",
            r"buyer\s+quality",
            r"low[\s-]?ball\s+offers?",
            r"(?:unqualified|unserious|not\s+serious)\s+buyers?",
            r"more\s+agents?\s+than\s+buyers?",
        ),
    ),
    summary_rules=(
        Rule(matches(_AGENT_CALLS), "Agent calls", 90, direct=True),
        Rule(matches(_MORE_AGENTS), "More agents calling than buyers", 85, direct=True),
        Rule(matches(_UNQUALIFIED), "Unqualified buyers", 85, direct=True),
        Rule(matches(r"quality\s+of\s+(?:the\s+)?buyers|buyer\s+quality"), "Quality of buyers", 90, direct=True),
        Rule(matches(r"low[\s-]?ball"), "Lowball offers", 85, direct=True),
        Rule(has_any("concession", "owner financ", "seller financ"), "Buyers asking for concessions", 85),
        Rule(matches(r"\b(?:no|few|not\s+many|not\s+enough)\s+(?:showings|offers|serious\s+offers)"), "Lack of showings or offers", 85),
        Rule(has_all_any(("buyer",), ("quality",)), "Quality of buyers", 85),
        Rule(has_any("previous agent", "last agent", "former agent"), "Previous agent experience", 85),
    ),
    span_rules=(
        Rule(matches(_MORE_AGENTS), "More agents calling than buyers"),
        Rule(has_all("buyer", "quality"), "Quality of buyers"),
        Rule(matches(r"low[\s-]?ball"), "Lowball offers"),
        Rule(matches(_UNQUALIFIED), "Unqualified buyers"),
        Rule(has_any("agent", "realtor"), "Previous agent experience"),
    ),
    max_length=35,
    fallback="Market conditions",
)

_CONCERN = r"(?:concern|worr|afraid|nervous|anxious)\w*"

CONCERNS = FieldRules(
    key=SemanticKey.CONCERNS,
    gate=has_any("concern", "worr", "afraid", "nervous", "anxious", "unsure"),
    families=(
        _family(
            "emotional",
            r"(?:main|biggest|only|primary)\s+(?:concern|worry)\s+(?:is|was)\s+(.+?)(?:[.,;]|$)",
            r"(?:concerned|worried|afraid|nervous|anxious)\s+(?:about|that|of)\s+(.+?)(?:[.,;]|$)",
            r"concerns?\s+(?:about|over|regarding|with)\s+(.+?)(?:[.,;]|$)",
        ),
        _family(
            "temporal",
            r"getting\s+it\s+done\s+(?:in\s+)?(?:our\s+|the\s+)?(?:time\s*frame|timeline)",
            r"(?:time\s*frame|timeline)",
        ),
    ),
    summary_rules=(
        Rule(
            matches(r"no\s+(?:major\s+|real\s+|other\s+)?concerns|" + _CONCERN + r"[^.]{0,30}(?:not\s+at\s+this\s+time|nothing|none|not\s+really)"),
            "No major concerns", 85, direct=True,
        ),
        Rule(matches(_CONCERN + r"[^.]{0,40}(?:buyer\s+quality|quality\s+of\s+(?:the\s+)?buyers)"), "Buyer quality", 90, direct=True),
        Rule(matches(_CONCERN + r"[^.]{0,40}(?:time\s*frame|timeline|in\s+time|on\s+time|deadline)|getting\s+it\s+done\s+in\s+(?:our|the)\s+time"), "Meeting timeline", 85, direct=True),
        Rule(matches(_CONCERN + r"[^.]{0,40}(?:paperwork|legal|contract|closing|escrow|inspection|title)"), "Paperwork and closing", 85, direct=True),
        Rule(matches(_CONCERN + r"[^.]{0,40}(?:safety|strangers|security|people\s+coming)"), "Safety with strangers", 85, direct=True),
        Rule(matches(_CONCERN + r"[^.]{0,40}(?:scam|fraud)"), "Scams", 85, direct=True),
        Rule(matches(_CONCERN + r"[^.]{0,40}(?:pric|market|value|apprais)"), "Pricing and market", 85, direct=True),
        Rule(matches(_AGENT_CALLS), "Agent calls", 85),
        Rule(has_all_any(("concern",), ("buyer",)), "Buyer quality", 85),
    ),
    span_rules=(
        Rule(has_all("buyer", "quality"), "Buyer quality"),
        Rule(matches(r"not\s+at\s+this\s+time|^nothing|^none"), "No major concerns"),
        Rule(has_any("timeline", "time frame", "timeframe", "time"), "Meeting timeline"),
    ),
    max_length=40,
    fallback="No major concerns",
    memory_label="Concern",
)

NEXT_DESTINATION = FieldRules(
    key=SemanticKey.NEXT_DESTINATION,
    gate=lambda text: has_any(
        "mov", "relocat", "go after", "planning to go", "destination", "stay",
        "south", "north", "west", "east", "closer to", "heading",
    )(text) or STATE_RE.search(text) is not None,
    families=(
        _family(
            "locational",
            DESTINATION_RE.pattern,
            r"(?:planning|plan|going)\s+to\s+go\s+(?:to\s+)?([A-Za-z][A-Za-z .'-]+?)(?:[,.;!?]|$)",
            REGION_RE.pattern,
            STATE_RE.pattern,
        ),
        _family(
            "answers",
            r"(?:staying\s+local|staying\s+here|staying\s+in\s+the\s+area|not\s+sure|haven'?t\s+decided)",
        ),
    ),
    summary_rules=(
        Rule(lambda text: DESTINATION_RE.search(text) is not None, find_destination, 90, direct=True),
        Rule(matches(r"staying\s+(?:local|here|in\s+(?:the\s+)?(?:area|town))|stay\s+(?:local|in\s+town)"), "Staying local", 85, direct=True),
        Rule(lambda text: REGION_RE.search(text) is not None, lambda text: capitalize_first(REGION_RE.search(text).group(1).lower()), 85, direct=True),
        Rule(matches(r"not\s+sure\s+where|haven'?t\s+decided|undecided"), "Not sure yet", 85),
        Rule(lambda text: STATE_RE.search(text) is not None, find_state, 85),
    ),
    span_rules=(
        Rule(lambda text: REGION_RE.search(text) is not None, lambda text: capitalize_first(REGION_RE.search(text).group(1).lower())),
        Rule(matches(r"staying\s+local|staying\s+here"), "Staying local"),
        Rule(matches(r"not\s+sure|haven'?t\s+decided"), "Not sure yet"),
        Rule(lambda text: STATE_RE.search(text) is not None, find_state),
    ),
    max_length=25,
    min_length=2,
    allowed_short=STATE_ABBREVIATIONS,
    fallback="Not specified",
    memory_label="Moving",
)

TIMELINE = FieldRules(
    key=SemanticKey.TIMELINE,
    gate=lambda text: has_any(
        "when", "by ", "before", "within", "month", "week", "year", "soon",
        "asap", "timeline", "time frame", "timeframe", "christmas", "spring",
        "summer", "fall", "winter", "rush", "immediately", "flexible",
    )(text) or mentions_month(text),
    families=(
        _family(
            "temporal",
            r"(?:by|before|within|end\s+of)\s+(?:the\s+)?(?:next\s+)?(?:year|month|week|christmas|" + MONTH_ALT + r")",
            r"(?:next|this)\s+(?:year|month|week|spring|summer|fall|winter)",
            r"(?:within\s+|in\s+)?\d+\s+(?:days?|weeks?|months?|years?)",
            r"year[\s-]?end",
            r"\b(?:asap|urgent|immediately|soon|quickly)\b",
        ),
        _family("calendar", MONTH_MENTION_RE.pattern),
    ),
    summary_rules=(
        Rule(matches(r"within\s+(?:the\s+next\s+)?(?:\d+|a few|a couple of)\s+(?:days?|weeks?|months?)"), _within_period, 90, direct=True),
        Rule(matches(r"\b(?:by|before|around|after|in|until)\s+(?:next\s+|this\s+|early\s+|late\s+|mid[\s-]?)?(?:" + MONTH_ALT + r")\b"), _by_month, 90, direct=True),
        Rule(matches(r"(?:by|before|around)\s+christmas"), "By Christmas", 90, direct=True),
        Rule(matches(r"year[\s-]?end|end\s+of\s+(?:the|this)\s+year"), "Year-end", 90, direct=True),
        Rule(matches(r"\bnext\s+(?:year|spring|summer|fall|autumn|winter)\b"), _season("next"), 85, direct=True),
        Rule(matches(r"\bthis\s+(?:year|spring|summer|fall|autumn|winter)\b"), _season("this"), 85, direct=True),
        Rule(matches(r"\b(?:asap|as\s+soon\s+as\s+possible|immediately|right\s+away|urgent)"), "ASAP", 85, direct=True),
        Rule(matches(r"\b(?:\d+|a few|a couple|two|three|four|five|six|twelve)\s+(?:months?|weeks?|years?)\b"), _count_period, 85),
        Rule(has_any("christmas"), "Christmas", 85),
        Rule(mentions_month, _bare_month, 80),
        Rule(matches(r"no\s+(?:rush|hurry)|flexible|whenever"), "Flexible", 80),
    ),
    span_rules=(
        Rule(has_any("christmas"), "Christmas"),
        Rule(matches(r"year[\s-]?end|end\s+of\s+(?:the\s+)?year"), "Year-end"),
        Rule(has_any("next year"), "Next year"),
        Rule(matches(r"\b(?:asap|immediately|urgent)\b"), "ASAP"),
    ),
    max_length=30,
    allowed_short=frozenset({"asap", "soon"}),
    fallback="Flexible timeline",
    memory_label="Timeline",
    accept_raw=looks_like_timeline,
)

ASKING_PRICE = FieldRules(
    key=SemanticKey.ASKING_PRICE,
    gate=has_any("price", "$", "million", "thousand", "asking", "list", "hoping to get", "worth"),
    families=(
        _family(
            "financial",
            r"\$\s?\d[\d,]*(?:\.\d+)?\s*(?:million|mil|m|thousand|k)?\b",
            r"\b\d[\d,]*(?:\.\d+)?\s*(?:million|thousand)\b",
            r"\ba\s+million\s+(?:and\s+)?\d{1,3}\b",
        ),
    ),
    summary_rules=_PRICE_RULES,
    span_rules=_PRICE_RULES,
    max_length=20,
    min_length=2,
    fallback="Not discussed",
)

_BUYER_PAYS = r"buyer\s+(?:pays?|paid|covers?|covered)"

OPENNESS_TO_RELIST = FieldRules(
    key=SemanticKey.OPENNESS_TO_RELIST,
    gate=has_any("agent", "realtor", "relist", "re-list", "list with", "broker"),
    families=(
        _family(
            "conditional",
            r"open\s+to\s+(?:working\s+with\s+)?(?:an?\s+)?(?:agent|realtor)\s+(?:if|when|provided|as\s+long\s+as)\s+(.+?)(?:[.;]|$)",
            r"work\s+with\s+an?\s+(?:agent|realtor)\s+(?:if|when|provided|as\s+long\s+as)\s+(.+?)(?:[.;]|$)",
        ),
        _family(
            "conversational",
            r"open\s+to\s+working\s+with\s+(?:an?\s+)?agent[^.]*?\b(yes|no|maybe|depend\w*|sure|absolutely)\b[^.]*",
            r"working\s+with\s+an?\s+agent[^.]*?\b(maybe|yes|no|depending)\b",
        ),
    ),
    summary_rules=(
        Rule(matches(r"open\s+to\s+(?:working\s+with\s+)?(?:an?\s+)?(?:agent|realtor)[^.]{0,60}" + _BUYER_PAYS), "Yes, if buyer pays commission", 90, direct=True),
        Rule(matches(r"(?:agent|realtor)[^.]{0,40}if\s+(?:the\s+)?" + _BUYER_PAYS), "Yes, if buyer pays commission", 90, direct=True),
        Rule(
            matches(
                r"(?:not\s+(?:open|interested)\s+(?:to|in)\s+(?:working\s+with\s+)?(?:an?\s+)?(?:agent|realtor)"
                r"|(?:won'?t|will\s+not|doesn'?t\s+want\s+to|does\s+not\s+want\s+to)\s+(?:work\s+with|use|hire)\s+(?:an?\s+)?(?:agent|realtor)"
                r"|sell(?:ing)?\s+(?:it\s+)?(?:100%\s+)?on\s+(?:their|his|her|my|our)\s+own)"
            ),
            "No, selling on own", 85, direct=True,
        ),
        Rule(
            matches(r"(?:maybe|possibly|depend\w*|might\s+consider|would\s+consider)[^.]{0,40}(?:agent|realtor|situation)|(?:agent|realtor)[^.]{0,60}\b(?:maybe|depend\w*|possibly)\b"),
            "Maybe", 85, direct=True,
        ),
        Rule(matches(r"open\s+to\s+(?:working\s+with\s+)?(?:an?\s+)?(?:agent|realtor)"), "Yes, open to agent", 85, direct=True),
    ),
    span_rules=(
        Rule(matches(_BUYER_PAYS + r"|commission"), "Yes, if buyer pays commission"),
        Rule(matches(r"\b(?:maybe|depending|depends|perhaps|possibly)\b"), "Maybe"),
        Rule(matches(r"not\s+at\s+this\s+time"), "Not at this time"),
        Rule(matches(r"\b(?:no|nope)\b|not\s+interested"), "No"),
        Rule(matches(r"\b(?:yes|yeah|sure|absolutely|definitely)\b"), "Yes"),
    ),
    max_length=35,
    min_length=2,
    allowed_short=frozenset({"yes", "no", "maybe"}),
    fallback="Not discussed",
    memory_label="Agent",
)

FIELD_RULES: dict[SemanticKey, FieldRules] = {
    rules.key: rules
    for rules in (
        MOTIVATION,
        EXPECTATIONS,
        DISAPPOINTMENTS,
        CONCERNS,
        NEXT_DESTINATION,
        TIMELINE,
        ASKING_PRICE,
        OPENNESS_TO_RELIST,
    )
}

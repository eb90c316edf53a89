"""
Fuzzy record matching for assistant actions.

The LLM rarely knows record ids; it describes targets instead ("the house
in Camburi around 1.4 million"). These helpers score every candidate record
against that description and return the best matches with a confidence
between 0 and 1.
"""

import logging
import re
import unicodedata
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from django.core.exceptions import ValidationError as DjangoValidationError
from rapidfuzz.distance import Levenshtein

from crm.models import Client, Owner, FinancialTransaction
from properties.models import Property, Neighborhood

logger = logging.getLogger(__name__)

MAX_MATCHES = 10
PROPERTY_MIN_SCORE = 0.3
PARTY_MIN_SCORE = 0.4

AROUND_PATTERN = re.compile(r'em\s*torno\s*de\s*([\d.,]+)')


@dataclass
class MatchResult:
    item: Any
    confidence: float


# =============================================================================
# TEXT SIMILARITY
# =============================================================================

def normalize_text(text: Optional[str]) -> str:
    """Lowercase, trim and drop accents (NFD without combining marks)."""
    if not text:
        return ''
    decomposed = unicodedata.normalize('NFD', str(text).lower().strip())
    return ''.join(ch for ch in decomposed if not unicodedata.combining(ch))


def levenshtein_distance(a: str, b: str) -> int:
    """Edit distance between the normalized forms of ``a`` and ``b``."""
    return Levenshtein.distance(normalize_text(a), normalize_text(b))


def fuzzy_match(a: Optional[str], b: Optional[str], threshold: float = 0.6) -> float:
    """
    Similarity score in [0, 1].

    Containment scores ``0.9 * shorter / longer``; otherwise the Levenshtein
    similarity counts only when it reaches ``threshold``.
    """
    if not a or not b:
        return 0.0

    s1, s2 = normalize_text(a), normalize_text(b)
    if s1 == s2:
        return 1.0

    longer, shorter = max(len(s1), len(s2)), min(len(s1), len(s2))
    if s1 in s2 or s2 in s1:
        return 0.9 * (shorter / longer)

    if longer == 0:
        return 1.0

    similarity = 1 - (levenshtein_distance(a, b) / longer)
    return similarity if similarity >= threshold else 0.0


# =============================================================================
# PRICE & AMENITY SCORING
# =============================================================================

def _parse_brazilian_number(text: str) -> Optional[float]:
    """``1.500.000,00`` -> 1500000.0"""
    try:
        return float(text.replace('.', '').replace(',', '.'))
    except ValueError:
        return None


def parse_price_range(value: Union[str, int, float, list, tuple, None]) -> Optional[Tuple[float, float]]:
    """
    Turn a price hint into a (min, max) range.

    Pairs are used as given; single values become a ±10% range.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (list, tuple)):
        if len(value) != 2:
            return None
        try:
            return float(value[0]), float(value[1])
        except (TypeError, ValueError):
            return None

    if isinstance(value, (int, float)):
        number = float(value)
        return number - number * 0.1, number + number * 0.1

    if isinstance(value, str):
        match = AROUND_PATTERN.search(normalize_text(value))
        number = _parse_brazilian_number(match.group(1) if match else value.strip())
        if number is not None:
            return number - number * 0.1, number + number * 0.1

    return None


def score_price(price: float, price_range: Tuple[float, float]) -> float:
    low, high = price_range
    if low == high:
        margin = low * 0.15
        low, high = low - margin, high + margin

    mid = (low + high) / 2
    if mid <= 0:
        return 0.0
    diff = abs(price - mid)

    if low <= price <= high:
        return 1 - (diff / mid) * 0.3
    if diff <= mid * 0.3:
        return 0.6 - (diff / mid) * 0.3
    return 0.0


def score_amenity_match(amenities: List[str], wanted: str) -> float:
    """Best score of ``wanted`` against a property's amenity list."""
    if not amenities or not wanted:
        return 0.0

    target = normalize_text(wanted)
    best = 0.0
    for amenity in amenities:
        normalized = normalize_text(amenity)
        if target in normalized or normalized in target:
            best = max(best, 0.9)
        best = max(best, fuzzy_match(amenity, wanted, 0.5))
    return best


# =============================================================================
# RECORD SEARCH
# =============================================================================

def _get_by_id(model, pk) -> List[MatchResult]:
    try:
        item = model.objects.filter(pk=pk).first()
    except (DjangoValidationError, ValueError):
        return []
    return [MatchResult(item, 1.0)] if item else []


def _top(scored: List[MatchResult]) -> List[MatchResult]:
    scored.sort(key=lambda match: match.confidence, reverse=True)
    return scored[:MAX_MATCHES]


def find_properties(data: Dict[str, Any]) -> List[MatchResult]:
    """
    Properties matching an action payload.

    ``id`` is an exact lookup; otherwise ``search_criteria``
    (neighborhood, price_range, title, amenities) is scored per property and
    averaged over the criteria given.
    """
    if data.get('id'):
        return _get_by_id(Property, data['id'])

    criteria = data.get('search_criteria')
    if not isinstance(criteria, dict):
        return []

    neighborhood = (criteria.get('neighborhood') or '').strip()
    price_range = parse_price_range(criteria.get('price_range')) if criteria.get('price_range') else None
    title = (criteria.get('title') or '').strip()
    amenities = criteria.get('amenities') if isinstance(criteria.get('amenities'), list) else None

    scored = []
    for prop in Property.objects.select_related('neighborhood'):
        total = 0.0
        count = 0

        if neighborhood:
            count += 1
            if prop.neighborhood:
                total += fuzzy_match(prop.neighborhood.name, neighborhood, 0.5)

        if criteria.get('price_range'):
            count += 1
            if price_range:
                total += score_price(float(prop.price), price_range)

        if title:
            count += 1
            total += fuzzy_match(prop.title, title, 0.3)
            total += fuzzy_match(prop.description or '', title, 0.3) * 0.5

        if amenities:
            count += 1
            total += max((score_amenity_match(prop.amenities or [], wanted) for wanted in amenities), default=0.0)

        if count:
            average = total / count
            if average >= PROPERTY_MIN_SCORE:
                scored.append(MatchResult(prop, average))

    logger.debug(f"Property search matched {len(scored)} candidates")
    return _top(scored)


def _find_parties(model, data: Dict[str, Any]) -> List[MatchResult]:
    if data.get('id'):
        return _get_by_id(model, data['id'])

    name = data.get('name')
    email = data.get('email')
    if not name and not email:
        return []

    scored = []
    for party in model.objects.all():
        total = 0.0
        count = 0

        if name:
            count += 1
            total += fuzzy_match(party.name, name, 0.5)

        if email and party.email:
            count += 1
            total += 1.0 if normalize_text(party.email) == normalize_text(email) else 0.0

        if count:
            average = total / count
            if average >= PARTY_MIN_SCORE:
                scored.append(MatchResult(party, average))

    return _top(scored)


def find_clients(data: Dict[str, Any]) -> List[MatchResult]:
    """Clients matching by id, or by fuzzy name and exact email."""
    return _find_parties(Client, data)


def find_owners(data: Dict[str, Any]) -> List[MatchResult]:
    """Owners matching by id, or by fuzzy name and exact email."""
    return _find_parties(Owner, data)


def find_neighborhoods(data: Dict[str, Any]) -> List[MatchResult]:
    """Neighborhoods matching by id or fuzzy name."""
    if data.get('id'):
        return _get_by_id(Neighborhood, data['id'])
    if not data.get('name'):
        return []

    scored = []
    for neighborhood in Neighborhood.objects.all():
        score = fuzzy_match(neighborhood.name, data['name'], 0.4)
        if score > 0:
            scored.append(MatchResult(neighborhood, score))
    return _top(scored)


def find_financials(data: Dict[str, Any]) -> List[MatchResult]:
    """Financial transactions matching by id or fuzzy description."""
    if data.get('id'):
        return _get_by_id(FinancialTransaction, data['id'])
    if not data.get('description'):
        return []

    scored = []
    for transaction in FinancialTransaction.objects.all():
        score = fuzzy_match(transaction.description, data['description'], 0.4)
        if score > 0:
            scored.append(MatchResult(transaction, score))
    return _top(scored)

"""
Business Logic Services for the brokerage application.

This module implements the shared business rules behind the property
catalogue: URL slugs, display ordering and the data-maintenance fixes that
clean imported listings.

Key Features:
- Accent-aware slug generation with collision suffixes (-2, -3, ...)
- "Newest first" display ordering for manually curated listings
- Transactional bulk re-ordering
- Condominium type detection from listing text
- Neighborhood misspelling correction and assignment

Business Philosophy:
- Views and serializers stay thin; anything reused by the admin API, the
  intelligence assistant and management commands lives here.
"""

import logging
import re
import unicodedata
from decimal import Decimal
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any

from django.db import transaction
from django.db.models import Max

from properties.models import Property, Neighborhood
from services import BusinessLogicError

logger = logging.getLogger(__name__)


# =============================================================================
# DATA CLASSES FOR BUSINESS LOGIC
# =============================================================================

@dataclass
class SlugRegenerationResult:
    """Outcome of a full slug regeneration pass."""
    updated: int = 0
    errors: List[str] = field(default_factory=list)


@dataclass
class OrderUpdate:
    """A single display-order change requested by the admin panel."""
    property_id: str
    display_order: int


# =============================================================================
# SLUG GENERATION
# =============================================================================

def slugify(text: str) -> str:
    """
    Build a URL slug from free text.

    Accents are decomposed and dropped ("Boiçucanga" -> "boicucanga"),
    anything outside letters, digits, whitespace and hyphens is removed,
    and whitespace runs become single hyphens.

    Args:
        text: Title or name to convert

    Returns:
        Lowercase ASCII slug (may be empty)
    """
    if not text:
        return ''

    value = unicodedata.normalize('NFD', str(text).lower())
    value = ''.join(ch for ch in value if unicodedata.category(ch) != 'Mn')
    value = re.sub(r'[^a-z0-9\s-]', '', value)
    value = value.strip()
    value = re.sub(r'\s+', '-', value)
    value = re.sub(r'-+', '-', value)
    return value.strip('-')


def _unique_slug(model, base_slug: str, exclude_id=None) -> str:
    """Append -2, -3, ... to ``base_slug`` until no other row uses it."""
    base_slug = base_slug or 'item'
    candidate = base_slug
    counter = 2

    queryset = model.objects.all()
    if exclude_id is not None:
        queryset = queryset.exclude(pk=exclude_id)

    while queryset.filter(slug=candidate).exists():
        candidate = f"{base_slug}-{counter}"
        counter += 1

    return candidate


def generate_unique_property_slug(title: str, exclude_id=None) -> str:
    """
    Generate a property slug that no other property uses.

    Args:
        title: Property title
        exclude_id: Primary key of the property being updated, if any

    Returns:
        Unique slug
    """
    return _unique_slug(Property, slugify(title), exclude_id)


def generate_unique_neighborhood_slug(name: str, exclude_id=None) -> str:
    """Generate a neighborhood slug that no other neighborhood uses."""
    return _unique_slug(Neighborhood, slugify(name), exclude_id)


def regenerate_all_slugs() -> SlugRegenerationResult:
    """
    Recompute every property slug from its title.

    Rows whose slug is already correct are left untouched. Failures are
    collected per property instead of aborting the whole pass.
    """
    result = SlugRegenerationResult()

    for prop in Property.objects.all().order_by('created_at'):
        try:
            new_slug = generate_unique_property_slug(prop.title, exclude_id=prop.pk)
            if new_slug != prop.slug:
                prop.slug = new_slug
                prop.save(update_fields=['slug', 'updated_at'])
                result.updated += 1
        except Exception as e:
            logger.warning(f"Slug regeneration failed for property {prop.pk}: {str(e)}")
            result.errors.append(f"Property {prop.pk}: {str(e)}")

    logger.info(f"Regenerated {result.updated} property slugs ({len(result.errors)} errors)")
    return result


# =============================================================================
# DISPLAY ORDERING
# =============================================================================

def next_display_order() -> int:
    """
    Display order for a newly created property.

    Listings sort by display_order descending, so max + 1 puts the new
    property first.
    """
    current_max = Property.objects.aggregate(max_order=Max('display_order'))['max_order']
    return (current_max or 0) + 1


def validate_display_order(value: Any) -> Optional[int]:
    """Return ``value`` as a non-negative int, or None when it is not one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def apply_bulk_order(updates: List[OrderUpdate]) -> int:
    """
    Apply several display-order changes atomically.

    Args:
        updates: Validated order changes

    Returns:
        Number of properties updated

    Raises:
        BusinessLogicError: If any referenced property does not exist
    """
    with transaction.atomic():
        updated_count = 0
        for update in updates:
            changed = Property.objects.filter(pk=update.property_id).update(
                display_order=update.display_order
            )
            if not changed:
                raise BusinessLogicError(f"Property {update.property_id} not found")
            updated_count += changed

    logger.info(f"Bulk order update applied to {updated_count} properties")
    return updated_count


# =============================================================================
# SIMILAR PROPERTIES
# =============================================================================

SIMILAR_PRICE_LOWER = Decimal('0.7')
SIMILAR_PRICE_UPPER = Decimal('1.3')


def find_similar_properties(prop: Property, limit: int = 4, active_only: bool = False) -> List[Property]:
    """
    Properties comparable to ``prop``: same type, same neighborhood when it
    has one, priced within 30% either way.

    The newest ``limit * 2`` candidates are fetched and then narrowed by
    price, so fewer than ``limit`` results is normal.

    Args:
        prop: Reference property
        limit: Maximum number of results
        active_only: Restrict candidates to active listings

    Returns:
        List of similar properties, newest first
    """
    queryset = Property.objects.filter(property_type=prop.property_type).exclude(pk=prop.pk)
    if prop.neighborhood_id:
        queryset = queryset.filter(neighborhood_id=prop.neighborhood_id)
    if active_only:
        queryset = queryset.filter(is_active=True)

    candidates = queryset.select_related('neighborhood').order_by('-created_at')[:limit * 2]

    price_lower = prop.price * SIMILAR_PRICE_LOWER
    price_upper = prop.price * SIMILAR_PRICE_UPPER
    return [
        candidate for candidate in candidates
        if price_lower <= candidate.price <= price_upper
    ][:limit]


# =============================================================================
# CONDOMINIUM TYPE DETECTION
# =============================================================================

CONDOMINIUM_PATTERNS = [
    re.compile(r'\bcondom[ií]nio\b', re.IGNORECASE),
    re.compile(r'\bcond\.\s', re.IGNORECASE),
    re.compile(r'\bcond\s', re.IGNORECASE),
    re.compile(r'\bem\s+condom[ií]nio', re.IGNORECASE),
    re.compile(r'\bno\s+condom[ií]nio', re.IGNORECASE),
    re.compile(r'\bdentro\s+de\s+condom[ií]nio', re.IGNORECASE),
    re.compile(r'\bcondom[ií]nio\s+fechado', re.IGNORECASE),
]


def find_condominium_match(text: str) -> Optional[str]:
    """Return the first condominium keyword found in ``text``, if any."""
    for pattern in CONDOMINIUM_PATTERNS:
        match = pattern.search(text or '')
        if match:
            return match.group(0).strip()
    return None


def fix_condominium_types() -> Dict[str, Any]:
    """
    Retype listings that describe a condominium house as ``condominio``.

    Title and description are both scanned; properties already typed
    condominio are skipped.

    Returns:
        Dictionary with updated_count, per-property updates and a summary message
    """
    updates = []

    with transaction.atomic():
        for prop in Property.objects.exclude(property_type='condominio'):
            haystack = f"{prop.title} {prop.description or ''}"
            matched = find_condominium_match(haystack)
            if not matched:
                continue

            old_type = prop.property_type
            prop.property_type = 'condominio'
            prop.save(update_fields=['property_type', 'updated_at'])
            updates.append({
                'id': str(prop.pk),
                'title': prop.title,
                'old_type': old_type,
                'new_type': 'condominio',
                'matched_in': matched,
            })

    logger.info(f"Condominium type fix updated {len(updates)} properties")
    return {
        'success': True,
        'updated_count': len(updates),
        'updates': updates,
        'message': f"{len(updates)} imóveis foram atualizados para o tipo 'Condomínio'",
    }


# =============================================================================
# NEIGHBORHOOD NAME CORRECTION
# =============================================================================

NEIGHBORHOOD_SPELLING_FIXES = [
    (re.compile(r'\bCambury\b', re.IGNORECASE), 'Camburi'),
    (re.compile(r'\bBoissucanga\b', re.IGNORECASE), 'Boiçucanga'),
]


def correct_neighborhood_spelling(text: Optional[str]) -> Optional[str]:
    """Replace known misspelled neighborhood names in ``text``."""
    if not text:
        return text
    for pattern, replacement in NEIGHBORHOOD_SPELLING_FIXES:
        text = pattern.sub(replacement, text)
    return text


def match_neighborhood_in_title(title: str, neighborhoods) -> Optional[Neighborhood]:
    """First neighborhood whose name appears (case-insensitively) in ``title``."""
    lowered = (title or '').lower()
    for neighborhood in neighborhoods:
        if neighborhood.name.lower() in lowered:
            return neighborhood
    return None


def fix_neighborhood_names() -> Dict[str, Any]:
    """
    Correct misspelled neighborhood names and fill in missing neighborhoods.

    A property gets a neighborhood assigned when it has none, or when its
    (corrected) title names Camburi or Boiçucanga; the first neighborhood
    whose name appears in the title wins.

    Returns:
        Dictionary with updated_count and per-property corrections
    """
    neighborhoods = list(Neighborhood.objects.all())
    corrections = []

    with transaction.atomic():
        for prop in Property.objects.all().order_by('created_at'):
            new_title = correct_neighborhood_spelling(prop.title)
            new_description = correct_neighborhood_spelling(prop.description)
            new_neighborhood_id = prop.neighborhood_id

            lowered = new_title.lower()
            if not prop.neighborhood_id or 'camburi' in lowered or 'boiçucanga' in lowered:
                matched = match_neighborhood_in_title(new_title, neighborhoods)
                if matched:
                    new_neighborhood_id = matched.pk

            if (new_title == prop.title
                    and new_description == prop.description
                    and new_neighborhood_id == prop.neighborhood_id):
                continue

            old_title = prop.title
            prop.title = new_title
            prop.description = new_description
            prop.neighborhood_id = new_neighborhood_id
            prop.save(update_fields=['title', 'description', 'neighborhood', 'updated_at'])

            corrections.append({
                'id': str(prop.pk),
                'old_title': old_title,
                'new_title': new_title,
                'neighborhood_id': str(new_neighborhood_id) if new_neighborhood_id else None,
            })

    logger.info(f"Neighborhood fix corrected {len(corrections)} properties")
    return {
        'success': True,
        'updated_count': len(corrections),
        'corrections': corrections,
    }


# =============================================================================
# PROPERTY TYPE INFERENCE
# =============================================================================

PROPERTY_TYPE_KEYWORDS = [
    ('casa', re.compile(r'casa', re.IGNORECASE)),
    ('apartamento', re.compile(r'apartamento|apto', re.IGNORECASE)),
    ('terreno', re.compile(r'terreno', re.IGNORECASE)),
    ('comercial', re.compile(r'comercial|loja|sala', re.IGNORECASE)),
]


def infer_property_type(text: str, default: str = 'casa') -> str:
    """
    Guess the property type from free text.

    Args:
        text: Title and/or description
        default: Type used when no keyword matches

    Returns:
        One of casa, apartamento, terreno, comercial
    """
    for property_type, pattern in PROPERTY_TYPE_KEYWORDS:
        if pattern.search(text or ''):
            return property_type
    return default

"""
Confirmed assistant actions.

Each handler receives a PendingAction whose payload came from the LLM,
locates its target with the fuzzy matchers, validates the requested
changes, writes them through the regular model serializers and records an
audit log entry.

When a target is ambiguous the candidates are stored (see
context.CandidateStore) and the admin is asked to pick one by number; the
next chat message resolves the choice.
"""

import json
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from django.core.serializers.json import DjangoJSONEncoder
from django.db import DatabaseError, transaction
from django.utils import timezone

from brokerage.exceptions import first_error_message
from crm.serializers import ClientSerializer, OwnerSerializer, FinancialTransactionSerializer
from properties.models import Property
from properties.serializers import PropertySerializer, NeighborhoodSerializer
from services.business_logic import infer_property_type
from services.media import MediaStorageError, folder_name_for, store_base64_image
from . import errors
from .context import Candidate, CandidateGroup, PendingAction, candidate_groups
from .matching import (
    MatchResult,
    find_clients,
    find_financials,
    find_neighborhoods,
    find_owners,
    find_properties,
)
from .models import IntelligenceAuditLog
from .sanitizers import MAX_AMOUNT, is_valid_id, sanitize_email, sanitize_input, validate_positive_number

logger = logging.getLogger(__name__)

MIN_PROPERTY_IMAGES = 3
MAX_PROPERTY_IMAGES = 20

ACTION_ALIASES = {
    'create_transaction': 'create_financial',
    'update_transaction': 'update_financial',
    'delete_transaction': 'delete_financial',
}

INVALID_EMAIL_MESSAGE = 'Email inválido. Use um formato válido como exemplo@email.com'


@dataclass
class ActionResult:
    success: bool
    message: str
    entity_id: Optional[str] = None
    not_found: bool = False


@dataclass
class EntityLabels:
    """Portuguese wording used in handler messages."""
    singular: str
    plural: str
    article: str
    not_found: str
    updated: str
    created: str
    deleted: str

    @property
    def correct(self):
        return 'correta' if self.article == 'a' else 'correto'

    @property
    def of(self):
        return 'da' if self.article == 'a' else 'do'


LABELS = {
    'property': EntityLabels('imóvel', 'imóveis', 'o', 'Imóvel não encontrado.',
                             'Imóvel atualizado com sucesso!', 'Imóvel criado com sucesso!',
                             'Imóvel excluído com sucesso!'),
    'neighborhood': EntityLabels('bairro', 'bairros', 'o', 'Bairro não encontrado.',
                                 'Bairro atualizado com sucesso!', 'Bairro criado com sucesso!',
                                 'Bairro excluído com sucesso!'),
    'client': EntityLabels('cliente', 'clientes', 'o', 'Cliente não encontrado.',
                           'Cliente atualizado com sucesso!', 'Cliente criado com sucesso!',
                           'Cliente excluído com sucesso!'),
    'owner': EntityLabels('proprietário', 'proprietários', 'o', 'Proprietário não encontrado.',
                          'Proprietário atualizado com sucesso!', 'Proprietário criado com sucesso!',
                          'Proprietário excluído com sucesso!'),
    'financial': EntityLabels('transação', 'transações', 'a', 'Transação não encontrada.',
                              'Transação financeira atualizada com sucesso!',
                              'Transação financeira criada com sucesso!',
                              'Transação financeira excluída com sucesso!'),
}

NOT_FOUND_ENTITY_NAMES = {
    'property': 'Imóvel',
    'neighborhood': 'Bairro',
    'client': 'Cliente',
    'owner': 'Proprietário',
    'financial': 'Transação financeira',
}


# =============================================================================
# FORMATTING & SNAPSHOTS
# =============================================================================

def format_brl(value, decimals=2) -> str:
    """``1400000`` -> ``1.400.000,00`` (pt-BR grouping)."""
    formatted = f"{float(value):,.{decimals}f}"
    return formatted.replace(',', '_').replace('.', ',').replace('_', '.')


def snapshot(instance) -> Optional[Dict[str, Any]]:
    """JSON-safe dict of a model instance's concrete fields."""
    if instance is None:
        return None
    data = {f.attname: getattr(instance, f.attname) for f in instance._meta.concrete_fields}
    return json.loads(json.dumps(data, cls=DjangoJSONEncoder))


def record_audit(action_type: str, entity_type: str, status: str, pending: Optional[PendingAction] = None,
                 user_id: Optional[str] = None, entity_id=None, details=None, error_message=None):
    """Write an audit log entry; failures are logged, never raised."""
    try:
        IntelligenceAuditLog.objects.create(
            user_id=user_id,
            action=action_type,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id else None,
            details=details,
            user_message=pending.user_message if pending else None,
            ai_response=pending.ai_response if pending else None,
            status=status,
            error_message=error_message,
        )
        logger.info(f"Audit log written: {action_type} {status}")
    except DatabaseError as e:
        logger.error(f"Failed to write audit log for {action_type}: {str(e)}")


def entity_type_for(action_type: str) -> str:
    """``update_property`` -> ``property``"""
    return action_type.split('_', 1)[1] if '_' in action_type else action_type


def _raise_for_serializer(serializer):
    raise errors.ValidationError(first_error_message(serializer.errors) or 'Dados inválidos')


# =============================================================================
# CANDIDATES
# =============================================================================

def _property_details(prop) -> str:
    parts = [f"Preço: R$ {format_brl(prop.price)}"]
    if prop.neighborhood_id:
        parts.append(f"Bairro: {prop.neighborhood.name}")
    if prop.bedrooms:
        parts.append(f"{prop.bedrooms} quartos")
    if prop.bathrooms:
        parts.append(f"{prop.bathrooms} banheiros")
    if prop.area:
        parts.append(f"Área: {format_brl(prop.area, 0)}m²")
    return ' | '.join(parts)


def _party_details(party) -> str:
    parts = [party.name]
    if party.email:
        parts.append(f"Email: {party.email}")
    if party.phone:
        parts.append(f"Tel: {party.phone}")
    return ' | '.join(parts)


def _financial_details(entry) -> str:
    parts = [
        entry.description,
        f"Valor: R$ {format_brl(entry.amount)}",
        f"Tipo: {entry.type}",
    ]
    if entry.date:
        parts.append(f"Data: {entry.date.strftime('%d/%m/%Y')}")
    return ' | '.join(parts)


CANDIDATE_FORMATTERS = {
    'property': (lambda p: p.title, _property_details),
    'neighborhood': (lambda n: n.name, lambda n: n.name),
    'client': (lambda c: c.name, _party_details),
    'owner': (lambda o: o.name, _party_details),
    'financial': (lambda t: t.description, _financial_details),
}


def offer_candidates(action: PendingAction, entity: str, verb: str, matches: List[MatchResult]):
    """
    Store the top matches for selection and raise the numbered prompt.

    Raises:
        errors.ValidationError: Always
    """
    title_of, details_of = CANDIDATE_FORMATTERS[entity]
    candidates = [
        Candidate(id=str(match.item.pk), title=title_of(match.item), details=details_of(match.item),
                  confidence=match.confidence)
        for match in matches[:5]
    ]
    group_id = candidate_groups.add(CandidateGroup(
        type=action.type, verb=verb, candidates=candidates, data=action.data, images=action.images,
    ))

    labels = LABELS[entity]
    options = '\n\n'.join(f"{i}. {c.title}\n   {c.details}" for i, c in enumerate(candidates, start=1))
    logger.warning(f"{len(matches)} {labels.plural} matched {action.type}; asking for a selection")
    raise errors.ValidationError(
        f"Encontrei {len(matches)} {labels.plural} que correspondem à busca. "
        f"Por favor, responda com o número {labels.of} {labels.singular} {labels.correct}:\n\n{options}\n\n"
        f"Digite apenas o número (1, 2, 3, etc.) para confirmar qual {labels.singular} deseja {verb}.",
        {'candidate_id': group_id},
    )


def _locates_by_criteria(data) -> bool:
    return bool(data.get('id')) or isinstance(data.get('search_criteria'), dict)


def lookup_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Fields used to find the target of an action.

    Properties always search with ``search_criteria``. For the other records
    ``search_criteria`` (name, email, description) wins over the top-level
    fields, which then carry the new values.
    """
    criteria = data.get('search_criteria')
    if not isinstance(criteria, dict) or 'price_range' in criteria or 'neighborhood' in criteria:
        return data
    return {'id': data.get('id'), **criteria}


def _new_value_key(data, key) -> Optional[str]:
    """``new_<key>``, or ``key`` itself when the target is located another way."""
    if f"new_{key}" in data:
        return f"new_{key}"
    if key in data and _locates_by_criteria(data):
        return key
    return None


def _resolve_target(action, entity, finder, verb):
    """Single match, None when nothing matched; ambiguity raises."""
    if action.selected_item_id:
        matches = finder({'id': action.selected_item_id})
    else:
        matches = finder(lookup_data(action.data))
    if len(matches) > 1:
        offer_candidates(action, entity, verb, matches)
    return matches[0].item if matches else None


# =============================================================================
# GENERIC CREATE / DELETE
# =============================================================================

def _create(entity, serializer_class, payload, pending, user_id, after_save=None) -> ActionResult:
    serializer = serializer_class(data=payload)
    if not serializer.is_valid():
        _raise_for_serializer(serializer)
    with transaction.atomic():
        created = serializer.save()
        if after_save:
            after_save(created)
    record_audit(f"create_{entity}", entity, 'success', pending, user_id,
                 entity_id=created.pk, details={'created': snapshot(created)})
    return ActionResult(True, LABELS[entity].created, str(created.pk))


def _delete(entity, finder, pending, user_id) -> ActionResult:
    target = _resolve_target(pending, entity, finder, 'excluir')
    if target is None:
        return ActionResult(False, LABELS[entity].not_found, not_found=True)

    deleted = snapshot(target)
    target_id = target.pk
    target.delete()
    record_audit(f"delete_{entity}", entity, 'success', pending, user_id,
                 entity_id=target_id, details={'deleted': deleted})
    return ActionResult(True, LABELS[entity].deleted, str(target_id))


def _update(entity, finder, serializer_class, build_changes, pending, user_id, after_save=None) -> ActionResult:
    target = _resolve_target(pending, entity, finder, 'atualizar')
    if target is None:
        raise errors.NotFoundError(NOT_FOUND_ENTITY_NAMES[entity])

    before = snapshot(target)
    changes = build_changes(pending.data)
    links = changes.pop('property_ids', None)

    serializer = serializer_class(target, data=changes, partial=True)
    if not serializer.is_valid():
        _raise_for_serializer(serializer)
    with transaction.atomic():
        updated = serializer.save()
        if links is not None:
            updated.properties.set(links)
        if after_save:
            after_save(updated)

    audit_changes = dict(changes)
    if links is not None:
        audit_changes['property_ids'] = [str(pk) for pk in links]
    record_audit(f"update_{entity}", entity, 'success', pending, user_id, entity_id=target.pk,
                 details={'before': before, 'after': snapshot(updated), 'changes': audit_changes})
    return ActionResult(True, LABELS[entity].updated, str(target.pk))


# =============================================================================
# FIELD VALIDATION
# =============================================================================

def _number(data, key, label, integer=False, maximum=None, too_high=None):
    try:
        value = validate_positive_number(data[key], label)
    except ValueError as e:
        raise errors.ValidationError(str(e))
    if maximum is not None and value > maximum:
        raise errors.ValidationError(too_high)
    if integer:
        return int(value) if value.is_integer() else value
    return round(value, 2)


def _required_text(data, key, message):
    value = sanitize_input(data[key])
    if not value:
        raise errors.ValidationError(message)
    return value


def _property_ids(value) -> Optional[List[uuid.UUID]]:
    """
    Property ids to link from a list.

    Malformed ids are dropped; well-formed ids that match no property are an
    error, raised before anything is saved.
    """
    if not isinstance(value, list):
        return None
    ids = []
    for item in value:
        if not is_valid_id(item):
            logger.warning(f"Ignoring invalid property id {item!r}")
            continue
        try:
            ids.append(uuid.UUID(item))
        except ValueError:
            logger.warning(f"Ignoring invalid property id {item!r}")

    ids = list(dict.fromkeys(ids))
    found = set(Property.objects.filter(pk__in=ids).values_list('pk', flat=True))
    missing = [str(pk) for pk in ids if pk not in found]
    if missing:
        raise errors.ValidationError(f"Imóvel não encontrado: {', '.join(missing)}")
    return ids


def _property_changes(data) -> Dict[str, Any]:
    changes = {}
    if data.get('price') is not None:
        changes['price'] = _number(data, 'price', 'Preço', maximum=MAX_AMOUNT,
                                   too_high='Preço muito alto (máximo: R$ 1.000.000.000)')
    if 'title' in data:
        changes['title'] = _required_text(data, 'title', 'Título não pode estar vazio')
    if 'description' in data:
        changes['description'] = sanitize_input(data['description'])
    if data.get('property_type') is not None:
        changes['property_type'] = sanitize_input(data['property_type']).lower()
    if data.get('status') is not None:
        changes['status'] = sanitize_input(data['status']).lower()
    for key, label in (('bedrooms', 'Quartos'), ('bathrooms', 'Banheiros'), ('parking_spaces', 'Vagas')):
        if data.get(key) is not None:
            changes[key] = _number(data, key, label, integer=True)
    for key, label in (('area', 'Área'), ('land_area', 'Área do terreno')):
        if data.get(key) is not None:
            changes[key] = _number(data, key, label)
    if data.get('is_featured') is not None:
        changes['is_featured'] = bool(data['is_featured'])
    if isinstance(data.get('amenities'), list):
        changes['amenities'] = [a for a in (sanitize_input(item) for item in data['amenities']) if a]
    return changes


def _party_changes(name_message):
    def build(data):
        changes = {}
        name_key = _new_value_key(data, 'name')
        if name_key:
            changes['name'] = _required_text(data, name_key, name_message)
        email_key = _new_value_key(data, 'email')
        if email_key:
            email = sanitize_email(data[email_key])
            if data[email_key] and not email:
                raise errors.ValidationError(INVALID_EMAIL_MESSAGE)
            changes['email'] = email
        if 'phone' in data:
            changes['phone'] = sanitize_input(data['phone']) or None
        if 'notes' in data:
            changes['notes'] = sanitize_input(data['notes']) or None
        property_ids = _property_ids(data.get('property_ids'))
        if property_ids is not None:
            changes['property_ids'] = property_ids
        return changes
    return build


FINANCIAL_TYPE_ALIASES = {'receita': 'receita', 'despesa': 'despesa', 'income': 'receita', 'expense': 'despesa'}


def _financial_changes(data) -> Dict[str, Any]:
    changes = {}
    description_key = _new_value_key(data, 'description')
    if description_key:
        changes['description'] = _required_text(data, description_key, 'Descrição da transação não pode estar vazia')
    amount_key = 'amount' if data.get('amount') is not None else 'value'
    if data.get(amount_key) is not None:
        changes['amount'] = _number(data, amount_key, 'Valor', maximum=MAX_AMOUNT,
                                    too_high='Valor muito alto (máximo: R$ 1.000.000.000)')
    if data.get('type') is not None:
        kind = sanitize_input(str(data['type']).lower())
        if kind not in FINANCIAL_TYPE_ALIASES:
            raise errors.ValidationError('Tipo de transação inválido. Use "receita" ou "despesa"')
        changes['type'] = FINANCIAL_TYPE_ALIASES[kind]
    if 'category' in data:
        changes['category'] = sanitize_input(data['category']) or None
    if data.get('date'):
        changes['date'] = data['date']
    if data.get('frequency_type'):
        changes['frequency_type'] = sanitize_input(data['frequency_type']).lower()
    for key in ('day_of_month', 'day_of_week'):
        if key in data:
            changes[key] = data[key]
    return changes


# =============================================================================
# PROPERTY HANDLERS
# =============================================================================

def _neighborhood_id_for(data) -> Optional[str]:
    if data.get('neighborhood_id'):
        return str(data['neighborhood_id'])
    if data.get('neighborhood'):
        matches = find_neighborhoods({'name': data['neighborhood']})
        if matches:
            return str(matches[0].item.pk)
    return None


def _auto_title(data) -> str:
    property_type = data.get('property_type') or 'imóvel'
    parts = [property_type[:1].upper() + property_type[1:]]
    if data.get('neighborhood_id'):
        parts.append('em localização privilegiada')
    if data.get('price'):
        try:
            parts.append(f"R$ {format_brl(data['price'], 0)}")
        except (TypeError, ValueError):
            pass
    return ' '.join(parts).strip()


def create_property(pending: PendingAction, user_id=None) -> ActionResult:
    """
    Create a for-sale listing from the proposed data and attached images.

    At least three images are required (at most twenty are used). Fields
    are validated before any image is stored.
    """
    images = list(pending.images or [])
    if len(images) < MIN_PROPERTY_IMAGES:
        raise errors.ValidationError('Para cadastrar um imóvel, é necessário anexar no mínimo 3 imagens.')
    images = images[:MAX_PROPERTY_IMAGES]

    data = dict(pending.data)
    status = str(data.get('status') or '').strip().lower()
    if status and status != 'venda':
        raise errors.ValidationError(
            'Apenas imóveis para venda podem ser cadastrados. Imóveis para aluguel não são permitidos no momento.'
        )
    data['status'] = 'venda'

    data['neighborhood_id'] = _neighborhood_id_for(data)
    if not sanitize_input(data.get('title')):
        data['title'] = _auto_title(data)
    if not data.get('property_type'):
        data['property_type'] = infer_property_type(f"{data['title']} {data.get('description') or ''}")
    data['description'] = sanitize_input(data.get('description')) or sanitize_input(data['title'])

    payload = {key: value for key, value in _property_changes(data).items() if value is not None}
    payload['neighborhood_id'] = data['neighborhood_id']

    folder = folder_name_for(payload['title'])
    urls = []
    for index, image in enumerate(images, start=1):
        filename = image.get('filename') or f"image-{index}.jpg"
        try:
            urls.append(store_base64_image(image.get('base64_data', ''), filename, folder))
        except MediaStorageError as e:
            logger.error(f"Image {index} upload failed: {str(e)}")

    if len(urls) < MIN_PROPERTY_IMAGES:
        raise errors.ValidationError(
            f"Falha no upload das imagens. Apenas {len(urls)} imagem(ns) foram carregadas com sucesso. Mínimo: 3."
        )
    payload['images'] = urls

    result = _create('property', PropertySerializer, payload, pending, user_id)
    result.message = f"Imóvel criado com sucesso com {len(urls)} imagem(ns)!"
    return result


def update_property(pending, user_id=None):
    return _update('property', find_properties, PropertySerializer, _property_changes, pending, user_id)


def delete_property(pending, user_id=None):
    return _delete('property', find_properties, pending, user_id)


# =============================================================================
# NEIGHBORHOOD HANDLERS
# =============================================================================

def _neighborhood_changes(data):
    changes = {}
    name_key = _new_value_key(data, 'name')
    if name_key:
        changes['name'] = _required_text(data, name_key, 'Nome do bairro não pode estar vazio')
    if 'description' in data:
        changes['description'] = sanitize_input(data['description']) or None
    if 'image_url' in data:
        changes['image_url'] = sanitize_input(data['image_url']) or None
    return changes


def create_neighborhood(pending, user_id=None):
    data = pending.data
    payload = {
        'name': sanitize_input(data.get('name')),
        'description': sanitize_input(data.get('description')) or None,
        'image_url': sanitize_input(data.get('image_url')) or None,
    }
    return _create('neighborhood', NeighborhoodSerializer, payload, pending, user_id)


def update_neighborhood(pending, user_id=None):
    try:
        return _update('neighborhood', find_neighborhoods, NeighborhoodSerializer, _neighborhood_changes,
                       pending, user_id)
    except errors.NotFoundError:
        return ActionResult(False, LABELS['neighborhood'].not_found, not_found=True)


def delete_neighborhood(pending, user_id=None):
    return _delete('neighborhood', find_neighborhoods, pending, user_id)


# =============================================================================
# CLIENT & OWNER HANDLERS
# =============================================================================

def _party_payload(data) -> Dict[str, Any]:
    payload = {'name': sanitize_input(data.get('name'))}
    if data.get('email'):
        email = sanitize_email(data['email'])
        if not email:
            raise errors.ValidationError(INVALID_EMAIL_MESSAGE)
        payload['email'] = email
    if data.get('phone'):
        payload['phone'] = sanitize_input(data['phone'])
    if data.get('notes'):
        payload['notes'] = sanitize_input(data['notes'])
    return payload


def _create_party(entity, serializer_class, pending, user_id, name_message):
    payload = _party_payload(pending.data)
    if not payload['name']:
        raise errors.ValidationError(name_message)

    property_ids = _property_ids(pending.data.get('property_ids'))

    def link_properties(party):
        if property_ids:
            party.properties.set(property_ids)

    return _create(entity, serializer_class, payload, pending, user_id, after_save=link_properties)


def create_client(pending, user_id=None):
    return _create_party('client', ClientSerializer, pending, user_id, 'Nome do cliente não pode estar vazio')


def update_client(pending, user_id=None):
    return _update('client', find_clients, ClientSerializer,
                   _party_changes('Nome do cliente não pode estar vazio'), pending, user_id)


def delete_client(pending, user_id=None):
    return _delete('client', find_clients, pending, user_id)


def create_owner(pending, user_id=None):
    return _create_party('owner', OwnerSerializer, pending, user_id,
                         'Nome do proprietário não pode estar vazio')


def update_owner(pending, user_id=None):
    return _update('owner', find_owners, OwnerSerializer,
                   _party_changes('Nome do proprietário não pode estar vazio'), pending, user_id)


def delete_owner(pending, user_id=None):
    return _delete('owner', find_owners, pending, user_id)


# =============================================================================
# FINANCIAL HANDLERS
# =============================================================================

def create_financial(pending, user_id=None):
    """Record a transaction; the date defaults to today and the frequency to a one-off entry."""
    data = pending.data
    description = sanitize_input(data.get('description'))
    if not description:
        raise errors.ValidationError('Descrição da transação não pode estar vazia')
    if data.get('amount') is None and data.get('value') is None:
        raise errors.ValidationError('Valor da transação é obrigatório')
    if data.get('type') is None:
        raise errors.ValidationError('Tipo de transação inválido. Use "receita" ou "despesa"')

    payload = {'frequency_type': 'unico', 'date': timezone.localdate().isoformat()}
    payload.update({key: value for key, value in _financial_changes(data).items() if value is not None})
    payload['description'] = description
    return _create('financial', FinancialTransactionSerializer, payload, pending, user_id)


def update_financial(pending, user_id=None):
    return _update('financial', find_financials, FinancialTransactionSerializer, _financial_changes,
                   pending, user_id)


def delete_financial(pending, user_id=None):
    return _delete('financial', find_financials, pending, user_id)


ACTION_HANDLERS: Dict[str, Callable[..., ActionResult]] = {
    'create_property': create_property,
    'update_property': update_property,
    'delete_property': delete_property,
    'create_neighborhood': create_neighborhood,
    'update_neighborhood': update_neighborhood,
    'delete_neighborhood': delete_neighborhood,
    'create_client': create_client,
    'update_client': update_client,
    'delete_client': delete_client,
    'create_owner': create_owner,
    'update_owner': update_owner,
    'delete_owner': delete_owner,
    'create_financial': create_financial,
    'update_financial': update_financial,
    'delete_financial': delete_financial,
}

MUTATION_ACTION_TYPES = frozenset(ACTION_HANDLERS)


def perform_action(pending: PendingAction, user_id=None) -> ActionResult:
    """Dispatch a confirmed action to its handler."""
    action_type = ACTION_ALIASES.get(pending.type, pending.type)
    handler = ACTION_HANDLERS.get(action_type)
    if handler is None:
        return ActionResult(False, f"Tipo de ação desconhecido: {pending.type}")
    return handler(pending, user_id)

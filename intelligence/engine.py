"""
Chat-to-action pipeline of the back-office assistant.

process_user_message() turns an admin message into either a plain reply or
a proposed action awaiting confirmation; execute_action() runs (or cancels)
a proposed action once the admin answers.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from django.conf import settings

from content.models import Setting
from crm.models import Client, Owner, FinancialTransaction
from properties.models import Property, Neighborhood
from . import errors
from .context import (
    PendingAction,
    candidate_groups,
    conversations,
    pending_actions,
)
from .handlers import (
    ACTION_ALIASES,
    MUTATION_ACTION_TYPES,
    entity_type_for,
    format_brl,
    lookup_data,
    perform_action,
    record_audit,
    snapshot,
)
from .llm import LLMClient, LLMError, LLMTimeoutError, LLMUnavailableError, parse_ai_response
from .matching import (
    find_clients,
    find_financials,
    find_neighborhoods,
    find_owners,
    find_properties,
    normalize_text,
)
from .sanitizers import sanitize_input, snake_case_keys

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 5000
DEFAULT_CONFIRMATION_MESSAGE = 'Confirma que deseja executar esta modificação?'
CANCELLED_MESSAGE = 'Ação cancelada pelo usuário.'
EXPIRED_ACTION_MESSAGE = 'Ação não encontrada ou expirada. Por favor, envie a solicitação novamente.'

ORDINALS = {
    'primeiro': 1, 'primeira': 1,
    'segundo': 2, 'segunda': 2,
    'terceiro': 3, 'terceira': 3,
    'quarto': 4, 'quarta': 4,
    'quinto': 5, 'quinta': 5,
}
FIRST_NUMBER = re.compile(r'\d+')
PROPERTY_REFERENCE = re.compile(r'#(\d+)')

MODIFICATION_KEYWORDS = re.compile(
    r'\b(criar|crie|cadastrar|cadastre|adicionar|adicione|alterar|altere|modificar|modifique|'
    r'atualizar|atualize|mudar|mude|excluir|exclua|deletar|delete|remover|remova|apagar|apague)\b'
)

CLIENT_INTENT = re.compile(r'\b(cliente|clientes|interessado|interesse|procura|quer|queria|querendo|busca|comprando)\b')
PROPERTY_INTENT = re.compile(r'\b(im[oó]vel|im[oó]veis|casa|casas|apartamento|terreno|propriedade)\b')
NEIGHBORHOOD_INTENT = re.compile(r'\b(bairro|bairros|regi[aã]o|localiza[cç][aã]o)\b')
OWNER_INTENT = re.compile(r'\b(propriet[aá]rio|propriet[aá]rios|dono|donos)\b')
FINANCIAL_INTENT = re.compile(r'\b(financeiro|finan[cç]a|transa[cç][aã]o|receita|despesa|gastos)\b')
LISTING_INTENT = re.compile(r'\b(tenho|tem|h[aá]|existe|lista|listar|mostra|mostrar|quantos|quantas|qual|quais)\b')

SELECTION_NOUNS = {'atualizar': 'atualização', 'excluir': 'exclusão'}

ENTITY_KINDS = {
    'property': 'properties',
    'neighborhood': 'neighborhoods',
    'client': 'clients',
    'owner': 'owners',
    'financial': 'financials',
}

# entity -> (finder, "Encontrados"/"Encontradas", plural)
ENTITY_SEARCH = {
    'property': (find_properties, 'Encontrados', 'imóveis'),
    'neighborhood': (find_neighborhoods, 'Encontrados', 'bairros'),
    'client': (find_clients, 'Encontrados', 'clientes'),
    'owner': (find_owners, 'Encontrados', 'proprietários'),
    'financial': (find_financials, 'Encontradas', 'transações'),
}


# =============================================================================
# HELPERS
# =============================================================================

def parse_selection(message: str) -> Optional[int]:
    """Candidate number picked by the admin ("2", "a segunda", ...)."""
    normalized = normalize_text(message)
    for word in re.findall(r'[a-z]+', normalized):
        if word in ORDINALS:
            return ORDINALS[word]
    match = FIRST_NUMBER.search(normalized)
    return int(match.group(0)) if match else None


def company_name() -> str:
    return Setting.objects.get_value('companyName', settings.COMPANY_NAME)


def _date(value) -> str:
    return value.strftime('%d/%m/%Y') if value else ''


def fetch_relevant_data(message: str) -> str:
    """
    Database summary appended to listing questions.

    Only questions ("quantos", "quais", "tem", ...) are enriched; the entity
    kinds included follow the words used in the message.
    """
    text = normalize_text(message)
    if not LISTING_INTENT.search(text):
        return ''

    wants_clients = bool(CLIENT_INTENT.search(text))
    wants_properties = bool(PROPERTY_INTENT.search(text))
    sections = []

    if wants_clients:
        clients = list(Client.objects.order_by('name'))
        lines = []
        for client in clients:
            line = f"- {client.name}"
            if client.notes:
                line += f" ({client.notes})"
            if client.email:
                line += f" - Email: {client.email}"
            if client.phone:
                line += f" - Tel: {client.phone}"
            lines.append(line)
        sections.append("CLIENTES CADASTRADOS:\n" + ('\n'.join(lines) or 'Nenhum cliente cadastrado no momento.'))

    if wants_properties and not wants_clients:
        lines = []
        for prop in Property.objects.select_related('neighborhood')[:20]:
            line = f"- {prop.title} (Link: /imoveis/{prop.slug}) - R$ {format_brl(prop.price)} ({prop.property_type}) [{prop.status}]"
            if prop.neighborhood_id:
                line += f" - Bairro: {prop.neighborhood.name}"
            lines.append(line)
        sections.append("IMÓVEIS CADASTRADOS (primeiros 20):\n" + ('\n'.join(lines) or 'Nenhum imóvel cadastrado.'))

    if NEIGHBORHOOD_INTENT.search(text) and not wants_clients and not wants_properties:
        names = [f"- {n.name}" for n in Neighborhood.objects.order_by('name')]
        sections.append("BAIRROS CADASTRADOS:\n" + ('\n'.join(names) or 'Nenhum bairro cadastrado.'))

    if OWNER_INTENT.search(text) and not wants_clients:
        lines = []
        for owner in Owner.objects.order_by('name')[:20]:
            line = f"- {owner.name}"
            if owner.email:
                line += f" - Email: {owner.email}"
            if owner.phone:
                line += f" - Tel: {owner.phone}"
            lines.append(line)
        sections.append("PROPRIETÁRIOS CADASTRADOS (primeiros 20):\n" + ('\n'.join(lines) or 'Nenhum proprietário cadastrado.'))

    if FINANCIAL_INTENT.search(text):
        lines = [
            f"- {t.description}: R$ {format_brl(t.amount)} ({t.type}) - {_date(t.date)}"
            for t in FinancialTransaction.objects.order_by('-date', '-created_at')[:15]
        ]
        sections.append("TRANSAÇÕES FINANCEIRAS (últimas 15):\n" + ('\n'.join(lines) or 'Nenhuma transação registrada.'))

    if not sections:
        return ''
    logger.info(f"Enriched assistant message with {len(sections)} data sections")
    return "[DADOS DO BANCO DE DADOS PARA CONSULTA]\n" + '\n\n'.join(sections)


def enrich_action(action_type: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Preview of the record an update/delete would touch."""
    canonical = ACTION_ALIASES.get(action_type, action_type)
    entity = entity_type_for(canonical)
    if canonical.startswith('create_') or entity not in ENTITY_SEARCH:
        return None

    finder, found, plural = ENTITY_SEARCH[entity]
    matches = finder(lookup_data(data))
    if not matches:
        return None
    if len(matches) > 1:
        return {
            'multiple_matches': True,
            'message': f"{found} {len(matches)} {plural} que correspondem à busca. Por favor, especifique melhor.",
        }

    match = matches[0]
    record = snapshot(match.item)
    details = {entity: record, 'confidence': round(match.confidence, 2)}
    if entity == 'property' and canonical.startswith('update_'):
        details['changes'] = {
            key: value for key, value in data.items()
            if key not in ('search_criteria', 'id') and str(record.get(key)) != str(value)
        }
    return details


def property_images(reply: str) -> List[Dict[str, Any]]:
    """
    Images for ``#<n>`` listing references in a reply.

    One reference shows up to three images; several show the first image of
    each property.
    """
    references = list(dict.fromkeys(PROPERTY_REFERENCE.findall(reply or '')))
    if not references:
        return []

    per_property = 3 if len(references) == 1 else 1
    results = []
    for reference in references:
        for prop in Property.objects.filter(title__icontains=f"#{reference}"):
            images = [url for url in (prop.images or []) if isinstance(url, str)][:per_property]
            if images:
                results.append({'id': str(prop.pk), 'title': prop.title, 'images': images})
    return results


# =============================================================================
# CHAT
# =============================================================================

def _select_candidate(selection: int, message: str, session_id: str) -> Optional[Dict[str, Any]]:
    groups = candidate_groups.items()
    if not groups:
        return None

    for group_id, group in groups:
        if 1 <= selection <= len(group.candidates):
            candidate = group.candidates[selection - 1]
            noun = SELECTION_NOUNS.get(group.verb, group.verb)
            pending = PendingAction(
                type=group.type,
                data=group.data,
                confirmation_message=f"Confirmar {noun} \"{candidate.title}\"?",
                images=group.images,
                selected_item_id=candidate.id,
                user_message=message,
                ai_response=f"Perfeito! Vou {group.verb} o item \"{candidate.title}\". Confirma?",
            )
            candidate_groups.remove(group_id)
            message_id = pending_actions.add(pending)

            reply = f"Você selecionou: **{candidate.title}**\n{candidate.details}\n\nDeseja confirmar esta {noun}?"
            conversations.add_message(session_id, 'user', message)
            conversations.add_message(session_id, 'assistant', reply)
            logger.info(f"Candidate {selection} selected for {group.type}")
            return {'message': reply, 'action': pending.to_representation(), 'message_id': message_id}

    reply = f"Seleção inválida. Por favor, escolha um número entre 1 e {len(groups[0][1].candidates)}."
    conversations.add_message(session_id, 'user', message)
    conversations.add_message(session_id, 'assistant', reply)
    return {'message': reply}


def _call_llm(message: str, history, session_id: str) -> str:
    try:
        return LLMClient().chat(message, history, company_name(), settings.SITE_DOMAIN)
    except LLMTimeoutError:
        raise errors.TimeoutError()
    except LLMUnavailableError as e:
        raise errors.IntelligenceError(
            'Serviço de IA indisponível',
            503,
            'O serviço de inteligência artificial está temporariamente indisponível. '
            'Por favor, tente novamente em alguns instantes.',
            {'reason': e.message},
        )
    except LLMError as e:
        logger.error(f"Assistant LLM call failed for session {session_id}: {e.message}")
        raise errors.IntelligenceError(
            e.message,
            500,
            'Ocorreu um erro ao processar sua mensagem. Por favor, tente novamente.',
        )


def process_user_message(message: str, session_id: str, images: Optional[List[Dict[str, str]]] = None) -> Dict[str, Any]:
    """
    Answer an admin chat message.

    Returns ``{message, action, message_id}`` when a change is proposed,
    otherwise ``{message}`` (plus ``property_images`` when the reply refers
    to listings by number).

    Raises:
        errors.ValidationError: Empty or over-long message
        errors.TimeoutError, errors.IntelligenceError: LLM failures
    """
    clean = sanitize_input(message)
    if not clean:
        raise errors.ValidationError('Mensagem não pode estar vazia')
    if len(clean) > MAX_MESSAGE_LENGTH:
        raise errors.ValidationError(f"Mensagem muito longa (máximo: {MAX_MESSAGE_LENGTH} caracteres)")

    selection = parse_selection(clean)
    if selection is not None:
        selected = _select_candidate(selection, clean, session_id)
        if selected is not None:
            return selected

    history = conversations.history(session_id)
    database_summary = fetch_relevant_data(clean)
    llm_message = f"{clean}\n\n{database_summary}" if database_summary else clean

    reply = _call_llm(llm_message, history, session_id)
    parsed = parse_ai_response(reply)
    action = snake_case_keys(parsed['action']) if parsed['action'] else None
    needs_confirmation = parsed['needs_confirmation']

    if action and ACTION_ALIASES.get(action.get('type'), action.get('type')) in MUTATION_ACTION_TYPES:
        if not needs_confirmation:
            logger.warning(f"Assistant proposed {action['type']} without confirmation; forcing it")
        needs_confirmation = True
        action['confirmation_message'] = action.get('confirmation_message') or DEFAULT_CONFIRMATION_MESSAGE
    elif MODIFICATION_KEYWORDS.search(normalize_text(clean)) and not needs_confirmation:
        logger.warning("Modification requested but the assistant did not propose a confirmable action")

    conversations.add_message(session_id, 'user', clean)
    conversations.add_message(session_id, 'assistant', parsed['message'])

    if needs_confirmation and action and action.get('type'):
        data = action.get('data') if isinstance(action.get('data'), dict) else {}
        pending = PendingAction(
            type=action['type'],
            data=data,
            confirmation_message=action.get('confirmation_message') or DEFAULT_CONFIRMATION_MESSAGE,
            item_details=enrich_action(action['type'], data),
            images=images or None,
            user_message=clean,
            ai_response=parsed['message'],
        )
        message_id = pending_actions.add(pending)
        logger.info(f"Pending action {action['type']} stored as {message_id}")
        return {'message': parsed['message'], 'action': pending.to_representation(), 'message_id': message_id}

    response = {'message': parsed['message']}
    images_found = property_images(parsed['message'])
    if images_found:
        response['property_images'] = images_found
    return response


# =============================================================================
# EXECUTE
# =============================================================================

def execute_action(message_id: str, confirmed: bool, user_id: Optional[str] = None,
                   session_id: Optional[str] = None) -> Tuple[Dict[str, Any], int]:
    """
    Run or cancel a pending action.

    Returns:
        ``({success, message}, http_status)``
    """
    pending = pending_actions.pop(message_id)
    if pending is None:
        logger.warning(f"Execute requested for unknown or expired action {message_id}")
        return {'success': False, 'message': EXPIRED_ACTION_MESSAGE}, 404

    action_type = ACTION_ALIASES.get(pending.type, pending.type)
    entity = entity_type_for(action_type)

    if not confirmed:
        record_audit(action_type, entity, 'cancelled', pending, user_id, details={'data': pending.data})
        if session_id:
            conversations.add_message(session_id, 'assistant', 'Ação cancelada.', action_result='Ação cancelada pelo usuário')
        return {'success': False, 'message': CANCELLED_MESSAGE}, 200

    try:
        result = perform_action(pending, user_id)
    except errors.IntelligenceError as e:
        record_audit(action_type, entity, 'failed', pending, user_id,
                     details={'data': pending.data, 'error': e.message}, error_message=e.message)
        if session_id:
            conversations.add_message(session_id, 'assistant', f"Erro: {e.message}")
        return {'success': False, 'message': e.message}, e.status_code
    except Exception as e:
        logger.exception(f"Unexpected failure executing {action_type}")
        record_audit(action_type, entity, 'failed', pending, user_id,
                     details={'data': pending.data, 'error': str(e)}, error_message=str(e))
        raise

    if not result.success:
        record_audit(action_type, entity, 'failed', pending, user_id,
                     details={'data': pending.data, 'error': result.message}, error_message=result.message)
        if session_id:
            conversations.add_message(session_id, 'assistant', f"Erro: {result.message}")
        return {'success': False, 'message': result.message}, 404 if result.not_found else 400

    if session_id:
        conversations.add_message(session_id, 'assistant', result.message, action_result=action_type)
        if result.entity_id and entity in ENTITY_KINDS:
            conversations.add_entity_reference(session_id, ENTITY_KINDS[entity], result.entity_id)
    logger.info(f"Action {action_type} executed ({result.entity_id})")
    return {'success': True, 'message': result.message}, 200

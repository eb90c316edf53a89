"""
Chat-completions client for the back-office assistant.

Talks to any OpenAI-compatible ``/chat/completions`` endpoint over HTTP,
retrying transient failures with backoff, and parses the assistant reply
into either plain text or a proposed action.
"""

import json
import logging
import re
import time
from typing import Any, Dict, List, Optional

import requests
from django.conf import settings

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
RETRY_DELAYS = [1, 2, 4]
JSON_OBJECT = re.compile(r'\{.*\}', re.DOTALL)

SYSTEM_PROMPT = """Você é um assistente inteligente para o painel administrativo da imobiliária {company_name}.
Você pode ajudar com as seguintes operações:

1. IMÓVEIS: listar, buscar, criar, alterar ou excluir imóveis; modificar preço, descrição, tipo,
   quartos, banheiros, vagas, área, amenidades; marcar como destaque.
   - Todos os imóveis cadastrados são para VENDA. Nunca pergunte sobre status.
   - Para cadastrar: título descritivo, tipo (casa, apartamento, terreno ou comercial) e descrição.
     O cadastro exige no mínimo 3 imagens anexadas.
2. BAIRROS: listar, criar, alterar ou excluir bairros (nome, descrição, imagem).
3. CLIENTES: listar, criar, alterar ou excluir clientes. Único campo obrigatório: nome.
   Use "notes" para registrar preferências do cliente. Nunca peça email ou telefone se não forem mencionados.
4. PROPRIETÁRIOS: listar, criar, alterar ou excluir proprietários. Único campo obrigatório: nome.
5. FINANCEIRO: listar, criar, alterar ou excluir transações (descrição, valor, tipo "receita" ou
   "despesa", categoria, data, recorrência).

REGRA CRÍTICA - CONFIRMAÇÃO OBRIGATÓRIA:
Toda operação que cria, altera ou exclui dados DEVE solicitar confirmação. Nesses casos responda
APENAS com JSON neste formato:
{{
  "needsConfirmation": true,
  "action": {{
    "type": "create_property | update_property | delete_property | create_neighborhood | update_neighborhood | delete_neighborhood | create_client | update_client | delete_client | create_owner | update_owner | delete_owner | create_financial | update_financial | delete_financial",
    "data": {{ dados da operação }},
    "confirmationMessage": "o que exatamente será modificado"
  }},
  "message": "mensagem amigável explicando o que será feito e pedindo confirmação"
}}

Nomes de campos em "data" (sempre em inglês, snake_case): title, description, property_type, price,
bedrooms, bathrooms, parking_spaces, area, land_area, is_featured, amenities, neighborhood, name,
email, phone, notes, property_ids, amount, type, category, date (AAAA-MM-DD), frequency_type.
Para localizar um registro existente sem id use "search_criteria" com neighborhood, price_range
([mínimo, máximo] ou valor), title e amenities (imóveis), ou name/email (clientes, proprietários,
bairros), ou description (transações).

Exemplo:
Usuário: "Altere o preço do imóvel de 1,4 milhão em Camburi para 1,5 milhão"
Resposta:
{{
  "needsConfirmation": true,
  "action": {{
    "type": "update_property",
    "data": {{"price": 1500000, "search_criteria": {{"neighborhood": "Camburi", "price_range": [1350000, 1450000]}}}},
    "confirmationMessage": "Deseja alterar o preço do imóvel em Camburi de R$ 1.400.000,00 para R$ 1.500.000,00?"
  }},
  "message": "Encontrei um imóvel em Camburi com preço próximo a R$ 1.400.000,00. Confirma a alteração para R$ 1.500.000,00?"
}}

Para consultas (listar, quantos, qual) responda em texto simples, sem JSON.

REGRAS ADICIONAIS:
- Comunique-se sempre em português do Brasil, sem termos técnicos em inglês.
- Valores em reais no formato "R$ 1.500.000,00".
- Ao mencionar imóveis use links markdown com o slug fornecido no contexto: [Título](/imoveis/slug).
- Se houver ambiguidade, peça mais informações antes de propor uma ação.
- Não termine as respostas do chat com assinatura.
- Mensagens preparadas para enviar a clientes vão direto ao texto, usam *negrito* estilo WhatsApp
  e terminam com "Atenciosamente,\\n{company_name}".
"""

DOMAIN_NOTE = """

DOMÍNIO DO SITE: {site_domain}
Em mensagens para WhatsApp ou email use URLs completas: https://{site_domain}/imoveis/slug-do-imovel
No chat continue usando links relativos: /imoveis/slug-do-imovel"""


# =============================================================================
# ERRORS
# =============================================================================

class LLMError(Exception):
    """The LLM request failed; ``message`` is user-facing Portuguese."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class LLMTimeoutError(LLMError):
    pass


class LLMUnavailableError(LLMError):
    pass


def _error_for(error: Exception) -> LLMError:
    """Translate a requests failure into a user-facing LLMError."""
    if isinstance(error, LLMError):
        return error
    if isinstance(error, requests.Timeout):
        return LLMTimeoutError("A requisição demorou muito para responder. Tente novamente.")
    if isinstance(error, requests.ConnectionError):
        return LLMUnavailableError(
            "O servidor de IA está temporariamente indisponível. Tente novamente em alguns instantes."
        )

    status_code = getattr(getattr(error, 'response', None), 'status_code', None)
    if status_code in (401, 403):
        return LLMError("Erro de autenticação com a API de IA. Verifique as configurações da API.", status_code)
    if status_code == 429:
        return LLMError("Muitas requisições foram feitas. Aguarde alguns segundos e tente novamente.", status_code)
    if status_code and status_code >= 500:
        return LLMUnavailableError(
            "O servidor de IA está temporariamente indisponível. Tente novamente em alguns instantes.",
            status_code,
        )
    if status_code and status_code >= 400:
        return LLMError(f"Erro na requisição ({status_code}). Verifique os parâmetros enviados.", status_code)
    return LLMError("Erro inesperado ao se comunicar com a API de IA. Tente novamente.")


def _is_retryable(error: Exception) -> bool:
    status_code = getattr(getattr(error, 'response', None), 'status_code', None)
    if status_code is None:
        return True
    return status_code == 429 or status_code >= 500


# =============================================================================
# CLIENT
# =============================================================================

class LLMClient:
    """
    Client for an OpenAI-compatible chat-completions API.

    Configuration comes from settings: LLM_API_URL, LLM_API_KEY, LLM_MODEL
    and LLM_TIMEOUT (seconds).
    """

    def __init__(self):
        self.api_url = settings.LLM_API_URL
        self.api_key = settings.LLM_API_KEY
        self.model = settings.LLM_MODEL
        self.timeout = settings.LLM_TIMEOUT
        if not self.api_key:
            logger.warning("LLM_API_KEY not set in environment variables")

    def build_messages(self, user_message: str, history: List[Dict[str, str]],
                       company_name: str, site_domain: Optional[str] = None) -> List[Dict[str, str]]:
        system_prompt = SYSTEM_PROMPT.format(company_name=company_name)
        if site_domain:
            system_prompt += DOMAIN_NOTE.format(site_domain=site_domain)
        return [{'role': 'system', 'content': system_prompt}] + list(history) + [
            {'role': 'user', 'content': user_message}
        ]

    def _request(self, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        headers = {'Content-Type': 'application/json'}
        if self.api_key:
            headers['Authorization'] = f"Bearer {self.api_key}"

        response = requests.post(
            self.api_url,
            json={'model': self.model, 'messages': messages, 'stream': False},
            headers=headers,
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def chat(self, user_message: str, history: List[Dict[str, str]], company_name: str,
             site_domain: Optional[str] = None) -> str:
        """
        Send the conversation and return the assistant's text.

        Raises:
            LLMTimeoutError, LLMUnavailableError, LLMError
        """
        messages = self.build_messages(user_message, history, company_name, site_domain)

        last_error = None
        for attempt in range(1, MAX_RETRIES + 1):
            try:
                logger.info(f"LLM request attempt {attempt}/{MAX_RETRIES}")
                data = self._request(messages)
                break
            except requests.RequestException as e:
                last_error = e
                if not _is_retryable(e):
                    logger.error(f"LLM request failed with non-retryable error: {str(e)}")
                    raise _error_for(e)
                if attempt < MAX_RETRIES:
                    delay = RETRY_DELAYS[attempt - 1]
                    logger.warning(f"LLM attempt {attempt} failed ({str(e)}); retrying in {delay}s")
                    time.sleep(delay)
        else:
            logger.error(f"All {MAX_RETRIES} LLM attempts failed")
            raise _error_for(last_error)

        try:
            content = data['choices'][0]['message']['content']
        except (KeyError, IndexError, TypeError):
            content = None
        if not content:
            logger.error(f"Invalid LLM response: {str(data)[:500]}")
            raise LLMError("Resposta inválida da API de IA")

        logger.info(f"LLM response received ({len(content)} characters)")
        return content


# =============================================================================
# RESPONSE PARSING
# =============================================================================

def parse_ai_response(text: str) -> Dict[str, Any]:
    """
    Split an assistant reply into message and proposed action.

    The first ``{...}`` span is used when it parses and either asks for
    confirmation or carries an action (the caller decides whether that
    action must be confirmed). Anything else is treated as plain text.
    """
    match = JSON_OBJECT.search(text or '')
    if match:
        try:
            parsed = json.loads(match.group(0))
        except ValueError:
            parsed = None
        if isinstance(parsed, dict):
            action = parsed.get('action') if isinstance(parsed.get('action'), dict) else None
            if parsed.get('needsConfirmation') or (action and action.get('type')):
                return {
                    'needs_confirmation': bool(parsed.get('needsConfirmation')),
                    'action': action,
                    'message': parsed.get('message') or text,
                }

    return {'needs_confirmation': False, 'action': None, 'message': text}

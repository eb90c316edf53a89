# ===== INTELLIGENCE ASSISTANT TEST SUITE =====
"""
Test suite for the back-office assistant
File: intelligence/tests.py

Test Coverage:
- Input sanitizing and field validation
- Fuzzy matching and price ranges
- Conversation, pending action and candidate stores
- Rate limiting and spam detection
- LLM client retries and reply parsing
- Action handlers (create / update / delete, ambiguity, audit logs)
- Chat and execute pipeline
- API endpoints
"""

import json
import time
import uuid
from datetime import date
from decimal import Decimal
from unittest.mock import Mock, patch

import requests
from django.core.cache import caches
from django.test import TestCase, override_settings

from rest_framework.test import APITestCase, APIClient
from rest_framework import status

from crm.models import Client, FinancialTransaction, Owner
from properties.models import Property, Neighborhood
from . import errors
from .context import (
    CandidateGroup,
    Candidate,
    CandidateStore,
    ConversationStore,
    PendingAction,
    PendingActionStore,
    candidate_groups,
    conversations,
    pending_actions,
)
from .engine import execute_action, parse_selection, process_user_message
from .handlers import format_brl, perform_action
from .llm import LLMClient, LLMError, LLMTimeoutError, parse_ai_response
from .matching import find_clients, find_properties, fuzzy_match, parse_price_range, score_price
from .models import IntelligenceAuditLog
from .rate_limiter import CHAT, EXECUTE, RateLimiter
from .sanitizers import sanitize_email, sanitize_input, snake_case_keys, validate_positive_number


def make_property(**overrides):
    data = {
        'title': 'Casa',
        'slug': f"casa-{uuid.uuid4().hex[:8]}",
        'description': 'Descrição',
        'property_type': 'casa',
        'status': 'venda',
        'price': Decimal('100000.00'),
    }
    data.update(overrides)
    return Property.objects.create(**data)


def llm_reply(payload):
    """Assistant reply carrying a JSON action"""
    return json.dumps(payload, ensure_ascii=False)


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class AssistantStateMixin:
    """Clear the cached assistant state between tests"""

    def setUp(self):
        super().setUp()
        caches['intelligence'].clear()


# =============================================================================
# SANITIZER TESTS
# =============================================================================

class SanitizerTest(TestCase):
    """Test input sanitizing helpers"""

    def test_sanitize_input_strips_markup(self):
        """Test scripts, handlers and javascript: URLs are removed"""
        text = '  Olá <script>alert(1)</script><a onclick="x()" href="javascript:void(0)">link</a>  '
        self.assertEqual(sanitize_input(text), 'Olá <a  href="void(0)">link</a>')
        self.assertEqual(sanitize_input(None), '')

    def test_sanitize_email(self):
        """Test emails are lower-cased and validated"""
        self.assertEqual(sanitize_email(' Ana@Email.COM '), 'ana@email.com')
        self.assertIsNone(sanitize_email('sem-arroba'))

    def test_validate_positive_number(self):
        """Test numeric parsing errors name the field"""
        self.assertEqual(validate_positive_number('12.5', 'Preço'), 12.5)
        with self.assertRaisesMessage(ValueError, 'Preço deve ser um valor positivo'):
            validate_positive_number(-1, 'Preço')
        with self.assertRaisesMessage(ValueError, 'Quartos deve ser um número válido'):
            validate_positive_number('três', 'Quartos')

    def test_snake_case_keys(self):
        """Test camelCase keys are converted recursively"""
        data = {'confirmationMessage': 'ok', 'data': {'propertyType': 'casa', 'searchCriteria': {'priceRange': [1, 2]}}}
        self.assertEqual(snake_case_keys(data), {
            'confirmation_message': 'ok',
            'data': {'property_type': 'casa', 'search_criteria': {'price_range': [1, 2]}},
        })


# =============================================================================
# MATCHING TESTS
# =============================================================================

class MatchingTest(TestCase):
    """Test fuzzy record matching"""

    def test_fuzzy_match(self):
        """Test accent-insensitive equality, containment and threshold"""
        self.assertEqual(fuzzy_match('Camburí', 'camburi'), 1.0)
        self.assertAlmostEqual(fuzzy_match('Casa', 'Casa Azul'), 0.9 * 4 / 9)
        self.assertEqual(fuzzy_match('Juquehy', 'Camburi'), 0.0)
        self.assertEqual(fuzzy_match('', 'Camburi'), 0.0)

    def test_fuzzy_match_edit_distance(self):
        """Test misspellings score by edit distance"""
        # One substitution over seven characters
        self.assertAlmostEqual(fuzzy_match('Camburi', 'Cambury'), 1 - 1 / 7)
        self.assertAlmostEqual(fuzzy_match('Maresias', 'Marésia'), 0.9 * 7 / 8)
        self.assertEqual(fuzzy_match('Boiçucanga', 'Barra do Sahy', threshold=0.6), 0.0)

    def test_parse_price_range(self):
        """Test pairs, single values and Brazilian number text"""
        self.assertEqual(parse_price_range([1, 2]), (1.0, 2.0))
        self.assertEqual(parse_price_range(1000), (900.0, 1100.0))
        self.assertEqual(parse_price_range('em torno de 1.400.000'), (1260000.0, 1540000.0))
        self.assertIsNone(parse_price_range('barato'))

    def test_score_price(self):
        """Test in-range and far-off prices"""
        self.assertEqual(score_price(100, (90, 110)), 1.0)
        self.assertEqual(score_price(200, (90, 110)), 0.0)

    def test_find_properties_by_criteria(self):
        """Test neighborhood and price scoring picks the right listing"""
        camburi = Neighborhood.objects.create(name='Camburi', slug='camburi')
        juquehy = Neighborhood.objects.create(name='Juquehy', slug='juquehy')
        target = make_property(price=Decimal('1400000'), neighborhood=camburi)
        make_property(price=Decimal('800000'), neighborhood=juquehy)

        matches = find_properties({'search_criteria': {'neighborhood': 'Camburi', 'price_range': [1350000, 1450000]}})

        self.assertEqual(len(matches), 1)
        self.assertEqual(matches[0].item, target)
        self.assertEqual(matches[0].confidence, 1.0)

    def test_find_clients_by_name_and_id(self):
        """Test client lookup by fuzzy name and by id"""
        maria = Client.objects.create(name='Maria Silva', email='maria@x.com')
        Client.objects.create(name='Pedro Costa')

        self.assertEqual([m.item for m in find_clients({'name': 'maria silva'})], [maria])
        self.assertEqual([m.item for m in find_clients({'id': str(maria.pk)})], [maria])
        self.assertEqual(find_clients({'id': 'not-a-uuid'}), [])


# =============================================================================
# CONTEXT STORE TESTS
# =============================================================================

class ContextStoreTest(AssistantStateMixin, TestCase):
    """Test the cached assistant stores"""

    def test_conversation_trimmed_to_max_messages(self):
        """Test only the newest messages are kept"""
        store = ConversationStore(max_messages=3)
        for index in range(5):
            store.add_message('s1', 'user', f"mensagem {index}")

        history = store.history('s1')
        self.assertEqual([m['content'] for m in history], ['mensagem 2', 'mensagem 3', 'mensagem 4'])
        self.assertEqual(store.info('s1'), {'has_context': True, 'message_count': 3})

    def test_action_result_rendered_in_history(self):
        """Test executed actions are noted for the LLM"""
        store = ConversationStore()
        store.add_message('s1', 'assistant', 'Feito!', action_result='create_client')
        self.assertEqual(store.history('s1')[0]['content'], 'Feito!\n[Ação executada: create_client]')

        store.clear('s1')
        self.assertEqual(store.info('s1'), {'has_context': False, 'message_count': 0})

    def test_pending_action_expiry(self):
        """Test actions older than five minutes are dropped"""
        store = PendingActionStore()
        fresh_id = store.add(PendingAction(type='delete_client', data={}))
        stale_id = store.add(PendingAction(type='delete_client', data={}, created_at=time.time() - 301))

        self.assertIsNotNone(store.get(fresh_id))
        self.assertIsNone(store.get(stale_id))
        self.assertIsNotNone(store.pop(fresh_id))
        self.assertIsNone(store.pop(fresh_id))

    def test_pop_refuses_stale_action(self):
        """Test an action past its expiry cannot be taken out"""
        store = PendingActionStore()
        message_id = store.add(PendingAction(type='create_client', data={'name': 'Ana'}))

        with patch('intelligence.context.time.time', return_value=time.time() + 301):
            self.assertIsNone(store.pop(message_id))

    def test_history_character_budget(self):
        """Test long messages are cut from history but four are always kept"""
        store = ConversationStore()
        store.add_message('s1', 'user', 'a' * 30000)
        store.add_message('s1', 'assistant', 'b' * 30000)
        for index in range(4):
            store.add_message('s1', 'user', f"curta {index}")

        history = store.history('s1')
        self.assertEqual(len(history), 5)
        self.assertEqual(history[0]['content'], 'b' * 30000)

        store.clear('s1')
        for index in range(6):
            store.add_message('s1', 'user', str(index) * 15000)

        history = store.history('s1')
        self.assertEqual([m['content'][0] for m in history], ['2', '3', '4', '5'])

    def test_conversation_expiry_refreshed_on_touch(self):
        """Test each message stores the context with a fresh timeout"""
        store = ConversationStore(expiry_seconds=1800)
        with patch('intelligence.context.state_cache') as mock_cache:
            mock_cache.return_value.get.return_value = None
            store.add_message('s1', 'user', 'Oi')

        key, context, timeout = mock_cache.return_value.set.call_args[0]
        self.assertEqual(key, 'intelligence:conversation:s1')
        self.assertEqual(timeout, 1800)
        self.assertEqual(context.messages[0].content, 'Oi')

    def test_candidate_groups_capped(self):
        """Test at most five candidates are kept"""
        store = CandidateStore()
        candidates = [Candidate(str(i), f"Item {i}", '', 0.5) for i in range(8)]
        store.add(CandidateGroup(type='delete_client', verb='excluir', candidates=candidates, data={}))

        (_, group), = store.items()
        self.assertEqual(len(group.candidates), 5)

    def test_parse_selection(self):
        """Test numeric and ordinal selections"""
        self.assertEqual(parse_selection('2'), 2)
        self.assertEqual(parse_selection('a terceira'), 3)
        self.assertEqual(parse_selection('Opção 4, por favor'), 4)
        self.assertIsNone(parse_selection('nenhuma'))


# =============================================================================
# RATE LIMITER TESTS
# =============================================================================

class RateLimiterTest(AssistantStateMixin, TestCase):
    """Test request limits, spam detection and blocking"""

    def setUp(self):
        """Set up a limiter with a controllable clock"""
        super().setUp()
        self.clock = FakeClock()
        self.sleeps = []
        self.limiter = RateLimiter(clock=self.clock, sleep=self.sleeps.append)

    def test_chat_limit_per_minute(self):
        """Test the eleventh chat request in a minute is refused"""
        for index in range(10):
            decision = self.limiter.check('u1', CHAT, f"pergunta número {index}")
            self.assertTrue(decision.allowed)
            self.clock.advance(1)

        decision = self.limiter.check('u1', CHAT, 'mais uma pergunta')
        self.assertFalse(decision.allowed)
        self.assertEqual(decision.status_code, 429)
        self.assertTrue(decision.message.startswith('Muitas requisições'))
        self.assertEqual(decision.headers['X-RateLimit-Remaining'], '0')

    def test_remaining_header(self):
        """Test allowed requests report the remaining quota"""
        decision = self.limiter.check('u1', EXECUTE)
        self.assertEqual(decision.headers['X-RateLimit-Limit'], '20')
        self.assertEqual(decision.headers['X-RateLimit-Remaining'], '19')

    def test_minimum_interval_waits(self):
        """Test back-to-back requests sleep for the remaining interval"""
        self.limiter.check('u1', EXECUTE)
        self.limiter.check('u1', EXECUTE)
        self.assertEqual(self.sleeps, [0.5])

    def test_duplicate_spam_blocks_user(self):
        """Test repeated messages become violations and then a block"""
        self.assertTrue(self.limiter.check('u1', CHAT, 'olá mundo').allowed)

        self.clock.advance(1)
        decision = self.limiter.check('u1', CHAT, 'Olá   mundo')
        self.assertTrue(decision.message.startswith('Spam detectado: Mensagem duplicada'))

        self.clock.advance(1)
        self.limiter.check('u1', CHAT, 'olá mundo')
        self.clock.advance(1)
        decision = self.limiter.check('u1', CHAT, 'olá mundo')
        self.assertTrue(decision.message.startswith('Bloqueado temporariamente por spam'))

        self.clock.advance(1)
        decision = self.limiter.check('u1', CHAT, 'outra pergunta')
        self.assertFalse(decision.allowed)
        self.assertIn('Retry-After', decision.headers)
        self.assertEqual(self.limiter.get_stats(), {'total_users': 1, 'blocked_users': 1, 'users_with_violations': 1})

        self.clock.advance(601)
        self.assertTrue(self.limiter.check('u1', CHAT, 'pergunta nova').allowed)

    def test_short_message_is_spam(self):
        """Test messages under three characters"""
        decision = self.limiter.check('u1', CHAT, 'oi')
        self.assertFalse(decision.allowed)
        self.assertIn('Mensagem muito curta', decision.message)

    def test_identical_messages_in_sequence(self):
        """Test a fourth identical message is spam even when spaced out"""
        for _ in range(3):
            self.assertTrue(self.limiter.check('u1', CHAT, 'qual o preço?').allowed)
            self.clock.advance(6)

        decision = self.limiter.check('u1', CHAT, 'qual o preço?')
        self.assertFalse(decision.allowed)
        self.assertIn('Muitas mensagens idênticas em sequência', decision.message)

    def test_expired_block_resets_violations(self):
        """Test a user starts clean once the block is over"""
        for index in range(20):
            self.limiter.check('u1', EXECUTE)
            self.clock.advance(1)
        for _ in range(3):
            decision = self.limiter.check('u1', EXECUTE)
        self.assertTrue(decision.message.startswith('Bloqueado temporariamente por múltiplas violações'))

        self.clock.advance(3600)
        self.assertTrue(self.limiter.check('u1', EXECUTE).allowed)
        self.assertEqual(self.limiter.get_stats()['users_with_violations'], 0)

        # A single new violation no longer blocks
        self.clock.advance(1)
        self.limiter.check('u1', CHAT, 'oi')
        self.assertTrue(self.limiter.check('u1', EXECUTE).allowed)

    def test_state_kept_in_cache(self):
        """Test limiter state is shared through the intelligence cache"""
        self.limiter.check('u1', EXECUTE)
        other = RateLimiter(clock=self.clock, sleep=self.sleeps.append)

        decision = other.check('u1', EXECUTE)

        self.assertEqual(decision.headers['X-RateLimit-Remaining'], '18')
        self.assertIsNotNone(caches['intelligence'].get('intelligence:ratelimit:u1'))


# =============================================================================
# LLM CLIENT TESTS
# =============================================================================

@override_settings(LLM_API_URL='https://llm.test/v1/chat/completions', LLM_API_KEY='test-key', LLM_MODEL='test-model')
class LLMClientTest(TestCase):
    """Test the chat-completions client"""

    def _response(self, content='Resposta'):
        response = Mock()
        response.json.return_value = {'choices': [{'message': {'content': content}}]}
        response.raise_for_status.return_value = None
        return response

    @patch('intelligence.llm.requests.post')
    def test_chat_sends_system_prompt(self, mock_post):
        """Test request shape and returned content"""
        mock_post.return_value = self._response('Olá!')

        reply = LLMClient().chat('Oi', [{'role': 'user', 'content': 'antes'}], 'Imobiliária Teste', 'example.com')

        self.assertEqual(reply, 'Olá!')
        body = mock_post.call_args[1]['json']
        self.assertEqual(body['model'], 'test-model')
        self.assertIn('Imobiliária Teste', body['messages'][0]['content'])
        self.assertIn('https://example.com/imoveis/', body['messages'][0]['content'])
        self.assertEqual(body['messages'][-1], {'role': 'user', 'content': 'Oi'})
        self.assertEqual(mock_post.call_args[1]['headers']['Authorization'], 'Bearer test-key')

    @patch('intelligence.llm.time.sleep')
    @patch('intelligence.llm.requests.post')
    def test_retries_connection_errors(self, mock_post, mock_sleep):
        """Test transient failures are retried with backoff"""
        mock_post.side_effect = [requests.ConnectionError('down'), self._response()]

        self.assertEqual(LLMClient().chat('Oi', [], 'X'), 'Resposta')
        mock_sleep.assert_called_once_with(1)

    @patch('intelligence.llm.time.sleep')
    @patch('intelligence.llm.requests.post')
    def test_timeout_after_retries(self, mock_post, mock_sleep):
        """Test repeated timeouts raise LLMTimeoutError"""
        mock_post.side_effect = requests.Timeout('slow')

        with self.assertRaises(LLMTimeoutError):
            LLMClient().chat('Oi', [], 'X')
        self.assertEqual(mock_post.call_count, 3)
        self.assertEqual([c[0][0] for c in mock_sleep.call_args_list], [1, 2])

    @patch('intelligence.llm.time.sleep')
    @patch('intelligence.llm.requests.post')
    def test_auth_error_not_retried(self, mock_post, mock_sleep):
        """Test 401 fails immediately"""
        response = Mock(status_code=401)
        failing = Mock()
        failing.raise_for_status.side_effect = requests.HTTPError(response=response)
        mock_post.return_value = failing

        with self.assertRaises(LLMError) as ctx:
            LLMClient().chat('Oi', [], 'X')
        self.assertEqual(ctx.exception.status_code, 401)
        self.assertEqual(mock_post.call_count, 1)
        mock_sleep.assert_not_called()

    @patch('intelligence.llm.time.sleep')
    @patch('intelligence.llm.requests.post')
    def test_rate_limited_request_retried(self, mock_post, mock_sleep):
        """Test a 429 from the provider is retried with backoff"""
        throttled = Mock()
        throttled.raise_for_status.side_effect = requests.HTTPError(response=Mock(status_code=429))
        mock_post.side_effect = [throttled, throttled, self._response('Pronto')]

        self.assertEqual(LLMClient().chat('Oi', [], 'X'), 'Pronto')
        self.assertEqual(mock_post.call_count, 3)
        self.assertEqual([c[0][0] for c in mock_sleep.call_args_list], [1, 2])

    def test_parse_ai_response(self):
        """Test JSON actions, plain text and broken JSON"""
        text = 'Claro! ' + llm_reply({
            'needsConfirmation': True,
            'action': {'type': 'delete_client', 'data': {'name': 'Ana'}},
            'message': 'Confirma?',
        })
        parsed = parse_ai_response(text)
        self.assertTrue(parsed['needs_confirmation'])
        self.assertEqual(parsed['action']['type'], 'delete_client')
        self.assertEqual(parsed['message'], 'Confirma?')

        self.assertEqual(parse_ai_response('Temos 3 imóveis.')['action'], None)
        self.assertEqual(parse_ai_response('{quebrado')['message'], '{quebrado')


# =============================================================================
# HANDLER TESTS
# =============================================================================

class HandlerTest(AssistantStateMixin, TestCase):
    """Test confirmed action handlers"""

    def test_format_brl(self):
        """Test Brazilian currency formatting"""
        self.assertEqual(format_brl(1400000), '1.400.000,00')
        self.assertEqual(format_brl(Decimal('950.4'), 0), '950')

    def test_create_client_links_properties(self):
        """Test client creation with email and property links"""
        prop = make_property()
        pending = PendingAction(type='create_client', data={
            'name': 'Maria Silva', 'email': 'Maria@X.com', 'property_ids': [str(prop.pk), 'bad id'],
        })

        result = perform_action(pending, 'admin')

        client = Client.objects.get(pk=result.entity_id)
        self.assertTrue(result.success)
        self.assertEqual(result.message, 'Cliente criado com sucesso!')
        self.assertEqual(client.email, 'maria@x.com')
        self.assertEqual(list(client.properties.all()), [prop])
        log = IntelligenceAuditLog.objects.get()
        self.assertEqual((log.action, log.status, log.user_id), ('create_client', 'success', 'admin'))

    def test_create_client_unknown_property_saves_nothing(self):
        """Test a link to a missing property is refused before the client is saved"""
        missing = uuid.uuid4()
        pending = PendingAction(type='create_client', data={'name': 'Maria Silva', 'property_ids': [str(missing)]})

        with self.assertRaisesMessage(errors.ValidationError, f"Imóvel não encontrado: {missing}"):
            perform_action(pending, 'admin')

        self.assertFalse(Client.objects.exists())

    def test_update_owner_unknown_property_keeps_record(self):
        """Test an update with a missing property leaves the owner untouched"""
        owner = Owner.objects.create(name='Pedro')
        pending = PendingAction(type='update_owner', data={
            'id': str(owner.pk), 'name': 'Pedro Costa', 'property_ids': [str(uuid.uuid4())],
        })

        with self.assertRaises(errors.ValidationError):
            perform_action(pending)

        owner.refresh_from_db()
        self.assertEqual(owner.name, 'Pedro')

    def test_create_client_invalid_email(self):
        """Test malformed emails are refused"""
        pending = PendingAction(type='create_client', data={'name': 'Ana', 'email': 'ana-at-x'})
        with self.assertRaisesMessage(errors.ValidationError, 'Email inválido'):
            perform_action(pending)

    def test_update_client_by_search_criteria(self):
        """Test search_criteria locates the client and top-level fields are new values"""
        client = Client.objects.create(name='Maria Silva')
        pending = PendingAction(type='update_client', data={
            'search_criteria': {'name': 'Maria Silva'}, 'name': 'Maria Souza', 'phone': '12 99999-0000',
        })

        result = perform_action(pending, 'admin')

        client.refresh_from_db()
        self.assertEqual(result.message, 'Cliente atualizado com sucesso!')
        self.assertEqual((client.name, client.phone), ('Maria Souza', '12 99999-0000'))
        details = IntelligenceAuditLog.objects.get().details
        self.assertEqual(details['before']['name'], 'Maria Silva')
        self.assertEqual(details['changes'], {'name': 'Maria Souza', 'phone': '12 99999-0000'})

    def test_update_missing_client(self):
        """Test updating an unknown client raises NotFoundError"""
        pending = PendingAction(type='update_client', data={'search_criteria': {'name': 'Ninguém'}, 'phone': '1'})
        with self.assertRaises(errors.NotFoundError):
            perform_action(pending)

    def test_ambiguous_delete_offers_candidates(self):
        """Test several matches raise a numbered selection prompt"""
        Client.objects.create(name='Ana Paula Souza')
        Client.objects.create(name='Ana Paula Lima')
        pending = PendingAction(type='delete_client', data={'name': 'Ana Paula'})

        with self.assertRaises(errors.ValidationError) as ctx:
            perform_action(pending)

        self.assertIn('Encontrei 2 clientes', ctx.exception.message)
        self.assertIn('1. Ana Paula Lima', ctx.exception.message)
        self.assertEqual(len(candidate_groups), 1)
        self.assertEqual(Client.objects.count(), 2)

    def test_update_property_price(self):
        """Test a property update found by neighborhood and price"""
        camburi = Neighborhood.objects.create(name='Camburi', slug='camburi')
        prop = make_property(price=Decimal('1400000'), neighborhood=camburi)
        pending = PendingAction(type='update_property', data={
            'price': 1500000,
            'search_criteria': {'neighborhood': 'Camburi', 'price_range': [1350000, 1450000]},
        })

        result = perform_action(pending)

        prop.refresh_from_db()
        self.assertEqual(result.message, 'Imóvel atualizado com sucesso!')
        self.assertEqual(prop.price, Decimal('1500000.00'))

    def test_create_property_requires_images(self):
        """Test listings need at least three images"""
        pending = PendingAction(type='create_property', data={'title': 'Casa'}, images=[{'base64_data': 'eA=='}])
        with self.assertRaisesMessage(errors.ValidationError, 'no mínimo 3 imagens'):
            perform_action(pending)

    def test_create_property_rejects_rentals(self):
        """Test only for-sale listings can be created"""
        images = [{'base64_data': 'eA==', 'filename': f"{i}.jpg"} for i in range(3)]
        pending = PendingAction(type='create_property', data={'title': 'Casa', 'status': 'aluguel'}, images=images)
        with self.assertRaisesMessage(errors.ValidationError, 'Apenas imóveis para venda'):
            perform_action(pending)

    @patch('intelligence.handlers.store_base64_image')
    def test_create_property_with_images(self, mock_store):
        """Test a listing is created with stored images and its neighborhood"""
        mock_store.side_effect = lambda data, filename, folder: f"/media/properties/{folder}/{filename}"
        camburi = Neighborhood.objects.create(name='Camburi', slug='camburi')
        images = [{'base64_data': 'eA==', 'filename': f"foto{i}.jpg"} for i in range(1, 4)]
        pending = PendingAction(type='create_property', images=images, data={
            'title': 'Casa com piscina em Camburi',
            'description': 'Linda casa',
            'price': 1500000,
            'bedrooms': 3,
            'neighborhood': 'Camburi',
        })

        result = perform_action(pending, 'admin')

        prop = Property.objects.get(pk=result.entity_id)
        self.assertEqual(result.message, 'Imóvel criado com sucesso com 3 imagem(ns)!')
        self.assertEqual(prop.status, 'venda')
        self.assertEqual(prop.property_type, 'casa')
        self.assertEqual(prop.neighborhood, camburi)
        self.assertEqual(prop.slug, 'casa-com-piscina-em-camburi')
        self.assertEqual(prop.images[0], '/media/properties/casa-com-piscina-em-camburi/foto1.jpg')

    def test_create_financial_defaults(self):
        """Test transaction type aliases and default date / frequency"""
        pending = PendingAction(type='create_transaction', data={
            'description': 'Comissão venda', 'amount': 25000, 'type': 'income',
        })

        result = perform_action(pending)

        transaction = FinancialTransaction.objects.get(pk=result.entity_id)
        self.assertEqual(result.message, 'Transação financeira criada com sucesso!')
        self.assertEqual(transaction.type, 'receita')
        self.assertEqual(transaction.frequency_type, 'unico')
        self.assertEqual(transaction.amount, Decimal('25000.00'))

    def test_create_financial_requires_amount(self):
        """Test the amount is required"""
        pending = PendingAction(type='create_financial', data={'description': 'X', 'type': 'despesa'})
        with self.assertRaisesMessage(errors.ValidationError, 'Valor da transação é obrigatório'):
            perform_action(pending)

    def test_delete_financial(self):
        """Test deleting a transaction by description"""
        FinancialTransaction.objects.create(
            description='Anúncio jornal', amount=Decimal('300'), type='despesa', date=date(2025, 1, 1)
        )
        result = perform_action(PendingAction(type='delete_financial', data={'description': 'anuncio jornal'}))
        self.assertEqual(result.message, 'Transação financeira excluída com sucesso!')
        self.assertFalse(FinancialTransaction.objects.exists())

    def test_unknown_action_type(self):
        """Test unknown types fail without raising"""
        result = perform_action(PendingAction(type='archive_everything', data={}))
        self.assertFalse(result.success)
        self.assertEqual(result.message, 'Tipo de ação desconhecido: archive_everything')


# =============================================================================
# ENGINE TESTS
# =============================================================================

class EngineTest(AssistantStateMixin, TestCase):
    """Test the chat and execute pipeline"""

    @patch('intelligence.engine.LLMClient.chat')
    def test_plain_reply(self, mock_chat):
        """Test a text reply is returned and remembered"""
        mock_chat.return_value = 'Olá! Como posso ajudar?'

        result = process_user_message('Bom dia', 's1')

        self.assertEqual(result, {'message': 'Olá! Como posso ajudar?'})
        self.assertEqual(conversations.info('s1')['message_count'], 2)

    @patch('intelligence.engine.LLMClient.chat')
    def test_history_excludes_current_message(self, mock_chat):
        """Test earlier turns are sent as history"""
        mock_chat.return_value = 'Certo.'
        process_user_message('Primeira pergunta', 's1')
        process_user_message('Segunda pergunta', 's1')

        message, history = mock_chat.call_args[0][:2]
        self.assertEqual(message, 'Segunda pergunta')
        self.assertEqual([h['content'] for h in history], ['Primeira pergunta', 'Certo.'])

    @patch('intelligence.engine.LLMClient.chat')
    def test_listing_question_gets_database_summary(self, mock_chat):
        """Test client questions are enriched with registered clients"""
        Client.objects.create(name='Carlos', notes='procura casa na praia')
        mock_chat.return_value = 'Você tem 1 cliente.'

        process_user_message('Quais clientes eu tenho?', 's1')

        sent = mock_chat.call_args[0][0]
        self.assertIn('[DADOS DO BANCO DE DADOS PARA CONSULTA]', sent)
        self.assertIn('- Carlos (procura casa na praia)', sent)

    @patch('intelligence.engine.LLMClient.chat')
    def test_mutation_forces_confirmation(self, mock_chat):
        """Test a proposed change is held for confirmation even when not flagged"""
        client = Client.objects.create(name='Maria Silva')
        mock_chat.return_value = llm_reply({
            'action': {'type': 'update_client', 'data': {'searchCriteria': {'name': 'Maria Silva'}, 'phone': '123'}},
            'message': 'Vou atualizar o telefone.',
        })

        result = process_user_message('Altere o telefone da Maria', 's1')

        self.assertEqual(result['message'], 'Vou atualizar o telefone.')
        self.assertEqual(result['action']['confirmation_message'], 'Confirma que deseja executar esta modificação?')
        self.assertEqual(result['action']['item_details']['client']['id'], str(client.pk))
        self.assertIsNotNone(pending_actions.get(result['message_id']))

    @patch('intelligence.engine.LLMClient.chat')
    def test_llm_timeout(self, mock_chat):
        """Test LLM timeouts map to a 503 assistant error"""
        mock_chat.side_effect = LLMTimeoutError('slow')
        with self.assertRaises(errors.TimeoutError) as ctx:
            process_user_message('Bom dia', 's1')
        self.assertEqual(ctx.exception.status_code, 503)

    def test_empty_message(self):
        """Test messages that sanitize to nothing"""
        with self.assertRaises(errors.ValidationError):
            process_user_message('<script>x</script>', 's1')

    @patch('intelligence.engine.LLMClient.chat')
    def test_reply_with_listing_images(self, mock_chat):
        """Test #n references return listing images"""
        make_property(title='Casa #12', images=['/1.jpg', '/2.jpg', '/3.jpg', '/4.jpg'])
        mock_chat.return_value = 'Veja o imóvel #12.'

        result = process_user_message('Mostre a casa doze', 's1')

        self.assertEqual(result['property_images'][0]['images'], ['/1.jpg', '/2.jpg', '/3.jpg'])

    def test_execute_confirmed(self):
        """Test a confirmed action runs and is noted in the conversation"""
        message_id = pending_actions.add(PendingAction(type='create_owner', data={'name': 'Pedro'}))

        result, status_code = execute_action(message_id, True, user_id='admin', session_id='s1')

        self.assertEqual(status_code, 200)
        self.assertEqual(result, {'success': True, 'message': 'Proprietário criado com sucesso!'})
        self.assertIn('[Ação executada: create_owner]', conversations.history('s1')[-1]['content'])
        self.assertIsNone(pending_actions.get(message_id))

    def test_execute_cancelled(self):
        """Test cancelling records a cancelled audit entry"""
        message_id = pending_actions.add(PendingAction(type='delete_client', data={'name': 'Ana'}))

        result, status_code = execute_action(message_id, False, user_id='admin')

        self.assertEqual((status_code, result['message']), (200, 'Ação cancelada pelo usuário.'))
        self.assertEqual(IntelligenceAuditLog.objects.get().status, 'cancelled')

    def test_execute_unknown_id(self):
        """Test expired or unknown ids give 404"""
        result, status_code = execute_action('missing', True)
        self.assertEqual(status_code, 404)
        self.assertFalse(result['success'])

    def test_execute_stale_action(self):
        """Test an action older than five minutes is refused and never runs"""
        message_id = pending_actions.add(
            PendingAction(type='create_client', data={'name': 'Ana'}, created_at=time.time() - 600)
        )

        result, status_code = execute_action(message_id, True, user_id='admin')

        self.assertEqual(status_code, 404)
        self.assertFalse(result['success'])
        self.assertFalse(Client.objects.exists())
        self.assertFalse(IntelligenceAuditLog.objects.exists())

    def test_execute_not_found_target(self):
        """Test a missing target gives 404 and a failed audit entry"""
        message_id = pending_actions.add(PendingAction(type='update_neighborhood', data={'id': str(uuid.uuid4())}))

        result, status_code = execute_action(message_id, True)

        self.assertEqual((status_code, result['message']), (404, 'Bairro não encontrado.'))
        self.assertEqual(IntelligenceAuditLog.objects.get().status, 'failed')

    def test_candidate_selection_flow(self):
        """Test choosing a candidate by number and confirming the delete"""
        Client.objects.create(name='Ana Paula Souza')
        Client.objects.create(name='Ana Paula Lima')
        message_id = pending_actions.add(PendingAction(type='delete_client', data={'name': 'Ana Paula'}))

        result, status_code = execute_action(message_id, True, session_id='s1')
        self.assertEqual(status_code, 400)
        self.assertIn('Encontrei 2 clientes', result['message'])

        selected = process_user_message('2', 's1')
        self.assertIn('Ana Paula Souza', selected['message'])
        self.assertEqual(selected['action']['confirmation_message'], 'Confirmar exclusão "Ana Paula Souza"?')

        result, status_code = execute_action(selected['message_id'], True, session_id='s1')
        self.assertEqual(status_code, 200)
        self.assertEqual(list(Client.objects.values_list('name', flat=True)), ['Ana Paula Lima'])


# =============================================================================
# API TESTS
# =============================================================================

@override_settings(INTELLIGENCE_RATE_LIMIT_ENABLED=False)
class IntelligenceAPITest(AssistantStateMixin, APITestCase):
    """Test the assistant endpoints"""

    def setUp(self):
        """Set up an admin session"""
        super().setUp()
        self.client = APIClient()
        session = self.client.session
        session['is_admin'] = True
        session.save()

    def test_requires_admin_session(self):
        """Test anonymous requests get 401"""
        response = APIClient().post('/api/admin/intelligence/chat/', {'message': 'Oi'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data, {'message': 'Unauthorized'})

    def test_chat_rejects_blank_message(self):
        """Test messages that sanitize to nothing"""
        response = self.client.post('/api/admin/intelligence/chat/', {'message': '   '}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'Mensagem não pode estar vazia')

    def test_execute_validates_body(self):
        """Test message_id and a strict boolean are required"""
        response = self.client.post('/api/admin/intelligence/execute/', {'confirmed': True}, format='json')
        self.assertEqual(response.data['message'], 'message_id é obrigatório')

        response = self.client.post(
            '/api/admin/intelligence/execute/', {'message_id': 'x', 'confirmed': 'yes'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['message'], 'confirmed deve ser um valor booleano')

    @patch('intelligence.engine.LLMClient.chat')
    def test_chat_execute_and_audit(self, mock_chat):
        """Test the full propose, confirm and audit cycle"""
        mock_chat.return_value = llm_reply({
            'needsConfirmation': True,
            'action': {
                'type': 'create_client',
                'data': {'name': 'Beatriz Lima', 'notes': 'Procura apartamento'},
                'confirmationMessage': 'Cadastrar a cliente Beatriz Lima?',
            },
            'message': 'Posso cadastrar a cliente Beatriz Lima?',
        })

        response = self.client.post('/api/admin/intelligence/chat/', {'message': 'Cadastre a cliente Beatriz Lima'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['action']['type'], 'create_client')

        response = self.client.post('/api/admin/intelligence/execute/', {
            'message_id': response.data['message_id'], 'confirmed': True,
        }, format='json')
        self.assertEqual(response.data, {'success': True, 'message': 'Cliente criado com sucesso!'})
        self.assertTrue(Client.objects.filter(name='Beatriz Lima').exists())

        response = self.client.get('/api/admin/intelligence/audit-logs/', {'action': 'create_client'})
        self.assertEqual(response.data['total'], 1)
        self.assertEqual(response.data['logs'][0]['user_id'], 'admin')
        self.assertEqual(response.data['logs'][0]['user_message'], 'Cadastre a cliente Beatriz Lima')

    @patch('intelligence.engine.LLMClient.chat')
    def test_chat_llm_failure(self, mock_chat):
        """Test LLM errors return the user-facing message"""
        mock_chat.side_effect = LLMError('boom')
        response = self.client.post('/api/admin/intelligence/chat/', {'message': 'Bom dia'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data['message'], 'Ocorreu um erro ao processar sua mensagem. Por favor, tente novamente.')

    @patch('intelligence.engine.LLMClient.chat')
    def test_context_info_and_clear(self, mock_chat):
        """Test conversation size and reset for the session"""
        mock_chat.return_value = 'Olá!'
        self.client.post('/api/admin/intelligence/chat/', {'message': 'Bom dia'}, format='json')

        response = self.client.get('/api/admin/intelligence/context-info/')
        self.assertEqual(response.data, {'has_context': True, 'message_count': 2})

        response = self.client.post('/api/admin/intelligence/clear-context/')
        self.assertTrue(response.data['success'])
        response = self.client.get('/api/admin/intelligence/context-info/')
        self.assertEqual(response.data['message_count'], 0)

    def test_rate_limit_stats(self):
        """Test limiter counters endpoint"""
        response = self.client.get('/api/admin/intelligence/rate-limit-stats/')
        self.assertEqual(set(response.data), {'total_users', 'blocked_users', 'users_with_violations'})

    @override_settings(INTELLIGENCE_RATE_LIMIT_ENABLED=True)
    @patch('intelligence.engine.LLMClient.chat')
    def test_rate_limit_headers(self, mock_chat):
        """Test the middleware decorates chat responses"""
        mock_chat.return_value = 'Olá!'
        response = self.client.post('/api/admin/intelligence/chat/', {'message': 'Bom dia'}, format='json')
        self.assertEqual(response['X-RateLimit-Limit'], '10')
        self.assertEqual(response['X-RateLimit-Remaining'], '9')

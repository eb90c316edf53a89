"""
Assistant state kept in the ``intelligence`` cache.

Three stores, each entry written with its own cache timeout:
- ConversationStore: recent chat messages per session (30 min idle expiry,
  refreshed on every touch)
- PendingActionStore: proposed actions awaiting confirmation (5 min expiry)
- CandidateStore: candidate lists offered when a target was ambiguous

With the default LocMemCache backend the state is per process and lost on
restart.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from django.core.cache import caches

logger = logging.getLogger(__name__)

CACHE_ALIAS = 'intelligence'

MAX_CONTEXT_MESSAGES = 10
CONTEXT_EXPIRY_SECONDS = 30 * 60
MAX_TOKENS_ESTIMATE = 10000
CHARS_PER_TOKEN_ESTIMATE = 4
MIN_HISTORY_MESSAGES = 4
PENDING_ACTION_EXPIRY_SECONDS = 5 * 60
MAX_CANDIDATES = 5

ENTITY_KINDS = ('properties', 'neighborhoods', 'clients', 'owners', 'financials')


def state_cache():
    return caches[CACHE_ALIAS]


def new_message_id() -> str:
    return uuid.uuid4().hex


# =============================================================================
# CONVERSATIONS
# =============================================================================

@dataclass
class ConversationMessage:
    role: str
    content: str
    timestamp: float = field(default_factory=time.time)
    action_result: Optional[str] = None

    def render(self) -> str:
        if self.action_result:
            return f"{self.content}\n[Ação executada: {self.action_result}]"
        return self.content


@dataclass
class ConversationContext:
    session_id: str
    messages: List[ConversationMessage] = field(default_factory=list)
    last_activity: float = field(default_factory=time.time)
    entity_references: Dict[str, set] = field(default_factory=lambda: {kind: set() for kind in ENTITY_KINDS})


class ConversationStore:
    """Recent messages per session, trimmed for the LLM prompt."""

    key_prefix = 'intelligence:conversation'

    def __init__(self, max_messages=MAX_CONTEXT_MESSAGES, expiry_seconds=CONTEXT_EXPIRY_SECONDS):
        self.max_messages = max_messages
        self.expiry_seconds = expiry_seconds

    def _key(self, session_id):
        return f"{self.key_prefix}:{session_id}"

    def _load(self, session_id) -> Optional[ConversationContext]:
        return state_cache().get(self._key(session_id))

    def _save(self, context: ConversationContext):
        context.last_activity = time.time()
        state_cache().set(self._key(context.session_id), context, self.expiry_seconds)

    def _get_or_create(self, session_id) -> ConversationContext:
        context = self._load(session_id)
        if context is None:
            context = ConversationContext(session_id=session_id)
            logger.debug(f"New conversation context for session {session_id}")
        return context

    def add_message(self, session_id: str, role: str, content: str, action_result: Optional[str] = None):
        context = self._get_or_create(session_id)
        context.messages.append(ConversationMessage(role, content, time.time(), action_result))
        if len(context.messages) > self.max_messages:
            context.messages = context.messages[-self.max_messages:]
        self._save(context)

    def add_entity_reference(self, session_id: str, kind: str, entity_id: str):
        context = self._get_or_create(session_id)
        context.entity_references.setdefault(kind, set()).add(str(entity_id))
        self._save(context)

    def history(self, session_id: str) -> List[Dict[str, str]]:
        """
        Messages to send to the LLM, newest last.

        Walks backwards until the character budget is spent, but always keeps
        at least MIN_HISTORY_MESSAGES.
        """
        context = self._load(session_id)
        messages = list(context.messages) if context else []

        budget = MAX_TOKENS_ESTIMATE * CHARS_PER_TOKEN_ESTIMATE
        total = 0
        selected: List[ConversationMessage] = []
        for message in reversed(messages):
            size = len(message.content) + len(message.action_result or '')
            if total + size > budget and len(selected) >= MIN_HISTORY_MESSAGES:
                break
            selected.insert(0, message)
            total += size

        return [{'role': message.role, 'content': message.render()} for message in selected]

    def clear(self, session_id: str):
        state_cache().delete(self._key(session_id))
        logger.info(f"Conversation context cleared for session {session_id}")

    def info(self, session_id: str) -> Dict[str, Any]:
        context = self._load(session_id)
        count = len(context.messages) if context else 0
        return {'has_context': count > 0, 'message_count': count}

    def reset(self):
        state_cache().clear()


# =============================================================================
# PENDING ACTIONS
# =============================================================================

@dataclass
class PendingAction:
    type: str
    data: Dict[str, Any]
    confirmation_message: str = ''
    item_details: Optional[Dict[str, Any]] = None
    images: Optional[List[Dict[str, str]]] = None
    selected_item_id: Optional[str] = None
    user_message: str = ''
    ai_response: str = ''
    created_at: float = field(default_factory=time.time)

    def to_representation(self) -> Dict[str, Any]:
        """Action as returned to the admin UI (without image payloads)."""
        data = {
            'type': self.type,
            'data': self.data,
            'confirmation_message': self.confirmation_message,
        }
        if self.item_details is not None:
            data['item_details'] = self.item_details
        if self.selected_item_id:
            data['selected_item_id'] = self.selected_item_id
        if self.images:
            data['image_count'] = len(self.images)
        return data


class PendingActionStore:
    """Actions awaiting confirmation, keyed by message id."""

    key_prefix = 'intelligence:pending'

    def __init__(self, expiry_seconds=PENDING_ACTION_EXPIRY_SECONDS):
        self.expiry_seconds = expiry_seconds

    def _key(self, message_id):
        return f"{self.key_prefix}:{message_id}"

    def _remaining(self, action: PendingAction) -> float:
        return self.expiry_seconds - (time.time() - action.created_at)

    def add(self, action: PendingAction) -> str:
        message_id = new_message_id()
        # The cache timeout counts from creation, not from storage
        state_cache().set(self._key(message_id), action, max(1, int(self._remaining(action))))
        return message_id

    def get(self, message_id: str) -> Optional[PendingAction]:
        """Return the action if it exists and has not expired."""
        action = state_cache().get(self._key(message_id))
        if action is not None and self._remaining(action) <= 0:
            state_cache().delete(self._key(message_id))
            logger.info(f"Pending action {message_id} expired")
            return None
        return action

    def pop(self, message_id: str) -> Optional[PendingAction]:
        """Take an action out of the store; only one caller can win."""
        action = self.get(message_id)
        if action is None or not state_cache().delete(self._key(message_id)):
            return None
        return action

    def reset(self):
        state_cache().clear()


# =============================================================================
# AMBIGUOUS TARGET CANDIDATES
# =============================================================================

@dataclass
class Candidate:
    id: str
    title: str
    details: str
    confidence: float


@dataclass
class CandidateGroup:
    type: str
    verb: str
    candidates: List[Candidate]
    data: Dict[str, Any]
    images: Optional[List[Dict[str, str]]] = None
    created_at: float = field(default_factory=time.time)


class CandidateStore:
    """
    Candidate groups offered to the admin, oldest first.

    Each group is a cache entry of its own; an index entry keeps their order.
    """

    key_prefix = 'intelligence:candidates'

    def __init__(self, expiry_seconds=PENDING_ACTION_EXPIRY_SECONDS):
        self.expiry_seconds = expiry_seconds

    @property
    def _index_key(self):
        return f"{self.key_prefix}:index"

    def _key(self, group_id):
        return f"{self.key_prefix}:{group_id}"

    def add(self, group: CandidateGroup) -> str:
        group.candidates = group.candidates[:MAX_CANDIDATES]
        group_id = new_message_id()
        cache = state_cache()
        cache.set(self._key(group_id), group, self.expiry_seconds)
        index = [gid for gid, _ in self.items()] + [group_id]
        cache.set(self._index_key, index, self.expiry_seconds)
        return group_id

    def items(self):
        cache = state_cache()
        index = cache.get(self._index_key, [])
        stored = cache.get_many([self._key(gid) for gid in index])
        now = time.time()
        live = []
        for group_id in index:
            group = stored.get(self._key(group_id))
            if group is not None and now - group.created_at <= self.expiry_seconds:
                live.append((group_id, group))
        if len(live) != len(index):
            cache.set(self._index_key, [gid for gid, _ in live], self.expiry_seconds)
        return live

    def remove(self, group_id: str):
        cache = state_cache()
        cache.delete(self._key(group_id))
        index = cache.get(self._index_key, [])
        if group_id in index:
            index.remove(group_id)
            cache.set(self._index_key, index, self.expiry_seconds)

    def __len__(self):
        return len(self.items())

    def reset(self):
        state_cache().clear()


conversations = ConversationStore()
pending_actions = PendingActionStore()
candidate_groups = CandidateStore()

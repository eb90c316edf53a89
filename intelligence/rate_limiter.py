"""
Rate limiting and spam detection for the assistant endpoints.

Per user (session key or client IP):
- chat: 10 requests per minute, execute: 20 requests per hour
- at least 500 ms between consecutive requests (the caller waits)
- chat messages must be 3-5000 characters; a repeated message within 5 s,
  or the same message three times in a row, counts as spam
- every limit or spam hit is a violation; three violations block the user
  for 10 minutes

Per-user state is one entry in the ``intelligence`` cache that expires an
hour after the user's last request. A cached index of user ids feeds the
stats endpoint and the five-minute sweep.
"""

import hashlib
import logging
import math
import re
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone as dt_timezone
from typing import Dict, List, Optional

from django.core.cache import caches

logger = logging.getLogger(__name__)

CACHE_ALIAS = 'intelligence'
KEY_PREFIX = 'intelligence:ratelimit'
USER_INDEX_KEY = f"{KEY_PREFIX}:users"

CHAT = 'chat'
EXECUTE = 'execute'

LIMITS = {
    CHAT: (10, 60),
    EXECUTE: (20, 60 * 60),
}
MIN_REQUEST_INTERVAL = 0.5
SPAM_DUPLICATE_WINDOW = 5
MAX_SEQUENTIAL_DUPLICATES = 3
RECENT_MESSAGE_HISTORY = 10
RECENT_MESSAGE_MAX_AGE = 60
MIN_MESSAGE_LENGTH = 3
MAX_MESSAGE_LENGTH = 5000
MAX_VIOLATIONS = 3
BLOCK_DURATION = 10 * 60
CLEANUP_INTERVAL = 5 * 60
STATE_TIMEOUT = max(window for _, window in LIMITS.values())

WHITESPACE = re.compile(r'\s+')


@dataclass
class RateLimitDecision:
    allowed: bool
    status_code: int = 200
    message: str = ''
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass
class UserRateData:
    requests: Dict[str, List[float]] = field(default_factory=lambda: {CHAT: [], EXECUTE: []})
    last_request_time: float = 0.0
    violations: int = 0
    blocked_until: Optional[float] = None
    recent_messages: List[tuple] = field(default_factory=list)


def hash_message(message: str) -> str:
    normalized = WHITESPACE.sub(' ', message.lower().strip())
    return hashlib.sha1(normalized.encode('utf-8')).hexdigest()


def _iso(timestamp: float) -> str:
    return datetime.fromtimestamp(timestamp, tz=dt_timezone.utc).isoformat().replace('+00:00', 'Z')


class RateLimiter:
    """Cache-backed limiter used by the rate limit middleware."""

    def __init__(self, min_request_interval=MIN_REQUEST_INTERVAL, clock=time.time, sleep=time.sleep):
        self.min_request_interval = min_request_interval
        self._clock = clock
        self._sleep = sleep
        self._last_cleanup = clock()

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def check(self, user_id: str, endpoint: str, message: Optional[str] = None) -> RateLimitDecision:
        """
        Record a request and decide whether it may proceed.

        Allowed requests may block briefly to honour the minimum interval.
        """
        now = self._clock()
        self._maybe_cleanup(now)

        data = self._load(user_id)
        decision, wait = self._decide(user_id, data, endpoint, message, now)
        self._save(user_id, data)

        if wait > 0:
            self._sleep(wait)
        return decision

    def get_stats(self) -> Dict[str, int]:
        """Tracked users, currently blocked users and users with violations."""
        now = self._clock()
        users = self._tracked_users()
        return {
            'total_users': len(users),
            'blocked_users': sum(1 for d in users.values() if d.blocked_until and now < d.blocked_until),
            'users_with_violations': sum(1 for d in users.values() if d.violations > 0),
        }

    def cleanup(self):
        self._cleanup(self._clock())

    def reset(self):
        cache = self._cache
        cache.delete_many([self._key(user_id) for user_id in cache.get(USER_INDEX_KEY, [])])
        cache.delete(USER_INDEX_KEY)

    # -------------------------------------------------------------------------
    # Cache access
    # -------------------------------------------------------------------------

    @property
    def _cache(self):
        return caches[CACHE_ALIAS]

    def _key(self, user_id):
        return f"{KEY_PREFIX}:{user_id}"

    def _load(self, user_id) -> UserRateData:
        return self._cache.get(self._key(user_id)) or UserRateData()

    def _save(self, user_id, data: UserRateData):
        cache = self._cache
        cache.set(self._key(user_id), data, STATE_TIMEOUT)
        index = cache.get(USER_INDEX_KEY, [])
        if user_id not in index:
            index.append(user_id)
        cache.set(USER_INDEX_KEY, index, STATE_TIMEOUT)

    def _tracked_users(self) -> Dict[str, UserRateData]:
        """Users still present in the cache; expired ones leave the index."""
        cache = self._cache
        index = cache.get(USER_INDEX_KEY, [])
        stored = cache.get_many([self._key(user_id) for user_id in index])
        users = {user_id: stored[self._key(user_id)] for user_id in index if self._key(user_id) in stored}
        if len(users) != len(index):
            cache.set(USER_INDEX_KEY, list(users), STATE_TIMEOUT)
        return users

    # -------------------------------------------------------------------------
    # Decisions
    # -------------------------------------------------------------------------

    def _decide(self, user_id, data, endpoint, message, now):
        limit, window = LIMITS[endpoint]

        if data.blocked_until and now < data.blocked_until:
            retry_after = math.ceil(data.blocked_until - now)
            return RateLimitDecision(
                allowed=False,
                status_code=429,
                message=(
                    "Você foi temporariamente bloqueado por exceder os limites. "
                    f"Tente novamente em {retry_after} segundos."
                ),
                headers={'Retry-After': str(retry_after)},
            ), 0.0
        if data.blocked_until:
            data.blocked_until = None
            data.violations = 0

        timestamps = [ts for ts in data.requests[endpoint] if now - ts < window]
        data.requests[endpoint] = timestamps

        if len(timestamps) >= limit:
            blocked = self._add_violation(user_id, data, now)
            if blocked:
                return blocked, 0.0
            reset_time = timestamps[0] + window
            retry_after = max(1, math.ceil(reset_time - now))
            return RateLimitDecision(
                allowed=False,
                status_code=429,
                message=f"Muitas requisições. Tente novamente em {retry_after} segundos.",
                headers={
                    'X-RateLimit-Limit': str(limit),
                    'X-RateLimit-Remaining': '0',
                    'X-RateLimit-Reset': _iso(reset_time),
                    'Retry-After': str(retry_after),
                },
            ), 0.0

        if endpoint == CHAT and message:
            reason = self._detect_spam(data, message, now)
            if reason:
                blocked = self._add_violation(user_id, data, now, spam=True)
                if blocked:
                    return blocked, 0.0
                return RateLimitDecision(
                    allowed=False,
                    status_code=429,
                    message=f"Spam detectado: {reason}. Por favor, aguarde antes de enviar novamente.",
                ), 0.0

        wait = 0.0
        elapsed = now - data.last_request_time
        if elapsed < self.min_request_interval:
            wait = self.min_request_interval - elapsed
        data.last_request_time = now + wait

        timestamps.append(now)
        reset_time = timestamps[0] + window
        return RateLimitDecision(allowed=True, headers={
            'X-RateLimit-Limit': str(limit),
            'X-RateLimit-Remaining': str(max(0, limit - len(timestamps))),
            'X-RateLimit-Reset': _iso(reset_time),
        }), wait

    def _add_violation(self, user_id, data, now, spam=False) -> Optional[RateLimitDecision]:
        data.violations += 1
        if data.violations < MAX_VIOLATIONS:
            return None

        data.blocked_until = now + BLOCK_DURATION
        logger.error(f"Assistant abuse detected, blocking {user_id} for {BLOCK_DURATION}s")
        reason = "spam" if spam else "múltiplas violações de limite"
        return RateLimitDecision(
            allowed=False,
            status_code=429,
            message=f"Bloqueado temporariamente por {reason}. Tente novamente em {BLOCK_DURATION} segundos.",
            headers={'Retry-After': str(BLOCK_DURATION)},
        )

    def _detect_spam(self, data, message, now) -> Optional[str]:
        if len(message) < MIN_MESSAGE_LENGTH:
            return f"Mensagem muito curta (mínimo: {MIN_MESSAGE_LENGTH} caracteres)"
        if len(message) > MAX_MESSAGE_LENGTH:
            return f"Mensagem muito longa (máximo: {MAX_MESSAGE_LENGTH} caracteres)"

        message_hash = hash_message(message)
        if any(h == message_hash and now - ts < SPAM_DUPLICATE_WINDOW for h, ts in data.recent_messages):
            return "Mensagem duplicada enviada muito rapidamente"

        last = data.recent_messages[-MAX_SEQUENTIAL_DUPLICATES:]
        if len([h for h, _ in last if h == message_hash]) >= MAX_SEQUENTIAL_DUPLICATES:
            return "Muitas mensagens idênticas em sequência"

        data.recent_messages.append((message_hash, now))
        if len(data.recent_messages) > RECENT_MESSAGE_HISTORY:
            data.recent_messages.pop(0)
        return None

    # -------------------------------------------------------------------------
    # Sweep
    # -------------------------------------------------------------------------

    def _maybe_cleanup(self, now):
        if now - self._last_cleanup >= CLEANUP_INTERVAL:
            self._cleanup(now)

    def _cleanup(self, now):
        self._last_cleanup = now
        cache = self._cache
        for user_id, data in self._tracked_users().items():
            for endpoint, (_, window) in LIMITS.items():
                data.requests[endpoint] = [ts for ts in data.requests[endpoint] if now - ts < window]
            data.recent_messages = [(h, ts) for h, ts in data.recent_messages if now - ts < RECENT_MESSAGE_MAX_AGE]

            if data.blocked_until and now > data.blocked_until:
                data.blocked_until = None
                data.violations = 0

            active = (
                any(data.requests.values())
                or data.recent_messages
                or data.blocked_until is not None
                or now - data.last_request_time < STATE_TIMEOUT
            )
            if active:
                cache.set(self._key(user_id), data, STATE_TIMEOUT)
            else:
                cache.delete(self._key(user_id))
        self._tracked_users()


rate_limiter = RateLimiter()

"""
Redis-based rate limiting for API endpoints.
Fixed-window counter per client and endpoint; fails open when Redis is down.
Exceeding the limit raises DRF's Throttled, rendered as a 429 envelope.
"""
import logging
from functools import wraps

import redis
from django.conf import settings
from rest_framework.exceptions import Throttled

from .audit import get_client_ip

logger = logging.getLogger(__name__)

# Initialize Redis client
try:
    redis_client = redis.Redis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
        socket_connect_timeout=2
    )
    redis_client.ping()
except (redis.ConnectionError, redis.TimeoutError) as e:
    logger.warning(f"Redis connection failed: {e}. Rate limiting will be disabled.")
    redis_client = None


def _client_key(scope: str, request) -> str:
    user = getattr(request, 'user', None)
    if user is not None and user.is_authenticated:
        ident = f"user:{user.pk}"
    else:
        ident = f"ip:{get_client_ip(request) or 'unknown'}"
    return f"rate_limit:{scope}:{ident}"


def check_rate_limit(scope: str, request, max_requests: int, window_seconds: int):
    """
    Count one request against the caller's window for ``scope``.

    Returns:
        (remaining, ttl), or None when limiting is disabled or Redis failed

    Raises:
        Throttled: the caller exceeded ``max_requests`` in the window
    """
    if not getattr(settings, 'RATE_LIMIT_ENABLED', True) or redis_client is None:
        return None

    key = _client_key(scope, request)
    try:
        current_count = redis_client.incr(key)
        # Set expiry on first request
        if current_count == 1:
            redis_client.expire(key, window_seconds)
        ttl = redis_client.ttl(key)
    except redis.RedisError as e:
        logger.error(f"Redis error in rate limiting: {e}")
        return None

    if current_count > max_requests:
        logger.warning(f"Rate limit exceeded for {key}")
        raise Throttled(
            wait=max(ttl, 0),
            detail=f"Rate limit exceeded. Maximum {max_requests} requests per {window_seconds} seconds allowed."
        )
    return max(0, max_requests - current_count), ttl


def _apply_headers(response, max_requests: int, state):
    if state is None:
        return response
    remaining, ttl = state
    response['X-RateLimit-Limit'] = str(max_requests)
    response['X-RateLimit-Remaining'] = str(remaining)
    response['X-RateLimit-Reset'] = str(ttl)
    return response


def rate_limit(max_requests: int = 20, window_seconds: int = 60):
    """
    Rate limiting decorator for DRF view methods.

    Usage:
        @rate_limit(30, 60)  # 30 requests per minute
        def get(self, request, space_id):
            ...
    """
    def decorator(view_func):
        @wraps(view_func)
        def wrapper(self, request, *args, **kwargs):
            state = check_rate_limit(view_func.__qualname__, request, max_requests, window_seconds)
            response = view_func(self, request, *args, **kwargs)
            return _apply_headers(response, max_requests, state)
        return wrapper
    return decorator


class RateLimitMixin:
    """
    Mixin for DRF class-based views; all methods of a view share one counter.

    Usage:
        class MyView(RateLimitMixin, APIView):
            rate_limit_max_requests = 60
            rate_limit_window_seconds = 60
    """
    rate_limit_max_requests = 60
    rate_limit_window_seconds = 60

    def initial(self, request, *args, **kwargs):
        super().initial(request, *args, **kwargs)
        self._rate_limit_state = check_rate_limit(
            self.__class__.__name__, request,
            self.rate_limit_max_requests, self.rate_limit_window_seconds
        )

    def finalize_response(self, request, response, *args, **kwargs):
        response = super().finalize_response(request, response, *args, **kwargs)
        return _apply_headers(
            response, self.rate_limit_max_requests, getattr(self, '_rate_limit_state', None)
        )

"""
Caching utilities for expensive report queries.
Redis (django-redis) in production, any Django cache backend otherwise.
"""
import hashlib
import logging
from functools import wraps

from django.conf import settings
from django.core.cache import cache

logger = logging.getLogger(__name__)

REPORTS_CACHE_PREFIX = 'reports'


def reports_cache_ttl():
    return getattr(settings, 'REPORTS_CACHE_TTL', 600)


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    # Hash it to keep key length reasonable
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def report_cache_key(report_name, business_id, **params):
    """Key scoped by business so invalidation can target one tenant"""
    return make_cache_key(f"{REPORTS_CACHE_PREFIX}:{business_id}:{report_name}", **params)


def cached_report(report_name):
    """
    Cache a report builder's result per business and parameters.

    The wrapped function must take ``business`` as its first argument;
    the remaining keyword arguments become part of the key.

    Usage:
        @cached_report('cash_flow')
        def build_cash_flow(business, date_from=None, date_to=None):
            ...
    """
    def decorator(func):
        @wraps(func)
        def wrapper(business, **params):
            cache_key = report_cache_key(report_name, business.id, **params)
            cached_data = cache.get(cache_key)
            if cached_data is not None:
                logger.debug(f"Cache HIT for {report_name}: {cache_key}")
                return cached_data

            logger.debug(f"Cache MISS for {report_name}: {cache_key}")
            result = func(business, **params)
            cache.set(cache_key, result, reports_cache_ttl())
            return result
        return wrapper
    return decorator


def invalidate_cache_pattern(pattern):
    """
    Invalidate all cache keys matching a pattern.

    Uses django-redis ``delete_pattern`` when the backend provides it; other
    backends cannot enumerate keys, so the whole cache is cleared.
    """
    try:
        if hasattr(cache, 'delete_pattern'):
            deleted = cache.delete_pattern(f"*{pattern}*")
            logger.info(f"Cache invalidation requested for pattern: {pattern} - Deleted {deleted} keys")
        else:
            cache.clear()
            logger.info(f"Cache invalidation requested for pattern: {pattern} - Backend cleared")
    except Exception as e:
        logger.warning(f"Could not invalidate cache pattern {pattern}: {str(e)}")


def invalidate_reports_cache(business_id=None):
    """Invalidate cached reports for one business (or all businesses)"""
    if business_id is None:
        invalidate_cache_pattern(f"{REPORTS_CACHE_PREFIX}:")
    else:
        invalidate_cache_pattern(f"{REPORTS_CACHE_PREFIX}:{business_id}:")

"""
Cache utilities for the Gridiron Picks application
Provides a route caching decorator and invalidation helpers
"""

import functools

from flask import current_app, jsonify, request

from gridiron import cache


def make_cache_key(*args, **kwargs):
    """Generate a cache key from request path, query string and arguments"""
    path = request.path
    query = "_".join(f"{k}_{v}" for k, v in sorted(request.args.items()))
    args_str = "_".join(str(arg) for arg in args)
    kwargs_str = "_".join(f"{k}_{v}" for k, v in sorted(kwargs.items()))
    return f"{path}_{query}_{args_str}_{kwargs_str}".replace("/", "_")


def cached_route(timeout=60, key_prefix="view"):
    """
    Decorator for caching route responses

    Args:
        timeout: Cache timeout in seconds
        key_prefix: Prefix for cache key
    """

    def decorator(f):
        @functools.wraps(f)
        def wrapped(*args, **kwargs):
            cache_key = f"{key_prefix}_{make_cache_key(*args, **kwargs)}"

            payload = cache.get(cache_key)
            if payload is not None:
                current_app.logger.debug(f"Cache hit for key: {cache_key}")
                return jsonify(payload)

            result = f(*args, **kwargs)

            # Only successful JSON responses are cached, as plain data
            response = result[0] if isinstance(result, tuple) else result
            status = result[1] if isinstance(result, tuple) else response.status_code
            if status == 200 and response.is_json:
                cache.set(cache_key, response.get_json(), timeout=timeout)
                current_app.logger.debug(f"Cache set for key: {cache_key}")

            return result

        return wrapped

    return decorator


def invalidate_model_cache(model_name):
    """
    Invalidate cached responses derived from a model

    SimpleCache cannot delete by pattern, so the whole cache is cleared.
    """
    try:
        cache.clear()
        current_app.logger.debug(f"Cache cleared for {model_name}")
    except Exception as e:
        current_app.logger.error(f"Failed to clear cache: {e}")

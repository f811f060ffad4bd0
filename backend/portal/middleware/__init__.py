"""
Portal Backend - Middleware Package
=====================================

Middleware chain (outermost first, as registered in main.create_app):
    Request -> [Request ID] -> [Access Log] -> [Auth/CSRF Gate] -> [GZip] -> [CORS] -> Route

    Request ID runs first so the access log, the gate's CSRF warnings and the
    error handlers all see the correlation id. The gate runs before routing;
    per-route rate limits are dependencies (rate_limit.RateLimitGuard) rather
    than middleware because each route picks its own scope.
"""

"""
Portal Backend - API Routes Package
=====================================

Route Inventory:
    - health.py:      GET  /health, GET /api/health (admin)
    - auth.py:        /api/auth/register, login, logout, reset-password
    - users.py:       /api/users (admin list), /api/users/{id}, /api/users/{id}/role
    - user.py:        /api/user/profile, theme, avatar (current user)
    - articles.py:    /api/articles, /api/articles/featured, /api/articles/{slug}
    - categories.py:  /api/categories, /api/categories/{slug}
    - storage.py:     /api/storage, /api/storage/{bucket}/{path}
    - logs.py:        POST /api/logs/client

Routes stay thin: read the request, call a service, wrap the result with
success_response(). Errors are raised as PortalError subclasses and rendered
by the handlers registered in main.py.
"""

# Routes package init
"""
SkateSwap Backend - API Routes Package
========================================

What:  HTTP route handlers that accept requests and return responses.

Route Inventory:
    - listings.py:   /api/listings, /api/listings/{id}
    - users.py:      /api/register, /api/login, /api/users/{id}/listings,
                     /api/users/{id}/stats
    - messaging.py:  /api/conversations, /api/messages,
                     /api/users/{id}/conversations,
                     /api/conversations/{id}/messages
    - uploads.py:    /api/upload-image
    - stats.py:      /api/stats/community, /api/stats/users
    - dev.py:        /api/setup-db, /api/create-sample-posts (ENABLE_DEV_ROUTES only)
    - health.py:     /health

Routes stay thin: extract the request data, call a service, return its
result. Business rules live in services.
"""

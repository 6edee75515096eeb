# Middleware package init
"""
SkateSwap Backend - Middleware Package
========================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain:
    Request → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    Request ID runs first so the access log line and any error response
    carry the ID. Responses pass back through the chain in reverse.
"""

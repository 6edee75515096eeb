"""
SkateSwap Backend - Application Package
=========================================

What:  The marketplace backend: user accounts, item listings with images,
       and buyer-seller messaging threads.
Who:   Imported by uvicorn (skateswap.main:app), Alembic, and pytest.

Architecture Note:
    The backend follows a layered layout:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Listings, users, messaging,
    │                                     │    image codec, image host
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Listing images flow through a single codec (services/image_codec.py)
    on every write and every read, so the persisted `image_urls` column has
    exactly one interpretation across all endpoints.
"""

__version__ = "1.0.0"

# Services package init
"""
SkateSwap Backend - Services Layer
====================================

What:  Business logic between routes (HTTP) and the database (persistence).
How:   Each service is a stateless singleton; methods take the request's
       AsyncSession as their first argument.

Service Inventory:
    - ImageSetCodec: listing image encode/decode and primary-image fallback
    - ListingService: listing writes (encode) and reads (decode)
    - UserService / auth_service: registration, login, bcrypt, JWT
    - ConversationService: buyer-seller threads and messages
    - StatsService: marketplace-wide counters
    - ImageHost (abstract) / CloudinaryService: hosted image storage
    - ImageUploadService: data URI validation in front of the image host
    - SeedService: demo user and sample listings (dev routes only)
"""

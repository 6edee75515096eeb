"""
SkateSwap Backend - API Route Tests
=====================================

What:  End-to-end tests through the FastAPI app: request parsing, status
       codes, the error envelope and response shapes.
How:   HTTPX AsyncClient over ASGITransport (test_client fixture); the
       database is the in-memory SQLite session, the image host is mocked.

What we test:
    ✅ Listing create/read/update/delete with camelCase bodies
    ✅ Image input shapes on the wire (list, single string, missing)
    ✅ Error envelope: 403 / 404 / 400 / 401 / 503 with request_id
    ✅ Register → login flow
    ✅ Messaging flow: start conversation, send, read
    ✅ Upload endpoint delegates to the image upload service
    ✅ Health and stats endpoints, including the image-host circuit state
"""

from unittest.mock import AsyncMock, patch

import pytest

from skateswap.exceptions import CircuitBreakerOpenError
from skateswap.schemas.common import ImageUploadResponse
from skateswap.services.cloudinary_service import CircuitBreaker, cloudinary_service


def listing_body(seller_id, **overrides):
    body = {
        "sellerId": seller_id,
        "title": "Powell Peralta Bones Brigade Deck",
        "category": "decks",
        "price": 89.99,
        "condition": "like-new",
        "description": "Reissue, never set up.",
        "location": "Nairobi, Kenya",
    }
    body.update(overrides)
    return body


class TestListingRoutes:

    @pytest.mark.asyncio
    async def test_create_with_gallery(self, test_client, seller):
        response = await test_client.post(
            "/api/listings",
            json=listing_body(seller.id, imageUrls=["a.jpg", "b.jpg"]),
        )

        assert response.status_code == 201
        listing = response.json()["listing"]
        assert listing["image_urls"] == ["a.jpg", "b.jpg"]
        assert listing["primary_image_url"] == "a.jpg"
        assert listing["seller_name"] == "deckdealer"

    @pytest.mark.asyncio
    async def test_create_with_single_url_string(self, test_client, seller):
        response = await test_client.post(
            "/api/listings", json=listing_body(seller.id, imageUrls="one.jpg")
        )
        assert response.status_code == 201
        assert response.json()["listing"]["image_urls"] == ["one.jpg"]

    @pytest.mark.asyncio
    async def test_create_without_images(self, test_client, seller):
        response = await test_client.post("/api/listings", json=listing_body(seller.id))
        listing_id = response.json()["listing"]["id"]

        fetched = await test_client.get(f"/api/listings/{listing_id}")

        assert fetched.status_code == 200
        assert fetched.json()["image_urls"] == []
        assert fetched.json()["primary_image_url"] is None

    @pytest.mark.asyncio
    async def test_create_with_unusable_image_input_stores_no_images(self, test_client, seller):
        response = await test_client.post(
            "/api/listings", json=listing_body(seller.id, imageUrls={"url": "a.jpg"})
        )
        assert response.status_code == 201
        assert response.json()["listing"]["image_urls"] == []

    @pytest.mark.asyncio
    async def test_missing_required_field_is_422(self, test_client, seller):
        body = listing_body(seller.id)
        del body["title"]
        response = await test_client.post("/api/listings", json=body)
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_feed_lists_newest_first(self, test_client, seller):
        await test_client.post("/api/listings", json=listing_body(seller.id, title="Older"))
        await test_client.post("/api/listings", json=listing_body(seller.id, title="Newer"))

        response = await test_client.get("/api/listings")

        assert response.status_code == 200
        titles = [item["title"] for item in response.json()["listings"]]
        assert titles == ["Newer", "Older"]

    @pytest.mark.asyncio
    async def test_get_missing_listing_uses_error_envelope(self, test_client):
        response = await test_client.get("/api/listings/9999")

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "not_found"
        assert "request_id" in body
        assert response.headers["X-Request-ID"]

    @pytest.mark.asyncio
    async def test_update_replaces_images(self, test_client, seller):
        created = await test_client.post(
            "/api/listings", json=listing_body(seller.id, imageUrls=["old.jpg"])
        )
        listing_id = created.json()["listing"]["id"]

        response = await test_client.put(
            f"/api/listings/{listing_id}",
            json=listing_body(seller.id, imageUrls=["new1.jpg", "new2.jpg"], primaryImageUrl="new2.jpg"),
        )

        assert response.status_code == 200
        listing = response.json()["listing"]
        assert listing["image_urls"] == ["new1.jpg", "new2.jpg"]
        assert listing["primary_image_url"] == "new2.jpg"

    @pytest.mark.asyncio
    async def test_update_by_other_user_is_forbidden(self, test_client, seller, buyer):
        created = await test_client.post(
            "/api/listings", json=listing_body(seller.id, imageUrls=["mine.jpg"])
        )
        listing_id = created.json()["listing"]["id"]

        response = await test_client.put(
            f"/api/listings/{listing_id}",
            json=listing_body(buyer.id, title="Stolen", imageUrls=["theirs.jpg"]),
        )

        assert response.status_code == 403
        assert response.json()["error"] == "permission_denied"
        unchanged = (await test_client.get(f"/api/listings/{listing_id}")).json()
        assert unchanged["title"] == "Powell Peralta Bones Brigade Deck"
        assert unchanged["image_urls"] == ["mine.jpg"]

    @pytest.mark.asyncio
    async def test_delete_by_seller(self, test_client, seller):
        created = await test_client.post("/api/listings", json=listing_body(seller.id))
        listing_id = created.json()["listing"]["id"]

        response = await test_client.request(
            "DELETE", f"/api/listings/{listing_id}", json={"sellerId": seller.id}
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Listing deleted successfully"
        assert (await test_client.get(f"/api/listings/{listing_id}")).status_code == 404

    @pytest.mark.asyncio
    async def test_delete_by_other_user_is_forbidden(self, test_client, seller, buyer):
        created = await test_client.post("/api/listings", json=listing_body(seller.id))
        listing_id = created.json()["listing"]["id"]

        response = await test_client.request(
            "DELETE", f"/api/listings/{listing_id}", json={"sellerId": buyer.id}
        )

        assert response.status_code == 403
        assert (await test_client.get(f"/api/listings/{listing_id}")).status_code == 200

    @pytest.mark.asyncio
    async def test_seller_listings_and_stats(self, test_client, seller):
        await test_client.post("/api/listings", json=listing_body(seller.id, price="20.00"))
        await test_client.post("/api/listings", json=listing_body(seller.id, price="45.50"))

        mine = await test_client.get(f"/api/users/{seller.id}/listings")
        stats = await test_client.get(f"/api/users/{seller.id}/stats")

        assert mine.json()["total_count"] == 2
        assert all(item["conversation_count"] == 0 for item in mine.json()["listings"])
        assert stats.json() == {"listing_count": 2, "conversation_count": 0, "total_value": "65.50"}


class TestUserRoutes:

    @pytest.mark.asyncio
    async def test_register_then_login(self, test_client):
        registered = await test_client.post(
            "/api/register",
            json={
                "firstName": "Elissa",
                "lastName": "Steamer",
                "username": "elissa",
                "email": "elissa@example.com",
                "password": "street-league",
            },
        )
        assert registered.status_code == 201
        user_id = registered.json()["user_id"]

        login = await test_client.post(
            "/api/login", json={"email": "elissa@example.com", "password": "street-league"}
        )

        assert login.status_code == 200
        assert login.json()["user"]["id"] == user_id
        assert login.json()["token"]
        assert "password" not in login.json()["user"]

    @pytest.mark.asyncio
    async def test_duplicate_registration_is_400(self, test_client, seller):
        response = await test_client.post(
            "/api/register",
            json={
                "firstName": "Copy",
                "lastName": "Cat",
                "username": "deckdealer",
                "email": "other@example.com",
                "password": "whatever",
            },
        )
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    @pytest.mark.asyncio
    async def test_bad_login_is_401(self, test_client, seller):
        response = await test_client.post(
            "/api/login", json={"email": "seller@example.com", "password": "nope"}
        )
        assert response.status_code == 401
        assert response.json()["error"] == "authentication_failed"


class TestMessagingRoutes:

    @pytest.mark.asyncio
    async def test_conversation_flow(self, test_client, seller, buyer):
        created = await test_client.post(
            "/api/listings", json=listing_body(seller.id, imageUrls=["deck.jpg"])
        )
        listing_id = created.json()["listing"]["id"]

        started = await test_client.post(
            "/api/conversations",
            json={"postId": listing_id, "buyerId": buyer.id, "sellerId": seller.id},
        )
        assert started.status_code == 200
        conversation_id = started.json()["id"]

        sent = await test_client.post(
            "/api/messages",
            json={"conversationId": conversation_id, "senderId": buyer.id, "message": " Still got it? "},
        )
        assert sent.status_code == 201
        assert sent.json()["message"] == "Still got it?"

        inbox = await test_client.get(f"/api/users/{seller.id}/conversations")
        row = inbox.json()["conversations"][0]
        assert row["listing_image"] == "deck.jpg"
        assert row["last_message"] == "Still got it?"

        thread = await test_client.get(
            f"/api/conversations/{conversation_id}/messages",
            params={"currentUserId": seller.id},
        )
        assert [m["sender_name"] for m in thread.json()["messages"]] == ["kickflipkid"]

    @pytest.mark.asyncio
    async def test_blank_message_is_400(self, test_client, seller, buyer):
        created = await test_client.post("/api/listings", json=listing_body(seller.id))
        started = await test_client.post(
            "/api/conversations",
            json={"listingId": created.json()["listing"]["id"], "buyerId": buyer.id, "sellerId": seller.id},
        )

        response = await test_client.post(
            "/api/messages",
            json={"conversationId": started.json()["id"], "senderId": buyer.id, "message": "   "},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Message cannot be empty"


class TestUploadRoutes:

    @pytest.mark.asyncio
    async def test_upload_returns_hosted_url(self, test_client, png_data_uri):
        uploaded = ImageUploadResponse(
            image_url="https://res.cloudinary.com/test-cloud/image/upload/deck.png",
            public_id="skateswap/deck",
        )
        with patch("skateswap.routes.uploads.image_upload_service") as mock_service:
            mock_service.upload = AsyncMock(return_value=uploaded)

            response = await test_client.post(
                "/api/upload-image", json={"image": png_data_uri, "fileName": "deck.png"}
            )

        assert response.status_code == 201
        assert response.json()["image_url"] == uploaded.image_url
        mock_service.upload.assert_awaited_once_with(image=png_data_uri, file_name="deck.png")

    @pytest.mark.asyncio
    async def test_upload_with_open_circuit_is_503(self, test_client, png_data_uri):
        with patch("skateswap.routes.uploads.image_upload_service") as mock_service:
            mock_service.upload = AsyncMock(side_effect=CircuitBreakerOpenError(recovery_time=30))

            response = await test_client.post("/api/upload-image", json={"image": png_data_uri})

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "30"
        assert response.json()["error"] == "service_unavailable"

    @pytest.mark.asyncio
    async def test_upload_of_non_image_is_400(self, test_client):
        response = await test_client.post(
            "/api/upload-image", json={"image": "definitely not an image"}
        )
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"


class TestStatsAndHealthRoutes:

    @pytest.mark.asyncio
    async def test_community_stats(self, test_client, seller, buyer):
        await test_client.post("/api/listings", json=listing_body(seller.id))

        response = await test_client.get("/api/stats/community")

        assert response.status_code == 200
        assert response.json()["total_listings"] == 1
        assert response.json()["total_users"] == 2
        assert "max-age=60" in response.headers["Cache-Control"]

    @pytest.mark.asyncio
    async def test_user_count(self, test_client, seller):
        response = await test_client.get("/api/stats/users")
        assert response.json() == {"count": 1}

    @pytest.mark.asyncio
    async def test_health_degraded_when_image_host_down(self, test_client):
        with patch(
            "skateswap.services.cloudinary_service.cloudinary_service.health_check",
            AsyncMock(return_value=False),
        ):
            response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["image_host"] == "unavailable"
        assert body["status"] in ("degraded", "unhealthy")

    @pytest.mark.asyncio
    async def test_health_reports_open_circuit(self, test_client):
        breaker = CircuitBreaker(failure_threshold=2, recovery_timeout=60)
        breaker.state = CircuitBreaker.OPEN
        breaker.opened_at = breaker.clock()

        with patch.object(cloudinary_service, "circuit_breaker", breaker), patch(
            "cloudinary.api.ping", side_effect=ConnectionError("unreachable")
        ):
            response = await test_client.get("/health")

        assert response.json()["image_host"] == "circuit_open"
        assert breaker.state == CircuitBreaker.OPEN

    @pytest.mark.asyncio
    async def test_health_ping_moves_open_circuit_to_half_open(self, test_client):
        breaker = CircuitBreaker(failure_threshold=2, recovery_timeout=60)
        breaker.state = CircuitBreaker.OPEN
        breaker.opened_at = breaker.clock()

        with patch.object(cloudinary_service, "circuit_breaker", breaker), patch(
            "cloudinary.api.ping", return_value={"status": "ok"}
        ):
            response = await test_client.get("/health")

        assert response.json()["image_host"] == "available"
        assert breaker.state == CircuitBreaker.HALF_OPEN


class TestRequestIdMiddleware:

    @pytest.mark.asyncio
    async def test_client_request_id_is_echoed(self, test_client):
        response = await test_client.get("/api/listings/9999", headers={"X-Request-ID": "abc12345"})

        assert response.headers["X-Request-ID"] == "abc12345"
        assert response.json()["request_id"] == "abc12345"

    @pytest.mark.asyncio
    async def test_request_id_is_generated(self, test_client):
        response = await test_client.get("/api/stats/users")
        assert len(response.headers["X-Request-ID"]) == 8


class TestDevRoutes:
    """Seeding endpoints exist only when ENABLE_DEV_ROUTES is on."""

    @pytest.mark.asyncio
    async def test_dev_routes_absent_by_default(self, test_client):
        response = await test_client.post("/api/setup-db")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_setup_then_sample_posts(self, db_session):
        from httpx import ASGITransport, AsyncClient

        from skateswap.config import settings
        from skateswap.database import get_db_session
        from skateswap.main import create_app

        with patch.object(settings, "enable_dev_routes", True):
            app = create_app()

        async def override_get_db_session():
            yield db_session

        app.dependency_overrides[get_db_session] = override_get_db_session
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            setup = await client.post("/api/setup-db")
            samples = await client.post("/api/create-sample-posts")
            feed = await client.get("/api/listings")

        assert setup.json()["demo_user_created"] is True
        assert samples.status_code == 201
        assert feed.json()["total_count"] == 3
        assert all(len(item["image_urls"]) == 1 for item in feed.json()["listings"])

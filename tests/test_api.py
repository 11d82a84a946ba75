"""Tests for the HTTP API: routing, status codes and error bodies."""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import api.auth as auth_api
import api.conversations as conversations_api
import api.favorites as favorites_api
import api.listings as listings_api
import api.orders as orders_api
import api.system as system_api
import api.users as users_api
from auth import InvalidCredentialsError
from conversations import ConversationNotFoundError, InvalidMessageError
from favorites import DuplicateFavoriteError
from listings import ListingError, ListingNotFoundError, InvalidListingError, ListingPermissionError
from orders import ListingAlreadySoldError, OrderError
from reviews import ReviewNotAllowedError, DuplicateReviewError, SellerNotFoundError
from users import DuplicateEmailError, UserNotFoundError

from conftest import make_listing_row

def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()['status'] == "running"

def test_protected_route_requires_token(client):
    response = client.post("/listings/", json={})
    assert response.status_code in (401, 403)
    assert "error" in response.json()

def test_unhandled_error_is_500(client):
    with patch.object(listings_api.manager, 'view_listing', new_callable=AsyncMock) as view:
        view.side_effect = RuntimeError("connection reset")
        response = client.get(f"/listings/{uuid.uuid4()}")

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}

""" Auth """
def test_signup(client):
    user = {'id': str(uuid.uuid4()), 'name': 'Alex', 'email': 'alex@example.com', 'image': None}
    with patch.object(auth_api.user_manager, 'create_user', new_callable=AsyncMock) as create:
        create.return_value = user
        response = client.post("/auth/signup", json={
            "name": "Alex", "email": "alex@example.com", "password": "password123"
        })

    assert response.status_code == 201
    assert response.json()['email'] == 'alex@example.com'
    create.assert_awaited_once_with("Alex", "alex@example.com", "password123")

def test_signup_duplicate_email(client):
    with patch.object(auth_api.user_manager, 'create_user', new_callable=AsyncMock) as create:
        create.side_effect = DuplicateEmailError("Email alex@example.com is already registered")
        response = client.post("/auth/signup", json={
            "name": "Alex", "email": "alex@example.com", "password": "password123"
        })

    assert response.status_code == 409
    assert response.json() == {"error": "Email alex@example.com is already registered"}

def test_login_bad_credentials(client):
    with patch.object(auth_api.manager, 'login', new_callable=AsyncMock) as login:
        login.side_effect = InvalidCredentialsError("Invalid email or password")
        response = client.post("/auth/login", json={"email": "a@example.com", "password": "nope"})

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid email or password"}

def test_login(client):
    user_id = uuid.uuid4()
    with patch.object(auth_api.manager, 'login', new_callable=AsyncMock) as login:
        login.return_value = {'token': 'abc', 'expires_at': '2030-01-01T00:00:00+00:00', 'user_id': user_id}
        response = client.post("/auth/login", json={"email": "a@example.com", "password": "password123"})

    assert response.status_code == 200
    assert response.json() == {'token': 'abc', 'expires_at': '2030-01-01T00:00:00+00:00', 'user_id': str(user_id)}

def test_validate_session_without_token(client):
    response = client.get("/auth/validate-session")
    assert response.json() == {"valid": False, "reason": "no_session"}

def test_validate_session_bad_token(client):
    response = client.get("/auth/validate-session", headers={"Authorization": "Bearer junk"})
    assert response.json() == {"valid": False, "reason": "invalid_session"}

def test_validate_session_failure_is_500(client):
    with patch.object(auth_api.manager, 'validate_session', new_callable=AsyncMock) as validate:
        validate.side_effect = RuntimeError("pool closed")
        response = client.get("/auth/validate-session", headers={"Authorization": "Bearer abc"})

    assert response.status_code == 500
    assert response.json() == {"valid": False, "reason": "error"}

def test_verify(auth_client, user_id):
    response = auth_client.get("/auth/verify")
    assert response.json() == {"valid": True, "user_id": str(user_id)}

""" Listings """
def test_list_listings_query_params(client):
    """Test that repeatable filters and pagination reach the manager."""
    with patch.object(listings_api.manager, 'get_listings', new_callable=AsyncMock) as get_listings:
        get_listings.return_value = {'listings': [], 'total_count': 0, 'total_pages': 0,
                                     'current_page': 2, 'limit': 200, 'offset': 200}
        response = client.get("/listings/?type=vinyl&type=cd&verified=true&search=blue&page=2&per_page=500")

    assert response.status_code == 200
    get_listings.assert_awaited_once_with(
        search="blue",
        types=["vinyl", "cd"],
        conditions=None,
        verified_only=True,
        limit=200,
        offset=200
    )

def test_list_listings_bad_page(client):
    response = client.get("/listings/?page=0")
    assert response.status_code == 400
    assert "page" in response.json()['error']

def test_get_listing_not_found(client):
    listing_id = uuid.uuid4()
    with patch.object(listings_api.manager, 'view_listing', new_callable=AsyncMock) as view:
        view.side_effect = ListingNotFoundError(f"Listing {listing_id} not found")
        response = client.get(f"/listings/{listing_id}")

    assert response.status_code == 404
    assert response.json() == {"error": f"Listing {listing_id} not found"}

def test_get_listing_bad_id(client):
    response = client.get("/listings/not-a-uuid")
    assert response.status_code == 400

def test_get_listing_serializes_row(client):
    row = make_listing_row(price=Decimal("89.99"))
    with patch.object(listings_api.manager, 'view_listing', new_callable=AsyncMock) as view:
        view.return_value = {'listing': dict(row, images=['a.png']), 'related': []}
        response = client.get(f"/listings/{row['id']}")

    body = response.json()
    assert body['listing']['id'] == str(row['id'])
    assert body['listing']['price'] == 89.99
    assert body['related'] == []

def test_create_listing(auth_client, user_id):
    payload = {
        "title": "Blue", "artist": "Joni Mitchell", "description": "Reprise first pressing",
        "type": "VINYL", "condition": "LIGHTLY_USED", "price": 75, "images": ["blue.png"]
    }
    with patch.object(listings_api.manager, 'create_listing', new_callable=AsyncMock) as create:
        create.return_value = {'id': str(uuid.uuid4()), 'title': 'Blue'}
        response = auth_client.post("/listings/", json=payload)

    assert response.status_code == 201
    assert response.json()['message'] == "Listing created successfully"
    kwargs = create.call_args.kwargs
    assert kwargs['seller_id'] == user_id
    assert kwargs['price'] == Decimal("75")
    assert kwargs['year'] is None

def test_create_listing_missing_field(auth_client):
    response = auth_client.post("/listings/", json={"title": "Blue"})
    assert response.status_code == 400
    assert "artist" in response.json()['error']

def test_create_listing_invalid(auth_client):
    payload = {
        "title": "Blue", "artist": "Joni Mitchell", "description": "x",
        "type": "VINYL", "condition": "LIGHTLY_USED", "price": 0, "images": ["blue.png"]
    }
    with patch.object(listings_api.manager, 'create_listing', new_callable=AsyncMock) as create:
        create.side_effect = InvalidListingError("Price must be greater than 0")
        response = auth_client.post("/listings/", json=payload)

    assert response.status_code == 400
    assert response.json() == {"error": "Price must be greater than 0"}

def test_update_listing_passes_only_sent_fields(auth_client, user_id):
    listing_id = uuid.uuid4()
    with patch.object(listings_api.manager, 'update_listing', new_callable=AsyncMock) as update:
        update.return_value = {'id': str(listing_id), 'price': 60}
        response = auth_client.patch(f"/listings/{listing_id}", json={"price": 60})

    assert response.status_code == 200
    assert response.json() == {"listing": {'id': str(listing_id), 'price': 60}}
    update.assert_awaited_once_with(listing_id, user_id, {"price": Decimal("60")})

def test_create_listing_database_failure_hides_details(auth_client):
    payload = {
        "title": "Blue", "artist": "Joni Mitchell", "description": "x",
        "type": "VINYL", "condition": "LIGHTLY_USED", "price": 75, "images": ["blue.png"]
    }
    with patch.object(listings_api.manager, 'create_listing', new_callable=AsyncMock) as create:
        create.side_effect = ListingError("Failed to create listing: numeric field overflow")
        response = auth_client.post("/listings/", json=payload)

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}

def test_update_listing_keeps_explicit_nulls(auth_client, user_id):
    """Test that a null in the body clears the field while omitted fields are untouched."""
    listing_id = uuid.uuid4()
    with patch.object(listings_api.manager, 'update_listing', new_callable=AsyncMock) as update:
        update.return_value = {'id': str(listing_id), 'genre': None}
        response = auth_client.patch(f"/listings/{listing_id}", json={"genre": None})

    assert response.status_code == 200
    update.assert_awaited_once_with(listing_id, user_id, {"genre": None})

def test_update_listing_not_owner(auth_client):
    with patch.object(listings_api.manager, 'update_listing', new_callable=AsyncMock) as update:
        update.side_effect = ListingPermissionError("Only the seller can modify this listing")
        response = auth_client.patch(f"/listings/{uuid.uuid4()}", json={"title": "Mine now"})

    assert response.status_code == 403

def test_ai_score_explicit(auth_client, user_id):
    listing_id = uuid.uuid4()
    with patch.object(listings_api.manager, 'set_authenticity_score', new_callable=AsyncMock) as set_score:
        set_score.return_value = {'id': str(listing_id), 'authenticity_score': Decimal("91.2"), 'is_verified': True}
        response = auth_client.post(f"/listings/{listing_id}/ai-score", json={"authenticity_score": 91.2})

    assert response.status_code == 200
    assert response.json()['band'] == 'outstanding'
    set_score.assert_awaited_once_with(listing_id, user_id, 91.2, True)

def test_ai_score_from_evidence(auth_client, user_id):
    listing_id = uuid.uuid4()
    with patch.object(listings_api.manager, 'score_listing', new_callable=AsyncMock) as score:
        score.return_value = {'id': str(listing_id), 'authenticity_score': Decimal("54.5"), 'is_verified': True}
        response = auth_client.post(
            f"/listings/{listing_id}/ai-score",
            json={"photo_count": 4, "certificate_count": 0}
        )

    assert response.json()['band'] == 'fair'
    score.assert_awaited_once_with(
        listing_id, user_id, photo_count=4, has_video=False, certificate_count=0, is_verified=True
    )

def test_ai_score_negative_evidence(auth_client):
    response = auth_client.post(f"/listings/{uuid.uuid4()}/ai-score", json={"photo_count": -1})
    assert response.status_code == 400

""" Orders """
def test_create_order(auth_client, user_id):
    listing_id = uuid.uuid4()
    with patch.object(orders_api.manager, 'create_order', new_callable=AsyncMock) as create:
        create.return_value = {'id': str(uuid.uuid4()), 'status': 'processing'}
        response = auth_client.post("/orders/", json={"listing_id": str(listing_id), "order_number": "ORD-1"})

    assert response.status_code == 201
    create.assert_awaited_once_with(user_id, listing_id, "ORD-1")

def test_create_order_sold_listing(auth_client):
    with patch.object(orders_api.manager, 'create_order', new_callable=AsyncMock) as create:
        create.side_effect = ListingAlreadySoldError("Listing is already sold")
        response = auth_client.post("/orders/", json={"listing_id": str(uuid.uuid4()), "order_number": "ORD-1"})

    assert response.status_code == 409
    assert response.json() == {"error": "Listing is already sold"}

def test_create_order_unexpected_failure_hides_details(auth_client):
    with patch.object(orders_api.manager, 'create_order', new_callable=AsyncMock) as create:
        create.side_effect = OrderError("relation \"orders\" does not exist")
        response = auth_client.post("/orders/", json={"listing_id": str(uuid.uuid4()), "order_number": "ORD-1"})

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}

def test_order_history_routes(auth_client, user_id):
    with patch.object(orders_api.manager, 'get_orders_for_buyer', new_callable=AsyncMock) as buyer, \
            patch.object(orders_api.manager, 'get_sales_for_seller', new_callable=AsyncMock) as seller:
        buyer.return_value = []
        seller.return_value = [{'order_number': 'ORD-9'}]

        assert auth_client.get("/orders/").json() == []
        assert auth_client.get("/orders/sales").json() == [{'order_number': 'ORD-9'}]

    buyer.assert_awaited_once_with(user_id)
    seller.assert_awaited_once_with(user_id)

""" Conversations """
def test_start_conversation(auth_client, user_id):
    other_id, listing_id, conversation_id = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
    with patch.object(conversations_api.manager, 'get_or_create_conversation', new_callable=AsyncMock) as start:
        start.return_value = {'id': conversation_id, 'other_user': {'id': other_id, 'name': 'Sarah'},
                              'listing_id': listing_id}
        response = auth_client.post("/conversations/", json={
            "other_user_id": str(other_id), "listing_id": str(listing_id)
        })

    assert response.status_code == 200
    assert response.json()['id'] == str(conversation_id)
    start.assert_awaited_once_with(user_id, other_id, listing_id)

def test_start_conversation_unknown_user(auth_client):
    with patch.object(conversations_api.manager, 'get_or_create_conversation', new_callable=AsyncMock) as start:
        start.side_effect = UserNotFoundError("User not found")
        response = auth_client.post("/conversations/", json={
            "other_user_id": str(uuid.uuid4()), "listing_id": str(uuid.uuid4())
        })

    assert response.status_code == 404

def test_unread_count(auth_client):
    with patch.object(conversations_api.manager, 'get_unread_count', new_callable=AsyncMock) as unread:
        unread.return_value = 4
        response = auth_client.get("/conversations/unread-count")

    assert response.json() == {"unread_count": 4}

def test_poll_messages_since(auth_client, user_id):
    conversation_id = uuid.uuid4()
    with patch.object(conversations_api.manager, 'get_messages', new_callable=AsyncMock) as get_messages:
        get_messages.return_value = {'conversation': {'id': str(conversation_id)}, 'messages': []}
        response = auth_client.get(
            f"/conversations/{conversation_id}/messages",
            params={"since": "2024-05-01T12:00:00+00:00"}
        )

    assert response.status_code == 200
    get_messages.assert_awaited_once_with(
        conversation_id, user_id, since=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    )

def test_messages_of_foreign_conversation(auth_client):
    with patch.object(conversations_api.manager, 'get_messages', new_callable=AsyncMock) as get_messages:
        get_messages.side_effect = ConversationNotFoundError("Conversation not found")
        response = auth_client.get(f"/conversations/{uuid.uuid4()}/messages")

    assert response.status_code == 404

def test_send_empty_message(auth_client):
    with patch.object(conversations_api.manager, 'send_message', new_callable=AsyncMock) as send:
        send.side_effect = InvalidMessageError("Message content is required")
        response = auth_client.post(f"/conversations/{uuid.uuid4()}/messages", json={"content": "  "})

    assert response.status_code == 400
    assert response.json() == {"error": "Message content is required"}

""" Favorites """
def test_add_favorite_twice(auth_client):
    with patch.object(favorites_api.manager, 'add_favorite', new_callable=AsyncMock) as add:
        add.side_effect = DuplicateFavoriteError("Listing is already in favorites")
        response = auth_client.post("/favorites/", json={"listing_id": str(uuid.uuid4())})

    assert response.status_code == 409

def test_toggle_favorite(auth_client, user_id):
    listing_id = uuid.uuid4()
    with patch.object(favorites_api.manager, 'toggle_favorite', new_callable=AsyncMock) as toggle:
        toggle.return_value = {'favorited': True}
        response = auth_client.post("/favorites/toggle", json={"listing_id": str(listing_id)})

    assert response.json() == {'favorited': True}
    toggle.assert_awaited_once_with(user_id, listing_id)

def test_remove_favorite(auth_client, user_id):
    listing_id = uuid.uuid4()
    with patch.object(favorites_api.manager, 'remove_favorite', new_callable=AsyncMock) as remove:
        remove.return_value = False
        response = auth_client.delete(f"/favorites/{listing_id}")

    assert response.status_code == 200
    assert response.json() == {"success": True, "removed": False}
    remove.assert_awaited_once_with(user_id, listing_id)

""" Users and reviews """
def test_profile_not_found(client):
    with patch.object(users_api.user_manager, 'get_public_profile', new_callable=AsyncMock) as profile:
        profile.side_effect = UserNotFoundError("User not found")
        response = client.get(f"/users/{uuid.uuid4()}")

    assert response.status_code == 404
    assert response.json() == {"error": "User not found"}

def test_get_reviews_limit(client):
    seller_id = uuid.uuid4()
    with patch.object(users_api.review_manager, 'get_seller_reviews', new_callable=AsyncMock) as reviews:
        reviews.return_value = {'seller': {}, 'stats': {}, 'reviews': []}
        response = client.get(f"/users/{seller_id}/reviews?limit=3")

    assert response.status_code == 200
    reviews.assert_awaited_once_with(seller_id, limit=3)

def test_get_reviews_unknown_seller(client):
    with patch.object(users_api.review_manager, 'get_seller_reviews', new_callable=AsyncMock) as reviews:
        reviews.side_effect = SellerNotFoundError("Seller not found")
        response = client.get(f"/users/{uuid.uuid4()}/reviews")

    assert response.status_code == 404

def test_create_review(auth_client, user_id):
    seller_id, listing_id = uuid.uuid4(), uuid.uuid4()
    with patch.object(users_api.review_manager, 'create_review', new_callable=AsyncMock) as create:
        create.return_value = {'id': str(uuid.uuid4()), 'rating': 5}
        response = auth_client.post(f"/users/{seller_id}/reviews", json={
            "listing_id": str(listing_id), "rating": 5, "comment": "Fast shipping"
        })

    assert response.status_code == 201
    create.assert_awaited_once_with(user_id, seller_id, listing_id, 5, "Fast shipping")

def test_create_review_fractional_rating(auth_client):
    response = auth_client.post(f"/users/{uuid.uuid4()}/reviews", json={
        "listing_id": str(uuid.uuid4()), "rating": 4.5
    })
    assert response.status_code == 400

def test_create_review_without_purchase(auth_client):
    with patch.object(users_api.review_manager, 'create_review', new_callable=AsyncMock) as create:
        create.side_effect = ReviewNotAllowedError("You can only review sellers you have bought from")
        response = auth_client.post(f"/users/{uuid.uuid4()}/reviews", json={
            "listing_id": str(uuid.uuid4()), "rating": 5
        })

    assert response.status_code == 403

def test_create_review_twice(auth_client):
    with patch.object(users_api.review_manager, 'create_review', new_callable=AsyncMock) as create:
        create.side_effect = DuplicateReviewError("Already reviewed")
        response = auth_client.post(f"/users/{uuid.uuid4()}/reviews", json={
            "listing_id": str(uuid.uuid4()), "rating": 5
        })

    assert response.status_code == 409

""" System """
def test_health(client):
    with patch.object(system_api, 'check_connection', new_callable=AsyncMock) as check:
        check.return_value = True
        response = client.get("/system/health")

    body = response.json()
    assert body['status'] == "healthy"
    assert body['database_status'] == "connected"
    assert body['poll_interval_seconds'] == 3

def test_health_degraded(client):
    with patch.object(system_api, 'check_connection', new_callable=AsyncMock) as check:
        check.return_value = False
        response = client.get("/system/health")

    assert response.json()['status'] == "degraded"

"""End-to-end tests against a real PostgreSQL database.

Set VINYL_TEST_DB_URL to a database the tests may write to, e.g.
postgresql://postgres@localhost:5432/vinyl_marketplace_test. Schema v1 is
applied on first use; rows created by each test are removed afterwards.
"""

import asyncio
import os
import uuid
from decimal import Decimal

import asyncpg
import pytest
import pytest_asyncio

from database import init_db, close as close_db, get_pool
from conversations import ConversationManager, normalize_pair
from listings import ListingManager
from orders import OrderManager, ListingAlreadySoldError
from reviews import ReviewManager, DuplicateReviewError
from users import UserManager

TEST_DB_URL = os.environ.get('VINYL_TEST_DB_URL')

pytestmark = pytest.mark.skipif(not TEST_DB_URL, reason="VINYL_TEST_DB_URL not set")

SAMPLE_LISTING = {
    "title": "Rumours",
    "artist": "Fleetwood Mac",
    "description": "1977 Warner Bros. first pressing",
    "type": "VINYL",
    "condition": "LIGHTLY_USED",
    "price": Decimal("42.00"),
    "images": ["https://img.example/rumours.png"]
}

@pytest_asyncio.fixture
async def db_pool():
    """Connect to the test database and clean up created users afterwards."""
    await init_db(TEST_DB_URL)
    created_users = []
    yield created_users

    pool = await get_pool()
    async with pool.acquire() as conn:
        await conn.execute(
            'DELETE FROM conversations WHERE user1_id = ANY($1::uuid[]) OR user2_id = ANY($1::uuid[])',
            created_users
        )
        await conn.execute('DELETE FROM reviews WHERE seller_id = ANY($1::uuid[])', created_users)
        await conn.execute('DELETE FROM favorites WHERE user_id = ANY($1::uuid[])', created_users)
        await conn.execute('DELETE FROM orders WHERE seller_id = ANY($1::uuid[])', created_users)
        await conn.execute('DELETE FROM listings WHERE seller_id = ANY($1::uuid[])', created_users)
        await conn.execute('DELETE FROM users WHERE id = ANY($1::uuid[])', created_users)
    await close_db()

@pytest_asyncio.fixture
async def make_user(db_pool):
    """Factory creating users with unique emails."""
    user_manager = UserManager()

    async def factory(name="Test User"):
        user = await user_manager.create_user(
            name, f"{uuid.uuid4().hex}@example.com", "password123"
        )
        db_pool.append(user['id'])
        return user

    return factory

@pytest_asyncio.fixture
async def seller(make_user):
    return await make_user("Alex Chen")

@pytest_asyncio.fixture
async def listing(seller):
    return await ListingManager().create_listing(seller_id=seller['id'], **SAMPLE_LISTING)

async def count_rows(query, *args):
    pool = await get_pool()
    async with pool.acquire() as conn:
        return await conn.fetchval(query, *args)

@pytest.mark.asyncio
async def test_conversation_created_once(make_user, seller, listing):
    """Test that repeated and concurrent first contacts share one conversation."""
    buyer = await make_user("Sarah Martinez")
    manager = ConversationManager()

    results = await asyncio.gather(
        manager.get_or_create_conversation(buyer['id'], seller['id'], listing['id']),
        manager.get_or_create_conversation(seller['id'], buyer['id'], listing['id']),
        manager.get_or_create_conversation(buyer['id'], str(seller['id']), listing['id']),
        manager.get_or_create_conversation(str(seller['id']).upper(), buyer['id'], listing['id'])
    )
    again = await manager.get_or_create_conversation(buyer['id'], seller['id'], listing['id'])

    assert len({result['id'] for result in results} | {again['id']}) == 1
    assert await count_rows(
        'SELECT COUNT(*) FROM conversations WHERE listing_id = $1', listing['id']
    ) == 1

@pytest.mark.asyncio
async def test_conversation_pair_matches_check_constraint(make_user, seller, listing):
    """Test that the stored pair satisfies user1_id < user2_id and equals normalize_pair."""
    buyer = await make_user("Jordan Kim")
    conversation = await ConversationManager().get_or_create_conversation(
        buyer['id'], seller['id'], listing['id']
    )

    pool = await get_pool()
    async with pool.acquire() as conn:
        row = await conn.fetchrow(
            'SELECT user1_id, user2_id FROM conversations WHERE id = $1',
            conversation['id']
        )
        assert (str(row['user1_id']), str(row['user2_id'])) == normalize_pair(buyer['id'], seller['id'])

        low, high = normalize_pair(buyer['id'], seller['id'])
        with pytest.raises(asyncpg.CheckViolationError):
            await conn.execute(
                'INSERT INTO conversations (user1_id, user2_id, listing_id) VALUES ($1, $2, $3)',
                high, low, listing['id']
            )

@pytest.mark.asyncio
async def test_uuid_ordering_agrees_with_string_sort(db_pool):
    pairs = [(str(uuid.uuid4()), str(uuid.uuid4())) for _ in range(50)]

    pool = await get_pool()
    async with pool.acquire() as conn:
        for a, b in pairs:
            assert await conn.fetchval('SELECT $1::uuid < $2::uuid', a, b) == (a < b)

@pytest.mark.asyncio
async def test_sold_listing_rejects_second_order(make_user, seller, listing):
    """Test that concurrent checkouts of one listing produce exactly one order."""
    first, second = await make_user("Buyer One"), await make_user("Buyer Two")
    manager = OrderManager()

    results = await asyncio.gather(
        manager.create_order(first['id'], listing['id'], f"ORD-{uuid.uuid4().hex[:12]}"),
        manager.create_order(second['id'], listing['id'], f"ORD-{uuid.uuid4().hex[:12]}"),
        return_exceptions=True
    )

    orders = [result for result in results if isinstance(result, dict)]
    failures = [result for result in results if isinstance(result, Exception)]
    assert len(orders) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], ListingAlreadySoldError)
    assert orders[0]['amount'] == SAMPLE_LISTING['price']

    with pytest.raises(ListingAlreadySoldError):
        await manager.create_order(first['id'], listing['id'], f"ORD-{uuid.uuid4().hex[:12]}")

    assert await count_rows('SELECT COUNT(*) FROM orders WHERE listing_id = $1', listing['id']) == 1
    assert await count_rows('SELECT is_sold FROM listings WHERE id = $1', listing['id']) is True

@pytest.mark.asyncio
async def test_one_review_per_purchase(make_user, seller, listing):
    """Test that the unique index allows a single review per reviewer, seller and listing."""
    buyer = await make_user("Sam Rivera")
    await OrderManager().create_order(buyer['id'], listing['id'], f"ORD-{uuid.uuid4().hex[:12]}")
    manager = ReviewManager()

    review = await manager.create_review(buyer['id'], seller['id'], listing['id'], 5, "Packed well")
    assert review['rating'] == 5

    with pytest.raises(DuplicateReviewError):
        await manager.create_review(buyer['id'], seller['id'], listing['id'], 1)

    pool = await get_pool()
    async with pool.acquire() as conn:
        with pytest.raises(asyncpg.UniqueViolationError):
            await conn.execute(
                '''
                INSERT INTO reviews (rating, seller_id, reviewer_id, listing_id)
                VALUES (3, $1, $2, $3)
                ''',
                seller['id'], buyer['id'], listing['id']
            )

    stats = await manager.get_seller_reviews(seller['id'])
    assert stats['stats']['total_reviews'] == 1
    assert stats['stats']['average_rating'] == 5.0

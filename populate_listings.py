"""Script to populate the marketplace with demo users and listings.

This script creates:
- Five demo users, all with the password "password123"
- A catalogue of classic records plus a CD and a merch item
- Verification flags and authenticity scores on most listings

Run with --reset to wipe existing marketplace data first.
"""

import argparse
import asyncio
import logging
from decimal import Decimal
from typing import List, Dict, Any

from database import init_db, close, get_pool
from listings import ListingManager
from users import UserManager, DuplicateEmailError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

DEMO_PASSWORD = "password123"

USERS_DATA = [
    {"name": "Alex Chen", "email": "alex@example.com"},
    {"name": "Sarah Martinez", "email": "sarah@example.com"},
    {"name": "Marcus Johnson", "email": "marcus@example.com"},
    {"name": "Emma Thompson", "email": "emma@example.com"},
    {"name": "David Lee", "email": "david@example.com"},
]

def placeholder_image(text: str) -> str:
    return f"https://placehold.co/400x400/fc6736/ffffff.png?text={text}"

# seller is an index into USERS_DATA
LISTINGS_DATA = [
    {
        "seller": 0,
        "title": "Abbey Road",
        "artist": "The Beatles",
        "description": "Original 1969 UK pressing in a gatefold sleeve with the inserts. Plays cleanly with very little surface noise.",
        "type": "VINYL",
        "condition": "LIGHTLY_USED",
        "price": "89.99",
        "year": 1969,
        "genre": "Rock",
        "label": "Apple Records",
        "image": "Abbey+Road",
        "is_verified": True,
        "verified_by_official": True,
        "authenticity_score": "98.5"
    },
    {
        "seller": 0,
        "title": "Kind of Blue",
        "artist": "Miles Davis",
        "description": "1959 Columbia original. Sleeve shows its age, the record itself is in great shape.",
        "type": "VINYL",
        "condition": "WELL_USED",
        "price": "125.00",
        "year": 1959,
        "genre": "Jazz",
        "label": "Columbia",
        "image": "Kind+of+Blue",
        "is_verified": True,
        "verified_by_official": False,
        "authenticity_score": "92.3"
    },
    {
        "seller": 1,
        "title": "Rumours",
        "artist": "Fleetwood Mac",
        "description": "Barely played copy, stored in a protective outer sleeve since purchase.",
        "type": "VINYL",
        "condition": "LIKE_NEW",
        "price": "65.50",
        "year": 1977,
        "genre": "Rock",
        "label": "Warner Bros.",
        "image": "Rumours",
        "is_verified": True,
        "verified_by_official": False,
        "authenticity_score": "95.8"
    },
    {
        "seller": 1,
        "title": "The Dark Side of the Moon",
        "artist": "Pink Floyd",
        "description": "Early Harvest pressing complete with both posters and the sticker sheet.",
        "type": "VINYL",
        "condition": "LIGHTLY_USED",
        "price": "110.00",
        "year": 1973,
        "genre": "Progressive Rock",
        "label": "Harvest",
        "image": "Dark+Side+Moon",
        "is_verified": True,
        "verified_by_official": True,
        "authenticity_score": "97.2"
    },
    {
        "seller": 2,
        "title": "Purple Rain",
        "artist": "Prince and The Revolution",
        "description": "First US pressing with the poster. Light crackle between tracks.",
        "type": "VINYL",
        "condition": "WELL_USED",
        "price": "45.00",
        "year": 1984,
        "genre": "Pop/Rock",
        "label": "Warner Bros.",
        "image": "Purple+Rain",
        "is_verified": False,
        "verified_by_official": False,
        "authenticity_score": "88.5"
    },
    {
        "seller": 2,
        "title": "Thriller",
        "artist": "Michael Jackson",
        "description": "Gatefold original on Epic. Corner wear on the cover, vinyl plays through without skips.",
        "type": "VINYL",
        "condition": "WELL_USED",
        "price": "38.99",
        "year": 1982,
        "genre": "Pop",
        "label": "Epic",
        "image": "Thriller",
        "is_verified": True,
        "verified_by_official": False,
        "authenticity_score": "91.0"
    },
    {
        "seller": 3,
        "title": "Blue",
        "artist": "Joni Mitchell",
        "description": "Reprise first pressing with the textured cover. Quiet vinyl.",
        "type": "VINYL",
        "condition": "LIGHTLY_USED",
        "price": "75.00",
        "year": 1971,
        "genre": "Folk",
        "label": "Reprise",
        "image": "Blue",
        "is_verified": True,
        "verified_by_official": True,
        "authenticity_score": "96.5"
    },
    {
        "seller": 3,
        "title": "The Velvet Underground & Nico",
        "artist": "The Velvet Underground",
        "description": "Verve pressing with the banana cover intact. A collector's piece.",
        "type": "VINYL",
        "condition": "WELL_USED",
        "price": "195.00",
        "year": 1967,
        "genre": "Art Rock",
        "label": "Verve",
        "image": "Velvet+Underground",
        "is_verified": True,
        "verified_by_official": False,
        "authenticity_score": "89.2"
    },
    {
        "seller": 3,
        "title": "Nevermind",
        "artist": "Nirvana",
        "description": "Original DGC release. Some ring wear, plays well.",
        "type": "VINYL",
        "condition": "WELL_USED",
        "price": "55.00",
        "year": 1991,
        "genre": "Grunge/Rock",
        "label": "DGC",
        "image": "Nevermind",
        "is_verified": False,
        "verified_by_official": False,
        "authenticity_score": "87.8"
    },
    {
        "seller": 4,
        "title": "What's Going On",
        "artist": "Marvin Gaye",
        "description": "Tamla pressing with the original inner sleeve. Warm, clean sound.",
        "type": "VINYL",
        "condition": "LIGHTLY_USED",
        "price": "95.00",
        "year": 1971,
        "genre": "Soul/R&B",
        "label": "Tamla",
        "image": "Whats+Going+On",
        "is_verified": True,
        "verified_by_official": False,
        "authenticity_score": "94.1"
    },
    {
        "seller": 4,
        "title": "OK Computer",
        "artist": "Radiohead",
        "description": "Double LP, played a handful of times. Includes the original inner sleeves.",
        "type": "VINYL",
        "condition": "LIKE_NEW",
        "price": "85.00",
        "year": 1997,
        "genre": "Alternative Rock",
        "label": "Parlophone",
        "image": "OK+Computer",
        "is_verified": True,
        "verified_by_official": False,
        "authenticity_score": "96.8"
    },
    {
        "seller": 4,
        "title": "Random Access Memories",
        "artist": "Daft Punk",
        "description": "Still sealed. 180g double LP.",
        "type": "VINYL",
        "condition": "BRAND_NEW",
        "price": "120.00",
        "year": 2013,
        "genre": "Electronic",
        "label": "Columbia",
        "image": "Random+Access",
        "is_verified": True,
        "verified_by_official": True,
        "authenticity_score": "99.5"
    },
    {
        "seller": 0,
        "title": "In Rainbows",
        "artist": "Radiohead",
        "description": "Special edition CD with the bonus disc and booklet. Disc is flawless.",
        "type": "CD",
        "condition": "LIKE_NEW",
        "price": "25.00",
        "year": 2007,
        "genre": "Alternative Rock",
        "label": "XL Recordings",
        "image": "In+Rainbows+CD",
        "is_verified": False,
        "verified_by_official": False,
        "authenticity_score": "90.5"
    },
    {
        "seller": 2,
        "title": "Beatles Vintage Band T-Shirt",
        "artist": "The Beatles",
        "description": "1990s Anthology era shirt, size L. Faded but no holes.",
        "type": "MERCH",
        "condition": "HEAVILY_USED",
        "price": "45.00",
        "year": 1995,
        "genre": "Rock",
        "label": None,
        "image": "Beatles+Shirt",
        "is_verified": False,
        "verified_by_official": False,
        "authenticity_score": None
    },
]

RESET_TABLES = [
    'messages', 'conversations', 'reviews', 'favorites',
    'orders', 'listings', 'auth_sessions', 'users'
]

async def reset_data(pool) -> None:
    """Delete all marketplace data, children first."""
    async with pool.acquire() as conn:
        async with conn.transaction():
            for table in RESET_TABLES:
                await conn.execute(f'DELETE FROM {table}')
    logger.info("Cleared existing marketplace data")

async def create_users(user_manager: UserManager) -> List[Dict[str, Any]]:
    """Create the demo users, reusing any that already exist."""
    users = []
    for user_data in USERS_DATA:
        try:
            user = await user_manager.create_user(
                user_data['name'], user_data['email'], DEMO_PASSWORD
            )
            logger.info(f"Created user {user['email']}")
        except DuplicateEmailError:
            user = await user_manager.get_user_by_email(user_data['email'])
            logger.info(f"User {user['email']} already exists")
        users.append(user)
    return users

async def apply_verification(pool, listing_id, listing_data: Dict[str, Any]) -> None:
    async with pool.acquire() as conn:
        await conn.execute(
            '''
            UPDATE listings
            SET is_verified = $2, verified_by_official = $3, authenticity_score = $4
            WHERE id = $1
            ''',
            listing_id,
            listing_data['is_verified'],
            listing_data['verified_by_official'],
            Decimal(listing_data['authenticity_score']) if listing_data['authenticity_score'] else None
        )

async def main(reset: bool = False):
    """Create demo users and listings."""
    try:
        await init_db()
        pool = await get_pool()

        if reset:
            await reset_data(pool)

        users = await create_users(UserManager(pool))
        listing_manager = ListingManager(pool)

        created_listings = []
        for listing_data in LISTINGS_DATA:
            seller = users[listing_data['seller']]
            try:
                listing = await listing_manager.create_listing(
                    seller_id=seller['id'],
                    title=listing_data['title'],
                    artist=listing_data['artist'],
                    description=listing_data['description'],
                    type=listing_data['type'],
                    condition=listing_data['condition'],
                    price=Decimal(listing_data['price']),
                    images=[placeholder_image(listing_data['image'])],
                    year=listing_data['year'],
                    genre=listing_data['genre'],
                    label=listing_data['label']
                )
                await apply_verification(pool, listing['id'], listing_data)
                created_listings.append(listing)

                print(f"\nCreated Listing {len(created_listings)}:")
                print(f"ID: {listing['id']}")
                print(f"Title: {listing['title']} - {listing['artist']}")
                print(f"Seller: {seller['name']}")
                print(f"Price: ${listing['price']}")

            except Exception as e:
                logger.error(f"Failed to create listing {listing_data['title']}: {e}")
                continue

        print("\nSummary:")
        print(f"Total Users: {len(users)}")
        print(f"Total Listings: {len(created_listings)}")
        print(f"Demo password: {DEMO_PASSWORD}")

    except Exception as e:
        logger.error(f"Error in populate script: {e}")
        raise
    finally:
        await close()

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Populate the marketplace with demo data")
    parser.add_argument('--reset', action='store_true', help="Delete existing data first")
    args = parser.parse_args()

    try:
        asyncio.run(main(reset=args.reset))
    except KeyboardInterrupt:
        print("\nPopulation interrupted by user")

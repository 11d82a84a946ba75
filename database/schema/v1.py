"""Schema v1 - Initial database schema.

This version includes tables for:
- Users and authentication sessions
- Listings
- Orders
- Conversations and messages
- Reviews
- Favorites
"""

schema = {
    'version': 1,
    'tables': [
        {
            'name': 'users',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'name', 'type': 'TEXT'},
                {'name': 'email', 'type': 'TEXT', 'nullable': False},
                {'name': 'password_hash', 'type': 'TEXT', 'nullable': False},
                {'name': 'image', 'type': 'TEXT'},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'indexes': [
                {'name': 'idx_users_email', 'columns': ['email'], 'unique': True}
            ]
        },
        {
            'name': 'auth_sessions',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'user_id', 'type': 'UUID', 'nullable': False},
                {'name': 'token', 'type': 'TEXT', 'nullable': False},
                {'name': 'expires_at', 'type': 'TIMESTAMPTZ', 'nullable': False},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'},
                {'name': 'last_used_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'},
                {'name': 'user_agent', 'type': 'TEXT', 'nullable': True},
                {'name': 'ip_address', 'type': 'TEXT', 'nullable': True},
                {'name': 'revoked', 'type': 'BOOLEAN', 'nullable': False, 'default': 'false'}
            ],
            'foreign_keys': [
                {'columns': ['user_id'], 'references': 'users(id)', 'on_delete': 'CASCADE'}
            ],
            'indexes': [
                {'name': 'idx_auth_sessions_token', 'columns': ['token']},
                {'name': 'idx_auth_sessions_user', 'columns': ['user_id']}
            ]
        },
        {
            'name': 'listings',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'title', 'type': 'TEXT', 'nullable': False},
                {'name': 'artist', 'type': 'TEXT', 'nullable': False},
                {'name': 'description', 'type': 'TEXT', 'nullable': False},
                {'name': 'type', 'type': 'TEXT', 'nullable': False},
                {'name': 'condition', 'type': 'TEXT', 'nullable': False},
                {'name': 'price', 'type': 'DECIMAL(10, 2)', 'nullable': False},
                {'name': 'images', 'type': 'TEXT', 'nullable': False, 'default': "'[]'"},
                {'name': 'image_url', 'type': 'TEXT'},
                {'name': 'year', 'type': 'INT4'},
                {'name': 'genre', 'type': 'TEXT'},
                {'name': 'label', 'type': 'TEXT'},
                {'name': 'is_sold', 'type': 'BOOLEAN', 'nullable': False, 'default': 'false'},
                {'name': 'is_verified', 'type': 'BOOLEAN', 'nullable': False, 'default': 'false'},
                {'name': 'verified_by_official', 'type': 'BOOLEAN', 'nullable': False, 'default': 'false'},
                {'name': 'authenticity_score', 'type': 'DECIMAL(4, 1)'},
                {'name': 'views', 'type': 'INT8', 'nullable': False, 'default': '0'},
                {'name': 'seller_id', 'type': 'UUID', 'nullable': False},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'checks': [
                {'name': 'chk_listings_price_positive', 'expression': 'price > 0'},
                {'name': 'chk_listings_score_range',
                 'expression': 'authenticity_score IS NULL OR (authenticity_score >= 0 AND authenticity_score <= 100)'}
            ],
            'foreign_keys': [
                {'columns': ['seller_id'], 'references': 'users(id)'}
            ],
            'indexes': [
                {'name': 'idx_listings_seller', 'columns': ['seller_id']},
                {'name': 'idx_listings_available', 'columns': ['created_at'], 'where': 'is_sold = false'}
            ]
        },
        {
            'name': 'orders',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'order_number', 'type': 'TEXT', 'nullable': False},
                {'name': 'amount', 'type': 'DECIMAL(10, 2)', 'nullable': False},
                {'name': 'status', 'type': 'TEXT', 'nullable': False, 'default': "'processing'"},
                {'name': 'buyer_id', 'type': 'UUID', 'nullable': False},
                {'name': 'seller_id', 'type': 'UUID', 'nullable': False},
                {'name': 'listing_id', 'type': 'UUID', 'nullable': False},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'foreign_keys': [
                {'columns': ['buyer_id'], 'references': 'users(id)'},
                {'columns': ['seller_id'], 'references': 'users(id)'},
                {'columns': ['listing_id'], 'references': 'listings(id)'}
            ],
            'indexes': [
                {'name': 'idx_orders_number', 'columns': ['order_number'], 'unique': True},
                {'name': 'idx_orders_buyer', 'columns': ['buyer_id']},
                {'name': 'idx_orders_seller', 'columns': ['seller_id']},
                {'name': 'idx_orders_listing', 'columns': ['listing_id']}
            ]
        },
        {
            'name': 'conversations',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'user1_id', 'type': 'UUID', 'nullable': False},
                {'name': 'user2_id', 'type': 'UUID', 'nullable': False},
                {'name': 'listing_id', 'type': 'UUID', 'nullable': False},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'checks': [
                {'name': 'chk_conversations_pair_order', 'expression': 'user1_id < user2_id'}
            ],
            'foreign_keys': [
                {'columns': ['user1_id'], 'references': 'users(id)'},
                {'columns': ['user2_id'], 'references': 'users(id)'},
                {'columns': ['listing_id'], 'references': 'listings(id)'}
            ],
            'indexes': [
                {'name': 'idx_conversations_pair_listing',
                 'columns': ['user1_id', 'user2_id', 'listing_id'], 'unique': True},
                {'name': 'idx_conversations_user2', 'columns': ['user2_id']}
            ]
        },
        {
            'name': 'messages',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'content', 'type': 'TEXT', 'nullable': False},
                {'name': 'sender_id', 'type': 'UUID', 'nullable': False},
                {'name': 'conversation_id', 'type': 'UUID', 'nullable': False},
                {'name': 'is_read', 'type': 'BOOLEAN', 'nullable': False, 'default': 'false'},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'foreign_keys': [
                {'columns': ['sender_id'], 'references': 'users(id)'},
                {'columns': ['conversation_id'], 'references': 'conversations(id)', 'on_delete': 'CASCADE'}
            ],
            'indexes': [
                {'name': 'idx_messages_conversation', 'columns': ['conversation_id', 'created_at']},
                {'name': 'idx_messages_unread', 'columns': ['conversation_id'], 'where': 'is_read = false'}
            ]
        },
        {
            'name': 'reviews',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'rating', 'type': 'INT2', 'nullable': False},
                {'name': 'comment', 'type': 'TEXT'},
                {'name': 'seller_id', 'type': 'UUID', 'nullable': False},
                {'name': 'reviewer_id', 'type': 'UUID', 'nullable': False},
                {'name': 'listing_id', 'type': 'UUID', 'nullable': False},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'checks': [
                {'name': 'chk_reviews_rating_range', 'expression': 'rating BETWEEN 1 AND 5'}
            ],
            'foreign_keys': [
                {'columns': ['seller_id'], 'references': 'users(id)'},
                {'columns': ['reviewer_id'], 'references': 'users(id)'},
                {'columns': ['listing_id'], 'references': 'listings(id)'}
            ],
            'indexes': [
                {'name': 'idx_reviews_unique_triple',
                 'columns': ['reviewer_id', 'seller_id', 'listing_id'], 'unique': True},
                {'name': 'idx_reviews_seller', 'columns': ['seller_id']}
            ]
        },
        {
            'name': 'favorites',
            'columns': [
                {'name': 'id', 'type': 'UUID', 'primary_key': True, 'default': 'gen_random_uuid()'},
                {'name': 'user_id', 'type': 'UUID', 'nullable': False},
                {'name': 'listing_id', 'type': 'UUID', 'nullable': False},
                {'name': 'created_at', 'type': 'TIMESTAMPTZ', 'nullable': False, 'default': 'now()'}
            ],
            'foreign_keys': [
                {'columns': ['user_id'], 'references': 'users(id)', 'on_delete': 'CASCADE'},
                {'columns': ['listing_id'], 'references': 'listings(id)'}
            ],
            'indexes': [
                {'name': 'idx_favorites_user_listing', 'columns': ['user_id', 'listing_id'], 'unique': True}
            ]
        }
    ],
    'migrations': []
}

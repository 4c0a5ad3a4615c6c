"""Schema v1 - Initial database schema.

This version includes tables for:
- Trade items and their buyers
- Redemption codes issued from transfers
- The current price list text
- Game history rows read by the history report
"""

schema = {
    'version': 1,
    'tables': [
        {
            'name': 'trade_items',
            'columns': [
                {'name': 'id', 'type': 'SERIAL', 'primary_key': True},
                {'name': 'seller', 'type': 'TEXT', 'nullable': False},
                {'name': 'venue_id', 'type': 'TEXT'},
                {'name': 'item_name', 'type': 'TEXT', 'nullable': False},
                {'name': 'description', 'type': 'TEXT'},
                {'name': 'price', 'type': 'DECIMAL(18, 2)', 'nullable': False},
                {'name': 'quantity', 'type': 'INT8', 'nullable': False},
                {'name': 'image_ref', 'type': 'TEXT'},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'},
                {'name': 'updated_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'checks': [
                {'name': 'chk_trade_items_price', 'expression': 'price > 0'},
                {'name': 'chk_trade_items_quantity', 'expression': 'quantity >= 0'}
            ],
            'indexes': [
                {'name': 'idx_trade_items_seller', 'columns': ['seller']},
                {'name': 'idx_trade_items_venue', 'columns': ['venue_id']}
            ]
        },
        {
            'name': 'trade_item_buyers',
            'columns': [
                {'name': 'id', 'type': 'SERIAL', 'primary_key': True},
                {'name': 'item_id', 'type': 'INT8', 'nullable': False},
                {'name': 'buyer', 'type': 'TEXT', 'nullable': False},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'foreign_keys': [
                {'columns': ['item_id'], 'references': 'trade_items(id)'}
            ],
            'indexes': [
                {'name': 'idx_trade_item_buyers_item', 'columns': ['item_id']}
            ]
        },
        {
            'name': 'redemption_codes',
            'columns': [
                {'name': 'id', 'type': 'SERIAL', 'primary_key': True},
                {'name': 'code', 'type': 'TEXT', 'nullable': False, 'unique': True},
                {'name': 'amount', 'type': 'DECIMAL(18, 2)', 'nullable': False},
                {'name': 'used', 'type': 'BOOL', 'nullable': False, 'default': 'false'},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'},
                {'name': 'used_at', 'type': 'TIMESTAMP'}
            ],
            'checks': [
                {'name': 'chk_redemption_codes_amount', 'expression': 'amount > 0'}
            ],
            'indexes': [
                {'name': 'idx_redemption_codes_amount', 'columns': ['amount', 'used']}
            ]
        },
        {
            'name': 'current_event',
            'columns': [
                {'name': 'id', 'type': 'INT8', 'primary_key': True},
                {'name': 'event_text', 'type': 'TEXT', 'nullable': False},
                {'name': 'updated_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ]
        },
        {
            'name': 'game_history',
            'columns': [
                {'name': 'id', 'type': 'SERIAL', 'primary_key': True},
                {'name': 'nickname', 'type': 'TEXT', 'nullable': False},
                {'name': 'game_id', 'type': 'TEXT', 'nullable': False},
                {'name': 'star_cost', 'type': 'INT8', 'nullable': False, 'default': '0'},
                {'name': 'stars', 'type': 'INT8', 'nullable': False, 'default': '0'},
                {'name': 'final_rank', 'type': 'TEXT'},
                {'name': 'is_active', 'type': 'BOOL', 'nullable': False, 'default': 'false'},
                {'name': 'order_type', 'type': 'TEXT', 'nullable': False},
                {'name': 'created_at', 'type': 'TIMESTAMP', 'nullable': False, 'default': 'now()'}
            ],
            'indexes': [
                {'name': 'idx_game_history_nickname', 'columns': ['nickname']}
            ]
        }
    ],
    'migrations': []
}

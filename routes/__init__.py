from .profile_routes import router as profile_routes
from .item_routes import router as item_routes
from .request_routes import router as request_routes
from .chat_routes import router as chat_routes
from .payment_routes import router as payment_routes
from .review_routes import router as review_routes
from .notification_routes import router as notification_routes
from .realtime_routes import router as realtime_routes

__all__ = [
    'profile_routes',
    'item_routes',
    'request_routes',
    'chat_routes',
    'payment_routes',
    'review_routes',
    'notification_routes',
    'realtime_routes'
]

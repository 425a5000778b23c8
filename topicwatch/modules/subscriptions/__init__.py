"""
Subscriptions Module
====================

Provides:
- Anonymous topic subscriptions (SubscriptionService)
- Reply notifications with blind-copied subscribers
- Unsubscribe interceptor and unsubscribe page
- Subscribe checkbox template global
"""

from flask import Blueprint

subscriptions_bp = Blueprint(
    'subscriptions',
    __name__,
    url_prefix='/topicwatch',
    template_folder='templates',
)

from . import routes  # noqa: E402,F401
from .hooks import HookRegistry, ReplyEvent  # noqa: E402
from .service import (  # noqa: E402
    SubscriptionService, build_unsubscribe_link, UNSUBSCRIBED, NOT_SUBSCRIBED
)
from .storage import (  # noqa: E402
    SubscriptionStore, SqliteSubscriptionStore, InMemorySubscriptionStore
)

__all__ = [
    'subscriptions_bp', 'HookRegistry', 'ReplyEvent', 'SubscriptionService',
    'build_unsubscribe_link', 'UNSUBSCRIBED', 'NOT_SUBSCRIBED',
    'SubscriptionStore', 'SqliteSubscriptionStore', 'InMemorySubscriptionStore',
]

"""
Topicwatch Modules
==================

subscriptions (registry, hooks, routes), forum (topic/reply adapter),
email (outbound transport).
"""

__all__ = ['subscriptions', 'forum', 'email']

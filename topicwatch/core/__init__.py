"""
Topicwatch Core
===============

Core utilities shared by Topicwatch modules.
"""

from .config import Config
from .database import Database
from .exceptions import TopicwatchError, SubscriptionStorageError
from .logging_service import LoggingService, logger, db_log

__all__ = [
    'Config', 'Database', 'LoggingService', 'logger', 'db_log',
    'TopicwatchError', 'SubscriptionStorageError',
]

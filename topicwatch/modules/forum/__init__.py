"""
Forum Module
============

Topic/reply records and the adapter Topicwatch reads them through.
"""

from .adapter import ForumAdapter, Topic, Reply, PUBLISHED
from .database import SqliteForum

__all__ = ['ForumAdapter', 'Topic', 'Reply', 'PUBLISHED', 'SqliteForum']

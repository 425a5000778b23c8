"""
Forum Adapter
=============

Read-only view of the host forum's topics and replies. Topicwatch never
creates or deletes these; it only needs titles, permalinks, authors and
whether a post is published.
"""

from dataclasses import dataclass
from typing import Optional

PUBLISHED = 'publish'


@dataclass
class Topic:
    id: int
    title: str
    permalink: str
    status: str = PUBLISHED

    @property
    def is_published(self) -> bool:
        return self.status == PUBLISHED


@dataclass
class Reply:
    id: int
    topic_id: int
    author_name: str
    author_email: str
    content: str
    url: str
    status: str = PUBLISHED

    @property
    def is_published(self) -> bool:
        return self.status == PUBLISHED


class ForumAdapter:
    """Interface the host forum implements for Topicwatch"""

    def get_topic(self, topic_id: int) -> Optional[Topic]:
        raise NotImplementedError

    def get_reply(self, reply_id: int) -> Optional[Reply]:
        raise NotImplementedError

    def is_topic_published(self, topic_id: int) -> bool:
        topic = self.get_topic(topic_id)
        return topic is not None and topic.is_published

    def is_reply_published(self, reply_id: int) -> bool:
        reply = self.get_reply(reply_id)
        return reply is not None and reply.is_published

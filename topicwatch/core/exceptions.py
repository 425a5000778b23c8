"""
Topicwatch exceptions.
"""


class TopicwatchError(Exception):
    """Base class for errors raised by Topicwatch"""


class SubscriptionStorageError(TopicwatchError):
    """The metadata store failed to write or delete a subscriber list"""

    def __init__(self, message, topic_id=None):
        super().__init__(message)
        self.topic_id = topic_id

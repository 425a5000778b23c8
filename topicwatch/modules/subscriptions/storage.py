"""
Subscription Storage
====================

One record per topic holding the ordered list of subscribed emails.
An absent record means "no subscribers"; an empty list is never stored.

SqliteSubscriptionStore keeps the lists as JSON in a per-topic metadata
table (topic_meta), keyed by (topic_id, meta_key).
"""

import json
import sqlite3
import logging
from typing import Dict, List

from topicwatch.core import Config, Database, SubscriptionStorageError

logger = logging.getLogger(__name__)


class SubscriptionStore:
    """Storage adapter interface used by SubscriptionService"""

    def get(self, topic_id: int) -> List[str]:
        raise NotImplementedError

    def save(self, topic_id: int, emails: List[str]) -> None:
        raise NotImplementedError

    def delete(self, topic_id: int) -> None:
        raise NotImplementedError

    def topic_ids(self) -> List[int]:
        raise NotImplementedError


class InMemorySubscriptionStore(SubscriptionStore):

    def __init__(self):
        self._lists: Dict[int, List[str]] = {}

    def get(self, topic_id):
        return list(self._lists.get(topic_id, []))

    def save(self, topic_id, emails):
        if not emails:
            raise SubscriptionStorageError("Refusing to store an empty subscriber list", topic_id)
        self._lists[topic_id] = list(emails)

    def delete(self, topic_id):
        self._lists.pop(topic_id, None)

    def topic_ids(self):
        return sorted(self._lists)


class SqliteSubscriptionStore(SubscriptionStore):

    def __init__(self, db_path=None, meta_key=None):
        self.db_path = db_path or Config.TOPICWATCH_DB
        self.meta_key = meta_key or Config.SUBSCRIPTIONS_META_KEY

    def init_db(self):
        """Create the topic_meta table"""
        try:
            Database.ensure_dir(self.db_path)
            with Database.connect(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute(f'''
                    CREATE TABLE IF NOT EXISTS {Config.META_TABLE} (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        topic_id INTEGER NOT NULL,
                        meta_key TEXT NOT NULL,
                        meta_value TEXT NOT NULL,
                        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                        UNIQUE (topic_id, meta_key)
                    )
                ''')
                cursor.execute(f'''
                    CREATE INDEX IF NOT EXISTS idx_topic_meta_topic
                    ON {Config.META_TABLE}(topic_id)
                ''')
                conn.commit()
                logger.info("Topic metadata table created/verified successfully")
        except sqlite3.Error as e:
            logger.error(f"Error initializing topic metadata table: {e}")
            raise

    def get(self, topic_id):
        try:
            with Database.connect(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute(
                    f'SELECT meta_value FROM {Config.META_TABLE} WHERE topic_id = ? AND meta_key = ?',
                    (topic_id, self.meta_key)
                )
                row = cursor.fetchone()
        except sqlite3.Error as e:
            logger.error(f"Database error reading subscribers for topic {topic_id}: {e}")
            raise SubscriptionStorageError(str(e), topic_id) from e

        if not row or not row[0]:
            return []
        try:
            emails = json.loads(row[0])
        except ValueError:
            logger.warning(f"Unreadable subscriber list for topic {topic_id}, treating as empty")
            return []
        if not isinstance(emails, list):
            return []
        return [e for e in emails if isinstance(e, str)]

    def save(self, topic_id, emails):
        if not emails:
            raise SubscriptionStorageError("Refusing to store an empty subscriber list", topic_id)
        try:
            with Database.connect(self.db_path) as conn:
                conn.execute(f'''
                    INSERT INTO {Config.META_TABLE} (topic_id, meta_key, meta_value, updated_at)
                    VALUES (?, ?, ?, CURRENT_TIMESTAMP)
                    ON CONFLICT(topic_id, meta_key) DO UPDATE
                    SET meta_value = excluded.meta_value, updated_at = excluded.updated_at
                ''', (topic_id, self.meta_key, json.dumps(list(emails))))
                conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Database error saving subscribers for topic {topic_id}: {e}")
            raise SubscriptionStorageError(str(e), topic_id) from e

    def delete(self, topic_id):
        try:
            with Database.connect(self.db_path) as conn:
                conn.execute(
                    f'DELETE FROM {Config.META_TABLE} WHERE topic_id = ? AND meta_key = ?',
                    (topic_id, self.meta_key)
                )
                conn.commit()
        except sqlite3.Error as e:
            logger.error(f"Database error deleting subscribers for topic {topic_id}: {e}")
            raise SubscriptionStorageError(str(e), topic_id) from e

    def topic_ids(self):
        with Database.connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                f'SELECT topic_id FROM {Config.META_TABLE} WHERE meta_key = ? ORDER BY topic_id',
                (self.meta_key,)
            )
            return [row[0] for row in cursor.fetchall()]

    def record_exists(self, topic_id) -> bool:
        with Database.connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                f'SELECT 1 FROM {Config.META_TABLE} WHERE topic_id = ? AND meta_key = ?',
                (topic_id, self.meta_key)
            )
            return cursor.fetchone() is not None

"""
SQLite Forum
============

Minimal topics/replies tables implementing ForumAdapter. Used by the
starter template and by hosts without a forum of their own.
"""

import sqlite3
import logging
from typing import Optional

from topicwatch.core import Config, Database
from .adapter import ForumAdapter, Topic, Reply, PUBLISHED

logger = logging.getLogger(__name__)


class SqliteForum(ForumAdapter):

    def __init__(self, db_path=None):
        self.db_path = db_path or Config.TOPICWATCH_DB

    def init_forum_db(self):
        """Create the topics and replies tables"""
        try:
            Database.ensure_dir(self.db_path)
            with Database.connect(self.db_path) as conn:
                cursor = conn.cursor()
                cursor.execute(f'''
                    CREATE TABLE IF NOT EXISTS {Config.TOPICS_TABLE} (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        title TEXT NOT NULL,
                        permalink TEXT NOT NULL,
                        status TEXT DEFAULT 'publish',
                        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    )
                ''')
                cursor.execute(f'''
                    CREATE TABLE IF NOT EXISTS {Config.REPLIES_TABLE} (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        topic_id INTEGER NOT NULL,
                        author_name TEXT NOT NULL DEFAULT '',
                        author_email TEXT NOT NULL DEFAULT '',
                        content TEXT NOT NULL DEFAULT '',
                        url TEXT,
                        status TEXT DEFAULT 'publish',
                        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    )
                ''')
                cursor.execute(f'''
                    CREATE INDEX IF NOT EXISTS idx_replies_topic
                    ON {Config.REPLIES_TABLE}(topic_id)
                ''')
                conn.commit()
                logger.info("Forum tables created/verified successfully")
        except sqlite3.Error as e:
            logger.error(f"Error initializing forum database: {e}")
            raise

    def create_topic(self, title, permalink, status=PUBLISHED):
        with Database.connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                f'INSERT INTO {Config.TOPICS_TABLE} (title, permalink, status) VALUES (?, ?, ?)',
                (title, permalink, status)
            )
            conn.commit()
            return cursor.lastrowid

    def create_reply(self, topic_id, author_name, author_email, content, url=None, status=PUBLISHED):
        """Insert a reply; its URL defaults to the topic permalink plus a #post anchor"""
        topic = self.get_topic(topic_id) if url is None else None
        with Database.connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(f'''
                INSERT INTO {Config.REPLIES_TABLE} (topic_id, author_name, author_email, content, url, status)
                VALUES (?, ?, ?, ?, ?, ?)
            ''', (topic_id, author_name, author_email, content, url, status))
            reply_id = cursor.lastrowid

            if url is None and topic:
                cursor.execute(
                    f'UPDATE {Config.REPLIES_TABLE} SET url = ? WHERE id = ?',
                    (f"{topic.permalink}#post-{reply_id}", reply_id)
                )
            conn.commit()
            return reply_id

    def set_reply_status(self, reply_id, status):
        with Database.connect(self.db_path) as conn:
            conn.execute(f'UPDATE {Config.REPLIES_TABLE} SET status = ? WHERE id = ?', (status, reply_id))
            conn.commit()

    def set_topic_status(self, topic_id, status):
        with Database.connect(self.db_path) as conn:
            conn.execute(f'UPDATE {Config.TOPICS_TABLE} SET status = ? WHERE id = ?', (status, topic_id))
            conn.commit()

    def set_topic_url(self, topic_id, permalink):
        with Database.connect(self.db_path) as conn:
            conn.execute(f'UPDATE {Config.TOPICS_TABLE} SET permalink = ? WHERE id = ?', (permalink, topic_id))
            conn.commit()

    def list_topics(self):
        with Database.connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                f'SELECT id, title, permalink, status FROM {Config.TOPICS_TABLE} ORDER BY id DESC'
            )
            return [Topic(id=r[0], title=r[1], permalink=r[2], status=r[3]) for r in cursor.fetchall()]

    def list_replies(self, topic_id, published_only=True):
        query = f'''
            SELECT id, topic_id, author_name, author_email, content, url, status
            FROM {Config.REPLIES_TABLE} WHERE topic_id = ?
        '''
        params = [topic_id]
        if published_only:
            query += ' AND status = ?'
            params.append(PUBLISHED)
        query += ' ORDER BY id'

        with Database.connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            return [
                Reply(id=r[0], topic_id=r[1], author_name=r[2], author_email=r[3],
                      content=r[4], url=r[5] or '', status=r[6])
                for r in cursor.fetchall()
            ]

    def get_topic(self, topic_id) -> Optional[Topic]:
        with Database.connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(
                f'SELECT id, title, permalink, status FROM {Config.TOPICS_TABLE} WHERE id = ?',
                (topic_id,)
            )
            row = cursor.fetchone()
        if not row:
            return None
        return Topic(id=row[0], title=row[1], permalink=row[2], status=row[3])

    def get_reply(self, reply_id) -> Optional[Reply]:
        with Database.connect(self.db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(f'''
                SELECT id, topic_id, author_name, author_email, content, url, status
                FROM {Config.REPLIES_TABLE} WHERE id = ?
            ''', (reply_id,))
            row = cursor.fetchone()
        if not row:
            return None
        return Reply(
            id=row[0], topic_id=row[1], author_name=row[2], author_email=row[3],
            content=row[4], url=row[5] or '', status=row[6]
        )

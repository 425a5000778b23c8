"""
Persistent logging service for Topicwatch.
Stores structured log rows in the app_logs table so subscription events
survive process restarts, alongside the regular stdout logger.
"""

import json
from datetime import datetime
from flask import request, has_request_context, has_app_context, current_app
from .database import Database
from .config import Config


class LoggingService:
    """Centralized logging service for application-wide logging"""

    @staticmethod
    def _db_path():
        """TOPICWATCH_DB of the current app; None outside an app context"""
        if not has_app_context():
            return None
        return current_app.config.get('TOPICWATCH_DB') or Config.TOPICWATCH_DB

    @staticmethod
    def _ensure_logs_table(db_path):
        """Ensure the app_logs table exists"""
        Database.ensure_dir(db_path)
        with Database.connect(db_path) as conn:
            cursor = conn.cursor()
            cursor.execute(f"""
                CREATE TABLE IF NOT EXISTS {Config.LOGS_TABLE} (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp TEXT NOT NULL,
                    level TEXT NOT NULL,
                    source TEXT NOT NULL,
                    message TEXT NOT NULL,
                    details TEXT,
                    ip_address TEXT,
                    user_agent TEXT,
                    request_path TEXT
                )
            """)
            cursor.execute(f"""
                CREATE INDEX IF NOT EXISTS idx_logs_timestamp
                ON {Config.LOGS_TABLE}(timestamp DESC)
            """)
            cursor.execute(f"""
                CREATE INDEX IF NOT EXISTS idx_logs_source
                ON {Config.LOGS_TABLE}(source)
            """)
            conn.commit()

    @staticmethod
    def _get_request_context():
        """Extract request context information"""
        if not has_request_context():
            return None, None, None

        ip_address = request.headers.get('X-Forwarded-For', request.remote_addr)
        if ip_address and ',' in ip_address:
            ip_address = ip_address.split(',')[0].strip()

        user_agent = request.headers.get('User-Agent', '')[:500]
        return ip_address, user_agent, request.path

    @staticmethod
    def log(level, source, message, details=None):
        """
        Log a message to the database

        Args:
            level (str): Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            source (str): Source component (subscriptions, email, forum)
            message (str): Main log message
            details (str/dict): Additional details (JSON-encoded if dict)
        """
        db_path = LoggingService._db_path()
        if db_path is None:
            return

        try:
            LoggingService._ensure_logs_table(db_path)

            ip_address, user_agent, request_path = LoggingService._get_request_context()

            if isinstance(details, dict):
                details = json.dumps(details, indent=2)

            with Database.connect(db_path) as conn:
                cursor = conn.cursor()
                cursor.execute(f"""
                    INSERT INTO {Config.LOGS_TABLE}
                    (timestamp, level, source, message, details, ip_address, user_agent, request_path)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """, (
                    datetime.now().isoformat(), level.upper(), source, message, details,
                    ip_address, user_agent, request_path
                ))
                conn.commit()

        except Exception as e:
            # Fallback to console logging if database fails
            print(f"[{datetime.now().isoformat()}] [{level.upper()}] [{source}] {message}")
            if details:
                print(f"Details: {details}")
            print(f"Logging service error: {e}")

    @staticmethod
    def recent(source=None, limit=50):
        """Return the newest log rows, optionally for one source"""
        db_path = LoggingService._db_path()
        if db_path is None:
            return []
        LoggingService._ensure_logs_table(db_path)
        with Database.connect(db_path) as conn:
            cursor = conn.cursor()
            if source:
                cursor.execute(f"""
                    SELECT timestamp, level, source, message, details
                    FROM {Config.LOGS_TABLE} WHERE source = ?
                    ORDER BY id DESC LIMIT ?
                """, (source, limit))
            else:
                cursor.execute(f"""
                    SELECT timestamp, level, source, message, details
                    FROM {Config.LOGS_TABLE} ORDER BY id DESC LIMIT ?
                """, (limit,))
            return [
                {'timestamp': r[0], 'level': r[1], 'source': r[2], 'message': r[3], 'details': r[4]}
                for r in cursor.fetchall()
            ]


def db_log(level, source, message, details=None):
    """Shortcut used by modules: LoggingService.log without the class prefix"""
    LoggingService.log(level, source, message, details)


# Convenience instance for easy importing
logger = LoggingService()

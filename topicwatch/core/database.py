import os
import sqlite3

from .config import Config


class Database:

    @staticmethod
    def connect(path):
        return sqlite3.connect(path)

    @staticmethod
    def ensure_dir(path):
        """Create the parent directory of a database file if it is missing"""
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        return path

    @staticmethod
    def default_path():
        return Config.TOPICWATCH_DB

"""
Shared fixtures for the Topicwatch test-suite.

NOTE: pytest is listed under extras_require["dev"] in setup.py.
Install with: pip install -e ".[dev]"
"""

import os
import shutil
import tempfile
from unittest.mock import MagicMock

import pytest
from flask import Flask, request

from topicwatch import Topicwatch
from topicwatch.modules.subscriptions import ReplyEvent


@pytest.fixture
def tmp_db_dir():
    """Create a temporary directory for test databases, cleaned up after."""
    d = tempfile.mkdtemp(prefix="topicwatch-test-")
    yield d
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def mailer():
    """Stand-in transport recording send_message calls."""
    m = MagicMock()
    m.send_message.return_value = True
    return m


@pytest.fixture
def app(tmp_db_dir, mailer):
    """Flask app with Topicwatch on a temporary SQLite file and a mock mailer."""
    app = Flask(__name__)
    app.config["TESTING"] = True
    app.config["SECRET_KEY"] = "test-secret"
    app.config["DB_DIR"] = tmp_db_dir
    app.config["TOPICWATCH_DB"] = os.path.join(tmp_db_dir, "topicwatch.db")
    app.config["TOPICWATCH_SITE_NAME"] = "Test Forum"
    app.config["EMAIL_WEBSITE_URL"] = "https://forum.example.com"

    topicwatch = Topicwatch(app, mailer=mailer)

    @app.route("/topics/<int:topic_id>")
    def show_topic(topic_id):
        return f"topic {topic_id}"

    @app.route("/topics/<int:topic_id>/reply", methods=["POST"])
    def post_reply(topic_id):
        email = request.form.get("email", "")
        reply_id = topicwatch.forum.create_reply(
            topic_id, request.form.get("name", ""), email, request.form.get("content", "")
        )
        event = ReplyEvent(reply_id=reply_id, topic_id=topic_id, anonymous_email=email)
        topicwatch.reply_created(event)
        topicwatch.reply_published(event)
        return "ok"

    return app


@pytest.fixture
def topicwatch(app):
    return app.extensions["topicwatch"]


@pytest.fixture
def service(topicwatch):
    return topicwatch.service


@pytest.fixture
def forum(topicwatch):
    return topicwatch.forum


@pytest.fixture
def topic_id(forum):
    return forum.create_topic("Help with <b>setup</b>", "https://forum.example.com/topics/1")


@pytest.fixture
def client(app):
    return app.test_client()

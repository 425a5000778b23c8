"""
Subscription registry tests
===========================

Registry state transitions, notification fan-out, unsubscribe links and
unsubscribe request resolution.
Run with: pytest tests/test_subscriptions.py -v
"""

import pytest

from topicwatch.core import SubscriptionStorageError
from topicwatch.modules.forum import Topic, Reply, ForumAdapter
from topicwatch.modules.subscriptions import (
    HookRegistry,
    InMemorySubscriptionStore,
    NOT_SUBSCRIBED,
    ReplyEvent,
    SubscriptionService,
    UNSUBSCRIBED,
    build_unsubscribe_link,
)


class FakeForum(ForumAdapter):
    """Topics and replies held in dicts"""

    def __init__(self):
        self.topics = {}
        self.replies = {}

    def get_topic(self, topic_id):
        return self.topics.get(topic_id)

    def get_reply(self, reply_id):
        return self.replies.get(reply_id)


@pytest.fixture
def fake_forum():
    forum = FakeForum()
    forum.topics[1] = Topic(id=1, title="Kettle <em>broken</em>", permalink="https://f/t/1")
    forum.replies[10] = Reply(
        id=10, topic_id=1, author_name="Alice", author_email="a@x.com",
        content="<p>Try the <b>fuse</b></p>", url="https://f/t/1#post-10",
    )
    return forum


@pytest.fixture
def store():
    return InMemorySubscriptionStore()


@pytest.fixture
def registry(store, fake_forum, mailer):
    return SubscriptionService(
        store, fake_forum, mailer, HookRegistry(),
        settings={'site_name': 'Forum', 'website_url': 'https://f'},
    )


def _notify(registry, author_email="a@x.com"):
    return registry.notify(1, 10, author_email, "Alice", "<p>Try the <b>fuse</b></p>", "https://f/t/1#post-10")


def _bcc_headers(mailer):
    headers = mailer.send_message.call_args[0][3]
    return [h for h in headers if h.startswith("Bcc:")]


# ---------------------------------------------------------------------------
# add / remove
# ---------------------------------------------------------------------------

def test_subscribe_twice_keeps_one_entry(registry, store):
    assert registry.add(1, "a@x.com") is True
    assert registry.add(1, "a@x.com") is False
    assert store.get(1) == ["a@x.com"]


def test_add_keeps_insertion_order_and_case(registry):
    registry.add(1, "b@x.com")
    registry.add(1, "a@x.com")
    registry.add(1, "A@x.com")
    assert registry.get_subscribers(1) == ["b@x.com", "a@x.com", "A@x.com"]


def test_add_to_unknown_topic_creates_record(registry, store):
    """No topic existence check: the record is simply created."""
    registry.add(999, "a@x.com")
    assert store.get(999) == ["a@x.com"]


def test_remove_unknown_email_is_not_subscribed(registry, store):
    registry.add(1, "a@x.com")
    assert registry.remove(1, "z@x.com") == NOT_SUBSCRIBED
    assert store.get(1) == ["a@x.com"]


def test_remove_from_absent_list_is_not_subscribed(registry, store):
    assert registry.remove(1, "a@x.com") == NOT_SUBSCRIBED
    assert store.topic_ids() == []


def test_remove_last_email_deletes_record(registry, store):
    registry.add(1, "a@x.com")
    assert registry.remove(1, "a@x.com") == UNSUBSCRIBED
    assert 1 not in store.topic_ids()


def test_remove_one_of_two_keeps_the_other(registry, store):
    registry.add(1, "a@x.com")
    registry.add(1, "b@x.com")
    assert registry.remove(1, "a@x.com") == UNSUBSCRIBED
    assert store.get(1) == ["b@x.com"]


def test_remove_propagates_storage_failure(registry, store, monkeypatch):
    registry.add(1, "a@x.com")

    def broken_delete(topic_id):
        raise SubscriptionStorageError("disk full", topic_id)

    monkeypatch.setattr(store, "delete", broken_delete)
    with pytest.raises(SubscriptionStorageError):
        registry.remove(1, "a@x.com")


# ---------------------------------------------------------------------------
# notify
# ---------------------------------------------------------------------------

def test_notify_skips_reply_author(registry, mailer):
    registry.add(1, "a@x.com")
    registry.add(1, "b@x.com")

    assert _notify(registry) is True
    assert mailer.send_message.call_count == 1
    assert _bcc_headers(mailer) == ["Bcc: b@x.com"]


def test_notify_single_message_for_all_subscribers(registry, mailer):
    for email in ("b@x.com", "c@x.com", "d@x.com"):
        registry.add(1, email)

    _notify(registry)

    assert mailer.send_message.call_count == 1
    to, subject, body, headers = mailer.send_message.call_args[0]
    assert to == "noreply@f"
    assert subject == "[Forum] Kettle broken"
    assert headers[0] == "From: Forum <noreply@f>"
    assert _bcc_headers(mailer) == ["Bcc: b@x.com", "Bcc: c@x.com", "Bcc: d@x.com"]


def test_notify_body_is_the_same_for_everyone(registry, mailer):
    registry.add(1, "b@x.com")
    registry.add(1, "c@x.com")

    _notify(registry)

    body = mailer.send_message.call_args[0][2]
    assert "Alice wrote:" in body
    assert "Try the fuse" in body
    assert "Post Link: https://f/t/1#post-10" in body
    assert "https://f/topicwatch/unsubscribe?topic_id=1" in body
    assert "b@x.com" not in body
    assert "c@x.com" not in body


def test_notify_unpublished_topic(registry, fake_forum, mailer):
    registry.add(1, "b@x.com")
    fake_forum.topics[1].status = "pending"

    assert _notify(registry) is False
    mailer.send_message.assert_not_called()


def test_notify_unpublished_reply(registry, fake_forum, mailer):
    registry.add(1, "b@x.com")
    fake_forum.replies[10].status = "spam"

    assert _notify(registry) is False
    mailer.send_message.assert_not_called()


def test_notify_disabled_globally(store, fake_forum, mailer):
    registry = SubscriptionService(
        store, fake_forum, mailer, HookRegistry(), settings={'subscriptions_active': False}
    )
    registry.add(1, "b@x.com")

    assert _notify(registry) is False
    mailer.send_message.assert_not_called()


def test_notify_without_subscribers(registry, mailer):
    assert _notify(registry) is False
    mailer.send_message.assert_not_called()


def test_notify_only_author_subscribed(registry, mailer):
    registry.add(1, "a@x.com")
    assert _notify(registry) is False
    mailer.send_message.assert_not_called()


def test_notify_empty_author_email_notifies_everyone(registry, mailer):
    registry.add(1, "a@x.com")
    registry.add(1, "b@x.com")

    _notify(registry, author_email="")

    assert _bcc_headers(mailer) == ["Bcc: a@x.com", "Bcc: b@x.com"]


def test_notify_filters_rewrite_message(registry, mailer):
    registry.add(1, "b@x.com")
    registry.hooks.add_filter("mail_subject", lambda subject, reply_id, topic_id: f"{subject} #{reply_id}")
    registry.hooks.add_filter("mail_to", lambda to: "list@f")
    registry.hooks.add_filter("mail_headers", lambda headers: headers + ["Reply-To: mods@f"])

    _notify(registry)

    to, subject, body, headers = mailer.send_message.call_args[0]
    assert to == "list@f"
    assert subject == "[Forum] Kettle broken #10"
    assert headers[-1] == "Reply-To: mods@f"


def test_notify_empty_filtered_subject_or_message_aborts(registry, mailer):
    registry.add(1, "b@x.com")
    registry.hooks.add_filter("mail_message", lambda message, reply_id, topic_id: "")

    assert _notify(registry) is False
    mailer.send_message.assert_not_called()


def test_notify_individual_delivery(store, fake_forum, mailer):
    registry = SubscriptionService(
        store, fake_forum, mailer, HookRegistry(), settings={'delivery': 'individual'}
    )
    registry.add(1, "b@x.com")
    registry.add(1, "c@x.com")

    assert _notify(registry) is True
    assert mailer.send_message.call_count == 2

    first, second = mailer.send_message.call_args_list
    assert first[0][0] == "b@x.com"
    assert "bbp_anonymous_unsubscribe=b@x.com&user_email=b@x.com&topic_id=1" in first[0][2]
    assert second[0][0] == "c@x.com"
    assert "c@x.com" in second[0][2]
    assert not any(h.startswith("Bcc:") for h in first[0][3])


# ---------------------------------------------------------------------------
# unsubscribe links and request resolution
# ---------------------------------------------------------------------------

def test_unsubscribe_link_without_query_string():
    assert build_unsubscribe_link("https://f/t/1", "a@x.com") == \
        "https://f/t/1?bbp_anonymous_unsubscribe=a@x.com"


def test_unsubscribe_link_with_query_string():
    assert build_unsubscribe_link("https://f/t/1?ref=x", "a@x.com") == \
        "https://f/t/1?ref=x&bbp_anonymous_unsubscribe=a@x.com"


def test_unsubscribe_link_with_topic_id():
    assert build_unsubscribe_link("https://f/t/1", "a@x.com", 1) == \
        "https://f/t/1?bbp_anonymous_unsubscribe=a@x.com&user_email=a@x.com&topic_id=1"


def test_resolve_without_topic_id_is_noop(registry, store):
    registry.add(1, "a@x.com")
    outcome = registry.resolve_unsubscribe_request(
        {"bbp_anonymous_unsubscribe": "1", "user_email": "a@x.com"}
    )
    assert outcome is None
    assert store.get(1) == ["a@x.com"]


@pytest.mark.parametrize("params", [
    {"user_email": "a@x.com", "topic_id": "1"},
    {"bbp_anonymous_unsubscribe": "1", "topic_id": "1"},
    {"bbp_anonymous_unsubscribe": "1", "user_email": "not-an-email", "topic_id": "1"},
    {"bbp_anonymous_unsubscribe": "1", "user_email": "a@x.com", "topic_id": "abc"},
    {"bbp_anonymous_unsubscribe": "1", "user_email": "a@x.com", "topic_id": "0"},
])
def test_resolve_incomplete_requests_are_noops(registry, store, params):
    registry.add(1, "a@x.com")
    assert registry.resolve_unsubscribe_request(params) is None
    assert store.get(1) == ["a@x.com"]


def test_resolve_trims_email_and_removes(registry, store):
    registry.add(1, "a@x.com")
    outcome = registry.resolve_unsubscribe_request(
        {"bbp_anonymous_unsubscribe": "1", "user_email": "  a@x.com ", "topic_id": "1"}
    )
    assert outcome == UNSUBSCRIBED
    assert store.get(1) == []


# ---------------------------------------------------------------------------
# reply actions
# ---------------------------------------------------------------------------

def test_handle_reply_subscribes_when_box_ticked(registry, store):
    event = ReplyEvent(reply_id=10, topic_id=1, anonymous_email="a@x.com")
    assert registry.handle_reply(event, {"bbp_anonymous_subscribe": "1"}) is True
    assert store.get(1) == ["a@x.com"]


def test_handle_reply_ignores_unticked_box(registry, store):
    event = ReplyEvent(reply_id=10, topic_id=1, anonymous_email="a@x.com")
    assert registry.handle_reply(event, {}) is False
    assert store.get(1) == []


def test_handle_reply_without_anonymous_email(registry, store):
    event = ReplyEvent(reply_id=10, topic_id=1, anonymous_email=None)
    assert registry.handle_reply(event, {"bbp_anonymous_subscribe": "1"}) is False
    assert store.get(1) == []


def test_handle_reply_published_notifies(registry, mailer):
    registry.add(1, "b@x.com")
    assert registry.handle_reply_published(ReplyEvent(reply_id=10, topic_id=1)) is True
    assert _bcc_headers(mailer) == ["Bcc: b@x.com"]


def test_handle_reply_published_unknown_reply(registry, mailer):
    registry.add(1, "b@x.com")
    assert registry.handle_reply_published(ReplyEvent(reply_id=404, topic_id=1)) is False
    mailer.send_message.assert_not_called()


def test_handle_reply_rejects_invalid_email(registry, store):
    event = ReplyEvent(reply_id=10, topic_id=1, anonymous_email="not an email")
    assert registry.handle_reply(event, {"bbp_anonymous_subscribe": "1"}) is False
    assert store.get(1) == []


def test_handle_reply_accepts_what_unsubscribe_accepts(registry, store):
    event = ReplyEvent(reply_id=10, topic_id=1, anonymous_email=" o'brien@x.com ")
    assert registry.handle_reply(event, {"bbp_anonymous_subscribe": "1"}) is True
    assert store.get(1) == ["o'brien@x.com"]

    outcome = registry.resolve_unsubscribe_request(
        {"bbp_anonymous_unsubscribe": "1", "user_email": "o'brien@x.com", "topic_id": "1"}
    )
    assert outcome == UNSUBSCRIBED
    assert store.get(1) == []


def test_individual_delivery_applies_mail_to_filter(store, fake_forum, mailer):
    hooks = HookRegistry()
    hooks.add_filter("mail_to", lambda to: to.replace("@x.com", "@relay.x.com"))
    registry = SubscriptionService(store, fake_forum, mailer, hooks, settings={'delivery': 'individual'})
    registry.add(1, "b@x.com")

    assert _notify(registry) is True
    assert mailer.send_message.call_args[0][0] == "b@relay.x.com"

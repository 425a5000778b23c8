"""
Subscription Service
====================

Per-topic registry of anonymous subscriber emails.

- add / remove / get_subscribers against the injected SubscriptionStore
- notify: one outbound message per published reply, subscribers as Bcc
- resolve_unsubscribe_request: turns ?bbp_anonymous_unsubscribe=...&user_email=...&topic_id=...
  into a remove() call
- handle_reply / handle_reply_published: the built-in reply actions

Removal outcomes are the UNSUBSCRIBED / NOT_SUBSCRIBED constants. A failed
write or delete raises SubscriptionStorageError.
"""

import logging
from urllib.parse import urlparse

from flask import has_request_context, request

from topicwatch.core import SubscriptionStorageError
from topicwatch.modules.email import format_from_header
from .content import (
    DEFAULT_MESSAGES, validate_email, strip_tags, html_to_plain_text, render_notification
)

logger = logging.getLogger(__name__)

UNSUBSCRIBED = 'unsubscribed'
NOT_SUBSCRIBED = 'not_subscribed'

# Query/form parameter names
UNSUBSCRIBE_FLAG = 'bbp_anonymous_unsubscribe'
UNSUBSCRIBE_EMAIL = 'user_email'
UNSUBSCRIBE_TOPIC = 'topic_id'
SUBSCRIBE_FIELD = 'bbp_anonymous_subscribe'

DELIVERY_BCC = 'bcc'
DELIVERY_INDIVIDUAL = 'individual'


def _db_log(level, message, details=None):
    """Log to the persistent DB logger"""
    try:
        from topicwatch.core import db_log
        db_log(level, 'subscriptions', message, details)
    except Exception:
        pass  # Fall back to stdout logger only


def build_unsubscribe_link(topic_url, email, topic_id=None):
    """
    Append the unsubscribe parameter to a topic URL.

    The email travels unescaped. With topic_id the link also carries the
    user_email/topic_id pair the unsubscribe interceptor needs.
    """
    separator = '&' if '?' in topic_url else '?'
    link = f"{topic_url}{separator}{UNSUBSCRIBE_FLAG}={email}"
    if topic_id is not None:
        link += f"&{UNSUBSCRIBE_EMAIL}={email}&{UNSUBSCRIBE_TOPIC}={topic_id}"
    return link


class SubscriptionService:

    def __init__(self, store, forum, mailer, hooks, settings=None):
        self.store = store
        self.forum = forum
        self.mailer = mailer
        self.hooks = hooks
        settings = settings or {}
        self.site_name = settings.get('site_name', 'Forum')
        self.website_url = (settings.get('website_url') or '').rstrip('/')
        self.unsubscribe_path = settings.get('unsubscribe_path', '/topicwatch/unsubscribe')
        self.delivery = settings.get('delivery', DELIVERY_BCC)
        self.messages = dict(DEFAULT_MESSAGES)
        self.messages.update(settings.get('messages') or {})
        self._active = settings.get('subscriptions_active', True)
        self._no_reply = settings.get('no_reply_address')

    # ==================== Settings ====================

    def subscriptions_active(self):
        if callable(self._active):
            return bool(self._active())
        return bool(self._active)

    @property
    def no_reply_address(self):
        """noreply@<site host> unless configured explicitly"""
        if self._no_reply:
            return self._no_reply
        host = urlparse(self.website_url).hostname or 'localhost'
        if host.startswith('www.'):
            host = host[4:]
        return f"noreply@{host}"

    def unsubscribe_page_url(self, topic_id):
        return f"{self.website_url}{self.unsubscribe_path}?{UNSUBSCRIBE_TOPIC}={topic_id}"

    # ==================== Registry ====================

    def get_subscribers(self, topic_id):
        return self.store.get(topic_id)

    def subscriber_count(self, topic_id):
        return len(self.store.get(topic_id))

    def is_subscribed(self, topic_id, email):
        return email in self.store.get(topic_id)

    def add(self, topic_id, email):
        """Append email to the topic's list unless already present. Returns True if it changed."""
        emails = self.store.get(topic_id)
        if email in emails:
            return False

        emails.append(email)
        self.store.save(topic_id, emails)
        logger.info(f"Anonymous subscription added for topic {topic_id}: {email}")
        _db_log('info', f'Subscribed to topic {topic_id}', {'email': email})
        return True

    def remove(self, topic_id, email):
        """
        Remove email from the topic's list.

        Returns UNSUBSCRIBED or NOT_SUBSCRIBED. When the list becomes empty the
        record is deleted rather than stored empty.

        Raises:
            SubscriptionStorageError: the store could not save or delete
        """
        emails = self.store.get(topic_id)
        if email not in emails:
            logger.info(f"Unsubscribe for topic {topic_id} ignored, not subscribed: {email}")
            return NOT_SUBSCRIBED

        emails.remove(email)
        if emails:
            self.store.save(topic_id, emails)
        else:
            self.store.delete(topic_id)

        logger.info(f"Unsubscribed from topic {topic_id}: {email}")
        _db_log('info', f'Unsubscribed from topic {topic_id}', {'email': email})
        return UNSUBSCRIBED

    def resolve_unsubscribe_request(self, params):
        """
        Handle an unsubscribe request from query parameters.

        Returns None when params are not a complete, valid unsubscribe
        request; otherwise the outcome of remove().
        """
        if UNSUBSCRIBE_FLAG not in params or UNSUBSCRIBE_EMAIL not in params or UNSUBSCRIBE_TOPIC not in params:
            return None

        email = (params.get(UNSUBSCRIBE_EMAIL) or '').strip()
        if not validate_email(email):
            return None

        try:
            topic_id = int(params.get(UNSUBSCRIBE_TOPIC))
        except (TypeError, ValueError):
            return None
        if topic_id <= 0:
            return None

        return self.remove(topic_id, email)

    # ==================== Notifications ====================

    def _message(self, reply_author_name, content, reply_url, unsubscribe_link, reply_id, topic_id):
        message = render_notification(
            self.messages['notification'], reply_author_name, content, reply_url, unsubscribe_link
        )
        return self.hooks.apply_filters('mail_message', message, reply_id, topic_id)

    def notify(self, topic_id, reply_id, reply_author_email, reply_author_name,
               reply_content, reply_url):
        """
        Email the topic's anonymous subscribers about a new reply.

        Returns True if a message was handed to the mailer, False if any
        precondition failed or nobody needed notifying.
        """
        if not self.subscriptions_active():
            return False

        topic = self.forum.get_topic(topic_id)
        if topic is None or not topic.is_published:
            return False

        if not self.forum.is_reply_published(reply_id):
            return False

        user_emails = self.store.get(topic_id)
        if not user_emails:
            return False

        topic_title = strip_tags(topic.title)
        content = html_to_plain_text(reply_content)

        subject = self.hooks.apply_filters(
            'mail_subject', f"[{self.site_name}] {topic_title}", reply_id, topic_id
        )
        if not subject:
            return False

        no_reply = self.no_reply_address
        from_email = self.hooks.apply_filters('mail_from', no_reply)
        headers = [format_from_header(self.site_name, from_email)]

        # Don't send notifications to the person who made the post
        recipients = [
            email for email in user_emails
            if not (reply_author_email and email == reply_author_email)
        ]
        if not recipients:
            return False

        if self.delivery == DELIVERY_INDIVIDUAL:
            return self._notify_individually(
                topic, recipients, subject, headers, reply_id, reply_author_name, content, reply_url
            )

        message = self._message(
            reply_author_name, content, reply_url, self.unsubscribe_page_url(topic_id), reply_id, topic_id
        )
        if not message:
            return False

        for email in recipients:
            headers.append(f"Bcc: {email}")

        headers = self.hooks.apply_filters('mail_headers', headers)
        to_email = self.hooks.apply_filters('mail_to', no_reply)

        self.mailer.send_message(to_email, subject, message, headers)
        logger.info(f"Reply {reply_id} notification sent for topic {topic_id} to {len(recipients)} subscribers")
        _db_log('info', f'Notified {len(recipients)} subscribers of reply {reply_id}', {'topic_id': topic_id})
        return True

    def _notify_individually(self, topic, recipients, subject, headers, reply_id,
                             reply_author_name, content, reply_url):
        """One message per subscriber, each carrying its own unsubscribe link"""
        sent = 0
        for email in recipients:
            link = build_unsubscribe_link(topic.permalink, email, topic.id)
            message = self._message(reply_author_name, content, reply_url, link, reply_id, topic.id)
            if not message:
                break
            message_headers = self.hooks.apply_filters('mail_headers', list(headers))
            to_email = self.hooks.apply_filters('mail_to', email)
            self.mailer.send_message(to_email, subject, message, message_headers)
            sent += 1

        logger.info(f"Reply {reply_id} notification sent individually to {sent} subscribers of topic {topic.id}")
        return sent > 0

    # ==================== Reply actions ====================

    def handle_reply(self, event, form=None):
        """reply_created / reply_edited: subscribe the anonymous author if the box was ticked"""
        if form is None:
            form = request.form if has_request_context() else {}

        if SUBSCRIBE_FIELD not in form or not event.anonymous_email:
            return False

        email = event.anonymous_email.strip()
        if not validate_email(email):
            logger.warning(f"Not subscribing invalid email to topic {event.topic_id}: {email!r}")
            return False

        try:
            return self.add(event.topic_id, email)
        except SubscriptionStorageError as e:
            logger.error(f"Failed to store subscription for topic {event.topic_id}: {e}")
            _db_log('error', f'Failed to store subscription for topic {event.topic_id}', {'error': str(e)})
            return False

    def handle_reply_published(self, event):
        """reply_published: notify the topic's subscribers"""
        reply = self.forum.get_reply(event.reply_id)
        if reply is None:
            return False
        return self.notify(
            event.topic_id, reply.id, reply.author_email, reply.author_name,
            reply.content, reply.url
        )

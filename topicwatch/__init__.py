"""
Topicwatch - Anonymous topic subscriptions for Flask forums
===========================================================

Lets visitors who are not signed in subscribe to a discussion topic by
email, notifies them when a reply is published, and unsubscribes them
through the link in that email.

Usage:
    from topicwatch import Topicwatch
    from topicwatch.modules.subscriptions import ReplyEvent

    topicwatch = Topicwatch(app)

    # after the forum saves a reply
    topicwatch.hooks.do_action('reply_created', ReplyEvent(reply_id, topic_id, anonymous_email=email))
    # once it is published
    topicwatch.hooks.do_action('reply_published', ReplyEvent(reply_id, topic_id))

In templates:
    {{ topicwatch_checkbox() }}
"""

import logging
import os

from .core import Config, Database

__version__ = '0.1.0'

logger = logging.getLogger(__name__)

# app.config keys Topicwatch reads, defaulted from Config
CONFIG_KEYS = (
    'DB_DIR',
    'TOPICWATCH_DB',
    'TOPICWATCH_SUBSCRIPTIONS_ACTIVE',
    'TOPICWATCH_DELIVERY',
    'TOPICWATCH_SITE_NAME',
    'TOPICWATCH_NO_REPLY_ADDRESS',
    'EMAIL_PROVIDER',
    'EMAIL_ADDRESS',
    'EMAIL_WEBSITE_URL',
    'EMAIL_HOST',
    'EMAIL_PORT',
    'EMAIL_PASSWORD',
    'AWS_REGION',
    'RESEND_API_KEY',
)


class Topicwatch:
    """
    Flask extension wiring storage, forum adapter, mailer and hooks into a
    SubscriptionService.

    Args:
        app: Flask app (or call init_app later)
        config: dict of app.config overrides, applied on top of app.config
        store: SubscriptionStore (default: SqliteSubscriptionStore on TOPICWATCH_DB)
        forum: ForumAdapter (default: SqliteForum on TOPICWATCH_DB)
        mailer: object with send_message(to, subject, body, headers) (default: email_service)
    """

    def __init__(self, app=None, config=None, store=None, forum=None, mailer=None):
        self._config = dict(config or {})
        self._store = store
        self._forum = forum
        self._mailer = mailer
        self.store = None
        self.forum = None
        self.mailer = None
        self.hooks = None
        self.service = None

        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        from .modules.email import email_service
        from .modules.forum import SqliteForum
        from .modules.subscriptions import (
            subscriptions_bp, HookRegistry, SubscriptionService, SqliteSubscriptionStore
        )
        from .modules.subscriptions.routes import topicwatch_checkbox

        self._resolve_config(app)

        db_path = app.config['TOPICWATCH_DB']
        Database.ensure_dir(db_path)

        self.store = self._store or SqliteSubscriptionStore(db_path)
        if isinstance(self.store, SqliteSubscriptionStore):
            self.store.init_db()

        self.forum = self._forum or SqliteForum(db_path)
        if isinstance(self.forum, SqliteForum):
            self.forum.init_forum_db()

        if self._mailer is not None:
            self.mailer = self._mailer
        else:
            email_service.init_app(app)
            self.mailer = email_service

        self.hooks = HookRegistry()
        self.service = SubscriptionService(
            self.store, self.forum, self.mailer, self.hooks,
            settings={
                'site_name': app.config['TOPICWATCH_SITE_NAME'],
                'website_url': app.config['EMAIL_WEBSITE_URL'],
                'unsubscribe_path': f"{subscriptions_bp.url_prefix}/unsubscribe",
                'delivery': app.config['TOPICWATCH_DELIVERY'],
                'no_reply_address': app.config['TOPICWATCH_NO_REPLY_ADDRESS'],
                'messages': app.config.get('TOPICWATCH_MESSAGES'),
                'subscriptions_active': lambda: app.config.get('TOPICWATCH_SUBSCRIPTIONS_ACTIVE', True),
            },
        )

        self.hooks.add_action('reply_created', self.service.handle_reply)
        self.hooks.add_action('reply_edited', self.service.handle_reply)
        self.hooks.add_action('reply_published', self.service.handle_reply_published)

        app.extensions['topicwatch'] = self
        app.register_blueprint(subscriptions_bp)
        app.add_template_global(topicwatch_checkbox, 'topicwatch_checkbox')

        logger.info(f"Topicwatch initialised (db: {db_path}, delivery: {app.config['TOPICWATCH_DELIVERY']})")

    def _resolve_config(self, app):
        """app.config wins over Config defaults; the explicit dict wins over both"""
        app.config.update(self._config)
        if 'TOPICWATCH_DB' not in app.config and app.config.get('DB_DIR'):
            app.config['TOPICWATCH_DB'] = os.path.join(app.config['DB_DIR'], 'topicwatch.db')
        for key in CONFIG_KEYS:
            app.config.setdefault(key, getattr(Config, key))

    # Shortcuts for host forums
    def reply_created(self, event, form=None):
        self.hooks.do_action('reply_created', event, form)

    def reply_edited(self, event, form=None):
        self.hooks.do_action('reply_edited', event, form)

    def reply_published(self, event):
        self.hooks.do_action('reply_published', event)


__all__ = ['Topicwatch', 'Config', '__version__']

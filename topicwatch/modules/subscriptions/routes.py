"""
Subscriptions Routes
====================

Provides:
- before_app_request -- unsubscribe interceptor; any URL carrying
  bbp_anonymous_unsubscribe + user_email + topic_id ends in a plain-text reply
- GET /unsubscribe -- form asking for the email to unsubscribe from a topic
- GET /topics/<id>/subscribers/count -- subscriber count

Template global:
- topicwatch_checkbox(editing_other=False) -- "Notify me" checkbox, anonymous visitors only
"""

import logging
from flask import Response, abort, current_app, jsonify, render_template, request, session
from markupsafe import Markup

from topicwatch.core import SubscriptionStorageError
from . import subscriptions_bp
from .service import (
    UNSUBSCRIBED, SUBSCRIBE_FIELD, UNSUBSCRIBE_FLAG, UNSUBSCRIBE_EMAIL, UNSUBSCRIBE_TOPIC
)

logger = logging.getLogger(__name__)


def _db_log(level, message, details=None):
    """Log to the persistent DB logger"""
    try:
        from topicwatch.core import db_log
        db_log(level, 'subscriptions', message, details)
    except Exception:
        pass  # Fall back to stdout logger only


def _get_service():
    extension = current_app.extensions.get('topicwatch')
    return extension.service if extension else None


def _plain_text(message, status):
    return Response(message, status=status, mimetype='text/plain')


@subscriptions_bp.before_app_request
def intercept_unsubscribe():
    """Resolve unsubscribe links on whatever page they point to"""
    service = _get_service()
    if service is None or UNSUBSCRIBE_FLAG not in request.args:
        return None

    try:
        outcome = service.resolve_unsubscribe_request(request.args)
    except SubscriptionStorageError as e:
        logger.error(f"Storage error while unsubscribing: {e}")
        _db_log('error', 'Storage error while unsubscribing', {'error': str(e), 'topic_id': e.topic_id})
        return _plain_text(service.messages['storage_error'], 500)

    if outcome is None:
        return None
    if outcome == UNSUBSCRIBED:
        return _plain_text(service.messages['unsubscribed'], 200)
    return _plain_text(service.messages['not_subscribed'], 404)


@subscriptions_bp.route('/unsubscribe', methods=['GET'])
def unsubscribe_page():
    """Show the unsubscribe form for a topic"""
    topic_id = request.args.get(UNSUBSCRIBE_TOPIC, type=int)
    if not topic_id or topic_id <= 0:
        abort(400)

    service = _get_service()
    topic = service.forum.get_topic(topic_id) if service else None
    return render_template(
        'subscriptions/unsubscribe.html',
        topic_id=topic_id,
        topic_title=topic.title if topic else '',
        flag_field=UNSUBSCRIBE_FLAG,
        email_field=UNSUBSCRIBE_EMAIL,
        topic_field=UNSUBSCRIBE_TOPIC,
    )


@subscriptions_bp.route('/topics/<int:topic_id>/subscribers/count', methods=['GET'])
def subscriber_count(topic_id):
    service = _get_service()
    try:
        count = service.subscriber_count(topic_id)
    except SubscriptionStorageError as e:
        logger.error(f"Database error in subscriber_count: {e}")
        return jsonify({'error': 'Database error occurred'}), 500
    return jsonify({'topic_id': topic_id, 'count': count}), 200


def topicwatch_checkbox(editing_other=False):
    """Render the subscribe checkbox for visitors who are not signed in"""
    if 'user_id' in session:
        return Markup('')

    service = _get_service()
    messages = service.messages if service else {}
    label = messages.get('checkbox_label_other') if editing_other else messages.get('checkbox_label')
    return Markup(render_template(
        'subscriptions/checkbox.html',
        field_name=SUBSCRIBE_FIELD,
        label=label,
    ))

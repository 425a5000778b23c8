"""
My Forum
========

Small forum using Topicwatch for anonymous topic subscriptions.
"""

import os
from flask import Flask, render_template, request, redirect, url_for, abort

from topicwatch import Topicwatch
from topicwatch.modules.subscriptions import ReplyEvent

# ===== App Setup =====

app = Flask(__name__)

# Load config
from config import Config
app.config['SECRET_KEY'] = Config.SECRET_KEY
app.config['DB_DIR'] = Config.DB_DIR
app.config['TOPICWATCH_DB'] = Config.TOPICWATCH_DB
app.config['TOPICWATCH_SITE_NAME'] = Config.TOPICWATCH_SITE_NAME
app.config['TOPICWATCH_DELIVERY'] = Config.TOPICWATCH_DELIVERY

# Email
app.config['EMAIL_PROVIDER'] = Config.EMAIL_PROVIDER
app.config['RESEND_API_KEY'] = Config.RESEND_API_KEY
app.config['EMAIL_ADDRESS'] = Config.EMAIL_ADDRESS
app.config['EMAIL_WEBSITE_URL'] = Config.EMAIL_WEBSITE_URL

# Session security
app.config['SESSION_COOKIE_SECURE'] = not app.debug
app.config['SESSION_COOKIE_HTTPONLY'] = True
app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'

# Ensure database directory exists
os.makedirs(Config.DB_DIR, exist_ok=True)

# ===== Topicwatch =====

topicwatch = Topicwatch(app)
forum = topicwatch.forum


# ===== Routes =====

@app.route('/')
def home():
    """Topic list"""
    return render_template('index.html', topics=forum.list_topics())


@app.route('/topics', methods=['POST'])
def create_topic():
    title = request.form.get('title', '').strip()
    if not title:
        return redirect(url_for('home'))

    topic_id = forum.create_topic(title, '')
    forum.set_topic_url(topic_id, url_for('show_topic', topic_id=topic_id, _external=True))
    return redirect(url_for('show_topic', topic_id=topic_id))


@app.route('/topics/<int:topic_id>')
def show_topic(topic_id):
    topic = forum.get_topic(topic_id)
    if not topic or not topic.is_published:
        abort(404)
    return render_template(
        'topic.html',
        topic=topic,
        replies=forum.list_replies(topic_id),
        subscriber_count=topicwatch.service.subscriber_count(topic_id),
    )


@app.route('/topics/<int:topic_id>/reply', methods=['POST'])
def post_reply(topic_id):
    if not forum.get_topic(topic_id):
        abort(404)

    name = request.form.get('name', '').strip() or 'Anonymous'
    email = request.form.get('email', '').strip()
    content = request.form.get('content', '').strip()
    if not content:
        return redirect(url_for('show_topic', topic_id=topic_id))

    reply_id = forum.create_reply(topic_id, name, email, content)
    event = ReplyEvent(reply_id=reply_id, topic_id=topic_id, anonymous_email=email)

    # Replies go live immediately here; a moderated forum would call
    # reply_published from its approval view instead.
    topicwatch.reply_created(event)
    topicwatch.reply_published(event)

    return redirect(url_for('show_topic', topic_id=topic_id) + f'#post-{reply_id}')


# ===== Run =====

if __name__ == '__main__':
    print("[STARTER] Starting on port 5000...")
    app.run(debug=True, port=5000, host='0.0.0.0')

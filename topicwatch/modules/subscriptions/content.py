"""
Subscription Content
====================

User-facing strings, the notification body template and the small text
helpers used to build it.
"""

import re

# Same pattern the transport uses to accept Bcc recipients
from topicwatch.modules.email import EMAIL_REGEX

DEFAULT_MESSAGES = {
    'unsubscribed': 'Successfully unsubscribed!',
    'not_subscribed': 'You do not seem subscribed to this topic, not with this email at least!',
    'storage_error': 'There was an error while unsubscribing!',
    'checkbox_label': 'Notify me of follow-up replies via email',
    'checkbox_label_other': 'Notify author of follow-up replies via email.',
    'notification': (
        "{author} wrote:\n"
        "\n"
        "{content}\n"
        "\n"
        "Post Link: {reply_url}\n"
        "\n"
        "-----------\n"
        "\n"
        "You are receiving this email because you subscribed to a forum topic.\n"
        "\n"
        "To unsubscribe from notifications for this topic, visit: {unsubscribe_link}"
    ),
}


def validate_email(email):
    """Validate email format"""
    if not email or len(email) > 255:
        return False
    return EMAIL_REGEX.match(email.strip()) is not None


def strip_tags(text):
    if not text:
        return ''
    return re.sub(r'<[^>]+>', '', text)


def html_to_plain_text(html):
    """Strip HTML tags, convert <p>/<br> to newlines."""
    if not html:
        return ''
    text = html
    text = re.sub(r'<br\s*/?>', '\n', text)
    text = re.sub(r'</p>\s*<p[^>]*>', '\n\n', text)
    text = strip_tags(text)
    text = re.sub(r'&nbsp;', ' ', text)
    text = re.sub(r'&lt;', '<', text)
    text = re.sub(r'&gt;', '>', text)
    text = re.sub(r'&#0?39;', "'", text)
    text = re.sub(r'&quot;', '"', text)
    text = re.sub(r'&amp;', '&', text)
    text = re.sub(r'\n{3,}', '\n\n', text)
    return text.strip()


def render_notification(template, author, content, reply_url, unsubscribe_link):
    return template.format(
        author=author,
        content=content,
        reply_url=reply_url,
        unsubscribe_link=unsubscribe_link,
    )

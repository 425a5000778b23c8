import os
from dotenv import load_dotenv

load_dotenv(override=True)


def _env_flag(name, default):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """
    Base configuration for Topicwatch.
    Host apps override any of these through app.config or the dict
    passed to Topicwatch(app, config).
    """
    # Get DB_DIR from environment, or use a default if not set
    DB_DIR = os.getenv('DB_DIR', os.path.join(os.getcwd(), 'databases'))

    # Subscription metadata, reference forum tables and app_logs share one file
    TOPICWATCH_DB = os.getenv('TOPICWATCH_DB', os.path.join(DB_DIR, 'topicwatch.db'))

    # Subscription behaviour
    TOPICWATCH_SUBSCRIPTIONS_ACTIVE = _env_flag('TOPICWATCH_SUBSCRIPTIONS_ACTIVE', True)
    TOPICWATCH_DELIVERY = os.getenv('TOPICWATCH_DELIVERY', 'bcc')
    TOPICWATCH_SITE_NAME = os.getenv('TOPICWATCH_SITE_NAME', 'Forum')
    TOPICWATCH_NO_REPLY_ADDRESS = os.getenv('TOPICWATCH_NO_REPLY_ADDRESS')

    # Email settings
    EMAIL_PROVIDER = os.getenv('EMAIL_PROVIDER', 'resend')
    EMAIL_ADDRESS = os.getenv('EMAIL_ADDRESS', 'onboarding@resend.dev')
    EMAIL_WEBSITE_URL = os.getenv('EMAIL_WEBSITE_URL', os.getenv('BASE_URL', 'http://localhost:5000'))
    EMAIL_HOST = os.getenv('EMAIL_HOST', 'smtp.gmail.com')
    EMAIL_PORT = int(os.getenv('EMAIL_PORT', '587'))
    EMAIL_PASSWORD = os.getenv('EMAIL_PASSWORD')
    AWS_REGION = os.getenv('AWS_REGION', 'eu-west-1')

    # Resend API settings
    RESEND_API_KEY = os.getenv('RESEND_API_KEY') or os.getenv('RESEND')

    # Meta key the subscriber list is stored under
    SUBSCRIPTIONS_META_KEY = '_bbp_anonymous_subscribed_emails'

    # Table names
    META_TABLE = 'topic_meta'
    TOPICS_TABLE = 'topics'
    REPLIES_TABLE = 'replies'
    LOGS_TABLE = 'app_logs'
    EMAIL_LOGS_TABLE = 'email_logs'

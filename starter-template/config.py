import os
from dotenv import load_dotenv

load_dotenv()

IS_PRODUCTION = (
    os.getenv('ENVIRONMENT') == 'production' or
    os.getenv('FLASK_ENV') == 'production' or
    os.getenv('PRODUCTION') == '1'
)

DB_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'databases')


class Config:
    SECRET_KEY = os.getenv('FLASK_SECRET_KEY', 'dev-secret-key-change-in-production')

    # Database paths
    DB_DIR = DB_DIR
    TOPICWATCH_DB = os.path.join(DB_DIR, 'forum.db')

    # Subscriptions
    TOPICWATCH_SITE_NAME = 'My Forum'
    TOPICWATCH_DELIVERY = os.getenv('TOPICWATCH_DELIVERY', 'bcc')
    # TOPICWATCH_NO_REPLY_ADDRESS = 'noreply@forum.example.com'

    # Email
    EMAIL_PROVIDER = os.getenv('EMAIL_PROVIDER', 'resend')
    RESEND_API_KEY = os.getenv('RESEND_API_KEY', '')
    EMAIL_ADDRESS = os.getenv('EMAIL_ADDRESS', '')
    EMAIL_WEBSITE_URL = os.getenv('BASE_URL', 'http://localhost:5000')

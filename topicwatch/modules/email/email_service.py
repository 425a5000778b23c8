"""
Email Service Module
====================

Outbound message transport supporting Resend, Amazon SES, and SMTP (e.g. Gmail).
Provider is selected via EMAIL_PROVIDER config ('resend', 'ses', or 'smtp').

A message is sent once, to a single nominal To address, with any number of
header lines ("From: ...", "Bcc: ...", "Reply-To: ...") attached. Blind-copy
recipients ride on that one send.
"""

import os
import re
import logging
import sqlite3
import smtplib
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import List, Optional, Dict, Tuple

# RFC 5322 atom characters in the local part; rejects consecutive, leading and trailing dots
EMAIL_REGEX = re.compile(r"^[a-zA-Z0-9!#$%&'*+/=?^_`{|}~-]+(\.[a-zA-Z0-9!#$%&'*+/=?^_`{|}~-]+)*@[a-zA-Z0-9-]+(\.[a-zA-Z0-9-]+)*\.[a-zA-Z]{2,}$")

logger = logging.getLogger(__name__)

# resend is optional - only needed for the 'resend' provider
try:
    import resend
    RESEND_AVAILABLE = True
except ImportError:
    RESEND_AVAILABLE = False
    logger.info("resend package not installed.")

# boto3 is optional - only needed for the 'ses' provider
try:
    import boto3
    from botocore.exceptions import ClientError
    BOTO3_AVAILABLE = True
except ImportError:
    BOTO3_AVAILABLE = False
    logger.info("boto3 package not installed.")


def parse_headers(headers: List[str]) -> Tuple[Optional[str], List[str], Dict[str, str]]:
    """Split header lines into (from, bcc list, other headers)"""
    from_header = None
    bcc = []
    extra = {}
    for line in headers or []:
        if ':' not in line:
            logger.warning(f"Ignoring malformed header line: {line!r}")
            continue
        name, value = line.split(':', 1)
        name = name.strip()
        value = value.strip()
        lowered = name.lower()
        if lowered == 'from':
            from_header = value
        elif lowered == 'bcc':
            bcc.extend(addr.strip() for addr in value.split(',') if addr.strip())
        else:
            extra[name] = value
    return from_header, bcc, extra


class EmailService:
    """
    Configurable message transport.

    Configuration (set in Flask app.config):
        EMAIL_PROVIDER: 'resend' (default), 'ses', or 'smtp'
        RESEND_API_KEY: Your Resend API key (required if provider is 'resend')
        AWS_REGION: AWS region for SES (default: 'eu-west-1')
        EMAIL_HOST: SMTP server host (default: 'smtp.gmail.com')
        EMAIL_PORT: SMTP server port (default: 587)
        EMAIL_PASSWORD: SMTP password/app password (required if provider is 'smtp')
        EMAIL_ADDRESS: Default sender address, used when no From header is given
        TOPICWATCH_DB: Path to SQLite database for email logs
    """

    def __init__(self, app=None):
        self.provider = 'resend'
        self.api_key = None
        self.ses_client = None
        self.sender_email = None
        self.user_db = None

        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        """Initialize email service with Flask app configuration"""
        self.provider = app.config.get('EMAIL_PROVIDER', 'resend').lower()
        logger.info(f"Initializing email service (provider: {self.provider})")

        self.sender_email = app.config.get('EMAIL_ADDRESS', 'onboarding@resend.dev')
        self.user_db = app.config.get('TOPICWATCH_DB')

        if self.provider == 'ses':
            self._init_ses(app)
        elif self.provider == 'smtp':
            self._init_smtp(app)
        else:
            self._init_resend(app)

    def _init_resend(self, app):
        self.api_key = app.config.get('RESEND_API_KEY')

        if not self.api_key:
            logger.warning("RESEND_API_KEY not configured - email sending disabled")
            return

        if not RESEND_AVAILABLE:
            logger.error("resend package not installed")
            return

        resend.api_key = self.api_key
        logger.info("Resend API client initialized successfully")

    def _init_ses(self, app):
        if not BOTO3_AVAILABLE:
            logger.error("boto3 package not installed - SES email sending disabled")
            return

        aws_region = app.config.get('AWS_REGION', 'eu-west-1')
        try:
            self.ses_client = boto3.client('ses', region_name=aws_region)
            logger.info(f"SES client initialized successfully (region: {aws_region})")
        except Exception as e:
            logger.error(f"Failed to initialize SES client: {e}")

    def _init_smtp(self, app):
        self.smtp_host = app.config.get('EMAIL_HOST', 'smtp.gmail.com')
        self.smtp_port = int(app.config.get('EMAIL_PORT', 587))
        self.smtp_password = app.config.get('EMAIL_PASSWORD')

        if not self.smtp_password:
            logger.warning("EMAIL_PASSWORD not configured - SMTP email sending disabled")
            return

        logger.info(f"SMTP configured: {self.smtp_host}:{self.smtp_port}")

    def _get_db_path(self):
        if self.user_db:
            return self.user_db
        return os.getenv('TOPICWATCH_DB', 'topicwatch.db')

    def _log_email(self, recipient: str, subject: str, bcc_count: int,
                   status: str, error_message: str = None):
        """Log a send attempt to the email_logs table"""
        try:
            with sqlite3.connect(self._get_db_path()) as conn:
                cursor = conn.cursor()
                cursor.execute("""
                    CREATE TABLE IF NOT EXISTS email_logs (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        recipient TEXT NOT NULL,
                        subject TEXT NOT NULL,
                        bcc_count INTEGER DEFAULT 0,
                        status TEXT NOT NULL,
                        error_message TEXT,
                        sent_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    )
                """)
                cursor.execute("""
                    INSERT INTO email_logs (recipient, subject, bcc_count, status, error_message)
                    VALUES (?, ?, ?, ?, ?)
                """, (recipient, subject, bcc_count, status, error_message))
                conn.commit()
        except Exception as e:
            logger.error(f"Failed to log email to database: {e}")

    def send_message(self, to: str, subject: str, body: str,
                     headers: Optional[List[str]] = None) -> bool:
        """
        Send one message via the configured provider.

        Args:
            to: Nominal recipient address
            subject: Email subject
            body: Plain text body
            headers: Header lines; "Bcc:" lines become blind-copy recipients
                     and "From:" overrides the configured sender

        Returns:
            bool: True if the provider accepted the message
        """
        from_header, bcc, extra = parse_headers(headers)
        sender = from_header or self.sender_email

        if not sender:
            logger.error("Sender email not configured")
            return False

        valid_bcc = []
        for addr in bcc:
            if EMAIL_REGEX.match(addr):
                valid_bcc.append(addr)
            else:
                logger.warning(f"Skipping invalid email address: {addr}")

        if not to and not valid_bcc:
            logger.error("No recipients provided")
            return False

        logger.info(f"Sending '{subject}' to {to} with {len(valid_bcc)} blind-copy recipients")

        try:
            if self.provider == 'ses':
                success = self._send_via_ses(sender, to, subject, body, valid_bcc, extra)
            elif self.provider == 'smtp':
                success = self._send_via_smtp(sender, to, subject, body, valid_bcc, extra)
            else:
                success = self._send_via_resend(sender, to, subject, body, valid_bcc, extra)
        except Exception as send_error:
            logger.error(f"Error sending to {to}: {send_error}")
            self._log_email(to, subject, len(valid_bcc), 'failed', str(send_error))
            return False

        if success:
            self._log_email(to, subject, len(valid_bcc), 'sent')
        else:
            self._log_email(to, subject, len(valid_bcc), 'failed', 'Provider returned failure')
        return success

    def _send_via_resend(self, sender, to, subject, body, bcc, extra) -> bool:
        if not RESEND_AVAILABLE:
            logger.error("resend package not installed")
            return False

        if not self.api_key:
            logger.error("Resend API key not configured")
            return False

        params = {
            "from": sender,
            "to": [to],
            "subject": subject,
            "text": body,
        }
        if bcc:
            params["bcc"] = bcc
        if extra:
            params["headers"] = extra

        r = resend.Emails.send(params)
        logger.info(f"Resend response: {r}")

        if r and r.get('id'):
            return True
        logger.error(f"Resend error for {to}: {r}")
        return False

    def _send_via_ses(self, sender, to, subject, body, bcc, extra) -> bool:
        if not BOTO3_AVAILABLE:
            logger.error("boto3 package not installed")
            return False

        if not self.ses_client:
            logger.error("SES client not initialized")
            return False

        if extra:
            logger.debug(f"SES send_email ignores extra headers: {sorted(extra)}")

        destination = {'ToAddresses': [to]}
        if bcc:
            destination['BccAddresses'] = bcc

        try:
            response = self.ses_client.send_email(
                Source=sender,
                Destination=destination,
                Message={
                    'Subject': {'Charset': 'UTF-8', 'Data': subject},
                    'Body': {'Text': {'Charset': 'UTF-8', 'Data': body}},
                },
            )
            logger.info(f"SES response MessageId: {response.get('MessageId', '')}")
            return True
        except ClientError as e:
            logger.error(f"SES error for {to}: {e.response['Error']['Message']}")
            return False

    def _send_via_smtp(self, sender, to, subject, body, bcc, extra) -> bool:
        if not getattr(self, 'smtp_password', None):
            logger.error("SMTP password not configured")
            return False

        msg = MIMEText(body, 'plain', 'utf-8')
        msg['From'] = sender
        msg['To'] = to
        msg['Subject'] = subject
        for name, value in extra.items():
            msg[name] = value

        # Bcc never goes into the message headers, only the envelope.
        # The session and envelope sender are always the configured account.
        recipients = [to] + bcc
        login_address = self.sender_email

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                server.starttls()
                server.login(login_address, self.smtp_password)
                server.send_message(msg, from_addr=login_address, to_addrs=recipients)

            logger.info(f"SMTP email sent to {to} (+{len(bcc)} bcc)")
            return True
        except Exception as e:
            logger.error(f"SMTP error for {to}: {e}")
            return False


def format_from_header(name: str, address: str) -> str:
    """Build a 'From: Name <address>' header line"""
    return 'From: ' + formataddr((name, address))


# Global email service instance
email_service = EmailService()

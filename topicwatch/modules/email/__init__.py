"""
Email Module
============

Outbound message transport (Resend, Amazon SES or SMTP) with blind-copy
recipients carried as header lines.
"""

from .email_service import EmailService, email_service, parse_headers, format_from_header, EMAIL_REGEX

__all__ = ['EmailService', 'email_service', 'parse_headers', 'format_from_header', 'EMAIL_REGEX']

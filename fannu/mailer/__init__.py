"""
Mailer module
"""

from .smtp_sender import SmtpSender, SendResult, get_sender

__all__ = ["SmtpSender", "SendResult", "get_sender"]

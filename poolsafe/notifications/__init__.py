"""
Module 'notifications': envoi d'emails (SendGrid) et gabarits Jinja2.
"""

from .sender import EmailSender
from . import messages

__all__ = ["EmailSender", "messages"]

"""
Module 'booking': saisie et validation des coordonnées client.
"""

from .form import BookingFormState, CustomerDetails, FIELD_ALIASES, REQUIRED_FIELDS

__all__ = ["BookingFormState", "CustomerDetails", "FIELD_ALIASES", "REQUIRED_FIELDS"]

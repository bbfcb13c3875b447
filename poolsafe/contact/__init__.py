"""
Module 'contact': formulaire de contact relayé par email.
"""

"""
Services module for CIRY Backend.

Contains business logic and external service integrations.
"""

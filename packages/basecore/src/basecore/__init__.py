"""
basecore - shared infrastructure for backoffice services.

Settings, database sessions, Redis client, logging and time helpers.
No domain code lives here.
"""

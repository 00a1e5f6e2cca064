"""
Database Models

This package defines the persisted records of the administration service using the SQLAlchemy ORM.

Key Models:
- base.py: Declarative base with the shared column type aliases
- users.py: Provider user accounts (unique username, hashed credential, role)
- clients.py: Registered OAuth2 clients (unique client_id, hashed secret, grant configuration)
- tokens.py: Issued authorization codes and refresh tokens (signature lookup, expiry)
- audit.py: Audit trail of administrative mutations
- health.py: Health monitoring gauge

Uniqueness of ``users.username`` and ``clients.client_id`` is enforced by unique indexes, never by application code.
Token expiry is enforced by the background sweep in ``oauth2_admin.app.tasks``.
"""

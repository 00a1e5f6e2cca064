"""
Administration Services

Business rules for managing OAuth2 clients and provider users. Each operation is an async function that takes an
``AsyncSession``, owns one transaction on it, and raises :mod:`oauth2_admin.errors` exceptions on failure.

Key Modules:
- clients.py: Client registration, partial update and removal
- users.py: User account management and credential derivation
- audit.py: Audit events written alongside every mutation
- dashboard.py: Summary counts for the admin console
- forms.py: Parsing of free-text form fields into normalized lists
- credentials.py: Argon2 hashing and random identifier generation
"""

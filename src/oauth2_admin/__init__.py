"""
OAuth2 Provider Administration Service

This package implements the administrative management layer of an OAuth2 identity provider. Operators use it to
register, inspect, update and remove OAuth2 clients and to manage the provider's user accounts. Issued tokens share
the same record store and are expired in the background.

Key Components:
- app: aiohttp web application, configuration, anti-forgery middleware and background tasks
- service: Client and user administration rules, credential derivation and the audit trail
- store: Record Store Adapter over the SQLAlchemy models, with token expiry
- model: Database models for users, clients, tokens and audit events
- errors: The error taxonomy shared by every layer

Architecture Overview:
1. A request passes the middleware stack and reaches a handler.
2. The handler parses the JSON body into a request model and opens a database session.
3. The service function runs one transaction through the Record Store Adapter.
4. Failures surface as AdminException subclasses and are rendered as ``{"error", "error_description"}`` bodies.
"""

"""
Administration Application Layer

The aiohttp web application that exposes the administration services over JSON.

Key Components:
- server.py: Application factory, middleware stack and startup/shutdown of shared resources
- config.py: Settings loaded from the environment and the typed AppKeys
- csrf.py: Anti-forgery check for state-changing admin requests
- metrics.py: Metrics client abstraction (Telegraf or no-op)
- handlers/: Request handlers for the admin API and the internal health endpoints
- tasks.py: Background tasks for the health gauge and token expiry
- util/: Operator command line utilities

Middleware order, outermost first: security headers, statsd, error translation, Sentry, anti-forgery.

Endpoints:
- Admin API (/api/admin/*)
- Health probes (/internal/alive, /internal/ready)
"""

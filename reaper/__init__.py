"""
Session Reaper for published-application brokers.

Watches one or more session brokers and logs off disconnected sessions
that run an allow-listed application:
- Per-broker allow-list read from apps.ini, reloaded every cycle
- Disconnected sessions fetched from each broker's REST API
- One logoff request per matching session
- Per-broker circuit breaker and failure isolation
- Credentials via Vault (OpenBao/HashiCorp) or environment variables
- JSON logging and optional Prometheus metrics
"""

__version__ = "1.0.0"

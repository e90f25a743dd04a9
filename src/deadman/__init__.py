"""Deadman - dead-man's-switch receiver for Alertmanager watchdog alerts.

Modules:
    - registry: In-memory heartbeat registry keyed by fingerprint
    - sweeper: Recurring expiry sweep + notification fan-out
    - ingest: Applies Alertmanager webhook batches to the registry
    - notifiers: Slack / PagerDuty transports
    - config: Environment + YAML settings
    - web: FastAPI receiver (/webhook, /watchdog, /ping, /status)
"""

__version__ = "0.3.0"

"""
Application health service (apphealth).

Periodically evaluates registered application health probes and publishes
unhealthy applications immediately and a digest of all applications daily.
"""

__version__ = "0.1.0"

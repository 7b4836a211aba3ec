"""
Signed Proxy
============

A client/proxy for a single signed upstream service:
- Server time synchronization (begin/observe/end handshake)
- Audit log draining with cursor acknowledgment
- One aggregated HTTP endpoint exposing both
"""

__version__ = "1.0.0"

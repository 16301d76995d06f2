"""
Relay package: change detection and broadcast delivery core.

This package contains:
- Durable subscriber store
- Last-known schedule state
- Change detection
- Broadcast dispatcher
- Failure notification throttle
- Poll service
"""

__version__ = "1.0.0"

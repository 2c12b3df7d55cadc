"""
CARF Kernel

The approval workflow core for customer activation requests:
- Approval matrix and actor lookups
- Versioned request persistence
- Approval, cancel, return and submit actions
- Notification fan-out and downstream submission
"""

__version__ = "0.1.0"

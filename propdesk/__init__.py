"""PropDesk: trouble-ticket lifecycle and SLA engine for property management."""

__version__ = "1.0.0"

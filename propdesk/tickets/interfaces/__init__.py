"""
Ticket Interfaces Layer
=======================

Interface adapters (controllers) for the ticket lifecycle.

This is the outermost layer - handles HTTP requests/responses and
delegates to the lifecycle service.
"""

from propdesk.tickets.interfaces.controllers import router as tickets_router

__all__ = ["tickets_router"]

"""
Shared Kernel Module
====================

Generic infrastructure used by the ticket module: structured logging and
the HTTP middleware / exception handlers.

DO NOT add ticket lifecycle rules to the shared kernel.
"""

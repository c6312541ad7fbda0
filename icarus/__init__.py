"""
ICARUS service

Ingests Elite Dangerous journal files and pushes normalized entries, derived
events and loading progress to connected clients over WebSocket.
"""

__version__ = "0.1.0"

"""
Package init for icarus.server
"""

from icarus.server.server import IcarusServer, ClientConnection
from icarus.server.broadcast import Broadcaster

__all__ = ['IcarusServer', 'ClientConnection', 'Broadcaster']

"""
Thin query helpers over the record sources and the host.
"""

import ipaddress
import socket
from typing import Any, Dict, List, Optional

import psutil

from .systemInfo import known


def hostUrls(port: int) -> List[str]:
    """Reachable base URLs on every non-loopback IPv4 interface"""
    urls = []
    for addrs in psutil.net_if_addrs().values():
        for addr in addrs:
            if addr.family != socket.AF_INET:
                continue
            if ipaddress.ip_address(addr.address).is_loopback:
                continue
            urls.append(f"http://{addr.address}:{port}")
    return urls


def hostInfo(port: int) -> Dict[str, Any]:
    return {'urls': hostUrls(port)}


def commanderInfo(loadGame: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    loadGame = loadGame or {}
    return {
        'commander': known(loadGame.get('Commander')),
        'credits': known(loadGame.get('Credits'))
    }

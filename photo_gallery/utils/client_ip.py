"""
Client address extraction behind proxies.
"""
from typing import Optional

from fastapi import Request


def get_client_ip(request: Request) -> Optional[str]:
    """
    Best-known client address of a request.

    Checks X-Forwarded-For (first entry), then X-Real-IP, then the socket peer.
    Forwarding headers are only trustworthy when a proxy in front strips them
    from outside traffic.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    if request.client:
        return request.client.host
    return None

"""Request utility functions."""

from fastapi import Request

from app.core.config import settings


def _is_trusted_proxy(peer: str | None, trusted_proxies: set[str]) -> bool:
    if "*" in trusted_proxies:
        return True
    return peer is not None and peer in trusted_proxies


def get_client_ip(request: Request, trusted_proxies: set[str] | None = None) -> str:
    """
    Extract real client IP, respecting proxy headers from trusted proxies only.

    Checks, when the direct peer is a trusted proxy:
    1. X-Forwarded-For (may contain chain: "client, proxy1, proxy2")
    2. X-Real-IP (single IP from nginx)
    Otherwise, or when neither header is present, the direct connection IP.
    """
    if trusted_proxies is None:
        trusted_proxies = settings.trusted_proxies

    peer = request.client.host if request.client else None

    if _is_trusted_proxy(peer, trusted_proxies):
        # First IP in chain is the original client
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded and forwarded.split(",")[0].strip():
            return forwarded.split(",")[0].strip()

        # X-Real-IP is typically set by nginx
        real_ip = request.headers.get("X-Real-IP")
        if real_ip and real_ip.strip():
            return real_ip.strip()

    if peer:
        return peer

    return "unknown"

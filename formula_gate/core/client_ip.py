"""Client identity for per-client rate limiting.

Order of precedence:
  1. first hop of X-Forwarded-For (only when proxy headers are trusted)
  2. X-Real-IP (only when proxy headers are trusted)
  3. the direct connection address
  4. UNKNOWN_CLIENT, shared by every client we cannot identify

Proxy headers are client-controlled unless a trusted proxy overwrites them;
disable TRUST_PROXY_HEADERS when the app is reachable directly.
"""

from slowapi.util import get_remote_address
from starlette.requests import Request

from formula_gate.core.config import settings

UNKNOWN_CLIENT = "unknown"


def get_client_id(request: Request, trust_proxy_headers: bool | None = None) -> str:
    if trust_proxy_headers is None:
        trust_proxy_headers = settings.trust_proxy_headers

    if trust_proxy_headers:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            first_hop = forwarded.split(",")[0].strip()
            if first_hop:
                return first_hop

        real_ip = request.headers.get("x-real-ip", "").strip()
        if real_ip:
            return real_ip

    if request.client is None or not request.client.host:
        return UNKNOWN_CLIENT
    return get_remote_address(request)

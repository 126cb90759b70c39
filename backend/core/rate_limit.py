from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from core.config import get_settings
from utils.client import extract_client_ip


def client_ip_key(request: Request) -> str:
    # Edge headers are client-controlled unless a trusted proxy overwrites them.
    if get_settings().trust_proxy_headers:
        return extract_client_ip(request)
    return get_remote_address(request)


limiter = Limiter(key_func=client_ip_key, enabled=get_settings().rate_limit_enabled)

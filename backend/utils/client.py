from __future__ import annotations

from dataclasses import dataclass

from starlette.requests import Request

UNKNOWN = "unknown"
# Cloudflare sends XX when it cannot place the client.
UNKNOWN_COUNTRY_CODES = {"XX"}


@dataclass(frozen=True)
class RequestMetadata:
    ip_address: str = UNKNOWN
    user_agent: str = UNKNOWN
    referrer: str | None = None
    country: str | None = None


def _header(request: Request, name: str) -> str | None:
    value = request.headers.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def extract_client_ip(request: Request) -> str:
    connecting_ip = _header(request, "cf-connecting-ip")
    if connecting_ip:
        return connecting_ip
    forwarded_for = _header(request, "x-forwarded-for")
    if forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop
    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN


def extract_country(request: Request) -> str | None:
    country = _header(request, "cf-ipcountry")
    if not country or country.upper() in UNKNOWN_COUNTRY_CODES:
        return None
    return country.upper()


def extract_request_metadata(request: Request) -> RequestMetadata:
    return RequestMetadata(
        ip_address=extract_client_ip(request),
        user_agent=_header(request, "user-agent") or UNKNOWN,
        referrer=_header(request, "referer"),
        country=extract_country(request),
    )

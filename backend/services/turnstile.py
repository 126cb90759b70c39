from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from core.config import get_settings
from schemas.waitlist import VerificationResult

logger = logging.getLogger(__name__)


class MalformedVerificationResponse(ValueError):
    """Raised when siteverify answers 2xx with something other than a verdict."""


class TokenVerifier(Protocol):
    def verify(self, token: str) -> VerificationResult: ...


class TurnstileClient:
    """Thin adapter over Cloudflare Turnstile's siteverify endpoint.

    Transport problems (timeouts, connection errors, non-2xx replies) are
    reported as a failed verification. A 2xx reply that does not carry a
    boolean ``success`` raises ``MalformedVerificationResponse``.
    """

    def __init__(
        self,
        secret: str,
        verify_url: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.secret = secret
        self.verify_url = verify_url
        self.timeout = timeout
        self._transport = transport

    def verify(self, token: str) -> VerificationResult:
        form = {"secret": self.secret, "response": token}
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.post(self.verify_url, data=form)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Turnstile siteverify request failed: %r", exc)
            return VerificationResult(success=False, raw={"transport_error": type(exc).__name__})

        return self._parse(response)

    @staticmethod
    def _parse(response: httpx.Response) -> VerificationResult:
        try:
            data: Any = response.json()
        except ValueError as exc:
            raise MalformedVerificationResponse("siteverify returned a non-JSON body") from exc

        if not isinstance(data, dict) or not isinstance(data.get("success"), bool):
            raise MalformedVerificationResponse("siteverify response has no boolean 'success'")

        codes = data.get("error-codes")
        error_codes = [str(code) for code in codes] if isinstance(codes, list) else []
        return VerificationResult(success=data["success"], error_codes=error_codes, raw=data)


def get_token_verifier() -> TokenVerifier:
    settings = get_settings()
    return TurnstileClient(
        secret=settings.turnstile_secret,
        verify_url=settings.turnstile_verify_url,
        timeout=settings.turnstile_timeout_seconds,
    )

from typing import Any

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from core.config import get_settings
from core.cors import cors_headers
from core.rate_limit import limiter
from services.waitlist import WaitlistOutcome, WaitlistSignup, get_waitlist_signup
from utils.client import extract_request_metadata

router = APIRouter(tags=["waitlist"])
settings = get_settings()

METHOD_NOT_ALLOWED = "Method not allowed"
ROUTED_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def envelope_response(status_code: int, body: dict[str, Any], with_cors: bool = True) -> JSONResponse:
    headers = cors_headers() if with_cors else None
    return JSONResponse(status_code=status_code, content=body, headers=headers)


def outcome_response(outcome: WaitlistOutcome) -> JSONResponse:
    return envelope_response(outcome.status_code, outcome.body.model_dump())


async def read_json_body(request: Request) -> Any:
    try:
        return await request.json()
    except (ValueError, RecursionError):
        return None


@router.api_route(f"{settings.waitlist_path}{{suffix:path}}", methods=ROUTED_METHODS, include_in_schema=False)
@limiter.limit(settings.rate_limit_waitlist, methods=["POST"])
def waitlist(
    request: Request,
    payload: Any = Depends(read_json_body),
    signup: WaitlistSignup = Depends(get_waitlist_signup),
) -> Response:
    if request.method == "OPTIONS":
        return Response(status_code=204, headers=cors_headers())

    if request.method != "POST":
        return envelope_response(405, {"success": False, "error": METHOD_NOT_ALLOWED})

    outcome = signup.submit(payload, extract_request_metadata(request))
    return outcome_response(outcome)

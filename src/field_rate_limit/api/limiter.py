from __future__ import annotations

from fastapi import Request

from field_rate_limit.core.config import get_settings
from field_rate_limit.services.rate_limiter import get_rate_limiter


def identify_client(request: Request) -> str:
    # X-Forwarded-For is client-controlled unless a trusted proxy sets it
    if get_settings().trust_forwarded:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "anonymous"


limiter = get_rate_limiter(identify_client)

import logging

import httpx
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response
from openai import APIStatusError, AsyncOpenAI

from core.config import (
    HTTP_TIMEOUT_SEC,
    OPENAI_API_KEY,
    REALTIME_BASE_URL,
    REALTIME_MODEL,
    REALTIME_VOICE,
)

logger = logging.getLogger("app.api.realtime")

router = APIRouter()
client = AsyncOpenAI(api_key=OPENAI_API_KEY)

# Overridable upstream transport for the SDP relay (None -> real network).
UPSTREAM_TRANSPORT: httpx.AsyncBaseTransport | None = None


@router.post("/api/session")
async def create_ephemeral_session():
    """
    Issues a short-lived realtime credential. The response carries
    client_secret.value, which the browser or CLI uses once for negotiation.
    """
    if not OPENAI_API_KEY:
        return JSONResponse(status_code=500, content={"error": "Missing OPENAI_API_KEY"})

    try:
        session = await client.beta.realtime.sessions.create(
            model=REALTIME_MODEL,
            voice=REALTIME_VOICE,
        )
    except APIStatusError as exc:
        logger.warning("ephemeral session rejected | status=%s err=%s", exc.status_code, exc)
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.message)})
    except Exception as exc:
        logger.error("[api/session] error | err=%s", exc)
        return JSONResponse(status_code=500, content={"error": "Failed to create ephemeral session"})

    return session.model_dump(mode="json", exclude_none=True)


@router.post("/api/realtime")
async def relay_sdp(request: Request, model: str = REALTIME_MODEL):
    auth = request.headers.get("authorization")
    if not auth:
        return JSONResponse(status_code=401, content={"error": "Missing Authorization (ephemeral key)"})

    sdp = (await request.body()).decode("utf-8", errors="replace")
    if not sdp.strip():
        return JSONResponse(status_code=400, content={"error": "Empty SDP body"})

    try:
        async with httpx.AsyncClient(timeout=HTTP_TIMEOUT_SEC, transport=UPSTREAM_TRANSPORT) as http_client:
            upstream = await http_client.post(
                REALTIME_BASE_URL,
                params={"model": model},
                content=sdp,
                headers={
                    "Authorization": auth,
                    "Content-Type": "application/sdp",
                    "OpenAI-Beta": "realtime=v1",
                },
            )
    except httpx.HTTPError as exc:
        logger.error("[api/realtime] relay error | err=%s", exc)
        return JSONResponse(status_code=502, content={"error": "Upstream relay failed"})

    logger.info("[api/realtime] upstream status=%s model=%s", upstream.status_code, model)
    return Response(content=upstream.text, status_code=upstream.status_code, media_type="application/sdp")

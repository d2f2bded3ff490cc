from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
import os

from app.api.realtime_routes import router as realtime_router
from core.config import REALTIME_MODEL

logging.basicConfig(
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    level=logging.INFO,
)

app = FastAPI(title="Realtime Pronunciation Coach")
logger = logging.getLogger("app.main")


def _get_allowed_origins() -> list[str]:
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if not raw:
        return [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ]
    return [item.strip() for item in raw.split(",") if item.strip()]


_allowed_origins = _get_allowed_origins()

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)

app.include_router(realtime_router)


@app.on_event("startup")
async def startup_banner():
    logger.info("[SYSTEM] CORS allow_origins=%s", _allowed_origins)
    logger.info("[SYSTEM] realtime model=%s", REALTIME_MODEL)


@app.get("/healthz")
async def healthz():
    return {"status": "ok", "service": "realtime-coach"}

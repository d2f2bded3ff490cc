import os
from pathlib import Path
from dotenv import load_dotenv

_BACKEND_ROOT = Path(__file__).resolve().parents[1]
_BACKEND_ENV_PATH = _BACKEND_ROOT / ".env"
load_dotenv(dotenv_path=_BACKEND_ENV_PATH, override=False)


def _env_flag(name: str, default: str = "false") -> bool:
    return str(os.getenv(name, default)).strip().lower() in {"1", "true", "yes", "on"}


OPENAI_API_KEY = str(os.getenv("OPENAI_API_KEY") or "").strip()
REALTIME_MODEL = str(os.getenv("REALTIME_MODEL") or "gpt-4o-realtime-preview").strip()
REALTIME_VOICE = str(os.getenv("REALTIME_VOICE") or "alloy").strip()
REALTIME_BASE_URL = str(os.getenv("REALTIME_BASE_URL") or "https://api.openai.com/v1/realtime").strip().rstrip("/")

# Credential issuer and SDP negotiation target. NEGOTIATION_URL may point at the
# provider directly or at the local relay (/api/realtime); the contract is identical.
CREDENTIAL_URL = str(os.getenv("CREDENTIAL_URL") or "http://127.0.0.1:8000/api/session").strip()
NEGOTIATION_URL = str(os.getenv("NEGOTIATION_URL") or f"{REALTIME_BASE_URL}?model={REALTIME_MODEL}").strip()

HTTP_TIMEOUT_SEC = max(1.0, float(os.getenv("HTTP_TIMEOUT_SEC", "15")))
CONNECT_TIMEOUT_SEC = max(1.0, float(os.getenv("CONNECT_TIMEOUT_SEC", "20")))
REQUEST_TIMEOUT_SEC = float(os.getenv("REQUEST_TIMEOUT_SEC", "45"))  # <= 0 disables
RESPONSE_TEMPERATURE = min(1.2, max(0.6, float(os.getenv("RESPONSE_TEMPERATURE", "0.7"))))

FEEDBACK_REQUIRE_COMPLETE = _env_flag("FEEDBACK_REQUIRE_COMPLETE", "true")
AUTO_REQUEST_ON_OPEN = _env_flag("AUTO_REQUEST_ON_OPEN", "false")
FEEDBACK_HISTORY_LIMIT = max(1, int(os.getenv("FEEDBACK_HISTORY_LIMIT", "50")))

MIC_DEVICE = str(os.getenv("MIC_DEVICE") or "default").strip()
MIC_FORMAT = str(os.getenv("MIC_FORMAT") or "pulse").strip()
PLAYBACK_PATH = str(os.getenv("PLAYBACK_PATH") or "").strip()  # empty -> discard remote audio

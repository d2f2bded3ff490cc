from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from app.errors import CredentialError, NegotiationError
from core.config import CREDENTIAL_URL, HTTP_TIMEOUT_SEC, NEGOTIATION_URL

logger = logging.getLogger("app.signaling.exchange")

SDP_CONTENT_TYPE = "application/sdp"
REALTIME_BETA_HEADER = "realtime=v1"


@dataclass(frozen=True)
class Credential:
    token: str
    endpoint: str

    def __repr__(self) -> str:
        return f"Credential(token=<redacted>, endpoint={self.endpoint!r})"


class SignalingExchange:
    """
    Stateless request/response pair: fetch an ephemeral credential, then trade
    the local session description for the remote answer. The negotiation
    endpoint can be the provider or the local relay; both accept the same
    request.
    """

    def __init__(
        self,
        credential_url: str = CREDENTIAL_URL,
        negotiation_url: str = NEGOTIATION_URL,
        timeout_sec: float = HTTP_TIMEOUT_SEC,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.credential_url = credential_url
        self.negotiation_url = negotiation_url
        self.timeout_sec = timeout_sec
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout_sec, transport=self._transport)

    async def acquire_credential(self) -> Credential:
        try:
            async with self._client() as client:
                response = await client.post(self.credential_url)
        except httpx.HTTPError as exc:
            raise CredentialError(f"credential endpoint unreachable: {exc}") from exc

        logger.info("credential endpoint status=%s", response.status_code)
        if not response.is_success:
            raise CredentialError(f"credential endpoint returned {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise CredentialError("credential endpoint returned a non-JSON body") from exc

        secret = data.get("client_secret") if isinstance(data, dict) else None
        token = secret.get("value") if isinstance(secret, dict) else None
        if not isinstance(token, str) or not token.strip():
            raise CredentialError("credential response has no client_secret.value")

        url = data.get("url")
        endpoint = url if isinstance(url, str) and url.startswith("http") else self.negotiation_url
        return Credential(token=token, endpoint=endpoint)

    async def negotiate(self, local_offer: str, token: str, endpoint: str) -> str:
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": SDP_CONTENT_TYPE,
            "OpenAI-Beta": REALTIME_BETA_HEADER,
        }
        try:
            async with self._client() as client:
                response = await client.post(endpoint, content=local_offer, headers=headers)
        except httpx.HTTPError as exc:
            raise NegotiationError(f"negotiation endpoint unreachable: {exc}") from exc

        logger.info("negotiation status=%s endpoint=%s", response.status_code, endpoint)
        if not response.is_success:
            raise NegotiationError(f"SDP exchange failed with status {response.status_code}")

        answer = response.text
        if not answer.strip():
            raise NegotiationError("SDP exchange returned an empty answer")
        return answer

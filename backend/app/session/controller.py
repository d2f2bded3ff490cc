from __future__ import annotations

import asyncio
import json
import logging
import uuid
from typing import Callable

from app.coach.coordinator import ResponseCoordinator
from app.coach.events import session_update_event
from app.coach.models import CoachConfig, validate_phrase
from app.errors import InvalidStateError, RealtimeCoachError, TransportError
from app.prompts import build_system_instructions
from app.session.media import (
    answer_description,
    create_peer_connection,
    create_playback_sink,
    open_microphone,
)
from app.session.status import StatusPublisher
from app.signaling.exchange import Credential, SignalingExchange
from core.logger import log_event
from core.state import CONNECTABLE_STATES, RealtimeSessionState

logging.basicConfig(
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    level=logging.INFO,
)

logger = logging.getLogger("session_controller")


class _ConnectAborted(Exception):
    pass


class RealtimeSessionController:
    """
    Owns one realtime session: credential, peer connection, microphone,
    playback sinks and the event channel. State changes and feedback are
    published on `status`; any number of presentation layers can subscribe.
    """

    def __init__(
        self,
        phrase: str,
        signaling: SignalingExchange | None = None,
        config: CoachConfig | None = None,
        status: StatusPublisher | None = None,
        peer_factory: Callable = create_peer_connection,
        microphone_factory: Callable = open_microphone,
        playback_factory: Callable = create_playback_sink,
        session_id: str | None = None,
    ):
        self.session_id = session_id or str(uuid.uuid4())
        self.phrase = validate_phrase(phrase)
        self.signaling = signaling or SignalingExchange()
        self.config = config or CoachConfig()
        self.status = status or StatusPublisher()
        self.coordinator = ResponseCoordinator(
            send_fn=self._send_text,
            status=self.status,
            config=self.config,
            session_id=self.session_id,
        )
        self._peer_factory = peer_factory
        self._microphone_factory = microphone_factory
        self._playback_factory = playback_factory

        self.credential: Credential | None = None
        self.pc = None
        self.channel = None
        self.microphone = None
        self.playback_sinks: list = []
        self.last_error: Exception | None = None
        self._channel_open = asyncio.Event()
        self._generation = 0

    @property
    def state(self) -> RealtimeSessionState:
        return self.status.current.state

    def _set_state(self, state: RealtimeSessionState) -> None:
        previous = self.state
        self.status.set_state(state)
        if previous != state:
            log_event("session", "state_changed", self.session_id, previous=previous.value, current=state.value)

    def set_phrase(self, phrase: str) -> None:
        self.phrase = validate_phrase(phrase)

    # ---------- Lifecycle ----------

    async def connect(self) -> None:
        if self.state not in CONNECTABLE_STATES:
            raise InvalidStateError(f"connect() is not allowed while session is {self.state.value}")

        self._generation += 1
        generation = self._generation
        self.last_error = None
        self.status.update(error=None)

        try:
            self._set_state(RealtimeSessionState.ACQUIRING_CREDENTIAL)
            self.credential = await self.signaling.acquire_credential()
            self._ensure_current(generation)
            log_event("session", "credential_acquired", self.session_id, token=self.credential.token, endpoint=self.credential.endpoint)

            self._set_state(RealtimeSessionState.NEGOTIATING)
            self._open_peer()
            self._attach_microphone()

            offer = await self.pc.createOffer()
            self._ensure_current(generation)
            await self.pc.setLocalDescription(offer)
            self._ensure_current(generation)

            answer = await self.signaling.negotiate(
                self.pc.localDescription.sdp,
                self.credential.token,
                self.credential.endpoint,
            )
            self._ensure_current(generation)

            await self.pc.setRemoteDescription(answer_description(answer))
            await self._wait_for_channel_open()
            self._ensure_current(generation)

            self._on_open()
        except _ConnectAborted:
            logger.info("connect aborted by disconnect | session=%s", self.session_id)
            return
        except RealtimeCoachError as exc:
            if generation != self._generation:
                logger.info("connect aborted by disconnect | session=%s err=%s", self.session_id, exc)
                return
            await self._fail(exc)
            raise
        except asyncio.CancelledError:
            if generation == self._generation:
                await self._fail(TransportError("connect cancelled"))
            raise
        except Exception as exc:
            if generation != self._generation:
                logger.info("connect aborted by disconnect | session=%s err=%s", self.session_id, exc)
                return
            error = TransportError(f"transport setup failed: {exc}")
            await self._fail(error)
            raise error from exc

    async def disconnect(self) -> None:
        if self.state == RealtimeSessionState.CLOSED:
            return

        self._generation += 1
        # wakes a connect() parked on the channel wait so it can abort
        self._channel_open.set()
        self._set_state(RealtimeSessionState.CLOSING)
        await self._release_resources()
        self._set_state(RealtimeSessionState.CLOSED)
        log_event("session", "disconnected", self.session_id)

    cleanup = disconnect

    def request_response(self) -> None:
        if self.state != RealtimeSessionState.OPEN:
            raise TransportError(f"session is not open (state={self.state.value})")
        self.coordinator.request_response(self.phrase)

    # ---------- Transport wiring ----------

    def _ensure_current(self, generation: int) -> None:
        if generation != self._generation:
            raise _ConnectAborted()

    def _open_peer(self) -> None:
        self._channel_open = asyncio.Event()
        self.pc = self._peer_factory()
        pc = self.pc

        @pc.on("track")
        def on_track(track):
            self._attach_remote_track(track)

        @pc.on("datachannel")
        def on_datachannel(channel):
            logger.info("remote event channel announced | label=%s", getattr(channel, "label", ""))
            self._wire_channel(channel)

        @pc.on("connectionstatechange")
        def on_connectionstatechange():
            logger.info("[RTC] connectionState = %s", pc.connectionState)
            if pc.connectionState == "failed":
                self._on_transport_lost("peer connection failed")

        self._wire_channel(pc.createDataChannel(self.config.event_channel_label))

    def _wire_channel(self, channel) -> None:
        self.channel = channel

        @channel.on("open")
        def on_open():
            logger.info("[DC] OPEN | label=%s", getattr(channel, "label", ""))
            self._channel_open.set()

        @channel.on("message")
        def on_message(message):
            self.coordinator.handle_message(message)

        @channel.on("close")
        def on_close():
            logger.info("[DC] CLOSE | label=%s", getattr(channel, "label", ""))
            if channel is self.channel:
                self._on_transport_lost("event channel closed")

        if getattr(channel, "readyState", None) == "open":
            self._channel_open.set()

    def _attach_microphone(self) -> None:
        self.microphone = self._microphone_factory()
        track = getattr(self.microphone, "audio", None)
        if track is None:
            raise TransportError("microphone has no audio track")
        self.pc.addTrack(track)

    def _attach_remote_track(self, track) -> None:
        if getattr(track, "kind", None) != "audio":
            return
        sink = self._playback_factory()
        sink.addTrack(track)
        self.playback_sinks.append(sink)
        asyncio.ensure_future(sink.start())
        logger.info("remote audio attached to playback | session=%s", self.session_id)

    async def _wait_for_channel_open(self) -> None:
        try:
            await asyncio.wait_for(self._channel_open.wait(), timeout=self.config.connect_timeout_sec)
        except asyncio.TimeoutError as exc:
            raise TransportError(
                f"event channel did not open within {self.config.connect_timeout_sec:.1f}s"
            ) from exc

    def _on_open(self) -> None:
        self._set_state(RealtimeSessionState.OPEN)
        self._send_text(json.dumps(session_update_event(build_system_instructions(self.phrase))))
        log_event("session", "initialized", self.session_id, instructions=self.phrase)
        if self.config.auto_request_on_open:
            self.coordinator.request_response(self.phrase)

    def _send_text(self, text: str) -> None:
        channel = self.channel
        if channel is None or getattr(channel, "readyState", None) != "open":
            raise TransportError("event channel is not open")
        channel.send(text)

    def _on_transport_lost(self, reason: str) -> None:
        if self.state != RealtimeSessionState.OPEN:
            return
        asyncio.ensure_future(self._fail(TransportError(reason)))

    # ---------- Teardown ----------

    async def _fail(self, error: Exception) -> None:
        logger.error("session failed | session=%s err=%s", self.session_id, error)
        self.last_error = error
        self._set_state(RealtimeSessionState.FAILED)
        await self._release_resources()
        self.status.report_error(error)

    async def _release_resources(self) -> None:
        for sink in self.playback_sinks:
            try:
                await sink.stop()
            except Exception as exc:
                logger.warning("playback sink stop failed | err=%s", exc)
        self.playback_sinks = []

        if self.microphone is not None:
            try:
                track = getattr(self.microphone, "audio", None)
                if track is not None:
                    track.stop()
            except Exception as exc:
                logger.warning("microphone stop failed | err=%s", exc)
        self.microphone = None

        if self.pc is not None:
            try:
                for sender in self.pc.getSenders():
                    if sender.track is not None:
                        sender.track.stop()
            except Exception as exc:
                logger.warning("sender track stop failed | err=%s", exc)

        channel, self.channel = self.channel, None
        if channel is not None:
            try:
                channel.close()
            except Exception as exc:
                logger.warning("event channel close failed | err=%s", exc)

        pc, self.pc = self.pc, None
        if pc is not None:
            try:
                await pc.close()
            except Exception as exc:
                logger.warning("peer connection close failed | err=%s", exc)

        self.credential = None
        self.coordinator.reset()

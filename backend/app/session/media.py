from __future__ import annotations

from aiortc import RTCPeerConnection, RTCSessionDescription
from aiortc.contrib.media import MediaBlackhole, MediaPlayer, MediaRecorder

from core.config import MIC_DEVICE, MIC_FORMAT, PLAYBACK_PATH


def create_peer_connection() -> RTCPeerConnection:
    return RTCPeerConnection()


def open_microphone(device: str = MIC_DEVICE, fmt: str = MIC_FORMAT) -> MediaPlayer:
    """Opens the capture device; MediaPlayer.audio is the local track sent to the model."""
    return MediaPlayer(device, format=fmt or None)


def create_playback_sink(path: str = PLAYBACK_PATH):
    if path:
        return MediaRecorder(path)
    return MediaBlackhole()


def answer_description(sdp: str) -> RTCSessionDescription:
    return RTCSessionDescription(sdp=sdp, type="answer")

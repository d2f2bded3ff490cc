"""
Terminal driver for a pronunciation practice session.

    python -m app.coach_cli --phrase "I'm here on vacation."

Press Enter to ask for a correction of your last spoken attempt,
`phrase <text>` to switch the target phrase, `history` to list this
session's feedback, `q` to quit.
"""
import argparse
import asyncio
import json

from app.errors import BusyError, RealtimeCoachError, TransportError
from app.schemas import FeedbackPayload
from app.session.controller import RealtimeSessionController
from app.session.status import SessionStatus
from app.signaling.exchange import SignalingExchange
from core.config import CREDENTIAL_URL, NEGOTIATION_URL

QUIT_COMMANDS = {"q", "quit", "exit"}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Practice a spoken phrase with realtime feedback")
    parser.add_argument("--phrase", default="I'm here on vacation.")
    parser.add_argument("--credential-url", default=CREDENTIAL_URL)
    parser.add_argument("--negotiation-url", default=NEGOTIATION_URL)
    return parser


class StatusPrinter:
    def __init__(self, emit=print):
        self._emit = emit
        self._last: SessionStatus | None = None

    def __call__(self, status: SessionStatus) -> None:
        last = self._last
        self._last = status
        if last is None or last.state != status.state:
            self._emit(f"[session] {status.state.value}")
        if status.error and (last is None or last.error != status.error):
            self._emit(f"[error] {status.error}")
        feedback = (status.score, status.transcript, status.tips)
        if status.tips and (last is None or (last.score, last.transcript, last.tips) != feedback):
            payload = FeedbackPayload(
                score=status.score,
                transcript_en=status.transcript,
                tips_es=list(status.tips),
            )
            self._emit(payload.model_dump_json(indent=2))


async def run(phrase: str, credential_url: str, negotiation_url: str) -> int:
    controller = RealtimeSessionController(
        phrase,
        signaling=SignalingExchange(credential_url=credential_url, negotiation_url=negotiation_url),
    )
    unsubscribe = controller.status.subscribe(StatusPrinter())

    try:
        await controller.connect()
    except RealtimeCoachError as exc:
        print(f"Could not connect: {exc}")
        unsubscribe()
        return 1

    loop = asyncio.get_running_loop()
    try:
        while True:
            line = await loop.run_in_executor(None, input, "[Enter]=correct, phrase <text>, history, q=quit > ")
            command = line.strip()
            if command.lower() in QUIT_COMMANDS:
                break
            if command.lower().startswith("phrase "):
                controller.set_phrase(command[len("phrase "):].strip() or controller.phrase)
                print(f"Target phrase: {controller.phrase}")
                continue
            if command.lower() == "history":
                for entry in controller.status.last_records:
                    print(json.dumps(entry.to_dict(), ensure_ascii=False))
                continue
            try:
                controller.request_response()
            except BusyError as exc:
                print(f"[busy] {exc}")
            except TransportError as exc:
                print(f"[transport] {exc}")
                break
    finally:
        unsubscribe()
        await controller.disconnect()
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return asyncio.run(run(args.phrase, args.credential_url, args.negotiation_url))


if __name__ == "__main__":
    raise SystemExit(main())

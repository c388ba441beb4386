import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

from pydantic import ValidationError

from mockly_capture.configs.app import AppSettings
from mockly_capture.controllers import DummyController
from mockly_capture.core.aggregator import SessionAggregator
from mockly_capture.errors import CaptureUnavailable
from mockly_capture.models import STAR_COMPONENTS, NarrativeAnalysis, SessionReport

logger = logging.getLogger("main")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mockly-capture",
        description="Record one simulated interview answer and print its score report as JSON.",
    )
    parser.add_argument("--question", default="behavioral-challenge", help="Identifier of the question being answered.")
    parser.add_argument("--duration", type=float, help="Session length in seconds (overrides configuration).")
    parser.add_argument("--finish-after", type=float, help="Press 'finish' after this many seconds instead of waiting for the timer.")
    parser.add_argument("--structure-score", type=float, help="Externally assessed answer structure score (0-100).")
    parser.add_argument(
        "--star",
        nargs="*",
        choices=STAR_COMPONENTS,
        default=[],
        help="STAR components present in the answer.",
    )
    parser.add_argument("--transcript", help="Operator-edited transcript to use instead of the recognized one.")
    parser.add_argument("--no-audio", action="store_true", help="Simulate a missing microphone.")
    parser.add_argument("--broadcast", action="store_true", help="Publish live snapshots over ZMQ.")
    return parser


async def run_session(settings: AppSettings, args: argparse.Namespace) -> SessionReport:
    controller = DummyController(settings, with_audio=not args.no_audio)
    aggregator = SessionAggregator(controller, settings, question_id=args.question)

    try:
        await aggregator.start()

        if args.finish_after is not None:
            try:
                await asyncio.wait_for(aggregator.wait_finalizing(), timeout=args.finish_after)
            except asyncio.TimeoutError:
                await aggregator.finish()

        pending = await aggregator.wait_finalizing()
        logger.info("Captured %s of data (%s).", pending.duration_label, pending.reason.value)

        narrative: Optional[NarrativeAnalysis] = None
        if args.structure_score is not None:
            narrative = NarrativeAnalysis(
                structure_score=args.structure_score,
                **{name: name in args.star for name in STAR_COMPONENTS},
            )
        return await aggregator.confirm(transcript=args.transcript, narrative=narrative)

    finally:
        await aggregator.shutdown()


def main(argv: Optional[list[str]] = None):
    args = build_parser().parse_args(argv)

    # 1. Load Configuration
    try:
        settings = AppSettings()
        if args.duration is not None:
            settings.session = settings.session.model_validate(
                {**settings.session.model_dump(), "duration_s": args.duration}
            )
        if args.broadcast:
            settings.zmq.enabled = True
    except ValidationError as e:
        print(f"Configuration Error: {e}")
        sys.exit(1)

    # 2. Setup Logging
    logging.basicConfig(
        level=settings.logging.level,
        format=settings.logging.format,
        stream=sys.stderr
    )
    logger.info(f"Starting Mockly Capture v{settings.__version__}")
    logger.warning("Using DUMMY capture controller (Simulation Mode)")

    # 3. Run one answer
    try:
        report = asyncio.run(run_session(settings, args))
    except CaptureUnavailable as e:
        logger.error(str(e))
        sys.exit(2)
    except KeyboardInterrupt:
        logger.info("Interrupted.")
        sys.exit(130)

    print(json.dumps(report.to_dict(), indent=2))


if __name__ == "__main__":
    main()

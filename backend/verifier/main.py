"""
Verifier batch entrypoint.
Reads a VerificationRequest as JSON (file path or stdin), verifies it against
the configured event sources and prints the VerificationResult as JSON.

Usage:
  python -m verifier.main request.json
  cat request.json | python -m verifier.main -
"""
from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Optional, Sequence

from pydantic import ValidationError

from shared.config import get_settings
from shared.models.domain import VerificationRequest, VerificationResult
from shared.utils.logging import get_logger, setup_logging
from shared.utils.metrics import start_metrics_server

from verifier.engine import EventVerificationService

logger = get_logger(__name__)


def load_request(argv: Sequence[str]) -> VerificationRequest:
    """Parse the request from ``argv[1]`` or stdin when absent or ``-``."""
    if len(argv) > 1 and argv[1] != "-":
        raw = Path(argv[1]).read_text(encoding="utf-8")
    else:
        raw = sys.stdin.read()
    return VerificationRequest.model_validate_json(raw)


async def run(
    request: VerificationRequest,
    service: Optional[EventVerificationService] = None,
) -> VerificationResult:
    async with service or EventVerificationService() as verifier:
        return await verifier.verify_events(
            request.candidates,
            request.location,
            genre=request.genre,
            start=request.start,
            end=request.end,
            latitude=request.latitude,
            longitude=request.longitude,
        )


async def main(argv: Optional[Sequence[str]] = None) -> int:
    argv = list(sys.argv if argv is None else argv)
    setup_logging("verifier")
    settings = get_settings()
    start_metrics_server()

    try:
        request = load_request(argv)
    except (OSError, ValidationError) as exc:
        logger.error("verification_request_invalid", error=str(exc))
        return 2

    logger.info(
        "verifier_started",
        sources=settings.configured_sources,
        candidates=len(request.candidates),
    )
    result = await run(request)
    print(result.model_dump_json(indent=2))
    logger.info("verifier_stopped", average_confidence=result.stats.average_confidence)
    return 0


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()

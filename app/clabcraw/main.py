"""
Clabcraw agent runner - joins a game, waits for a match and plays it out.

The built-in decision is a passive fallback (check when free, otherwise
fold). Real agents pass their own decide() to SessionClient.play_loop.

Usage:
    python -m clabcraw.main --kind poker
    python -m clabcraw.main --status
"""
import argparse
import asyncio
import json
import sys
from typing import Any

from pydantic import ValidationError

from clabcraw.config import Settings
from clabcraw.domain.session.client import SessionClient
from clabcraw.domain.session.models import ActionType, GameSnapshot
from clabcraw.exceptions import ClabcrawError, ErrorKind
from clabcraw.logging_config import get_logger, setup_logging

logger = get_logger(__name__)


def fallback_decide(state: GameSnapshot) -> dict[str, Any] | None:
    """Check when free, otherwise fold. Passes when it is not our turn."""
    if not state.is_your_turn:
        return None
    if state.actions[ActionType.CHECK.value].available:
        return {"action": ActionType.CHECK.value}
    return {"action": ActionType.FOLD.value}


def summarize(state: GameSnapshot) -> dict[str, Any]:
    """JSON-friendly summary of a final snapshot."""
    return {
        "session_id": state.session_id,
        "result": state.result,
        "outcome": state.outcome,
        "your_stack": state.your_stack,
        "opponent_stack": state.opponent_stack,
        "winning_hand": state.winning_hand,
        "opponent_cards": [str(c) for c in state.opponent_cards] if state.opponent_cards else None,
    }


async def run_session(
    settings: Settings,
    kind: str,
    client: SessionClient | None = None,
) -> dict[str, Any]:
    """Join -> await match -> play. Maintenance pauses are waited out."""
    client = client or SessionClient(settings)
    async with client:
        await client.join(kind)

        while True:
            try:
                session_id = await client.await_match()
                break
            except ClabcrawError as e:
                if e.kind is not ErrorKind.SERVICE_PAUSED:
                    raise
                logger.warning(f"Platform paused, waiting {e.retry_after:.0f}s before polling again")
                await asyncio.sleep(e.retry_after)

        logger.info(f"Matched in session {session_id}", extra={"session_id": session_id})
        final = await client.play_loop(session_id, fallback_decide)
        return summarize(final)


async def show_status(settings: Settings) -> dict[str, Any]:
    async with SessionClient(settings) as client:
        status = await client.get_status()
        return {"address": client.address, **status.model_dump()}


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Clabcraw agent - join and play one session")
    parser.add_argument(
        "-k", "--kind",
        default="poker",
        help="Game kind to join (default: poker)",
    )
    parser.add_argument(
        "-s", "--status",
        action="store_true",
        help="Print agent status and exit",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args()

    try:
        settings = Settings()
    except ValidationError as e:
        print(f"Error loading settings: {e}")
        return 1

    log_level = "DEBUG" if args.verbose else settings.log_level
    setup_logging(log_level, json_console=settings.json_logs)

    if not settings.has_wallet:
        print("Make sure CLABCRAW_WALLET_PRIVATE_KEY is set (environment or .env).")
        return 1

    try:
        if args.status:
            output = asyncio.run(show_status(settings))
        else:
            output = asyncio.run(run_session(settings, args.kind))
    except ClabcrawError as e:
        logger.error(f"{e.kind.value}: {e.message}", extra={"kind": e.kind.value})
        print(json.dumps(e.to_dict(), default=str))
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted.")
        return 130

    print(json.dumps(output, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())

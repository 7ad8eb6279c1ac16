#!/usr/bin/env python3
"""
Chat Engine Simulator.

Drives a scripted chat and practice session so the reveal, reply and
countdown timers can be watched in a terminal.

By default the engine runs in-process on this script's event loop and
every view event is logged as it is published. With ``--server-url`` the
same script is played against a running chat_server.py instead.

Usage:
    # In-process
    uv run python simulate_chat.py

    # Against the local service
    uv run python chat_server.py
    uv run python simulate_chat.py --server-url http://127.0.0.1:8787
"""

from __future__ import annotations

import asyncio
import logging
import os
import sys
from typing import Final

import httpx

from career_chat.models import CandidateFile
from career_chat.pubsub import ViewEvent, ViewEventPublisher, ViewEventType
from career_chat.scheduler import LoopScheduler
from matrixx_platform import (
    create_chat_controller,
    create_practice_controller,
    load_product_spec,
)

# =============================================================================
# Logging Configuration
# =============================================================================

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger: logging.Logger = logging.getLogger(__name__)


# =============================================================================
# Exit Codes
# =============================================================================

EXIT_SUCCESS: Final[int] = 0
EXIT_CONNECTION_ERROR: Final[int] = 1
EXIT_SERVER_UNHEALTHY: Final[int] = 2
EXIT_SCENARIO_ERROR: Final[int] = 3
EXIT_INTERRUPTED: Final[int] = 130  # Standard SIGINT exit code


# =============================================================================
# Configuration
# =============================================================================

DEFAULT_TOOL: Final[str] = "resume"
SETTLE_TIMEOUT_SECONDS: Final[float] = 30.0
POLL_INTERVAL_SECONDS: Final[float] = 0.1

CHAT_SCRIPT: Final[tuple[str, ...]] = (
    "Hi! I'm applying for a senior backend role.",
    "Can you check whether my resume highlights impact clearly?",
)

SAMPLE_FILES: Final[tuple[CandidateFile, ...]] = (
    CandidateFile(name="resume.pdf", mime_type="application/pdf", size_bytes=245_760),
    CandidateFile(name="portfolio-video.mp4", mime_type="video/mp4", size_bytes=48 * 1024 * 1024),
)

PRACTICE_ANSWERS: Final[tuple[str, ...]] = (
    "I'd surface the slip early, find the cause with the team, and reset expectations.",
    "I scoped the essentials, built a throwaway prototype, then paired with an expert.",
    "I rank by impact and deadline, then confirm the order with stakeholders.",
    "A flaky data migration; we added checkpoints and rolled it out in stages.",
    "I ask clarifying questions, thank them, and follow up on what I changed.",
)


# =============================================================================
# In-process Simulation
# =============================================================================


def _describe(event: ViewEvent) -> str | None:
    payload = event.payload
    if event.event_type == ViewEventType.REVEAL_PROGRESS:
        return None
    if event.event_type == ViewEventType.REVEAL_COMPLETE:
        return "reveal complete"
    if event.event_type == ViewEventType.MESSAGE_APPENDED:
        return f"{payload.get('role')}: {payload.get('content')}"
    if event.event_type == ViewEventType.COUNTDOWN_TICK:
        return f"time left {payload.get('display')}"
    return f"{event.event_type.value} {payload}"


async def _log_events(queue: asyncio.Queue[ViewEvent]) -> None:
    while True:
        event = await queue.get()
        description = _describe(event)
        if description is not None:
            logger.info("[%s] %s", event.source, description)


async def _wait_until(predicate, timeout: float = SETTLE_TIMEOUT_SECONDS) -> bool:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() >= deadline:
            return False
        await asyncio.sleep(POLL_INTERVAL_SECONDS)
    return True


async def run_local_simulation(tool_id: str, product_spec: str | None) -> int:
    """
    Play the scripted chat and practice session in-process.

    Returns:
        Exit code indicating success or failure.
    """
    try:
        spec, spec_path = load_product_spec(product_spec)
    except RuntimeError as exc:
        logger.error("%s", exc)
        return EXIT_SCENARIO_ERROR
    logger.info("Product spec: %s", spec_path)

    scheduler = LoopScheduler()
    publisher = ViewEventPublisher(max_history=0)
    chat = create_chat_controller(spec, scheduler, publisher)
    practice = create_practice_controller(spec, scheduler, publisher)
    printer = asyncio.create_task(_log_events(publisher.subscribe(replay=False)))

    try:
        try:
            chat.select_tool(tool_id)
        except ValueError as exc:
            logger.error("%s", exc)
            return EXIT_SCENARIO_ERROR

        await _wait_until(lambda: not chat.has_pending_timers)
        accepted = chat.upload_files(SAMPLE_FILES)
        logger.info("Staged %d of %d files", len(accepted), len(SAMPLE_FILES))

        for line in CHAT_SCRIPT:
            chat.set_input(line)
            chat.send_message()
            if not await _wait_until(lambda: not chat.has_pending_timers):
                logger.error("Chat did not settle within %.0fs", SETTLE_TIMEOUT_SECONDS)
                return EXIT_SCENARIO_ERROR

        logger.info("Transcript has %d messages", len(chat.messages))

        practice.start()
        for answer in PRACTICE_ANSWERS[: len(practice.questions)]:
            await _wait_until(lambda: practice.reveal_state is not None and not practice.reveal_state.active)
            view = practice.snapshot()
            logger.info("Q%d: %s", view.question_number, view.question_text)
            await asyncio.sleep(1.2)
            practice.set_answer(answer)
            outcome = practice.submit_answer()
            logger.info("Submitted answer -> %s", outcome.value)

        if not practice.completed:
            logger.error("Practice session did not complete")
            return EXIT_SCENARIO_ERROR
    finally:
        chat.close()
        practice.close()
        printer.cancel()
        try:
            await printer
        except asyncio.CancelledError:
            pass

    return EXIT_SUCCESS


# =============================================================================
# Remote Simulation
# =============================================================================


async def _settle_chat(client: httpx.AsyncClient, server_url: str) -> dict[str, object]:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + SETTLE_TIMEOUT_SECONDS
    while True:
        resp = await client.get(f"{server_url}/chat/state")
        resp.raise_for_status()
        state: dict[str, object] = resp.json()
        messages = state.get("messages", [])
        revealing = any(m.get("revealing") for m in messages)  # type: ignore[union-attr]
        if not revealing and not state.get("pending_replies"):
            return state
        if loop.time() >= deadline:
            raise TimeoutError("chat did not settle")
        await asyncio.sleep(POLL_INTERVAL_SECONDS)


async def run_remote_simulation(server_url: str, tool_id: str) -> int:
    """
    Play the scripted session against a running chat service.

    Returns:
        Exit code indicating success or failure.
    """
    async with httpx.AsyncClient(timeout=30.0) as client:
        logger.info("Checking chat service health...")
        try:
            resp = await client.get(f"{server_url}/health")
            if resp.status_code != 200:
                logger.error("Service not healthy: %d", resp.status_code)
                return EXIT_SERVER_UNHEALTHY
            logger.info("Service healthy: %s", resp.json())
        except httpx.ConnectError:
            logger.error("Cannot connect to service at %s. Is it running?", server_url)
            logger.error("Start it with: uv run python chat_server.py")
            return EXIT_CONNECTION_ERROR

        try:
            resp = await client.post(f"{server_url}/chat/tool", json={"tool_id": tool_id})
            if resp.status_code != 200:
                logger.error("Failed to select tool: %s", resp.text)
                return EXIT_SCENARIO_ERROR
            await _settle_chat(client, server_url)

            for line in CHAT_SCRIPT:
                await client.post(f"{server_url}/chat/send", json={"text": line})
                state = await _settle_chat(client, server_url)
                last = state["messages"][-1]  # type: ignore[index]
                logger.info("system: %s", last["content"])

            resp = await client.post(f"{server_url}/practice/start")
            resp.raise_for_status()
            for answer in PRACTICE_ANSWERS:
                view = resp.json()["state"]
                logger.info("Q%d (%s): %s", view["question_number"], view["time_display"], view["question_text"])
                await client.post(f"{server_url}/practice/answer", json={"text": answer})
                resp = await client.post(f"{server_url}/practice/submit")
                resp.raise_for_status()
                outcome = resp.json()["outcome"]
                logger.info("Submitted answer -> %s", outcome)
                if outcome == "completed":
                    break
        except (httpx.HTTPError, TimeoutError) as exc:
            logger.error("Scenario failed: %s", exc)
            return EXIT_SCENARIO_ERROR

    return EXIT_SUCCESS


def main(
    server_url: str | None = None,
    tool_id: str | None = None,
    product_spec: str | None = None,
) -> int:
    """
    Main entry point for the chat simulator.

    Args:
        server_url: Chat service URL. None runs the engine in-process.
        tool_id: Tool to open the chat with (defaults to "resume").
        product_spec: Product spec path for in-process runs.

    Returns:
        Exit code indicating success or failure.
    """
    resolved_server_url = server_url or os.environ.get("CHAT_SERVER_URL")
    resolved_tool = tool_id or os.environ.get("CHAT_TOOL", DEFAULT_TOOL)

    logger.info("=" * 60)
    logger.info("Matrixx Chat Simulator")
    logger.info("=" * 60)
    logger.info("Mode: %s", resolved_server_url or "in-process")
    logger.info("Tool: %s", resolved_tool)
    logger.info("")

    try:
        if resolved_server_url:
            coro = run_remote_simulation(resolved_server_url.rstrip("/"), resolved_tool)
        else:
            coro = run_local_simulation(resolved_tool, product_spec)
        return asyncio.run(coro)
    except KeyboardInterrupt:
        logger.info("\nSimulation interrupted")
        return EXIT_INTERRUPTED


def cli() -> None:
    """Command-line interface entry point with argument parsing."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Play a scripted chat and practice session through the engine.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # In-process with defaults
    uv run python simulate_chat.py

    # Cover letter tool against a running service
    uv run python simulate_chat.py --tool cover-letter --server-url http://127.0.0.1:8787

Environment Variables:
    CHAT_SERVER_URL    Chat service URL (default: run in-process)
    CHAT_TOOL          Tool id (default: resume)
    PRODUCT_SPEC_PATH  Product spec JSON for in-process runs
        """,
    )
    parser.add_argument(
        "--server-url",
        type=str,
        default=None,
        help="Chat service URL. Omit to run the engine in-process.",
    )
    parser.add_argument(
        "--tool",
        type=str,
        default=None,
        dest="tool_id",
        help=f"Tool id (default: {DEFAULT_TOOL})",
    )
    parser.add_argument(
        "--product-spec",
        type=str,
        default=None,
        help="Product spec JSON path for in-process runs.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    exit_code = main(
        server_url=args.server_url,
        tool_id=args.tool_id,
        product_spec=args.product_spec,
    )
    sys.exit(exit_code)


if __name__ == "__main__":
    cli()

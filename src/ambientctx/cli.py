"""Command-line interface for ambientctx.

Provides the main entry point for watching screen activity, chatting
with the assistant over the captured context, and checking the
individual components.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

CHAT_HELP = """Commands:
  /summary   show the activity summary
  /history   show recent observations
  /pause     pause screen captures
  /resume    resume screen captures
  /clear     forget all observations and messages
  /quit      exit
"""


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="ambientctx",
        description="Ambient screen context engine for a desktop assistant",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to YAML configuration file (default: config/ambientctx.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    watch_parser = subparsers.add_parser("watch", help="Sample the screen and print observations")
    watch_parser.add_argument(
        "--duration", type=float, default=None,
        help="Stop after this many minutes (default: run until Ctrl+C)",
    )

    chat_parser = subparsers.add_parser("chat", help="Chat with the assistant about your activity")
    chat_parser.add_argument(
        "--no-capture", action="store_true",
        help="Do not sample the screen in the background",
    )

    subparsers.add_parser("check", help="Check that the model provider is reachable")

    capture_parser = subparsers.add_parser(
        "capture-test", help="Capture the screen once and save it to a file",
    )
    capture_parser.add_argument(
        "--output", type=Path, default=Path("capture_test.png"),
        help="Where to save the screenshot (default: capture_test.png)",
    )

    return parser.parse_args(argv)


def build_provider(settings):
    """Create the vision/chat provider selected in the settings."""
    vision = settings.vision
    if vision.provider == "openai":
        from ambientctx.interpreter.openai import OpenAIProvider

        return OpenAIProvider(
            api_key=settings.openai_api_key.get_secret_value(),
            model=vision.model,
            base_url=vision.base_url,
            chat_model=vision.chat_model,
            timeout=vision.timeout,
            temperature=vision.temperature,
            max_tokens=vision.max_tokens,
        )

    from ambientctx.interpreter.ollama import OllamaProvider

    return OllamaProvider(
        model=vision.model,
        base_url=vision.base_url,
        chat_model=vision.chat_model,
        timeout=vision.timeout,
        temperature=vision.temperature,
        max_tokens=vision.max_tokens,
    )


def build_scheduler(settings, provider):
    """Create a capture scheduler wired to the real screen and window lookup."""
    from ambientctx.capture.screen import MssScreenCapture
    from ambientctx.capture.window import ForegroundWindowLookup
    from ambientctx.watcher.loop import CaptureScheduler

    screen = MssScreenCapture(
        monitor_index=settings.capture.monitor_index,
        max_dimension=settings.capture.max_dimension,
    )
    return CaptureScheduler(
        screen=screen,
        windows=ForegroundWindowLookup(),
        provider=provider,
        config=settings.capture.to_capture_config(),
    )


def _print_event(event) -> None:
    """Print scheduler events as they arrive."""
    if event.event_type == "capture-complete":
        print(f"[{event.timestamp.strftime('%H:%M:%S')}] #{event.sequence_number} "
              f"{event.app_name}: {event.analysis_text}")
    elif event.event_type == "capture-error":
        print(f"[{event.timestamp.strftime('%H:%M:%S')}] Error: {event.error}")
    elif event.event_type == "status-change":
        print(f"Captures {event.state.value}")


def _print_summary(store) -> None:
    summary = store.summarize_activity()
    print("\nActivity summary")
    print(f"  Captures:      {summary.total_captures}")
    print(f"  Apps used:     {', '.join(summary.apps_used) or '-'}")
    print(f"  Most used app: {summary.most_used_app or '-'}")
    if summary.time_range.start and summary.time_range.end:
        print(f"  Time range:    {summary.time_range.start.strftime('%H:%M:%S')}"
              f" - {summary.time_range.end.strftime('%H:%M:%S')}")


async def _watch(settings, args) -> None:
    """Run the scheduler and print observations until stopped."""
    from ambientctx.watcher.memory import ContextStore

    provider = build_provider(settings)
    scheduler = build_scheduler(settings, provider)
    store = ContextStore(settings.context.to_limits())

    def record(event) -> None:
        if event.event_type == "capture-complete":
            store.add_capture(event.observation)

    scheduler.events.subscribe(_print_event)
    scheduler.events.subscribe(record)

    print(f"Sampling every {settings.capture.interval_seconds}s with {provider.model}"
          " (Ctrl+C to stop)\n")
    if not settings.capture.enabled:
        print("Captures are disabled in the configuration; the timer runs paused.")

    scheduler.start()
    try:
        if args.duration is not None:
            await asyncio.sleep(args.duration * 60.0)
        else:
            await asyncio.Event().wait()
    finally:
        await scheduler.aclose()
        await provider.aclose()
        _print_summary(store)


async def _chat(settings, args) -> None:
    """Interactive chat over the captured context."""
    from ambientctx.assistant import AmbientAssistant
    from ambientctx.watcher.memory import ContextStore

    provider = build_provider(settings)
    scheduler = build_scheduler(settings, provider)
    store = ContextStore(settings.context.to_limits())
    assistant = AmbientAssistant(scheduler, store, provider)

    if not await provider.health_check():
        print("Warning: the model provider is not reachable; replies will fail.\n")

    if not args.no_capture:
        scheduler.start()
    print(CHAT_HELP)

    try:
        while True:
            try:
                line = await asyncio.to_thread(input, "You: ")
            except EOFError:
                break
            line = line.strip()
            if not line:
                continue
            if line == "/quit":
                break
            if line == "/summary":
                _print_summary(store)
            elif line == "/history":
                for obs in store.get_capture_history():
                    print(f"  [{obs.timestamp.strftime('%H:%M:%S')}] {obs.app_name}: {obs.analysis_text}")
            elif line == "/pause":
                scheduler.pause()
            elif line == "/resume":
                scheduler.resume()
            elif line == "/clear":
                store.clear()
                print("Context cleared.")
            else:
                reply = await assistant.send_message(line)
                if reply.success:
                    print(f"Assistant: {reply.text}\n")
                else:
                    print(f"Error: {reply.error}\n")
    finally:
        assistant.close()
        await scheduler.aclose()
        await provider.aclose()


async def _check(settings) -> None:
    """Check the provider connection."""
    from ambientctx.interpreter.base import MLLMError

    provider = build_provider(settings)
    try:
        ok = await provider.health_check()
        print(f"Provider:  {settings.vision.provider}")
        print(f"Model:     {provider.model}")
        print(f"Reachable: {'yes' if ok else 'no'}")
        if ok and hasattr(provider, "list_models"):
            try:
                models = await provider.list_models()
            except MLLMError as e:
                logger.warning("Could not list models: %s", e)
                print(f"Installed: unavailable ({e})")
            else:
                print(f"Installed: {', '.join(models) or '-'}")
    finally:
        await provider.aclose()


async def _capture_test(settings, output: Path) -> None:
    """Capture the screen once and save it."""
    from ambientctx.capture.screen import MssScreenCapture
    from ambientctx.capture.window import ForegroundWindowLookup
    from ambientctx.capture.base import CaptureError

    try:
        app_name = await ForegroundWindowLookup().active_app_name()
    except CaptureError as e:
        app_name = f"(unknown: {e})"

    screen = MssScreenCapture(
        monitor_index=settings.capture.monitor_index,
        max_dimension=settings.capture.max_dimension,
    )
    payload = await screen.capture_screen()
    output.write_bytes(payload)
    print(f"Active app: {app_name}")
    print(f"Saved screenshot to {output} ({len(payload)} bytes)")


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the ambientctx CLI."""
    args = parse_args(argv)

    if args.command is None:
        parse_args(["--help"])
        return

    from ambientctx.config.settings import load_settings
    from ambientctx.utils.logging import setup_logging

    settings = load_settings(args.config)

    if args.verbose:
        settings.logging.level = "DEBUG"

    setup_logging(settings.logging)

    try:
        if args.command == "watch":
            logger.info("Starting watch")
            asyncio.run(_watch(settings, args))

        elif args.command == "chat":
            logger.info("Starting chat")
            asyncio.run(_chat(settings, args))

        elif args.command == "check":
            asyncio.run(_check(settings))

        elif args.command == "capture-test":
            logger.info("Running capture test")
            asyncio.run(_capture_test(settings, args.output))
    except KeyboardInterrupt:
        print("\nStopped.")


if __name__ == "__main__":
    main()

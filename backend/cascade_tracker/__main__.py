"""Cascade Tracker CLI entry point."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

env_file = Path(__file__).parent.parent / ".env"
load_dotenv(env_file)

from cascade_tracker import __version__
from cascade_tracker.config import get_settings
from cascade_tracker.generation.exceptions import CascadeRejectedError, GenerationError
from cascade_tracker.generation.main import generate_cascades, generate_custom_cascade
from cascade_tracker.resolution.exceptions import QueueEntryNotFoundError, ResolutionError
from cascade_tracker.resolution.poller import get_poller
from cascade_tracker.resolution.submission import TierLockedError, submit_prediction
from cascade_tracker.scheduler import start_scheduler
from cascade_tracker.storage.predictions import (
    DuplicatePredictionError,
    PredictionValidationError,
)
from cascade_tracker.storage.progress import get_leaderboard
from cascade_tracker.storage.state import load_state

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)

CONFIG_TEMPLATE = """# Cascade Tracker Configuration
# Operational parameters only. API keys belong in .env, not here.

polymarket:
  gamma_base_url: https://gamma-api.polymarket.com
  timeout_seconds: 10.0
  max_attempts: 3
  base_delay_seconds: 1.0
  backoff_factor: 2.0

scheduler:
  resolution_poll_minutes: 15
  generation_minutes: 0        # 0 disables scheduled generation
  generation_batch_size: 3

generation:
  model: claude-sonnet-4-5
  max_output_tokens: 16384
  timeout_seconds: 180.0
  prompt_pool_cap: 75
  effect_count: 5
  high_volume_pool_size: 100
  liquidity_pool_size: 50
  liquidity_pool_offset: 100
  min_markets_per_event: 2

diversity:
  max_history: 10
  window: 3
  persist_history: true

validation:
  fail_fast: true

resolution:
  inter_call_delay_seconds: 0.1
  retention_days: 7
"""


def _init_logfire() -> None:
    """Initialize Logfire if available, without failing commands."""
    try:
        from cascade_tracker.observability import initialize_logfire

        initialize_logfire(get_settings())
    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize data directory structure and configuration file."""
    data_dir = Path("data").resolve()

    try:
        data_dir.mkdir(exist_ok=True)
        logger.info(f"Created data directory: {data_dir}")

        for subdir in ["cascades", "queue/resolution", "predictions"]:
            (data_dir / subdir).mkdir(parents=True, exist_ok=True)

        logger.info("Created all subdirectories")

        config_path = data_dir / "config.yaml"
        if not config_path.exists():
            config_path.write_text(CONFIG_TEMPLATE)
            logger.info(f"Created config template: {config_path}")
        else:
            logger.info(f"Config file already exists: {config_path}")

        print(f"\n✓ Data directory initialized at {data_dir}")
        print("\nNext steps:")
        print("1. Copy .env.example to .env and add your API keys")
        print("2. Review and customize data/config.yaml if needed")
        print("3. Run 'python -m cascade_tracker config' to verify configuration")
        print("4. Run 'python -m cascade_tracker run' to start the poller\n")

        return 0

    except Exception as e:
        logger.error(f"Failed to initialize: {e}")
        print(f"\n❌ Initialization failed: {e}\n")
        return 1


def cmd_config(args: argparse.Namespace) -> int:
    """Display merged configuration."""
    try:
        settings = get_settings()

        print("\n=== Cascade Tracker Configuration ===\n")
        print(f"Data Directory: {settings.data_dir}\n")

        print("Polymarket:")
        print(f"  Gamma API: {settings.polymarket.gamma_base_url}")
        print(f"  Timeout: {settings.polymarket.timeout_seconds}s")
        print(f"  Max Attempts: {settings.polymarket.max_attempts}\n")

        print("Scheduler (minutes):")
        print(f"  Resolution Poll: {settings.scheduler.resolution_poll_minutes}")
        generation_minutes = settings.scheduler.generation_minutes
        print(f"  Generation: {generation_minutes if generation_minutes > 0 else 'disabled'}\n")

        print("Generation:")
        print(f"  Model: {settings.generation.model}")
        print(f"  Max Output Tokens: {settings.generation.max_output_tokens:,}")
        print(f"  Timeout: {settings.generation.timeout_seconds}s")
        print(f"  Prompt Pool Cap: {settings.generation.prompt_pool_cap}\n")

        print("Diversity:")
        print(f"  History Size: {settings.diversity.max_history}")
        print(f"  Window: {settings.diversity.window}\n")

        print("Resolution:")
        print(f"  Inter-call Delay: {settings.resolution.inter_call_delay_seconds}s")
        print(f"  Retention: {settings.resolution.retention_days} days\n")

        print("API Keys:")
        print(f"  Anthropic: {'✓ Set' if settings.anthropic_api_key else '✗ Not set'}")
        print(f"  OpenAI: {'✓ Set' if settings.openai_api_key else '✗ Not set'}")
        print(f"  Logfire: {'✓ Set' if settings.logfire_token else '✗ Not set'}\n")

        return 0

    except ValidationError as e:
        print("\n❌ Configuration Error:\n")
        for error in e.errors():
            print(f"  • {'.'.join(str(x) for x in error['loc'])}: {error['msg']}")
        print()
        return 1
    except Exception as e:
        logger.error(f"Failed to load config: {e}")
        print(f"\n❌ Failed to load configuration: {e}\n")
        return 1


def cmd_status(args: argparse.Namespace) -> int:
    """Display resolution queue and generation status."""
    try:
        status = get_poller().get_queue_status()
        state = load_state()

        print("\n=== Cascade Tracker Status ===\n")
        print("Resolution Queue:")
        print(f"  Pending: {status.pending}")
        print(f"  Resolved: {status.resolved}")
        print(f"  Total: {status.total}\n")

        stats = state.generation
        print("Generation:")
        print(f"  Attempts: {stats.attempts}")
        print(f"  Accepted: {stats.accepted}")
        print(f"  Rejected: {stats.rejected}")
        print(f"  Failed: {stats.failed}")
        if stats.last_generated_at:
            print(f"  Last Cascade: {stats.last_generated_at:%Y-%m-%d %H:%M} UTC")
        print()

        recent = [r.domain.value for r in state.diversity_history[-5:]]
        print(f"Recent Domains: {', '.join(recent) if recent else '(None)'}\n")

        return 0

    except Exception as e:
        logger.error(f"Failed to read status: {e}")
        print(f"\n❌ Failed to read status: {e}\n")
        return 1


def cmd_generate(args: argparse.Namespace) -> int:
    """Generate a cascade for one event, or a batch from the event pool."""
    _init_logfire()

    try:
        if args.event:
            print(f"\n=== Custom Cascade ===\n")
            print(f"Trigger: {args.event}\n")
            cascades = [asyncio.run(generate_custom_cascade(args.event, persist=not args.dry_run))]
        else:
            print(f"\n=== Cascade Batch ({args.count}) ===\n")
            cascades = asyncio.run(generate_cascades(count=args.count, persist=not args.dry_run))

        suffix = " (not saved - dry run)" if args.dry_run else ""
        print(f"✓ Generated {len(cascades)} cascade(s){suffix}\n")
        for cascade in cascades:
            print(f"  • {cascade.id}  [{cascade.domain}] {cascade.name}")
            print(f"    {len(cascade.all_effects)} effects, severity {cascade.severity}/10")
        print()

        return 0

    except CascadeRejectedError as e:
        print(f"\n❌ Cascade rejected ({len(e.errors)} violations):")
        for error in e.errors:
            print(f"  • {error}")
        print()
        return 1
    except GenerationError as e:
        logger.error(f"Generation failed: {e}")
        print(f"\n❌ Generation failed: {e}\n")
        return 1
    except Exception as e:
        logger.error(f"Generation failed: {e}", exc_info=True)
        print(f"\n❌ Generation failed: {e}\n")
        return 1


def cmd_resolve(args: argparse.Namespace) -> int:
    """Manually resolve a queued event."""
    try:
        result = get_poller().resolve_manually(args.event, args.outcome)

        if result.already_resolved:
            print(f"\n{result.event_slug} was already resolved; nothing changed.\n")
            return 0

        settled = result.settlement.settled if result.settlement else []
        print(f"\n✓ Resolved {result.event_slug} as {result.outcome.upper()}")
        print(f"Predictions settled: {len(settled)}")
        for item in settled:
            mark = "✓" if item.is_correct else "✗"
            print(f"  {mark} {item.user_id}: {item.points} pts")
        print()
        return 0

    except QueueEntryNotFoundError as e:
        print(f"\n❌ {e}\n")
        return 1
    except ResolutionError as e:
        print(f"\n❌ Resolution failed: {e}\n")
        return 1


def cmd_poll(args: argparse.Namespace) -> int:
    """Run one resolution sweep now."""
    _init_logfire()

    try:
        result = asyncio.run(get_poller().poll())

        print("\n✓ Resolution poll complete\n")
        print(f"Checked: {result.checked}")
        print(f"Resolved: {result.resolved}")
        print(f"Still Open: {result.still_open}")
        print(f"Not Found: {result.not_found}")
        print(f"Errors: {result.errors}")
        print(f"Cleaned Up: {result.cleaned_up}\n")
        return 0

    except Exception as e:
        logger.error(f"Poll failed: {e}", exc_info=True)
        print(f"\n❌ Poll failed: {e}\n")
        return 1


def cmd_predict(args: argparse.Namespace) -> int:
    """Record a prediction on an event."""
    try:
        prediction = submit_prediction(
            user_id=args.user,
            target_id=args.target or args.event,
            event_slug=args.event,
            predicted_outcome=args.outcome,
            confidence_level=args.confidence,
            difficulty=args.difficulty,
            category=args.category,
        )
        print(f"\n✓ Prediction {prediction.id} recorded: {prediction.predicted_outcome.upper()}")
        print(f"  on {prediction.event_slug} (confidence {prediction.confidence_level}/5)\n")
        return 0

    except (PredictionValidationError, DuplicatePredictionError, TierLockedError) as e:
        print(f"\n❌ {e}\n")
        return 1


def cmd_leaderboard(args: argparse.Namespace) -> int:
    """Display the top users by experience."""
    try:
        entries = get_leaderboard(limit=args.limit)

        print("\n=== Leaderboard ===\n")
        if not entries:
            print("  (No predictions settled yet)\n")
            return 0

        for entry in entries:
            print(
                f"  {entry.rank:>3}. {entry.user_id:<20} {entry.experience_points:>7,} XP  "
                f"L{entry.current_level:<2}  {entry.accuracy:.0%} ({entry.correct_count}/{entry.total_attempts})"
            )
        print()
        return 0

    except Exception as e:
        logger.error(f"Failed to read leaderboard: {e}")
        print(f"\n❌ Failed to read leaderboard: {e}\n")
        return 1


def cmd_run(args: argparse.Namespace) -> int:
    """Start the scheduler (resolution polling and optional generation)."""
    try:
        _init_logfire()

        if args.debug:
            logging.getLogger().setLevel(logging.DEBUG)

        settings = get_settings()

        print("\n=== Cascade Tracker ===\n")
        print(f"Version: {__version__}")
        print(f"Data Directory: {settings.data_dir}\n")

        print("Starting scheduler...\n")
        start_scheduler(settings)

        return 0

    except KeyboardInterrupt:
        print("\n\nReceived interrupt signal. Shutting down...\n")
        return 0
    except Exception as e:
        logger.error(f"Failed to start system: {e}", exc_info=True)
        print(f"\nFailed to start: {e}\n")
        return 1


def cmd_serve(args: argparse.Namespace) -> int:
    """Serve the HTTP API with uvicorn."""
    import uvicorn

    _init_logfire()
    uvicorn.run(
        "cascade_tracker.api.server:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="debug" if args.debug else "info",
    )
    return 0


def main() -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Cascade Tracker: causally-linked prediction market cascades",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Cascade Tracker {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parser_init = subparsers.add_parser(
        "init",
        help="Initialize data directory and configuration file",
    )
    parser_init.set_defaults(func=cmd_init)

    parser_config = subparsers.add_parser(
        "config",
        help="Display merged configuration",
    )
    parser_config.set_defaults(func=cmd_config)

    parser_status = subparsers.add_parser(
        "status",
        help="Display resolution queue and generation status",
    )
    parser_status.set_defaults(func=cmd_status)

    parser_generate = subparsers.add_parser(
        "generate",
        help="Generate cascades (one custom trigger or a batch)",
    )
    parser_generate.add_argument(
        "--event",
        help="Trigger event URL (https://polymarket.com/event/<slug>) or slug",
    )
    parser_generate.add_argument(
        "--count",
        type=int,
        default=3,
        help="Number of cascades for batch generation (default: 3)",
    )
    parser_generate.add_argument(
        "--dry-run",
        action="store_true",
        help="Generate and validate without saving or queueing",
    )
    parser_generate.set_defaults(func=cmd_generate)

    parser_resolve = subparsers.add_parser(
        "resolve",
        help="Manually resolve a queued event",
    )
    parser_resolve.add_argument(
        "--event",
        required=True,
        help="Event slug, event id or queue entry id",
    )
    parser_resolve.add_argument(
        "--outcome",
        required=True,
        choices=["yes", "no"],
        help="Actual outcome",
    )
    parser_resolve.set_defaults(func=cmd_resolve)

    parser_poll = subparsers.add_parser(
        "poll",
        help="Run one resolution sweep now",
    )
    parser_poll.set_defaults(func=cmd_poll)

    parser_predict = subparsers.add_parser(
        "predict",
        help="Record a prediction on an event",
    )
    parser_predict.add_argument("--user", required=True, help="User ID")
    parser_predict.add_argument("--event", required=True, help="Event slug")
    parser_predict.add_argument(
        "--outcome",
        required=True,
        choices=["yes", "no"],
        help="Predicted outcome",
    )
    parser_predict.add_argument(
        "--confidence",
        type=int,
        default=3,
        help="Confidence 1-5 (default: 3)",
    )
    parser_predict.add_argument("--target", help="Cascade or challenge ID (default: the event)")
    parser_predict.add_argument("--category", help="Category for skill tracking")
    parser_predict.add_argument(
        "--difficulty",
        default="beginner",
        choices=["beginner", "intermediate", "advanced", "expert"],
        help="Difficulty tier (default: beginner)",
    )
    parser_predict.set_defaults(func=cmd_predict)

    parser_leaderboard = subparsers.add_parser(
        "leaderboard",
        help="Display the top users by experience",
    )
    parser_leaderboard.add_argument(
        "--limit",
        type=int,
        default=10,
        help="Number of users to show (default: 10)",
    )
    parser_leaderboard.set_defaults(func=cmd_leaderboard)

    parser_run = subparsers.add_parser(
        "run",
        help="Start the scheduler",
    )
    parser_run.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser_run.set_defaults(func=cmd_run)

    parser_serve = subparsers.add_parser(
        "serve",
        help="Serve the HTTP API",
    )
    parser_serve.add_argument("--host", default="127.0.0.1", help="Bind address")
    parser_serve.add_argument("--port", type=int, default=8000, help="Port")
    parser_serve.add_argument("--reload", action="store_true", help="Auto-reload on changes")
    parser_serve.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser_serve.set_defaults(func=cmd_serve)

    args = parser.parse_args()

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())

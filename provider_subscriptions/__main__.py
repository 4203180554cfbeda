"""Command-line entry point: serve the API or validate a configuration file."""

import argparse
import os
import sys
from typing import List, MutableMapping, Optional

import uvicorn

from provider_subscriptions.config import Config, ConfigurationError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="provider-subscriptions",
        description="Provider Subscriptions - admission, activation and expiration service",
    )

    server = parser.add_argument_group("server")
    server.add_argument("--host", default=os.getenv("HOST", "0.0.0.0"), help="Host to bind to (default: 0.0.0.0)")
    server.add_argument(
        "--port", type=int, default=int(os.getenv("PORT", "8080")), help="Port to bind to (default: 8080)"
    )
    server.add_argument(
        "--reload",
        action="store_true",
        default=os.getenv("RELOAD", "false").lower() == "true",
        help="Enable auto-reload for development",
    )

    logs = parser.add_argument_group("logging")
    logs.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=os.getenv("LOG_LEVEL", "INFO"),
    )
    logs.add_argument("--log-format", choices=["json", "console"], default=os.getenv("LOG_FORMAT", "json"))

    marketplace = parser.add_argument_group("marketplace")
    marketplace.add_argument(
        "--config",
        default=os.getenv("CONFIG_PATH", "config/marketplace.yaml"),
        help="Path to marketplace.yaml (default: config/marketplace.yaml)",
    )
    marketplace.add_argument(
        "--no-scheduler",
        action="store_true",
        help="Do not run the expiration sweep on a schedule (POST /admin/sweep still works)",
    )
    marketplace.add_argument("--expiration-cron", help="Override scheduler.expiration_cron")
    marketplace.add_argument("--redis-url", help="Redis URL for the sweep lease (overrides cache.redis_url)")
    marketplace.add_argument(
        "--check-config",
        action="store_true",
        help="Validate the configuration file, print the plan catalogue and exit",
    )
    return parser


def apply_environment(args: argparse.Namespace, environ: MutableMapping[str, str]) -> None:
    """Export parsed options for the application factory and Config to read."""
    environ["LOG_LEVEL"] = args.log_level
    environ["LOG_FORMAT"] = args.log_format
    environ["CONFIG_PATH"] = args.config
    if args.no_scheduler:
        environ["SCHEDULER_ENABLED"] = "false"
    if args.expiration_cron:
        environ["EXPIRATION_CRON"] = args.expiration_cron
    if args.redis_url:
        environ["REDIS_URL"] = args.redis_url


def check_config(path: str) -> int:
    """Load the configuration and print a summary. Returns an exit code."""
    try:
        config = Config(path)
    except ConfigurationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    settings = config.scheduler_settings
    print(f"Config: {config.config_path} (currency {config.currency})")
    for plan in config.plans:
        state = "active" if plan.active else "inactive"
        print(f"  {plan.plan_id:<20} {plan.kind.value:<8} {plan.price:>8} {plan.currency}  {state}")
    print(f"Scheduler: {'enabled' if settings.enabled else 'disabled'} ({settings.expiration_cron})")
    print(f"Lease store: {'redis' if config.redis_url else 'none'}")
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    apply_environment(args, os.environ)

    if args.check_config:
        sys.exit(check_config(args.config))

    if args.log_format == "console":
        print("=" * 60)
        print("Provider Subscriptions v0.1.0")
        print("=" * 60)
        print(f"Listening: {args.host}:{args.port}")
        print(f"Config: {args.config}")
        print(f"Scheduler: {'off' if args.no_scheduler else args.expiration_cron or 'from config'}")
        print(f"Lease store: {'redis' if args.redis_url or os.getenv('REDIS_URL') else 'from config'}")
        print("=" * 60)

    try:
        uvicorn.run(
            "provider_subscriptions.main:app",
            host=args.host,
            port=args.port,
            log_level=args.log_level.lower(),
            reload=args.reload,
            access_log=False,  # RequestLoggingMiddleware logs every request
        )
    except KeyboardInterrupt:
        print("\nShutting down gracefully...")
        sys.exit(0)
    except Exception as e:
        print(f"Failed to start service: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

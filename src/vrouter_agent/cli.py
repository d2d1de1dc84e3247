#!/usr/bin/env python3
"""vrouter agent entry point.

Usage:
    python -m vrouter_agent --ip 192.168.100.10 [--port 7272] [--config FILE]

Environment variables:
    VROUTER_AGENT_HOST / VROUTER_AGENT_PORT    Listen address
    VROUTER_AGENT_LOG_LEVEL                    Log level (default: INFO)
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from .commands import register_builtin_commands
from .config.settings import AgentSettings
from .config_engine import ConfigEngine
from .devices import VyosDevice
from .dispatcher import CallbackClient, CommandDispatcher
from .errors import ConfigurationError
from .server import create_app, serve
from .utils.audit_log import setup_audit_logging
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def build_dispatcher(settings: AgentSettings) -> CommandDispatcher:
    """Wire device, engine and built-in commands into a dispatcher."""
    device = VyosDevice("local", settings.device_config())
    engine = ConfigEngine(device)
    callback_client = CallbackClient(
        max_attempts=settings.callback_attempts,
        interval=settings.callback_interval,
        timeout=settings.callback_timeout,
    )
    dispatcher = CommandDispatcher(callback_client)
    register_builtin_commands(dispatcher, engine, settings)
    return dispatcher


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the agent."""
    parser = argparse.ArgumentParser(
        description="Configuration agent for the virtual router appliance",
    )
    parser.add_argument("--ip", help="The IP address the server listens on")
    parser.add_argument("--port", type=int, help="The port the server listens on (default: 7272)")
    parser.add_argument("--config", type=Path, help="YAML settings file")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR")
    args = parser.parse_args(argv)

    try:
        settings = AgentSettings.load(str(args.config) if args.config else None)
    except ConfigurationError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    if args.ip:
        settings.host = args.ip
    if args.port:
        settings.port = args.port

    if not settings.host:
        print("error: the option 'ip' is required", file=sys.stderr)
        parser.print_usage(sys.stderr)
        return 1

    setup_logging(args.log_level)
    setup_audit_logging(settings.audit_log_dir)

    try:
        dispatcher = build_dispatcher(settings)
    except ConfigurationError as e:
        logger.error(f"Invalid command registration: {e}")
        return 1

    serve(create_app(dispatcher), settings)
    return 0


if __name__ == "__main__":
    sys.exit(main())

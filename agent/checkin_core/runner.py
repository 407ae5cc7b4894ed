"""
Entry point: command line, config file, and wiring of the check-in loop.
"""

import argparse
import sys

from .constants import AGENT_VERSION, BUILD
from .config import log, configure_logging, load_config, AgentConfig, CONFIG_FILE, LOG_FILE
from .state import Agent
from .transport import HttpTransport
from .jobs import JobQueue
from .orchestrator import CheckinOrchestrator


def build_parser():
    parser = argparse.ArgumentParser(
        prog="checkin-agent",
        description="Register with a controller and check in on a jittered schedule.",
    )
    parser.add_argument("--config", default=str(CONFIG_FILE), help="JSON config file (default: %(default)s)")
    parser.add_argument("--url", help="Controller base URL (overrides serverUrl)")
    parser.add_argument("--sleep", help='Time between check-ins, e.g. "30s" or "1m30s"')
    parser.add_argument("--skew", help="Max jitter in milliseconds added to each sleep")
    parser.add_argument("--killdate", help="Unix timestamp after which the agent quits (0 = never)")
    parser.add_argument("--maxretry", help="Consecutive failed check-ins before the agent quits")
    parser.add_argument("--build", default=BUILD, help=argparse.SUPPRESS)
    parser.add_argument("--insecure", action="store_true", help="Skip TLS certificate verification")
    parser.add_argument("--no-log-file", action="store_true", help="Log to the console only")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {AGENT_VERSION}")
    return parser


def resolve_config(args):
    """Config file values, overridden by anything given on the command line."""
    config = AgentConfig.from_mapping(load_config(args.config))
    config = config.merged(
        server_url=args.url.rstrip("/") if args.url else None,
        sleep=args.sleep,
        skew=args.skew,
        kill_date=args.killdate,
        max_retry=args.maxretry,
    )
    if args.insecure:
        config = config.merged(verify_tls=False)
    return config


def main(argv=None):
    """Primary agent entry point. Returns the process exit code."""
    args = build_parser().parse_args(argv)
    configure_logging(debug=args.debug, log_file=None if args.no_log_file else LOG_FILE)

    config = resolve_config(args)
    if not config.server_url:
        log.error("No controller URL configured (use --url or serverUrl in %s)", args.config)
        return 2

    agent = Agent.new(config, build=args.build)
    transport = HttpTransport(config.server_url, verify=config.verify_tls)
    queue = JobQueue(agent)
    orchestrator = CheckinOrchestrator(agent, transport, queue, queue)

    try:
        return orchestrator.run()
    except KeyboardInterrupt:
        log.info("Agent stopped by user (Ctrl+C)")
        return 0


if __name__ == "__main__":
    sys.exit(main())

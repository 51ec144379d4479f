import argparse
import json
import logging
import sys
import time
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from hostwatch import __version__
from hostwatch.config import AgentConfig, load_config
from hostwatch.errors import ConfigError, RemoteError
from hostwatch.host_facts import describe_host
from hostwatch.monitor.agent import MonitorAgent, TickScheduler
from hostwatch.monitor.incidents import MetricKind
from hostwatch.monitor.remote import DryRunLogClient, RemoteLogClient, is_open_record
from hostwatch.monitor.sampler import CounterSampler
from hostwatch.ui import LiveStatus, console, host_facts_table, render_tick

logger = logging.getLogger("hostwatch")


def setup_logging(verbose: bool = False) -> None:
    """Send hostwatch logs to stderr through rich."""
    handler = RichHandler(console=Console(stderr=True), show_path=verbose, rich_tracebacks=True)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )
    # Suppress noisy log messages in normal operation
    logging.getLogger("urllib3").setLevel(logging.WARNING)


class HostwatchCLI:
    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    def _build_agent(self, config: AgentConfig, dry_run: bool = False) -> MonitorAgent:
        sampler = CounterSampler(config.interface)
        if dry_run:
            client = DryRunLogClient(config.client_id or "dry-run")
        else:
            client = RemoteLogClient(config.server_url, config.client_id, timeout=config.request_timeout)
        return MonitorAgent(sampler, client, thresholds=config.thresholds)

    def run(self, live: bool = False) -> int:
        """Run the agent until interrupted."""
        config = load_config()
        agent = self._build_agent(config)

        if config.rehydrate:
            agent.rehydrate()

        scheduler = TickScheduler(agent.tick, interval=config.interval)
        logger.info(
            f"Monitoring {agent.sampler.interface} every {scheduler.interval:g}s, "
            f"reporting to {config.server_url} as {config.client_id}"
        )

        if live:
            LiveStatus(agent, scheduler, console=console.rich).run()
            return 0

        try:
            scheduler.run_forever()
        except KeyboardInterrupt:
            logger.info("Stopping agent")
        finally:
            scheduler.stop()
        return 0

    def once(self, dry_run: bool = False) -> int:
        """Take a baseline sample, wait one interval, then run a single tick."""
        config = load_config(require_remote=not dry_run)
        agent = self._build_agent(config, dry_run=dry_run)

        if config.rehydrate and not dry_run:
            agent.rehydrate()

        # The first delta is always zero; it only establishes the baseline
        agent.tick()
        time.sleep(config.interval)
        result = agent.tick()

        console.print(render_tick(result, agent.incidents, agent.thresholds, title="Single tick"))
        return 0 if result.ok else 1

    def describe(self, as_json: bool = False, skip_public_ip: bool = False) -> int:
        """Print static host facts."""
        facts = describe_host(public_ip_url=None) if skip_public_ip else describe_host()
        if as_json:
            print(json.dumps(facts.to_dict(), indent=2))
        else:
            console.print(host_facts_table(facts))
        return 0

    def status(self) -> int:
        """Show the monitor service's current log record per metric."""
        config = load_config()
        client = RemoteLogClient(config.server_url, config.client_id, timeout=config.request_timeout)

        table = Table(title=f"Monitor service records for {config.client_id}")
        table.add_column("Metric", style="bold")
        table.add_column("State")
        table.add_column("Record", overflow="fold")

        failed = False
        for kind in MetricKind:
            try:
                record = client.fetch(kind)
            except RemoteError as e:
                failed = True
                table.add_row(kind.remote_name, "[error]error[/]", str(e))
                continue
            state = "[error]open[/]" if is_open_record(record) else "[success]closed[/]"
            table.add_row(kind.remote_name, state, "-" if record is None else json.dumps(record, default=str))

        console.print(table)
        return 1 if failed else 0


def main(argv: Optional[list[str]] = None) -> int:
    # Load .env files BEFORE anything reads os.environ for agent settings
    from hostwatch.env_loader import load_env

    load_env()

    parser = argparse.ArgumentParser(
        prog="hostwatch",
        description="Host resource monitoring agent",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  hostwatch run                 # Start the agent (5 second ticks)
  hostwatch run --live          # Start with a live terminal view
  hostwatch once --dry-run      # One tick, no calls to the monitor service
  hostwatch describe --json     # Host facts as JSON
  hostwatch status              # Current records at the monitor service

Environment Variables:
  MONITOR_SERVER_URL            Base URL of the monitor service
  CLIENT_ID                     Identifier of this host at the service
  HOSTWATCH_INTERVAL            Seconds between ticks (default 5)
  HOSTWATCH_INTERFACE           Network interface to sample
        """,
    )

    parser.add_argument("--version", "-V", action="version", version=f"hostwatch {__version__}")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show debug output")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Run the monitoring agent")
    run_parser.add_argument("--live", action="store_true", help="Show a live terminal view")

    once_parser = subparsers.add_parser("once", help="Run a single tick and print the result")
    once_parser.add_argument(
        "--dry-run", action="store_true", help="Do not call the monitor service"
    )

    describe_parser = subparsers.add_parser("describe", help="Show host facts")
    describe_parser.add_argument("--json", action="store_true", help="Output JSON")
    describe_parser.add_argument(
        "--no-public-ip", action="store_true", help="Skip the public IP lookup"
    )

    subparsers.add_parser("status", help="Show monitor service records")

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if not args.command:
        parser.print_help()
        return 1

    cli = HostwatchCLI(verbose=args.verbose)

    try:
        if args.command == "run":
            return cli.run(live=args.live)
        elif args.command == "once":
            return cli.once(dry_run=args.dry_run)
        elif args.command == "describe":
            return cli.describe(as_json=args.json, skip_public_ip=args.no_public_ip)
        elif args.command == "status":
            return cli.status()
        else:
            parser.print_help()
            return 1
    except ConfigError as e:
        console.error(f"Configuration error: {e}")
        return 1
    except KeyboardInterrupt:
        print("\n❌ Operation cancelled", file=sys.stderr)
        return 130
    except (ValueError, OSError) as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

import argparse
import asyncio
import logging
import sys

log = logging.getLogger(__name__)

# Each command maps to exactly one Orchestrator method.
COMMANDS = {
    "up": "bring_up",
    "start": "bring_up",
    "down": "bring_down",
    "stop": "bring_down",
    "status": "status",
    "restart": "restart",
}

COMMAND_HELP = {
    "nfs": (
        "  up/start   - Start NFS server and configure all settings",
        "  down/stop  - Stop NFS server and remove configurations",
        "  status     - Show current NFS server status",
        "  restart    - Restart NFS server",
    ),
    "dns": (
        "  up/start   - Start DNS server and configure domain resolution",
        "  down/stop  - Stop DNS server and disable the proxy virtual host",
        "  status     - Show current DNS server status",
        "  restart    - Restart DNS server",
    ),
}


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config", "-c",
        default=None,
        help="Path to settings YAML file (defaults are used if omitted)",
    )
    parser.add_argument(
        "--log", "-l",
        default=None,
        help="Path to log file (if omitted, logging is disabled)",
    )
    parser.add_argument(
        "--host",
        default=None,
        help="Manage a remote host over SSH instead of this machine",
    )
    parser.add_argument(
        "--sudo",
        action="store_true",
        help="Prefix remote commands with sudo",
    )


class UsageError(Exception):
    pass


class ManagerArgumentParser(argparse.ArgumentParser):
    """Reports bad invocations as UsageError so main can print its own usage."""

    def error(self, message):
        raise UsageError(message)


def build_parser(prog: str) -> argparse.ArgumentParser:
    parser = ManagerArgumentParser(
        prog=prog,
        description="Configure and run the services of one host profile",
        add_help=True,
    )
    parser.add_argument("command", nargs="?", help="up|start, down|stop, status or restart")
    _add_common_arguments(parser)
    parser.add_argument(
        "--inventory", "-i",
        default=None,
        help="Path to Ansible inventory file (INI format); every host is managed in turn",
    )
    parser.add_argument(
        "--limit",
        default=None,
        help="Only use inventory hosts from this group",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit non-zero when any step fails",
    )
    return parser


def setup_logging(path: str | None) -> None:
    if path:
        logging.basicConfig(
            filename=path,
            level=logging.DEBUG,
            format="%(asctime)s %(name)s %(levelname)s %(message)s",
        )


def usage(prog: str, profile) -> str:
    lines = [f"Usage: {prog} {{up|down|status|restart}}", "", "Commands:"]
    lines += COMMAND_HELP[profile.name]
    if profile.usage_extra:
        lines.append("")
        lines += profile.usage_extra
    return "\n".join(lines)


def _backends(args):
    from hostctl.backend import LocalBackend
    from hostctl.inventory import load_inventory
    from hostctl.models import Host
    from hostctl.ssh import SSHBackend

    if args.inventory:
        hosts = load_inventory(args.inventory, group=args.limit)
        return [SSHBackend(h, sudo=args.sudo) for h in hosts]
    if args.host:
        return [SSHBackend(Host(address=args.host, group="command-line"), sudo=args.sudo)]
    return [LocalBackend()]


async def run_operation(profile, backends, method: str, settings, strict: bool) -> int:
    from hostctl.backend import BackendError
    from hostctl.orchestrator import Orchestrator
    from hostctl.reporter import Reporter

    reporter = Reporter()
    exit_code = 0
    for backend in backends:
        if len(backends) > 1:
            reporter.plain()
            reporter.progress(f"== {backend.address} ==")
        orchestrator = Orchestrator(
            profile, backend, reporter=reporter, settle_delay=settings.settle_delay,
        )
        try:
            result = await getattr(orchestrator, method)()
        except BackendError as exc:
            reporter.failure(f"❌ {exc}")
            exit_code = 1
            continue
        finally:
            await backend.close()
        for step in result.failures:
            log.warning("Step failed on %s: %s (%s)", backend.address, step.name, step.reason)
        exit_code = max(exit_code, result.exit_code(strict))
    return exit_code


def main(profile_name: str, argv: list[str] | None = None, prog: str | None = None) -> int:
    prog = prog or f"{profile_name}-manager"
    parser = build_parser(prog)

    from rich.console import Console

    from hostctl.config import ConfigError, Settings, load_config
    from hostctl.profiles import build_profile

    console = Console(highlight=False)
    try:
        args = parser.parse_args(argv)
    except UsageError as exc:
        console.print(f"Error: {exc}", style="red", markup=False)
        print(usage(prog, build_profile(profile_name, Settings())))
        return 1
    setup_logging(args.log)

    try:
        settings = load_config(args.config)
    except (ConfigError, OSError) as exc:
        console.print(f"Error: {exc}", style="red", markup=False)
        return 1
    profile = build_profile(profile_name, settings)

    method = COMMANDS.get(args.command)
    if method is None:
        log.info("Unknown command %r", args.command)
        print(usage(prog, profile))
        return 1

    try:
        backends = _backends(args)
    except (OSError, ValueError) as exc:
        console.print(f"Error: {exc}", style="red", markup=False)
        return 1
    if not backends:
        console.print("Error: no hosts selected", style="red")
        return 1

    log.info("Running %s for profile %s on %d host(s)", method, profile.name, len(backends))
    try:
        return asyncio.run(
            run_operation(profile, backends, method, settings, args.strict or settings.strict),
        )
    except KeyboardInterrupt:
        console.print("\nInterrupted", style="yellow")
        return 130


def nfs_main():
    sys.exit(main("nfs"))


def dns_main():
    sys.exit(main("dns"))


def dashboard_main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        prog="hostctl-dashboard",
        description="TUI for watching and driving the services of one host profile",
    )
    parser.add_argument(
        "--profile", "-p",
        choices=["nfs", "dns"],
        required=True,
        help="Which service profile to manage",
    )
    _add_common_arguments(parser)
    args = parser.parse_args(argv)
    setup_logging(args.log)

    from rich.console import Console

    from hostctl.app import HostctlApp
    from hostctl.config import ConfigError, load_config
    from hostctl.profiles import build_profile

    try:
        settings = load_config(args.config)
    except (ConfigError, OSError) as exc:
        Console(highlight=False).print(f"Error: {exc}", style="red", markup=False)
        sys.exit(1)
    profile = build_profile(args.profile, settings)
    backend = _backends(argparse.Namespace(inventory=None, limit=None, host=args.host, sudo=args.sudo))[0]

    app = HostctlApp(profile=profile, backend=backend, settings=settings)
    app.run()

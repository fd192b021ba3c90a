#!/usr/bin/env python3
"""
🌐 IP Pool CLI v1.0
- Lease/release single IPv4 addresses from a range
- Released addresses are reused lowest-first
- Range tools: info, split, trim, overlap
"""

import logging
import os
from pathlib import Path

import click
import yaml
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from allocator import DEFAULT_MAX_POOL_SIZE, IPPool, PoolRegistry
from errors import ConfigError, IPPoolError
from ipcodec import as_ipv4_int, format_address, is_private
from iprange import IPRange

console = Console()
logger = logging.getLogger("ippool")

# Legacy config location (current directory)
LEGACY_CONFIG_FILE = Path("config.yaml")

DEFAULT_CONFIG = {
    "pool": {
        "max_size": DEFAULT_MAX_POOL_SIZE,
        "loop": False,
        "skip_reserved": False,
    },
    "pools": {},
    "logging": {"level": "WARNING"},
}


def config_dir() -> Path:
    """XDG config dir, read at call time so XDG_CONFIG_HOME can change"""
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
    return Path(xdg_config_home) / "ippool"


class IPPoolConfig:
    def __init__(self, config_file=None):
        """
        Load config with file support.
        Priority:
        1. Custom config_file parameter
        2. XDG config: ~/.config/ippool/config.yaml (created if missing)
        3. Legacy: ./config.yaml in current directory
        """
        xdg_config_file = config_dir() / "config.yaml"

        # Determine config file location
        if config_file:
            config_path = Path(config_file)
        elif xdg_config_file.exists():
            config_path = xdg_config_file
        elif LEGACY_CONFIG_FILE.exists():
            config_path = LEGACY_CONFIG_FILE
        else:
            # Create XDG config directory and default config
            xdg_config_file.parent.mkdir(parents=True, exist_ok=True)
            self._create_default_config(xdg_config_file)
            config_path = xdg_config_file

        try:
            with open(config_path) as f:
                raw = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"cannot read {config_path}: {e}") from e

        self.config_file = str(config_path)
        self.config = self._validate(raw)

        pool = self.config["pool"]
        self.max_size = pool["max_size"]
        self.loop = pool["loop"]
        self.skip_reserved = pool["skip_reserved"]
        self.log_level = self.config["logging"]["level"]

        self.registry = PoolRegistry(
            max_size=self.max_size, loop=self.loop, skip_reserved=self.skip_reserved
        )
        for name, cidr in self.config["pools"].items():
            self.registry.add(name, cidr)

    @staticmethod
    def _create_default_config(path: Path):
        """Create default config file in XDG location"""
        with open(path, "w") as f:
            yaml.dump(DEFAULT_CONFIG, f, default_flow_style=False)

    @staticmethod
    def _validate(raw) -> dict:
        """Merge raw YAML over the defaults, checking types"""
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            raise ConfigError("config must be a mapping")

        for section in ("pool", "pools", "logging"):
            if not isinstance(raw.get(section) or {}, dict):
                raise ConfigError(f"{section} must be a mapping")

        pool = dict(DEFAULT_CONFIG["pool"])
        pool.update(raw.get("pool") or {})
        max_size = pool["max_size"]
        if isinstance(max_size, bool) or not isinstance(max_size, int) or max_size < 1:
            raise ConfigError("pool.max_size must be a positive integer")
        for key in ("loop", "skip_reserved"):
            if not isinstance(pool[key], bool):
                raise ConfigError(f"pool.{key} must be true or false")

        pools = raw.get("pools") or {}

        log = dict(DEFAULT_CONFIG["logging"])
        log.update(raw.get("logging") or {})
        level = str(log["level"]).upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ConfigError(f"unknown logging.level {log['level']!r}")

        return {
            "pool": pool,
            "pools": {str(k): str(v) for k, v in pools.items()},
            "logging": {"level": level},
        }

    def make_pool(self, target: str, loop=None, skip_reserved=None) -> IPPool:
        """Named pool from config, or a fresh pool over a range spec"""
        if target in self.registry:
            pool = self.registry.get(target)
            # skip_reserved is fixed at construction, so a change needs a new pool
            if skip_reserved is not None and skip_reserved != pool.skip_reserved:
                return IPPool(
                    pool.ip_range,
                    max_size=self.max_size,
                    loop=pool.loop if loop is None else loop,
                    skip_reserved=skip_reserved,
                )
            if loop is not None:
                pool.set_loop(loop)
            return pool

        return IPPool(
            IPRange.parse(target),
            max_size=self.max_size,
            loop=self.loop if loop is None else loop,
            skip_reserved=self.skip_reserved if skip_reserved is None else skip_reserved,
        )


def setup_logging(level: str):
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def usage_bar(percent: float) -> str:
    return "█" * min(int(percent / 5), 20) + "░" * max(20 - int(percent / 5), 0)


def print_stats(pool: IPPool):
    stats = pool.stats()
    ip_range = pool.ip_range
    table = Table("Range", "Size", "Issued", "Outstanding", "Recycled", box=box.ROUNDED)
    table.add_row(
        str(ip_range),
        str(stats.size),
        str(stats.issued),
        str(stats.outstanding),
        str(stats.recycled),
    )
    console.print(table)
    console.print(
        f"   Used: {stats.outstanding}/{stats.size - stats.skipped} IPs "
        f"{usage_bar(stats.utilization)} {stats.utilization:.1f}%"
    )
    if pool.loop:
        console.print("   ⚠️  loop on: addresses may be reissued while still leased")
    if stats.wraps:
        console.print(
            f"   ⚠️  cursor wrapped {stats.wraps}x: counts cover leases since the last wrap"
        )


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option("1.0", "--version", "-v")
@click.option(
    "--config",
    "-c",
    "config_file",
    type=click.Path(exists=True),
    help="Path to config.yaml file",
)
@click.option("--verbose", "-V", is_flag=True, help="Debug logging")
@click.pass_context
def cli(ctx, config_file, verbose):
    """🌐 IP Pool CLI v1.0

    Lease | Release | Recycle lowest-first
    Range → Pool → Address
    """
    try:
        cfg = IPPoolConfig(config_file=config_file)
    except IPPoolError as e:
        raise click.ClickException(str(e)) from e
    setup_logging("DEBUG" if verbose else cfg.log_level)
    logger.debug("config: %s", cfg.config_file)
    ctx.obj = cfg


@cli.command()
def quickstart():
    """🚀 Quickstart guide"""
    click.echo("""
1️⃣  ./ippool.py range info 10.8.0.0/24
2️⃣  ./ippool.py range split 10.8.0.0/24 128
3️⃣  ./ippool.py pool simulate 10.8.0.0/29 --acquire 4 --release 10.8.0.1
4️⃣  ./ippool.py pool shell 10.8.0.0/24
    """)


# ============ RANGES ============


@cli.group(name="range")
def range_():
    """📏 Address ranges - CIDR or BEGIN-END"""
    pass


@range_.command()
@click.argument("spec")
def info(spec):
    """Show first/last address, size and covering CIDRs"""
    try:
        r = IPRange.parse(spec)
    except IPPoolError as e:
        click.echo(f"❌ Invalid range: {e}")
        return

    table = Table("First", "Last", "Size", "CIDRs", "Private", box=box.ROUNDED)
    cidrs = r.to_cidrs()
    shown = ", ".join(cidrs[:4]) + (f" (+{len(cidrs) - 4})" if len(cidrs) > 4 else "")
    private = is_private(r.begin_num) and is_private(r.end_num)
    table.add_row(r.first_ip, r.last_ip, str(r.size), shown, "yes" if private else "no")
    console.print(table)


@range_.command()
@click.argument("spec")
@click.argument("n", type=int)
def split(spec, n):
    """Split a range after its first N addresses"""
    try:
        left, right = IPRange.parse(spec).split(n)
    except IPPoolError as e:
        click.echo(f"❌ {e}")
        return

    table = Table("Part", "Range", "Size", box=box.ROUNDED)
    table.add_row("left", str(left), str(left.size))
    table.add_row("right", str(right), str(right.size))
    console.print(table)


@range_.command()
@click.argument("spec")
@click.option("--left", "-l", default=0, help="Addresses to drop from the front")
@click.option("--right", "-r", default=0, help="Addresses to drop from the back")
def trim(spec, left, right):
    """Narrow a range from either end"""
    try:
        r = IPRange.parse(spec).trim(left, right)
    except IPPoolError as e:
        click.echo(f"❌ {e}")
        return
    click.echo(f"✅ {r} ({r.size} addresses)")


@range_.command()
@click.argument("spec_a")
@click.argument("spec_b")
def overlap(spec_a, spec_b):
    """Check whether two ranges overlap"""
    try:
        a = IPRange.parse(spec_a)
        b = IPRange.parse(spec_b)
    except IPPoolError as e:
        click.echo(f"❌ Invalid range: {e}")
        return

    if a.has_overlap(b):
        click.echo(f"⚠️  {a} overlaps {b}")
    else:
        click.echo(f"✅ {a} and {b} are disjoint")


# ============ POOLS ============


@cli.group()
def pool():
    """📦 Pools - lease addresses from a range"""
    pass


@pool.command(name="list")
@click.pass_obj
def list_pools(cfg):
    """List pools defined in config"""
    if not len(cfg.registry):
        click.echo("No pools found.")
        return

    table = Table("Name", "Range", "Size", box=box.ROUNDED)
    for name in cfg.registry:
        ip_range = cfg.registry.get(name).ip_range
        table.add_row(name, str(ip_range), str(ip_range.size))
    console.print(table)


@pool.command()
@click.argument("target")
@click.option("--acquire", "-a", "n_acquire", default=0, help="Addresses to lease first")
@click.option("--release", "-r", "releases", multiple=True, help="Address to release")
@click.option("--reacquire", default=0, help="Addresses to lease after releasing")
@click.option("--loop/--no-loop", default=None, help="Restart cursor on exhaustion")
@click.option("--skip-reserved/--keep-reserved", default=None, help="Skip .0/.255")
@click.pass_obj
def simulate(cfg, target, n_acquire, releases, reacquire, loop, skip_reserved):
    """Run acquire/release steps against a pool and report"""
    try:
        p = cfg.make_pool(target, loop=loop, skip_reserved=skip_reserved)
    except IPPoolError as e:
        click.echo(f"❌ {e}")
        return

    steps = (
        [("acquire", None)] * n_acquire
        + [("release", addr) for addr in releases]
        + [("acquire", None)] * reacquire
    )

    table = Table("#", "Op", "Address", "Result", box=box.ROUNDED)
    for i, (op, addr) in enumerate(steps, 1):
        try:
            if op == "acquire":
                addr = p.acquire_ip()
            else:
                p.release_ip(addr)
            result = "✅"
        except IPPoolError as e:
            result = f"❌ {type(e).__name__}"
        table.add_row(str(i), op, addr or "-", result)

    if steps:
        console.print(table)
    print_stats(p)


SHELL_HELP = """\
acquire [N]     lease N addresses (default 1)
release ADDR    give ADDR back
status          show pool usage
loop on|off     restart cursor on exhaustion
quit            leave the shell"""


@pool.command()
@click.argument("target")
@click.option("--loop/--no-loop", default=None, help="Restart cursor on exhaustion")
@click.option("--skip-reserved/--keep-reserved", default=None, help="Skip .0/.255")
@click.pass_obj
def shell(cfg, target, loop, skip_reserved):
    """Interactive session over one in-memory pool"""
    try:
        p = cfg.make_pool(target, loop=loop, skip_reserved=skip_reserved)
    except IPPoolError as e:
        click.echo(f"❌ {e}")
        return

    console.print(Panel(f"📦 Pool {p.ip_range} - 'help' for commands", style="bold cyan"))

    stdin = click.get_text_stream("stdin")
    while True:
        click.echo("ippool> ", nl=False)
        line = stdin.readline()
        # EOF
        if not line:
            click.echo()
            break

        words = line.split()
        if not words:
            continue
        cmd, args = words[0].lower(), words[1:]

        if cmd in ("quit", "exit"):
            break
        elif cmd == "help":
            click.echo(SHELL_HELP)
        elif cmd == "status":
            print_stats(p)
        elif cmd == "acquire":
            count = int(args[0]) if args and args[0].isdigit() else 1
            for _ in range(count):
                try:
                    click.echo(f"✅ {p.acquire_ip()}")
                except IPPoolError as e:
                    click.echo(f"❌ {e}")
                    break
        elif cmd == "release" and args:
            try:
                p.release_ip(args[0])
                click.echo(f"✅ Released {format_address(as_ipv4_int(args[0]))}")
            except IPPoolError as e:
                click.echo(f"❌ {e}")
        elif cmd == "loop" and args and args[0] in ("on", "off"):
            p.set_loop(args[0] == "on")
            click.echo(f"✅ loop {args[0]}")
        else:
            click.echo(f"❌ Unknown command: {line.strip()}")


if __name__ == "__main__":
    cli()

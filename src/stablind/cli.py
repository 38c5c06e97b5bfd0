import asyncio
import contextlib
import logging
import signal

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from stablind.codec.discriminator import event_discriminator, instruction_discriminator
from stablind.codec.instructions import default_instruction_registry, encode_instruction
from stablind.codec.pda import PDA_KINDS
from stablind.constants import SSS_TOKEN_PROGRAM_ID
from stablind.core.config import DEFAULT_DB_PATH, DEFAULT_WS_URL, DispatcherConfig, IndexerConfig, ListenerConfig
from stablind.errors import StablindError

console = Console()

_INT_ARGS = {"proposal_id", "op_id"}


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


@click.group()
@click.option(
    "--log-level",
    envvar="STABLIND_LOG_LEVEL",
    default="info",
    show_default=True,
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
)
def cli(log_level: str) -> None:
    """stablind: instruction codec, PDA deriver and live event indexer for the SSS token program."""
    _setup_logging(log_level)


# ---------- codec ----------


@cli.command("pda")
@click.argument("kind", type=click.Choice(sorted(PDA_KINDS)))
@click.argument("args", nargs=-1)
@click.option("--program-id", envvar="STABLIND_PROGRAM_ID", default=SSS_TOKEN_PROGRAM_ID, show_default=True)
def pda_cmd(kind: str, args: tuple[str, ...], program_id: str) -> None:
    """Derive a program address, e.g. `stablind pda role <stablecoin> <holder>`."""
    helper, names = PDA_KINDS[kind]
    if len(args) != len(names):
        raise click.UsageError(f"{kind} takes {len(names)} argument(s): {' '.join(names)}")
    values = []
    for name, raw in zip(names, args):
        if name in _INT_ARGS:
            try:
                values.append(int(raw, 0))
            except ValueError:
                raise click.BadParameter(f"{name} must be an integer", param_hint=name) from None
        else:
            values.append(raw)
    try:
        address, bump = helper(*values, program_id=program_id)
    except StablindError as exc:
        raise click.ClickException(str(exc)) from exc
    console.print(f"[bold]{address}[/] (bump {bump})")


def _parse_arg(typ: str, raw: str):
    """Turn a command-line string into a value for a Borsh type."""
    if typ.startswith("option<"):
        if raw.lower() in ("", "none", "null"):
            return None
        return _parse_arg(typ[len("option<") : -1], raw)
    if typ.startswith("vec<"):
        inner = typ[len("vec<") : -1]
        return [_parse_arg(inner, part.strip()) for part in raw.split(",") if part.strip()]
    if typ in ("u8", "u32", "u64", "i64"):
        return int(raw, 0)
    if typ == "bool":
        if raw.lower() in ("true", "1", "yes"):
            return True
        if raw.lower() in ("false", "0", "no"):
            return False
        raise ValueError(f"not a boolean: {raw!r}")
    if typ == "bytes":
        return bytes.fromhex(raw.removeprefix("0x"))
    return raw


@cli.command("encode")
@click.argument("instruction")
@click.argument("assignments", nargs=-1)
def encode_cmd(instruction: str, assignments: tuple[str, ...]) -> None:
    """Print the hex payload of an instruction, e.g. `stablind encode mint_tokens amount=1000`."""
    spec = default_instruction_registry().get(instruction)
    if spec is None:
        raise click.ClickException(f"unknown instruction {instruction!r}")
    types = dict(spec.fields)
    args = {}
    for item in assignments:
        key, sep, raw = item.partition("=")
        if not sep:
            raise click.UsageError(f"expected key=value, got {item!r}")
        if key not in types:
            raise click.UsageError(f"{instruction} has no field {key!r} (fields: {', '.join(types) or 'none'})")
        try:
            args[key] = _parse_arg(types[key], raw)
        except ValueError as exc:
            raise click.BadParameter(str(exc), param_hint=key) from exc
    try:
        payload = encode_instruction(instruction, args)
    except StablindError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(payload.hex())


@cli.command("discriminator")
@click.argument("name")
@click.option("--event", "is_event", is_flag=True, help="Event discriminator (event:<Name>) instead of global:<name>")
def discriminator_cmd(name: str, is_event: bool) -> None:
    """Print the 8-byte discriminator of an instruction or event."""
    disc = event_discriminator(name) if is_event else instruction_discriminator(name)
    click.echo(disc.hex())


# ---------- indexer ----------


@cli.command("listen")
@click.option("--ws-url", envvar="STABLIND_WS_URL", default=DEFAULT_WS_URL, show_default=True)
@click.option("--db", "db_path", envvar="STABLIND_DB_PATH", default=DEFAULT_DB_PATH, show_default=True)
@click.option("--program-id", envvar="STABLIND_PROGRAM_ID", default=SSS_TOKEN_PROGRAM_ID, show_default=True)
@click.option(
    "--commitment",
    type=click.Choice(["processed", "confirmed", "finalized"]),
    default="confirmed",
    show_default=True,
)
@click.option("--webhook-timeout", type=float, default=10.0, show_default=True, help="Seconds per webhook POST")
@click.option("--webhook-concurrency", type=int, default=8, show_default=True)
@click.option("--max-restarts", type=int, default=None, help="Give up after this many reconnects")
@click.option("--governance/--no-governance", default=False, help="Also index multisig/timelock events")
def listen_cmd(
    ws_url: str,
    db_path: str,
    program_id: str,
    commitment: str,
    webhook_timeout: float,
    webhook_concurrency: int,
    max_restarts: int | None,
    governance: bool,
) -> None:
    """Subscribe to program logs and index events until interrupted."""
    from stablind.decoding.registries import make_full_registry
    from stablind.indexing.supervisor import run_indexer

    config = IndexerConfig(
        listener=ListenerConfig(ws_url=ws_url, program_id=program_id, commitment=commitment),
        dispatcher=DispatcherConfig(timeout_s=webhook_timeout, concurrency=webhook_concurrency),
        db_path=db_path,
        max_restarts=max_restarts,
    )
    registry = make_full_registry() if governance else None

    async def run():
        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, stop_event.set)
        return await run_indexer(config, stop_event=stop_event, registry=registry)

    stats = asyncio.run(run())

    table = Table(title="Indexer summary")
    table.add_column("counter")
    table.add_column("value", justify="right")
    for key, value in stats.as_dict().items():
        table.add_row(key, str(value))
    console.print(table)


def _open_store(db_path: str):
    from stablind.storage.audit import AuditStore
    from stablind.storage.database import connect

    return AuditStore(connect(db_path))


@cli.command("events")
@click.option("--db", "db_path", envvar="STABLIND_DB_PATH", default=DEFAULT_DB_PATH, show_default=True)
@click.option("--stablecoin", default=None, help="Only events of this stablecoin account")
@click.option("--limit", type=click.IntRange(1, 1000), default=50, show_default=True)
@click.option("--offset", type=click.IntRange(0), default=0, show_default=True)
def events_cmd(db_path: str, stablecoin: str | None, limit: int, offset: int) -> None:
    """Show recorded events, most recent first."""
    store = _open_store(db_path)
    try:
        rows = store.list_events(stablecoin, limit=limit, offset=offset)
        total = store.count_events(stablecoin)
    finally:
        store.close()

    table = Table(title=f"Events {offset + 1}-{offset + len(rows)} of {total}")
    for col in ("id", "event", "stablecoin", "signature", "slot", "timestamp"):
        table.add_column(col)
    for r in rows:
        table.add_row(str(r.id), r.event_type, r.stablecoin, r.signature, str(r.slot), str(r.timestamp))
    console.print(table)


@cli.command("operations")
@click.option("--db", "db_path", envvar="STABLIND_DB_PATH", default=DEFAULT_DB_PATH, show_default=True)
@click.option("--stablecoin", default=None, help="Only operations of this stablecoin account")
@click.option("--limit", type=click.IntRange(1, 1000), default=50, show_default=True)
@click.option("--offset", type=click.IntRange(0), default=0, show_default=True)
def operations_cmd(db_path: str, stablecoin: str | None, limit: int, offset: int) -> None:
    """Show recorded operations, most recent first."""
    store = _open_store(db_path)
    try:
        rows = store.list_operations(stablecoin, limit=limit, offset=offset)
        total = store.count_operations(stablecoin)
    finally:
        store.close()

    table = Table(title=f"Operations {offset + 1}-{offset + len(rows)} of {total}")
    for col in ("id", "operation", "actor", "amount", "target", "signature", "status"):
        table.add_column(col)
    for r in rows:
        table.add_row(str(r.id), r.operation, r.actor, r.amount or "-", r.target or "-", r.signature, r.status)
    console.print(table)


# ---------- webhooks ----------


@cli.group("webhooks")
@click.option("--db", "db_path", envvar="STABLIND_DB_PATH", default=DEFAULT_DB_PATH, show_default=True)
@click.pass_context
def webhooks_group(ctx: click.Context, db_path: str) -> None:
    """Manage webhook subscribers."""
    from stablind.storage.database import connect
    from stablind.storage.webhooks import WebhookRepository

    con = connect(db_path)
    ctx.call_on_close(con.close)
    ctx.obj = WebhookRepository(con)


@webhooks_group.command("add")
@click.argument("url")
@click.option("--event", "events", multiple=True, help="Event type; repeat for several (default: all, '*')")
@click.option("--secret", default=None, help="HMAC-SHA256 signing secret")
@click.pass_obj
def webhooks_add(repo, url: str, events: tuple[str, ...], secret: str | None) -> None:
    try:
        webhook_id = repo.register(url, list(events) or ["*"], secret)
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc
    console.print(f"Registered webhook [bold]{webhook_id}[/]")


@webhooks_group.command("list")
@click.pass_obj
def webhooks_list(repo) -> None:
    table = Table(title="Webhooks")
    for col in ("id", "url", "events", "signed", "active"):
        table.add_column(col)
    for reg in repo.list():
        table.add_row(str(reg.id), reg.url, ",".join(reg.events), "yes" if reg.secret else "no", str(reg.active))
    console.print(table)


@webhooks_group.command("remove")
@click.argument("webhook_id", type=int)
@click.pass_obj
def webhooks_remove(repo, webhook_id: int) -> None:
    if not repo.remove(webhook_id):
        raise click.ClickException(f"no webhook with id {webhook_id}")
    console.print(f"Removed webhook {webhook_id}")


@webhooks_group.command("disable")
@click.argument("webhook_id", type=int)
@click.pass_obj
def webhooks_disable(repo, webhook_id: int) -> None:
    if not repo.set_active(webhook_id, False):
        raise click.ClickException(f"no webhook with id {webhook_id}")
    console.print(f"Disabled webhook {webhook_id}")


@webhooks_group.command("enable")
@click.argument("webhook_id", type=int)
@click.pass_obj
def webhooks_enable(repo, webhook_id: int) -> None:
    if not repo.set_active(webhook_id, True):
        raise click.ClickException(f"no webhook with id {webhook_id}")
    console.print(f"Enabled webhook {webhook_id}")


if __name__ == "__main__":
    cli()

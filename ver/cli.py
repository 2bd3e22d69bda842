"""ver CLI — record, list, and remove short text patches."""

import click
from rich.console import Console
from rich.markup import escape

from ver import __version__

console = Console(soft_wrap=True, highlight=False)


def _registry(ctx: click.Context):
    from ver.config import load_settings
    from ver.registry.local_registry import PatchRegistry

    return PatchRegistry.from_settings(load_settings(ctx.obj["root"]))


class _Group(click.Group):
    """Group that turns package errors into a red one-liner and exit status 1."""

    def invoke(self, ctx: click.Context):
        from ver.errors import VerError

        try:
            return super().invoke(ctx)
        except VerError as e:
            console.print(f"[red]Error:[/] {escape(str(e))}")
            ctx.exit(1)


@click.group(cls=_Group)
@click.version_option(version=__version__)
@click.option(
    "--root",
    "-r",
    default=None,
    envvar="VER_ROOT",
    help="Storage root holding the index and blobs (default: current directory)",
)
@click.option("--verbose", "-v", is_flag=True, help="Log store activity to stderr")
@click.pass_context
def main(ctx: click.Context, root: str | None, verbose: bool):
    """ver — keep a numbered list of patches, each saved as a content-addressed blob."""
    from ver.log import setup_logging

    setup_logging("DEBUG" if verbose else "WARNING")
    ctx.ensure_object(dict)
    ctx.obj["root"] = root


# ── Mutations ────────────────────────────────────────────────────────


@main.command()
@click.argument("message", nargs=-1, required=True)
@click.pass_context
def add(ctx: click.Context, message: tuple):
    """Add a patch. All words of MESSAGE are joined with single spaces."""
    record = _registry(ctx).add(" ".join(message))
    console.print(f"Patch added! Blob saved as {record.blob_digest}")


@main.command()
@click.argument("position")
@click.pass_context
def remove(ctx: click.Context, position: str):
    """Remove the patch at POSITION (as numbered by 'ver list')."""
    removed = _registry(ctx).remove_at(position)
    console.print(f'Patch removed: "{escape(removed.message)}"')


@main.command()
@click.pass_context
def clear(ctx: click.Context):
    """Delete every patch from the list. Stored blobs are kept."""
    _registry(ctx).clear()
    console.print("All patches have been deleted.")


# ── Queries ──────────────────────────────────────────────────────────


@main.command(name="list")
@click.pass_context
def list_patches(ctx: click.Context):
    """List all patches with their position, timestamp and blob digest."""
    listing = _registry(ctx).list_patches()

    if listing.is_empty:
        console.print("No patches saved yet.")
        return

    console.print("Patch list:")
    for entry in listing:
        digest = entry.blob_digest or "-"
        console.print(f"{entry.position}. {escape(entry.message)} ({entry.timestamp}) \\[{digest}]")


@main.command()
@click.pass_context
def preview(ctx: click.Context):
    """Show just the patch messages."""
    console.print("Preview (patch messages):")
    for message in _registry(ctx).preview():
        console.print(f"- {escape(message)}")


@main.command()
@click.pass_context
def snapshot(ctx: click.Context):
    """Show the current patch messages as a snapshot."""
    console.print("Snapshot (patch messages):")
    for message in _registry(ctx).snapshot():
        console.print(f"- {escape(message)}")


@main.command()
@click.argument("position")
@click.pass_context
def show(ctx: click.Context, position: str):
    """Print the stored blob content of the patch at POSITION."""
    reg = _registry(ctx)
    record = reg.get(position)
    if record.blob_digest is None:
        console.print("[yellow]This patch has no stored blob.[/]")
        ctx.exit(1)
    data = reg.blobs.get(record.blob_digest)
    click.echo(data.decode("utf-8", errors="replace"))


@main.command()
@click.pass_context
def check(ctx: click.Context):
    """Verify that every patch's blob exists and matches its digest."""
    report = _registry(ctx).check()

    for problem in report.problems:
        console.print(
            f"  [red]x[/] {problem.position}. {escape(problem.record.message)} "
            f"- {problem.kind}: {escape(problem.detail)}"
        )
    for digest in report.orphaned_blobs:
        console.print(f"  [yellow]![/] orphaned blob {digest}")

    status = "[green]OK[/]" if report.ok else "[red]FAIL[/]"
    console.print(f"{status} {report.summary()}")
    if not report.ok:
        ctx.exit(1)


if __name__ == "__main__":
    main()

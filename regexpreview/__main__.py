"""Entry point: regexpreview [check | preview | serve]."""

import logging
import pathlib
import typing

import typer

from regexpreview.matchers import base as matchers_base

if typing.TYPE_CHECKING:
    from regexpreview import config as rp_config

app = typer.Typer()


def _format(diag: matchers_base.Diagnostic) -> str:
    return (
        f"{diag.file}:{diag.line}:{diag.col}: "
        f"{diag.severity.name} {diag.code} {diag.message}"
    )


def _read_sample(sample: pathlib.Path, cfg: "rp_config.Config") -> str:
    """Read *sample* and cut it to the configured input bound.

    Raises:
        typer.Exit: With code 2 if the file cannot be read.
    """
    try:
        return cfg.bound(sample.read_text())
    except OSError as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=2) from e


@app.callback()
def main_callback(
    verbose: typing.Annotated[  # noqa: FBT002
        bool,
        typer.Option("--verbose", "-v", help="Log discarded fragments and matches."),
    ] = False,
) -> None:
    """Preview and test problem matcher regexes."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command(no_args_is_help=True)
def check(
    config_path: typing.Annotated[
        pathlib.Path,
        typer.Argument(help="JSON file declaring problem matchers."),
    ],
    sample: typing.Annotated[
        pathlib.Path,
        typer.Argument(help="Tool output to scan."),
    ],
    matcher: typing.Annotated[
        list[str] | None,
        typer.Option("--matcher", "-m", help="Only run matchers with this name."),
    ] = None,
) -> None:
    """Scan tool output with every declared problem matcher.

    Raises:
        typer.Exit: With code 2 on unreadable input, 1 if any diagnostics.
    """
    from regexpreview import config as rp_config  # noqa: PLC0415
    from regexpreview import scanner  # noqa: PLC0415

    cfg = rp_config.load_config()
    try:
        matchers = rp_config.load_matchers(config_path)
    except (rp_config.ConfigError, OSError) as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=2) from e
    if matcher:
        matchers = [item for item in matchers if item.name in matcher]

    text = _read_sample(sample, cfg)
    diagnostics = scanner.scan_document(text, matchers)
    for diag in diagnostics:
        typer.echo(_format(diag))
    if diagnostics:
        raise typer.Exit(code=1)


@app.command(no_args_is_help=True)
def preview(
    pattern: typing.Annotated[str, typer.Argument(help="Regex to evaluate.")],
    sample: typing.Annotated[
        pathlib.Path,
        typer.Argument(help="Sample text to evaluate against."),
    ],
    flags: typing.Annotated[
        str,
        typer.Option("--flags", help="Regex flag letters: g, m, i, s."),
    ] = "",
    no_inject: typing.Annotated[  # noqa: FBT002
        bool,
        typer.Option("--no-inject", help="Do not add missing g/m flags."),
    ] = False,
) -> None:
    """Print every match of PATTERN in SAMPLE and the diagnostics it yields.

    Raises:
        typer.Exit: With code 2 if the pattern does not compile or the sample
            cannot be read.
    """
    from regexpreview import config as rp_config  # noqa: PLC0415
    from regexpreview.matchers import live  # noqa: PLC0415

    cfg = rp_config.load_config()
    live_pattern = live.LivePattern.from_source(pattern, flags)
    if live_pattern is None:
        typer.echo(f"error: invalid regex {pattern!r}", err=True)
        raise typer.Exit(code=2)

    text = _read_sample(sample, cfg)
    inject = cfg.auto_inject_global_multiline and not no_inject
    ranges, diagnostics = live.run(live_pattern, text, inject=inject)
    for start, end in ranges:
        start_line, start_col = live.position_at(text, start)
        end_line, end_col = live.position_at(text, end)
        typer.echo(f"{start_line}:{start_col}-{end_line}:{end_col}")
    for diag in diagnostics:
        typer.echo(_format(diag))


@app.command()
def serve() -> None:
    """Run the LSP server over stdio."""
    from regexpreview import server  # noqa: PLC0415

    server.start()


def main() -> None:
    """Dispatch to the CLI commands."""
    app()


if __name__ == "__main__":
    main()

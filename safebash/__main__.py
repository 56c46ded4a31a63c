"""Entry point: safebash [check <path>... | rules | serve]."""

import dataclasses
import enum
import logging
import pathlib
import typing

import typer

from safebash import errors

app = typer.Typer()

logger = logging.getLogger(__name__)

_STDIN_PATH = pathlib.Path("-")
_STDIN_DISPLAY = "<stdin>"

_SHELL_SUFFIXES: frozenset[str] = frozenset({".sh", ".bash"})

# Directories that are never interesting to analyse.
_SKIP_DIRS: frozenset[str] = frozenset(
    {".venv", "venv", "__pycache__", ".git", "node_modules", "build", "dist", ".tox"}
)


class OutputFormat(str, enum.Enum):
    """Report formats for ``safebash check``."""

    TEXT = "text"
    JSON = "json"


def _configure_logging(*, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _collect_shell_files(root: pathlib.Path) -> list[pathlib.Path]:
    """Recursively find shell scripts under root, skipping non-source directories."""
    return sorted(
        script
        for script in root.rglob("*")
        if script.suffix in _SHELL_SUFFIXES
        and script.is_file()
        and not any(part in _SKIP_DIRS for part in script.parts)
    )


def _git_diff_shell_files() -> list[pathlib.Path]:
    """Return shell scripts changed relative to HEAD in the current git repository.

    Returns an empty list when git is unavailable or the directory is not a
    git repository.
    """
    import subprocess  # noqa: PLC0415

    try:
        root_proc = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],  # noqa: S607
            capture_output=True,
            text=True,
            check=False,
        )
        diff_proc = subprocess.run(
            ["git", "diff", "--name-only", "--diff-filter=ACMR", "HEAD"],  # noqa: S607
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError:
        return []
    if root_proc.returncode != 0 or diff_proc.returncode != 0:
        return []
    git_root = pathlib.Path(root_proc.stdout.strip())
    return [
        git_root / line
        for line in diff_proc.stdout.splitlines()
        if pathlib.PurePath(line).suffix in _SHELL_SUFFIXES
    ]


def _resolve_files(
    paths: list[pathlib.Path] | None,
    *,
    diff: bool,
) -> list[pathlib.Path]:
    """Expand paths and optionally the git diff into a deduplicated script list.

    Explicitly named files are kept whatever their suffix; ``-`` stands for
    stdin.
    """
    candidates: list[pathlib.Path] = []
    if diff:
        candidates.extend(_git_diff_shell_files())
    for raw_path in paths or []:
        if raw_path != _STDIN_PATH and raw_path.is_dir():
            candidates.extend(_collect_shell_files(raw_path))
        else:
            candidates.append(raw_path)
    seen: set[pathlib.Path] = set()
    unique: list[pathlib.Path] = []
    for file_path in candidates:
        resolved = file_path if file_path == _STDIN_PATH else file_path.resolve()
        if resolved not in seen:
            seen.add(resolved)
            unique.append(file_path)
    logger.debug("resolved %d script(s) to check", len(unique))
    return unique


def _parse_ids(raw: str | None) -> frozenset[str] | None:
    """Split a comma-separated ``--select``/``--ignore`` value."""
    from safebash import config as safebash_config  # noqa: PLC0415

    if raw is None:
        return None
    return safebash_config.normalize_ids(raw.split(","))


@app.command(no_args_is_help=True)
def check(
    paths: typing.Annotated[
        list[pathlib.Path] | None,
        typer.Argument(help="Files or directories to check; `-` reads stdin."),
    ] = None,
    diff: typing.Annotated[  # noqa: FBT002
        bool,
        typer.Option("--diff", help="Check shell scripts changed in the current git diff."),
    ] = False,
    output_format: typing.Annotated[
        OutputFormat,
        typer.Option("--format", "-f", help="Report format."),
    ] = OutputFormat.TEXT,
    select: typing.Annotated[
        str | None,
        typer.Option("--select", help="Comma-separated rule IDs to run (replaces config)."),
    ] = None,
    ignore: typing.Annotated[
        str | None,
        typer.Option("--ignore", help="Comma-separated rule IDs to skip (replaces config)."),
    ] = None,
    verbose: typing.Annotated[  # noqa: FBT002
        bool,
        typer.Option("--verbose", "-v", help="Log debug output to stderr."),
    ] = False,
) -> None:
    """Check one or more shell scripts for rule violations.

    Raises:
        typer.Exit: With code 1 if any error-severity diagnostic is found,
            or 2 if any input could not be read or decoded.
    """
    from safebash import analyzer as safebash_analyzer  # noqa: PLC0415
    from safebash import config as safebash_config  # noqa: PLC0415
    from safebash import result as safebash_result  # noqa: PLC0415
    from safebash import rules  # noqa: PLC0415

    _configure_logging(verbose=verbose)
    scripts = _resolve_files(paths, diff=diff)
    cfg = safebash_config.load_config()
    select_ids = _parse_ids(select)
    ignore_ids = _parse_ids(ignore)
    if select_ids is not None:
        cfg = dataclasses.replace(cfg, select=select_ids)
    if ignore_ids is not None:
        cfg = dataclasses.replace(cfg, ignore=ignore_ids)
    active_rules = safebash_config.active_rules(rules.ALL_RULES, cfg)
    analyzer = safebash_analyzer.Analyzer(rules=active_rules)

    exit_code = errors.ExitCode.CLEAN
    reports: list[tuple[str, safebash_result.ScanResult]] = []

    for file_path in scripts:
        display = _STDIN_DISPLAY if file_path == _STDIN_PATH else str(file_path)
        try:
            if file_path == _STDIN_PATH:
                scan_result = analyzer.analyze(typer.get_binary_stream("stdin").read())
            else:
                scan_result = safebash_analyzer.scan_file(file_path, active_rules)
        except errors.SafebashError as e:
            # scan_file already names the path; stdin has none.
            message = f"{display}: {e.message}" if file_path == _STDIN_PATH else e.message
            typer.echo(f"error: {message}", err=True)
            exit_code = max(exit_code, e.exit_code)
            continue

        reports.append((display, scan_result))
        exit_code = max(exit_code, scan_result.exit_code())
        if output_format is OutputFormat.TEXT:
            for line in safebash_result.format_text(display, scan_result):
                typer.echo(line)

    if output_format is OutputFormat.JSON:
        typer.echo(safebash_result.format_json(reports))

    if exit_code != errors.ExitCode.CLEAN:
        raise typer.Exit(code=int(exit_code))


@app.command(name="rules")
def list_rules() -> None:
    """List the available rules with their configured severity."""
    from safebash import config as safebash_config  # noqa: PLC0415
    from safebash import rules  # noqa: PLC0415

    cfg = safebash_config.load_config()
    configured = safebash_config.configure_rules(rules.ALL_RULES, cfg)
    for rule in configured:
        typer.echo(f"{rule.rule_id:<24} {rule.severity.value:<8} {rule.description}")


@app.command()
def serve() -> None:
    """Run the LSP server over stdio."""
    from safebash import server  # noqa: PLC0415

    server.start()


def main() -> None:
    """Dispatch to check, rules, or LSP server mode."""
    app()


if __name__ == "__main__":
    main()

#!/usr/bin/env python3

"""Transform Ruby files in batch mode."""

import concurrent.futures
import json
import re
import threading
import traceback
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from strictivars.config import builtin_config_dir, get_config_from_spec
from strictivars.exceptions import ConfigError
from strictivars.processing import SourcePolicy, process_source
from strictivars.processing.base import ProcessorConfig
from strictivars.utils.log import add_file_handler, logger
from strictivars.utils.serialize import UNSET, recursive_merge

_console = Console(highlight=False)

_HELP_TEXT = """Add instance variable guards and eval argument wrappers to Ruby files.

Directories are searched recursively for files with one of the configured suffixes.
Without [bold green]-o[/bold green], a single file is transformed and printed to stdout.
"""

_CONFIG_SPEC_HELP_TEXT = """Path to config files, filenames, or key-value pairs.

[bold red]IMPORTANT:[/bold red] [red]If you set this option, the default config file will not be used.[/red]
So you need to explicitly set it e.g., with [bold green]-c default.yaml <other options>[/bold green]

Multiple configs will be recursively merged.

Examples:

[bold green]-c default.yaml -c processor.runtime_namespace=::MyGuards[/bold green]

[bold green]-c default.yaml -c 'policy.exclude=["vendor/*"]'[/bold green]
"""

DEFAULT_CONFIG_FILE = builtin_config_dir / "default.yaml"

MANIFEST_NAME = "manifest.json"

app = typer.Typer(rich_markup_mode="rich", add_completion=False)
_MANIFEST_LOCK = threading.Lock()


def collect_files(paths: list[Path], suffixes: list[str]) -> list[tuple[Path, Path]]:
    """Expand directories. Returns (file, path relative to its root) pairs in sorted order."""
    files = []
    for path in paths:
        if path.is_dir():
            for file in sorted(path.rglob("*")):
                if file.is_file() and file.suffix in suffixes:
                    files.append((file, file.relative_to(path)))
        elif path.is_file():
            files.append((path, Path(path.name)))
        else:
            logger.warning(f"Skipping '{path}': not a file or directory")
    return files


def update_manifest_file(manifest_path: Path, key: str, entry: dict) -> None:
    """Record the result of a single file in the JSON manifest."""
    with _MANIFEST_LOCK:
        manifest = {}
        if manifest_path.exists():
            manifest = json.loads(manifest_path.read_text())
        manifest[key] = entry
        manifest_path.write_text(json.dumps(manifest, indent=2))


def process_file(file: Path, relative: Path, output_dir: Path, config: dict) -> dict:
    """Transform a single file into `output_dir`, keeping its relative path."""
    key = relative.as_posix()
    policy = SourcePolicy(**config.get("policy", {}))
    entry: dict = {"source": str(file)}
    try:
        result = process_source(
            file.read_text(encoding="utf-8"),
            path=file,
            policy=policy,
            **config.get("processor", {}),
        )
        target = output_dir / relative
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(result.output, encoding="utf-8")
        entry |= {
            "exit_status": "ok",
            "strict": result.strict,
            "annotations": len(result.annotations),
            "parse_errors": result.parse_errors,
        }
    except Exception as e:
        logger.error(f"Error processing {file}: {e}", exc_info=True)
        entry |= {"exit_status": type(e).__name__, "traceback": traceback.format_exc(), "exception_str": str(e)}
    update_manifest_file(output_dir / MANIFEST_NAME, key, entry)
    return entry


def validate_config(config: dict) -> None:
    """Reject unknown or mistyped processor and policy settings before any file is touched."""
    try:
        ProcessorConfig(**config.get("processor", {}))
        SourcePolicy(**config.get("policy", {}))
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def filter_files(files: list[tuple[Path, Path]], *, filter_spec: str) -> list[tuple[Path, Path]]:
    before_filter = len(files)
    files = [(file, relative) for file, relative in files if re.search(filter_spec, relative.as_posix())]
    if (after_filter := len(files)) != before_filter:
        logger.info(f"File filter: {before_filter} -> {after_filter} files")
    return files


def _print_summary(results: dict[str, dict]) -> None:
    table = Table(title="strictivars")
    table.add_column("File")
    table.add_column("Mode")
    table.add_column("Annotations", justify="right")
    table.add_column("Status")
    for key, entry in sorted(results.items()):
        status = entry["exit_status"]
        if status == "ok" and entry.get("parse_errors"):
            status = "[yellow]ok (syntax errors)[/yellow]"
        elif status != "ok":
            status = f"[red]{status}[/red]"
        mode = "" if "strict" not in entry else ("strict" if entry["strict"] else "eval only")
        table.add_row(key, mode, str(entry.get("annotations", "")), status)
    _console.print(table)


# fmt: off
@app.command(help=_HELP_TEXT)
def main(
    paths: list[Path] = typer.Argument(..., help="Ruby files or directories to transform"),
    output: str = typer.Option("", "-o", "--output", help="Output directory", rich_help_panel="Basic"),
    workers: int = typer.Option(1, "-w", "--workers", help="Number of worker threads for parallel processing", rich_help_panel="Basic"),
    filter_spec: str = typer.Option("", "--filter", help="Only transform files whose relative path matches this regex", rich_help_panel="Data selection"),
    config_spec: list[str] = typer.Option([str(DEFAULT_CONFIG_FILE)], "-c", "--config", help=_CONFIG_SPEC_HELP_TEXT, rich_help_panel="Basic"),
    namespace: str | None = typer.Option(None, "--namespace", help="Ruby namespace of the runtime helpers (e.g., '::StrictIvars')", rich_help_panel="Advanced"),
) -> None:
    # fmt: on
    logger.info(f"Building config from specs: {config_spec}")
    configs = [get_config_from_spec(spec) for spec in config_spec]
    configs.append({"processor": {"runtime_namespace": namespace or UNSET}})
    config = recursive_merge(*configs)
    validate_config(config)

    suffixes = config.get("run", {}).get("suffixes", [".rb"])
    files = filter_files(collect_files(paths, suffixes), filter_spec=filter_spec)

    if not output:
        if len(files) != 1:
            raise typer.BadParameter("Without --output exactly one input file is required", param_hint="PATHS")
        file, _ = files[0]
        result = process_source(
            file.read_text(encoding="utf-8"),
            path=file,
            policy=SourcePolicy(**config.get("policy", {})),
            **config.get("processor", {}),
        )
        typer.echo(result.output, nl=False)
        return

    output_path = Path(output)
    output_path.mkdir(parents=True, exist_ok=True)
    logger.info(f"Results will be saved to {output_path}")
    add_file_handler(output_path / "strictivars.log")
    logger.info(f"Transforming {len(files)} files...")

    results: dict[str, dict] = {}
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {
            executor.submit(process_file, file, relative, output_path, config): relative.as_posix()
            for file, relative in files
        }
        for future in concurrent.futures.as_completed(futures):
            results[futures[future]] = future.result()

    _print_summary(results)
    if any(entry["exit_status"] != "ok" for entry in results.values()):
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()

from dataclasses import dataclass
from importlib.metadata import PackageNotFoundError, version as package_version
import json
from pathlib import Path
import tempfile
from typing import Any

import typer

from capturepack.capture import get_format_data, run_demo_capture
from capturepack.config import CaptureConfig, CaptureConfigError
from capturepack.core import RequestKind
from capturepack.log import configure_logging
from capturepack.pending import (
    RequestRegistry,
    SnapshotError,
    default_state_path,
    load_snapshot,
    remove_snapshot,
    requests_from_snapshot,
)

app = typer.Typer(help="MediaCapture CLI")
pending_app = typer.Typer(help="Inspect the durable snapshot of pending capture requests.")
app.add_typer(pending_app, name="pending")


@dataclass(slots=True)
class _OutputOptions:
    quiet: bool = False
    stable_json: bool = True


_OUTPUT_OPTIONS = _OutputOptions()


def _resolve_cli_version() -> str:
    try:
        return package_version("mediacapture")
    except PackageNotFoundError:
        from mediacapture import __version__ as local_version

        return local_version


def _version_callback(value: bool) -> None:
    if not value:
        return
    typer.echo(_resolve_cli_version(), color=False)
    raise typer.Exit()


@app.callback()
def app_options(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show MediaCapture version and exit.",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        help="Suppress non-error text output.",
    ),
    stable_json: bool = typer.Option(
        True,
        "--stable-json/--pretty-json",
        help="Emit stable compact JSON (or pretty JSON).",
    ),
) -> None:
    """Global output controls for all CLI commands."""
    _OUTPUT_OPTIONS.quiet = quiet
    _OUTPUT_OPTIONS.stable_json = stable_json
    try:
        CaptureConfig.from_env()
    except CaptureConfigError as error:
        typer.echo(f"invalid configuration: {error}", err=True)
        raise typer.Exit(code=2) from error


def _echo(message: str, *, err: bool = False, force: bool = False) -> None:
    if _OUTPUT_OPTIONS.quiet and not err and not force:
        return
    typer.echo(message, err=err)


def _echo_json(payload: dict[str, Any], *, err: bool = False) -> None:
    if _OUTPUT_OPTIONS.stable_json:
        rendered = json.dumps(payload, ensure_ascii=True, sort_keys=True, separators=(",", ":"))
    else:
        rendered = json.dumps(payload, ensure_ascii=True, sort_keys=True, indent=2)
    typer.echo(rendered, err=err)


def _fail(message: str, *, target: Path, json_output: bool) -> None:
    if json_output:
        _echo_json({"status": "error", "state_file": str(target), "message": message})
    else:
        _echo(message, err=True)


def _state_file_option() -> Any:
    return typer.Option(
        None,
        "--state-file",
        help="Snapshot file (defaults to MEDIACAPTURE_STATE_FILE or runs/mediacapture/pending.json).",
    )


def _resolve_state_file(state_file: Path | None) -> Path:
    if state_file is not None:
        return state_file
    configured = CaptureConfig.from_env().state_file
    return configured if configured is not None else default_state_path()


@app.command(name="format-data")
def format_data(
    file_path: str = typer.Argument(..., help="Path or file: URI of a captured media file."),
    mime_type: str | None = typer.Option(
        None,
        "--mime-type",
        help="MIME type of the file; guessed from the path when omitted.",
    ),
) -> None:
    """Print height, width, bitrate, duration and codecs for a media file."""
    _echo_json(get_format_data(file_path, mime_type).to_dict())


@pending_app.command("list")
def pending_list(
    state_file: Path | None = _state_file_option(),
    json_output: bool = typer.Option(False, "--json", help="Emit machine-readable output."),
) -> None:
    """List requests recorded in the snapshot file."""
    target = _resolve_state_file(state_file)
    snapshot = load_snapshot(target)
    try:
        requests = requests_from_snapshot(snapshot) if snapshot is not None else []
    except SnapshotError as error:
        _fail(f"list failed: {error}", target=target, json_output=json_output)
        raise typer.Exit(code=1) from error

    if json_output:
        _echo_json(
            {"state_file": str(target), "requests": [request.to_dict() for request in requests]}
        )
        return
    if not requests:
        _echo(f"no pending requests: {target}")
        return
    for request in requests:
        _echo(
            f"id={request.id} kind={request.kind.name} state={request.state.value} "
            f"results={len(request.results)}/{request.limit}"
        )


@pending_app.command("verify")
def pending_verify(
    state_file: Path | None = _state_file_option(),
    json_output: bool = typer.Option(False, "--json", help="Emit machine-readable output."),
) -> None:
    """Check that the snapshot file would restore cleanly."""
    target = _resolve_state_file(state_file)
    snapshot = load_snapshot(target)
    if snapshot is None:
        message = f"verify failed: no readable snapshot at {target}"
        _fail(message, target=target, json_output=json_output)
        raise typer.Exit(code=1)

    registry = RequestRegistry(_DiscardingSink())
    try:
        restored = registry.restore(snapshot, "verify")
    except SnapshotError as error:
        _fail(f"verify failed: {error}", target=target, json_output=json_output)
        raise typer.Exit(code=1) from error

    ids = [request.id for request in restored]
    if json_output:
        _echo_json({"status": "ok", "state_file": str(target), "request_ids": ids})
    else:
        _echo(f"verify ok: {len(ids)} pending request(s) in {target}")


@pending_app.command("clear")
def pending_clear(state_file: Path | None = _state_file_option()) -> None:
    """Delete the snapshot file."""
    target = _resolve_state_file(state_file)
    remove_snapshot(target)
    _echo(f"cleared: {target}")


@app.command()
def demo(
    kind: str = typer.Option("audio", "--kind", help="audio or image."),
    shots: int = typer.Option(3, "--shots", min=1, help="Number of items to collect."),
    cancel_after: int | None = typer.Option(
        None,
        "--cancel-after",
        min=0,
        help="Simulate the user cancelling once this many items exist.",
    ),
    out_dir: Path | None = typer.Option(
        None,
        "--out-dir",
        help="Directory for captured files (a temporary directory when omitted).",
    ),
) -> None:
    """Run a scripted multi-shot capture against on-disk fake collaborators."""
    kinds = {"audio": RequestKind.AUDIO, "image": RequestKind.IMAGE_OR_VIDEO}
    if kind not in kinds:
        _echo(f"demo failed: unsupported kind {kind!r}", err=True)
        raise typer.Exit(code=2)

    if out_dir is not None:
        outcome = run_demo_capture(out_dir, kind=kinds[kind], shots=shots, cancel_after=cancel_after)
        _echo_json(outcome.to_dict())
    else:
        with tempfile.TemporaryDirectory(prefix="mediacapture-demo-") as scratch:
            outcome = run_demo_capture(
                scratch, kind=kinds[kind], shots=shots, cancel_after=cancel_after
            )
            _echo_json(outcome.to_dict())
    if not outcome.ok:
        raise typer.Exit(code=1)


class _DiscardingSink:
    def resolve(self, callback_token: str, outcome: Any) -> None:
        return None


def main() -> None:
    try:
        config = CaptureConfig.from_env()
    except CaptureConfigError:
        config = CaptureConfig()
    configure_logging(config.log_level, json_output=config.log_json)
    app()

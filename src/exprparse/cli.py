"""Command-line interface for exprparse."""

from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any

import click

from exprparse import __version__
from exprparse.formulas import (
    Expr,
    FormulaLimitError,
    FormulaParseError,
    evaluate_formula,
    extract_refs,
    parse_formula,
)
from exprparse.inputs import (
    parse_bindings_text,
    parse_overrides,
    read_formula_file,
    result_label,
)
from exprparse.logging import EventLevel, EventSink, EventType, emit, make_formula_event, set_project_dir
from exprparse.logging.events import (
    BINDING_UNPARSEABLE,
    PARSE_LIMIT_EXCEEDED,
    PARSE_SYNTAX_ERROR,
)
from exprparse.project import load_project_config, parse_limits


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="exprparse")
@click.option(
    "--project-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
    show_default=True,
    help="Directory holding exprparse.yaml (and logs/ when logging is enabled).",
)
@click.pass_context
def main(ctx: click.Context, project_dir: Path) -> None:
    """exprparse -- parse and evaluate arithmetic formulas.

    Without a subcommand, prompts for a formula and its variables.
    """
    try:
        config = load_project_config(project_dir)
    except (ValueError, OSError) as e:
        raise click.ClickException(str(e))

    if config.get("logging_enabled"):
        set_project_dir(
            project_dir,
            fsync=bool(config.get("logging_fsync", False)),
            tail_bytes=config.get("logging_tail_bytes"),
        )
    else:
        set_project_dir(None)

    ctx.obj = config
    if ctx.invoked_subcommand is None:
        _interactive(config)


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------


def _parse(formula: str, config: dict[str, Any], source: str) -> Expr:
    """Parse *formula* with configured limits, logging the outcome."""
    try:
        expr = parse_formula(formula, **parse_limits(config))
    except FormulaParseError as e:
        emit(make_formula_event(
            EventType.formula_parse_failed, EventLevel.error, str(e),
            formula=formula, source=source, error_code=PARSE_SYNTAX_ERROR,
            extra={"position": e.position},
        ))
        raise click.ClickException(str(e))
    except FormulaLimitError as e:
        emit(make_formula_event(
            EventType.formula_limit_exceeded, EventLevel.error, str(e),
            formula=formula, source=source, error_code=PARSE_LIMIT_EXCEEDED,
            extra={"limit": e.limit},
        ))
        raise click.ClickException(str(e))

    emit(make_formula_event(
        EventType.formula_parsed, EventLevel.info, "Formula parsed",
        formula=formula, source=source,
    ))
    return expr


def _evaluate(formula: str, bindings: dict[str, float], config: dict[str, Any], source: str) -> float:
    expr = _parse(formula, config, source)
    result = evaluate_formula(expr, bindings)
    unbound = sorted(extract_refs(expr) - set(bindings))
    emit(make_formula_event(
        EventType.formula_evaluated, EventLevel.info, "Formula evaluated",
        formula=formula, source=source,
        extra={"result": format_number(result), "unbound": unbound},
    ))
    return result


def format_number(value: float) -> str:
    """Render a result: integral values without a trailing ``.0``."""
    if math.isfinite(value) and value.is_integer() and abs(value) < 1e16:
        return str(int(value))
    return repr(value)


def _echo_result(formula: str, result: float, as_json: bool) -> None:
    label = result_label(formula)
    if as_json:
        payload = {
            "formula": formula,
            "label": label,
            "result": result if math.isfinite(result) else repr(result),
        }
        click.echo(json.dumps(payload, indent=2))
    else:
        click.echo(f"{label} = {format_number(result)}")


def _with_overrides(bindings: dict[str, float], overrides: tuple[str, ...]) -> dict[str, float]:
    try:
        return {**bindings, **parse_overrides(overrides)}
    except ValueError as e:
        raise click.ClickException(str(e))


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@main.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--set", "overrides", multiple=True, help="Override a variable as name=value.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_obj
def parse(config: dict[str, Any], file: Path, overrides: tuple[str, ...], as_json: bool) -> None:
    """Parse and evaluate the formula in FILE.

    The first non-blank line is the formula; later lines bind variables,
    one ``name = value`` per line.
    """
    try:
        data = read_formula_file(file)
    except (ValueError, UnicodeDecodeError) as e:
        raise click.ClickException(str(e))

    for lineno, text in data.skipped:
        click.echo(f"Warning: {file}:{lineno}: ignoring line {text!r}", err=True)
        emit(make_formula_event(
            EventType.bindings_line_skipped, EventLevel.warning,
            f"Ignoring line {lineno}", formula=data.formula, source=str(file),
            error_code=BINDING_UNPARSEABLE, extra={"line": lineno, "text": text},
        ))

    bindings = _with_overrides(data.bindings, overrides)
    if not as_json:
        click.echo(f"Formula from file:\n{data.formula}")
    result = _evaluate(data.formula, bindings, config, source=str(file))
    _echo_result(data.formula, result, as_json)


@main.command("eval")
@click.argument("formula")
@click.option("--set", "overrides", multiple=True, help="Bind a variable as name=value.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_obj
def eval_cmd(config: dict[str, Any], formula: str, overrides: tuple[str, ...], as_json: bool) -> None:
    """Evaluate FORMULA given on the command line."""
    bindings = _with_overrides({}, overrides)
    result = _evaluate(formula, bindings, config, source="argv")
    _echo_result(formula, result, as_json)


@main.command()
@click.argument("formula")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_obj
def refs(config: dict[str, Any], formula: str, as_json: bool) -> None:
    """List the variables FORMULA reads from its bindings."""
    names = sorted(extract_refs(_parse(formula, config, source="argv")))
    if as_json:
        click.echo(json.dumps(names))
        return
    for name in names:
        click.echo(name)


@main.command("events")
@click.option("--level", default=None, type=click.Choice(["info", "warning", "error"]), help="Filter by level.")
@click.option("--type", "event_type", default=None, type=click.Choice([t.value for t in EventType]), help="Filter by event type.")
@click.option("--limit", default=100, type=click.IntRange(min=1), show_default=True, help="Maximum events to show.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def events_cmd(
    ctx: click.Context,
    level: str | None,
    event_type: str | None,
    limit: int,
    as_json: bool,
) -> None:
    """Show the structured event log of the project directory, newest first."""
    config = ctx.obj
    project_dir = ctx.find_root().params["project_dir"]
    sink = EventSink(project_dir, tail_bytes=config.get("logging_tail_bytes"))
    events = sink.read(level=level, event_type=event_type, limit=limit)

    if as_json:
        click.echo(json.dumps(events, indent=2))
        return
    if not events:
        click.echo("No events found.")
        return

    for evt in events:
        ts = evt.get("ts", "")
        lvl = evt.get("level", "").upper()
        etype = evt.get("event_type", "")
        msg = evt.get("message", "")
        line = f"[{ts}] {lvl:7s} {etype}: {msg}"
        formula = evt.get("context", {}).get("formula")
        if formula:
            line += f"  [{formula}]"
        err = evt.get("error_code")
        if err:
            line += f"  ({err})"
        click.echo(line)


@main.command()
def credits() -> None:
    """Show project credits."""
    click.echo(f"exprparse {__version__}")
    click.echo("Based on Expression Parser (c) 2025 Kateryna Laptieva.")
    click.echo("A demonstration of grammar-driven formula parsing.")


def _interactive(config: dict[str, Any]) -> None:
    formula = click.prompt("Enter formula (e.g. ROI = (R - C) / C * 100)").strip()
    raw = click.prompt(
        "Enter variables (e.g. R=1500 C=1000)", default="", show_default=False
    )
    bindings = parse_bindings_text(raw)
    result = _evaluate(formula, bindings, config, source="prompt")
    _echo_result(formula, result, as_json=False)

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import typer

from .config import build_layout_options, build_request, resolve_parameters
from .core import CardBuilder
from .errors import BingoError
from .layout import PageLayoutEngine
from .logging_setup import setup_logging
from .pool import load_icon_pool
from .render import render_to_pdf
from .serialize import build_run_meta, emit_cards_json, emit_summary_csv, icon_usage, prepare_output
from .verify import report_ok, verify as verify_session, verify_document
from .version import __version__

app = typer.Typer(help="Icon bingo card generator CLI")
logger = logging.getLogger(__name__)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(0)


@app.callback()
def common_options(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show application version and exit",
        is_eager=True,
        callback=_version_callback,
    ),
) -> None:
    """Icon bingo card generator."""


@app.command()
def generate(
    icons: str = typer.Option(None, "--icons", help="Directory of icon images"),
    config: str = typer.Option(None, "--config", help="Path to config file (YAML/JSON)"),
    grid_size: Optional[int] = typer.Option(None, "--grid-size", help="Cells per row/column"),
    set_count: Optional[int] = typer.Option(None, "--sets", help="Number of sets"),
    cards_per_set: Optional[int] = typer.Option(None, "--cards-per-set", help="Cards in each set"),
    title: str = typer.Option(None, "--title", help="Card title"),
    center_blank: Optional[bool] = typer.Option(None, "--center-blank/--no-center-blank", help="Free center cell on odd grids"),
    multi_hit: Optional[bool] = typer.Option(None, "--multi-hit/--no-multi-hit", help="Enable multi-hit targets"),
    difficulty: str = typer.Option(None, "--difficulty", help="light|medium|hard"),
    distribution: str = typer.Option(None, "--distribution", help="same_icons|different_icons"),
    same_card: Optional[bool] = typer.Option(None, "--same-card/--no-same-card", help="Identical cards within a set"),
    layout: str = typer.Option(None, "--layout", help="one-per-page|two-per-page"),
    show_labels: Optional[bool] = typer.Option(None, "--labels/--no-labels", help="Print icon names"),
    compression: str = typer.Option(None, "--compression", help="none|fast|medium|slow image compression"),
    seed: Optional[int] = typer.Option(None, "--seed", help="RNG seed (random if omitted)"),
    out_pdf: str = typer.Option(None, "--out-pdf", help="PDF output path"),
    out_cards: str = typer.Option(None, "--out-cards", help="cards.json output path"),
    summary_csv: str = typer.Option(None, "--summary-csv", help="Icon usage CSV (optional)"),
    log_file: str = typer.Option(None, "--log-file", help="Log file path"),
    log_level: str = typer.Option(None, "--log-level", help="DEBUG|INFO|WARN|ERROR"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Resolve params and exit"),
    force: bool = typer.Option(False, "--force", help="Overwrite outputs if they exist"),
    no_mkdirs: bool = typer.Option(False, "--no-mkdirs", help="Do not create parent directories"),
) -> None:
    """Generate card sets from an icon directory and write a printable PDF."""

    options = {
        "icons_dir": icons,
        "grid_size": grid_size,
        "set_count": set_count,
        "cards_per_set": cards_per_set,
        "title": title,
        "center_blank": center_blank,
        "multi_hit_mode": multi_hit,
        "difficulty": difficulty,
        "icon_distribution": distribution,
        "same_card_across_set": same_card,
        "layout": layout,
        "show_labels": show_labels,
        "compression_level": compression,
        "seed.value": seed,
        "out_pdf": out_pdf,
        "out_cards": out_cards,
        "summary_csv": summary_csv,
        "log_file": log_file,
        "log_level": log_level,
    }
    cli_overrides = {k: v for k, v in options.items() if v is not None}

    try:
        resolved, params_hash, _cfg_path = resolve_parameters(
            config_path_str=config, cli_overrides=cli_overrides
        )
    except (BingoError, FileNotFoundError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=2)

    setup_logging(
        level=str(resolved.get("log_level", "INFO")),
        log_file=resolved.get("log_file"),
        json_format=(str(resolved.get("log_format", "text")) == "json"),
    )

    if dry_run:
        typer.echo(f"Params hash: {params_hash}")
        typer.echo(json.dumps(resolved, indent=2, sort_keys=True, default=str))
        raise typer.Exit(0)

    if not resolved.get("icons_dir"):
        typer.echo("No icon directory given (--icons or icons_dir in config)", err=True)
        raise typer.Exit(code=2)

    seed_cfg = resolved.get("seed", {}) or {}
    rng_engine = str(seed_cfg.get("engine", "py_random"))
    seed_value = seed_cfg.get("value")
    seed_value = int(seed_value) if seed_value is not None else None

    try:
        request = build_request(resolved)
        layout_options = build_layout_options(resolved)
        pool = load_icon_pool(Path(resolved["icons_dir"]))
        result = CardBuilder(rng_engine=rng_engine, seed=seed_value).build(request, pool)
    except (BingoError, FileNotFoundError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=2)

    session = result.session
    typer.echo(
        f"Generated {len(session.card_sets)} set(s), {len(session.cards)} card(s) "
        f"in {result.metrics.total_time:.2f}s"
    )
    if result.metrics.degraded_sets:
        typer.echo(
            f"Warning: {result.metrics.degraded_sets} set(s) could not be made distinct "
            "from earlier sets; add more icons for more variety",
            err=True,
        )

    pages = PageLayoutEngine(layout_options).layout(session.cards)

    out_pdf_path = Path(resolved["out_pdf"])
    out_cards_path = Path(resolved["out_cards"])
    summary_path = Path(resolved["summary_csv"]) if resolved.get("summary_csv") else None
    try:
        # refuse before writing anything
        for target in filter(None, (out_pdf_path, out_cards_path, summary_path)):
            prepare_output(target, mkdirs=not no_mkdirs, overwrite=force)
        render_to_pdf(pages, out_pdf_path, layout_options, title=request.display_title)
        emit_cards_json(
            out_cards_path,
            session=session,
            run_meta=build_run_meta(
                app_version=__version__,
                params_hash=params_hash,
                seed=seed_value,
                rng_engine=rng_engine,
            ),
            mkdirs=not no_mkdirs,
            overwrite=force,
        )
        if summary_path is not None:
            emit_summary_csv(
                summary_path,
                usage=icon_usage(list(session.cards)),
                mkdirs=not no_mkdirs,
                overwrite=force,
            )
    except (FileExistsError, FileNotFoundError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)

    report = verify_session(session)
    if not report_ok(report):
        logger.error("Verification failed: %s", {k: v for k, v in report.items() if k.startswith("ok_")})
        raise typer.Exit(code=1)

    typer.echo(f"Wrote {len(pages)} page(s) to {out_pdf_path}")
    typer.echo(f"Card data: {out_cards_path}")
    raise typer.Exit(code=0)


@app.command()
def verify(
    cards: str = typer.Option(..., "--cards", help="Path to cards.json"),
) -> None:
    """Check a cards.json produced by `generate`."""
    path = Path(cards)
    if not path.exists():
        typer.echo(f"File not found: {path}", err=True)
        raise typer.Exit(code=2)
    try:
        doc = json.loads(path.read_text(encoding="utf-8"))
        report = verify_document(doc)
    except json.JSONDecodeError as exc:
        typer.echo(f"Error: {path} is not valid JSON: {exc}", err=True)
        raise typer.Exit(code=2)
    except (KeyError, TypeError, ValueError) as exc:
        typer.echo(f"Error: {path} is not a cards.json document: {exc!r}", err=True)
        raise typer.Exit(code=2)
    typer.echo(json.dumps({k: v for k, v in report.items() if k != "frequencies"}, indent=2, sort_keys=True))
    raise typer.Exit(code=0 if report_ok(report) else 1)


def main(_argv: list[str] | None = None) -> int:
    try:
        app(standalone_mode=True)
        return 0
    except SystemExit as e:
        return int(e.code) if e.code is not None else 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())

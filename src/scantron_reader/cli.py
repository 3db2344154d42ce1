from __future__ import annotations

import logging
import sys
from dataclasses import replace
from typing import List, Optional

import typer
import yaml
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

# Config loader that supports YAML (.yaml/.yml) and JSON
from .config_io import (
    DecoderConfig,
    GradingConfig,
    layout_for_questions,
    load_config,
    question_points_from,
)
from .scoring_defaults import apply_overrides

# Core modules
from .decode_core import (
    build_answer_keys,
    decode_batch,
    grade_cards,
    read_card_streams,
    write_answers,
)

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="scantron-reader: decode raw scanner output into answer files and grades.",
)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _build_config(
    config: Optional[str],
    questions: Optional[int],
    fill_threshold: Optional[int],
    permission_threshold: Optional[int],
) -> DecoderConfig:
    """Config file (or built-in defaults) with command-line overrides on top."""
    try:
        cfg = load_config(config) if config else DecoderConfig()
    except (ValueError, OSError, yaml.YAMLError) as e:
        rprint(f"[red]Failed to load config {config}:[/red] {e}")
        raise typer.Exit(code=2)

    layout = cfg.layout
    if questions is not None:
        try:
            layout = replace(layout, question_count=questions) if config else layout_for_questions(questions)
        except ValueError as e:
            rprint(f"[red]Invalid question count:[/red] {e}")
            raise typer.Exit(code=2)
    defaults = apply_overrides(
        fill_threshold=fill_threshold,
        permission_threshold=permission_threshold,
        base=cfg.defaults,
    )
    return replace(cfg, defaults=defaults, layout=layout)


def _build_grading(
    base: GradingConfig,
    points: Optional[float],
    question_points: Optional[List[str]],
) -> GradingConfig:
    """Config-file grading with --points / --question-points on top."""
    overrides = dict(base.question_points)
    try:
        for item in question_points or []:
            question, sep, value = item.partition("=")
            if not sep:
                raise ValueError(f"expected QUESTION=POINTS, got {item!r}")
            overrides.update(question_points_from({question: float(value)}))
        return GradingConfig(
            points=base.points if points is None else points,
            question_points=question_points_from(overrides),
        )
    except ValueError as e:
        rprint(f"[red]Invalid points:[/red] {e}")
        raise typer.Exit(code=2)


def _decode_file(input_txt: str, cfg: DecoderConfig):
    try:
        streams = read_card_streams(input_txt)
    except OSError as e:
        rprint(f"[red]Cannot read {input_txt}:[/red] {e}")
        raise typer.Exit(code=2)
    result = decode_batch(streams, cfg)
    for idx, msg in result.failures:
        rprint(f"[yellow]Card {idx} skipped:[/yellow] {msg}")
    return result


# Options shared by every command
CONFIG_OPT = typer.Option(None, "--config", "-c", help="Config file (.yaml/.yml or .json)")
QUESTIONS_OPT = typer.Option(None, "--questions", "-q", help="Number of questions on the exam")
FILL_OPT = typer.Option(None, "--fill-threshold", help="Darkness code point above which a bubble is filled")
PERMISSION_OPT = typer.Option(None, "--permission-threshold", help="Threshold for the grant-permission bubble")


# ---------------------------- DECODE ---------------------------------
@app.command()
def decode(
    input_txt: str = typer.Argument(..., help="Raw scanner output, one card per line"),
    out_txt: str = typer.Option("answers.txt", "--out", "-o", help="Output answer file"),
    multiple: bool = typer.Option(False, "--multiple/--single",
        help="Write the five-line multiple-answer layout instead of one line per card"),
    config: Optional[str] = CONFIG_OPT,
    questions: Optional[int] = QUESTIONS_OPT,
    fill_threshold: Optional[int] = FILL_OPT,
    permission_threshold: Optional[int] = PERMISSION_OPT,
):
    """
    Decode every card and write the single- or multiple-answer file.
    """
    cfg = _build_config(config, questions, fill_threshold, permission_threshold)
    result = _decode_file(input_txt, cfg)
    if not result.cards:
        rprint("[red]No card could be decoded.[/red]")
        raise typer.Exit(code=2)
    write_answers(result.decoded, out_txt, multiple=multiple)
    rprint(f"[green]Wrote:[/green] {out_txt} ({len(result.cards)} card(s))")


# ---------------------------- INSPECT --------------------------------
@app.command()
def inspect(
    input_txt: str = typer.Argument(..., help="Raw scanner output, one card per line"),
    config: Optional[str] = CONFIG_OPT,
    questions: Optional[int] = QUESTIONS_OPT,
    fill_threshold: Optional[int] = FILL_OPT,
    permission_threshold: Optional[int] = PERMISSION_OPT,
):
    """
    List the scanned cards: WID, version and sheet number.
    """
    cfg = _build_config(config, questions, fill_threshold, permission_threshold)
    result = _decode_file(input_txt, cfg)

    table = Table(title="Scanned Cards")
    table.add_column("Card", justify="right")
    table.add_column("WID", no_wrap=True, min_width=9)
    table.add_column("Version", justify="right")
    table.add_column("Sheet", justify="right")
    table.add_column("Answers", overflow="fold")
    for idx, card in result.cards:
        table.add_row(str(idx), card.wid, str(card.version), str(card.sheet_number), card.single_answers)
    Console().print(table)


# ----------------------------- GRADE ---------------------------------
@app.command()
def grade(
    input_txt: str = typer.Argument(..., help="Raw scanner output of the student cards"),
    key_txt: str = typer.Option(..., "--key", "-k",
        help="Raw scanner output of the answer key cards, one per test version"),
    out_csv: str = typer.Option("results.csv", "--out-csv", "-o", help="Output CSV of per-student results"),
    points: Optional[float] = typer.Option(None, "--points", help="Points for every question (default 1)"),
    question_points: Optional[List[str]] = typer.Option(None, "--question-points",
        help="Points for one question as QUESTION=POINTS; repeat for several"),
    config: Optional[str] = CONFIG_OPT,
    questions: Optional[int] = QUESTIONS_OPT,
    fill_threshold: Optional[int] = FILL_OPT,
    permission_threshold: Optional[int] = PERMISSION_OPT,
):
    """
    Grade student cards against key cards scanned with the same machine.
    """
    cfg = _build_config(config, questions, fill_threshold, permission_threshold)
    grading = _build_grading(cfg.grading, points, question_points)
    keys = build_answer_keys(_decode_file(key_txt, cfg).decoded)
    if not keys:
        rprint(f"[red]No answer key could be decoded from {key_txt}.[/red]")
        raise typer.Exit(code=2)

    result = _decode_file(input_txt, cfg)
    try:
        grade_cards(result.cards, keys, out_csv, grading)
    except OSError as e:
        rprint(f"[red]Grading failed:[/red] {e}")
        raise typer.Exit(code=2)

    rprint(f"[green]Wrote results:[/green] {out_csv}")


# ------------------------------- MAIN --------------------------------
def app_main() -> None:
    """Entry point for console_scripts."""
    try:
        app()
    except KeyboardInterrupt:
        rprint("\n[red]Interrupted[/red]")
        sys.exit(130)


if __name__ == "__main__":
    app_main()

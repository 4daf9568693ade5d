"""
Command-line interface for tcgaid.
Translates TCGA barcodes <-> GDC UUIDs and prints the resulting pairs as TSV.
"""

import click
import logging
import pandas as pd
import sys
import typing

from stairval.notepad import create_notepad

from .barcode import Granularity, classify_granularity, truncate_barcodes
from .errors import TranslationError
from .gdc import GDCQueryService
from .translate import IdTranslator

_LEVELS = [g.value for g in Granularity]


@click.group()
@click.option("--verbose", is_flag=True, help="Log queries and row counts to stderr")
@click.option(
    "--gdc-url",
    default=None,
    type=str,
    help="GDC API root (default: $GDC_BASE_URL or https://api.gdc.cancer.gov)",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, gdc_url: typing.Optional[str]):
    """tcgaid: translate TCGA barcodes to GDC UUIDs and back."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    ctx.obj = IdTranslator(GDCQueryService(base_url=gdc_url))


@main.command(name="uuid-to-barcode")
@click.argument("ids", nargs=-1)
@click.option(
    "-t",
    "--id-type",
    default="case_id",
    type=click.Choice(["case_id", "file_id"]),
    help="kind of UUIDs given (default: case_id)",
)
@click.option(
    "-e",
    "--end-point",
    default="participant",
    type=click.Choice(_LEVELS),
    help="barcode cutoff for file UUIDs (default: participant)",
)
@click.option("--legacy", is_flag=True, help="search the GDC legacy archive")
@click.option("-o", "--output", type=click.Path(dir_okay=False, writable=True), help="write TSV here instead of stdout")
@click.pass_obj
def uuid_to_barcode_cmd(
    translator: IdTranslator,
    ids: typing.Tuple[str, ...],
    id_type: str,
    end_point: str,
    legacy: bool,
    output: typing.Optional[str],
):
    """
    Translate case or file UUIDs into TCGA barcodes.
    """
    frame = _run(lambda: translator.uuid_to_barcode(ids, id_type=id_type, end_point=end_point, legacy=legacy))
    _write_relation(frame, output)


@main.command(name="barcode-to-uuid")
@click.argument("barcodes", nargs=-1)
@click.option("--legacy", is_flag=True, help="search the GDC legacy archive")
@click.option("-o", "--output", type=click.Path(dir_okay=False, writable=True), help="write TSV here instead of stdout")
@click.pass_obj
def barcode_to_uuid_cmd(
    translator: IdTranslator,
    barcodes: typing.Tuple[str, ...],
    legacy: bool,
    output: typing.Optional[str],
):
    """
    Translate TCGA barcodes (all of one granularity) into file UUIDs.
    """
    notepad = create_notepad("barcodes")
    try:
        frame = _run(lambda: translator.barcode_to_uuid(barcodes, legacy=legacy, notepad=notepad))
    finally:
        _report_issues(notepad)
    _write_relation(frame, output)


@main.command(name="granularity")
@click.argument("barcodes", nargs=-1, required=True)
def granularity_cmd(barcodes: typing.Tuple[str, ...]):
    """
    Print the granularity shared by a batch of barcodes.
    """
    level = _run(lambda: classify_granularity(barcodes))
    click.echo(level.value)


@main.command(name="truncate")
@click.argument("barcodes", nargs=-1, required=True)
@click.option(
    "-l",
    "--level",
    required=True,
    type=click.Choice(_LEVELS),
    help="granularity to cut the barcodes down to",
)
def truncate_cmd(barcodes: typing.Tuple[str, ...], level: str):
    """
    Cut barcodes down to a coarser granularity, one per line.
    """
    for barcode in _run(lambda: truncate_barcodes(barcodes, level)):
        click.echo(barcode)


def _run(action: typing.Callable[[], typing.Any]) -> typing.Any:
    # turn library errors into a clean CLI failure
    try:
        return action()
    except TranslationError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(2 if isinstance(e, ValueError) else 1)


def _report_issues(notepad):
    # list every barcode problem, not just the first
    if notepad.has_errors(include_subsections=True):
        click.echo("Errors found in barcodes:", err=True)
        for err in notepad.errors():
            click.echo(f"- {err}", err=True)


def _write_relation(frame: pd.DataFrame, output: typing.Optional[str]):
    if output:
        frame.to_csv(output, sep="\t", index=False)
        click.echo(f"Wrote {len(frame)} rows to {output}", err=True)
    else:
        click.echo(frame.to_csv(sep="\t", index=False), nl=False)


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
Procurement ingestion and receiving -- CLI entry point.

Usage examples:
  python main.py scan-pdf po.pdf                     # Print the parsed draft as JSON
  python main.py scan-pdf po.pdf --save              # Parse and create the PO
  python main.py import-pos purchase_orders.xlsx     # Bulk PO import (duplicates skipped)
  python main.py import-assets assets.xlsx           # Bulk asset import
  python main.py export-assets inventory.xlsx        # Inventory workbook

  python main.py list-pos
  python main.py show-po <PO_ID>
  python main.py receive <PO_ID> --item <LINE_ID>:5:<SUBCAT_ID>:SN1,SN2
  python main.py delete-po <PO_ID>
"""
import json
import logging
import sys
from pathlib import Path

import click

from config import Config
from models.receiving import ReceiptInstruction
from procurement.exceptions import ProcurementError
from procurement.service import ProcurementService


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-8s  %(name)s - %(message)s",
        datefmt="%H:%M:%S",
    )
    # Quieten noisy third-party loggers
    logging.getLogger("pdfminer").setLevel(logging.WARNING)
    logging.getLogger("pdfplumber").setLevel(logging.WARNING)


def _service(ctx: click.Context) -> ProcurementService:
    config = Config()
    if ctx.obj.get("db"):
        config.db_path = Path(ctx.obj["db"])
    return ProcurementService(config)


def _fail(exc: ProcurementError) -> None:
    click.echo(f"Error: {exc}", err=True)
    sys.exit(1)


def parse_item_option(value: str) -> ReceiptInstruction:
    """LINE_ID:QTY:SUBCAT[:S1,S2,...] -> ReceiptInstruction."""
    parts = value.split(":", 3)
    if len(parts) < 3:
        raise click.BadParameter(f"expected LINE_ID:QTY:SUBCAT[:SERIALS], got {value!r}")
    line_item_id, qty, sub_category_id = (p.strip() for p in parts[:3])
    try:
        quantity = float(qty)
    except ValueError:
        raise click.BadParameter(f"quantity {qty!r} is not a number")
    serials = parts[3].split(",") if len(parts) == 4 and parts[3] else []
    return ReceiptInstruction(
        line_item_id=line_item_id,
        quantity=quantity,
        target_sub_category_id=sub_category_id,
        serials=serials,
    )


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--db", default=None, type=click.Path(dir_okay=False), help="SQLite database path")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, db: str | None) -> None:
    """Procurement ingestion and receiving -- POs in, serialized assets out."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["db"] = db
    _setup_logging(verbose)


# --------------------------------------------------------------------
# Purchase orders
# --------------------------------------------------------------------

@cli.command("scan-pdf")
@click.argument("pdf", type=click.Path(exists=True, dir_okay=False))
@click.option("--save", is_flag=True, help="Create the purchase order from the draft")
@click.pass_context
def scan_pdf(ctx: click.Context, pdf: str, save: bool) -> None:
    """Parse a purchase-order PDF into a draft."""
    service = _service(ctx)
    try:
        draft = service.scan_pdf(pdf)
        click.echo(json.dumps(draft.model_dump(mode="json"), indent=2))
        if save:
            po = service.create_purchase_order(draft)
            click.echo(f"\nCreated PO {po.po_number}  (id {po.id}, total {po.total_amount:.2f})")
    except ProcurementError as exc:
        _fail(exc)


@cli.command("import-pos")
@click.argument("spreadsheet", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def import_pos(ctx: click.Context, spreadsheet: str) -> None:
    """Import purchase orders from a spreadsheet, skipping known PO numbers."""
    try:
        result = _service(ctx).import_purchase_orders(spreadsheet)
    except ProcurementError as exc:
        _fail(exc)
        return
    click.echo(f"\nPO groups:  {result.total_groups}")
    click.echo(f"Created:    {result.created}")
    if result.skipped:
        click.echo(f"Skipped (already exist): {', '.join(result.skipped)}")


@cli.command("list-pos")
@click.pass_context
def list_pos(ctx: click.Context) -> None:
    """List purchase orders, newest first."""
    orders = _service(ctx).list_purchase_orders()
    if not orders:
        click.echo("No purchase orders.")
        return
    for po in orders:
        received = sum(item.received_qty for item in po.line_items)
        ordered = sum(item.quantity for item in po.line_items)
        click.echo(
            f"  {po.id}  {po.po_number:<16} {str(po.date or ''):<10}  {po.status:<9} "
            f"{received:g}/{ordered:g} received  {po.total_amount:>12.2f}  {po.vendor_name}"
        )


@cli.command("show-po")
@click.argument("po_id")
@click.pass_context
def show_po(ctx: click.Context, po_id: str) -> None:
    """Show one purchase order with its line items."""
    po = _service(ctx).get_purchase_order(po_id)
    if po is None:
        click.echo(f"Error: purchase order {po_id} not found", err=True)
        sys.exit(1)

    click.echo()
    click.echo(f"  PO:       {po.po_number}  [{po.status}]")
    click.echo(f"  Date:     {po.date or '(unknown)'}")
    click.echo(f"  Vendor:   {po.vendor_name or '(unknown)'}")
    click.echo(f"  GSTIN:    {po.gstin or '(none)'}")
    for key, value in po.properties.items():
        click.echo(f"  {key + ':':<9} {value}")
    click.echo(f"  Total:    {po.total_amount:.2f}")
    click.echo()
    for item in po.line_items:
        click.echo(
            f"    {item.sr_no:>3}. {item.product_name:<40} "
            f"{item.received_qty:g}/{item.quantity:g} {item.uom}  "
            f"@ {item.unit_price:.2f} +{item.gst_percent:g}%  = {item.total_amount:.2f}  "
            f"[{item.id}]"
        )
    click.echo()


@cli.command("delete-po")
@click.argument("po_id")
@click.pass_context
def delete_po(ctx: click.Context, po_id: str) -> None:
    """Delete a purchase order.  Assets received against it are kept."""
    try:
        deleted = _service(ctx).delete_purchase_order(po_id)
    except ProcurementError as exc:
        _fail(exc)
        return
    if not deleted:
        click.echo(f"Error: purchase order {po_id} not found", err=True)
        sys.exit(1)
    click.echo(f"Deleted purchase order {po_id}")


# --------------------------------------------------------------------
# Receiving
# --------------------------------------------------------------------

@cli.command()
@click.argument("po_id")
@click.option(
    "--item", "items", multiple=True, required=True,
    help="LINE_ID:QTY:SUBCAT_ID[:SERIAL1,SERIAL2,...]  (repeatable)",
)
@click.pass_context
def receive(ctx: click.Context, po_id: str, items: tuple[str, ...]) -> None:
    """
    Record goods received against PO_ID.

    \b
    Every unit becomes one ACTIVE asset.  Missing serials are generated.
    Either every item is received or nothing is.
    """
    instructions = [parse_item_option(value) for value in items]
    try:
        result = _service(ctx).receive_items(po_id, instructions)
    except ProcurementError as exc:
        _fail(exc)
        return
    click.echo(f"\nReceived {result.units_received:g} unit(s); PO is now {result.status}.")
    click.echo(f"Created {len(result.asset_ids)} asset(s).")


# --------------------------------------------------------------------
# Assets
# --------------------------------------------------------------------

@cli.command("import-assets")
@click.argument("spreadsheet", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def import_assets(ctx: click.Context, spreadsheet: str) -> None:
    """Import assets from a spreadsheet with a Category column."""
    try:
        report = _service(ctx).import_assets(spreadsheet)
    except ProcurementError as exc:
        _fail(exc)
        return
    click.echo(f"\nRows:      {report.total}")
    click.echo(f"Imported:  {report.success}")
    if report.errors:
        click.echo(f"Errors ({len(report.errors)}):")
        for err in report.errors:
            click.echo(f"  {err}")


@cli.command("export-assets")
@click.argument("destination", type=click.Path(dir_okay=False), required=False)
@click.pass_context
def export_assets(ctx: click.Context, destination: str | None) -> None:
    """Write the asset inventory to an .xlsx workbook."""
    try:
        path = _service(ctx).export_assets(destination)
    except ProcurementError as exc:
        _fail(exc)
        return
    click.echo(f"Exported to {path}")


if __name__ == "__main__":
    cli()

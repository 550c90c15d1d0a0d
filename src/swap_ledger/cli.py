from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

from swap_ledger.config.app_config import AppConfig, load_app_config
from swap_ledger.errors import LedgerError
from swap_ledger.ingest.swaps import load_swaps
from swap_ledger.periods import DEFAULT_PERIOD, PERIODS, ReportQuery
from swap_ledger.reconstruct.costing import resolve_strategy
from swap_ledger.report import Report, build_report, report_payload
from swap_ledger.storage.sqlite_store import connect, init_db, upsert_trades

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="PnL accounting over settled token swaps.")
    parser.add_argument("--config", type=Path, default=None, help="Path to app.toml.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    report_parser = subparsers.add_parser("report", help="Compute a PnL report from a swap export.")
    report_parser.add_argument("export_path", type=Path, help="Swap export (json/csv/tsv).")
    report_parser.add_argument("--period", choices=PERIODS, default=DEFAULT_PERIOD)
    report_parser.add_argument("--year", type=int, default=None)
    report_parser.add_argument("--month", type=int, default=None)
    report_parser.add_argument(
        "--costing",
        type=str,
        default=None,
        help="Costing strategy override (lifetime or remaining).",
    )
    report_parser.add_argument("--json", action="store_true", help="Print the JSON payload.")
    report_parser.add_argument("--out", type=Path, default=None, help="Write output to a file instead of stdout.")

    import_parser = subparsers.add_parser("import", help="Load a swap export into the SQLite store.")
    import_parser.add_argument("export_path", type=Path, help="Swap export (json/csv/tsv).")
    import_parser.add_argument("--account", type=str, required=True, help="Account id to file trades under.")
    import_parser.add_argument("--db", type=Path, default=None, help="Override the configured SQLite path.")

    subparsers.add_parser("serve", help="Run the HTTP API with uvicorn.")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_app_config(args.config)
    except ValueError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 1

    if args.command == "import":
        return _run_import(args, config)
    if args.command == "serve":
        return _run_serve(config)
    return _run_report(args, config)


def _run_import(args: argparse.Namespace, config: AppConfig) -> int:
    result = load_swaps(args.export_path, account_id=args.account, settings=config.ledger)
    if result.skipped:
        print(f"Skipped {result.skipped} swap rows during normalization.", file=sys.stderr)
    db_path = args.db or config.app.db_path
    conn = connect(db_path)
    try:
        init_db(conn)
        count = upsert_trades(conn, result.trades)
    finally:
        conn.close()
    logger.info("Imported %d trades for %s into %s", count, args.account, db_path)
    return 0


def _run_serve(config: AppConfig) -> int:
    import uvicorn

    uvicorn.run(
        "swap_ledger.web.app:app",
        host=config.app.host,
        port=config.app.port,
        reload=config.app.reload,
    )
    return 0


def _run_report(args: argparse.Namespace, config: AppConfig) -> int:
    settings = config.ledger
    if args.costing:
        try:
            settings = replace(settings, costing=resolve_strategy(args.costing).name)
        except ValueError as exc:
            print(str(exc), file=sys.stderr)
            return 1

    result = load_swaps(args.export_path, settings=settings)
    if result.skipped:
        print(f"Skipped {result.skipped} swap rows during normalization.", file=sys.stderr)
    if result.unsettled:
        print(f"Ignored {result.unsettled} unsettled swaps.", file=sys.stderr)

    query = ReportQuery(period=args.period, year=args.year, month=args.month)
    try:
        report = build_report(result.trades, query, settings=settings)
    except LedgerError as exc:
        print(f"Report failed: {exc}", file=sys.stderr)
        return 1

    if args.json:
        output = [json.dumps(report_payload(report), indent=2)]
    else:
        output = _format_report(report, settings.base_symbol)

    if args.out is None:
        for line in output:
            print(line)
    else:
        args.out.parent.mkdir(parents=True, exist_ok=True)
        args.out.write_text("\n".join(output) + "\n", encoding="utf-8")
    return 0


def _format_report(report: Report, base_symbol: str) -> list[str]:
    summary = report.summary
    start = report.start_date.isoformat() if report.start_date else "all"
    lines = [
        f"period {report.period} {start} -> {report.end_date.isoformat()}",
        f"baseline_pnl {report.cumulative_pnl_baseline:.6g} {base_symbol}",
        f"realized_pnl {summary.total_realized_pnl:.6g} {base_symbol}",
        f"volume {summary.total_volume:.6g} {base_symbol}",
        f"trades {summary.total_trades}",
        f"streak current={summary.current_streak} best={summary.best_streak} "
        f"win_rate={summary.win_rate:.2%}",
        "",
        "date pnl trades volume",
    ]
    for entry in report.daily_pnl:
        lines.append(f"{entry.date} {entry.pnl:.6g} {entry.trades} {entry.volume:.6g}")
    lines.append("")
    lines.append("symbol balance avg_buy avg_sell realized trades open")
    for view in report.positions:
        position = view.position
        lines.append(
            f"{position.symbol} {position.current_balance:.6g} {position.avg_buy_price:.6g} "
            f"{position.avg_sell_price:.6g} {position.realized_pnl:.6g} {position.trades} "
            f"{'yes' if view.is_open else 'no'}"
        )
    return lines


if __name__ == "__main__":
    raise SystemExit(main())

"""Composes positions, the daily ledger and streaks into a PnL report."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Iterable, Mapping

from swap_ledger.config.app_config import LedgerSettings, default_ledger_settings
from swap_ledger.metrics.calendar_view import fill_month
from swap_ledger.metrics.daily import aggregate_daily, sorted_entries
from swap_ledger.metrics.streaks import StreakStats, analyze_streaks
from swap_ledger.models import DailyLedgerEntry, Position, TradeRecord
from swap_ledger.periods import PERIOD_CALENDAR, ReportQuery, Window, resolve_window
from swap_ledger.reconstruct.baseline import compute_baseline, split_window
from swap_ledger.reconstruct.positions import DUST_THRESHOLD, PositionAccountant, is_open


@dataclass(frozen=True)
class PositionView:
    position: Position
    is_open: bool


@dataclass(frozen=True)
class ReportSummary:
    total_realized_pnl: float
    total_volume: float
    total_trades: int
    current_streak: int
    best_streak: int
    win_rate: float


@dataclass(frozen=True)
class Report:
    period: str
    start_date: datetime | None
    end_date: datetime
    cumulative_pnl_baseline: float
    summary: ReportSummary
    daily_pnl: list[DailyLedgerEntry]
    positions: list[PositionView]
    calendar_data: dict[str, DailyLedgerEntry] | None = None
    active_positions: list[PositionView] = field(default_factory=list)
    closed_positions: list[PositionView] = field(default_factory=list)


def accountant_for(settings: LedgerSettings) -> PositionAccountant:
    return PositionAccountant(
        settings.base_mint,
        costing=settings.costing,
        strict_inventory=settings.strict_inventory,
        dust_threshold=settings.dust_threshold,
    )


def build_report(
    trades: Iterable[TradeRecord],
    query: ReportQuery | None = None,
    *,
    now: datetime | None = None,
    settings: LedgerSettings | None = None,
    prices: Mapping[str, float] | None = None,
) -> Report:
    ledger = settings or default_ledger_settings()
    window = resolve_window(query or ReportQuery(), now)
    accountant = accountant_for(ledger)
    history = list(trades)

    baseline = compute_baseline(accountant, history, window.start)
    _, within = split_window(history, window.start, window.end)
    daily = aggregate_daily(accountant, within, baseline.seed)

    # Portfolio view spans the whole history regardless of the chart window.
    positions = accountant.replay(history)

    return assemble_report(
        window,
        positions,
        daily,
        baseline_pnl=baseline.baseline_pnl,
        dust_threshold=ledger.dust_threshold,
        prices=prices,
    )


def assemble_report(
    window: Window,
    positions: Mapping[str, Position],
    daily: Mapping[str, DailyLedgerEntry],
    *,
    baseline_pnl: float = 0.0,
    dust_threshold: float = DUST_THRESHOLD,
    prices: Mapping[str, float] | None = None,
) -> Report:
    daily_series = sorted_entries(daily)
    streaks = analyze_streaks(daily_series)

    views = [
        _position_view(position, dust_threshold, prices)
        for position in _ordered_positions(positions.values())
    ]
    active = [view for view in views if view.is_open]
    closed = [view for view in views if not view.is_open and view.position.total_sold > 0]

    calendar_data = None
    if window.period == PERIOD_CALENDAR:
        calendar_data = fill_month(daily, window.year, window.month)

    return Report(
        period=window.period,
        start_date=window.start,
        end_date=window.end,
        cumulative_pnl_baseline=baseline_pnl,
        summary=_summary(daily_series, streaks),
        daily_pnl=daily_series,
        positions=views,
        calendar_data=calendar_data,
        active_positions=active,
        closed_positions=closed,
    )


def report_payload(report: Report) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "period": report.period,
        "startDate": _iso(report.start_date),
        "endDate": _iso(report.end_date),
        "cumulativePnLBaseline": report.cumulative_pnl_baseline,
        "summary": {
            "totalRealizedPnl": report.summary.total_realized_pnl,
            "totalVolume": report.summary.total_volume,
            "totalTrades": report.summary.total_trades,
            "currentStreak": report.summary.current_streak,
            "bestStreak": report.summary.best_streak,
            "winRate": report.summary.win_rate,
        },
        "dailyPnL": [_daily_payload(entry) for entry in report.daily_pnl],
        "positions": [_position_payload(view) for view in report.positions],
        "activePositions": [_position_payload(view) for view in report.active_positions],
        "closedPositions": [_position_payload(view) for view in report.closed_positions],
    }
    if report.calendar_data is not None:
        payload["calendarData"] = {
            key: _daily_payload(entry) for key, entry in report.calendar_data.items()
        }
    return payload


def _summary(daily_series: list[DailyLedgerEntry], streaks: StreakStats) -> ReportSummary:
    return ReportSummary(
        total_realized_pnl=sum(entry.pnl for entry in daily_series),
        total_volume=sum(entry.volume for entry in daily_series),
        total_trades=sum(entry.trades for entry in daily_series),
        current_streak=streaks.current_streak,
        best_streak=streaks.best_streak,
        win_rate=streaks.win_rate,
    )


def _ordered_positions(positions: Iterable[Position]) -> list[Position]:
    active = [position for position in positions if position.trades > 0]
    return sorted(
        active,
        key=lambda position: position.last_trade_at.timestamp() if position.last_trade_at else 0.0,
        reverse=True,
    )


def _position_view(
    position: Position, dust_threshold: float, prices: Mapping[str, float] | None
) -> PositionView:
    open_flag = is_open(position, dust_threshold)
    snapshot = replace(position)
    price = (prices or {}).get(position.mint)
    if open_flag and price is not None:
        snapshot.unrealized_pnl = position.current_balance * (price - position.avg_buy_price)
    return PositionView(position=snapshot, is_open=open_flag)


def _daily_payload(entry: DailyLedgerEntry) -> dict[str, Any]:
    return {"date": entry.date, "pnl": entry.pnl, "trades": entry.trades, "volume": entry.volume}


def _position_payload(view: PositionView) -> dict[str, Any]:
    position = view.position
    return {
        "mint": position.mint,
        "symbol": position.symbol,
        "totalBought": position.total_bought,
        "totalSold": position.total_sold,
        "avgBuyPrice": position.avg_buy_price,
        "avgSellPrice": position.avg_sell_price,
        "totalBuyCost": position.total_buy_cost,
        "totalSellRevenue": position.total_sell_revenue,
        "currentBalance": position.current_balance,
        "realizedPnl": position.realized_pnl,
        "unrealizedPnl": position.unrealized_pnl,
        "trades": position.trades,
        "lastTradeAt": _iso(position.last_trade_at),
        "isOpen": view.is_open,
    }


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None

from __future__ import annotations

import argparse
import logging
from typing import Sequence
from uuid import UUID

from config import config
from db.db import init_db
from db.repositories import AssetRepository, PortfolioHoldingRepository, PortfolioRepository, TransactionRepository
from services.assets import AssetService, DashboardSummary
from services.coingecko_client import CoinGeckoClient
from services.holdings import HoldingService, HoldingSummary


def _fmt(value: object | None) -> str:
    return "-" if value is None else str(value)


def _fmt_percent(value: object | None) -> str:
    return "-" if value is None else f"{value:.2f}%"


def print_dashboard(summary: DashboardSummary) -> None:
    print("Assets dashboard:")
    print(f"  Total value:      {summary.total_value}")
    print(f"  Total target:     {summary.total_target}")
    overall = None if summary.overall_progress is None else summary.overall_progress * 100
    print(f"  Overall progress: {_fmt_percent(overall)}")
    for item in summary.assets:
        progress = None if item.progress is None else item.progress * 100
        print(
            f"  - {item.asset.name:<24} {item.asset.asset_type.value:<10} "
            f"value={item.asset.current_value} target={_fmt(item.asset.target_value)} "
            f"progress={_fmt_percent(progress)} status={item.status.value}"
        )


def print_holdings(summaries: list[HoldingSummary]) -> None:
    print(f"Holdings ({len(summaries)}):")
    for summary in summaries:
        metrics = summary.metrics
        print(
            f"  - {summary.holding.token_symbol:<8} qty={metrics.quantity} "
            f"avg_buy={_fmt(metrics.average_buy_price)} cost={_fmt(metrics.total_cost_basis)} "
            f"price={_fmt(summary.current_price)} value={_fmt(summary.current_value)} "
            f"pnl={_fmt(summary.pnl)} ({_fmt_percent(summary.pnl_percentage)}) "
            f"weight={_fmt_percent(summary.weight_percentage)}"
        )


def main(argv: Sequence[str] | None = None) -> None:
    settings = config()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    parser = argparse.ArgumentParser(description="Portfolio ledger and savings target tracker.")
    parser.add_argument("--database-url", default=settings.database_url)
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init-db", help="Create the database schema.")
    init_parser.add_argument("--reset", action="store_true", help="Drop existing tables first.")

    dashboard_parser = subparsers.add_parser("dashboard", help="Show asset totals and progress toward targets.")
    dashboard_parser.add_argument("--user-id", type=UUID, required=True)

    holdings_parser = subparsers.add_parser("holdings", help="List portfolio holdings with metrics.")
    holdings_parser.add_argument("--portfolio-id", type=UUID, required=True)
    holdings_parser.add_argument("--user-id", type=UUID, required=True)
    holdings_parser.add_argument("--prices", action="store_true", help="Enrich holdings with CoinGecko prices.")

    args = parser.parse_args(argv)
    session_factory = init_db(args.database_url, reset=getattr(args, "reset", False))

    if args.command == "init-db":
        print(f"Database ready at {args.database_url}")
        return

    with session_factory() as session:
        if args.command == "dashboard":
            print_dashboard(AssetService(AssetRepository(session)).dashboard(args.user_id))
        elif args.command == "holdings":
            pricing = None
            if args.prices:
                pricing = CoinGeckoClient(
                    api_key=settings.coingecko_api_key,
                    base_url=settings.coingecko_base_url,
                    timeout=settings.request_timeout,
                )
            service = HoldingService(
                PortfolioRepository(session),
                PortfolioHoldingRepository(session),
                TransactionRepository(session),
                pricing,
            )
            print_holdings(service.list_holdings(args.portfolio_id, args.user_id, include_prices=args.prices))


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
simulate_sale.py: Drive a local presale engine through a sale.

Activates a batch of positions, buys into them in fixed-size tickets until
the requested number of phases has closed, then settles every position that
reached its cap. Nothing leaves the process; use it to eyeball a ladder
configuration before deploying it.

Usage:
    python scripts/simulate_sale.py [--positions N] [--ticket USD] [--phases N] [--burn PCT] [--reserve USD]

Examples:
    python scripts/simulate_sale.py
    python scripts/simulate_sale.py --positions 50 --ticket 2500 --phases 3 --burn 40

Settings (ladder shape, burn bounds, assets) are read from .env like the API.
"""

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

# ── Paths ──────────────────────────────────────────────────────
SCRIPT_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = SCRIPT_DIR.parent

# ── Colors ─────────────────────────────────────────────────────
GREEN = "\033[0;32m"
YELLOW = "\033[1;33m"
RED = "\033[0;31m"
CYAN = "\033[0;36m"
NC = "\033[0m"


def log(msg: str) -> None:
    print(f"{CYAN}[simulate]{NC} {msg}")


def ok(msg: str) -> None:
    print(f"{GREEN}[  ok  ]{NC} {msg}")


def err(msg: str) -> None:
    print(f"{RED}[error ]{NC} {msg}", file=sys.stderr)


def load_env() -> None:
    """Load .env from project root or backend, if present."""
    for env_path in (PROJECT_ROOT / ".env", PROJECT_ROOT / "backend" / ".env"):
        if env_path.exists():
            load_dotenv(env_path)
            return


def wallet(i: int) -> str:
    return f"0x{i + 1:040x}"


def main() -> None:
    parser = argparse.ArgumentParser(description="Simulate a tiered presale locally")
    parser.add_argument("--positions", type=int, default=20, help="Number of positions to activate")
    parser.add_argument("--ticket", type=int, default=1000, help="Purchase size in whole USD")
    parser.add_argument("--cap", type=int, default=5000, help="Position value cap in whole USD")
    parser.add_argument("--phases", type=int, default=1, help="Stop after this many phase advances")
    parser.add_argument("--burn", type=int, default=20, help="Burn percentage used for settlements")
    parser.add_argument("--reserve", type=int, default=0, help="Extra payout reserve to seed, in whole USD")
    args = parser.parse_args()

    if args.positions < 1 or args.ticket < 1 or args.cap < 1:
        err("positions, ticket and cap must be positive")
        sys.exit(1)

    load_env()

    # Imported after .env is loaded so Settings picks it up
    from app.core.config import Settings
    from app.core.constants import PRICE_SCALE, TOKEN_DECIMALS
    from app.ledger.engine import PresaleEngine
    from app.ledger.errors import LedgerError
    from app.workers.tokenomics import to_usd

    config = Settings()
    engine = PresaleEngine(config)
    asset = engine.assets.get(config.stable_asset_symbol)
    unit = 10**asset.decimals
    if args.reserve > 0:
        engine.fund_reserve(asset.symbol, args.reserve * unit)

    log(f"Ladder:      {YELLOW}{config.phase_count}{NC} phases from ${config.first_phase_base_price_usd}")
    log(f"Positions:   {args.positions} (cap ${args.cap})")
    log(f"Ticket:      ${args.ticket} in {asset.symbol}")
    log(f"Reserve:     {config.reserve_share_pct}% of each payment kept for payouts")

    for i in range(args.positions):
        engine.activate_position(i, wallet(i), args.cap * PRICE_SCALE)
        engine.deposit(asset.symbol, wallet(i), 10**9 * unit)

    purchases = 0
    while engine.router.cycle < args.phases:
        open_ids = [i for i in range(args.positions) if not engine.get_position(i).releasing]
        if not open_ids:
            log("Every position reached its cap before the target phase")
            break
        pid = open_ids[purchases % len(open_ids)]
        try:
            receipt = engine.purchase(wallet(pid), asset.symbol, args.ticket * unit, pid)
        except LedgerError as e:
            err(f"purchase into {pid} failed: {e.code}: {e.message}")
            sys.exit(1)
        purchases += 1
        if receipt.phase_advanced:
            ok(f"Phase {receipt.phase_index} opened after {purchases} purchases, price ${to_usd(engine.phases.get_current_price()):.2f}")

    settled = 0
    for i in range(args.positions):
        if not engine.get_position(i).releasing:
            continue
        try:
            quote = engine.settle(wallet(i), i, args.burn)
        except LedgerError as e:
            err(f"settlement of {i} failed: {e.code}: {e.message}")
            continue
        settled += 1
        log(
            f"Position {i}: burned {quote.burn_amount / TOKEN_DECIMALS:,.0f} "
            f"for {quote.stable_amount / unit:,.2f} {asset.symbol}"
        )

    stats = engine.stats()
    ok(f"Purchases:   {purchases}")
    ok(f"Sold:        {stats.total_sold / TOKEN_DECIMALS:,.0f} tokens")
    ok(f"Settled:     {settled} positions, {stats.total_stable_paid / unit:,.2f} {asset.symbol} paid")
    ok(f"Price now:   ${to_usd(stats.current_price):.2f} (phase {stats.phase_index})")


if __name__ == "__main__":
    main()

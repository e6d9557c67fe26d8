"""
Shiv Dhaba delivery client — one-shot command line.

    python main.py available
    python main.py mine
    python main.py accept <order_id>
    python main.py deliver <order_id> [--cash-collected]
    python main.py duty on|off
    python main.py logout

Uses the session persisted in the local store (log in through the app
first). Exit code 0 on success, 1 on an error, 2 on bad usage.
"""
import asyncio
import logging
import sys
from typing import Optional

from config import settings
from deps import ClientContext, open_client
from domain.errors import AppError
from models import Order

# ── Logging ─────────────────────────────────────────────────────────

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

USAGE = "usage: main.py available | mine | accept <id> | deliver <id> [--cash-collected] | duty on|off | logout"


class UsageError(Exception):
    pass


def format_order(order: Order) -> str:
    line = f"#{order.id} {order.order_number or '-'} {order.status.value} ₹{order.total_amount}"
    if order.delivery_address:
        line += f" → {order.delivery_address}"
    return line


def _order_id(argv: list[str]) -> int:
    if len(argv) < 2 or not argv[1].isdigit():
        raise UsageError(f"{argv[0]} needs a numeric order id")
    return int(argv[1])


async def handle_command(ctx: ClientContext, argv: list[str]) -> list[str]:
    """Run one command and return the lines to print."""
    if not argv:
        raise UsageError(USAGE)
    command = argv[0]

    if command == "available":
        orders = await ctx.tracker.refresh_available()
        return [format_order(o) for o in orders] or ["No orders waiting"]

    if command == "mine":
        orders = await ctx.tracker.refresh_mine()
        return [format_order(o) for o in orders] or ["No orders yet"]

    if command == "accept":
        order = await ctx.tracker.accept(_order_id(argv))
        return [f"Accepted {format_order(order)}", f"Tracking: {ctx.location.state.value}"]

    if command == "deliver":
        order_id = _order_id(argv)
        if "--cash-collected" in argv[2:]:
            ctx.tracker.confirm_cash_collected(order_id)
        order = await ctx.tracker.deliver(order_id)
        return [f"Delivered {format_order(order)}"]

    if command == "duty":
        if len(argv) < 2 or argv[1] not in ("on", "off"):
            raise UsageError("duty needs 'on' or 'off'")
        on = argv[1] == "on"
        status = await ctx.delivery_status.update_status(is_available=on, is_on_duty=on)
        return [f"On duty: {status.is_on_duty}, available: {status.is_available}"]

    if command == "logout":
        await ctx.auth.logout()
        return ["Logged out"]

    raise UsageError(f"Unknown command: {command}\n{USAGE}")


async def run(argv: list[str], **overrides) -> int:
    async with open_client(**overrides) as ctx:
        try:
            lines = await handle_command(ctx, argv)
        except UsageError as e:
            print(e, file=sys.stderr)
            return 2
        except AppError as e:
            logger.debug(f"Command failed: {e.code} ({e.status_code})")
            print(e.message, file=sys.stderr)
            return 1
    for line in lines:
        print(line)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    return asyncio.run(run(sys.argv[1:] if argv is None else argv))


if __name__ == "__main__":
    sys.exit(main())

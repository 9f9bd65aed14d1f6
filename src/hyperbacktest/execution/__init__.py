"""
Order execution for the backtester.

Exchange
    Turns order events into fills, applying candle fitting, slippage,
    portfolio and exchange limits, and settles the funds ledger.

OrderManager
    Order sink storing simulated orders and forwarding real ones to a
    CCXT exchange.

Slippage helpers live in :mod:`.slippage`; order book snapshots in
:mod:`.orderbook`.
"""

from .exchange import Exchange, MinMax, Settings
from .order_manager import CcxtSubmitter, OrderManager, OrderSubmission
from .orderbook import OrderBook, OrderBookStore
from .validators import Limits

__all__ = [
    "Exchange",
    "MinMax",
    "Settings",
    "CcxtSubmitter",
    "OrderManager",
    "OrderSubmission",
    "OrderBook",
    "OrderBookStore",
    "Limits",
]

"""Event-driven backtesting core: order execution simulation and run statistics."""

from .common import AssetType, BacktesterError, Side
from .currency import Pair
from .execution import Exchange, OrderManager, Settings
from .statistics import Statistic

__all__ = ["AssetType", "BacktesterError", "Side", "Pair", "Exchange", "OrderManager", "Settings", "Statistic"]

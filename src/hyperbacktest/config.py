"""Configuration loading utilities for the backtester.

A YAML file lists the strategy, the risk free rate used for ratios and the
trading constraints of every instrument.  :func:`build_exchange` turns the
currency entries into :class:`~hyperbacktest.execution.Settings` registered
on an :class:`~hyperbacktest.execution.Exchange`.
"""

from __future__ import annotations

import os
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Mapping

import yaml
from pydantic import BaseModel, Field, ValidationError

from .common import AssetType
from .currency import EMPTY_PAIR, Pair
from .execution.exchange import Exchange, MinMax, Settings
from .execution.validators import Limits

DEFAULT_CONFIG_PATH = Path.cwd() / "backtest.yaml"


class MinMaxConfig(BaseModel):
    """Order size bounds for one side of the book."""

    minimum_size: float = Field(0.0, ge=0)
    maximum_size: float = Field(0.0, ge=0)


class LimitsConfig(BaseModel):
    amount_step: float | None = Field(None, gt=0)
    min_amount: float | None = Field(None, ge=0)
    max_amount: float | None = Field(None, ge=0)
    price_step: float | None = Field(None, gt=0)
    min_cost: float | None = Field(None, ge=0)


class CurrencyConfig(BaseModel):
    """Schema for one traded instrument."""

    exchange: str
    asset: AssetType = AssetType.SPOT
    base: str
    quote: str
    underlying_base: str | None = None
    underlying_quote: str | None = None
    maker_fee: float = Field(0.0, ge=0)
    taker_fee: float = Field(0.0, ge=0)
    min_slippage_rate: float = Field(1.0, gt=0, le=1)
    max_slippage_rate: float = Field(1.0, gt=0, le=1)
    buy_side: MinMaxConfig = Field(default_factory=MinMaxConfig)
    sell_side: MinMaxConfig = Field(default_factory=MinMaxConfig)
    limits: LimitsConfig | None = None
    can_use_exchange_limits: bool = False
    skip_candle_volume_fitting: bool = False
    use_real_orders: bool = False


class ConfigModel(BaseModel):
    """Top-level configuration schema."""

    strategy: str = ""
    risk_free_rate: float = 0.0
    currencies: List[CurrencyConfig] = Field(default_factory=list)


def _validate(data: Any) -> ConfigModel:
    try:
        if hasattr(ConfigModel, "model_validate"):
            return ConfigModel.model_validate(data)  # type: ignore[attr-defined]
        return ConfigModel.parse_obj(data)  # pydantic v1 fallback
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration: {exc}") from exc


def load_config(path: str | Path | None = None) -> Dict[str, Any]:
    """Load configuration from a YAML file with validation.

    Parameters
    ----------
    path : str | Path | None
        Optional path to a YAML file. If ``None`` the ``BACKTEST_CONFIG``
        environment variable, then ``backtest.yaml`` in the working
        directory, is used.

    Returns
    -------
    dict
        Parsed configuration dictionary validated against :class:`ConfigModel`.
    """

    cfg_path = Path(path or os.getenv("BACKTEST_CONFIG") or DEFAULT_CONFIG_PATH)
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config file not found: {cfg_path}")
    with cfg_path.open() as f:
        data = yaml.safe_load(f) or {}
    model = _validate(data)
    return model.model_dump() if hasattr(model, "model_dump") else model.dict()


def _dec(value: float | None) -> Decimal | None:
    return None if value is None else Decimal(str(value))


def _min_max(cfg: MinMaxConfig) -> MinMax:
    return MinMax(
        minimum_size=Decimal(str(cfg.minimum_size)),
        maximum_size=Decimal(str(cfg.maximum_size)),
    )


def currency_settings(cfg: CurrencyConfig) -> Settings:
    """Build exchange :class:`Settings` from one validated currency entry."""
    underlying = EMPTY_PAIR
    if cfg.underlying_base and cfg.underlying_quote:
        underlying = Pair(cfg.underlying_base, cfg.underlying_quote)
    limits = Limits()
    if cfg.limits is not None:
        limits = Limits(
            amount_step=_dec(cfg.limits.amount_step),
            min_amount=_dec(cfg.limits.min_amount),
            max_amount=_dec(cfg.limits.max_amount),
            price_step=_dec(cfg.limits.price_step),
            min_cost=_dec(cfg.limits.min_cost),
        )
    return Settings(
        exchange=cfg.exchange,
        asset=cfg.asset,
        pair=Pair(cfg.base, cfg.quote),
        underlying_pair=underlying,
        maker_fee=Decimal(str(cfg.maker_fee)),
        taker_fee=Decimal(str(cfg.taker_fee)),
        buy_side=_min_max(cfg.buy_side),
        sell_side=_min_max(cfg.sell_side),
        minimum_slippage_rate=Decimal(str(cfg.min_slippage_rate)),
        maximum_slippage_rate=Decimal(str(cfg.max_slippage_rate)),
        limits=limits,
        can_use_exchange_limits=cfg.can_use_exchange_limits,
        skip_candle_volume_fitting=cfg.skip_candle_volume_fitting,
        use_real_orders=cfg.use_real_orders,
    )


def build_exchange(config: Mapping[str, Any], exchange: Exchange | None = None) -> Exchange:
    """Register settings for every configured currency on ``exchange``."""
    model = _validate(dict(config))
    exchange = exchange or Exchange()
    for cfg in model.currencies:
        settings = currency_settings(cfg)
        exchange.set_exchange_asset_currency_settings(settings.asset, settings.pair, settings)
    return exchange


__all__ = ["ConfigModel", "CurrencyConfig", "load_config", "build_exchange", "currency_settings", "DEFAULT_CONFIG_PATH"]

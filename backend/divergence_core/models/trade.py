"""Simulated trade data model."""

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel

from divergence_core.models.config import PairConvention
from divergence_core.models.signal import Divergence, DivergenceKind


class Direction(int, Enum):
    """Trade direction."""

    LONG = 1
    SHORT = -1

    @classmethod
    def for_divergence(cls, kind: DivergenceKind) -> "Direction":
        """Bullish divergences are traded long, bearish ones short."""
        return cls.LONG if kind == DivergenceKind.BULLISH else cls.SHORT


class ExitReason(str, Enum):
    """Why a trade was closed."""

    PROFIT = "profit"  # Take profit hit
    LOSS = "loss"  # Stop loss hit


class TradeStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class Trade(BaseModel):
    """Trade opened at the close of a divergence's ending bar."""

    id: str
    side: Direction
    entry_time: int  # seconds
    entry_price: Decimal
    stop_loss_price: Decimal
    take_profit_price: Decimal
    exit_time: int | None = None
    exit_price: Decimal | None = None
    exit_reason: ExitReason | None = None
    pnl: Decimal | None = None
    pips: Decimal | None = None
    status: TradeStatus = TradeStatus.OPEN
    divergence: Divergence

    @property
    def is_closed(self) -> bool:
        return self.status == TradeStatus.CLOSED

    def close(
        self,
        exit_time: int,
        exit_price: Decimal,
        exit_reason: ExitReason,
        convention: PairConvention,
        position_size_lots: Decimal,
    ) -> None:
        """
        Close the trade and book its pips and P&L.

        pips = signed price move in the trade's favour, in the pair's pips
        pnl  = pips * position_size_lots * convention.units_per_lot

        Raises:
            ValueError: If the trade is already closed.
        """
        if self.status == TradeStatus.CLOSED:
            raise ValueError(f"Trade {self.id} is already closed")

        if self.side == Direction.LONG:
            price_diff = exit_price - self.entry_price
        else:
            price_diff = self.entry_price - exit_price

        pips = convention.price_to_pips(price_diff)

        self.exit_time = exit_time
        self.exit_price = exit_price
        self.exit_reason = exit_reason
        self.pips = pips
        self.pnl = pips * position_size_lots * convention.units_per_lot
        self.status = TradeStatus.CLOSED

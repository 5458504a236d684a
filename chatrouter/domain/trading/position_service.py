from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
import structlog

from chatrouter.domain.formatting.formatter import format_message
from chatrouter.domain.interfaces.collaborators import MarketDataClient
from chatrouter.domain.trading.wallet_directory import WalletDirectory, mask_address
from chatrouter.infrastructure.errors.exceptions import MarketDataError

logger = structlog.get_logger(__name__)

DEFAULT_API_URL = "https://api.hyperliquid.xyz"


class Position(BaseModel):
    """One open perpetual position as reported by the exchange"""
    coin: str
    szi: float = Field(description="Signed size; negative is short")
    entry_px: float = Field(alias="entryPx")
    position_value: float = Field(alias="positionValue")
    unrealized_pnl: float = Field(alias="unrealizedPnl")

    @property
    def side(self) -> str:
        return "LONG" if self.szi > 0 else "SHORT"


class PositionService:
    """Reads positions for a user's wallet and renders them as chat replies"""

    def __init__(
        self,
        market_data: MarketDataClient,
        wallets: WalletDirectory,
        api_url: str = DEFAULT_API_URL
    ):
        self.market_data = market_data
        self.wallets = wallets
        self.info_url = f"{api_url.rstrip('/')}/info"

    async def fetch_positions(self, wallet_address: str) -> List[Position]:
        """Open positions for a wallet; raises MarketDataError on failure"""

        data = await self.market_data.fetch_json(
            self.info_url,
            {"type": "clearinghouseState", "user": wallet_address}
        )

        asset_positions = (data or {}).get("assetPositions") or []
        logger.info(
            "Fetched positions",
            wallet=mask_address(wallet_address),
            positions_count=len(asset_positions)
        )

        try:
            return [Position.model_validate(item["position"]) for item in asset_positions]
        except (KeyError, TypeError, ValueError) as e:
            raise MarketDataError(f"Unexpected clearinghouse payload: {e}") from e

    async def fetch_market_prices(self) -> Dict[str, float]:
        """Mid prices by coin; empty when prices are unavailable"""

        try:
            data = await self.market_data.fetch_json(self.info_url, {"type": "allMids"})
            return {coin: float(price) for coin, price in (data or {}).items()}
        except (MarketDataError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Market prices unavailable", error=str(e))
            return {}

    async def positions_summary(self, user_id: Any) -> str:
        wallet = await self.wallets.get_wallet(user_id)
        if not wallet:
            return (
                "❌ **No wallet configured**\n\n"
                "Unable to retrieve wallet information."
            )

        positions = await self.fetch_positions(wallet)
        if not positions:
            return (
                "📊 **No Open Positions**\n\n"
                f"Wallet: `{mask_address(wallet)}`\n"
                "No positions found on Hyperliquid."
            )

        prices = await self.fetch_market_prices()
        return format_message(render_positions(positions, wallet, prices), "markdown")

    async def position_detail(self, user_id: Any, coin: str) -> str:
        wallet = await self.wallets.get_wallet(user_id)
        if not wallet:
            return "❌ Unable to retrieve wallet information"

        positions = await self.fetch_positions(wallet)
        position = next((p for p in positions if p.coin.lower() == coin.lower()), None)
        if position is None:
            return f"📊 No open position found for {coin.upper()}"

        prices = await self.fetch_market_prices()
        return format_message(render_position_detail(position, wallet, prices.get(position.coin)), "markdown")


def _pnl_emoji(pnl: float) -> str:
    return "🟢" if pnl >= 0 else "🔴"


def render_positions(positions: List[Position], wallet: str, prices: Dict[str, float]) -> str:
    lines = ["📊 **Your Positions**", "", f"Wallet: `{mask_address(wallet)}`", ""]
    total_pnl = 0.0

    for pos in positions:
        total_pnl += pos.unrealized_pnl
        current = prices.get(pos.coin)

        lines.append(f"**{pos.coin}** {pos.side}")
        lines.append(f"• Size: {abs(pos.szi):.4f}")
        lines.append(f"• Entry: ${pos.entry_px:.2f}")
        if current:
            lines.append(f"• Current: ${current:.2f}")
        lines.append(f"• Value: ${abs(pos.position_value):.2f}")
        lines.append(f"• PnL: {_pnl_emoji(pos.unrealized_pnl)} ${pos.unrealized_pnl:.2f}")
        lines.append("")

    lines.append(f"**Total PnL: {_pnl_emoji(total_pnl)} ${total_pnl:.2f}**")
    return "\n".join(lines)


def render_position_detail(position: Position, wallet: str, current_price: Optional[float]) -> str:
    pnl = position.unrealized_pnl
    side_emoji = "📈" if position.side == "LONG" else "📉"

    lines = [
        f"📊 **{position.coin} Position Details**",
        "",
        f"Wallet: `{mask_address(wallet)}`",
        "",
        f"{side_emoji} **{position.side} Position**",
        f"• Coin: **{position.coin}**",
        f"• Size: **{abs(position.szi):.4f}**",
        f"• Entry Price: **${position.entry_px:.2f}**",
    ]

    if current_price:
        lines.append(f"• Current Price: **${current_price:.2f}**")
        if position.entry_px:
            change = (current_price - position.entry_px) / position.entry_px * 100
            change_emoji = "📈" if change >= 0 else "📉"
            lines.append(f"• Price Change: {change_emoji} **{change:.2f}%**")

    lines.append(f"• Position Value: **${abs(position.position_value):.2f}**")
    lines.append(f"• Unrealized PnL: {_pnl_emoji(pnl)} **${pnl:.2f}**")

    if pnl != 0 and position.position_value:
        pnl_pct = pnl / abs(position.position_value) * 100
        lines.append(f"• PnL %: {_pnl_emoji(pnl)} **{pnl_pct:.2f}%**")

    return "\n".join(lines)

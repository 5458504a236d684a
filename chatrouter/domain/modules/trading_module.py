from typing import Dict, List, NamedTuple, Optional, Pattern
import re
import structlog

from chatrouter.domain.models.conversation import ConversationContext
from chatrouter.domain.modules.base_module import BaseModule
from chatrouter.domain.trading.position_service import PositionService

logger = structlog.get_logger(__name__)

_COINS = "btc|eth|sol|matic|arb|op|avax|bnb|ada|dot"

TRADING_ERROR_MESSAGE = "❌ Error processing trading command. Please try again later."


class CommandMatch(NamedTuple):
    type: str
    coin: Optional[str]


class TradingModule(BaseModule):
    """Position queries for Hyperliquid wallets"""

    PATTERNS: Dict[str, List[Pattern[str]]] = {
        "position": [
            re.compile(r"^/position$", re.I),
            re.compile(r"^/pos$", re.I),
            re.compile(r"^/portfolio$", re.I),
            re.compile(r"my position", re.I),
            re.compile(r"check position", re.I),
            re.compile(r"show position", re.I),
            re.compile(r"what's my position", re.I),
            re.compile(r"what are my positions", re.I),
            re.compile(r"open positions", re.I),
            re.compile(r"current positions", re.I),
        ],
        "position_detail": [
            re.compile(r"^/position_detail\s+(\w+)", re.I),
            re.compile(rf"position\s+({_COINS})\b", re.I),
            re.compile(rf"show\s+({_COINS})\s+position", re.I),
        ],
        "help": [
            re.compile(r"^/trading_help", re.I),
            re.compile(r"^/trading-help", re.I),
            re.compile(r"^/tradinghelp", re.I),
            re.compile(r"trading commands", re.I),
            re.compile(r"how to check position", re.I),
        ],
    }

    def __init__(self, position_service: PositionService, priority: int = 10):
        super().__init__(
            name="Trading",
            description="Handles trading commands and position queries for Hyperliquid",
            priority=priority
        )
        self.position_service = position_service

    async def cleanup(self) -> None:
        await self.position_service.market_data.close()

    async def can_handle(self, text: str, context: ConversationContext) -> bool:
        return self.detect_command(text) is not None

    async def handle(self, text: str, context: ConversationContext) -> str:
        command = self.detect_command(text)
        if command is None:
            return "Trading command not recognized. Use /trading-help for available commands."

        user_id = context.user_id or context.conversation_id

        try:
            if command.type == "position":
                return await self.position_service.positions_summary(user_id)
            if command.type == "position_detail":
                if not command.coin:
                    return "❌ Please specify a coin. Example: `/position_detail BTC`"
                return await self.position_service.position_detail(user_id, command.coin)
            if command.type == "help":
                return self.get_help_message()
        except Exception as e:
            logger.error("Trading command failed", command=command.type, error=str(e))
            return TRADING_ERROR_MESSAGE

        return "Unknown trading command. Use /trading-help for available commands."

    def detect_command(self, text: str) -> Optional[CommandMatch]:
        """Find the first matching command group, in declaration order"""

        for command_type, patterns in self.PATTERNS.items():
            for pattern in patterns:
                match = pattern.search(text)
                if match:
                    coin = match.group(1).upper() if match.groups() and match.group(1) else None
                    return CommandMatch(type=command_type, coin=coin)
        return None

    def get_help_message(self) -> str:
        return (
            "📊 **Trading Commands**\n\n"
            "**Position Management:**\n"
            "• /position - View all your positions\n"
            "• /pos - Short alias for position\n"
            "• /portfolio - View your portfolio\n"
            "• /position_detail COIN - Detailed view of specific coin\n\n"
            "**Natural Language:**\n"
            "You can also use phrases like:\n"
            "• \"show my positions\"\n"
            "• \"check my portfolio\"\n"
            "• \"what's my BTC position\"\n\n"
            "**Exchange:** Hyperliquid DEX\n"
            "**Network:** Arbitrum"
        )

from typing import Dict, Any, List, Optional
from datetime import datetime
import asyncio
from pydantic import BaseModel, Field
import structlog

from chatrouter.domain.models.conversation import utc_now

logger = structlog.get_logger(__name__)

# Wallet served to every user in development
TEST_WALLET = "0x0ed637de4b9ccebe6d69991661a2d14f07f569d0"


class UserWallet(BaseModel):
    """Wallet link and preferences for one user"""
    user_id: str
    wallet_address: Optional[str] = None
    preferences: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class WalletDirectory:
    """In-memory mapping from user id to linked wallet"""

    def __init__(self, environment: str = "production", test_wallet: str = TEST_WALLET):
        self.environment = environment
        self.test_wallet = test_wallet
        self.users: Dict[str, UserWallet] = {}
        self._lock = asyncio.Lock()

    async def link_wallet(self, user_id: Any, wallet_address: str) -> UserWallet:
        key = str(user_id)

        async with self._lock:
            existing = self.users.get(key)
            record = UserWallet(
                user_id=key,
                wallet_address=wallet_address,
                preferences=existing.preferences if existing else {},
                created_at=existing.created_at if existing else utc_now()
            )
            self.users[key] = record

        logger.info("Linked wallet", user_id=key, wallet=mask_address(wallet_address))
        return record

    async def get_wallet(self, user_id: Any) -> Optional[str]:
        if self.environment == "development":
            return self.test_wallet

        async with self._lock:
            record = self.users.get(str(user_id))
            return record.wallet_address if record else None

    async def has_linked_wallet(self, user_id: Any) -> bool:
        return await self.get_wallet(user_id) is not None

    async def unlink_wallet(self, user_id: Any) -> bool:
        key = str(user_id)

        async with self._lock:
            record = self.users.get(key)
            if not record or not record.wallet_address:
                return False
            record.wallet_address = None
            record.updated_at = utc_now()

        logger.info("Unlinked wallet", user_id=key)
        return True

    async def update_preferences(self, user_id: Any, preferences: Dict[str, Any]) -> UserWallet:
        key = str(user_id)

        async with self._lock:
            record = self.users.get(key) or UserWallet(user_id=key)
            record.preferences = {**record.preferences, **preferences}
            record.updated_at = utc_now()
            self.users[key] = record
            return record

    async def get_user(self, user_id: Any) -> Optional[UserWallet]:
        async with self._lock:
            return self.users.get(str(user_id))

    async def delete_user(self, user_id: Any) -> bool:
        async with self._lock:
            return self.users.pop(str(user_id), None) is not None

    async def get_all_users(self) -> List[UserWallet]:
        async with self._lock:
            return list(self.users.values())

    async def get_user_count(self) -> int:
        async with self._lock:
            return len(self.users)


def mask_address(address: str) -> str:
    """Shorten a wallet address to 0x1234...abcd"""
    if len(address) <= 10:
        return address
    return f"{address[:6]}...{address[-4:]}"

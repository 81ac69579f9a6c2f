"""
Game setting repository.

Key/value access to admin-controlled switches.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from blockminer.models.game_setting import GameSetting
from blockminer.repositories.base import BaseRepository


class GameSettingRepository(BaseRepository[GameSetting]):
    """Game setting queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize game setting repository."""
        super().__init__(GameSetting, session)

    async def get_value(self, key: str) -> str | None:
        """
        Get setting value by key.

        Args:
            key: Setting key

        Returns:
            Value or None if unset
        """
        stmt = select(GameSetting.value).where(GameSetting.key == key)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def is_enabled(self, key: str) -> bool:
        """Check a boolean switch stored as "true"/"false"."""
        value = await self.get_value(key)
        return value is not None and value.strip().lower() == "true"

    async def set_value(self, key: str, value: str) -> GameSetting:
        """
        Create or update a setting.

        Args:
            key: Setting key
            value: New value

        Returns:
            Stored setting
        """
        setting = await self.get_by(key=key)
        if setting is None:
            return await self.create(key=key, value=value)

        setting.value = value
        await self.session.flush()
        return setting

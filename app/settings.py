# GPL-3.0-only
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from app.models import AppSettings
from app.db import SessionLocal

@dataclass
class SettingsCache:
    timezone: str = "UTC"
    read_only: bool = False

    async def load(self, session: Optional[AsyncSession] = None):
        own = False
        if session is None:
            own = True
            session = SessionLocal()
        try:
            res = await session.execute(select(AppSettings).where(AppSettings.id==1))
            obj = res.scalar_one_or_none()
            if not obj:
                obj = AppSettings(id=1, timezone="UTC", read_only=False)
                session.add(obj)
                await session.commit()
            self.timezone = obj.timezone
            self.read_only = obj.read_only
        finally:
            if own:
                await session.close()

    def to_dict(self):
        return dict(
            timezone=self.timezone,
            read_only=self.read_only,
        )

settings_cache = SettingsCache()

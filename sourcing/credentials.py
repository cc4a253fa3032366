"""API keys for the online providers.

Keys come from the environment (``.env`` via python-dotenv) first, then from
keys the user saved in Settings (``app_setting`` table). Lookups are in-memory
so provider ``is_available()`` checks stay synchronous; ``load`` refreshes
the cache from the database.
"""

from __future__ import annotations

import logging
import os
from typing import Callable, Dict, Optional

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from models import AppSetting, utcnow

logger = logging.getLogger(__name__)

ENV_VARS: Dict[str, str] = {
    "fragella": "FRAGELLA_API_KEY",
    "fragrancefinder": "FRAGRANCEFINDER_API_KEY",
}

SETTING_KEYS: Dict[str, str] = {
    "fragella": "fragella_api_key",
    "fragrancefinder": "fragrancefinder_api_key",
}


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if not value or value == "demo":
        return None
    return value


class CredentialStore:
    def __init__(self, saved: Optional[Dict[str, str]] = None):
        self._saved: Dict[str, str] = dict(saved or {})

    def get(self, provider_id: str) -> Optional[str]:
        env_var = ENV_VARS.get(provider_id)
        env_value = _clean(os.getenv(env_var)) if env_var else None
        if env_value:
            return env_value
        return _clean(self._saved.get(provider_id))

    def getter(self, provider_id: str) -> Callable[[], Optional[str]]:
        return lambda: self.get(provider_id)

    def is_configured(self, provider_id: str) -> bool:
        return self.get(provider_id) is not None

    async def load(self, session: AsyncSession) -> None:
        keys = {setting_key: provider_id for provider_id, setting_key in SETTING_KEYS.items()}
        result = await session.exec(select(AppSetting).where(AppSetting.key.in_(list(keys))))
        for setting in result.all():
            self._saved[keys[setting.key]] = setting.value
        logger.info(f"[CredentialStore] Loaded saved keys for {sorted(self._saved)}")

    async def save(self, session: AsyncSession, provider_id: str, api_key: Optional[str]) -> None:
        """Persist (or clear, when ``api_key`` is empty) a provider key."""
        setting_key = SETTING_KEYS.get(provider_id)
        if not setting_key:
            raise KeyError(f"Unknown provider {provider_id!r}")

        setting = await session.get(AppSetting, setting_key)
        cleaned = _clean(api_key)
        if cleaned is None:
            if setting:
                await session.delete(setting)
            self._saved.pop(provider_id, None)
        else:
            if setting:
                setting.value = cleaned
                setting.updated_at = utcnow()
            else:
                setting = AppSetting(key=setting_key, value=cleaned)
            session.add(setting)
            self._saved[provider_id] = cleaned
        await session.commit()

"""Persistent key/value preferences and the installation's device identity."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .config import Settings
from .db_models import Preference
from .models import DeviceIdentity

logger = logging.getLogger(__name__)

DEVICE_ID_KEY = "device_id"
DEVICE_ID_LENGTH = 16


class PreferenceStore:
    """String preferences stored in the ``preferences`` table.

    Writes are last-writer-wins; there is no transactional coupling between
    keys.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get(self, key: str, default: str | None = None) -> str | None:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Preference.value).where(Preference.key == key)
            )
            value = result.scalar_one_or_none()
        return default if value is None else value

    async def set(self, key: str, value: str) -> None:
        async with self._session_factory() as session:
            await session.merge(Preference(key=key, value=value))
            await session.commit()

    async def set_many(self, values: dict[str, str]) -> None:
        async with self._session_factory() as session:
            for key, value in values.items():
                await session.merge(Preference(key=key, value=value))
            await session.commit()


async def load_device_identity(settings: Settings, store: PreferenceStore) -> DeviceIdentity:
    """Return the device identity, generating and persisting the id on first use."""

    device_id = await store.get(DEVICE_ID_KEY)
    if not device_id:
        device_id = uuid.uuid4().hex[:DEVICE_ID_LENGTH]
        await store.set(DEVICE_ID_KEY, device_id)
        logger.info("Generated new device id %s", device_id)
    return DeviceIdentity(
        client_name=settings.client_name,
        version=settings.client_version,
        device_id=device_id,
        device_name=settings.device_name,
    )

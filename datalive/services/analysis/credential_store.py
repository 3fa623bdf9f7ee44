"""
Credential Store

Per-API credential values, encrypted at rest. A save replaces the whole set
in one transaction; there is no merge.
"""

from collections.abc import Mapping
from typing import Any

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from datalive.core.encryption import decrypt_secret, encrypt_secret
from datalive.db import CredentialModel

logger = structlog.get_logger(module="credential_store")


class CredentialStore:

    def __init__(self, db: AsyncSession):
        self.db = db

    async def save(self, api_id: int, credentials: Mapping[str, Any], owner_id: str) -> int:
        """Replace every credential of ``api_id`` with ``credentials``.

        Returns:
            Number of credentials stored
        """
        log = logger.bind(owner_id=owner_id, api_id=api_id)
        log.info("credentials_save_start", credential_keys=sorted(credentials))

        try:
            await self.db.execute(delete(CredentialModel).where(CredentialModel.api_id == api_id))
            self.db.add_all([
                CredentialModel(
                    api_id=api_id,
                    key=str(key),
                    value_encrypted=encrypt_secret("" if value is None else str(value)),
                    description=f"Credential {key}",
                )
                for key, value in credentials.items()
            ])
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            log.error("credentials_save_failed", error=str(e))
            raise

        log.info("credentials_saved", count=len(credentials))
        return len(credentials)

    async def _rows(self, api_id: int) -> list[CredentialModel]:
        result = await self.db.execute(
            select(CredentialModel)
            .where(CredentialModel.api_id == api_id)
            .order_by(CredentialModel.id)
        )
        return list(result.scalars().all())

    async def get(self, api_id: int) -> dict[str, str]:
        """Decrypted ``key -> value`` mapping in insertion order."""
        return {row.key: decrypt_secret(row.value_encrypted) for row in await self._rows(api_id)}

    async def keys(self, api_id: int) -> list[str]:
        return [row.key for row in await self._rows(api_id)]

"""Implementation of AccountStore using SQLAlchemy (local stand-in for the ledger's account storage)"""

import logging
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.core.exceptions import RemoteFaultError
from src.ledger.models import KeyedAccount, MemcmpFilter
from src.ledger.schema import DBAccount
from src.protocol.address import Address

logger = logging.getLogger(__name__)


class SQLAccountStore:
    """Accounts stored as raw bytes, keyed by their base58 address."""

    def __init__(self, db_session: Session) -> None:
        self.db = db_session

    def get_account_bytes(self, address: Address) -> bytes | None:
        """Data of the account, None if it does not exist (e.g. closed)."""
        account_db = self._fetch_account(address)
        if account_db:
            return bytes(account_db.data)
        return None

    def query_accounts(
        self, program_id: Address, filters: Sequence[MemcmpFilter]
    ) -> list[KeyedAccount]:
        """All accounts owned by the program that satisfy every filter."""
        query = select(DBAccount).where(DBAccount.owner == program_id.to_base58())
        try:
            candidates = self.db.scalars(query).all()
        except SQLAlchemyError as e:
            raise RemoteFaultError(
                "Account query failed", operation="query_accounts"
            ) from e
        return [
            self._to_keyed(account_db)
            for account_db in candidates
            if all(memcmp.matches(account_db.data) for memcmp in filters)
        ]

    def put_account(
        self, address: Address, owner: Address, data: bytes, lamports: int = 0
    ) -> KeyedAccount:
        """Create the account or overwrite its data."""
        try:
            account_db = self._fetch_account(address)
            if account_db is None:
                account_db = DBAccount(
                    address=address.to_base58(),
                    owner=owner.to_base58(),
                    data=data,
                    lamports=lamports,
                )
                self.db.add(account_db)
            else:
                account_db.owner = owner.to_base58()
                account_db.data = data
                account_db.lamports = lamports
            self.db.commit()
            self.db.refresh(account_db)
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RemoteFaultError(
                "Account write failed", operation="put_account", address=str(address)
            ) from e
        logger.debug("Stored %d bytes for account %s", len(data), address)
        return self._to_keyed(account_db)

    def close_account(self, address: Address) -> KeyedAccount | None:
        """Remove the account (what a close instruction does on the ledger)."""
        account_db = self._fetch_account(address)
        if not account_db:
            return None
        keyed = self._to_keyed(account_db)
        try:
            self.db.delete(account_db)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RemoteFaultError(
                "Account close failed", operation="close_account", address=str(address)
            ) from e
        return keyed

    def _fetch_account(self, address: Address) -> DBAccount | None:
        query = select(DBAccount).where(DBAccount.address == address.to_base58())
        try:
            return self.db.scalar(query)
        except SQLAlchemyError as e:
            raise RemoteFaultError(
                "Account fetch failed", operation="get_account", address=str(address)
            ) from e

    def _to_keyed(self, account_db: DBAccount) -> KeyedAccount:
        """Convert SQLAlchemy model to data transfer model."""
        return KeyedAccount(
            address=Address.from_base58(account_db.address), data=bytes(account_db.data)
        )

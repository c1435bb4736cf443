"""
CredentialStore - data access layer for the two persisted API key slots.
"""

from dataclasses import dataclass
from typing import Optional
from sqlmodel import Session, select

from db_engine import get_engine
from models import Credential

# Slot names
MARKET_DATA_KEY = "coinledger_apiKey"
INSIGHT_KEY = "coinledger_geminiApiKey"


@dataclass(frozen=True)
class Credentials:
    """Snapshot of both key slots as read at startup."""
    market_data_key: Optional[str] = None
    insight_key: Optional[str] = None

    @property
    def any_configured(self) -> bool:
        return bool(self.market_data_key or self.insight_key)

    @property
    def all_configured(self) -> bool:
        return bool(self.market_data_key and self.insight_key)


class CredentialStore:
    """Named string storage for API keys. No validation is performed on values."""

    @staticmethod
    def get(name: str) -> Optional[str]:
        """Read a key slot; returns None when the slot is empty."""
        with Session(get_engine()) as session:
            statement = select(Credential).where(Credential.name == name)
            credential = session.exec(statement).first()
            return credential.value if credential else None

    @staticmethod
    def save(name: str, value: Optional[str]) -> None:
        """
        Write a key slot. Saving an empty value clears the slot.

        Args:
            name: Slot name (MARKET_DATA_KEY or INSIGHT_KEY)
            value: Key string as entered by the user
        """
        with Session(get_engine()) as session:
            statement = select(Credential).where(Credential.name == name)
            credential = session.exec(statement).first()

            if not value:
                if credential:
                    session.delete(credential)
                    session.commit()
                return

            if credential:
                credential.value = value
            else:
                credential = Credential(name=name, value=value)
            session.add(credential)
            session.commit()

    @staticmethod
    def clear_all() -> None:
        """Remove both key slots."""
        with Session(get_engine()) as session:
            statement = select(Credential).where(
                Credential.name.in_([MARKET_DATA_KEY, INSIGHT_KEY])
            )
            for credential in session.exec(statement).all():
                session.delete(credential)
            session.commit()

    @staticmethod
    def load() -> Credentials:
        """Read both slots at once."""
        return Credentials(
            market_data_key=CredentialStore.get(MARKET_DATA_KEY),
            insight_key=CredentialStore.get(INSIGHT_KEY),
        )

from typing import Callable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from cubetag import db
from cubetag.errors import PersistenceError
from cubetag.models import Account, COUNTER_FIELDS
from cubetag.services.game.achievements import evaluate


class AccountStore:
    """Durable account records behind Flask-SQLAlchemy.

    Must be used inside an application context. Every write is a
    last-write-wins read-modify-write of one row.
    """

    def find(self, handle: str) -> Optional[Account]:
        try:
            return Account.query.filter_by(username=handle).first()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise PersistenceError(f'could not load account {handle}') from exc

    def create(self, handle: str, password: str) -> Account:
        account = Account(username=handle)
        account.set_password(password)
        db.session.add(account)
        self._commit(f'could not create account {handle}')
        return account

    def save(self, account: Account) -> None:
        db.session.add(account)
        self._commit(f'could not save account {account.username}')

    def increment(self, handle: str, **amounts) -> None:
        """Atomic in-database counter increments."""
        values = {}
        for field, amount in amounts.items():
            if field not in COUNTER_FIELDS:
                raise ValueError(f'unknown counter {field}')
            column = getattr(Account, field)
            values[column] = column + amount
        try:
            Account.query.filter_by(username=handle).update(values, synchronize_session=False)
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise PersistenceError(f'could not update account {handle}') from exc
        self._commit(f'could not update account {handle}')

    def update(self, handle: str, mutate: Callable[[Account], None]) -> Optional[Tuple[Account, List[str]]]:
        """Load, mutate, evaluate achievements and save.

        Returns None for an unknown handle, else the saved account and the
        ids of achievements unlocked by this update.
        """
        account = self.find(handle)
        if account is None:
            return None
        mutate(account)
        unlocked = evaluate(account)
        self.save(account)
        return account, unlocked

    def _commit(self, message: str) -> None:
        try:
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise PersistenceError(message) from exc

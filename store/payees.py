"""Payee store: optimistic cache of one company's payees."""

from dataclasses import replace
from typing import List, Optional, Sequence
from errors import InUseError, InvalidInputError, NameConflictError, PayeeNotFoundError
from hierarchy.validator import fold_name
from logger import get_logger
from models.payee import Payee
from models.reference import ById, to_reference
from store.base import OptimisticCache, provisional_id

logger = get_logger("store.payees")


def validate_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise InvalidInputError("Payee name cannot be empty")
    return cleaned


class PayeeStore(OptimisticCache[Payee]):
    """Optimistic cache of payees with unique, case-insensitive names."""

    table = "payees"

    def __init__(self, company_id: int, remote, transactions, changes=None, **kwargs):
        super().__init__(company_id, changes=changes, **kwargs)
        self.remote = remote
        self.transactions = transactions

    def _fetch(self) -> List[Payee]:
        return self.remote.list(self.company_id)

    def _sort_key(self, payee: Payee):
        return fold_name(payee.name)

    def find(self, ref) -> Optional[Payee]:
        reference = to_reference(ref)
        if isinstance(reference, ById):
            return next((p for p in self._records if p.id == reference.id), None)
        return self.find_by_name(reference.name)

    def find_by_name(self, name: str) -> Optional[Payee]:
        folded = fold_name(name)
        return next((p for p in self._records if fold_name(p.name) == folded), None)

    def get(self, ref) -> Payee:
        payee = self.find(ref)
        if payee is None:
            raise PayeeNotFoundError(f"Payee {to_reference(ref).describe()} not found")
        return payee

    def usage(self, ref) -> int:
        """Number of transactions that use a payee."""
        payee = self.get(ref)
        return self.transactions.count_payee_references(self.company_id, payee.id)

    def create(self, name: str) -> Payee:
        return self.create_many([name])[0]

    def create_many(self, names: Sequence[str]) -> List[Payee]:
        """Create several payees with one remote call.

        Raises:
            InvalidInputError: If a name is empty.
            NameConflictError: If a name exists already or repeats.
            RemoteFailureError: If the backing store fails; cache rolled back.
        """
        cleaned = []
        seen = set()
        for name in names:
            name = validate_name(name)
            existing = self.find_by_name(name)
            if existing is not None:
                raise NameConflictError(
                    f'Payee "{existing.name}" already exists', existing=existing
                )
            if fold_name(name) in seen:
                raise NameConflictError(f'Payee "{name}" appears more than once')
            seen.add(fold_name(name))
            cleaned.append(name)
        if not cleaned:
            return []

        provisional = [
            Payee(id=provisional_id(), name=name, company_id=self.company_id)
            for name in cleaned
        ]
        created = self._apply(
            list(self._records) + provisional,
            lambda: self.remote.insert(self.company_id, [{"name": n} for n in cleaned]),
        )
        self._replace([p.id for p in provisional], created)
        for payee in created:
            self.highlight(payee.id)
            logger.info(f'Created payee "{payee.name}" (ID {payee.id})')
        return created

    def rename(self, ref, new_name: str) -> Payee:
        """Rename a payee.

        Raises:
            PayeeNotFoundError, InvalidInputError, NameConflictError: Before
                anything is sent.
            RemoteFailureError: If the backing store fails; cache rolled back.
        """
        payee = self.get(ref)
        name = validate_name(new_name)
        if name == payee.name:
            return payee
        existing = self.find_by_name(name)
        if existing is not None and existing.id != payee.id:
            raise NameConflictError(
                f'Payee "{existing.name}" already exists', existing=existing
            )

        others = [p for p in self._records if p.id != payee.id]
        updated = self._apply(
            others + [replace(payee, name=name)],
            lambda: self.remote.update(self.company_id, payee.id, {"name": name}),
            highlight_id=payee.id,
        )
        self._replace([], [updated])
        logger.info(f'Renamed payee "{payee.name}" to "{name}"')
        return updated

    def delete(self, ref) -> None:
        """Delete a payee that no transaction uses.

        Raises:
            PayeeNotFoundError: If the payee does not exist.
            InUseError: If a transaction still uses it.
        """
        payee = self.get(ref)
        used = self.transactions.count_payee_references(self.company_id, payee.id)
        if used:
            raise InUseError(
                f'Payee "{payee.name}" cannot be deleted because it is used in '
                f"{used} transaction(s)",
                reason="transactions",
            )

        self._apply(
            [p for p in self._records if p.id != payee.id],
            lambda: self.remote.delete(self.company_id, payee.id),
        )
        self._highlights.pop(payee.id, None)
        logger.info(f'Deleted payee "{payee.name}" (ID {payee.id})')

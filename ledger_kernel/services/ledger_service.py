"""
LedgerService -- the Ledger Store.

Responsibility:
    Owns ledger rows and the only code paths that write
    ``ledgers.current_balance``: apply_movement() for voucher effects and
    restate_balance() for reconciliation/import restatement.  Also creates,
    renames, regroups and deletes ledgers.

Architecture position:
    Kernel > Services.  Flush-only (BaseService).  Called by the Voucher
    Engine, LedgerRegistry, the Bulk Importer and the Reconciliation
    Service; never by selectors.

Invariants enforced:
    - Read-modify-write of a balance happens only on rows locked with
      SELECT ... FOR UPDATE.  lock_ledgers() locks in ascending id order so
      two vouchers touching the same pair of ledgers cannot deadlock.
    - A ledger with entries is never deleted.
"""

from collections.abc import Iterable
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from ledger_kernel.db.types import ZERO, to_money
from ledger_kernel.domain.nature import LedgerGroup, is_cash_group, nature, signed_delta
from ledger_kernel.exceptions import (
    GroupNatureChangeError,
    LedgerCompanyMismatchError,
    LedgerHasTransactionsError,
    LedgerNotFoundError,
    ValidationError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.ledger import Ledger
from ledger_kernel.models.voucher import VoucherEntry
from ledger_kernel.services.base import BaseService

logger = get_logger("services.ledger")


def normalize_group(group: LedgerGroup | str) -> str:
    """
    Canonical stored label for a group.

    Known labels are stored with their canonical spelling; anything else is
    kept verbatim (and classifies as credit nature).
    """
    if isinstance(group, LedgerGroup):
        return group.value
    if group is None or not str(group).strip():
        raise ValidationError("Ledger group is required")
    known = LedgerGroup.from_label(group)
    return known.value if known is not None else " ".join(str(group).split())


class LedgerService(BaseService[Ledger]):
    """Ledger rows and their cached balances."""

    def get(self, ledger_id: UUID) -> Ledger:
        ledger = self.session.get(Ledger, ledger_id)
        if ledger is None:
            raise LedgerNotFoundError(ledger_id)
        return ledger

    def lock(self, ledger_id: UUID) -> Ledger:
        return self.lock_ledgers([ledger_id])[ledger_id]

    def lock_ledgers(
        self,
        ledger_ids: Iterable[UUID],
        company_id: UUID | None = None,
    ) -> dict[UUID, Ledger]:
        """
        Lock and return ledgers by id.

        Args:
            ledger_ids: Ledgers to lock.  Order and duplicates do not matter.
            company_id: When given, every ledger must belong to it.

        Raises:
            LedgerNotFoundError: For the first id (in input order) that does
                not exist.
            LedgerCompanyMismatchError: A ledger belongs to another company.
        """
        requested = list(dict.fromkeys(ledger_ids))
        if not requested:
            return {}

        rows = self.session.execute(
            select(Ledger)
            .where(Ledger.id.in_(requested))
            .order_by(Ledger.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalars().all()
        found = {ledger.id: ledger for ledger in rows}

        for ledger_id in requested:
            ledger = found.get(ledger_id)
            if ledger is None:
                raise LedgerNotFoundError(ledger_id)
            if company_id is not None and ledger.company_id != company_id:
                raise LedgerCompanyMismatchError(ledger_id, company_id)
        return found

    def apply_movement(
        self,
        ledger: Ledger,
        debit: Decimal,
        credit: Decimal,
        *,
        reverse: bool = False,
    ) -> Decimal:
        """
        Apply (or with reverse=True, undo) one entry's effect on a locked
        ledger.

        Returns:
            The signed delta applied to current_balance.
        """
        delta = signed_delta(ledger.nature, debit, credit)
        if reverse:
            delta = -delta
        if delta != ZERO:
            ledger.current_balance = ledger.current_balance + delta
        logger.debug(
            "ledger_balance_applied",
            extra={
                "ledger_id": str(ledger.id),
                "delta": delta,
                "balance": ledger.current_balance,
                "reverse": reverse,
            },
        )
        return delta

    def restate_balance(
        self,
        ledger: Ledger,
        *,
        current_balance: Decimal,
        opening_balance: Decimal | None = None,
        actor_id: UUID | None = None,
    ) -> None:
        """Overwrite cached balances of a locked ledger (repair and import)."""
        if opening_balance is not None:
            ledger.opening_balance = opening_balance
        ledger.current_balance = current_balance
        if actor_id is not None:
            ledger.updated_by_id = actor_id
        logger.info(
            "ledger_balance_restated",
            extra={
                "ledger_id": str(ledger.id),
                "opening_balance": ledger.opening_balance,
                "current_balance": current_balance,
            },
        )

    def create(
        self,
        *,
        company_id: UUID,
        name: str,
        group: LedgerGroup | str,
        actor_id: UUID,
        sub_group: str | None = None,
        opening_balance: Decimal | int | str | None = None,
        assigned_operator_id: UUID | None = None,
    ) -> Ledger:
        """Insert a ledger with current_balance = opening_balance."""
        if not name or not name.strip():
            raise ValidationError("Ledger name is required")
        group_name = normalize_group(group)
        try:
            opening = to_money(opening_balance)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

        ledger = Ledger(
            company_id=company_id,
            name=name.strip(),
            group_name=group_name,
            sub_group=sub_group or None,
            opening_balance=opening,
            current_balance=opening,
            assigned_operator_id=assigned_operator_id,
            is_cash_ledger=assigned_operator_id is not None or is_cash_group(group_name),
            created_by_id=actor_id,
        )
        self.session.add(ledger)
        self.session.flush()
        return ledger

    def update(
        self,
        ledger_id: UUID,
        *,
        actor_id: UUID,
        name: str | None = None,
        group: LedgerGroup | str | None = None,
        sub_group: str | None = None,
    ) -> Ledger:
        """
        Rename or regroup a ledger.  Balances are untouched.

        Raises:
            GroupNatureChangeError: The new group has the other nature and
                the ledger already has entries (its balance would change
                meaning).
        """
        ledger = self.lock(ledger_id)
        if name is not None:
            if not name.strip():
                raise ValidationError("Ledger name is required")
            ledger.name = name.strip()
        if group is not None:
            group_name = normalize_group(group)
            if nature(group_name) != ledger.nature and self.entry_count(ledger_id) > 0:
                raise GroupNatureChangeError(ledger_id, ledger.group_name, group_name)
            ledger.group_name = group_name
            ledger.is_cash_ledger = (
                ledger.assigned_operator_id is not None or is_cash_group(group_name)
            )
        if sub_group is not None:
            ledger.sub_group = sub_group or None
        ledger.updated_by_id = actor_id
        self.session.flush()
        return ledger

    def entry_count(self, ledger_id: UUID) -> int:
        return self.session.execute(
            select(func.count(VoucherEntry.id)).where(VoucherEntry.ledger_id == ledger_id)
        ).scalar_one()

    def delete(self, ledger_id: UUID) -> None:
        """
        Physically delete a ledger.

        Raises:
            LedgerNotFoundError: Unknown id.
            LedgerHasTransactionsError: Entries (including the zeroed entries
                of cancelled vouchers) still reference the ledger.
        """
        ledger = self.lock(ledger_id)
        count = self.entry_count(ledger_id)
        if count > 0:
            raise LedgerHasTransactionsError(ledger_id, count)
        self.session.delete(ledger)
        self.session.flush()


"""
BaseService and TransactionBoundary -- the two halves of the kernel's
transaction contract.

Responsibility:
    BaseService is the parent of every write-side service.  It holds the
    caller's session and only ever flushes.

    TransactionBoundary is the parent of the public entry points
    (VoucherEngine, LedgerRegistry, BulkImporter, ReconciliationService).
    Each public operation runs through ``_guarded()``, which makes the
    operation atomic and converts kernel errors into values the boundary can
    return as typed results.

Invariants enforced:
    - A public operation fully applies or leaves no trace: with auto_commit
      the session is committed on success and rolled back on any error;
      without auto_commit the body runs inside a SAVEPOINT so a rejection
      never leaks partial writes into the caller's transaction.
    - SQLAlchemy failures are rolled back and surfaced as
      TransactionFailureError.  Nothing is retried here.
"""

from abc import ABC
from collections.abc import Callable
from typing import Generic, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ledger_kernel.db.base import Base
from ledger_kernel.exceptions import LedgerKernelError, TransactionFailureError
from ledger_kernel.logging_config import get_logger

ModelType = TypeVar("ModelType", bound=Base)
T = TypeVar("T")

logger = get_logger("services.boundary")


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for write-side services.

    Guarantees:
        The service never calls ``session.commit()`` or
        ``session.rollback()``; the boundary that called it owns the
        transaction.
    """

    def __init__(self, session: Session):
        self.session = session


class TransactionBoundary:
    """
    Base for classes whose public methods are whole transactions.

    Args:
        session: SQLAlchemy session.
        auto_commit: If True (default), commit on success and roll back on
            failure.  If False, the caller owns the outer transaction and each
            operation runs in a savepoint.
    """

    def __init__(self, session: Session, auto_commit: bool = True):
        self.session = session
        self._auto_commit = auto_commit

    def _guarded(
        self,
        operation: str,
        body: Callable[[], T],
    ) -> tuple[T | None, LedgerKernelError | None]:
        """
        Run body atomically.

        Returns:
            (value, None) on success, (None, error) when body raised a
            LedgerKernelError.  Nothing has been written in the second case.

        Raises:
            TransactionFailureError: The store rejected the flush or commit.
        """
        try:
            if self._auto_commit:
                value = body()
                self.session.commit()
            else:
                with self.session.begin_nested():
                    value = body()
            return value, None
        except TransactionFailureError:
            self._rollback()
            raise
        except LedgerKernelError as exc:
            self._rollback()
            return None, exc
        except SQLAlchemyError as exc:
            self._rollback()
            logger.error(
                "transaction_failed",
                extra={"operation": operation},
                exc_info=True,
            )
            raise TransactionFailureError(operation, str(exc)) from exc

    def _rollback(self) -> None:
        if self._auto_commit:
            self.session.rollback()

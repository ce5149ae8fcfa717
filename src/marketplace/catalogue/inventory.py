"""Inventory ledger: stock decrements that cannot oversell.

Each decrement is a compare-and-set against the store: the update only matches
the product row while it is still tracked and still holds the stock level that
was read. A lost race re-reads and tries again, so two concurrent checkouts for
the last unit produce exactly one success.

Providers that cannot report how many rows an update matched cannot serve as a
conditional primitive. For those the ledger either reports NOT_SUPPORTED or,
when explicitly allowed, falls back to a read-validate-write on the aggregate.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain
from protean.utils.query import Q

from marketplace.catalogue.product import Product

logger = structlog.get_logger(__name__)

# Compare-and-set rounds per decrement before contention is reported
MAX_CAS_ROUNDS = 5


class DecrementFailure(Enum):
    NOT_FOUND = "not_found"
    NOT_TRACKED = "not_tracked"
    INSUFFICIENT = "insufficient"
    NOT_SUPPORTED = "not_supported"


@dataclass(frozen=True)
class DecrementResult:
    """Outcome of decrementing one product's stock."""

    product_id: str
    requested: int
    ok: bool
    after: int | None = None
    archived: bool = False
    reason: DecrementFailure | None = None
    attempts: int = 1


@dataclass(frozen=True)
class BatchOutcome:
    """Per-product outcomes of a batch decrement, in request order."""

    results: tuple[DecrementResult, ...]

    @property
    def succeeded(self) -> list[DecrementResult]:
        return [r for r in self.results if r.ok]

    @property
    def failures(self) -> list[DecrementResult]:
        return [r for r in self.results if not r.ok]

    @property
    def all_ok(self) -> bool:
        return all(r.ok for r in self.results)

    def for_product(self, product_id: str) -> DecrementResult | None:
        return next((r for r in self.results if r.product_id == str(product_id)), None)


class InventoryLedger:
    """Decrements tracked stock and auto-archives products that sell out.

    Args:
        insufficient_retries: Extra attempts for a product that reported
            INSUFFICIENT, to ride out a concurrent restock.
        allow_rewrite_fallback: Use a read-validate-write when the store has
            no conditional update. Not safe under concurrency.
    """

    def __init__(self, insufficient_retries: int = 2, allow_rewrite_fallback: bool = True) -> None:
        self.insufficient_retries = max(0, insufficient_retries)
        self.allow_rewrite_fallback = allow_rewrite_fallback

    # -------------------------------------------------------------------
    # Single product
    # -------------------------------------------------------------------
    def decrement(self, product_id: str, quantity: int, auto_archive: bool = True) -> DecrementResult:
        """Atomically remove ``quantity`` units from a tracked product."""
        product_id = str(product_id)
        if quantity <= 0:
            raise ValueError(f"Decrement quantity must be positive, got {quantity}")

        repo = current_domain.repository_for(Product)

        for round_number in range(1, MAX_CAS_ROUNDS + 1):
            try:
                product = repo.get(product_id)
            except ObjectNotFoundError:
                return self._failure(product_id, quantity, DecrementFailure.NOT_FOUND, round_number)

            if not product.track_inventory:
                return self._failure(product_id, quantity, DecrementFailure.NOT_TRACKED, round_number)

            observed = product.stock_quantity or 0
            if observed < quantity:
                return self._failure(product_id, quantity, DecrementFailure.INSUFFICIENT, round_number)

            matched = self._compare_and_set(repo, product_id, observed, quantity)
            if matched is None:
                if not self.allow_rewrite_fallback:
                    return self._failure(product_id, quantity, DecrementFailure.NOT_SUPPORTED, round_number)
                return self._decrement_by_rewrite(repo, product, quantity, auto_archive)

            if matched:
                after = observed - quantity
                archived = auto_archive and after == 0 and self._archive(repo, product_id)
                logger.info(
                    "Stock decremented",
                    product_id=product_id,
                    quantity=quantity,
                    after=after,
                    archived=archived,
                )
                return DecrementResult(
                    product_id=product_id,
                    requested=quantity,
                    ok=True,
                    after=after,
                    archived=archived,
                    attempts=round_number,
                )

            logger.debug("Stock changed underneath decrement, re-reading", product_id=product_id)

        logger.warning("Stock decrement lost every compare-and-set round", product_id=product_id)
        return self._failure(product_id, quantity, DecrementFailure.INSUFFICIENT, MAX_CAS_ROUNDS)

    # -------------------------------------------------------------------
    # Batch
    # -------------------------------------------------------------------
    def decrement_batch(self, quantities: Mapping[str, int], auto_archive: bool = True) -> BatchOutcome:
        """Decrement several products; each product is independent of the others."""
        results = []
        for product_id, quantity in quantities.items():
            result = self.decrement(product_id, quantity, auto_archive=auto_archive)
            retries = 0
            while result.reason == DecrementFailure.INSUFFICIENT and retries < self.insufficient_retries:
                retries += 1
                result = self.decrement(product_id, quantity, auto_archive=auto_archive)

            if not result.ok:
                logger.warning(
                    "Stock decrement failed",
                    product_id=result.product_id,
                    quantity=quantity,
                    reason=result.reason.value,
                    retries=retries,
                )
            results.append(result)

        return BatchOutcome(results=tuple(results))

    # -------------------------------------------------------------------
    # Store primitives
    # -------------------------------------------------------------------
    def _compare_and_set(self, repo, product_id: str, observed: int, quantity: int) -> int | None:
        """Write the new stock only if the row still matches what was read.

        Returns the matched row count, or None when the store cannot tell.
        """
        try:
            matched = repo._dao._update_all(
                Q(id=product_id, track_inventory=True, stock_quantity=observed, stock_quantity__gte=quantity),
                stock_quantity=observed - quantity,
                updated_at=datetime.now(UTC),
            )
        except NotImplementedError:
            return None
        if matched is None:
            return None
        return int(matched)

    def _archive(self, repo, product_id: str) -> bool:
        matched = repo._dao._update_all(
            Q(id=product_id, is_archived=False), is_archived=True, updated_at=datetime.now(UTC)
        )
        return bool(matched)

    def _decrement_by_rewrite(self, repo, product: Product, quantity: int, auto_archive: bool) -> DecrementResult:
        after = product.deduct_stock(quantity)
        archived = auto_archive and after == 0 and product.archive()
        repo.add(product)
        logger.info(
            "Stock decremented by rewrite",
            product_id=str(product.id),
            quantity=quantity,
            after=after,
            archived=archived,
        )
        return DecrementResult(product_id=str(product.id), requested=quantity, ok=True, after=after, archived=archived)

    @staticmethod
    def _failure(product_id: str, quantity: int, reason: DecrementFailure, attempts: int) -> DecrementResult:
        return DecrementResult(product_id=product_id, requested=quantity, ok=False, reason=reason, attempts=attempts)

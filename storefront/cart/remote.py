"""
Remote Item Store - the signed-in user's cart rows in Supabase.

Every call reports a WriteOutcome instead of raising:
- SUCCESS
- RETRIABLE_FAILURE: network errors, timeouts, HTTP 429/5xx; retried with
  exponential backoff up to CartSettings.write_attempts, then dropped
- PERMANENT_FAILURE: PostgREST errors (RLS, constraint, bad request) and
  anything unexpected; dropped immediately
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple, TypeVar

import httpx
from postgrest.exceptions import APIError
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.services.models import Product
from storefront.services.repositories import CartItemRepository
from .config import CartSettings

logger = get_logger(__name__)

T = TypeVar("T")


class WriteOutcome(str, Enum):
    """Result of one remote call."""
    SUCCESS = "success"
    RETRIABLE_FAILURE = "retriable_failure"
    PERMANENT_FAILURE = "permanent_failure"

    @property
    def ok(self) -> bool:
        return self is WriteOutcome.SUCCESS


class RemoteCallError(Exception):
    """A failed remote call tagged with its classification."""

    def __init__(self, outcome: WriteOutcome, cause: BaseException):
        super().__init__(f"{outcome.value}: {type(cause).__name__}: {cause}")
        self.outcome = outcome
        self.cause = cause


def _http_status(code: Any) -> Optional[int]:
    """HTTP status carried in an APIError code, None for PGRST*/SQLSTATE codes."""
    if isinstance(code, bool):
        return None
    if isinstance(code, int):
        return code
    if isinstance(code, str) and len(code) == 3 and code.isdigit():
        return int(code)
    return None


def classify_error(exc: BaseException) -> WriteOutcome:
    """
    Map a client exception to the outcome it represents.

    PostgREST reports every non-2xx response as APIError. Gateway responses
    without a JSON body (throttling, 5xx) carry the HTTP status as the code;
    database and PostgREST errors carry SQLSTATE or PGRST codes.
    """
    if isinstance(exc, httpx.TransportError):
        return WriteOutcome.RETRIABLE_FAILURE
    if isinstance(exc, APIError):
        status = _http_status(exc.code)
        if status is not None and (status == 429 or 500 <= status <= 599):
            return WriteOutcome.RETRIABLE_FAILURE
    return WriteOutcome.PERMANENT_FAILURE


def _is_retriable(exc: BaseException) -> bool:
    return isinstance(exc, RemoteCallError) and exc.outcome is WriteOutcome.RETRIABLE_FAILURE


@dataclass(frozen=True)
class RemoteLine:
    """One remote cart row, with the product joined in when available."""
    product_id: str
    quantity: int
    product: Optional[Product] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "RemoteLine":
        """
        Build from a cart_items row with embedded products(...).

        Raises:
            KeyError, TypeError, ValueError: If the row is malformed
        """
        product_id = str(row["product_id"])
        quantity = int(row["quantity"])
        if quantity < 1:
            raise ValueError(f"Invalid quantity: {quantity}")

        product = None
        product_data = row.get("products")
        if isinstance(product_data, dict) and product_data.get("name"):
            product = Product(**{**product_data, "id": product_id})
        return cls(product_id=product_id, quantity=quantity, product=product)


class RemoteItemStore:
    """
    Per-user (product_id -> quantity) set backed by the cart_items table.

    Usage:
        store = RemoteItemStore(CartItemRepository(client))
        lines = await store.list(user_id)          # None on failure
        outcome = await store.upsert(user_id, "42", 3)
    """

    def __init__(self, repo: CartItemRepository, settings: Optional[CartSettings] = None):
        self.repo = repo
        self.settings = settings or CartSettings()

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.settings.write_attempts),
            wait=wait_exponential(
                multiplier=self.settings.retry_wait_seconds,
                max=self.settings.retry_max_wait_seconds,
            ),
            retry=retry_if_exception(_is_retriable),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    async def _call(
        self,
        action: str,
        user_id: str,
        call: Callable[[], Awaitable[T]],
    ) -> Tuple[WriteOutcome, Optional[T]]:
        """Run one repository call under the retry policy."""
        result: Optional[T] = None
        try:
            async for attempt in self._retrying():
                with attempt:
                    try:
                        result = await call()
                    except Exception as e:
                        raise RemoteCallError(classify_error(e), e) from e
        except RemoteCallError as e:
            logger.error(
                "Remote cart %s for user %s dropped (%s): %s",
                action,
                sanitize_id_for_logging(user_id),
                e.outcome.value,
                type(e.cause).__name__,
            )
            return e.outcome, None
        return WriteOutcome.SUCCESS, result

    async def list(self, user_id: str) -> Optional[List[RemoteLine]]:
        """
        Get the user's remote cart lines.

        Returns:
            Lines in table order, or None if the read failed
        """
        outcome, rows = await self._call("list", user_id, lambda: self.repo.list_for_user(user_id))
        if not outcome.ok:
            return None

        lines = []
        for row in rows or []:
            try:
                lines.append(RemoteLine.from_row(row))
            except (KeyError, TypeError, ValueError, ValidationError) as e:
                logger.warning("Skipping malformed remote cart row: %s", e)
        return lines

    async def upsert(self, user_id: str, product_id: str, quantity: int) -> WriteOutcome:
        """Set the quantity of one product (idempotent)."""
        outcome, _ = await self._call(
            "upsert", user_id, lambda: self.repo.upsert(user_id, product_id, quantity)
        )
        return outcome

    async def delete(self, user_id: str, product_id: str) -> WriteOutcome:
        """Delete one product (deleting an absent row is a success)."""
        outcome, _ = await self._call(
            "delete", user_id, lambda: self.repo.delete(user_id, product_id)
        )
        return outcome

    async def delete_all(self, user_id: str) -> WriteOutcome:
        """Delete every row of the user."""
        outcome, _ = await self._call("delete_all", user_id, lambda: self.repo.delete_all(user_id))
        return outcome

    async def upsert_many(
        self,
        user_id: str,
        items: Iterable[Tuple[str, int]],
    ) -> Dict[str, WriteOutcome]:
        """
        Batch upsert as a sequence of single-row upserts.

        No multi-row atomicity: each row gets its own outcome.
        """
        outcomes = {}
        for product_id, quantity in items:
            outcomes[product_id] = await self.upsert(user_id, product_id, quantity)
        return outcomes

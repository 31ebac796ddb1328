"""
Cart Store - the browsing session's cart.

Mutations apply to memory synchronously; persistence follows the session:
- ANONYMOUS: written to the device store before the call returns
- SYNCING: remembered as dirty and flushed once the sync finishes
- AUTHENTICATED: one fire-and-forget remote write per mutation

Remote writes are issued in mutation order but may complete out of order.
"""
import asyncio
from decimal import Decimal
from typing import Awaitable, Callable, Coroutine, Dict, List, Optional, Set, Tuple, Union

from storefront.errors import ERROR_INVALID_QUANTITY, ERROR_MISSING_PRODUCT_ID
from storefront.logging import get_logger, sanitize_id_for_logging
from storefront.services.models import Product
from .device import DeviceStore
from .models import CartLine, CartSnapshot, CartState, CartStatus
from .remote import RemoteItemStore, RemoteLine, WriteOutcome

logger = get_logger(__name__)

Listener = Callable[[CartSnapshot], None]


def _require_int(value, message: str = ERROR_INVALID_QUANTITY) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(message)
    return value


def merge_lines(remote_lines: List[RemoteLine], local_lines: List[CartLine]) -> List[CartLine]:
    """
    Additive merge of the device cart into the remote cart.

    Overlapping products get remote + local quantity; local-only lines are
    appended after the remote ones. Remote metadata wins when the product
    join returned it. Remote rows with no product data and no local
    counterpart cannot be displayed and are left out.
    """
    local_by_id = {line.product_id: line for line in local_lines}
    merged: Dict[str, CartLine] = {}

    for remote in remote_lines:
        local = local_by_id.pop(remote.product_id, None)
        previous = merged.get(remote.product_id)
        quantity = remote.quantity + (local.quantity if local else 0)
        if previous is not None:
            # Duplicate remote row: fold it in
            merged[remote.product_id] = previous.with_quantity(previous.quantity + remote.quantity)
        elif remote.product is not None:
            merged[remote.product_id] = CartLine.from_product(remote.product, quantity)
        elif local is not None:
            merged[remote.product_id] = local.with_quantity(quantity)
        else:
            logger.warning("Remote cart product %s has no catalog data, skipping", remote.product_id)

    for line in local_lines:
        if line.product_id in local_by_id:
            merged[line.product_id] = line

    return list(merged.values())


class CartStore:
    """
    Single source of truth for the current cart.

    Constructed once by the Storefront container and handed to consumers.
    Hydrates from the device store on construction. Session transitions
    arrive through ``session_acquired`` / ``session_lost``.

    Usage:
        store = CartStore(device_store, remote_store)
        unsubscribe = store.subscribe(render)
        store.add_item(product, 2)
        store.update_quantity(product.id, -1)
        await store.session_acquired(user_id)  # merge device cart into remote
    """

    def __init__(self, device_store: DeviceStore, remote_store: RemoteItemStore):
        self.device = device_store
        self.remote = remote_store
        self.is_open = False  # cart drawer flag

        self._state = CartState(lines=device_store.get())
        self._status = CartStatus.ANONYMOUS
        self._user_id: Optional[str] = None

        self._sync_in_flight = False
        self._session_epoch = 0  # bumped on every session change; stale syncs check it
        self._dirty: Set[str] = set()
        # Device lines a failed sync left behind for the next sign-in
        self._device_leftovers: Dict[str, CartLine] = {}

        self._pending: Set[asyncio.Task] = set()
        self._listeners: List[Listener] = []

    # ==================== READ SIDE ====================

    @property
    def status(self) -> CartStatus:
        return self._status

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def lines(self) -> Tuple[CartLine, ...]:
        return tuple(self._state.lines)

    @property
    def is_empty(self) -> bool:
        return self._state.is_empty

    @property
    def is_syncing(self) -> bool:
        return self._sync_in_flight

    def __len__(self) -> int:
        return len(self._state)

    def get_line(self, product_id: str) -> Optional[CartLine]:
        return self._state.find(product_id)

    def total_items(self) -> int:
        """Sum of quantities, recomputed on every call."""
        return self._state.total_items

    def total_price(self) -> Decimal:
        """Sum of quantity x unit price, recomputed on every call."""
        return self._state.total_price

    def snapshot(self) -> CartSnapshot:
        return CartSnapshot(
            lines=self.lines,
            status=self._status,
            user_id=self._user_id,
            total_items=self.total_items(),
            total_price=self.total_price(),
            is_open=self.is_open,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener called with a snapshot after every change.

        Returns:
            Callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Cart listener %r failed", listener)

    # ==================== MUTATIONS ====================

    def add_item(self, product: Union[Product, CartLine], quantity: Optional[int] = None) -> CartLine:
        """
        Add a product, or add to the quantity of its existing line.

        Args:
            product: Catalog product, or a prepared CartLine
            quantity: Units to add; defaults to the line's quantity or 1.
                Values below 1 are raised to 1.

        Returns:
            The line as stored after the change

        Raises:
            ValueError: If quantity is not an integer or the product has no id
        """
        if quantity is None:
            quantity = product.quantity if isinstance(product, CartLine) else 1
        quantity = max(1, _require_int(quantity))

        if isinstance(product, CartLine):
            line = product.with_quantity(quantity)
        else:
            line = CartLine.from_product(product, quantity)
        if not line.product_id:
            raise ValueError(ERROR_MISSING_PRODUCT_ID)

        i = self._state.index_of(line.product_id)
        if i is None:
            self._state.lines.append(line)
        else:
            existing = self._state.lines[i]
            line = existing.with_quantity(existing.quantity + quantity)
            self._state.lines[i] = line

        self.is_open = True
        self._persist(line.product_id)
        self._notify()
        return line

    def update_quantity(self, product_id: str, delta: int) -> Optional[CartLine]:
        """
        Shift a line's quantity by ``delta``, never below 1.

        Removal is only done by remove_item. Unknown products are a no-op.

        Returns:
            The updated line, or None if the product is not in the cart
        """
        delta = _require_int(delta, "delta must be an integer")
        i = self._state.index_of(product_id)
        if i is None:
            return None

        existing = self._state.lines[i]
        new_quantity = max(1, existing.quantity + delta)
        if new_quantity == existing.quantity:
            return existing

        line = existing.with_quantity(new_quantity)
        self._state.lines[i] = line
        self._persist(product_id)
        self._notify()
        return line

    def remove_item(self, product_id: str) -> bool:
        """
        Remove a line if present.

        Returns:
            True if a line was removed
        """
        i = self._state.index_of(product_id)
        if i is None:
            return False

        del self._state.lines[i]
        self._persist(product_id)
        self._notify()
        return True

    def empty_cart(self) -> None:
        """Remove every line."""
        removed = [line.product_id for line in self._state.lines]
        self._state = CartState()

        if self._status is CartStatus.ANONYMOUS:
            self.device.clear()
        elif self._status is CartStatus.SYNCING:
            self._dirty.update(removed)
        else:
            user_id = self._user_id
            self._spawn_write("delete_all", lambda: self.remote.delete_all(user_id))
        self._notify()

    def open(self) -> None:
        self.is_open = True
        self._notify()

    def close(self) -> None:
        self.is_open = False
        self._notify()

    # ==================== PERSISTENCE ====================

    def _persist(self, product_id: str) -> None:
        """Persist the current state of one line to the active backing store."""
        if self._status is CartStatus.ANONYMOUS:
            self.device.set(self._state.lines)
        elif self._status is CartStatus.SYNCING:
            self._dirty.add(product_id)
        else:
            self._push_line(product_id)

    def _push_line(self, product_id: str) -> None:
        user_id = self._user_id
        line = self._state.find(product_id)
        if line is not None:
            quantity = line.quantity
            self._spawn_write("upsert", lambda: self.remote.upsert(user_id, product_id, quantity), product_id)
        else:
            self._spawn_write("delete", lambda: self.remote.delete(user_id, product_id), product_id)

    def _spawn_write(
        self,
        action: str,
        call: Callable[[], Awaitable[WriteOutcome]],
        product_id: Optional[str] = None,
    ) -> None:
        self._spawn(self._write(action, self._user_id, self._session_epoch, call, product_id))

    async def _write(
        self,
        action: str,
        user_id: str,
        epoch: int,
        call: Callable[[], Awaitable[WriteOutcome]],
        product_id: Optional[str] = None,
    ) -> WriteOutcome:
        """
        Await one remote write and apply the outcome policy (log and drop).

        ``product_id`` None means the write covered every line (delete_all).
        """
        outcome = await call()
        if outcome is WriteOutcome.SUCCESS:
            logger.debug("Remote cart %s ok for %s", action, sanitize_id_for_logging(user_id))
            if epoch == self._session_epoch:
                self._settle_leftover(product_id)
        elif outcome is WriteOutcome.RETRIABLE_FAILURE:
            logger.warning(
                "Remote cart %s for %s gave up after retries; local cart is ahead of remote",
                action,
                sanitize_id_for_logging(user_id),
            )
        else:
            logger.warning(
                "Remote cart %s for %s rejected; local cart is ahead of remote",
                action,
                sanitize_id_for_logging(user_id),
            )
        return outcome

    def _settle_leftover(self, product_id: Optional[str]) -> None:
        """
        Drop a leftover device line once the remote holds the line's full quantity.

        Remote writes are absolute and the in-memory quantity already includes
        the device contribution, so keeping the line would add it a second
        time on the next sign-in.
        """
        if product_id is None:
            if not self._device_leftovers:
                return
            self._device_leftovers.clear()
        elif self._device_leftovers.pop(product_id, None) is None:
            return
        self.device.set(list(self._device_leftovers.values()))

    def _spawn(self, coro: Coroutine) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            logger.error("Remote cart write skipped: no running event loop")
            return
        task = loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for every in-flight remote write to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    # ==================== SESSION TRANSITIONS ====================

    async def session_acquired(self, user_id: str) -> None:
        """
        Merge the device cart into the user's remote cart, once per sign-in.

        A call while a sync is already running is ignored; a call for the
        user that is already synced is a no-op.
        """
        if not user_id:
            raise ValueError("user_id must be a non-empty string")
        if self._sync_in_flight:
            logger.info(
                "Cart sync already running, ignoring session for %s",
                sanitize_id_for_logging(user_id),
            )
            return
        if self._status is CartStatus.AUTHENTICATED:
            if user_id == self._user_id:
                return
            # Account switch without a sign-out in between
            self.session_lost()

        self._session_epoch += 1
        epoch = self._session_epoch
        self._sync_in_flight = True
        self._status = CartStatus.SYNCING
        self._user_id = user_id
        self._dirty.clear()
        self._notify()

        try:
            await self._sync(user_id, epoch)
        finally:
            if epoch == self._session_epoch:
                self._sync_in_flight = False

    async def _sync(self, user_id: str, epoch: int) -> None:
        safe_user = sanitize_id_for_logging(user_id)
        device_lines = list(self._state.lines)
        self._device_leftovers = {}

        remote_lines = await self.remote.list(user_id)
        if epoch != self._session_epoch:
            logger.info("Cart sync for %s abandoned: session changed", safe_user)
            return

        if remote_lines is None:
            # Read failed: keep the local cart and the device record for the next sign-in
            logger.warning("Cart sync for %s could not read remote cart; keeping local cart", safe_user)
            self._device_leftovers = {line.product_id: line for line in device_lines}
            self._finish_sync()
            return

        local_lines = list(self._state.lines)
        merged = merge_lines(remote_lines, local_lines)
        self._state = CartState(lines=merged)
        self._dirty.clear()
        self._notify()

        outcomes: Dict[str, WriteOutcome] = {}
        if merged:
            outcomes = await self.remote.upsert_many(
                user_id, [(line.product_id, line.quantity) for line in merged]
            )
        if epoch != self._session_epoch:
            logger.info("Cart sync for %s abandoned during write-back: session changed", safe_user)
            return

        failed = {product_id for product_id, outcome in outcomes.items() if not outcome.ok}
        if failed:
            # Keep only the device lines the remote never received
            unsent = [line for line in local_lines if line.product_id in failed]
            self.device.set(unsent)
            self._device_leftovers = {line.product_id: line for line in unsent}
            logger.warning(
                "Cart sync for %s: %d of %d lines not written back; %d kept on device",
                safe_user,
                len(failed),
                len(outcomes),
                len(unsent),
            )
        else:
            self.device.clear()

        logger.info("Cart synced for %s: %d lines", safe_user, len(merged))
        self._finish_sync()

    def _finish_sync(self) -> None:
        self._status = CartStatus.AUTHENTICATED
        dirty, self._dirty = self._dirty, set()
        for product_id in dirty:
            self._push_line(product_id)
        self._notify()

    def session_lost(self) -> None:
        """Sign-out from any state: back to an empty anonymous cart."""
        self._session_epoch += 1
        self._sync_in_flight = False
        self._status = CartStatus.ANONYMOUS
        self._user_id = None
        self._dirty.clear()
        self._device_leftovers = {}
        self._state = CartState()
        self.device.clear()
        self._notify()

"""
Payment attempt state machine.

One PaymentOrchestrator drives a single attendee's attempt:

    Idle -> Initiating -> AwaitingCallback -> Verifying -> Confirmed
                 |               |                |
                 +-> Aborted <---+----------------+

Dismissing the checkout widget returns the attempt to Idle. Nothing retries on
its own; after Aborted the caller has to reset() and pay() again.

confirm_payment() is the only path from a checkout callback to a ledger write,
and it always verifies first.
"""
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Protocol, Union

from catalog import EventCatalog
from database import RegistrationStore
from errors import (
    CheckoutTimeoutError,
    InvalidTransition,
    OrderCreationError,
    RegistrationError,
    StoreWriteError,
    VerificationError,
)
from schemas import (
    ConfirmedRegistration,
    NewRegistration,
    OrderDescriptor,
    PaymentChannel,
    PendingRegistration,
)

logger = logging.getLogger(__name__)


class AttemptState(str, Enum):
    IDLE = "idle"
    INITIATING = "initiating"
    AWAITING_CALLBACK = "awaiting_callback"
    VERIFYING = "verifying"
    CONFIRMED = "confirmed"
    ABORTED = "aborted"


@dataclass(frozen=True)
class CheckoutSuccess:
    payment_id: str
    order_id: str
    signature: str = ""


@dataclass(frozen=True)
class CheckoutDismissed:
    reason: str = "dismissed"


CheckoutResult = Union[CheckoutSuccess, CheckoutDismissed]


@dataclass
class CheckoutRequest:
    """Everything the checkout widget needs to open for one order."""

    key_id: str
    order: OrderDescriptor
    channel: PaymentChannel
    prefill: Dict[str, str]
    notes: Dict[str, str] = field(default_factory=dict)
    description: str = "Event Registration Payment"
    # Set when the attempt stops waiting; the widget should close itself.
    cancelled: threading.Event = field(default_factory=threading.Event)

    @property
    def methods(self) -> Dict[str, bool]:
        return {
            "upi": self.channel == PaymentChannel.UPI,
            "qr": self.channel == PaymentChannel.QR,
            "card": False,
            "netbanking": False,
            "wallet": False,
        }


class OrderService(Protocol):
    def create_order(self, amount: int, receipt: str) -> OrderDescriptor: ...


class CheckoutWidget(Protocol):
    def open(self, request: CheckoutRequest) -> CheckoutResult: ...


class PaymentVerifier(Protocol):
    def verify_payment(self, payment_id: str, order_id: str, signature: str) -> bool: ...


def confirm_payment(
    pending: PendingRegistration,
    callback: CheckoutSuccess,
    *,
    verifier: PaymentVerifier,
    store: RegistrationStore,
    catalog: EventCatalog,
    expected_order_id: Optional[str] = None,
) -> ConfirmedRegistration:
    """Verify a successful checkout callback, then write the ledger row."""
    payment_id, order_id = callback.payment_id, callback.order_id

    if expected_order_id is not None and order_id != expected_order_id:
        logger.error(
            "Callback order %s does not match attempt order %s (payment %s); manual reconciliation required",
            order_id, expected_order_id, payment_id,
        )
        raise VerificationError("Payment does not belong to this order", payment_id, order_id)
    try:
        verified = verifier.verify_payment(payment_id, order_id, callback.signature)
    except Exception as exc:
        logger.error("Verifier failed for payment %s: %s; manual reconciliation required", payment_id, exc)
        raise VerificationError("Payment verification failed", payment_id, order_id) from exc
    if not verified:
        logger.error("Signature mismatch for payment %s (order %s); manual reconciliation required",
                     payment_id, order_id)
        raise VerificationError("Payment verification failed", payment_id, order_id)

    event = catalog.lookup(pending.event_id)
    record = NewRegistration(
        **pending.model_dump(),
        event_name=event.name,
        payment_id=payment_id,
    )
    try:
        return store.append(record, prefix=event.registration_prefix)
    except Exception as exc:
        error = exc if isinstance(exc, StoreWriteError) else StoreWriteError(f"Failed to save registration: {exc}")
        if error is not exc:
            error.__cause__ = exc
        error.payment_id, error.order_id = payment_id, order_id
        logger.critical(
            "PAYMENT CAPTURED BUT NOT RECORDED: payment %s order %s event %s email %s: %s",
            payment_id, order_id, pending.event_id, pending.email, error.message,
        )
        raise error


def _log_late_result(future) -> None:
    if future.cancelled() or future.exception() is not None:
        return
    result = future.result()
    if isinstance(result, CheckoutSuccess):
        logger.error(
            "Late checkout success after timeout: payment %s order %s was not recorded; manual reconciliation required",
            result.payment_id, result.order_id,
        )


class PaymentOrchestrator:
    def __init__(
        self,
        pending: PendingRegistration,
        *,
        orders: OrderService,
        checkout: CheckoutWidget,
        verifier: PaymentVerifier,
        store: RegistrationStore,
        catalog: EventCatalog,
        key_id: str = "",
        callback_timeout: Optional[float] = None,
    ):
        self.pending = pending
        self.orders = orders
        self.checkout = checkout
        self.verifier = verifier
        self.store = store
        self.catalog = catalog
        self.key_id = key_id
        self.callback_timeout = callback_timeout

        self.state = AttemptState.IDLE
        self.channel: Optional[PaymentChannel] = None
        self.order: Optional[OrderDescriptor] = None
        self.confirmed: Optional[ConfirmedRegistration] = None
        self.error: Optional[RegistrationError] = None
        self.late_checkout = None

    def _move(self, state: AttemptState) -> None:
        logger.debug("Attempt for %s: %s -> %s", self.pending.email, self.state.value, state.value)
        self.state = state

    def _abort(self, error: RegistrationError) -> RegistrationError:
        self.error = error
        self._move(AttemptState.ABORTED)
        return error

    def reset(self) -> None:
        if self.state not in (AttemptState.IDLE, AttemptState.ABORTED):
            raise InvalidTransition(f"Cannot restart an attempt in state {self.state.value}")
        self.order = None
        self.error = None
        self._move(AttemptState.IDLE)

    def checkout_request(self, order: OrderDescriptor) -> CheckoutRequest:
        event = self.catalog.lookup(self.pending.event_id)
        return CheckoutRequest(
            key_id=self.key_id,
            order=order,
            channel=self.channel,
            prefill={
                "name": self.pending.participant_name,
                "email": self.pending.email,
                "contact": self.pending.phone,
            },
            notes={
                "event_id": event.id,
                "participant_name": self.pending.participant_name,
                "event_name": event.name,
            },
        )

    def _await_callback(self, request: CheckoutRequest) -> CheckoutResult:
        """
        Wait for the widget, bounded by callback_timeout.

        A blocked widget call cannot be interrupted. On timeout the request is
        flagged as cancelled and the attempt is aborted; a success that still
        arrives afterwards is never verified or recorded, only logged for
        reconciliation.
        """
        if self.callback_timeout is None:
            return self.checkout.open(request)
        executor = ThreadPoolExecutor(max_workers=1)
        future = executor.submit(self.checkout.open, request)
        try:
            return future.result(timeout=self.callback_timeout)
        except FutureTimeout:
            request.cancelled.set()
            future.add_done_callback(_log_late_result)
            self.late_checkout = future
            raise
        finally:
            executor.shutdown(wait=False)

    def pay(self, channel: Union[PaymentChannel, str] = PaymentChannel.UPI) -> Optional[ConfirmedRegistration]:
        """Run one attempt. Returns None if the attendee dismissed the checkout."""
        if self.state != AttemptState.IDLE:
            raise InvalidTransition(f"Cannot start payment in state {self.state.value}")
        self.channel = PaymentChannel(channel)
        self._move(AttemptState.INITIATING)

        try:
            order = self.orders.create_order(self.pending.total_amount, f"receipt_{int(time.time() * 1000)}")
        except OrderCreationError as exc:
            logger.error("Order creation failed for %s: %s", self.pending.email, exc)
            raise self._abort(exc)
        except Exception as exc:
            logger.error("Order creation failed for %s: %s", self.pending.email, exc)
            raise self._abort(OrderCreationError(f"Failed to create order: {exc}")) from exc
        self.order = order
        self._move(AttemptState.AWAITING_CALLBACK)

        try:
            result = self._await_callback(self.checkout_request(order))
        except FutureTimeout:
            logger.error("Checkout for order %s timed out after %ss", order.order_id, self.callback_timeout)
            raise self._abort(CheckoutTimeoutError("Checkout timed out", order_id=order.order_id)) from None
        except Exception as exc:
            logger.error("Checkout failed to open for order %s: %s", order.order_id, exc)
            raise self._abort(OrderCreationError(f"Checkout failed: {exc}")) from exc

        if isinstance(result, CheckoutDismissed):
            logger.info("Checkout for order %s dismissed by attendee", order.order_id)
            self.order = None
            self._move(AttemptState.IDLE)
            return None
        if not isinstance(result, CheckoutSuccess):
            raise self._abort(VerificationError(f"Unexpected checkout result: {result!r}", order_id=order.order_id))

        self._move(AttemptState.VERIFYING)
        try:
            confirmed = confirm_payment(
                self.pending,
                result,
                verifier=self.verifier,
                store=self.store,
                catalog=self.catalog,
                expected_order_id=order.order_id,
            )
        except RegistrationError as exc:
            raise self._abort(exc)

        self.confirmed = confirmed
        self._move(AttemptState.CONFIRMED)
        return confirmed

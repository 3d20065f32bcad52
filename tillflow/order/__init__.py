"""
Order — checkout entry, placement and the storefront API.

    from tillflow import order as O

    api = O.StorefrontApi(O.storefront_client(base_url, token))
    cart_state = O.CartState()

    view = await O.CheckoutSession(api, cart_state, fees).enter()
    reconciler = O.OrderReconciler(router, api, store, cart_state=cart_state, fees=fees)
    result = await reconciler.place(
        view.cart, view.selected_address_id, Pay.CashOnDelivery(),
        addresses=view.addresses, session=session,
    )
"""

from tillflow.order._types import (
    Address,
    DeliveryAddress,
    OrderItem,
    PaymentConfirmation,
    OrderRequest,
    CheckoutState,
    TRANSITIONS,
    OrderFailureKind,
    Confirmed,
    ValidationFailed,
    PaymentFailed,
    PaymentCancelled,
    OrderCreationFailed,
    OrderResult,
    Transition,
    CheckoutAttempt,
)
from tillflow.order._assembler import (
    MissingProduct,
    resolve_product,
    select_address,
    contact_phone,
    assemble_items,
    assemble,
)
from tillflow.order._source import (
    CartSource,
    OrderBackend,
    CartState,
    parse_cart_line,
    parse_cart,
    parse_address,
    parse_addresses,
)
from tillflow.order._reconciler import (
    OrderReconciler,
    classify_order_fault,
    new_order_ref,
)
from tillflow.order._session import CheckoutSession, CheckoutView
from tillflow.order._http import StorefrontApi, storefront_client

__all__ = (
    # Types
    "Address",
    "DeliveryAddress",
    "OrderItem",
    "PaymentConfirmation",
    "OrderRequest",
    "CheckoutState",
    "TRANSITIONS",
    "OrderFailureKind",
    # Results
    "Confirmed",
    "ValidationFailed",
    "PaymentFailed",
    "PaymentCancelled",
    "OrderCreationFailed",
    "OrderResult",
    "Transition",
    "CheckoutAttempt",
    # Assembly
    "MissingProduct",
    "resolve_product",
    "select_address",
    "contact_phone",
    "assemble_items",
    "assemble",
    # Sources
    "CartSource",
    "OrderBackend",
    "CartState",
    "parse_cart_line",
    "parse_cart",
    "parse_address",
    "parse_addresses",
    # Reconciler
    "OrderReconciler",
    "classify_order_fault",
    "new_order_ref",
    # Session / HTTP
    "CheckoutSession",
    "CheckoutView",
    "StorefrontApi",
    "storefront_client",
)

"""FastAPI application: HTTP entry points for the order flows.

Identity comes from the ``X-User-Id`` header (and ``X-Acting-Role`` for
staff calls), resolved against the users table on every request.  All
domain errors are translated into ``{"success": false, "error": ...}``.
"""

from __future__ import annotations

import logging
from dataclasses import asdict

from fastapi import Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from retail.application.dto import Actor, CartLineSpec
from retail.domain.exceptions import (
    AuthenticationError,
    ConflictError,
    DomainException,
    EntityNotFoundError,
    ExternalServiceError,
    ForbiddenError,
    PaymentNotConfirmedError,
    StockInvariantViolation,
    ValidationError,
)
from retail.infrastructure.api.schemas import (
    AdminCancelRequest,
    CancellationResponse,
    CancelOrderRequest,
    CheckoutResponse,
    ConfirmationResponse,
    ErrorResponse,
    OrderDetailOut,
    OrderDetailResponse,
    OrderOut,
    OrderResponse,
    PaymentOut,
    PlaceOrderRequest,
    StartCheckoutRequest,
    VerifySessionRequest,
    WebhookResponse,
)
from retail.infrastructure.bootstrap import Container, get_container
from retail.infrastructure.payments.stripe_webhook import (
    CHECKOUT_EXPIRED,
    PAYMENT_FAILED,
    construct_event,
)

logger = logging.getLogger(__name__)

# Most specific first; subclasses resolve through the MRO.
ERROR_STATUS_CODES: dict[type, int] = {
    ValidationError: 400,
    PaymentNotConfirmedError: 400,
    AuthenticationError: 401,
    ForbiddenError: 403,
    EntityNotFoundError: 404,
    ConflictError: 409,
    ExternalServiceError: 502,
    StockInvariantViolation: 500,
}


def status_code_for(exc: DomainException) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return 500


def _error(status_code: int, message: str, payment_status: str | None = None) -> JSONResponse:
    body = ErrorResponse(error=message, payment_status=payment_status)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
    )


# --- Dependencies --------------------------------------------------------------


def container_dep(request: Request) -> Container:
    return request.app.state.container


def current_actor(
    x_user_id: str | None = Header(default=None),
    x_acting_role: str | None = Header(default=None),
    container: Container = Depends(container_dep),
) -> Actor:
    return container.authenticate().handle(x_user_id, x_acting_role)


def staff_actor(actor: Actor = Depends(current_actor)) -> Actor:
    if not actor.is_staff:
        raise ForbiddenError("X-Acting-Role header is required for admin actions")
    return actor


# --- Application factory -------------------------------------------------------


def create_app(container: Container | None = None) -> FastAPI:
    app = FastAPI(title="Retail Order Core")
    app.state.container = container or get_container()

    @app.exception_handler(DomainException)
    async def domain_error_handler(request: Request, exc: DomainException) -> JSONResponse:
        status_code = status_code_for(exc)
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc)
        else:
            logger.info("%s %s rejected (%d): %s", request.method, request.url.path, status_code, exc)
        payment_status = exc.external_status if isinstance(exc, PaymentNotConfirmedError) else None
        return _error(status_code, str(exc), payment_status)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'][1:])}: {err['msg']}" for err in exc.errors()
        )
        return _error(400, f"Invalid request: {problems}")

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.post("/orders", response_model=OrderResponse, status_code=201)
    def place_order(
        body: PlaceOrderRequest,
        actor: Actor = Depends(current_actor),
        container: Container = Depends(container_dep),
    ) -> OrderResponse:
        summary = container.place_order().handle(
            actor,
            [CartLineSpec(line.variant_id, line.quantity, line.color) for line in body.items],
            shipping_cost=body.shipping_cost,
            tax_amount=body.tax_amount,
            shipping_address_id=body.shipping_address_id,
            billing_address_id=body.billing_address_id,
        )
        return OrderResponse(order=OrderOut(**asdict(summary)))

    @app.post("/payments/stripe/checkout", response_model=CheckoutResponse)
    def start_checkout(
        body: StartCheckoutRequest,
        actor: Actor = Depends(current_actor),
        container: Container = Depends(container_dep),
    ) -> CheckoutResponse:
        result = container.start_checkout().handle(body.order_id, Actor.customer(actor.user_id))
        return CheckoutResponse(
            session_id=result.session_id,
            url=result.url,
            expires_at=result.expires_at,
            order=OrderOut(**asdict(result.order)),
        )

    @app.post("/payments/stripe/verify-session", response_model=ConfirmationResponse)
    def verify_session(
        body: VerifySessionRequest,
        container: Container = Depends(container_dep),
    ) -> ConfirmationResponse:
        # Reached from the checkout redirect, so no session identity is required.
        result = container.confirm_payment().handle(body.session_id, body.order_id)
        return ConfirmationResponse(
            order=OrderOut(**asdict(result.order)),
            payment=PaymentOut(**asdict(result.payment)) if result.payment else None,
            already_processed=result.already_processed,
        )

    @app.post("/orders/cancel", response_model=CancellationResponse)
    def cancel_order(
        body: CancelOrderRequest,
        actor: Actor = Depends(current_actor),
        container: Container = Depends(container_dep),
    ) -> CancellationResponse:
        customer = Actor.customer(actor.user_id)
        result = container.cancel_order().handle(
            body.order_id, customer, reason=body.reason, session_id=body.session_id
        )
        return CancellationResponse(
            order=OrderOut(**asdict(result.order)),
            already_cancelled=result.already_cancelled,
        )

    @app.post("/admin/orders/{order_id}/cancel", response_model=CancellationResponse)
    def admin_cancel_order(
        order_id: str,
        body: AdminCancelRequest | None = None,
        actor: Actor = Depends(staff_actor),
        container: Container = Depends(container_dep),
    ) -> CancellationResponse:
        reason = body.reason if body and body.reason else "Cancelled by staff"
        result = container.cancel_order().handle(order_id, actor, reason=reason)
        return CancellationResponse(
            order=OrderOut(**asdict(result.order)),
            already_cancelled=result.already_cancelled,
        )

    @app.get("/orders/{order_id}", response_model=OrderDetailResponse)
    def show_order(
        order_id: str,
        actor: Actor = Depends(current_actor),
        container: Container = Depends(container_dep),
    ) -> OrderDetailResponse:
        data = asdict(container.show_order().handle(order_id, actor))
        summary = data.pop("summary")
        return OrderDetailResponse(order=OrderDetailOut(**summary, **data))

    @app.post("/payments/stripe/webhooks", response_model=WebhookResponse)
    async def stripe_webhook(
        request: Request,
        stripe_signature: str | None = Header(default=None),
    ) -> WebhookResponse:
        container: Container = request.app.state.container
        payload = await request.body()
        event = construct_event(payload, stripe_signature, container.settings.stripe_webhook_secret)

        if event.type not in (CHECKOUT_EXPIRED, PAYMENT_FAILED):
            logger.info("ignoring stripe event %s of type %s", event.id, event.type)
            return WebhookResponse(handled=False)

        if not event.order_id:
            logger.warning("%s %s carries no orderId", event.type, event.object_id)
            return WebhookResponse(handled=False)

        if event.type == PAYMENT_FAILED:
            result = await run_in_threadpool(
                container.fail_payment().handle,
                event.order_id,
                event.object_id,
                event.failure_message,
            )
        else:
            result = await run_in_threadpool(
                container.expire_checkout().handle, event.order_id, event.object_id
            )
        return WebhookResponse(handled=result is not None)

    return app

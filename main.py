import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from builder import build
from catalog import catalog
from config import settings
from database import RegistrationStore, get_store
from errors import RegistrationError
from orchestrator import CheckoutSuccess, confirm_payment
from payments import PaymentGateway, get_gateway
from queries import export_registrations, list_registrations
from schemas import EventCategory, OrderRequest, RegistrationSubmission, VerifyPaymentRequest

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    get_store().initialize()
    logger.info("Registrations ledger at %s", settings.REGISTRATIONS_PATH)
    if not settings.PAYMENT_KEY_SECRET:
        logger.warning("PAYMENT_KEY_SECRET is not set; payment callbacks will not be signature-checked")
    yield


app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RegistrationError)
async def registration_error_handler(request: Request, exc: RegistrationError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Utilities

def to_json(model):
    return model.model_dump(mode="json", by_alias=True)


@app.get("/")
def root():
    return {"service": "registrations", "status": "ok"}


@app.get("/health")
def health():
    return {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()}


# Events
@app.get("/events")
def list_events(category: Optional[EventCategory] = None) -> List[dict]:
    return [to_json(e) for e in catalog.list_events(category)]


@app.get("/events/{event_id}")
def get_event(event_id: str):
    return to_json(catalog.lookup(event_id))


@app.post("/events/{event_id}/register")
def register(event_id: str, body: dict):
    # 404 for an unknown event, 422 for bad fields
    catalog.lookup(event_id)
    return to_json(build(event_id, body))


# Payments
@app.post("/order")
def create_order(body: OrderRequest, gateway: PaymentGateway = Depends(get_gateway)):
    return to_json(gateway.create_order(body.amount, body.receipt))


@app.post("/payments/verify")
def verify_payment(body: VerifyPaymentRequest, gateway: PaymentGateway = Depends(get_gateway)):
    if not gateway.verify_payment(body.payment_id, body.order_id, body.signature):
        logger.error("Rejected signature for payment %s (order %s)", body.payment_id, body.order_id)
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Payment verification failed", "paymentId": body.payment_id},
        )
    return {"success": True, "message": "Payment verified successfully", "paymentId": body.payment_id}


# Registrations
@app.post("/registrations")
def save_registration(
    body: RegistrationSubmission,
    store: RegistrationStore = Depends(get_store),
    gateway: PaymentGateway = Depends(get_gateway),
):
    fields = body.model_dump(
        by_alias=True,
        exclude_none=True,
        exclude={"total_amount", "event_name", "payment_id", "order_id", "signature", "payment_method"},
    )
    pending = build(body.event_id, fields)
    callback = CheckoutSuccess(payment_id=body.payment_id, order_id=body.order_id or "", signature=body.signature or "")
    confirmed = confirm_payment(pending, callback, verifier=gateway, store=store, catalog=catalog)
    return {
        "success": True,
        "registrationId": confirmed.registration_id,
        "message": "Registration saved successfully",
    }


@app.get("/registrations")
def get_registrations(store: RegistrationStore = Depends(get_store)) -> List[dict]:
    return [to_json(r) for r in list_registrations(store)]


@app.get("/registrations/{event_id}")
def get_event_registrations(event_id: str, store: RegistrationStore = Depends(get_store)) -> List[dict]:
    return [to_json(r) for r in list_registrations(store, event_id)]


@app.get("/export")
def export(store: RegistrationStore = Depends(get_store)):
    export_file = export_registrations(store, settings.EXPORT_FILENAME)
    if export_file is None:
        return JSONResponse(status_code=404, content={"error": "No registrations found"})
    return Response(
        content=export_file.content,
        media_type=export_file.media_type,
        headers={"Content-Disposition": f'attachment; filename="{export_file.filename}"'},
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.API_HOST, port=settings.API_PORT)

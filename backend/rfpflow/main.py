# main.py
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import models
from .ai_helpers import AIService
from .config import Settings, load_settings
from .correlation import CorrelationStrategy, SubjectRfpReference
from .emailer import Mailer, build_mailer
from .errors import (AIServiceError, EmailDispatchError, NotFoundError, PreconditionFailed,
                     RfpFlowError, RfpNotFound, VendorNotFound)
from .intake import ProposalIntake
from .recommendation import RecommendationAggregator
from .resolver import InboundResolver
from .storage import Storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1")


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def get_ai(request: Request) -> AIService:
    return request.app.state.ai


def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer


def get_intake(request: Request) -> ProposalIntake:
    return request.app.state.intake


def get_aggregator(request: Request) -> RecommendationAggregator:
    return request.app.state.aggregator


@router.get("/health")
def health():
    return {"status": "ok"}


# --- Vendor endpoints ---
@router.get("/vendors", response_model=List[models.Vendor])
def list_vendors(storage: Storage = Depends(get_storage)):
    return storage.list_vendors()


@router.post("/vendors", response_model=models.Vendor, status_code=201)
def create_vendor(vendor: models.VendorCreate, storage: Storage = Depends(get_storage)):
    return storage.create_vendor(vendor)


@router.put("/vendors/{vendor_id}", response_model=models.Vendor)
def update_vendor(vendor_id: int, body: models.VendorUpdate, storage: Storage = Depends(get_storage)):
    vendor = storage.update_vendor(vendor_id, body.model_dump(mode="json", exclude_unset=True))
    if vendor is None:
        raise VendorNotFound()
    return vendor


@router.delete("/vendors/{vendor_id}", status_code=204)
def delete_vendor(vendor_id: int, storage: Storage = Depends(get_storage)):
    if not storage.delete_vendor(vendor_id):
        raise VendorNotFound()
    return Response(status_code=204)


# --- RFP endpoints ---
@router.get("/rfps", response_model=List[models.RFP])
def list_rfps(storage: Storage = Depends(get_storage)):
    return storage.list_rfps()


@router.post("/rfps/generate", response_model=models.GeneratedRfp)
def generate_rfp(body: models.GenerateRequest, ai: AIService = Depends(get_ai)):
    return ai.structure_requirements(body.raw_requirements)


@router.post("/rfps", response_model=models.RFP, status_code=201)
def create_rfp(body: models.RFPCreate, storage: Storage = Depends(get_storage)):
    return storage.create_rfp(body)


@router.get("/rfps/{rfp_id}", response_model=models.RFP)
def get_rfp(rfp_id: int, storage: Storage = Depends(get_storage)):
    rfp = storage.get_rfp(rfp_id)
    if rfp is None:
        raise RfpNotFound()
    return rfp


@router.put("/rfps/{rfp_id}", response_model=models.RFP)
def update_rfp(rfp_id: int, body: models.RFPUpdate, storage: Storage = Depends(get_storage)):
    rfp = storage.update_rfp(rfp_id, body.model_dump(mode="json", exclude_unset=True))
    if rfp is None:
        raise RfpNotFound()
    return rfp


@router.post("/rfps/{rfp_id}/send", response_model=models.SendResult)
def send_rfp(rfp_id: int, body: models.SendRequest, storage: Storage = Depends(get_storage),
             mailer: Mailer = Depends(get_mailer)):
    rfp = storage.get_rfp(rfp_id)
    if rfp is None:
        raise RfpNotFound()
    vendors = [v for v in (storage.get_vendor(vid) for vid in body.vendor_ids) if v is not None]
    sent = mailer.send_rfp(vendors, rfp)
    storage.update_rfp(rfp.id, {"status": models.RfpStatus.SENT.value})
    return {"success": True, "message": f"Sent to {sent} vendors"}


# --- Proposals ---
@router.get("/rfps/{rfp_id}/proposals", response_model=List[models.Proposal])
def list_proposals_for_rfp(rfp_id: int, storage: Storage = Depends(get_storage)):
    return storage.list_proposals(rfp_id)


@router.get("/rfps/{rfp_id}/recommendation", response_model=models.Recommendation)
def get_recommendation(rfp_id: int, aggregator: RecommendationAggregator = Depends(get_aggregator)):
    return aggregator.recommend(rfp_id)


# --- Inbound webhook (simulated vendor replies) ---
@router.post("/proposals/inbound", response_model=models.InboundResult, response_model_exclude_none=True)
def inbound_proposal(payload: models.ProposalInbound, intake: ProposalIntake = Depends(get_intake)):
    return intake.process(payload)


# --- Error mapping ---
def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


async def handle_not_found(request: Request, exc: NotFoundError):
    return _error(404, exc.message)


async def handle_precondition(request: Request, exc: PreconditionFailed):
    return _error(400, exc.message)


async def handle_upstream(request: Request, exc: RfpFlowError):
    # Details are in the log; the caller gets the generic message.
    return _error(502, type(exc).message)


async def handle_internal(request: Request, exc: RfpFlowError):
    logger.error("Unhandled %s: %s", type(exc).__name__, exc.message)
    return _error(500, type(exc).message)


async def handle_validation(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {"msg": "Invalid request", "loc": ()}
    loc = [str(part) for part in first.get("loc", ()) if part != "body"]
    content = {"message": first.get("msg", "Invalid request")}
    if loc:
        content["field"] = ".".join(loc)
    return JSONResponse(status_code=400, content=content)


def create_app(settings: Optional[Settings] = None, ai: Optional[AIService] = None,
               mailer: Optional[Mailer] = None,
               strategy: Optional[CorrelationStrategy] = None) -> FastAPI:
    settings = settings or load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    storage = Storage(settings.data_dir)
    if settings.seed_demo_vendors:
        storage.seed_demo_vendors()
    strategy = strategy or SubjectRfpReference()
    ai = ai or AIService.from_settings(settings)
    mailer = mailer or build_mailer(settings, storage, strategy)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        mailer.open()
        try:
            yield
        finally:
            mailer.close()

    app = FastAPI(title="RFP Flow API", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # for local dev only
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.storage = storage
    app.state.ai = ai
    app.state.mailer = mailer
    app.state.intake = ProposalIntake(storage, InboundResolver(storage, strategy), ai,
                                      settings.duplicate_policy)
    app.state.aggregator = RecommendationAggregator(storage, ai)

    app.add_exception_handler(RequestValidationError, handle_validation)
    app.add_exception_handler(NotFoundError, handle_not_found)
    app.add_exception_handler(PreconditionFailed, handle_precondition)
    app.add_exception_handler(AIServiceError, handle_upstream)
    app.add_exception_handler(EmailDispatchError, handle_upstream)
    app.add_exception_handler(RfpFlowError, handle_internal)
    app.include_router(router)
    return app


app = create_app()

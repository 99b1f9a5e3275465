import logging
from functools import lru_cache

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession

from skinplan.agents.daily_tip import get_daily_tip
from skinplan.catalog import CatalogSnapshot, load_snapshot
from skinplan.config import get_settings
from skinplan.database import get_db
from skinplan.errors import ErrorKind, PlanError
from skinplan.schemas import DailyTip, DailyTipRequest, GeneratePlanRequest, Plan28, ReplaceProductRequest
from skinplan.services.plan_service import PlanService

settings = get_settings()

# Set up logging
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="SkinPlan")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

ERROR_STATUS = {
    ErrorKind.INVALID_PROFILE: 422,
    ErrorKind.NO_RULE_MATCHED: 422,
    ErrorKind.UNKNOWN_PRODUCT: 404,
    ErrorKind.PLAN_NOT_FOUND: 404,
}


@lru_cache
def get_snapshot() -> CatalogSnapshot:
    return load_snapshot(settings.rules_path, settings.catalog_path)


def get_plan_service(snapshot: CatalogSnapshot = Depends(get_snapshot)) -> PlanService:
    return PlanService(snapshot, max_alternates=settings.max_alternates)


def _http_error(error: PlanError) -> HTTPException:
    return HTTPException(status_code=ERROR_STATUS[error.kind], detail=error.to_dict())


@app.get("/")
async def health_check():
    return {"status": "healthy", "service": "SkinPlan"}


@app.post("/plan/generate", response_model=Plan28)
async def generate(
    request: GeneratePlanRequest,
    db: AsyncSession = Depends(get_db),
    service: PlanService = Depends(get_plan_service),
):
    try:
        return await service.get_or_generate(db, request.profile)
    except PlanError as e:
        logger.warning(f"Plan generation rejected for profile {request.profile.id}: {e.message}")
        raise _http_error(e)


@app.get("/plan/{profile_id}", response_model=Plan28)
async def get_plan(
    profile_id: str,
    version: int | None = None,
    db: AsyncSession = Depends(get_db),
    service: PlanService = Depends(get_plan_service),
):
    try:
        return await service.get_plan(db, profile_id, version)
    except PlanError as e:
        raise _http_error(e)


@app.post("/plan/replace-product", response_model=Plan28)
async def replace_product(
    request: ReplaceProductRequest,
    db: AsyncSession = Depends(get_db),
    service: PlanService = Depends(get_plan_service),
):
    try:
        return await service.replace_product(
            db,
            request.profile_id,
            request.old_product_id,
            request.new_product_id,
            profile_version=request.profile_version,
        )
    except PlanError as e:
        logger.warning(f"Replacement rejected for profile {request.profile_id}: {e.message}")
        raise _http_error(e)


@app.post("/plan/daily-tip", response_model=DailyTip)
async def daily_tip(
    request: DailyTipRequest,
    db: AsyncSession = Depends(get_db),
    service: PlanService = Depends(get_plan_service),
):
    try:
        plan = await service.get_plan(db, request.profile_id, request.profile_version)
    except PlanError as e:
        raise _http_error(e)

    return await get_daily_tip(
        plan,
        request.day,
        service.snapshot.products,
        use_model=bool(settings.claude_api_key),
    )

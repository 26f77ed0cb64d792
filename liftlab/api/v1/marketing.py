import io
from datetime import date
from typing import List, Optional

import pandas as pd
from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile

from liftlab.api.deps import get_engine
from liftlab.models.schemas import (
    ForecastPoint,
    ForecastRequest,
    PerformanceMetrics,
    PerformanceRequest,
    ROIRecord,
    ROIRequest,
)
from liftlab.services.engine import ExperimentEngine
from liftlab.services.marketing.roi import (
    aggregate_campaigns,
    calculate_marketing_roi,
    compute_performance_metrics,
    top_performing,
)

router = APIRouter()


async def _read_csv(file: Optional[UploadFile]) -> Optional[pd.DataFrame]:
    if file is None:
        return None

    if not file.filename or not file.filename.endswith(".csv"):
        raise HTTPException(status_code=400, detail=f"{file.filename or 'Upload'} must be CSV")

    content = await file.read()
    if not content or content.strip() == b"":
        raise HTTPException(status_code=400, detail=f"{file.filename} is empty")

    try:
        return pd.read_csv(io.BytesIO(content))
    except pd.errors.EmptyDataError:
        raise HTTPException(status_code=400, detail=f"{file.filename} is empty")


@router.post("/roi", response_model=List[ROIRecord])
async def calculate_roi(request: ROIRequest):
    records = calculate_marketing_roi(request.campaigns)
    if request.limit:
        records = top_performing(records, request.limit)
    return records


@router.post("/roi/csv", response_model=List[ROIRecord])
async def calculate_roi_from_csv(
    spend_file: UploadFile = File(..., description="campaign_id, amount, date"),
    revenue_file: UploadFile = File(..., description="campaign_id, amount, date[, conversions]"),
    leads_file: Optional[UploadFile] = File(None, description="campaign_id, date"),
    start: Optional[date] = Query(None, description="Inclusive start date"),
    end: Optional[date] = Query(None, description="Inclusive end date"),
):
    spend = await _read_csv(spend_file)
    revenue = await _read_csv(revenue_file)
    leads = await _read_csv(leads_file)

    for name, df in (("spend", spend), ("revenue", revenue)):
        missing = {"campaign_id", "amount"} - set(df.columns)
        if missing:
            raise HTTPException(
                status_code=400,
                detail=f"{name} file is missing columns: {', '.join(sorted(missing))}",
            )
        if (start or end) and "date" not in df.columns:
            raise HTTPException(
                status_code=400, detail=f"{name} file needs a date column to filter by date"
            )

    aggregates = aggregate_campaigns(spend, revenue, leads, start=start, end=end)
    return calculate_marketing_roi(aggregates)


@router.post("/performance", response_model=PerformanceMetrics)
async def performance(request: PerformanceRequest):
    return compute_performance_metrics(
        impressions=request.impressions,
        clicks=request.clicks,
        conversions=request.conversions,
        revenue=request.revenue,
        cost=request.cost,
    )


@router.post("/forecast", response_model=List[ForecastPoint])
async def forecast(request: ForecastRequest, engine: ExperimentEngine = Depends(get_engine)):
    return engine.generate_forecast(request.baseline, request.horizon, request.reference_date)

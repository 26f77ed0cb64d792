from typing import List

from fastapi import APIRouter, Depends

from liftlab.api.deps import get_engine
from liftlab.models.schemas import AttributedTouchpoint, ChannelAttribution, JourneyRequest
from liftlab.services.engine import ExperimentEngine

router = APIRouter()


@router.post("/journeys", response_model=List[AttributedTouchpoint])
async def attribute_journey(request: JourneyRequest, engine: ExperimentEngine = Depends(get_engine)):
    return engine.attribute_journey(request.touchpoints, request.conversion_value)


@router.get("/breakdown", response_model=List[ChannelAttribution])
async def attribution_breakdown(engine: ExperimentEngine = Depends(get_engine)):
    return engine.attribution_breakdown()


@router.get("/channels/{channel}", response_model=ChannelAttribution)
async def channel_attribution(channel: str, engine: ExperimentEngine = Depends(get_engine)):
    return engine.aggregate_attribution(channel)

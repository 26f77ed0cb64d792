from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from liftlab.api.deps import get_engine
from liftlab.models.experiment import TestStatus
from liftlab.models.schemas import (
    AssignmentResponse,
    CreateFromTemplateRequest,
    CreateTestRequest,
    Recommendation,
    RecommendationsQuery,
    RecordEventRequest,
    SampleSizeRequest,
    TestAnalysis,
    TestListResponse,
    TestResponse,
    TestTemplate,
    TransitionRequest,
    VariantResponse,
)
from liftlab.services.engine import ExperimentEngine
from liftlab.services.experiments.significance import calculate_sample_size_requirement
from liftlab.services.marketing.roi import compute_roi

router = APIRouter()


@router.post("", response_model=TestResponse, status_code=201)
async def create_test(request: CreateTestRequest, engine: ExperimentEngine = Depends(get_engine)):
    test = engine.create_test(request)
    return TestResponse.model_validate(test)


@router.get("", response_model=TestListResponse)
async def list_tests(
    status: Optional[TestStatus] = Query(None, description="Filter by status"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    engine: ExperimentEngine = Depends(get_engine),
):
    tests = engine.list_tests(status)
    page = tests[offset : offset + limit]

    return TestListResponse(
        tests=[TestResponse.model_validate(t) for t in page], total=len(tests)
    )


@router.get("/templates", response_model=List[TestTemplate])
async def list_templates(engine: ExperimentEngine = Depends(get_engine)):
    return engine.list_templates()


@router.post("/templates/{template_id}", response_model=TestResponse, status_code=201)
async def create_from_template(
    template_id: str,
    request: CreateFromTemplateRequest,
    engine: ExperimentEngine = Depends(get_engine),
):
    test = engine.experiments.create_from_template(
        template_id, request.name, request.variants, request.description
    )
    return TestResponse.model_validate(test)


@router.post("/sample-size")
async def sample_size(request: SampleSizeRequest) -> Dict[str, int]:
    n = calculate_sample_size_requirement(
        baseline_rate=request.baseline_rate,
        minimum_detectable_effect=request.minimum_detectable_effect,
        alpha=request.alpha,
        power=request.power,
    )
    return {"sample_size_per_variant": n}


@router.get("/{test_id}", response_model=TestResponse)
async def get_test(test_id: str, engine: ExperimentEngine = Depends(get_engine)):
    return TestResponse.model_validate(engine.get_test(test_id))


@router.post("/{test_id}/transition", response_model=TestResponse)
async def transition_test(
    test_id: str, request: TransitionRequest, engine: ExperimentEngine = Depends(get_engine)
):
    return TestResponse.model_validate(engine.transition(test_id, request.action))


@router.post("/{test_id}/events", response_model=VariantResponse)
async def record_event(
    test_id: str, request: RecordEventRequest, engine: ExperimentEngine = Depends(get_engine)
):
    variant = engine.record_event(test_id, request.variant_id, request.event_type, request.amount)
    return VariantResponse.model_validate(variant)


@router.get("/{test_id}/assignment", response_model=AssignmentResponse)
async def assign_variant(
    test_id: str,
    user_id: str = Query(..., min_length=1),
    engine: ExperimentEngine = Depends(get_engine),
):
    variant = engine.assign_variant(test_id, user_id)
    return AssignmentResponse(
        test_id=test_id, user_id=user_id, variant_id=variant.id, variant_name=variant.name
    )


@router.get("/{test_id}/analysis", response_model=TestAnalysis)
async def analyze_test(test_id: str, engine: ExperimentEngine = Depends(get_engine)):
    return engine.analyze_test(test_id)


@router.post("/{test_id}/recommendations", response_model=List[Recommendation])
async def recommend(
    test_id: str,
    request: Optional[RecommendationsQuery] = None,
    engine: ExperimentEngine = Depends(get_engine),
):
    variant_roi = {}
    if request is not None:
        variant_roi = {vid: compute_roi(agg) for vid, agg in request.variant_roi.items()}

    return engine.recommend_for_test(test_id, variant_roi)

import pytest
from fastapi.testclient import TestClient

from liftlab.main import create_app
from liftlab.models.experiment import EventType, TestType
from liftlab.models.schemas import CreateTestRequest, VariantConfig
from liftlab.services.engine import ExperimentEngine
from liftlab.services.experiments.lifecycle import ExperimentManager


@pytest.fixture
def engine():
    return ExperimentEngine()


@pytest.fixture
def client(engine):
    app = create_app(engine)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def manager():
    return ExperimentManager()


@pytest.fixture
def create_request():
    return CreateTestRequest(
        name="Homepage CTA",
        type=TestType.CTA,
        minimum_sample_size=100,
        confidence_level=0.95,
        variants=[
            VariantConfig(id="control", name="Control", traffic_allocation=50, is_control=True),
            VariantConfig(id="treatment", name="Green Button", traffic_allocation=50),
        ],
    )


@pytest.fixture
def fill():
    """Drive a variant's counters through the public event API."""

    def _fill(manager, test_id, variant_id, impressions, conversions, revenue=None):
        for _ in range(impressions):
            manager.record_event(test_id, variant_id, EventType.IMPRESSION)
        for _ in range(conversions):
            manager.record_event(test_id, variant_id, EventType.CONVERSION, amount=revenue)

    return _fill

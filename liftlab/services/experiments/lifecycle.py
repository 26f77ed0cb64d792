import threading
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

import structlog

from liftlab.config import get_settings
from liftlab.core.exceptions import (
    InvalidTransitionError,
    InvariantViolationError,
    TestNotActiveError,
    TestNotFoundError,
    ValidationError,
)
from liftlab.models.experiment import (
    TRANSITIONS,
    EventType,
    Test,
    TestAction,
    TestStatus,
    Variant,
)
from liftlab.models.schemas import CreateTestRequest, VariantConfig
from liftlab.services.experiments.allocation import TrafficAllocator
from liftlab.services.experiments.templates import get_template

ALLOWED_CONFIDENCE_LEVELS = (0.90, 0.95, 0.99)


class ExperimentManager:
    """
    Owns test aggregates and drives them through their lifecycle.

    Every counter mutation and status change on a test happens under that
    test's lock, and all checks run before anything is mutated.
    """

    def __init__(
        self,
        allocator: Optional[TrafficAllocator] = None,
        allocation_tolerance: Optional[float] = None,
    ):
        settings = get_settings()
        self.allocator = allocator or TrafficAllocator()
        self.allocation_tolerance = (
            settings.ALLOCATION_TOLERANCE if allocation_tolerance is None else allocation_tolerance
        )
        self._tests: Dict[str, Test] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self.logger = structlog.get_logger("experiments")

    def _validate_variants(self, variants: List[VariantConfig]) -> None:
        if len(variants) < 2:
            raise ValidationError("A/B test must have at least 2 variants")

        for v in variants:
            if not 0 <= v.traffic_allocation <= 100:
                raise ValidationError(
                    f"Traffic allocation for '{v.name}' must be between 0 and 100",
                    variant=v.name,
                )

        total_allocation = sum(v.traffic_allocation for v in variants)
        # Float sums such as 33.33 * 3 land a hair outside the tolerance
        if round(abs(total_allocation - 100), 6) > self.allocation_tolerance:
            raise ValidationError(
                f"Variant traffic allocation must sum to 100%, got {total_allocation:g}%",
                total_allocation=total_allocation,
            )

        controls = sum(1 for v in variants if v.is_control)
        if controls != 1:
            raise ValidationError(f"Exactly one control variant is required, got {controls}")

        names = [v.name for v in variants]
        if len(set(names)) != len(names):
            raise ValidationError("Variant names must be unique")

        ids = [v.id for v in variants if v.id]
        if len(set(ids)) != len(ids):
            raise ValidationError("Variant ids must be unique")

    def create_test(self, request: CreateTestRequest) -> Test:
        self._validate_variants(request.variants)

        if request.minimum_sample_size <= 0:
            raise ValidationError("Minimum sample size must be a positive integer")

        if not any(abs(request.confidence_level - c) < 1e-9 for c in ALLOWED_CONFIDENCE_LEVELS):
            raise ValidationError(
                f"Confidence level must be one of {ALLOWED_CONFIDENCE_LEVELS}, "
                f"got {request.confidence_level}"
            )

        if request.start_date and request.end_date and request.end_date < request.start_date:
            raise ValidationError("End date must not precede start date")

        test = Test(
            id=str(uuid.uuid4()),
            name=request.name,
            description=request.description,
            type=request.type,
            primary_metric=request.primary_metric,
            secondary_metrics=list(request.secondary_metrics),
            minimum_sample_size=request.minimum_sample_size,
            confidence_level=request.confidence_level,
            max_duration_days=request.max_duration_days,
            start_date=request.start_date,
            end_date=request.end_date,
            status=TestStatus.DRAFT,
            variants=[
                Variant(
                    id=v.id or str(uuid.uuid4()),
                    name=v.name,
                    description=v.description,
                    traffic_allocation=v.traffic_allocation,
                    is_control=v.is_control,
                )
                for v in request.variants
            ],
        )

        with self._registry_lock:
            self._tests[test.id] = test
            self._locks[test.id] = threading.Lock()

        self.logger.info(
            "test_created",
            test_id=test.id,
            test_type=test.type.value,
            variants=len(test.variants),
            confidence_level=test.confidence_level,
        )
        return test

    def create_from_template(
        self,
        template_id: str,
        name: str,
        variants: List[VariantConfig],
        description: Optional[str] = None,
    ) -> Test:
        template = get_template(template_id)
        request = CreateTestRequest(
            name=name,
            description=description or template.description,
            type=template.type,
            variants=variants,
            minimum_sample_size=template.minimum_sample_size,
            confidence_level=template.confidence_level,
            primary_metric=template.primary_metric,
            secondary_metrics=template.secondary_metrics,
            max_duration_days=template.duration_days,
        )
        return self.create_test(request)

    def get_test(self, test_id: str) -> Test:
        test = self._tests.get(test_id)
        if test is None:
            raise TestNotFoundError(f"Test not found: {test_id}", test_id=test_id)
        return test

    def list_tests(self, status: Optional[TestStatus] = None) -> List[Test]:
        tests = sorted(self._tests.values(), key=lambda t: t.created_at, reverse=True)
        if status:
            tests = [t for t in tests if t.status == status]
        return tests

    def _lock_for(self, test_id: str) -> threading.Lock:
        self.get_test(test_id)
        return self._locks[test_id]

    def transition(self, test_id: str, action: TestAction) -> Test:
        action = TestAction(action)

        with self._lock_for(test_id):
            test = self.get_test(test_id)
            next_status = TRANSITIONS.get((test.status, action))
            if next_status is None:
                raise InvalidTransitionError(
                    f"Cannot {action.value} a test that is {test.status.value}",
                    test_id=test_id,
                    status=test.status.value,
                    action=action.value,
                )

            previous = test.status
            now = datetime.now(timezone.utc)
            if action == TestAction.START and test.start_date is None:
                test.start_date = now
            if next_status == TestStatus.COMPLETED:
                test.end_date = now
            test.status = next_status

        self.logger.info(
            "test_status_updated",
            test_id=test_id,
            action=action.value,
            previous_status=previous.value,
            status=next_status.value,
        )
        return test

    def update_status(self, test_id: str, new_status: TestStatus) -> Test:
        new_status = TestStatus(new_status)
        test = self.get_test(test_id)

        for (current, action), target in TRANSITIONS.items():
            if current == test.status and target == new_status:
                return self.transition(test_id, action)

        raise InvalidTransitionError(
            f"Cannot move a test from {test.status.value} to {new_status.value}",
            test_id=test_id,
            status=test.status.value,
        )

    def record_event(
        self,
        test_id: str,
        variant_id: str,
        event_type: EventType,
        amount: Optional[float] = None,
    ) -> Variant:
        event_type = EventType(event_type)

        with self._lock_for(test_id):
            test = self.get_test(test_id)
            if test.status != TestStatus.ACTIVE:
                raise TestNotActiveError(
                    f"Test {test_id} is {test.status.value}; events are only recorded while active",
                    test_id=test_id,
                    status=test.status.value,
                )

            variant = test.get_variant(variant_id)
            if variant is None:
                raise ValidationError(
                    f"Variant {variant_id} does not belong to test {test_id}",
                    test_id=test_id,
                    variant_id=variant_id,
                )

            if amount is not None and amount < 0:
                raise ValidationError("Revenue amount must not be negative", amount=amount)

            if event_type == EventType.IMPRESSION:
                if amount:
                    raise ValidationError("Impressions do not carry a revenue amount")
                variant.impressions += 1
            else:
                if variant.conversions + 1 > variant.impressions:
                    raise InvariantViolationError(
                        f"Conversion would exceed impressions for variant {variant_id}",
                        test_id=test_id,
                        variant_id=variant_id,
                        impressions=variant.impressions,
                        conversions=variant.conversions,
                    )
                variant.conversions += 1
                variant.revenue += amount or 0.0

        self.logger.debug(
            "event_recorded",
            test_id=test_id,
            variant_id=variant_id,
            event_type=event_type.value,
            amount=amount,
        )
        return variant

    def assign_variant(self, test_id: str, user_id: str) -> Variant:
        with self._lock_for(test_id):
            test = self.get_test(test_id)
            if test.status != TestStatus.ACTIVE:
                raise TestNotActiveError(
                    f"Test {test_id} is {test.status.value}; assignments require an active test",
                    test_id=test_id,
                    status=test.status.value,
                )
            return self.allocator.allocate(test.variants, user_id, test.id)

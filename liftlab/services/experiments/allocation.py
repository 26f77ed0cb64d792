import hashlib
from typing import List

from liftlab.core.exceptions import ValidationError
from liftlab.models.experiment import Variant

BUCKETS = 10000  # 0.01% resolution


class TrafficAllocator:
    """Sticky, hash-based assignment of users to variants by traffic allocation."""

    def __init__(self, salt: str = "liftlab"):
        self.salt = salt

    def bucket(self, user_id: str, test_id: str) -> int:
        if not user_id:
            raise ValidationError("user_id is required for variant assignment")

        hash_input = f"{user_id}:{test_id}:{self.salt}"
        digest = hashlib.sha256(hash_input.encode()).hexdigest()
        return int(digest[:8], 16) % BUCKETS

    def allocate(self, variants: List[Variant], user_id: str, test_id: str) -> Variant:
        if not variants:
            raise ValidationError("No variants to allocate between")

        total = sum(v.traffic_allocation for v in variants)
        if total <= 0:
            raise ValidationError("Total traffic allocation must be positive")

        target = (self.bucket(user_id, test_id) / BUCKETS) * total

        cumulative = 0.0
        for variant in variants:
            cumulative += variant.traffic_allocation
            if target < cumulative:
                return variant

        # Rounding at the top edge
        return next(v for v in reversed(variants) if v.traffic_allocation > 0)

"""
Multi-touch attribution.

Credit for one conversion is split across the touchpoints of its journey:
the first touch gets 0.4, the last touch 0.3 and the touchpoints in between
share the remaining 0.3 equally as assisted touches.

Short journeys:
- one touchpoint: it is both first and last touch and gets the full 1.0
- two touchpoints: first and last keep their 0.4 : 0.3 ratio, scaled to sum
  to 1.0 (4/7 and 3/7)
"""

import threading
from typing import Dict, List, Optional

import structlog

from liftlab.config import get_settings
from liftlab.core.exceptions import InvariantViolationError, ValidationError
from liftlab.models.schemas import AttributedTouchpoint, ChannelAttribution, Touchpoint

WEIGHT_TOLERANCE = 1e-6


def journey_weights(length: int, first_weight: float = 0.4, last_weight: float = 0.3) -> List[float]:
    if length < 1:
        raise ValidationError("A journey needs at least one touchpoint")
    if first_weight < 0 or last_weight < 0 or first_weight + last_weight > 1:
        raise ValidationError("First and last touch weights must be non-negative and sum to at most 1")

    if length == 1:
        return [1.0]

    if length == 2:
        total = first_weight + last_weight
        if total == 0:
            return [0.5, 0.5]
        return [first_weight / total, last_weight / total]

    assisted = (1 - first_weight - last_weight) / (length - 2)
    return [first_weight] + [assisted] * (length - 2) + [last_weight]


def attribute_journey(
    touchpoints: List[Touchpoint],
    conversion_value: float = 1.0,
    first_weight: float = 0.4,
    last_weight: float = 0.3,
) -> List[AttributedTouchpoint]:
    """
    Weight each touchpoint of one converted journey.

    Touchpoints are taken in the order given. Raises InvariantViolationError if
    the resulting weights do not sum to 1 within 1e-6.
    """
    if not touchpoints:
        raise ValidationError("A journey needs at least one touchpoint")
    if conversion_value < 0:
        raise ValidationError("Conversion value must not be negative")

    weights = journey_weights(len(touchpoints), first_weight, last_weight)

    total = sum(weights)
    if abs(total - 1.0) > WEIGHT_TOLERANCE:
        raise InvariantViolationError(
            f"Attribution weights sum to {total}, expected 1.0", weight_sum=total
        )

    last_index = len(touchpoints) - 1
    return [
        AttributedTouchpoint(
            channel=tp.channel,
            campaign=tp.campaign,
            touchpoint=tp.touchpoint,
            timestamp=tp.timestamp,
            position=index,
            weight=weight,
            contribution=weight * conversion_value,
            first_touch=index == 0,
            last_touch=index == last_index,
            assisted=0 < index < last_index,
        )
        for index, (tp, weight) in enumerate(zip(touchpoints, weights))
    ]


class AttributionEngine:
    """Attributes journeys and keeps per-channel totals in first-seen order."""

    def __init__(self, first_weight: Optional[float] = None, last_weight: Optional[float] = None):
        settings = get_settings()
        self.first_weight = (
            settings.ATTRIBUTION_FIRST_TOUCH_WEIGHT if first_weight is None else first_weight
        )
        self.last_weight = (
            settings.ATTRIBUTION_LAST_TOUCH_WEIGHT if last_weight is None else last_weight
        )
        # Validate the configured weights up front
        journey_weights(3, self.first_weight, self.last_weight)

        self._channels: Dict[str, ChannelAttribution] = {}
        self._lock = threading.Lock()
        self.logger = structlog.get_logger("attribution")

    def attribute_journey(
        self, touchpoints: List[Touchpoint], conversion_value: float = 1.0
    ) -> List[AttributedTouchpoint]:
        return attribute_journey(touchpoints, conversion_value, self.first_weight, self.last_weight)

    def record_journey(
        self, touchpoints: List[Touchpoint], conversion_value: float = 1.0
    ) -> List[AttributedTouchpoint]:
        attributed = self.attribute_journey(touchpoints, conversion_value)

        with self._lock:
            for tp in attributed:
                entry = self._channels.setdefault(tp.channel, ChannelAttribution(channel=tp.channel))
                entry.first_touch += int(tp.first_touch)
                entry.last_touch += int(tp.last_touch)
                entry.assisted += int(tp.assisted)
                entry.total_conversions += tp.weight

        self.logger.debug(
            "journey_attributed",
            touchpoints=len(attributed),
            channels=sorted({tp.channel for tp in attributed}),
            conversion_value=conversion_value,
        )
        return attributed

    def aggregate_attribution(self, channel: str) -> ChannelAttribution:
        with self._lock:
            entry = self._channels.get(channel)
            if entry is None:
                return ChannelAttribution(channel=channel)
            return entry.model_copy()

    def attribution_breakdown(self) -> List[ChannelAttribution]:
        with self._lock:
            return [entry.model_copy() for entry in self._channels.values()]

    def reset(self) -> None:
        with self._lock:
            self._channels.clear()

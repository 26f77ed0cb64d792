from liftlab.services.attribution.engine import AttributionEngine, attribute_journey, journey_weights

__all__ = ["AttributionEngine", "attribute_journey", "journey_weights"]

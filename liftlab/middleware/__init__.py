from liftlab.middleware.telemetry import TelemetryMiddleware

__all__ = ["TelemetryMiddleware"]

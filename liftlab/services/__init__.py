from liftlab.services.engine import ExperimentEngine

__all__ = ["ExperimentEngine"]

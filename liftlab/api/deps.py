from fastapi import Request

from liftlab.services.engine import ExperimentEngine


def get_engine(request: Request) -> ExperimentEngine:
    return request.app.state.engine

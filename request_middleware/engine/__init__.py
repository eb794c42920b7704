from request_middleware.engine.engine import MiddlewareEngine, create_middleware_engine
from request_middleware.engine.exceptions import EngineError, NextCalledMultipleTimesError
from request_middleware.engine.types import FinalHandler, Middleware, NextFunction, Transport

__all__ = [
    "EngineError",
    "FinalHandler",
    "Middleware",
    "MiddlewareEngine",
    "NextCalledMultipleTimesError",
    "NextFunction",
    "Transport",
    "create_middleware_engine",
]

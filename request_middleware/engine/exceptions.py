# Middleware Engine Exceptions


class EngineError(RuntimeError):
    """Base exception for misuse of the middleware engine."""

    def __init__(self, *args, middleware_name: str | None = None):
        super().__init__(*args)
        self.middleware_name = middleware_name


class NextCalledMultipleTimesError(EngineError):
    """Raised when a middleware awaits its `next` continuation more than once."""

    pass

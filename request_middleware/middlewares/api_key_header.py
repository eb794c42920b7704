"""
Add an API key header, where the key is sourced from a configured environment variable.

The key is read on every request so rotating the variable takes effect
without rebuilding the client.
"""

import logging
import os
from typing import Optional

from request_middleware.core.context import HttpContext
from request_middleware.engine.types import NextFunction
from request_middleware.middlewares.exceptions import ApiKeyNotFoundError
from request_middleware.settings import Settings

logger = logging.getLogger(__name__)


class ApiKeyHeaderMiddleware:
    """Adds an API key to the request Authorization header from an environment variable.

    Attributes:
        api_key_env_var_name (str): Environment variable holding the key.
        header_name (str): Header to set.
        scheme (Optional[str]): Prefix placed before the key, e.g. "Bearer". None sends the bare key.
    """

    def __init__(
        self,
        api_key_env_var_name: Optional[str] = None,
        header_name: str = "Authorization",
        scheme: Optional[str] = "Bearer",
        name: Optional[str] = None,
    ):
        if api_key_env_var_name is None:
            api_key_env_var_name = Settings().get_api_key_env_var_name()
        if not isinstance(api_key_env_var_name, str):
            raise TypeError(f"API key environment variable name '{api_key_env_var_name}' is not a string.")
        self.api_key_env_var_name = api_key_env_var_name
        self.header_name = header_name
        self.scheme = scheme
        self.name = name or self.__class__.__name__

    async def __call__(self, ctx: HttpContext, next: NextFunction) -> None:
        """
        Sets the API key header on a derived request config, then continues the chain.

        Raises:
            ApiKeyNotFoundError if the configured environment variable is not set or is empty.
        """
        api_key = os.environ.get(self.api_key_env_var_name)
        if not api_key:
            error_message = (
                f"API key not found. Environment variable '{self.api_key_env_var_name}' is not set or is empty."
            )
            logger.error(f"{error_message} ({self.name})")
            raise ApiKeyNotFoundError(f"{error_message} ({self.name})", middleware_name=self.name, config=ctx.request)

        value = f"{self.scheme} {api_key}" if self.scheme else api_key
        logger.info(f"Setting {self.header_name} header from env var '{self.api_key_env_var_name}' ({self.name}).")
        ctx.request = ctx.request.model_copy(update={"headers": {**ctx.request.headers, self.header_name: value}})
        await next()

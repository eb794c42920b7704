from request_middleware.client.http_client import HttpClient, create_http_client

__all__ = ["HttpClient", "create_http_client"]

from .api_gateway import HttpProductGateway, create_http_client

__all__ = ["HttpProductGateway", "create_http_client"]

"""
Shared configuration management for Storefront services.
"""

from typing import Dict, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="STOREFRONT_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Document store
    database_url: Optional[str] = Field(default=None, description="Redis URL of the document store")
    database_namespace: str = Field(default="storefront")
    require_database: bool = Field(default=False)

    # Internal services
    auth_service_url: str = Field(default="http://localhost:5001")
    product_service_url: str = Field(default="http://localhost:5002")
    order_service_url: str = Field(default="http://localhost:5003")

    # Gateway
    gateway_routes: Optional[Dict[str, str]] = Field(default=None)
    proxy_timeout_seconds: float = Field(default=30.0)

    # Security
    jwt_secret: str = Field(default="supersecretkey")
    jwt_algorithm: str = Field(default="HS256")
    jwt_expires_seconds: int = Field(default=3600)
    bcrypt_rounds: int = Field(default=10, ge=4, le=31)

    # Product service
    seed_products: bool = Field(default=True)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: Optional[int] = None
    host: str = "0.0.0.0"

    def route_table(self) -> Dict[str, str]:
        """Prefix to base URL mapping used by the gateway."""
        if self.gateway_routes:
            return dict(self.gateway_routes)
        return {
            "/auth": self.auth_service_url,
            "/products": self.product_service_url,
            "/orders": self.order_service_url,
        }


def get_config(service_name: str, port: int) -> ServiceConfig:
    """Get configuration for a specific service.

    ``port`` is the service default; ``STOREFRONT_PORT`` overrides it.
    """
    config = ServiceConfig(service_name=service_name)
    if config.port is None:
        config.port = port
    return config

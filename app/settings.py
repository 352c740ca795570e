from typing import Literal

from pydantic import model_validator
from pydantic_settings import (
    BaseSettings,
    SettingsConfigDict,
)

from app.packages.registry_proxy import DOCKER_HUB_URL
from app.utils.settings_utils import load_routes_file


def default_routes(domain: str) -> dict[str, str]:
    return {
        f"docker.{domain}": DOCKER_HUB_URL,
        f"quay.{domain}": "https://quay.io",
        f"gcr.{domain}": "https://gcr.io",
        f"k8s-gcr.{domain}": "https://k8s.gcr.io",
        f"k8s.{domain}": "https://registry.k8s.io",
        f"ghcr.{domain}": "https://ghcr.io",
        f"cloudsmith.{domain}": "https://docker.cloudsmith.io",
        f"ecr.{domain}": "https://public.ecr.aws",
        f"docker-staging.{domain}": DOCKER_HUB_URL,
    }


class GeneralConfig(BaseSettings):
    MODE: Literal["production", "debug"] = "production"
    SENTRY_DSN: str = ""
    SENTRY_ENVIRONMENT: str = ""


class RoutingConfig(BaseSettings):
    CUSTOM_DOMAIN: str = "example.com"
    ROUTES: dict[str, str] = {}
    """Proxy hostname -> upstream registry URL, as a JSON object"""

    ROUTES_FILE: str = ""
    """JSON file holding the route table. When the file exists it replaces
    ROUTES entirely.
    """

    TARGET_UPSTREAM: str = DOCKER_HUB_URL
    """Upstream for unmatched hosts, only used in debug mode"""

    @model_validator(mode="after")
    def fill_routes(self):
        if self.ROUTES_FILE:
            routes = load_routes_file(self.ROUTES_FILE)
            if routes is not None:
                self.ROUTES = routes
        if not self.ROUTES:
            self.ROUTES = default_routes(self.CUSTOM_DOMAIN)
        return self


class UpstreamConfig(BaseSettings):
    UPSTREAM_CONNECT_TIMEOUT: float = 30.0
    UPSTREAM_READ_TIMEOUT: float = 1800.0  # 30 minutes for large blobs
    UPSTREAM_WRITE_TIMEOUT: float = 1800.0
    UPSTREAM_POOL_TIMEOUT: float = 10.0


class Settings(
    GeneralConfig,
    RoutingConfig,
    UpstreamConfig,
    BaseSettings,
):
    """
    Application settings.

    Priority (highest to lowest): init arguments, environment variables,
    .env files, secrets dir, defaults. A route table file named by
    ROUTES_FILE overrides ROUTES from any of them.
    """

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.prod", ".env.test"),
        extra="allow",
    )

    @property
    def is_debug(self) -> bool:
        return self.MODE == "debug"


settings = Settings()

from authgate.core.core import Service
from authgate.core.modules.relying_party.domain import get_normalized_origin, get_normalized_rp_id
from authgate.core.modules.relying_party.models import RelyingPartyConfig


class RelyingPartyService(Service):
    """Resolves per-request relying party configuration."""

    def base_url(self, request_url: str) -> str:
        """URL used for derivation: the configured app URL wins over the request URL."""
        return self.config.app_url or request_url

    def resolve(self, request_url: str) -> RelyingPartyConfig:
        url = self.base_url(request_url)
        alias = self.config.dev_host_alias
        return RelyingPartyConfig(
            rp_id=get_normalized_rp_id(url, alias),
            rp_name=self.config.rp_name,
            expected_origin=get_normalized_origin(url, alias),
        )

    def origin(self, request_url: str) -> str:
        """Normalized origin for links sent to the user."""
        return get_normalized_origin(self.base_url(request_url), self.config.dev_host_alias)

import os

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Runtime paths
    project_home: str = Field(default_factory=lambda: os.path.join(os.path.expanduser("~"), "my-project"))

    # claude.ai
    base_url: str = "https://claude.ai"
    cookie_domain: str = ".claude.ai"

    # Keychain service that owns the session-key / org-id entries
    keychain_service: str = "claude-usage"

    # Browser
    storage_state_ttl_seconds: int = 90 * 60
    navigation_timeout_ms: int = 30000
    browser_headless: bool = True
    browser_user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/144.0.0.0 Safari/537.36"
    )

    # Logs go to stderr; stdout is reserved for command output
    log_level: str = "WARNING"

    model_config = {"env_file": ".env", "extra": "ignore"}

    @property
    def runtime_dir(self) -> str:
        return os.path.join(self.project_home, "runtime", "claude-usage")

    @property
    def storage_state_path(self) -> str:
        return os.path.join(self.runtime_dir, "browser-state.json")

    @property
    def cache_path(self) -> str:
        return os.path.join(self.runtime_dir, "cache.json")

    def usage_url(self, org_id: str) -> str:
        return f"{self.base_url}/api/organizations/{org_id}/usage"


settings = Settings()

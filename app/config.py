"""Application configuration management."""

from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pipeline settings.

    Defaults can be overridden through ``PHOTOOXY_``-prefixed environment
    variables or a .env file, but callers normally construct a Settings
    instance programmatically and hand it to the generator.

    Attributes:
        provider_domain: Domain every target page URL must belong to
        user_agent: Browser identity sent with every request
        page_timeout: Timeout for the initial page load in seconds
        submit_timeout: Timeout for the form submission in seconds
        probe_timeout: Timeout for secondary AJAX/redirect/status requests
        validate_timeout: Timeout for the metadata-only validation request
        max_redirects: Redirect hops followed automatically
        poll_interval: Seconds between processing status checks
        poll_ceiling: Overall seconds spent polling a status URL
        blind_wait: Seconds to wait when processing has no status URL
        pipeline_deadline: Hard ceiling for one whole pipeline run
        min_artifact_bytes: Smallest content length accepted as a real artifact
        template_fingerprints: URL fragments of known long-lived template images
        require_processing_server: Fail fast when no build server id is found
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """

    model_config = SettingsConfigDict(
        env_prefix='PHOTOOXY_',
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore'
    )

    # Provider
    provider_domain: str = "photooxy.com"
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    accept_language: str = "en-US,en;q=0.5"

    # Timeouts (seconds)
    page_timeout: float = 15.0
    submit_timeout: float = 30.0
    probe_timeout: float = 15.0
    validate_timeout: float = 10.0
    pipeline_deadline: float = 120.0
    max_redirects: int = 5

    # Processing poll
    poll_interval: float = 2.0
    poll_ceiling: float = 30.0
    blind_wait: float = 5.0

    # Validation
    # Source variants disagree (1000/5000/15000 bytes); the right value is uncalibrated.
    min_artifact_bytes: int = 5000
    template_fingerprints: List[str] = ["/images/effect-preview/"]

    require_processing_server: bool = False
    log_level: str = "INFO"

    def validate_timeouts(self) -> None:
        """Validate that the timing settings are consistent.

        Raises:
            ValueError: If a timing setting is out of range
        """
        if self.poll_interval <= 0:
            raise ValueError("POLL_INTERVAL must be positive")

        if self.poll_ceiling < self.poll_interval:
            raise ValueError("POLL_CEILING must be at least POLL_INTERVAL")

        if self.pipeline_deadline <= self.poll_ceiling:
            raise ValueError(
                "PIPELINE_DEADLINE must exceed POLL_CEILING so polling can finish"
            )


# Global settings instance
settings = Settings()

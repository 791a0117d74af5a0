from pydantic_settings import BaseSettings


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str  # MongoDB URL, the path component is the database name
    redis_url: str  # Redis URL for sessions and WebAuthn challenges
    host: str
    port: int
    forwarded_allow_ips: str = "127.0.0.1"  # Proxies trusted for X-Forwarded-Proto/For, comma separated
    debug: bool = False
    production: bool = False  # Enables the Secure attribute on the session cookie
    cors_origins: list[str] = []
    app_name: str = "authgate"  # Shown in verification emails
    rp_name: str = "authgate"  # WebAuthn relying party display name
    app_url: str | None = None  # Overrides the request URL when deriving rpID, origin and email links
    dev_host_alias: str = "authgate.local"  # Canonical alias substituted for localhost

    session_cookie_name: str = "passkey_session"
    session_ttl_seconds: int = 60 * 60
    challenge_ttl_seconds: int = 5 * 60
    verification_ttl_seconds: int = 15 * 60
    verification_cleanup_delay_seconds: int = 5 * 60

    # SMTP transactional email provider
    email_host: str = ""
    email_port: int = 587
    email_username: str = ""
    email_password: str = ""
    email_start_tls: bool = True
    sender_email: str = ""
    sender_name: str = "authgate"

    model_config = {
        "env_file": [".env"],
        "env_prefix": "AUTHGATE_",
        "extra": "ignore",
    }

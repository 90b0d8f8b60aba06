import os


def _env_flag(name, default=""):
    return os.environ.get(name, default).lower() in ("1", "true", "yes")


class Config:
    """Base configuration. Shared across all environments."""

    # --- Required ---
    SECRET_KEY = os.environ.get("SECRET_KEY")
    JWT_SECRET = os.environ.get("JWT_SECRET")
    JWT_EXPIRES_IN = int(os.environ.get("JWT_EXPIRES_IN", 24 * 3600))  # seconds
    JWT_ISSUER = "xistracloud"
    JWT_AUDIENCE = "xistracloud-users"

    # Handle DATABASE_URL: Supabase and most PaaS providers hand out
    # "postgres://" which SQLAlchemy 1.4+ doesn't accept.
    _db_url = os.environ.get("DATABASE_URL", "")
    if _db_url.startswith("postgres://"):
        _db_url = _db_url.replace("postgres://", "postgresql://", 1)
    SQLALCHEMY_DATABASE_URI = _db_url or None

    PORT = int(os.environ.get("PORT", 3001))

    # --- Supabase ---
    SUPABASE_URL = os.environ.get("SUPABASE_URL")                            # e.g. https://xyz.supabase.co
    SUPABASE_KEY = os.environ.get("SUPABASE_KEY")                            # anon key
    SUPABASE_SERVICE_ROLE_KEY = os.environ.get("SUPABASE_SERVICE_ROLE_KEY")

    # --- Deployments ---
    DOCKER_SOCKET = os.environ.get("DOCKER_SOCKET")  # e.g. unix:///var/run/docker.sock
    DEPLOY_ROOT = os.environ.get("DEPLOY_ROOT", os.path.join(os.getcwd(), "deployed-apps"))
    DEPLOY_COMMAND_TIMEOUT = int(os.environ.get("DEPLOY_COMMAND_TIMEOUT", 900))  # seconds
    DEPLOY_ASYNC = not os.environ.get("DEPLOY_ASYNC") or _env_flag("DEPLOY_ASYNC")
    AUTO_DEPLOY = not os.environ.get("AUTO_DEPLOY") or _env_flag("AUTO_DEPLOY")
    BUILD_PLATFORMS = os.environ.get("BUILD_PLATFORMS", "linux/amd64")
    APP_BASE_DOMAIN = os.environ.get("APP_BASE_DOMAIN", "xistracloud.app")
    APP_PORT_RANGE = (8000, 9999)

    # --- Domains ---
    DOMAIN_CNAME_TARGET = os.environ.get("DOMAIN_CNAME_TARGET", "xistracloud.app")
    DNS_OVER_HTTPS_URL = os.environ.get(
        "DNS_OVER_HTTPS_URL", "https://cloudflare-dns.com/dns-query"
    )
    # Domains with one of these as a whole label (e.g. demo.acme.io) skip the DNS lookup.
    DOMAIN_VERIFY_BYPASS = [
        m.strip().lower()
        for m in os.environ.get("DOMAIN_VERIFY_BYPASS", "test,example,demo,localhost").split(",")
        if m.strip()
    ]

    # --- Email (team invitations) ---
    MAIL_SMTP_HOST = os.environ.get("MAIL_SMTP_HOST", "smtp.gmail.com")
    MAIL_SMTP_PORT = int(os.environ.get("MAIL_SMTP_PORT", 587))
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD")
    MAIL_FROM_NAME = os.environ.get("MAIL_FROM_NAME", "XistraCloud")
    MAIL_FROM_ADDRESS = os.environ.get("MAIL_FROM_ADDRESS")  # defaults to MAIL_USERNAME
    APP_BASE_URL = os.environ.get("APP_BASE_URL", "http://localhost:3000")

    # --- CORS ---
    CORS_ORIGINS = [
        o.strip()
        for o in os.environ.get(
            "CORS_ORIGINS",
            "http://localhost:3000,https://xistracloud.com,"
            "https://www.xistracloud.com,https://app.xistracloud.com",
        ).split(",")
        if o.strip()
    ]

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # --- SQLAlchemy ---
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }

    @staticmethod
    def validate():
        """Fail fast if required env vars are missing."""
        required = [
            "SECRET_KEY",
            "JWT_SECRET",
            "DATABASE_URL",
        ]
        missing = [v for v in required if not os.environ.get(v)]
        if missing:
            raise RuntimeError(
                f"Missing required environment variables: {', '.join(missing)}"
            )


class DevConfig(Config):
    """Local development."""

    DEBUG = True
    SECRET_KEY = Config.SECRET_KEY or "dev-secret-key"
    JWT_SECRET = Config.JWT_SECRET or "dev-jwt-secret-change-this"
    SQLALCHEMY_DATABASE_URI = Config.SQLALCHEMY_DATABASE_URI or "sqlite:///xistracloud-dev.db"
    RATELIMIT_ENABLED = False


class TestConfig(Config):
    """Testing — in-memory SQLite, no rate limits, deploys run inline."""

    TESTING = True
    DEBUG = True
    SECRET_KEY = "test-secret-key-not-for-production"
    JWT_SECRET = "test-jwt-secret"
    JWT_EXPIRES_IN = 3600
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RATELIMIT_ENABLED = False  # disable rate limiting in tests
    DEPLOY_ASYNC = False
    AUTO_DEPLOY = False  # tests trigger deploys explicitly
    DEPLOY_COMMAND_TIMEOUT = 30
    MAIL_USERNAME = None
    MAIL_PASSWORD = None

    @staticmethod
    def validate():
        """Skip validation in test mode — everything is hardcoded."""
        pass


class ProdConfig(Config):
    """Production (Supabase Postgres)."""

    DEBUG = False


config_by_name = {
    "development": DevConfig,
    "production": ProdConfig,
    "testing": TestConfig,
}

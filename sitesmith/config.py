import os


def _env_flag(name, default=""):
    return os.environ.get(name, default).lower() in ("1", "true", "yes")


class Config:
    """Base configuration. Shared across all environments."""

    # --- Required ---
    SECRET_KEY = os.environ.get("SECRET_KEY")

    # Handle DATABASE_URL: some PaaS providers (Railway, Heroku) use
    # "postgres://" which SQLAlchemy 1.4+ doesn't accept.
    _db_url = os.environ.get("DATABASE_URL", "")
    if _db_url.startswith("postgres://"):
        _db_url = _db_url.replace("postgres://", "postgresql://", 1)
    SQLALCHEMY_DATABASE_URI = _db_url or None

    APP_BASE_URL = os.environ.get("APP_BASE_URL", "http://localhost:5000")

    # --- Payments (one-time Stripe Checkout per site) ---
    STRIPE_SECRET_KEY = os.environ.get("STRIPE_SECRET_KEY")
    STRIPE_WEBHOOK_SECRET = os.environ.get("STRIPE_WEBHOOK_SECRET")
    SITE_PRICE_CENTS = int(os.environ.get("SITE_PRICE_CENTS", 4900))
    SITE_CURRENCY = os.environ.get("SITE_CURRENCY", "usd")

    # --- Hosting ---
    # Deployed sites are served at https://<site_id>.<HOSTING_DOMAIN>
    HOSTING_DOMAIN = os.environ.get("HOSTING_DOMAIN", "sitesmith.app")

    # Sites stuck in "deploying" longer than this are re-checked against
    # the publish target before their status is trusted.
    DEPLOY_STALE_AFTER_SECONDS = int(
        os.environ.get("DEPLOY_STALE_AFTER_SECONDS", 900)
    )

    # --- Publish transport (FTP). Unset FTP_HOST = local disk fallback. ---
    FTP_HOST = os.environ.get("FTP_HOST")
    FTP_PORT = int(os.environ.get("FTP_PORT", 21))
    FTP_USER = os.environ.get("FTP_USER")
    FTP_PASS = os.environ.get("FTP_PASS")
    FTP_ROOT = os.environ.get("FTP_ROOT", "/public_html")
    FTP_TLS = _env_flag("FTP_TLS")
    FTP_TIMEOUT = int(os.environ.get("FTP_TIMEOUT", 30))

    # --- Generative synthesis service (optional) ---
    GENERATOR_API_URL = os.environ.get("GENERATOR_API_URL")
    GENERATOR_API_KEY = os.environ.get("GENERATOR_API_KEY")
    GENERATOR_TIMEOUT = float(os.environ.get("GENERATOR_TIMEOUT", 60))

    # --- Supabase storage for site assets ---
    SUPABASE_URL = os.environ.get("SUPABASE_URL")                # e.g. https://xyz.supabase.co
    SUPABASE_SERVICE_KEY = os.environ.get("SUPABASE_SERVICE_KEY") # service_role key for storage
    SUPABASE_ASSET_BUCKET = os.environ.get("SUPABASE_ASSET_BUCKET", "site-assets")

    # --- SQLAlchemy ---
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }

    # --- Session / cookies ---
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    REMEMBER_COOKIE_HTTPONLY = True
    REMEMBER_COOKIE_SAMESITE = "Lax"

    # --- WTF / CSRF ---
    WTF_CSRF_ENABLED = True

    @staticmethod
    def validate():
        """Fail fast if required env vars are missing."""
        required = [
            "SECRET_KEY",
            "DATABASE_URL",
            "STRIPE_SECRET_KEY",
            "STRIPE_WEBHOOK_SECRET",
            "APP_BASE_URL",
            "HOSTING_DOMAIN",
        ]
        # FTP credentials are only required once a host is configured
        if os.environ.get("FTP_HOST"):
            required.extend(["FTP_USER", "FTP_PASS"])
        missing = [v for v in required if not os.environ.get(v)]
        if missing:
            raise RuntimeError(
                f"Missing required environment variables: {', '.join(missing)}"
            )


class DevConfig(Config):
    """Local development."""

    DEBUG = True
    SESSION_COOKIE_SECURE = False
    REMEMBER_COOKIE_SECURE = False


class TestConfig(Config):
    """Testing: in-memory SQLite, CSRF disabled, no external services."""

    TESTING = True
    DEBUG = True
    SECRET_KEY = "test-secret-key-not-for-production"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    STRIPE_SECRET_KEY = "sk_test_fake"
    STRIPE_WEBHOOK_SECRET = "whsec_test_fake"
    SITE_PRICE_CENTS = 4900
    SITE_CURRENCY = "usd"
    APP_BASE_URL = "http://localhost:5000"
    HOSTING_DOMAIN = "sites.test"
    DEPLOY_STALE_AFTER_SECONDS = 900
    FTP_HOST = None
    FTP_USER = None
    FTP_PASS = None
    FTP_ROOT = "/public_html"
    FTP_TLS = False
    GENERATOR_API_URL = None
    GENERATOR_API_KEY = None
    GENERATOR_TIMEOUT = 5
    SUPABASE_URL = None
    SUPABASE_SERVICE_KEY = None
    WTF_CSRF_ENABLED = False  # disable CSRF for test requests
    RATELIMIT_ENABLED = False  # disable rate limiting in tests
    SESSION_COOKIE_SECURE = False
    REMEMBER_COOKIE_SECURE = False
    SERVER_NAME = "localhost"

    @staticmethod
    def validate():
        """Skip validation in test mode, everything is hardcoded."""
        pass


class ProdConfig(Config):
    """Production."""

    DEBUG = False
    SESSION_COOKIE_SECURE = True
    REMEMBER_COOKIE_SECURE = True


config_by_name = {
    "development": DevConfig,
    "production": ProdConfig,
    "testing": TestConfig,
}

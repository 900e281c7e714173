import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as carrental.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "carrental.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Run db.create_all() at startup instead of migrations (dev/tests)
    CREATE_TABLES_ON_STARTUP = os.getenv("CREATE_TABLES_ON_STARTUP", "false").lower() == "true"

    # Session cookie name; Authorization: Bearer <token> is accepted as well
    AUTH_COOKIE_NAME = os.getenv("AUTH_COOKIE_NAME", "rental_session")

    # 8 hours session lifetime
    SESSION_LIFETIME_SECONDS = int(os.getenv("SESSION_LIFETIME_SECONDS", str(8 * 60 * 60)))

    # Idle timeout: 20 minutes
    IDLE_TIMEOUT_SECONDS = int(os.getenv("IDLE_TIMEOUT_SECONDS", str(20 * 60)))

    # Listing defaults
    BOOKINGS_PAGE_LIMIT = int(os.getenv("BOOKINGS_PAGE_LIMIT", "100"))
    VEHICLES_PAGE_LIMIT = int(os.getenv("VEHICLES_PAGE_LIMIT", "25"))
    MAX_PAGE_LIMIT = int(os.getenv("MAX_PAGE_LIMIT", "500"))
    RECENT_BOOKINGS_LIMIT = int(os.getenv("RECENT_BOOKINGS_LIMIT", "5"))

    # Simulated payments
    PAYMENT_CURRENCY = os.getenv("PAYMENT_CURRENCY", "USD")

    # Basic app settings
    DEBUG = False


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    CREATE_TABLES_ON_STARTUP = True

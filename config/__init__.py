import os

def get_settings_module() -> str:
    # Settings module is chosen by APP_ENV, defaulting to development
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "config.production"

    # Testing runs on the in-memory store
    if env in {"test", "testing"}:
        return "config.testing"

    return "config.development"

"""
Minimal Django configuration shared by the test suite.

The example views only need settings to build responses. When DATABASE_URL
points at PostgreSQL it also becomes the default database, which the
PostgreSQL backend tests require.
"""

import os
from urllib.parse import urlparse


def _databases() -> dict:
    database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        return {}

    u = urlparse(database_url)
    if u.scheme not in {"postgres", "postgresql"}:
        return {}

    return {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": (u.path or "").lstrip("/"),
            "USER": u.username or "",
            "PASSWORD": u.password or "",
            "HOST": u.hostname or "localhost",
            "PORT": str(u.port or 5432),
            "CONN_MAX_AGE": 0,
        }
    }


def pytest_configure(config) -> None:
    from django.conf import settings

    if settings.configured:
        return

    settings.configure(
        SECRET_KEY="test",
        INSTALLED_APPS=[],
        DATABASES=_databases(),
        TIME_ZONE="UTC",
        USE_TZ=True,
    )

    import django

    django.setup()

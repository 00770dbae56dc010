# app/utils/tz.py


def get_tz() -> str:
    """Return the timezone record timestamps are stamped in.

    Lazy import, models.py stamps timestamps with it and settings.py
    imports models.py.
    """
    from app.settings import settings_cache
    return settings_cache.timezone or "UTC"

from django.conf import settings

DEFAULTS = {
    "DEFAULT_MARKUP": "0.30",
    "MARKUP_PRESETS": ["0.20", "0.30", "0.50"],
    "DEFAULT_TERMS_DAYS": 0,
}


def billing_setting(name, default=None):
    """Read one key of settings.BILLING, falling back to package defaults."""
    overrides = getattr(settings, "BILLING", None) or {}
    if name in overrides:
        return overrides[name]
    return DEFAULTS.get(name, default)

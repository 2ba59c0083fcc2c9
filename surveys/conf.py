"""
Engine settings

Reads the SURVEY_LOGIC dict from Django settings. When Django settings are not
configured (engine used as a plain library) the built-in defaults apply.
"""

from typing import Any, Dict

from django.conf import settings


DEFAULTS: Dict[str, Any] = {
    'SMILEY_SCALE': {
        'very_sad': 1,
        'sad': 2,
        'neutral': 3,
        'happy': 4,
        'very_happy': 5,
    },
    'DEFAULT_LOGICAL': 'OR',
    'RATING_MAX_DEFAULT': 10,
    'SMILEY_MAX_DEFAULT': 5,
    'SLIDER_MIN_DEFAULT': 0,
    'SLIDER_MAX_DEFAULT': 100,
}


def get_setting(name: str) -> Any:
    """Return one SURVEY_LOGIC option, falling back to DEFAULTS."""
    if name not in DEFAULTS:
        raise KeyError(f"Unknown survey logic setting: {name}")
    if not settings.configured:
        return DEFAULTS[name]
    overrides = getattr(settings, 'SURVEY_LOGIC', None) or {}
    return overrides.get(name, DEFAULTS[name])

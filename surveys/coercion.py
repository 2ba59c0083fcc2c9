"""
Value Coercion

Turns heterogeneous answer and condition values (text, numbers, booleans,
smiley labels, multi-select lists, option objects) into comparable forms.
"""

import math
from decimal import Decimal
from enum import Enum
from typing import Any, FrozenSet, List, Optional, Sequence

from .conf import get_setting


class ValueKind(str, Enum):
    STRING = 'string'
    NUMBER = 'number'
    BOOLEAN = 'boolean'


def value_kind(value: Any) -> ValueKind:
    """Classify an authored condition value."""
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, (int, float, Decimal)):
        return ValueKind.NUMBER
    return ValueKind.STRING


def smiley_scale() -> dict:
    return get_setting('SMILEY_SCALE')


def coerce_numeric(value: Any) -> Optional[float]:
    """
    Coerce a value to a number.

    Numbers are kept, smiley labels map to their ordinal (``happy`` -> 4) and
    anything else is parsed as a number. Returns None (not-a-number) for
    booleans, blanks, lists and unparsable text.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
        return None if math.isnan(number) else number
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    scale = smiley_scale()
    label = text.lower()
    if label in scale:
        return float(scale[label])
    try:
        number = float(text)
    except ValueError:
        return None
    return None if math.isnan(number) else number


def normalize_string(value: Any) -> str:
    """Trimmed, lower-cased text form used for equality and contains checks."""
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip().lower()


def is_blank(value: Any) -> bool:
    """True for an unanswered question: None, whitespace, or an empty collection."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


def is_multi(value: Any) -> bool:
    return isinstance(value, (list, tuple, set))


def as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if is_multi(value):
        return list(value)
    return [value]


def unwrap_option_ref(value: Any) -> Any:
    """Reduce an option object to its reference: id, then value, then text."""
    if isinstance(value, dict):
        for key in ('id', 'value', 'text'):
            if value.get(key) is not None:
                return value[key]
        return None
    return value


def resolve_option(value: Any, options: Sequence[Any] = ()) -> Optional[Any]:
    """The option ``value`` refers to (by id, then value, then text), if any."""
    token = normalize_string(unwrap_option_ref(value))
    if not options or not token:
        return None
    for attr in ('id', 'value', 'text'):
        for option in options:
            candidate = getattr(option, attr, None)
            if candidate is not None and normalize_string(candidate) == token:
                return option
    return None


def _forms(value: Any, options: Sequence[Any], attrs: Sequence[str]) -> FrozenSet[str]:
    option = resolve_option(value, options)
    if option is None:
        return frozenset([normalize_string(unwrap_option_ref(value))])
    forms = (getattr(option, attr, None) for attr in attrs)
    return frozenset(normalize_string(form) for form in forms if form is not None and normalize_string(form))


def option_tokens(value: Any, options: Sequence[Any] = ()) -> FrozenSet[str]:
    """
    Normalized forms under which ``value`` may have been authored.

    If ``value`` resolves to one of ``options`` (by id, then value, then text)
    the option's id, value and text are all returned, so a condition written
    against the label matches an answer stored as the id and vice versa.
    """
    return _forms(value, options, ('id', 'value', 'text'))


def option_labels(value: Any, options: Sequence[Any] = ()) -> FrozenSet[str]:
    """
    Like option_tokens but without the option id; the text searched by
    ``contains``. An option with neither value nor text keeps its id.
    """
    return _forms(value, options, ('value', 'text')) or option_tokens(value, options)


def same_option(left: Any, right: Any, options: Sequence[Any] = ()) -> bool:
    return bool(option_tokens(left, options) & option_tokens(right, options))

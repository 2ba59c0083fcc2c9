"""
Rule and Question Definitions

Immutable, in-memory shapes consumed by the conditional logic engine:
questions with their options and settings, visibility rules, branching rules
and the navigation verdict produced by branching.

Each shape has a ``from_dict`` constructor accepting the JSON layout used by
the survey builder, e.g.:

    {
        "questionId": "q1",
        "condition": {"operator": "equals", "value": "yes"},
        "logical": "AND",
        "action": {"type": "skip_to_page", "targetPageIndex": 3},
        "groupIndex": 0
    }
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .exceptions import InvalidLogicError


class QuestionType(str, Enum):
    SINGLE_CHOICE = 'singleChoice'
    MULTI_CHOICE = 'multiChoice'
    DROPDOWN = 'dropdown'
    TEXT_SHORT = 'textShort'
    TEXT_LONG = 'textLong'
    RATING_NUMBER = 'ratingNumber'
    RATING_STAR = 'ratingStar'
    RATING_SMILEY = 'ratingSmiley'
    SLIDER = 'slider'
    DATE = 'datePicker'
    FILE_UPLOAD = 'fileUpload'
    EMAIL = 'email'

    @classmethod
    def parse(cls, raw: str) -> 'QuestionType':
        """Accept builder tags (``ratingSmiley``) and import tags (``rating_smiley``)."""
        if isinstance(raw, cls):
            return raw
        key = str(raw).strip()
        for member in cls:
            if key == member.value:
                return member
        alias = _QUESTION_TYPE_ALIASES.get(key.lower())
        if alias is None:
            raise InvalidLogicError(f"Unknown question type: {raw!r}")
        return alias

    @property
    def is_choice(self) -> bool:
        return self in (QuestionType.SINGLE_CHOICE, QuestionType.MULTI_CHOICE, QuestionType.DROPDOWN)

    @property
    def is_numeric_scale(self) -> bool:
        return self in (
            QuestionType.RATING_NUMBER, QuestionType.RATING_STAR,
            QuestionType.RATING_SMILEY, QuestionType.SLIDER,
        )


_QUESTION_TYPE_ALIASES = {
    'single_choice': QuestionType.SINGLE_CHOICE,
    'singlechoice': QuestionType.SINGLE_CHOICE,
    'multi_choice': QuestionType.MULTI_CHOICE,
    'multichoice': QuestionType.MULTI_CHOICE,
    'multiple_choice': QuestionType.MULTI_CHOICE,
    'dropdown': QuestionType.DROPDOWN,
    'text_short': QuestionType.TEXT_SHORT,
    'textshort': QuestionType.TEXT_SHORT,
    'text_long': QuestionType.TEXT_LONG,
    'textlong': QuestionType.TEXT_LONG,
    'rating_number': QuestionType.RATING_NUMBER,
    'ratingnumber': QuestionType.RATING_NUMBER,
    'rating_star': QuestionType.RATING_STAR,
    'ratingstar': QuestionType.RATING_STAR,
    'rating_smiley': QuestionType.RATING_SMILEY,
    'ratingsmiley': QuestionType.RATING_SMILEY,
    'slider': QuestionType.SLIDER,
    'date': QuestionType.DATE,
    'date_picker': QuestionType.DATE,
    'datepicker': QuestionType.DATE,
    'file_upload': QuestionType.FILE_UPLOAD,
    'fileupload': QuestionType.FILE_UPLOAD,
    'email': QuestionType.EMAIL,
}


class Operator(str, Enum):
    EQUALS = 'equals'
    NOT_EQUALS = 'not_equals'
    CONTAINS = 'contains'
    NOT_CONTAINS = 'not_contains'
    GREATER_THAN = 'greater_than'
    LESS_THAN = 'less_than'
    COUNT_EQ = 'count_eq'
    COUNT_GT = 'count_gt'
    COUNT_LT = 'count_lt'
    HAS_SELECTED = 'has_selected'

    @classmethod
    def lookup(cls, raw: Any) -> Optional['Operator']:
        """Return the operator for ``raw`` or None when it is not recognized."""
        if isinstance(raw, cls):
            return raw
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return None

    @property
    def is_negative(self) -> bool:
        return self in (Operator.NOT_EQUALS, Operator.NOT_CONTAINS)

    @property
    def is_count(self) -> bool:
        return self in (Operator.COUNT_EQ, Operator.COUNT_GT, Operator.COUNT_LT)

    @property
    def is_numeric(self) -> bool:
        return self in (Operator.GREATER_THAN, Operator.LESS_THAN) or self.is_count


class Logical(str, Enum):
    AND = 'AND'
    OR = 'OR'

    @classmethod
    def parse(cls, raw: Any, default: Optional['Logical'] = None) -> Optional['Logical']:
        if raw is None or raw == '':
            return default
        if isinstance(raw, cls):
            return raw
        try:
            return cls(str(raw).strip().upper())
        except ValueError:
            raise InvalidLogicError(f"Logical join must be 'AND' or 'OR', got {raw!r}")


class ActionType(str, Enum):
    SKIP_TO_PAGE = 'skip_to_page'
    END_SURVEY = 'end_survey'


# ============================================================================
# Questions
# ============================================================================

@dataclass(frozen=True)
class Option:
    id: str
    text: str = ''
    value: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Option':
        if 'id' not in data:
            raise InvalidLogicError("Option must have 'id'")
        value = data.get('value')
        return cls(
            id=str(data['id']),
            text=str(data.get('text') or ''),
            value=None if value is None else str(value),
        )


@dataclass(frozen=True)
class Question:
    id: str
    type: QuestionType
    options: Tuple[Option, ...] = ()
    settings: Mapping[str, Any] = field(default_factory=dict)
    visibility_rules: Tuple['VisibilityRule', ...] = ()
    title: str = ''

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Question':
        """
        Build a question from its builder JSON.

        Visibility rules are read from the first location present:
        ``visibilityRules``, ``visibleWhen``, ``settings.visibleWhen`` or
        ``settings.visibility.rules``.
        """
        if 'id' not in data:
            raise InvalidLogicError("Question must have 'id'")
        if 'type' not in data:
            raise InvalidLogicError(f"Question {data['id']!r} must have 'type'")
        settings = dict(data.get('settings') or {})
        raw_rules = _visibility_rules_source(data, settings)
        return cls(
            id=str(data['id']),
            type=QuestionType.parse(data['type']),
            options=tuple(Option.from_dict(o) for o in data.get('options') or []),
            settings=settings,
            visibility_rules=tuple(VisibilityRule.from_dict(r) for r in raw_rules),
            title=str(data.get('title') or ''),
        )

    def find_option(self, ref: Any) -> Optional[Option]:
        """Find an option by id, then value, then text (case-insensitive)."""
        if ref is None or not self.options:
            return None
        token = str(ref).strip().lower()
        for attr in ('id', 'value', 'text'):
            for option in self.options:
                candidate = getattr(option, attr)
                if candidate is not None and str(candidate).strip().lower() == token:
                    return option
        return None


def _index(raw: Any, name: str) -> Optional[int]:
    if raw is None or raw == '':
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise InvalidLogicError(f"{name} must be an integer, got {raw!r}")


def _visibility_rules_source(data: Mapping[str, Any], settings: Mapping[str, Any]) -> List[Any]:
    visibility = settings.get('visibility')
    nested = visibility.get('rules') if isinstance(visibility, Mapping) else None
    for candidate in (data.get('visibilityRules'), data.get('visibleWhen'),
                      settings.get('visibleWhen'), nested):
        if candidate:
            return list(candidate)
    return []


# ============================================================================
# Rules
# ============================================================================

@dataclass(frozen=True)
class Condition:
    """One atomic test: ``operator`` applied to an authored ``value``.

    ``operator`` is kept as authored; unrecognized operators are not rejected
    here so that evaluation can fail closed on them.
    """
    operator: str
    value: Any = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Condition':
        if not isinstance(data, Mapping) or 'operator' not in data:
            raise InvalidLogicError("Condition must have 'operator'")
        return cls(operator=str(data['operator']), value=data.get('value'))

    @property
    def known_operator(self) -> Optional[Operator]:
        return Operator.lookup(self.operator)


@dataclass(frozen=True)
class Action:
    type: ActionType
    target_page_index: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Action':
        try:
            action_type = ActionType(data.get('type'))
        except ValueError:
            raise InvalidLogicError(f"Unknown branching action: {data.get('type')!r}")
        return cls(type=action_type, target_page_index=_index(data.get('targetPageIndex'), 'targetPageIndex'))


@dataclass(frozen=True)
class VisibilityRule:
    """A condition on an (earlier) question, joined to the next rule by ``logical``."""
    question_id: Optional[str]
    condition: Condition
    logical: Optional[Logical] = None
    group_index: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'VisibilityRule':
        if not isinstance(data, Mapping):
            raise InvalidLogicError(f"Rule must be an object, got {type(data).__name__}")
        question_id = data.get('questionId')
        return cls(
            question_id=None if question_id is None else str(question_id),
            condition=Condition.from_dict(data.get('condition') or {}),
            logical=Logical.parse(data.get('logical')),
            group_index=_index(data.get('groupIndex'), 'groupIndex'),
        )


@dataclass(frozen=True)
class BranchingRule:
    """A branching condition; rules sharing ``group_index`` form one group.

    A rule without ``group_index`` is a group of its own.
    """
    question_id: Optional[str]
    condition: Condition
    logical: Optional[Logical] = None
    action: Optional[Action] = None
    group_index: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'BranchingRule':
        if not isinstance(data, Mapping):
            raise InvalidLogicError(f"Rule must be an object, got {type(data).__name__}")
        question_id = data.get('questionId')
        action = data.get('action')
        return cls(
            question_id=None if question_id is None else str(question_id),
            condition=Condition.from_dict(data.get('condition') or {}),
            logical=Logical.parse(data.get('logical')),
            action=Action.from_dict(action) if action else None,
            group_index=_index(data.get('groupIndex'), 'groupIndex'),
        )


@dataclass(frozen=True)
class Page:
    questions: Tuple[Question, ...] = ()
    branching: Tuple[BranchingRule, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Page':
        return cls(
            questions=tuple(Question.from_dict(q) for q in data.get('questions') or []),
            branching=tuple(BranchingRule.from_dict(r) for r in data.get('branching') or []),
        )


# ============================================================================
# Verdicts
# ============================================================================

@dataclass(frozen=True)
class NavigationVerdict:
    """Where the respondent goes after submitting a page."""
    type: str
    page_index: Optional[int] = None

    GOTO = 'goto'
    END = 'end'

    @classmethod
    def goto(cls, page_index: int) -> 'NavigationVerdict':
        return cls(type=cls.GOTO, page_index=page_index)

    @classmethod
    def end(cls) -> 'NavigationVerdict':
        return cls(type=cls.END)

    @property
    def is_end(self) -> bool:
        return self.type == self.END

    def to_dict(self) -> Dict[str, Any]:
        if self.is_end:
            return {'type': self.END}
        return {'type': self.GOTO, 'pageIndex': self.page_index}

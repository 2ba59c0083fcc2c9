"""
Rule Authoring Validation

Checks rule definitions before they are saved or published. Nothing here runs
during survey delivery: the evaluators fail closed on bad rules, while these
checks report the problems to the author.

Every function returns a list of error messages (empty when valid).
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .branching import group_positions
from .coercion import coerce_numeric
from .conf import get_setting
from .rules import ActionType, BranchingRule, Operator, Question, QuestionType


_SCALE_SETTINGS = {
    QuestionType.RATING_NUMBER: (('maxRating', 'RATING_MAX_DEFAULT'),),
    QuestionType.RATING_STAR: (('maxRating', 'RATING_MAX_DEFAULT'),),
    QuestionType.RATING_SMILEY: (('maxRating', 'SMILEY_MAX_DEFAULT'),),
    QuestionType.SLIDER: (('scaleMin', 'SLIDER_MIN_DEFAULT'), ('scaleMax', 'SLIDER_MAX_DEFAULT')),
}


def _scale_number(settings: Mapping[str, Any], key: str) -> Optional[float]:
    raw = settings.get(key)
    if raw is None or raw == '':
        return None
    return coerce_numeric(raw)


def value_bounds(question: Question) -> Optional[Tuple[float, float]]:
    """
    Allowed condition values for a rating or slider question.

    Rating number/star: 1..maxRating (default 10)
    Rating smiley: 1..maxRating (default 5)
    Slider: scaleMin (default 0)..scaleMax (default 100)

    Missing or non-numeric settings fall back to the defaults.
    """
    keys = _SCALE_SETTINGS.get(question.type)
    if keys is None:
        return None
    settings = question.settings or {}
    values = []
    for key, default_name in keys:
        number = _scale_number(settings, key)
        values.append(float(get_setting(default_name)) if number is None else number)
    if question.type is QuestionType.SLIDER:
        return values[0], values[1]
    return 1.0, values[0]


def validate_scale_settings(question: Question) -> List[str]:
    """Report rating/slider settings that are present but not numbers."""
    settings = question.settings or {}
    errors = []
    for key, _ in _SCALE_SETTINGS.get(question.type, ()):
        raw = settings.get(key)
        if raw is not None and raw != '' and _scale_number(settings, key) is None:
            errors.append(f"Invalid {key} {raw!r} for question '{question.id}': must be a number")
    return errors


def validate_condition(rule, question: Optional[Question], path: str) -> List[str]:
    """Validate one rule's condition against the question it references."""
    errors = []
    condition = rule.condition
    op = condition.known_operator
    if op is None:
        valid = ', '.join(o.value for o in Operator)
        return [f"{path}: Unknown operator '{condition.operator}'. Valid: {valid}"]

    if condition.value is None or (isinstance(condition.value, str) and not condition.value.strip()):
        errors.append(f"{path}: Condition with operator '{op.value}' must have a value")
        return errors

    if op.is_numeric and coerce_numeric(condition.value) is None:
        errors.append(f"{path}: Operator '{op.value}' requires a numeric value, got {condition.value!r}")
        return errors

    if question is None:
        return errors

    if op.is_count:
        if question.type is not QuestionType.MULTI_CHOICE:
            errors.append(
                f"{path}: Operator '{op.value}' only applies to multi-choice questions, "
                f"'{question.id}' is {question.type.value}"
            )
        elif coerce_numeric(condition.value) < 0:
            errors.append(f"{path}: Count must be non-negative")
        return errors

    bounds = value_bounds(question)
    number = coerce_numeric(condition.value)
    if bounds is not None and number is not None:
        low, high = bounds
        if number < low or number > high:
            errors.append(
                f"{path}: Value {condition.value!r} for question '{question.id}' "
                f"must be between {low:g} and {high:g}"
            )
    elif op is Operator.HAS_SELECTED and question.options and question.find_option(condition.value) is None:
        errors.append(f"{path}: '{condition.value}' is not an option of question '{question.id}'")
    return errors


def validate_visibility_rules(
    question: Question,
    questions: Sequence[Question],
) -> List[str]:
    """
    Validate a question's visibility rules.

    ``questions`` is the survey's questions in display order; a rule may only
    depend on a question that comes before the one it controls.
    """
    errors: List[str] = []
    order: Dict[str, int] = {q.id: i for i, q in enumerate(questions)}
    by_id: Dict[str, Question] = {q.id: q for q in questions}
    position = order.get(question.id)

    for i, rule in enumerate(question.visibility_rules):
        path = f"{question.id}.visibilityRules[{i}]"
        if not rule.question_id:
            errors.append(f"{path}: Rule must reference a questionId")
            continue
        if rule.question_id == question.id:
            errors.append(f"{path}: A question cannot depend on itself")
            continue
        dependency = by_id.get(rule.question_id)
        if dependency is None:
            errors.append(f"{path}: References unknown question '{rule.question_id}'")
            continue
        if position is not None and order[rule.question_id] > position:
            errors.append(f"{path}: Depends on later question '{rule.question_id}'")
        errors.extend(validate_condition(rule, dependency, path))
    return errors


def validate_branching_rules(
    rules: Iterable[BranchingRule],
    total_pages: int,
    questions: Optional[Mapping[str, Question]] = None,
    page_index: Optional[int] = None,
) -> List[str]:
    """
    Validate a page's branching rules.

    Checks that each group has exactly one action, that skip_to_page targets
    exist, and that each condition fits its question.
    """
    questions = questions or {}
    errors: List[str] = []
    prefix = f"pages[{page_index}].branching" if page_index is not None else 'branching'

    for group_index, members in group_positions(rules).items():
        actions = {rule.action for _, rule in members if rule.action is not None}
        if not actions:
            errors.append(f"{prefix} group {group_index}: Rule group has no action")
        elif len(actions) > 1:
            errors.append(f"{prefix} group {group_index}: Rule group has conflicting actions")

        for action in actions:
            if action.type is ActionType.SKIP_TO_PAGE:
                target = action.target_page_index
                if target is None:
                    errors.append(f"{prefix} group {group_index}: skip_to_page requires targetPageIndex")
                elif not 0 <= target < total_pages:
                    errors.append(
                        f"{prefix} group {group_index}: targetPageIndex {target} "
                        f"is outside 0..{total_pages - 1}"
                    )

        for i, rule in members:
            errors.extend(validate_condition(rule, questions.get(rule.question_id), f"{prefix}[{i}]"))
    return errors


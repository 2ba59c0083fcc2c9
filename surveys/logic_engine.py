"""
Conditional Logic Engine for Dynamic Surveys

Evaluates the rules authored in the survey builder against a respondent's
answers:
- Ten condition operators keyed to question type (text, choice, multi-select
  counts, numeric/rating scales)
- Left-to-right AND/OR joins between the conditions of a rule group
- Fail-closed evaluation: unknown operators, missing answers and values that
  cannot be compared never produce a match (negative operators excepted)
- No arbitrary code execution; operators are a fixed whitelist
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .coercion import (
    as_list,
    coerce_numeric,
    is_blank,
    is_multi,
    normalize_string,
    option_labels,
    same_option,
)
from .conf import get_setting
from .exceptions import ErrorKind, InvalidLogicError, LogicEvaluationError, OutOfRangeTargetError
from .rules import BranchingRule, Logical, Operator, Question, VisibilityRule

logger = logging.getLogger(__name__)

__all__ = [
    'ConditionEvaluator',
    'RuleGroupEvaluator',
    'evaluate_condition',
    'ErrorKind',
    'InvalidLogicError',
    'LogicEvaluationError',
    'OutOfRangeTargetError',
]

Rule = Union[VisibilityRule, BranchingRule]
Handler = Callable[[Any, Any, Sequence[Any]], bool]


class ConditionEvaluator:
    """
    Evaluates one condition (operator + authored value) against one answer.

    Pure and stateless; a single instance can be shared between sessions.
    """

    def __init__(self):
        # One handler per Operator member; new operators must be added here
        self.handlers: Dict[Operator, Handler] = {
            Operator.EQUALS: self._equals,
            Operator.NOT_EQUALS: lambda c, r, o: not self._equals(c, r, o),
            Operator.CONTAINS: self._contains,
            Operator.NOT_CONTAINS: lambda c, r, o: not self._contains(c, r, o),
            Operator.GREATER_THAN: self._greater_than,
            Operator.LESS_THAN: self._less_than,
            Operator.COUNT_EQ: lambda c, r, o: self._count(c, r, lambda n, t: n == t),
            Operator.COUNT_GT: lambda c, r, o: self._count(c, r, lambda n, t: n > t),
            Operator.COUNT_LT: lambda c, r, o: self._count(c, r, lambda n, t: n < t),
            Operator.HAS_SELECTED: self._has_selected,
        }

    def evaluate(
        self,
        operator: Any,
        condition_value: Any,
        response_value: Any,
        question: Optional[Question] = None,
    ) -> bool:
        """
        Evaluate ``operator`` with ``condition_value`` against ``response_value``.

        Args:
            operator: Operator name as authored (unknown names evaluate False)
            condition_value: Value written by the rule author
            response_value: The respondent's answer; None when unanswered
            question: Question the answer belongs to, used to resolve option
                      ids, values and labels to each other

        Returns:
            Boolean verdict; never raises for bad rules or bad data
        """
        result, _ = self.check(operator, condition_value, response_value, question)
        return result

    def check(
        self,
        operator: Any,
        condition_value: Any,
        response_value: Any,
        question: Optional[Question] = None,
    ) -> Tuple[bool, Optional[ErrorKind]]:
        """Evaluate and also report why a condition failed closed, if it did."""
        op = Operator.lookup(operator)
        if op is None:
            logger.warning(f"Unknown condition operator {operator!r} evaluated as no match")
            return False, ErrorKind.MALFORMED_RULE

        if is_blank(response_value):
            # Missing answers: positive operators never match, negative ones always do
            return op.is_negative, ErrorKind.MISSING_ANSWER

        if op.is_numeric and coerce_numeric(condition_value) is None:
            logger.debug(f"Operator {op.value} given non-numeric value {condition_value!r}")
            return False, ErrorKind.TYPE_MISMATCH
        if op.is_count and not is_multi(response_value):
            return False, ErrorKind.TYPE_MISMATCH
        if op in (Operator.GREATER_THAN, Operator.LESS_THAN) and coerce_numeric(response_value) is None:
            return False, ErrorKind.TYPE_MISMATCH

        options = question.options if question is not None else ()
        handler = self.handlers.get(op)
        if handler is None:
            logger.warning(f"No handler registered for operator {op.value}")
            return False, ErrorKind.MALFORMED_RULE
        return bool(handler(condition_value, response_value, options)), None

    # ------------------------------------------------------------------------
    # Operator handlers
    # ------------------------------------------------------------------------

    def _equals(self, condition_value: Any, response_value: Any, options: Sequence[Any]) -> bool:
        if is_multi(response_value):
            return any(same_option(item, condition_value, options) for item in response_value)

        # Numeric first so ratings, sliders and smiley labels compare by value
        response_number = coerce_numeric(response_value)
        condition_number = coerce_numeric(condition_value)
        if response_number is not None and condition_number is not None:
            return response_number == condition_number

        return same_option(response_value, condition_value, options)

    def _contains(self, condition_value: Any, response_value: Any, options: Sequence[Any]) -> bool:
        needle = normalize_string(condition_value)
        return any(
            needle in token
            for item in as_list(response_value)
            for token in option_labels(item, options)
        )

    def _greater_than(self, condition_value: Any, response_value: Any, options: Sequence[Any]) -> bool:
        response_number = coerce_numeric(response_value)
        condition_number = coerce_numeric(condition_value)
        if response_number is None or condition_number is None:
            return False
        return response_number > condition_number

    def _less_than(self, condition_value: Any, response_value: Any, options: Sequence[Any]) -> bool:
        response_number = coerce_numeric(response_value)
        condition_number = coerce_numeric(condition_value)
        if response_number is None or condition_number is None:
            return False
        return response_number < condition_number

    def _count(self, condition_value: Any, response_value: Any, compare: Callable[[int, float], bool]) -> bool:
        if not is_multi(response_value):
            return False
        threshold = coerce_numeric(condition_value)
        if threshold is None:
            return False
        return compare(len(response_value), threshold)

    def _has_selected(self, condition_value: Any, response_value: Any, options: Sequence[Any]) -> bool:
        return any(same_option(item, condition_value, options) for item in as_list(response_value))


_default_evaluator = ConditionEvaluator()


def evaluate_condition(operator: Any, condition_value: Any, response_value: Any,
                       question: Optional[Question] = None) -> bool:
    """Module-level shortcut for ConditionEvaluator.evaluate."""
    return _default_evaluator.evaluate(operator, condition_value, response_value, question)


class RuleGroupEvaluator:
    """
    Folds the conditions of one rule group into a single boolean.

    Conditions are evaluated in authored order and combined strictly left to
    right using each condition's ``logical`` join to the next one. There is no
    precedence: ``A OR B AND C`` is ``(A OR B) AND C``.
    """

    def __init__(
        self,
        questions: Optional[Mapping[str, Question]] = None,
        condition_evaluator: Optional[ConditionEvaluator] = None,
        default_logical: Optional[Logical] = None,
    ):
        """
        Args:
            questions: Question definitions by id, used for option resolution
            condition_evaluator: Evaluator for single conditions
            default_logical: Join used when a condition has no ``logical``;
                             defaults to the DEFAULT_LOGICAL setting ('OR')
        """
        self.questions = questions or {}
        self.condition_evaluator = condition_evaluator or _default_evaluator
        self.default_logical = default_logical or Logical.parse(get_setting('DEFAULT_LOGICAL'), Logical.OR)

    def evaluate(
        self,
        rules: Sequence[Rule],
        responses: Mapping[str, Any],
        default_question_id: Optional[str] = None,
    ) -> bool:
        """
        Evaluate a rule group against the answers collected so far.

        Args:
            rules: The group's rules in authored order
            responses: Mapping of question id to answer
            default_question_id: Question used by rules that name none

        Returns:
            The folded result; False for an empty group
        """
        if not rules:
            logger.warning("Empty rule group evaluated as no match")
            return False
        results = [step['result'] for step in self._steps(rules, responses, default_question_id)]
        return self._fold(rules, results)

    def explain(
        self,
        rules: Sequence[Rule],
        responses: Mapping[str, Any],
        default_question_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Evaluate a group and return a trace of every condition.

        Useful for showing authors why a question is hidden or why a branch
        fired.

        Example:
            trace = evaluator.explain(rules, {'q1': 'yes'})
            trace['result']                 # True
            trace['conditions'][0]['reason']  # None, or e.g. 'missing_answer'
        """
        if not rules:
            return {
                'result': False,
                'reason': ErrorKind.MALFORMED_RULE.value,
                'conditions': [],
            }
        steps = self._steps(rules, responses, default_question_id)
        return {
            'result': self._fold(rules, [step['result'] for step in steps]),
            'reason': None,
            'conditions': steps,
        }

    def _steps(
        self,
        rules: Sequence[Rule],
        responses: Mapping[str, Any],
        default_question_id: Optional[str],
    ) -> List[Dict[str, Any]]:
        steps = []
        for index, rule in enumerate(rules):
            question_id = rule.question_id or default_question_id
            condition = rule.condition
            if question_id is None:
                logger.warning(f"Rule {index} has no questionId, evaluated as no match")
                result, reason, answer = False, ErrorKind.MALFORMED_RULE, None
            else:
                answer = responses.get(question_id)
                result, reason = self.condition_evaluator.check(
                    condition.operator, condition.value, answer, self.questions.get(question_id)
                )
            steps.append({
                'question_id': question_id,
                'operator': condition.operator,
                'expected_value': condition.value,
                'actual_value': answer,
                'logical': self._join(rule).value if index < len(rules) - 1 else None,
                'result': result,
                'reason': reason.value if reason else None,
            })
        return steps

    def _fold(self, rules: Sequence[Rule], results: Sequence[bool]) -> bool:
        result = results[0]
        for index in range(1, len(results)):
            if self._join(rules[index - 1]) is Logical.AND:
                result = result and results[index]
            else:
                result = result or results[index]
        return result

    def _join(self, rule: Rule) -> Logical:
        return rule.logical or self.default_logical

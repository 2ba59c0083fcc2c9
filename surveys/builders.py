"""
Rule Builders

Fluent helpers to build visibility and branching rules programmatically,
mainly for fixtures, seed data and tests.

Example:
    rules = RuleBuilder.visibility(
        RuleBuilder.question('q1').equals('yes'),
        'AND',
        RuleBuilder.question('q2').greater_than(3),
    )
    group = RuleBuilder.branching(
        RuleBuilder.question('q1').equals('no'),
    ).end_survey()
"""

from typing import Any, List, Optional, Tuple, Union

from .rules import (
    Action,
    ActionType,
    BranchingRule,
    Condition,
    Logical,
    Operator,
    VisibilityRule,
)


class ConditionBuilder:
    """Builder for the condition on one question."""

    def __init__(self, question_id: Optional[str]):
        self.question_id = question_id

    def _make(self, operator: Operator, value: Any) -> Tuple[Optional[str], Condition]:
        return self.question_id, Condition(operator=operator.value, value=value)

    def equals(self, value: Any):
        """Answer equals value (membership for multi-select)."""
        return self._make(Operator.EQUALS, value)

    def not_equals(self, value: Any):
        return self._make(Operator.NOT_EQUALS, value)

    def contains(self, value: Any):
        """Answer text contains value."""
        return self._make(Operator.CONTAINS, value)

    def not_contains(self, value: Any):
        return self._make(Operator.NOT_CONTAINS, value)

    def greater_than(self, value: Any):
        return self._make(Operator.GREATER_THAN, value)

    def less_than(self, value: Any):
        return self._make(Operator.LESS_THAN, value)

    def count_eq(self, count: int):
        """Exactly ``count`` options selected."""
        return self._make(Operator.COUNT_EQ, count)

    def count_gt(self, count: int):
        return self._make(Operator.COUNT_GT, count)

    def count_lt(self, count: int):
        return self._make(Operator.COUNT_LT, count)

    def has_selected(self, option: Any):
        """Option ``option`` (id, value or label) is among the answers."""
        return self._make(Operator.HAS_SELECTED, option)


Part = Union[Tuple[Optional[str], Condition], str, Logical]


def _link(parts: Tuple[Part, ...]) -> List[Tuple[Optional[str], Condition, Optional[Logical]]]:
    """Turn ``cond, 'AND', cond, 'OR', cond`` into (question, condition, join) triples."""
    linked: List[Tuple[Optional[str], Condition, Optional[Logical]]] = []
    pending: Optional[Logical] = None
    for part in parts:
        if isinstance(part, (str, Logical)):
            if not linked:
                raise ValueError("A rule group cannot start with a logical join")
            pending = Logical.parse(part)
            continue
        if linked and pending is not None:
            question_id, condition, _ = linked[-1]
            linked[-1] = (question_id, condition, pending)
        pending = None
        question_id, condition = part
        linked.append((question_id, condition, None))
    if pending is not None:
        raise ValueError("A rule group cannot end with a logical join")
    return linked


class BranchingGroupBuilder:
    """Collects the conditions of one branching group until an action is chosen."""

    def __init__(self, parts: Tuple[Part, ...], group_index: int = 0):
        self.linked = _link(parts)
        self.group_index = group_index

    def _finish(self, action: Action) -> List[BranchingRule]:
        return [
            BranchingRule(
                question_id=question_id,
                condition=condition,
                logical=logical,
                action=action,
                group_index=self.group_index,
            )
            for question_id, condition, logical in self.linked
        ]

    def skip_to(self, page_index: int) -> List[BranchingRule]:
        return self._finish(Action(type=ActionType.SKIP_TO_PAGE, target_page_index=page_index))

    def end_survey(self) -> List[BranchingRule]:
        return self._finish(Action(type=ActionType.END_SURVEY))


class RuleBuilder:
    """Entry points for building rules."""

    @staticmethod
    def question(question_id: Optional[str]) -> ConditionBuilder:
        """Start a condition on ``question_id`` (None: the page's trigger question)."""
        return ConditionBuilder(question_id)

    @staticmethod
    def visibility(*parts: Part, group_index: Optional[int] = None) -> List[VisibilityRule]:
        """Visibility rules from conditions separated by optional 'AND'/'OR' joins."""
        return [
            VisibilityRule(question_id=question_id, condition=condition,
                           logical=logical, group_index=group_index)
            for question_id, condition, logical in _link(parts)
        ]

    @staticmethod
    def branching(*parts: Part, group_index: int = 0) -> BranchingGroupBuilder:
        """Branching group; finish with ``.skip_to(n)`` or ``.end_survey()``."""
        return BranchingGroupBuilder(parts, group_index)

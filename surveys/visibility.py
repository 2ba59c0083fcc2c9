"""
Question Visibility

Decides whether a question is shown, based on its visibility rules and the
answers collected so far. Rules may reference any earlier question.
"""

import logging
from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .logic_engine import RuleGroupEvaluator
from .rules import Question, VisibilityRule

logger = logging.getLogger(__name__)


class VisibilityEngine:
    """
    Evaluates visibility rules for the questions of one survey.

    A question without rules is always visible. Otherwise its rules form one
    implicit group, or several when rules carry a ``group_index``; the
    question is visible when any group evaluates True.
    """

    def __init__(self, questions: Optional[Iterable[Question]] = None,
                 evaluator: Optional[RuleGroupEvaluator] = None):
        self.questions: Dict[str, Question] = {q.id: q for q in questions or []}
        self.evaluator = evaluator or RuleGroupEvaluator(questions=self.questions)

    def is_visible(self, question: Question, responses: Mapping[str, Any]) -> bool:
        rules = question.visibility_rules
        if not rules:
            return True

        for group_index, group in self.group_rules(rules).items():
            if self.evaluator.evaluate(group, responses):
                logger.debug(f"Question {question.id} visible via group {group_index}")
                return True
        logger.debug(f"Question {question.id} hidden")
        return False

    def visible_questions(self, questions: Iterable[Question], responses: Mapping[str, Any]) -> List[Question]:
        """Filter questions (e.g. one page) down to the visible ones, keeping order."""
        return [q for q in questions if self.is_visible(q, responses)]

    def explain(self, question: Question, responses: Mapping[str, Any]) -> Dict[str, Any]:
        """Visibility verdict with a per-group, per-condition trace."""
        rules = question.visibility_rules
        if not rules:
            return {'question_id': question.id, 'visible': True, 'groups': []}
        groups = [
            dict(self.evaluator.explain(group, responses), group_index=group_index)
            for group_index, group in self.group_rules(rules).items()
        ]
        return {
            'question_id': question.id,
            'visible': any(g['result'] for g in groups),
            'groups': groups,
        }

    @staticmethod
    def group_rules(rules: Iterable[VisibilityRule]) -> 'OrderedDict[int, List[VisibilityRule]]':
        """Group rules by group_index (absent means group 0), preserving authored order."""
        groups: 'OrderedDict[int, List[VisibilityRule]]' = OrderedDict()
        for rule in rules:
            groups.setdefault(rule.group_index or 0, []).append(rule)
        return groups


def is_visible(question: Question, responses: Mapping[str, Any],
               questions: Optional[Iterable[Question]] = None) -> bool:
    """Shortcut for a one-off check; ``questions`` enables option resolution."""
    return VisibilityEngine(questions).is_visible(question, responses)

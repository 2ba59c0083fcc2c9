"""
Page Branching

Chooses where a respondent goes after submitting a page: a later page, the
end of the survey, or simply the next page when no branching group matches.
"""

import logging
from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .exceptions import OutOfRangeTargetError
from .logic_engine import RuleGroupEvaluator
from .rules import Action, ActionType, BranchingRule, NavigationVerdict, Page, Question

logger = logging.getLogger(__name__)


class BranchingEngine:
    """
    Evaluates the branching rule groups attached to a page.

    Groups are tried in ascending ``group_index``, followed by the rules that
    carry no ``group_index`` (one group each, in authored order); the first
    group that evaluates True decides the outcome and later groups are not
    evaluated.
    Holds no per-session state.
    """

    def __init__(self, questions: Optional[Iterable[Question]] = None,
                 evaluator: Optional[RuleGroupEvaluator] = None):
        self.questions: Dict[str, Question] = {q.id: q for q in questions or []}
        self.evaluator = evaluator or RuleGroupEvaluator(questions=self.questions)

    def next_step(
        self,
        current_page_question_id: Optional[str],
        rules: Sequence[BranchingRule],
        responses: Mapping[str, Any],
        current_page_index: int,
        total_pages: int,
    ) -> NavigationVerdict:
        """
        Decide the navigation after the current page is submitted.

        Args:
            current_page_question_id: Question that triggers the page's
                                      branching; used by rules naming none
            rules: The page's branching rules (all groups)
            responses: Answers collected so far
            current_page_index: Zero-based index of the submitted page
            total_pages: Number of pages in the survey

        Returns:
            NavigationVerdict.goto(index) or NavigationVerdict.end()

        Raises:
            OutOfRangeTargetError: the matching group skips to a page outside
                                   0..total_pages-1
        """
        for group_index, group in self.group_rules(rules).items():
            action = self._group_action(group_index, group)
            if action is None:
                continue
            if not self.evaluator.evaluate(group, responses, default_question_id=current_page_question_id):
                continue

            logger.info(f"Branching group {group_index} matched on page {current_page_index}: {action.type.value}")
            if action.type is ActionType.END_SURVEY:
                return NavigationVerdict.end()
            target = action.target_page_index
            if target is None or not 0 <= target < total_pages:
                logger.error(
                    f"Branching group {group_index} on page {current_page_index} "
                    f"targets page {target} of {total_pages}"
                )
                raise OutOfRangeTargetError(target, total_pages, group_index)
            return NavigationVerdict.goto(target)

        return self.sequential_step(current_page_index, total_pages)

    def next_step_for_page(
        self,
        page: Page,
        responses: Mapping[str, Any],
        current_page_index: int,
        total_pages: int,
    ) -> NavigationVerdict:
        """next_step using the rules stored on the page itself."""
        trigger = next((rule.question_id for rule in page.branching if rule.question_id), None)
        if trigger is None and page.questions:
            trigger = page.questions[0].id
        return self.next_step(trigger, page.branching, responses, current_page_index, total_pages)

    @staticmethod
    def sequential_step(current_page_index: int, total_pages: int) -> NavigationVerdict:
        next_index = current_page_index + 1
        if next_index >= total_pages:
            return NavigationVerdict.end()
        return NavigationVerdict.goto(next_index)

    @staticmethod
    def group_rules(rules: Iterable[BranchingRule]) -> 'OrderedDict[int, List[BranchingRule]]':
        """Group rules in evaluation order, keeping authored order within a group."""
        return OrderedDict(
            (group_index, [rule for _, rule in members])
            for group_index, members in group_positions(rules).items()
        )

    @staticmethod
    def _group_action(group_index: int, group: Sequence[BranchingRule]) -> Optional[Action]:
        for rule in group:
            if rule.action is not None:
                return rule.action
        logger.warning(f"Branching group {group_index} has no action and is skipped")
        return None


def group_positions(rules: Iterable[BranchingRule]) -> 'OrderedDict[int, List[Tuple[int, BranchingRule]]]':
    """
    Group (position, rule) pairs by group_index.

    Explicit groups come first in ascending group_index. Each rule without a
    group_index then forms a group of its own, numbered after the highest
    explicit index in authored order.
    """
    explicit: Dict[int, List[Tuple[int, BranchingRule]]] = {}
    loose: List[Tuple[int, BranchingRule]] = []
    for position, rule in enumerate(rules):
        if rule.group_index is None:
            loose.append((position, rule))
        else:
            explicit.setdefault(rule.group_index, []).append((position, rule))

    groups = OrderedDict(sorted(explicit.items()))
    next_index = max(explicit, default=-1) + 1
    for offset, entry in enumerate(loose):
        groups[next_index + offset] = [entry]
    return groups

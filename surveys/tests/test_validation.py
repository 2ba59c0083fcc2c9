"""
Tests for rule authoring validation.
"""

import pytest

from surveys.builders import RuleBuilder
from surveys.rules import BranchingRule, Condition, Option, Question, QuestionType, VisibilityRule
from surveys.validation import (
    validate_branching_rules,
    validate_scale_settings,
    validate_visibility_rules,
    value_bounds,
)


def visibility(question_id, operator, value):
    return VisibilityRule(question_id=question_id, condition=Condition(operator, value))


class TestValueBounds:

    @pytest.mark.parametrize('question_type, settings, expected', [
        (QuestionType.RATING_NUMBER, {}, (1.0, 10.0)),
        (QuestionType.RATING_STAR, {'maxRating': 5}, (1.0, 5.0)),
        (QuestionType.RATING_SMILEY, {}, (1.0, 5.0)),
        (QuestionType.SLIDER, {}, (0.0, 100.0)),
        (QuestionType.SLIDER, {'scaleMin': -10, 'scaleMax': 10}, (-10.0, 10.0)),
        (QuestionType.TEXT_SHORT, {}, None),
    ])
    def test_bounds(self, question_type, settings, expected):
        assert value_bounds(Question(id='q', type=question_type, settings=settings)) == expected

    def test_non_numeric_settings_fall_back_to_defaults(self):
        rating = Question(id='q', type=QuestionType.RATING_NUMBER, settings={'maxRating': 'ten'})
        slider = Question(id='s', type=QuestionType.SLIDER, settings={'scaleMin': '5', 'scaleMax': [1]})
        assert value_bounds(rating) == (1.0, 10.0)
        assert value_bounds(slider) == (5.0, 100.0)

    def test_validate_scale_settings(self):
        rating = Question(id='q', type=QuestionType.RATING_STAR, settings={'maxRating': 'ten'})
        assert validate_scale_settings(rating) == ["Invalid maxRating 'ten' for question 'q': must be a number"]
        assert validate_scale_settings(Question(id='q', type=QuestionType.SLIDER, settings={'scaleMax': 50})) == []


class TestVisibilityValidation:

    def setup_method(self):
        self.rating = Question(id='q_rating', type=QuestionType.RATING_NUMBER, settings={'maxRating': 5})
        self.colors = Question(
            id='q_colors',
            type=QuestionType.MULTI_CHOICE,
            options=(Option(id='red', text='Red'), Option(id='blue', text='Blue')),
        )
        self.name = Question(id='q_name', type=QuestionType.TEXT_SHORT)

    def check(self, *rules):
        target = Question(id='q_target', type=QuestionType.TEXT_SHORT, visibility_rules=tuple(rules))
        return validate_visibility_rules(target, [self.rating, self.colors, self.name, target])

    def test_valid_rules(self):
        assert self.check(
            visibility('q_rating', 'greater_than', 3),
            visibility('q_colors', 'count_gt', 1),
            visibility('q_colors', 'has_selected', 'Blue'),
            visibility('q_name', 'contains', 'bob'),
        ) == []

    def test_value_out_of_range(self):
        errors = self.check(visibility('q_rating', 'greater_than', 7))
        assert len(errors) == 1
        assert 'must be between 1 and 5' in errors[0]

    def test_count_on_single_answer_question(self):
        errors = self.check(visibility('q_name', 'count_eq', 1))
        assert 'only applies to multi-choice questions' in errors[0]

    def test_negative_count(self):
        errors = self.check(visibility('q_colors', 'count_lt', -1))
        assert 'non-negative' in errors[0]

    def test_non_numeric_value_for_numeric_operator(self):
        errors = self.check(visibility('q_rating', 'greater_than', 'lots'))
        assert 'requires a numeric value' in errors[0]

    def test_unknown_operator(self):
        errors = self.check(visibility('q_name', 'starts_with', 'a'))
        assert "Unknown operator 'starts_with'" in errors[0]

    def test_missing_value(self):
        errors = self.check(visibility('q_name', 'equals', ''))
        assert 'must have a value' in errors[0]

    def test_unknown_option(self):
        errors = self.check(visibility('q_colors', 'has_selected', 'Green'))
        assert "'Green' is not an option" in errors[0]

    def test_unknown_question(self):
        errors = self.check(visibility('q_missing', 'equals', 'x'))
        assert "unknown question 'q_missing'" in errors[0]

    def test_self_reference(self):
        errors = self.check(visibility('q_target', 'equals', 'x'))
        assert 'cannot depend on itself' in errors[0]

    def test_missing_question_id(self):
        errors = self.check(visibility(None, 'equals', 'x'))
        assert 'questionId' in errors[0]

    def test_later_question(self):
        later = Question(id='q_later', type=QuestionType.TEXT_SHORT)
        first = Question(
            id='q_first',
            type=QuestionType.TEXT_SHORT,
            visibility_rules=(visibility('q_later', 'equals', 'x'),),
        )
        errors = validate_visibility_rules(first, [first, later])
        assert "Depends on later question 'q_later'" in errors[0]


class TestBranchingValidation:

    def test_valid_groups(self):
        rules = (
            RuleBuilder.branching(RuleBuilder.question('q1').equals('yes'), group_index=0).skip_to(2)
            + RuleBuilder.branching(RuleBuilder.question('q1').equals('no'), group_index=1).end_survey()
        )
        assert validate_branching_rules(rules, total_pages=3) == []

    @pytest.mark.parametrize('target', [3, 10])
    def test_target_out_of_range(self, target):
        rules = RuleBuilder.branching(RuleBuilder.question('q1').equals('yes')).skip_to(target)
        errors = validate_branching_rules(rules, total_pages=3, page_index=0)
        assert errors == [f"pages[0].branching group 0: targetPageIndex {target} is outside 0..2"]

    def test_group_without_action(self):
        rules = [BranchingRule(question_id='q1', condition=Condition('equals', 'yes'))]
        errors = validate_branching_rules(rules, total_pages=3)
        assert errors == ['branching group 0: Rule group has no action']

    def test_conflicting_actions(self):
        rules = (
            RuleBuilder.branching(RuleBuilder.question('q1').equals('yes')).skip_to(1)
            + RuleBuilder.branching(RuleBuilder.question('q2').equals('yes')).end_survey()
        )
        errors = validate_branching_rules(rules, total_pages=3)
        assert 'branching group 0: Rule group has conflicting actions' in errors

    def test_condition_checked_against_question(self):
        slider = Question(id='q_slider', type=QuestionType.SLIDER)
        rules = RuleBuilder.branching(RuleBuilder.question('q_slider').greater_than(150)).end_survey()
        errors = validate_branching_rules(rules, total_pages=3, questions={'q_slider': slider})
        assert len(errors) == 1
        assert 'must be between 0 and 100' in errors[0]

    def test_groupless_rules_are_separate_groups(self):
        rules = [
            BranchingRule.from_dict({
                'questionId': 'q1',
                'condition': {'operator': 'equals', 'value': 'a'},
                'action': {'type': 'skip_to_page', 'targetPageIndex': 1},
            }),
            BranchingRule.from_dict({
                'questionId': 'q1',
                'condition': {'operator': 'equals', 'value': 'b'},
                'action': {'type': 'end_survey'},
            }),
        ]
        assert validate_branching_rules(rules, total_pages=3) == []

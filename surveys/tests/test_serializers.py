"""
Tests for rule definition serializers.
"""

from surveys.rules import ActionType, NavigationVerdict, QuestionType
from surveys.serializers import (
    ActionSerializer,
    ConditionSerializer,
    QuestionSerializer,
    SurveyLogicSerializer,
)
from surveys.branching import BranchingEngine
from surveys.visibility import VisibilityEngine


def survey_payload():
    return {
        'pages': [
            {
                'questions': [
                    {
                        'id': 'q_plan',
                        'type': 'singleChoice',
                        'options': [{'id': 'free', 'text': 'Free'}, {'id': 'pro', 'text': 'Pro'}],
                    },
                    {
                        'id': 'q_seats',
                        'type': 'slider',
                        'settings': {'scaleMin': 1, 'scaleMax': 50},
                        'visibilityRules': [
                            {'questionId': 'q_plan', 'condition': {'operator': 'equals', 'value': 'Pro'}},
                        ],
                    },
                ],
                'branching': [
                    {
                        'questionId': 'q_plan',
                        'condition': {'operator': 'equals', 'value': 'free'},
                        'action': {'type': 'skip_to_page', 'targetPageIndex': 2},
                    },
                ],
            },
            {'questions': [{'id': 'q_team', 'type': 'textShort'}]},
            {'questions': [{'id': 'q_feedback', 'type': 'textLong'}]},
        ],
    }


class TestConditionSerializer:

    def test_valid(self):
        serializer = ConditionSerializer(data={'operator': 'greater_than', 'value': 3})
        assert serializer.is_valid(), serializer.errors

    def test_unknown_operator(self):
        serializer = ConditionSerializer(data={'operator': 'regex', 'value': '.*'})
        assert not serializer.is_valid()
        assert 'operator' in serializer.errors

    def test_list_value_rejected(self):
        serializer = ConditionSerializer(data={'operator': 'equals', 'value': ['a', 'b']})
        assert not serializer.is_valid()
        assert 'value' in serializer.errors

    def test_numeric_operator_needs_number(self):
        for value in ('many', True):
            serializer = ConditionSerializer(data={'operator': 'count_gt', 'value': value})
            assert not serializer.is_valid()

    def test_smiley_label_is_numeric(self):
        serializer = ConditionSerializer(data={'operator': 'greater_than', 'value': 'neutral'})
        assert serializer.is_valid(), serializer.errors


class TestActionSerializer:

    def test_skip_requires_target(self):
        serializer = ActionSerializer(data={'type': 'skip_to_page'})
        assert not serializer.is_valid()

    def test_end_survey(self):
        serializer = ActionSerializer(data={'type': 'end_survey'})
        assert serializer.is_valid(), serializer.errors
        assert serializer.validated_data['type'] == ActionType.END_SURVEY.value

    def test_negative_target_rejected(self):
        serializer = ActionSerializer(data={'type': 'skip_to_page', 'targetPageIndex': -1})
        assert not serializer.is_valid()


class TestQuestionSerializer:

    def test_type_alias_normalized(self):
        serializer = QuestionSerializer(data={'id': 'q1', 'type': 'rating_smiley'})
        assert serializer.is_valid(), serializer.errors
        assert serializer.to_question().type is QuestionType.RATING_SMILEY

    def test_invalid_type(self):
        serializer = QuestionSerializer(data={'id': 'q1', 'type': 'hologram'})
        assert not serializer.is_valid()
        assert 'type' in serializer.errors

    def test_choice_requires_options(self):
        serializer = QuestionSerializer(data={'id': 'q1', 'type': 'multiChoice'})
        assert not serializer.is_valid()

    def test_rules_in_settings_parsed(self):
        serializer = QuestionSerializer(data={
            'id': 'q2',
            'type': 'textShort',
            'settings': {'visibleWhen': [{'questionId': 'q1', 'condition': {'operator': 'equals', 'value': 'y'}}]},
        })
        assert serializer.is_valid(), serializer.errors
        assert len(serializer.to_question().visibility_rules) == 1

    def test_non_numeric_slider_bounds(self):
        serializer = QuestionSerializer(data={
            'id': 'q1',
            'type': 'slider',
            'settings': {'scaleMin': '0', 'scaleMax': 'lots'},
        })
        assert not serializer.is_valid()
        assert "Invalid scaleMax 'lots'" in str(serializer.errors)

    def test_malformed_rules_in_settings(self):
        serializer = QuestionSerializer(data={
            'id': 'q2',
            'type': 'textShort',
            'settings': {'visibleWhen': [{'questionId': 'q1', 'condition': {}}]},
        })
        assert not serializer.is_valid()


class TestSurveyLogicSerializer:

    def test_valid_survey(self):
        serializer = SurveyLogicSerializer(data=survey_payload())
        assert serializer.is_valid(), serializer.errors

        pages = serializer.to_pages()
        assert len(pages) == 3
        questions = [q for page in pages for q in page.questions]
        seats = questions[1]

        visibility = VisibilityEngine(questions)
        assert visibility.is_visible(seats, {'q_plan': 'pro'}) is True
        assert visibility.is_visible(seats, {'q_plan': 'free'}) is False

        branching = BranchingEngine(questions)
        assert branching.next_step_for_page(pages[0], {'q_plan': 'Free'}, 0, 3) == NavigationVerdict.goto(2)
        assert branching.next_step_for_page(pages[0], {'q_plan': 'pro'}, 0, 3) == NavigationVerdict.goto(1)

    def test_empty_survey(self):
        serializer = SurveyLogicSerializer(data={'pages': []})
        assert not serializer.is_valid()

    def test_duplicate_question_ids(self):
        payload = survey_payload()
        payload['pages'][1]['questions'][0]['id'] = 'q_plan'
        serializer = SurveyLogicSerializer(data=payload)
        assert not serializer.is_valid()
        assert 'Question ids must be unique' in str(serializer.errors)

    def test_branch_target_beyond_last_page(self):
        payload = survey_payload()
        payload['pages'][0]['branching'][0]['action']['targetPageIndex'] = 3
        serializer = SurveyLogicSerializer(data=payload)
        assert not serializer.is_valid()
        assert 'targetPageIndex 3 is outside 0..2' in str(serializer.errors)

    def test_visibility_value_outside_slider_range(self):
        payload = survey_payload()
        payload['pages'][1]['questions'][0]['visibilityRules'] = [
            {'questionId': 'q_seats', 'condition': {'operator': 'greater_than', 'value': 80}},
        ]
        serializer = SurveyLogicSerializer(data=payload)
        assert not serializer.is_valid()
        assert 'must be between 1 and 50' in str(serializer.errors)

    def test_non_numeric_scale_setting(self):
        payload = survey_payload()
        payload['pages'][1]['questions'].append({
            'id': 'q_score',
            'type': 'ratingNumber',
            'settings': {'maxRating': 'ten'},
        })
        serializer = SurveyLogicSerializer(data=payload)
        assert not serializer.is_valid()
        assert "Invalid maxRating 'ten'" in str(serializer.errors)

    def test_groupless_branching_rules_stay_separate(self):
        payload = survey_payload()
        payload['pages'][0]['branching'].append({
            'questionId': 'q_plan',
            'condition': {'operator': 'equals', 'value': 'pro'},
            'action': {'type': 'skip_to_page', 'targetPageIndex': 0},
        })
        serializer = SurveyLogicSerializer(data=payload)
        assert serializer.is_valid(), serializer.errors

        page = serializer.to_pages()[0]
        assert [rule.group_index for rule in page.branching] == [None, None]
        branching = BranchingEngine(page.questions)
        assert branching.next_step_for_page(page, {'q_plan': 'free'}, 0, 3) == NavigationVerdict.goto(2)
        assert branching.next_step_for_page(page, {'q_plan': 'pro'}, 0, 3) == NavigationVerdict.goto(0)

"""
Rule Definition Serializers

Validate the question and rule JSON produced by the survey builder before it
reaches the logic engine, and convert it into engine objects.
"""

from rest_framework import serializers

from .coercion import ValueKind, coerce_numeric, value_kind
from .exceptions import InvalidLogicError
from .rules import ActionType, Logical, Operator, Page, Question, QuestionType
from .validation import validate_branching_rules, validate_scale_settings, validate_visibility_rules


class OptionSerializer(serializers.Serializer):
    """Serializer for choice options"""

    id = serializers.CharField()
    text = serializers.CharField(required=False, allow_blank=True, default='')
    value = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class ConditionSerializer(serializers.Serializer):
    """Serializer for a single condition: operator + scalar value"""

    operator = serializers.ChoiceField(choices=[op.value for op in Operator])
    value = serializers.JSONField()

    def validate_value(self, value):
        """Condition values are strings, numbers or booleans"""
        if value is None or isinstance(value, (list, dict)):
            raise serializers.ValidationError(
                "Condition value must be a string, number or boolean"
            )
        return value

    def validate(self, data):
        """Numeric and count operators need a numeric value"""
        operator = Operator(data['operator'])
        value = data['value']
        if operator.is_numeric and (value_kind(value) is ValueKind.BOOLEAN or coerce_numeric(value) is None):
            raise serializers.ValidationError(
                f"Operator '{operator.value}' requires a numeric value"
            )
        return data


class ActionSerializer(serializers.Serializer):
    """Serializer for the action of a branching group"""

    type = serializers.ChoiceField(choices=[a.value for a in ActionType])
    targetPageIndex = serializers.IntegerField(required=False, allow_null=True, min_value=0)

    def validate(self, data):
        if data['type'] == ActionType.SKIP_TO_PAGE.value and data.get('targetPageIndex') is None:
            raise serializers.ValidationError(
                "Action 'skip_to_page' must have 'targetPageIndex'"
            )
        return data


class VisibilityRuleSerializer(serializers.Serializer):
    """Serializer for visibility rules (condition on an earlier question)"""

    questionId = serializers.CharField()
    condition = ConditionSerializer()
    logical = serializers.ChoiceField(choices=[join.value for join in Logical], required=False, allow_null=True)
    groupIndex = serializers.IntegerField(required=False, allow_null=True, min_value=0)


class BranchingRuleSerializer(serializers.Serializer):
    """Serializer for branching rules; rules sharing groupIndex form one group, a rule without one is its own group"""

    questionId = serializers.CharField(required=False, allow_null=True)
    condition = ConditionSerializer()
    logical = serializers.ChoiceField(choices=[join.value for join in Logical], required=False, allow_null=True)
    action = ActionSerializer()
    groupIndex = serializers.IntegerField(required=False, allow_null=True, min_value=0)


class QuestionSerializer(serializers.Serializer):
    """Serializer for question definitions with options and visibility rules"""

    id = serializers.CharField()
    type = serializers.CharField()
    title = serializers.CharField(required=False, allow_blank=True, default='')
    options = OptionSerializer(many=True, required=False)
    settings = serializers.DictField(required=False, default=dict)
    visibilityRules = VisibilityRuleSerializer(many=True, required=False)

    def validate_type(self, value):
        """Ensure valid question type"""
        try:
            return QuestionType.parse(value).value
        except InvalidLogicError:
            valid_types = ', '.join(t.value for t in QuestionType)
            raise serializers.ValidationError(
                f"Invalid question type. Must be one of: {valid_types}"
            )

    def validate(self, data):
        """Choice questions need options; scale settings and stored rules must parse"""
        question_type = QuestionType(data['type'])
        if question_type.is_choice and not data.get('options'):
            raise serializers.ValidationError(
                f"Question type '{question_type.value}' requires at least one option"
            )
        try:
            question = Question.from_dict(data)
        except InvalidLogicError as e:
            raise serializers.ValidationError(str(e))
        errors = validate_scale_settings(question)
        if errors:
            raise serializers.ValidationError(errors)
        return data

    def to_question(self) -> Question:
        return Question.from_dict(self.validated_data)


class PageSerializer(serializers.Serializer):
    """Serializer for one survey page: its questions and branching rules"""

    questions = QuestionSerializer(many=True)
    branching = BranchingRuleSerializer(many=True, required=False)

    def to_page(self) -> Page:
        return Page.from_dict(self.validated_data)


class SurveyLogicSerializer(serializers.Serializer):
    """
    Serializer for the full logic of a survey.

    Besides shape validation, checks every visibility rule against the
    questions before it and every branching target against the page count.
    """

    pages = PageSerializer(many=True)

    def validate_pages(self, value):
        if not value:
            raise serializers.ValidationError("Survey must have at least one page")
        return value

    def validate(self, data):
        pages = [Page.from_dict(p) for p in data['pages']]
        questions = [q for page in pages for q in page.questions]
        by_id = {q.id: q for q in questions}
        if len(by_id) != len(questions):
            raise serializers.ValidationError("Question ids must be unique")

        errors = []
        for question in questions:
            errors.extend(validate_visibility_rules(question, questions))
        for index, page in enumerate(pages):
            errors.extend(validate_branching_rules(page.branching, len(pages), by_id, page_index=index))
        if errors:
            raise serializers.ValidationError(errors)
        return data

    def to_pages(self):
        return [Page.from_dict(p) for p in self.validated_data['pages']]

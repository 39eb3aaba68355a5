import math
import pytest

from questionbank.exceptions import QuestionValidationError
from questionbank.schemas.question_schema import QuestionData, QuestionType
from questionbank.services.validation_service import validate_or_raise, validate_question


def make(**fields) -> QuestionData:
    data = {"questionText": "What is 2+2?"}
    data.update(fields)
    return QuestionData.model_validate(data)


def fields_of(result):
    return [v.field for v in result.violations]


def messages_of(result):
    return {v.field: v.message for v in result.violations}


def test_multiple_choice_scenario():
    result = validate_question(make(
        questionTypes=["multiple_choice"],
        options=[{"text": "A", "isCorrect": False}, {"text": "B", "isCorrect": True}],
    ))
    assert result.is_valid
    assert result.question.correct_answer == "B"


def test_multiple_select_scenario():
    result = validate_question(make(
        questionTypes=["multiple_select"],
        options=[
            {"text": "A", "isCorrect": True},
            {"text": "B", "isCorrect": False},
            {"text": "C", "isCorrect": True},
        ],
    ))
    assert result.is_valid
    assert result.question.correct_answer == ["A", "C"]


def test_multiple_select_needs_two_correct_options():
    result = validate_question(make(
        questionTypes=["multiple_select"],
        options=[{"text": "A", "isCorrect": True}, {"text": "B", "isCorrect": False}],
    ))
    assert messages_of(result) == {"options": "Multiple select requires at least 2 correct answers"}


def test_short_answer_without_answers_scenario():
    result = validate_question(make(questionTypes=["short_answer"], acceptedAnswers=[]))
    assert not result.is_valid
    assert result.question is None
    assert messages_of(result)["acceptedAnswers"].lower() == "correct answer is required"


def test_long_answer_makes_text_answer_optional():
    result = validate_question(make(questionTypes=["short_answer", "long_answer"], acceptedAnswers=[]))
    assert result.is_valid
    assert result.question.correct_answer is None


def test_empty_type_set_is_fatal_and_reported_alone():
    result = validate_question(make(questionTypes=[], questionText=""))
    assert fields_of(result) == ["questionTypes"]
    assert result.violations[0].message == "At least one question type is required"


def test_duplicate_types_are_reported():
    result = validate_question(make(questionTypes=["essay", "long_answer"]))
    assert fields_of(result) == ["questionTypes"]


def test_all_violations_are_reported_together():
    result = validate_question(make(
        questionTypes=["multiple_choice"],
        questionText="   ",
        points=0,
        explanation="x" * 1001,
        options=[{"text": "A", "isCorrect": True}],
    ))
    assert fields_of(result) == ["questionText", "points", "explanation", "options"]
    messages = messages_of(result)
    assert messages["questionText"] == "Question text is required"
    assert messages["points"] == "Points must be at least 0.1"
    assert messages["explanation"] == "Explanation must be 1000 characters or less"
    assert messages["options"] == "At least 2 options are required"


def test_question_text_length_limit():
    result = validate_question(make(questionTypes=["long_answer"], questionText="q" * 2001))
    assert messages_of(result) == {"questionText": "Question text must be 2000 characters or less"}
    assert validate_question(make(questionTypes=["long_answer"], questionText="q" * 2000)).is_valid


def test_points_bounds():
    assert "points" in fields_of(validate_question(make(questionTypes=["long_answer"], points=math.nan)))
    assert "points" in fields_of(validate_question(make(questionTypes=["long_answer"], points=0.09)))
    assert validate_question(make(questionTypes=["long_answer"], points=0.1)).is_valid
    assert validate_question(make(questionTypes=["long_answer"], points=2.5)).question.points == 2.5


def test_option_rules():
    blank = validate_question(make(
        questionTypes=["multiple_choice"],
        options=[{"text": "A", "isCorrect": True}, {"text": " ", "isCorrect": False}],
    ))
    assert messages_of(blank) == {"options": "All options must have text"}

    too_long = validate_question(make(
        questionTypes=["multiple_choice"],
        options=[{"text": "A" * 501, "isCorrect": True}, {"text": "B", "isCorrect": False}],
    ))
    assert messages_of(too_long) == {"options": "Option text must be 500 characters or less"}

    none_correct = validate_question(make(
        questionTypes=["multiple_choice"],
        options=[{"text": "A"}, {"text": "B"}],
    ))
    assert messages_of(none_correct) == {"options": "At least one option must be marked as correct"}


def test_legacy_correct_answer_marks_the_matching_option():
    result = validate_question(make(
        questionTypes=["multiple_choice"],
        options=[{"text": "1"}, {"text": "4"}],
        correctAnswer=4,
    ))
    assert result.is_valid
    assert [o.is_correct for o in result.question.options] == [False, True]


def test_true_false_options_are_forced():
    result = validate_question(make(questionTypes=["true_false"], correctAnswer="false"))
    assert result.is_valid
    question = result.question
    assert [o.text for o in question.options] == ["True", "False"]
    assert [o.is_correct for o in question.options] == [False, True]
    assert question.correct_answer == "False"


def test_true_false_replaces_other_option_text():
    result = validate_question(make(
        questionTypes=["multiple_choice", "true_false"],
        options=[{"text": "True", "isCorrect": True}, {"text": "Maybe", "isCorrect": False}],
    ))
    assert result.is_valid
    assert [o.text for o in result.question.options] == ["True", "False"]
    assert result.question.correct_answer == "True"


def test_true_false_without_answer():
    result = validate_question(make(questionTypes=["true_false"]))
    messages = messages_of(result)
    assert messages["correctAnswer"] == "Correct answer is required"
    assert messages["options"] == "At least one option must be marked as correct"


def test_true_false_answer_must_be_true_or_false():
    result = validate_question(make(questionTypes=["true_false"], correctAnswer="maybe"))
    assert messages_of(result)["correctAnswer"] == "Correct answer must be True or False"


def test_true_false_single_select_cannot_mark_both():
    result = validate_question(make(
        questionTypes=["true_false"],
        options=[{"text": "True", "isCorrect": True}, {"text": "False", "isCorrect": True}],
    ))
    assert messages_of(result) == {"correctAnswer": "Correct answer must be either True or False, not both"}


def test_matching_rules():
    one_pair = validate_question(make(questionTypes=["matching"], matchingPairs=[{"left": "a", "right": "1"}]))
    assert messages_of(one_pair) == {"matchingPairs": "Matching requires at least 2 pairs"}

    half_pair = validate_question(make(
        questionTypes=["matching"],
        matchingPairs=[{"left": "a", "right": "1"}, {"left": "b", "right": " "}],
    ))
    assert messages_of(half_pair) == {"matchingPairs": "All matching pairs must have both a left and a right side"}

    ok = validate_question(make(
        questionTypes=["matching"],
        matchingPairs=[{"left": "a", "right": "1"}, {"left": "b", "right": "2"}],
        distractors=[" x ", "", "x", "y"],
    ))
    assert ok.is_valid
    assert ok.question.distractors == ["x", "y"]


def test_flashcard_needs_a_back_face():
    result = validate_question(make(questionTypes=["flashcard"]))
    assert messages_of(result) == {
        "flashcardData": "Flashcard requires at least one correct answer for the back of the card"
    }

    with_answer = validate_question(make(questionTypes=["flashcard"], acceptedAnswers=["4"]))
    assert with_answer.is_valid
    assert with_answer.question.flashcard_data.prompts == []

    with_option = validate_question(make(
        questionTypes=["multiple_choice", "flashcard"],
        options=[{"text": "3"}, {"text": "4", "isCorrect": True}],
        flashcardData={"prompts": ["Think about it", " "]},
    ))
    assert with_option.is_valid
    assert with_option.question.flashcard_data.prompts == ["Think about it"]


def test_fill_in_blank_rules():
    missing = validate_question(make(questionTypes=["fill_in_blank"]))
    assert messages_of(missing) == {"blanks": "At least one blank is required"}

    empty_blank = validate_question(make(
        questionTypes=["fill_in_blank"],
        blanks=[{"position": 0, "acceptedAnswers": [" "]}],
    ))
    assert messages_of(empty_blank) == {"blanks": "Each blank must have at least one accepted answer"}

    same_position = validate_question(make(
        questionTypes=["fill_in_blank"],
        blanks=[{"position": 1, "acceptedAnswers": ["a"]}, {"position": 1, "acceptedAnswers": ["b"]}],
    ))
    assert messages_of(same_position) == {"blanks": "Blank positions must be unique"}

    legacy = validate_question(make(questionTypes=["fill_blank"], correctAnswer="(name)"))
    assert legacy.is_valid
    assert legacy.question.question_types == [QuestionType.fill_in_blank]
    assert legacy.question.blanks[0].accepted_answers == ["(name)"]
    assert legacy.question.correct_answer == "(name)"


def test_unselected_substructures_are_dropped():
    result = validate_question(make(
        questionTypes=["short_answer"],
        acceptedAnswers=["4", " "],
        options=[{"text": "A", "isCorrect": True}, {"text": "B"}],
        matchingPairs=[{"left": "a", "right": "b"}],
        sampleAnswer="unused",
    ))
    assert result.is_valid
    question = result.question
    assert question.options is None
    assert question.matching_pairs is None
    assert question.sample_answer is None
    assert question.accepted_answers == ["4"]


def test_text_and_tags_are_normalized():
    result = validate_question(make(
        questionTypes=["long_answer"],
        questionText="  Explain closures.  ",
        tags=[" js", "js", "", "closures "],
        explanation="   ",
    ))
    question = result.question
    assert question.question_text == "Explain closures."
    assert question.tags == ["js", "closures"]
    assert question.explanation is None


VALID_PAYLOADS = [
    {"questionTypes": ["multiple_choice"], "options": [{"text": "A"}, {"text": "B", "isCorrect": True}]},
    {"questionTypes": ["multiple_select"],
     "options": [{"text": "A", "isCorrect": True}, {"text": "B"}, {"text": "C", "isCorrect": True}]},
    {"questionTypes": ["true_false"], "correctAnswer": True},
    {"questionTypes": ["true_false", "multiple_select"],
     "options": [{"text": "True", "isCorrect": True}, {"text": "False", "isCorrect": True}]},
    {"questionTypes": ["short_answer"], "correctAnswer": "Paris"},
    {"questionTypes": ["essay"], "correctAnswer": "A closure captures its scope."},
    {"questionTypes": ["matching"], "matchingPairs": [{"left": "a", "right": "1"}, {"left": "b", "right": "2"}]},
    {"questionTypes": ["flashcard", "short_answer"], "acceptedAnswers": ["4", "four"]},
    {"questionTypes": ["fill_in_blank"], "blanks": [{"position": 2, "acceptedAnswers": ["x"]}]},
]


@pytest.mark.parametrize("payload", VALID_PAYLOADS)
def test_validation_is_idempotent(payload):
    first = validate_question(make(**payload))
    assert first.is_valid, first.violations

    second = validate_question(first.question)
    third = validate_question(second.question)
    assert second.violations == []
    assert third.violations == []
    assert second.question.model_dump() == first.question.model_dump()


def test_validate_or_raise_carries_every_violation():
    with pytest.raises(QuestionValidationError) as exc_info:
        validate_or_raise(make(questionTypes=["short_answer"], questionText="", points=0))
    error = exc_info.value
    assert [v.field for v in error.violations] == ["questionText", "points", "acceptedAnswers"]
    assert str(error) == "Question text is required"
    assert error.to_dict()["violations"][0] == {"field": "questionText", "message": "Question text is required"}

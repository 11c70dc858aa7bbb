"""Schema package exports."""

from .questions import ExplanationDetails, Question, QuestionOption, question_from_payload, question_to_dict

__all__ = ["ExplanationDetails", "Question", "QuestionOption", "question_from_payload", "question_to_dict"]

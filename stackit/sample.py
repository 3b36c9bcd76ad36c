# built-in question shown when the API can't supply a usable one
from .models import QuestionPayload

SAMPLE_QUESTION = {
    "id": "sample",
    "title": "How to join 2 columns in a data set to make a separate column in SQL",
    "body": (
        "I do not know the code for it as I am a beginner. As an example, what I "
        "need to do is like there is a column 1 containing First name, and column 2 "
        "consists of last name. I want a column to combine."
    ),
    "answers": [
        {
            "id": 1,
            "text": "The `||` Operator.\nThe `+` Operator.\nThe `CONCAT` Function.",
            "votes": 1,
            "votedByUser": False,
        },
        {
            "id": 2,
            "text": "Use `CONCAT(FirstName, ' ', LastName)`.",
            "votes": 0,
            "votedByUser": False,
        },
    ],
}


def sample_question() -> QuestionPayload:
    """
    Fresh copy every time, so votes cast on one board never leak into the next fallback.
    """
    return QuestionPayload.model_validate(SAMPLE_QUESTION)

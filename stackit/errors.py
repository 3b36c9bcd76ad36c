from typing import Optional


class BoardError(Exception):
    """Base class for everything the answer board raises."""

    status_code = 400

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.__doc__ or self.__class__.__name__
        super().__init__(self.detail)


class Unauthorized(BoardError):
    """Sign in to vote or answer."""

    status_code = 401


class EmptyInput(BoardError):
    """Answer text is empty."""

    status_code = 422


class AnswerNotFound(BoardError):
    """No answer with that id on this question."""

    status_code = 404


class NotLoaded(BoardError):
    """No question has been loaded yet."""

    status_code = 409


class SubmissionFailed(BoardError):
    """Could not submit your answer. Please try again."""

    status_code = 502


class LoadFailed(BoardError):
    """Question could not be loaded; caught inside the board and replaced by the sample."""

    status_code = 502


class AuthorityError(BoardError):
    """
    Any failure talking to the question API: transport error, non-2xx status,
    or a payload that does not decode into the expected model.
    """

    status_code = 502

    def __init__(self, detail: Optional[str] = None, status: Optional[int] = None):
        self.status = status
        super().__init__(detail)

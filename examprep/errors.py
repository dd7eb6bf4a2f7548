"""Exception types raised by the quiz core."""


class ExamPrepError(Exception):
    """Base class for all quiz core errors."""


class QuestionValidationError(ExamPrepError):
    """A question record is malformed and cannot enter the pool."""


class EmptySelectionError(ExamPrepError):
    """Filtering or selection produced no questions, so no session can start."""

    def __init__(self, message: str = "No questions available with selected filters"):
        super().__init__(message)


class StorageUnavailable(ExamPrepError):
    """The history store could not be read or written."""


class QuizStateError(ExamPrepError):
    """A session operation was invoked from a state that does not allow it."""

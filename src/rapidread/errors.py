class RapidReadError(Exception):
    """Base class for recoverable reader and quiz errors."""


class NoTextLoaded(RapidReadError):
    def __init__(self, message: str = "No text loaded. Generate a text or add your own first."):
        super().__init__(message)


class ContentGenerationFailure(RapidReadError):
    pass


class InvalidAnswerIndex(RapidReadError):
    pass


class DuplicateAnswer(RapidReadError):
    pass

"""Domain errors shared by the store, catalog and progress layers."""


class LectureTrackError(Exception):
    """Base application error."""

    def __init__(self, message: str, code: str = "lecturetrack_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(LectureTrackError):
    """Referenced course, lecture or job does not exist. Not retried."""

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, "not_found")


class StoreUnavailableError(LectureTrackError):
    """Transient document store failure; the whole operation may be retried."""

    def __init__(self, message: str = "Document store unavailable"):
        super().__init__(message, "store_unavailable")

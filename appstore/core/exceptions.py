from fastapi import HTTPException, status


class ValidationError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=422, detail=detail)


class UnauthorizedError(HTTPException):
    def __init__(self, detail: str = "Invalid or missing authentication"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class ForbiddenError(HTTPException):
    def __init__(self, detail: str = "Not allowed to perform this action"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotFoundError(HTTPException):
    def __init__(self, detail: str):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class AppNotFoundError(NotFoundError):
    def __init__(self, id_or_slug: str):
        super().__init__(f"App {id_or_slug} not found")


class ReviewNotFoundError(NotFoundError):
    def __init__(self, review_id: str):
        super().__init__(f"Review {review_id} not found")


class ApplicationNotFoundError(NotFoundError):
    def __init__(self, application_id: str):
        super().__init__(f"Developer application {application_id} not found")


class ProfileNotFoundError(NotFoundError):
    def __init__(self, user_id: str):
        super().__init__(f"No profile for user {user_id}; complete sign-up first")


class ConflictError(HTTPException):
    """Uniqueness or state-machine violation. ``current_status`` lets callers reconcile."""

    def __init__(self, message: str, current_status: str | None = None):
        self.current_status = current_status
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": message, "current_status": current_status},
        )


class ApplicationExistsError(ConflictError):
    def __init__(self, current_status: str):
        super().__init__(
            f"User already has a developer application in '{current_status}' status",
            current_status=current_status,
        )


class InvalidTransitionError(ConflictError):
    def __init__(self, current: str, requested: str):
        super().__init__(
            f"Application is '{current}', cannot move to '{requested}'",
            current_status=current,
        )


class TransientGatewayError(HTTPException):
    def __init__(self, detail: str = "Data store temporarily unavailable", retryable: bool = True):
        self.retryable = retryable
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"message": detail, "retryable": retryable},
        )

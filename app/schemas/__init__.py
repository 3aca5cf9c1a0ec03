from app.schemas.achievements import (  # noqa: F401
    Achievement,
    AchievementForm,
    AchievementInput,
    AchievementListResponse,
    SearchTermUpdate,
    SubmissionResponse,
)

# app/datawarehouse/__init__.py

from .models import (
    School,
    Classroom,
    User,
    UserClassroom,
    LearningSession,
    Event,
    Quiz,
    QuizSession,
    Content,
)

__all__ = [
    "School",
    "Classroom",
    "User",
    "UserClassroom",
    "LearningSession",
    "Event",
    "Quiz",
    "QuizSession",
    "Content",
]

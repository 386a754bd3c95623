"""
streakboard.services.errors — Domain errors
============================================

Raised synchronously by services; :mod:`streakboard.api.main` maps each to
an HTTP status through ``status_code``.
"""

from __future__ import annotations


class StreakboardError(Exception):
    """Base for all domain errors."""

    status_code = 400

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.__class__.__doc__ or self.__class__.__name__)

    @property
    def message(self) -> str:
        return str(self.args[0]) if self.args else self.__class__.__name__


class UserNotFound(StreakboardError):
    """User not found"""
    status_code = 404


class AssignmentNotFound(StreakboardError):
    """Assignment not found"""
    status_code = 404


class TaskNotFound(StreakboardError):
    """Task not found"""
    status_code = 404


class RewardNotFound(StreakboardError):
    """Reward not found"""
    status_code = 404


class LeaderboardNotFound(StreakboardError):
    """Leaderboard not found"""
    status_code = 404


class NotOwner(StreakboardError):
    """Resource does not belong to user"""
    status_code = 403


class NotAMember(StreakboardError):
    """Not a member of this leaderboard"""
    status_code = 403


class AlreadyCompleted(StreakboardError):
    """Already completed"""
    status_code = 409


class NotCompleted(StreakboardError):
    """Not completed"""
    status_code = 409


class ValidationFailed(StreakboardError):
    """Validation failed"""
    status_code = 422

"""Domain errors raised by the progression services.

Routers translate these into HTTP responses. Lost races and "nothing to
claim" are normal outcomes and are reported through return values instead.
"""


class ProgressionError(Exception):
    """Base class for progression engine errors."""


class NotFoundError(ProgressionError):
    """A referenced record doesn't exist."""

    resource = "Resource"

    def __init__(self, resource_id: int | str):
        self.resource_id = resource_id
        super().__init__(f"{self.resource} {resource_id} not found")


class PlayerNotFoundError(NotFoundError):
    resource = "Player"


class AchievementNotFoundError(NotFoundError):
    resource = "Achievement"


from questlearn.models.base import Base
from questlearn.models.player import Player, PlayerSubjectStat
from questlearn.models.attempt import AttemptRecord, AttemptSource
from questlearn.models.achievement import (
    AchievementCategory,
    AchievementDefinition,
    AchievementRarity,
    PlayerAchievement,
    RequirementKind,
)
from questlearn.models.daily_task import DailyTaskDefinition, PlayerDailyTask, TaskDifficulty
from questlearn.models.inventory import ActiveEffect, EffectType, PlayerItem

__all__ = [
    "Base",
    "Player",
    "PlayerSubjectStat",
    "AttemptRecord",
    "AttemptSource",
    "AchievementCategory",
    "AchievementDefinition",
    "AchievementRarity",
    "PlayerAchievement",
    "RequirementKind",
    "DailyTaskDefinition",
    "PlayerDailyTask",
    "TaskDifficulty",
    "ActiveEffect",
    "EffectType",
    "PlayerItem",
]
